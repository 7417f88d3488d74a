"""
Bounded retry with exponential backoff for idempotent reads.

Responsibility:
    Re-runs a side-effect-free lookup (status resolution, adjustment-type
    resolution) when it fails with a transient database error, so a single
    connection blip does not abort a whole adjustment batch.

Invariants enforced:
    - Only transient errors are retried: OperationalError, InterfaceError,
      or any DBAPIError whose connection was invalidated.  Everything else,
      including NotFoundError, propagates on the first attempt.
    - When a session is given, every attempt runs inside a SAVEPOINT.  A
      failed attempt rolls back to that savepoint only, so the enclosing
      batch transaction stays usable for the next attempt (PostgreSQL
      aborts the whole transaction on any failed statement otherwise).
    - Mutating statements are never passed through here; the enclosing
      transaction is the only atomicity mechanism for writes.

Failure modes:
    - LookupUnavailableError (chained to the last database error) once
      ``max_attempts`` attempts have failed.
    - LookupUnavailableError on the first attempt when the enclosing
      transaction is lost: the connection was invalidated under a session,
      or the session is already pending rollback.  Locks and flushed writes
      of the batch are gone at that point and no retry can restore them.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from sqlalchemy.exc import (
    DBAPIError,
    InterfaceError,
    OperationalError,
    PendingRollbackError,
)
from sqlalchemy.orm import Session

from inventory_kernel.exceptions import LookupUnavailableError
from inventory_kernel.logging_config import get_logger

logger = get_logger("utils.retry")

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt count and backoff schedule: delay n = initial * factor ** (n - 1)."""

    max_attempts: int = 3
    initial_delay_seconds: float = 1.0
    backoff_factor: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.initial_delay_seconds < 0:
            raise ValueError("initial_delay_seconds must be >= 0")
        if self.backoff_factor < 1:
            raise ValueError("backoff_factor must be >= 1")

    def delay_for(self, attempt: int) -> float:
        return self.initial_delay_seconds * self.backoff_factor ** (attempt - 1)


def is_transient(exc: BaseException) -> bool:
    if isinstance(exc, (OperationalError, InterfaceError)):
        return True
    return isinstance(exc, DBAPIError) and bool(exc.connection_invalidated)


def _unavailable(operation: str, attempt: int, reason: str) -> LookupUnavailableError:
    logger.error(
        "lookup_retries_exhausted",
        extra={"operation": operation, "attempts": attempt, "reason": reason},
    )
    return LookupUnavailableError(operation, attempt)


def retry_idempotent(
    fn: Callable[[], T],
    operation: str,
    policy: RetryPolicy | None = None,
    sleep: Callable[[float], None] = time.sleep,
    session: Session | None = None,
) -> T:
    """
    Call ``fn`` until it succeeds, retrying transient database errors.

    Args:
        fn: Zero-argument, side-effect-free callable.
        operation: Name used in logs and in LookupUnavailableError.
        policy: Attempt count and backoff schedule.
        sleep: Injected for tests.
        session: Session whose open transaction ``fn`` reads through.  Each
            attempt is wrapped in ``session.begin_nested()``.

    Raises:
        LookupUnavailableError: All attempts failed with transient errors,
            or the enclosing transaction was lost.
    """
    policy = policy or RetryPolicy()
    attempt = 0
    while True:
        attempt += 1
        try:
            if session is None:
                return fn()
            with session.begin_nested():
                return fn()
        except PendingRollbackError as exc:
            raise _unavailable(operation, attempt, "transaction_lost") from exc
        except DBAPIError as exc:
            if not is_transient(exc):
                raise
            if session is not None and exc.connection_invalidated:
                raise _unavailable(operation, attempt, "connection_invalidated") from exc
            if attempt >= policy.max_attempts:
                raise _unavailable(operation, attempt, "max_attempts") from exc
            delay = policy.delay_for(attempt)
            logger.warning(
                "lookup_retry",
                extra={
                    "operation": operation,
                    "attempt": attempt,
                    "max_attempts": policy.max_attempts,
                    "delay_seconds": delay,
                    "error": str(exc.orig) if exc.orig is not None else str(exc),
                },
            )
            sleep(delay)
