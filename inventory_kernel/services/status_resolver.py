"""
StatusResolver -- status name/id to StatusRef, cached per domain.

Responsibility:
    Resolves human-readable status names (in_stock, out_of_stock, expired,
    shipped, sold_out; active, inactive) to stable ids and back.  Every
    lookup is an idempotent read wrapped in bounded retry, because the
    resolver runs inside hot adjustment transactions.

Failure modes:
    - StatusNotFoundError if the name/id does not exist in the domain.
    - LookupUnavailableError if the read keeps failing transiently.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from inventory_kernel.domain.dtos import StatusRef
from inventory_kernel.exceptions import StatusNotFoundError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.status import STOCK_STATUS_DOMAIN, Status
from inventory_kernel.services.base import BaseService
from inventory_kernel.utils.retry import RetryPolicy, retry_idempotent

logger = get_logger("services.status_resolver")


class StatusResolver(BaseService[Status]):
    """
    Read-through cache over the ``statuses`` table.

    Guarantees:
        - A resolved status is cached by (domain, name) and by id for the
          lifetime of the resolver (one per service instance / batch).
        - Misses are never cached.
    """

    def __init__(self, session: Session, retry_policy: RetryPolicy | None = None):
        super().__init__(session)
        self._retry_policy = retry_policy or RetryPolicy()
        self._by_name: dict[tuple[str, str], StatusRef] = {}
        self._by_id: dict[UUID, StatusRef] = {}

    def resolve(
        self,
        name: str | None = None,
        status_id: UUID | None = None,
        domain: str = STOCK_STATUS_DOMAIN,
    ) -> StatusRef:
        """
        Resolve a status by name or id (exactly one must be given).

        Raises:
            ValueError: Neither or both of name / status_id given.
            StatusNotFoundError: Status does not exist.
        """
        if (name is None) == (status_id is None):
            raise ValueError("resolve() needs exactly one of name or status_id")

        if status_id is not None:
            cached = self._by_id.get(status_id)
            if cached is not None:
                return cached
            row = retry_idempotent(
                lambda: self.session.get(Status, status_id),
                operation="resolve_status",
                policy=self._retry_policy,
                session=self.session,
            )
            if row is None:
                raise StatusNotFoundError(domain, str(status_id))
            return self._remember(row)

        key = (domain, name.strip().lower())
        cached = self._by_name.get(key)
        if cached is not None:
            return cached
        row = retry_idempotent(
            lambda: self.session.execute(
                select(Status).where(Status.domain == key[0], Status.name == key[1])
            ).scalar_one_or_none(),
            operation="resolve_status",
            policy=self._retry_policy,
            session=self.session,
        )
        if row is None:
            raise StatusNotFoundError(domain, name)
        return self._remember(row)

    def preload(self, domain: str = STOCK_STATUS_DOMAIN) -> int:
        """Load every status of ``domain`` into the cache; returns the count."""
        rows = retry_idempotent(
            lambda: self.session.execute(
                select(Status).where(Status.domain == domain)
            ).scalars().all(),
            operation="preload_statuses",
            policy=self._retry_policy,
            session=self.session,
        )
        for row in rows:
            self._remember(row)
        logger.debug("statuses_preloaded", extra={"domain": domain, "count": len(rows)})
        return len(rows)

    def _remember(self, row: Status) -> StatusRef:
        ref = StatusRef(id=row.id, domain=row.domain, name=row.name)
        self._by_name[(ref.domain, ref.name)] = ref
        self._by_id[ref.id] = ref
        return ref
