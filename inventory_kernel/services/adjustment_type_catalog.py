"""
AdjustmentTypeCatalog -- adjustment reason codes and inventory action types.

Responsibility:
    Maps adjustment-type ids/names to AdjustmentTypeRef (including the
    inventory action type they classify as), resolves inventory action types
    by name, and answers whether an adjustment type is audit-worthy.

Invariants enforced:
    - Only active adjustment types resolve; an inactive type is reported as
      not found, exactly like a missing one.
    - Lookups are idempotent reads wrapped in bounded retry and cached for
      the lifetime of the catalog.

Failure modes:
    - AdjustmentTypeNotFoundError / ActionTypeNotFoundError.
    - LookupUnavailableError if a read keeps failing transiently.
"""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from inventory_kernel.domain.adjustment_policy import (
    AUDIT_WORTHY_ADJUSTMENT_TYPES,
    is_audit_worthy,
    is_user_selectable,
)
from inventory_kernel.domain.dtos import ActionTypeRef, AdjustmentTypeRef
from inventory_kernel.exceptions import (
    ActionTypeNotFoundError,
    AdjustmentTypeNotFoundError,
)
from inventory_kernel.models.reference import InventoryActionType, LotAdjustmentType
from inventory_kernel.services.base import BaseService
from inventory_kernel.utils.retry import RetryPolicy, retry_idempotent


def _to_ref(row: LotAdjustmentType) -> AdjustmentTypeRef:
    return AdjustmentTypeRef(
        id=row.id,
        name=row.name,
        inventory_action_type_id=row.inventory_action_type_id,
        is_active=row.is_active,
    )


class AdjustmentTypeCatalog(BaseService[LotAdjustmentType]):
    """Cached, retry-wrapped reader of adjustment and action type reference data."""

    def __init__(
        self,
        session: Session,
        retry_policy: RetryPolicy | None = None,
        audit_worthy_types: Iterable[str] = AUDIT_WORTHY_ADJUSTMENT_TYPES,
    ):
        super().__init__(session)
        self._retry_policy = retry_policy or RetryPolicy()
        self._audit_worthy = frozenset(t.strip().lower() for t in audit_worthy_types)
        self._types: dict[UUID | str, AdjustmentTypeRef] = {}
        self._actions: dict[UUID | str, ActionTypeRef] = {}

    def resolve_adjustment_type(self, ref: UUID | str) -> AdjustmentTypeRef:
        """
        Resolve an active adjustment type by id or name.

        Raises:
            AdjustmentTypeNotFoundError: Unknown or inactive type.
        """
        key = ref if isinstance(ref, UUID) else ref.strip().lower()
        cached = self._types.get(key)
        if cached is not None:
            return cached

        column = LotAdjustmentType.id if isinstance(key, UUID) else LotAdjustmentType.name
        row = retry_idempotent(
            lambda: self.session.execute(
                select(LotAdjustmentType).where(
                    column == key, LotAdjustmentType.is_active.is_(True)
                )
            ).scalar_one_or_none(),
            operation="resolve_adjustment_type",
            policy=self._retry_policy,
            session=self.session,
        )
        if row is None:
            raise AdjustmentTypeNotFoundError(str(ref))

        result = _to_ref(row)
        self._types[result.id] = result
        self._types[result.name] = result
        return result

    def resolve_action_type(self, ref: UUID | str) -> ActionTypeRef:
        """
        Resolve an inventory action type by id or name.

        Raises:
            ActionTypeNotFoundError: Unknown type.
        """
        key = ref if isinstance(ref, UUID) else ref.strip().lower()
        cached = self._actions.get(key)
        if cached is not None:
            return cached

        column = InventoryActionType.id if isinstance(key, UUID) else InventoryActionType.name
        row = retry_idempotent(
            lambda: self.session.execute(
                select(InventoryActionType).where(column == key)
            ).scalar_one_or_none(),
            operation="resolve_action_type",
            policy=self._retry_policy,
            session=self.session,
        )
        if row is None:
            raise ActionTypeNotFoundError(str(ref))

        result = ActionTypeRef(id=row.id, name=row.name, category=row.category)
        self._actions[result.id] = result
        self._actions[result.name] = result
        return result

    def is_audit_worthy(self, name: str) -> bool:
        return is_audit_worthy(name, self._audit_worthy)

    def list_selectable_types(self) -> list[AdjustmentTypeRef]:
        """Active adjustment types a user may choose, ordered by name."""
        rows = retry_idempotent(
            lambda: self.session.execute(
                select(LotAdjustmentType)
                .where(LotAdjustmentType.is_active.is_(True))
                .order_by(LotAdjustmentType.name)
            ).scalars().all(),
            operation="list_adjustment_types",
            policy=self._retry_policy,
            session=self.session,
        )
        return [_to_ref(row) for row in rows if is_user_selectable(row.name)]
