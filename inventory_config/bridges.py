"""
Config -> Kernel Bridges.

Convert InventoryConfig sections into the option objects the kernel
services accept.  These live here because inventory_kernel must never
import inventory_config.

Usage:
    config = get_active_config()
    service = LotInventoryService(session, **build_service_options(config))
"""

from __future__ import annotations

from typing import Any

from inventory_config.schema import InventoryConfig
from inventory_kernel.domain.adjustment_policy import AUDIT_WORTHY_ADJUSTMENT_TYPES
from inventory_kernel.domain.values import MissingAdjustmentTypePolicy
from inventory_kernel.services.adjustment_engine import AdjustmentEngineOptions
from inventory_kernel.services.lot_insert_service import LotInsertOptions
from inventory_kernel.services.reference_data_loader import (
    ActionTypeSeed,
    AdjustmentTypeSeed,
)
from inventory_kernel.utils.retry import RetryPolicy


def build_retry_policy(config: InventoryConfig) -> RetryPolicy:
    return RetryPolicy(
        max_attempts=config.retry.max_attempts,
        initial_delay_seconds=config.retry.initial_delay_seconds,
        backoff_factor=config.retry.backoff_factor,
    )


def build_adjustment_options(config: InventoryConfig) -> AdjustmentEngineOptions:
    adjustments = config.adjustments
    return AdjustmentEngineOptions(
        missing_type_policy=MissingAdjustmentTypePolicy(
            adjustments.missing_adjustment_type_policy
        ),
        max_batch_size=adjustments.max_batch_size,
        audit_worthy_types=(
            frozenset(adjustments.audit_worthy_types)
            if adjustments.audit_worthy_types
            else AUDIT_WORTHY_ADJUSTMENT_TYPES
        ),
    )


def build_service_options(config: InventoryConfig) -> dict[str, Any]:
    """Keyword arguments for LotInventoryService (everything except session/clock)."""
    return {
        "adjustment_options": build_adjustment_options(config),
        "insert_options": LotInsertOptions(max_batch_size=config.inserts.max_batch_size),
        "retry_policy": build_retry_policy(config),
    }


def build_engine_kwargs(config: InventoryConfig) -> dict[str, Any]:
    """Keyword arguments for inventory_kernel.db.engine.init_engine_from_url."""
    engine = config.engine
    return {
        "pool_size": engine.pool_size,
        "max_overflow": engine.max_overflow,
        "pool_timeout": engine.pool_timeout,
        "pool_recycle": engine.pool_recycle,
        "statement_timeout_ms": engine.statement_timeout_ms,
        "lock_timeout_ms": engine.lock_timeout_ms,
    }


def build_reference_seeds(
    config: InventoryConfig,
) -> tuple[dict[str, tuple[str, ...]], list[ActionTypeSeed], list[AdjustmentTypeSeed]]:
    """Arguments for ReferenceDataLoader.seed()."""
    reference = config.reference_data
    return (
        dict(reference.statuses),
        [
            ActionTypeSeed(name=a.name, category=a.category)
            for a in reference.action_types
        ],
        [
            AdjustmentTypeSeed(name=a.name, action_type=a.action_type, is_active=a.is_active)
            for a in reference.adjustment_types
        ],
    )
