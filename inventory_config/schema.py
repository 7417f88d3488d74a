"""
InventoryConfig schema.

Frozen dataclasses produced by the loader from YAML.  Each section
validates itself in ``__post_init__`` and raises ValueError on bad values,
so an invalid file never yields a config object.
"""

from __future__ import annotations

from dataclasses import dataclass, field

VALID_MISSING_TYPE_POLICIES = frozenset({"skip", "fail"})


@dataclass(frozen=True)
class EngineSettings:
    """Database engine / pool settings."""

    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800
    statement_timeout_ms: int | None = 30000
    lock_timeout_ms: int | None = 10000

    def __post_init__(self) -> None:
        if self.pool_size < 1:
            raise ValueError(f"pool_size must be >= 1, got {self.pool_size}")
        if self.max_overflow < 0:
            raise ValueError(f"max_overflow must be >= 0, got {self.max_overflow}")
        for name in ("statement_timeout_ms", "lock_timeout_ms"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")


@dataclass(frozen=True)
class RetrySettings:
    max_attempts: int = 3
    initial_delay_seconds: float = 1.0
    backoff_factor: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.initial_delay_seconds < 0:
            raise ValueError("initial_delay_seconds must be >= 0")
        if self.backoff_factor < 1:
            raise ValueError("backoff_factor must be >= 1")


@dataclass(frozen=True)
class AdjustmentSettings:
    missing_adjustment_type_policy: str = "skip"
    max_batch_size: int = 100
    audit_worthy_types: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.missing_adjustment_type_policy not in VALID_MISSING_TYPE_POLICIES:
            raise ValueError(
                f"Invalid missing_adjustment_type_policy "
                f"'{self.missing_adjustment_type_policy}'. "
                f"Must be one of {sorted(VALID_MISSING_TYPE_POLICIES)}"
            )
        if self.max_batch_size < 1:
            raise ValueError(f"max_batch_size must be >= 1, got {self.max_batch_size}")


@dataclass(frozen=True)
class InsertSettings:
    max_batch_size: int = 20

    def __post_init__(self) -> None:
        if self.max_batch_size < 1:
            raise ValueError(f"max_batch_size must be >= 1, got {self.max_batch_size}")


@dataclass(frozen=True)
class ActionTypeDef:
    name: str
    category: str


@dataclass(frozen=True)
class AdjustmentTypeDef:
    name: str
    action_type: str
    is_active: bool = True


@dataclass(frozen=True)
class ReferenceDataSettings:
    statuses: tuple[tuple[str, tuple[str, ...]], ...] = ()
    action_types: tuple[ActionTypeDef, ...] = ()
    adjustment_types: tuple[AdjustmentTypeDef, ...] = ()

    def __post_init__(self) -> None:
        action_names = {a.name for a in self.action_types}
        for adjustment in self.adjustment_types:
            if adjustment.action_type not in action_names:
                raise ValueError(
                    f"Adjustment type '{adjustment.name}' references unknown "
                    f"action type '{adjustment.action_type}'"
                )


@dataclass(frozen=True)
class InventoryConfig:
    """The complete, validated configuration."""

    engine: EngineSettings = field(default_factory=EngineSettings)
    retry: RetrySettings = field(default_factory=RetrySettings)
    adjustments: AdjustmentSettings = field(default_factory=AdjustmentSettings)
    inserts: InsertSettings = field(default_factory=InsertSettings)
    reference_data: ReferenceDataSettings = field(default_factory=ReferenceDataSettings)
    checksum: str = ""
