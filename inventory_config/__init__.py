"""
inventory_config -- single public entrypoint for inventory configuration.

Responsibility:
    ``get_active_config()`` is the only way runtime code obtains
    configuration.  Shipped defaults live in ``defaults.yaml``; an optional
    YAML file (argument or ``INVENTORY_CONFIG`` environment variable) is
    deep-merged over them.

Architecture position:
    Configuration -- sits above ``inventory_kernel``.  The kernel MUST NEVER
    import from ``inventory_config``; ``bridges`` translates config sections
    into kernel option objects.

Failure modes:
    - ``FileNotFoundError`` -- the override file does not exist.
    - ``ValueError`` -- unknown sections/keys or invalid values.

Audit relevance:
    Every call emits an ``inventory_config_loaded`` log entry with the
    checksum of the merged configuration.
"""

from __future__ import annotations

import os
from pathlib import Path

from inventory_config.loader import load_config
from inventory_config.schema import InventoryConfig
from inventory_kernel.logging_config import get_logger

_logger = get_logger("config")

CONFIG_ENV_VAR = "INVENTORY_CONFIG"


def get_active_config(config_path: Path | str | None = None) -> InventoryConfig:
    """
    The ONLY public configuration entrypoint.

    Args:
        config_path: Override YAML file.  Falls back to $INVENTORY_CONFIG,
            then to the shipped defaults alone.
    """
    path = config_path or os.environ.get(CONFIG_ENV_VAR) or None
    config = load_config(Path(path) if path else None)

    _logger.info(
        "inventory_config_loaded",
        extra={
            "config_path": str(path) if path else None,
            "checksum": config.checksum,
            "missing_adjustment_type_policy": config.adjustments.missing_adjustment_type_policy,
            "adjustment_max_batch_size": config.adjustments.max_batch_size,
            "insert_max_batch_size": config.inserts.max_batch_size,
        },
    )
    return config


__all__ = ["get_active_config", "InventoryConfig"]
