"""
Configuration Loader (``inventory_config.loader``).

Responsibility
--------------
Loads YAML files, deep-merges an override file over the shipped defaults
and parses the result into the frozen dataclasses of
``inventory_config.schema``.  Runtime callers use
``inventory_config.get_active_config()``, not this module.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or invalid values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from inventory_config.schema import (
    ActionTypeDef,
    AdjustmentSettings,
    AdjustmentTypeDef,
    EngineSettings,
    InsertSettings,
    InventoryConfig,
    ReferenceDataSettings,
    RetrySettings,
)

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"

_SECTIONS = ("engine", "retry", "adjustments", "inserts", "reference_data")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return ``base`` with ``override`` merged in; nested mappings merge, everything else replaces."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _build(cls, data: dict[str, Any] | None, section: str):
    data = data or {}
    try:
        return cls(**data)
    except TypeError as exc:
        raise ValueError(f"Invalid keys in '{section}' section: {exc}") from None


def parse_reference_data(data: dict[str, Any] | None) -> ReferenceDataSettings:
    data = data or {}
    statuses = tuple(
        (domain, tuple(names or ()))
        for domain, names in (data.get("statuses") or {}).items()
    )
    return ReferenceDataSettings(
        statuses=statuses,
        action_types=tuple(
            _build(ActionTypeDef, item, "reference_data.action_types")
            for item in data.get("action_types") or ()
        ),
        adjustment_types=tuple(
            _build(AdjustmentTypeDef, item, "reference_data.adjustment_types")
            for item in data.get("adjustment_types") or ()
        ),
    )


def parse_config(data: dict[str, Any]) -> InventoryConfig:
    """Parse a merged configuration dict into an InventoryConfig."""
    unknown = set(data) - set(_SECTIONS)
    if unknown:
        raise ValueError(f"Unknown configuration sections: {sorted(unknown)}")

    adjustments = dict(data.get("adjustments") or {})
    if "audit_worthy_types" in adjustments:
        adjustments["audit_worthy_types"] = tuple(
            str(t).strip().lower() for t in adjustments["audit_worthy_types"] or ()
        )

    return InventoryConfig(
        engine=_build(EngineSettings, data.get("engine"), "engine"),
        retry=_build(RetrySettings, data.get("retry"), "retry"),
        adjustments=_build(AdjustmentSettings, adjustments, "adjustments"),
        inserts=_build(InsertSettings, data.get("inserts"), "inserts"),
        reference_data=parse_reference_data(data.get("reference_data")),
        checksum=compute_checksum(data),
    )


def load_config(config_path: Path | None = None) -> InventoryConfig:
    """Load defaults, merge ``config_path`` over them if given, and parse."""
    data = load_yaml_file(DEFAULTS_PATH)
    if config_path is not None:
        data = deep_merge(data, load_yaml_file(config_path))
    return parse_config(data)


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 checksum of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
