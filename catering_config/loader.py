"""
Configuration Loader (``catering_config.loader``).

Responsibility
--------------
Loads a rates/rules YAML file and parses it into the typed
``catering_config.schema.RatesConfig`` tree.  This is tooling for
``get_active_rules()``; services and engines never read files directly.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  Depends on the schema and the
kernel's value helpers only.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Sections are overlaid on the built-in defaults one level deep; null and
  non-finite values keep the default.
* Retired field names of older rule files are migrated before parsing.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown role or pricing slot names  -> ``ValueError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from catering_config.schema import (
    CostRules,
    DistanceRules,
    LaborRules,
    PricingRules,
    PricingSlot,
    ProfitDistributionRules,
    RatesConfig,
    SafetyLimits,
    StaffingRules,
)

# Field names used by older rule files, per section: old -> new.
LEGACY_FIELD_NAMES: dict[str, dict[str, str]] = {
    "pricing": {
        "private_dinner_base_price": "primary_base_price",
        "buffet_base_price": "secondary_base_price",
    },
    "staffing": {
        "max_guests_per_chef_private": "max_guests_per_chef_primary",
        "max_guests_per_chef_buffet": "max_guests_per_chef_secondary",
    },
    "costs": {
        "food_cost_percent_private": "primary_food_cost_percent",
        "food_cost_percent_buffet": "secondary_food_cost_percent",
    },
    "distance": {
        "free_distance_miles": "free_miles",
    },
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    return data or {}


def migrate_legacy_fields(data: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``data`` with retired field names renamed; new names win."""
    migrated = {k: (dict(v) if isinstance(v, Mapping) else v) for k, v in data.items()}
    for section, renames in LEGACY_FIELD_NAMES.items():
        body = migrated.get(section)
        if not isinstance(body, dict):
            continue
        for old, new in renames.items():
            if old in body:
                value = body.pop(old)
                body.setdefault(new, value)
    return migrated


def _parse_event_types(data: Any, base: Mapping[str, PricingSlot]) -> dict[str, PricingSlot]:
    event_types = dict(base)
    if isinstance(data, Mapping):
        for label, slot in data.items():
            if slot is None:
                continue
            event_types[str(label)] = PricingSlot(slot)
    return event_types


def merge_overrides(config: RatesConfig, overrides: Mapping[str, Any] | None) -> RatesConfig:
    """
    Overlay ``overrides`` on ``config`` one level deep.

    Each top-level key names a section; its keys replace the matching
    fields of that section.  Null and non-finite values are ignored.
    Lists (staffing profiles, owners) replace the whole list.
    """
    if not isinstance(overrides, Mapping) or not overrides:
        return config
    data = migrate_legacy_fields(overrides)
    return replace(
        config,
        pricing=PricingRules.from_dict(data.get("pricing"), base=config.pricing),
        event_types=_parse_event_types(data.get("event_types"), config.event_types),
        staffing=StaffingRules.from_dict(data.get("staffing"), base=config.staffing),
        private_labor=LaborRules.from_dict(data.get("private_labor"), base=config.private_labor),
        buffet_labor=LaborRules.from_dict(data.get("buffet_labor"), base=config.buffet_labor),
        costs=CostRules.from_dict(data.get("costs"), base=config.costs),
        distance=DistanceRules.from_dict(data.get("distance"), base=config.distance),
        profit_distribution=ProfitDistributionRules.from_dict(
            data.get("profit_distribution"), base=config.profit_distribution
        ),
        safety_limits=SafetyLimits.from_dict(data.get("safety_limits"), base=config.safety_limits),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_rates_config(data: Mapping[str, Any], name: str | None = None) -> RatesConfig:
    """Parse a raw rules dict (as loaded from YAML) into a ``RatesConfig``."""
    config = merge_overrides(RatesConfig.with_defaults(), data)
    return replace(
        config,
        name=name or str(data.get("name") or "default"),
        checksum=compute_checksum(dict(data)),
    )


def load_rates_config(path: Path | str) -> RatesConfig:
    """Load and parse a rules YAML file."""
    path = Path(path)
    data = load_yaml_file(path)
    return parse_rates_config(data, name=data.get("name") or path.stem)
