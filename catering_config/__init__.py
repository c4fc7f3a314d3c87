"""
catering_config -- single public entrypoint for the rates/rules configuration.

Responsibility:
    Provides the ONLY way to obtain business rules at runtime through
    ``get_active_rules()``.  Returns a frozen ``RatesConfig``; YAML loading
    and validation are internal tooling.

Architecture position:
    Configuration -- sits above ``catering_kernel`` and below
    ``catering_engines`` / ``catering_services``.  The kernel MUST NEVER
    import from ``catering_config``.

Invariants enforced:
    - Single entrypoint: all runtime rules flow through ``get_active_rules()``.
    - Structural validation runs before a configuration is returned.
    - Deterministic: the same YAML always produces the same checksum.

Failure modes:
    - ``FileNotFoundError`` -- the requested rules file does not exist.
    - ``InvalidRatesConfigError`` -- structural validation failed.

Audit relevance:
    Every successful ``get_active_rules()`` call emits a
    ``CATERING_CONFIG_TRACE`` log entry with the name and checksum of the
    rules in force.
"""

from __future__ import annotations

import logging
from pathlib import Path

from catering_config.loader import load_rates_config, merge_overrides
from catering_config.schema import PricingSlot, RatesConfig
from catering_config.validator import RatesValidationResult, validate_rates_config

_logger = logging.getLogger("catering_kernel.config")

DEFAULT_RULES_PATH = Path(__file__).parent / "sets" / "default.yaml"

__all__ = [
    "DEFAULT_RULES_PATH",
    "PricingSlot",
    "RatesConfig",
    "RatesValidationResult",
    "get_active_rules",
    "merge_overrides",
    "validate_rates_config",
]


def get_active_rules(config_path: Path | str | None = None) -> RatesConfig:
    """
    Load, validate and return the rules in force.

    Args:
        config_path: Rules YAML file.  Defaults to the bundled
            ``sets/default.yaml``.

    Raises:
        FileNotFoundError: If the rules file does not exist.
        InvalidRatesConfigError: If the rules are structurally inconsistent.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_RULES_PATH
    config = load_rates_config(path)

    validation = validate_rates_config(config)
    validation.raise_if_invalid()
    for warning in validation.warnings:
        _logger.warning("rates_config_warning", extra={"warning": warning})

    _logger.info(
        "CATERING_CONFIG_TRACE",
        extra={
            "trace_type": "CATERING_CONFIG_TRACE",
            "config_name": config.name,
            "checksum": config.checksum,
            "source_path": str(path),
            "profile_count": len(config.staffing.profiles),
            "event_type_count": len(config.event_types),
        },
    )
    return config
