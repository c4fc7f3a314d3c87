"""
Configuration Validator (``catering_config.validator``).

Responsibility
--------------
Checks a ``RatesConfig`` for structural consistency before it is handed to
the engines.  Business values themselves (what a chef should earn) are
not judged; only whether the numbers can be used together.

Architecture position
---------------------
**Config layer** -- validation.  Called by ``get_active_rules()`` after
loading.  No dependency on engines or services.

Invariants enforced
-------------------
* Every percentage is finite and within 0-100.
* Prices, rates and stipends are finite and non-negative.
* Staffing profile ids are unique, guest ranges ordered, role lists
  non-empty.
* Owner equity sums to 100; retained + distribution sums to 100.

Failure modes
-------------
* Errors (``RatesValidationResult.errors``)  -> the configuration MUST NOT
  be used; ``raise_if_invalid`` raises ``InvalidRatesConfigError``.
* Warnings  -> usable but should be reviewed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from catering_config.schema import LaborRules, RatesConfig
from catering_kernel.domain.staff import SlotRole
from catering_kernel.domain.values import HUNDRED, ZERO, finite_or
from catering_kernel.exceptions import InvalidRatesConfigError

_TOLERANCE = Decimal("0.01")


@dataclass
class RatesValidationResult:
    """
    Result of configuration validation.

    ``is_valid`` is ``True`` only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def raise_if_invalid(self) -> None:
        if self.errors:
            raise InvalidRatesConfigError(self.errors)


def _check_percent(result: RatesValidationResult, path: str, value: Any) -> None:
    d = finite_or(value, None)
    if d is None:
        result.errors.append(f"{path}: must be a finite number, got {value!r}")
    elif d < ZERO or d > HUNDRED:
        result.errors.append(f"{path}: percentage {d} outside 0-100")


def _check_amount(result: RatesValidationResult, path: str, value: Any) -> None:
    d = finite_or(value, None)
    if d is None:
        result.errors.append(f"{path}: must be a finite number, got {value!r}")
    elif d < ZERO:
        result.errors.append(f"{path}: must not be negative, got {d}")


def _check_labor(result: RatesValidationResult, path: str, labor: LaborRules) -> None:
    for role, pay in labor.roles.items():
        _check_percent(result, f"{path}.roles.{role.value}.base_percent", pay.base_percent)
        if pay.cap_percent is not None:
            _check_percent(result, f"{path}.roles.{role.value}.cap_percent", pay.cap_percent)
    _check_percent(result, f"{path}.chef_gratuity_split_percent", labor.chef_gratuity_split_percent)
    _check_percent(
        result, f"{path}.assistant_gratuity_split_percent", labor.assistant_gratuity_split_percent
    )
    split = labor.chef_gratuity_split_percent + labor.assistant_gratuity_split_percent
    if split > HUNDRED + _TOLERANCE:
        result.warnings.append(f"{path}: gratuity splits sum to {split}%, more than the pool")


def validate_rates_config(config: RatesConfig) -> RatesValidationResult:
    """Collect every structural problem in ``config``."""
    result = RatesValidationResult()

    p = config.pricing
    for name in ("primary_base_price", "secondary_base_price", "premium_add_on_min", "premium_add_on_max"):
        _check_amount(result, f"pricing.{name}", getattr(p, name))
    for name in ("child_discount_percent", "default_gratuity_percent", "default_deposit_percent"):
        _check_percent(result, f"pricing.{name}", getattr(p, name))
    if p.premium_add_on_min > p.premium_add_on_max:
        result.errors.append("pricing: premium_add_on_min exceeds premium_add_on_max")

    s = config.staffing
    if s.max_guests_per_chef_primary < 1 or s.max_guests_per_chef_secondary < 1:
        result.errors.append("staffing: max guests per chef must be at least 1")
    seen_ids: set[str] = set()
    for profile in s.profiles:
        where = f"staffing.profiles[{profile.id}]"
        if profile.id in seen_ids:
            result.errors.append(f"{where}: duplicate profile id")
        seen_ids.add(profile.id)
        if profile.min_guests < 0 or profile.min_guests > profile.max_guests:
            result.errors.append(
                f"{where}: guest range {profile.min_guests}-{profile.max_guests} is not ordered"
            )
        if not profile.roles:
            result.errors.append(f"{where}: role list is empty")
        elif not any(role.is_chef for role in profile.roles):
            result.warnings.append(f"{where}: no chef role")
        for role in profile.roles:
            if not isinstance(role, SlotRole):
                result.errors.append(f"{where}: unknown role {role!r}")

    _check_labor(result, "private_labor", config.private_labor)
    _check_labor(result, "buffet_labor", config.buffet_labor)

    c = config.costs
    for name in ("primary_food_cost_percent", "secondary_food_cost_percent", "supplies_cost_percent"):
        _check_percent(result, f"costs.{name}", getattr(c, name))
    _check_amount(result, "costs.transportation_stipend", c.transportation_stipend)

    _check_amount(result, "distance.free_miles", config.distance.free_miles)
    _check_amount(result, "distance.per_mile_rate", config.distance.per_mile_rate)

    pd = config.profit_distribution
    _check_percent(result, "profit_distribution.business_retained_percent", pd.business_retained_percent)
    _check_percent(result, "profit_distribution.owner_distribution_percent", pd.owner_distribution_percent)
    if abs(pd.business_retained_percent + pd.owner_distribution_percent - HUNDRED) > _TOLERANCE:
        result.errors.append("profit_distribution: retained + distribution must sum to 100")
    if pd.owners:
        equity = sum((o.equity_percent for o in pd.owners), ZERO)
        if abs(equity - HUNDRED) > _TOLERANCE:
            result.errors.append(f"profit_distribution.owners: equity sums to {equity}, not 100")
    else:
        result.errors.append("profit_distribution.owners: at least one owner is required")

    sl = config.safety_limits
    _check_percent(result, "safety_limits.max_total_labor_percent", sl.max_total_labor_percent)
    _check_percent(result, "safety_limits.max_food_cost_percent", sl.max_food_cost_percent)

    return result
