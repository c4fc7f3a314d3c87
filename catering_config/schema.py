"""
RatesConfig schema.

The business rules that drive pricing, staffing, labor pay, costs and
profit distribution, as a tree of frozen dataclasses.  YAML files are
parsed into these types by the loader; ``get_active_rules`` returns the
root ``RatesConfig``.

Every section offers ``with_defaults()`` (the built-in values) and
``from_dict(data, base=None)``, which overlays ``data`` on ``base``.  Keys
whose value is missing, null or a non-finite number keep the base value.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping

from catering_kernel.domain.staff import SlotRole, parse_slot_role
from catering_kernel.domain.values import finite_or, to_decimal


class PricingSlot(str, Enum):
    """Which base-rate table applies to an event type."""
    PRIMARY = "primary"
    SECONDARY = "secondary"


ANY_EVENT_TYPE = "any"


def clean_section(data: Mapping[str, Any] | None) -> dict[str, Any]:
    """Drop null and non-finite numeric values so defaults stay in force."""
    if not isinstance(data, Mapping):
        return {}
    clean: dict[str, Any] = {}
    for key, value in data.items():
        if value is None:
            continue
        if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
            if finite_or(value, None) is None:
                continue
        clean[key] = value
    return clean


def _dec(value: Any) -> Decimal:
    return to_decimal(value)


def _opt_dec(value: Any) -> Decimal | None:
    return None if value is None else to_decimal(value)


def _overlay(base: Any, data: Mapping[str, Any] | None, converters: Mapping[str, Any]) -> Any:
    """Return ``base`` with every clean key of ``data`` converted and applied."""
    updates = {}
    names = {f.name for f in fields(base)}
    for key, value in clean_section(data).items():
        if key not in names:
            continue
        convert = converters.get(key)
        updates[key] = convert(value) if convert else value
    return replace(base, **updates) if updates else base


# ---------------------------------------------------------------------------
# Pricing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PricingRules:
    primary_base_price: Decimal = Decimal("60")
    secondary_base_price: Decimal = Decimal("32")
    child_discount_percent: Decimal = Decimal("50")
    default_gratuity_percent: Decimal = Decimal("20")
    default_deposit_percent: Decimal = Decimal("30")
    premium_add_on_min: Decimal = Decimal("5")
    premium_add_on_max: Decimal = Decimal("20")

    @classmethod
    def with_defaults(cls) -> "PricingRules":
        return cls()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None, base: "PricingRules | None" = None) -> "PricingRules":
        base = base or cls.with_defaults()
        return _overlay(base, data, {f.name: _dec for f in fields(cls)})

    def base_price(self, slot: PricingSlot) -> Decimal:
        if slot is PricingSlot.PRIMARY:
            return self.primary_base_price
        return self.secondary_base_price


# ---------------------------------------------------------------------------
# Staffing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StaffingProfile:
    """A guest-count band with an explicit, ordered role list."""
    id: str
    name: str
    event_type: str
    min_guests: int
    max_guests: int
    roles: tuple[SlotRole, ...]

    def matches(self, event_type: str, guest_count: int) -> bool:
        if self.event_type != ANY_EVENT_TYPE and self.event_type != event_type:
            return False
        return self.min_guests <= guest_count <= self.max_guests

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StaffingProfile":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", data["id"])),
            event_type=str(data.get("event_type", ANY_EVENT_TYPE)),
            min_guests=int(data.get("min_guests", 0)),
            max_guests=int(data["max_guests"]),
            roles=tuple(parse_slot_role(r) for r in data.get("roles") or ()),
        )


@dataclass(frozen=True)
class StaffingRules:
    max_guests_per_chef_primary: int = 15
    max_guests_per_chef_secondary: int = 25
    assistant_required: bool = True
    profiles: tuple[StaffingProfile, ...] = ()

    @classmethod
    def with_defaults(cls) -> "StaffingRules":
        return cls()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None, base: "StaffingRules | None" = None) -> "StaffingRules":
        base = base or cls.with_defaults()
        result = _overlay(
            base,
            data,
            {
                "max_guests_per_chef_primary": int,
                "max_guests_per_chef_secondary": int,
                "assistant_required": bool,
                "profiles": lambda items: base.profiles,
            },
        )
        profiles = (data or {}).get("profiles")
        if isinstance(profiles, list):
            result = replace(result, profiles=tuple(StaffingProfile.from_dict(p) for p in profiles))
        return result

    def find_profile(self, profile_id: str) -> StaffingProfile | None:
        for profile in self.profiles:
            if profile.id == profile_id:
                return profile
        return None


# ---------------------------------------------------------------------------
# Labor
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RolePay:
    """Base pay % of subtotal and optional cap % of subtotal + gratuity."""
    base_percent: Decimal
    cap_percent: Decimal | None = None


@dataclass(frozen=True)
class LaborRules:
    roles: Mapping[SlotRole, RolePay] = field(default_factory=dict)
    chef_gratuity_split_percent: Decimal = Decimal("100")
    assistant_gratuity_split_percent: Decimal = Decimal("0")

    def pay_for(self, role: SlotRole) -> RolePay:
        return self.roles.get(role, RolePay(Decimal("0")))

    @classmethod
    def private_defaults(cls) -> "LaborRules":
        return cls(
            roles={
                SlotRole.LEAD: RolePay(Decimal("15")),
                SlotRole.FULL: RolePay(Decimal("10")),
                SlotRole.ASSISTANT: RolePay(Decimal("8")),
            },
            chef_gratuity_split_percent=Decimal("55"),
            assistant_gratuity_split_percent=Decimal("45"),
        )

    @classmethod
    def buffet_defaults(cls) -> "LaborRules":
        return cls(
            roles={SlotRole.BUFFET: RolePay(Decimal("12"))},
            chef_gratuity_split_percent=Decimal("100"),
            assistant_gratuity_split_percent=Decimal("0"),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None, base: "LaborRules") -> "LaborRules":
        clean = clean_section(data)
        roles = dict(base.roles)
        for key, value in clean_section(clean.get("roles")).items():
            role = parse_slot_role(key)
            current = roles.get(role, RolePay(Decimal("0")))
            pay = value if isinstance(value, Mapping) else {}
            cap = pay["cap_percent"] if "cap_percent" in pay else current.cap_percent
            roles[role] = RolePay(
                base_percent=finite_or(pay.get("base_percent"), current.base_percent),
                cap_percent=finite_or(cap, None),
            )
        return cls(
            roles=roles,
            chef_gratuity_split_percent=finite_or(
                clean.get("chef_gratuity_split_percent"), base.chef_gratuity_split_percent
            ),
            assistant_gratuity_split_percent=finite_or(
                clean.get("assistant_gratuity_split_percent"), base.assistant_gratuity_split_percent
            ),
        )


# ---------------------------------------------------------------------------
# Costs / distance / profit
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CostRules:
    primary_food_cost_percent: Decimal = Decimal("18")
    secondary_food_cost_percent: Decimal = Decimal("20")
    supplies_cost_percent: Decimal = Decimal("7")
    transportation_stipend: Decimal = Decimal("50")

    @classmethod
    def with_defaults(cls) -> "CostRules":
        return cls()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None, base: "CostRules | None" = None) -> "CostRules":
        base = base or cls.with_defaults()
        return _overlay(base, data, {f.name: _dec for f in fields(cls)})

    def food_cost_percent(self, slot: PricingSlot) -> Decimal:
        if slot is PricingSlot.PRIMARY:
            return self.primary_food_cost_percent
        return self.secondary_food_cost_percent


@dataclass(frozen=True)
class DistanceRules:
    free_miles: Decimal = Decimal("20")
    per_mile_rate: Decimal = Decimal("5")

    @classmethod
    def with_defaults(cls) -> "DistanceRules":
        return cls()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None, base: "DistanceRules | None" = None) -> "DistanceRules":
        base = base or cls.with_defaults()
        return _overlay(base, data, {f.name: _dec for f in fields(cls)})


@dataclass(frozen=True)
class Owner:
    id: str
    name: str
    equity_percent: Decimal


@dataclass(frozen=True)
class ProfitDistributionRules:
    business_retained_percent: Decimal = Decimal("30")
    owner_distribution_percent: Decimal = Decimal("70")
    owners: tuple[Owner, ...] = (
        Owner("owner-a", "Owner A", Decimal("40")),
        Owner("owner-b", "Owner B", Decimal("60")),
    )

    @classmethod
    def with_defaults(cls) -> "ProfitDistributionRules":
        return cls()

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any] | None,
        base: "ProfitDistributionRules | None" = None,
    ) -> "ProfitDistributionRules":
        base = base or cls.with_defaults()
        result = _overlay(
            base,
            data,
            {
                "business_retained_percent": _dec,
                "owner_distribution_percent": _dec,
                "owners": lambda items: base.owners,
            },
        )
        owners = (data or {}).get("owners")
        if isinstance(owners, list) and owners:
            result = replace(
                result,
                owners=tuple(
                    Owner(str(o["id"]), str(o.get("name", o["id"])), to_decimal(o["equity_percent"]))
                    for o in owners
                ),
            )
        return result


@dataclass(frozen=True)
class SafetyLimits:
    max_total_labor_percent: Decimal = Decimal("30")
    max_food_cost_percent: Decimal = Decimal("30")
    warn_when_exceeded: bool = True

    @classmethod
    def with_defaults(cls) -> "SafetyLimits":
        return cls()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None, base: "SafetyLimits | None" = None) -> "SafetyLimits":
        base = base or cls.with_defaults()
        return _overlay(
            base,
            data,
            {
                "max_total_labor_percent": _dec,
                "max_food_cost_percent": _dec,
                "warn_when_exceeded": bool,
            },
        )


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------

DEFAULT_EVENT_TYPES: dict[str, PricingSlot] = {
    "private-dinner": PricingSlot.PRIMARY,
    "buffet": PricingSlot.SECONDARY,
}


@dataclass(frozen=True)
class RatesConfig:
    """Root of the business rules tree."""
    pricing: PricingRules = field(default_factory=PricingRules.with_defaults)
    event_types: Mapping[str, PricingSlot] = field(default_factory=lambda: dict(DEFAULT_EVENT_TYPES))
    staffing: StaffingRules = field(default_factory=StaffingRules.with_defaults)
    private_labor: LaborRules = field(default_factory=LaborRules.private_defaults)
    buffet_labor: LaborRules = field(default_factory=LaborRules.buffet_defaults)
    costs: CostRules = field(default_factory=CostRules.with_defaults)
    distance: DistanceRules = field(default_factory=DistanceRules.with_defaults)
    profit_distribution: ProfitDistributionRules = field(
        default_factory=ProfitDistributionRules.with_defaults
    )
    safety_limits: SafetyLimits = field(default_factory=SafetyLimits.with_defaults)
    name: str = "default"
    checksum: str = ""

    @classmethod
    def with_defaults(cls) -> "RatesConfig":
        return cls()

    def pricing_slot(self, event_type: str) -> PricingSlot:
        """Unknown event-type labels use the secondary rate table."""
        return self.event_types.get(event_type, PricingSlot.SECONDARY)

    def labor_rules(self, slot: PricingSlot) -> LaborRules:
        if slot is PricingSlot.PRIMARY:
            return self.private_labor
        return self.buffet_labor

    def max_guests_per_chef(self, slot: PricingSlot) -> int:
        if slot is PricingSlot.PRIMARY:
            return self.staffing.max_guests_per_chef_primary
        return self.staffing.max_guests_per_chef_secondary
