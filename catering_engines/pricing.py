"""
Module: catering_engines.pricing
Responsibility:
    Price a catering event from guest counts and the configured rates:
    per-guest prices, subtotal, discount, gratuity, distance fee, total
    and the food/supplies/transportation cost estimates.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import catering_kernel/domain and catering_config/schema.

Invariants enforced:
    - Purity: no clock access, no I/O.
    - Decimal-only arithmetic; every currency output is rounded to cents.
    - A discount reduces the subtotal only.  Gratuity is computed on the
      undiscounted subtotal and the distance fee on distance alone, so
      ``total = (subtotal - discount) + gratuity + distance_fee``.
    - A discount never takes the subtotal below zero.

Failure modes:
    - ValueError for negative guest counts.

Usage:
    from catering_engines.pricing import PricingInput, price_event

    breakdown = price_event(
        pricing_input=PricingInput(adults=20, children=0, event_type="private-dinner"),
        config=rules,
    )
    breakdown.total  # Decimal("1680.00") with a $70 adult rate and 20% gratuity
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from catering_config.schema import PricingSlot, RatesConfig
from catering_kernel.domain.booking import Discount, DiscountType
from catering_kernel.domain.values import (
    HUNDRED,
    ZERO,
    finite_or,
    non_negative,
    percent_of,
    round_money,
)
from catering_kernel.logging_config import get_logger
from catering_engines.tracer import traced_engine

logger = get_logger("engines.pricing")


@dataclass(frozen=True)
class PricingInput:
    """
    Raw event parameters to price.

    ``subtotal_override`` / ``food_cost_override`` come from a menu pricing
    snapshot; only finite, non-negative values take effect.
    ``pricing_slot`` forces a rate table; when None it is looked up from
    the event type.
    """

    adults: int
    children: int
    event_type: str
    event_date: date | None = None
    distance_miles: Decimal = ZERO
    premium_add_on: Decimal = ZERO
    discount: Discount | None = None
    subtotal_override: Decimal | None = None
    food_cost_override: Decimal | None = None
    pricing_slot: PricingSlot | None = None

    @property
    def guest_count(self) -> int:
        return self.adults + self.children


@dataclass(frozen=True)
class PriceBreakdown:
    """Revenue and cost estimates for one event."""

    guest_count: int
    adult_count: int
    child_count: int
    pricing_slot: PricingSlot
    adult_price: Decimal
    child_price: Decimal
    premium_add_on: Decimal
    subtotal: Decimal
    subtotal_overridden: bool
    discount_amount: Decimal
    discounted_subtotal: Decimal
    gratuity_percent: Decimal
    gratuity: Decimal
    chargeable_miles: Decimal
    distance_fee: Decimal
    total: Decimal
    food_cost: Decimal
    food_cost_percent: Decimal
    supplies_cost: Decimal
    transportation_cost: Decimal

    @property
    def revenue(self) -> Decimal:
        """Pre-labor revenue: undiscounted subtotal plus gratuity."""
        return self.subtotal + self.gratuity

    @property
    def total_costs(self) -> Decimal:
        return self.food_cost + self.supplies_cost + self.transportation_cost


def resolve_pricing_slot(event_type: str, config: RatesConfig, forced: PricingSlot | None = None) -> PricingSlot:
    """The rate table for an event type; ``forced`` wins when given."""
    if forced is not None:
        return forced
    return config.pricing_slot(event_type)


def child_price_for(adult_price: Decimal, child_discount_percent: Decimal) -> Decimal:
    """Child price = adult price x (1 - childDiscountPercent / 100)."""
    return adult_price * (1 - child_discount_percent / HUNDRED)


def discount_amount_for(subtotal: Decimal, discount: Discount | None) -> Decimal:
    """
    Cents-rounded discount against ``subtotal``.

    Non-positive or non-finite discount values are ignored; a flat discount
    larger than the subtotal is clamped to it.
    """
    if discount is None:
        return ZERO
    value = finite_or(discount.value, None)
    if value is None or value <= 0:
        return ZERO
    if discount.type is DiscountType.PERCENT:
        amount = round_money(percent_of(subtotal, min(value, HUNDRED)))
    else:
        amount = round_money(value)
    return min(amount, subtotal)


def distance_fee_for(distance_miles: Decimal, config: RatesConfig) -> tuple[Decimal, Decimal]:
    """Return ``(chargeable_miles, fee)`` with chargeable = max(0, distance - free)."""
    distance = non_negative(distance_miles)
    chargeable = max(ZERO, distance - config.distance.free_miles)
    return chargeable, round_money(chargeable * config.distance.per_mile_rate)


@traced_engine("pricing", "1.0", fingerprint_fields=("pricing_input",))
def price_event(*, pricing_input: PricingInput, config: RatesConfig) -> PriceBreakdown:
    """
    Price one event.

    Preconditions:
        - ``adults`` and ``children`` are non-negative.
    Postconditions:
        - Every Decimal output except percentages is rounded to cents.
        - ``total == discounted_subtotal + gratuity + distance_fee``.
    Raises:
        ValueError: if a guest count is negative.
    """
    if pricing_input.adults < 0 or pricing_input.children < 0:
        raise ValueError(
            f"Guest counts must be non-negative: adults={pricing_input.adults}, "
            f"children={pricing_input.children}"
        )

    slot = resolve_pricing_slot(pricing_input.event_type, config, pricing_input.pricing_slot)
    pricing = config.pricing
    adult_price = pricing.base_price(slot)
    child_price = child_price_for(adult_price, pricing.child_discount_percent)
    premium = non_negative(pricing_input.premium_add_on)
    guests = pricing_input.guest_count

    computed_subtotal = (
        pricing_input.adults * adult_price
        + pricing_input.children * child_price
        + guests * premium
    )
    override = finite_or(pricing_input.subtotal_override, None)
    overridden = override is not None and override >= 0
    subtotal = round_money(override if overridden else computed_subtotal)

    discount_amount = discount_amount_for(subtotal, pricing_input.discount)
    discounted_subtotal = subtotal - discount_amount

    gratuity_percent = pricing.default_gratuity_percent
    gratuity = round_money(percent_of(subtotal, gratuity_percent))
    chargeable_miles, distance_fee = distance_fee_for(pricing_input.distance_miles, config)
    total = round_money(discounted_subtotal + gratuity + distance_fee)

    food_override = finite_or(pricing_input.food_cost_override, None)
    if food_override is not None and food_override >= 0:
        food_cost = round_money(food_override)
    else:
        food_cost = round_money(percent_of(subtotal, config.costs.food_cost_percent(slot)))
    food_cost_percent = (food_cost / subtotal * HUNDRED) if subtotal > 0 else ZERO
    supplies_cost = round_money(percent_of(subtotal, config.costs.supplies_cost_percent))
    transportation_cost = round_money(config.costs.transportation_stipend)

    if overridden:
        logger.debug(
            "pricing_subtotal_overridden",
            extra={"computed_subtotal": round_money(computed_subtotal), "override": subtotal},
        )

    return PriceBreakdown(
        guest_count=guests,
        adult_count=pricing_input.adults,
        child_count=pricing_input.children,
        pricing_slot=slot,
        adult_price=round_money(adult_price),
        child_price=round_money(child_price),
        premium_add_on=round_money(premium),
        subtotal=subtotal,
        subtotal_overridden=overridden,
        discount_amount=discount_amount,
        discounted_subtotal=discounted_subtotal,
        gratuity_percent=gratuity_percent,
        gratuity=gratuity,
        chargeable_miles=chargeable_miles,
        distance_fee=distance_fee,
        total=total,
        food_cost=food_cost,
        food_cost_percent=food_cost_percent,
        supplies_cost=supplies_cost,
        transportation_cost=transportation_cost,
    )
