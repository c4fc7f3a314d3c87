"""
Module: catering_engines.financials
Responsibility:
    Assemble the ``EventFinancials`` snapshot of an event by running the
    pricing engine, the staffing planner and the labor calculator
    together, then derive gross profit, the owner distribution split and
    the safety-limit warnings.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The booking workflow
    and the booking service consume this snapshot; nothing here reads a
    clock or a repository.

Invariants enforced:
    - Gross profit = discounted subtotal + gratuity - costs - labor paid.
    - Retained + distributed = gross profit x (retained% + distribution%).
    - Owner amounts are the distribution amount split by equity percent.
    - Warnings are only produced when ``warn_when_exceeded`` is set.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

from catering_config.schema import ProfitDistributionRules, RatesConfig
from catering_kernel.domain.booking import Booking, PayOverride, pricing_source
from catering_kernel.domain.values import HUNDRED, ZERO, percent_of, round_money
from catering_engines.labor import (
    LaborSummary,
    SlotCompensation,
    calculate_labor,
    summarize_labor,
)
from catering_engines.pricing import PriceBreakdown, PricingInput, price_event
from catering_engines.staffing import StaffingPlan, plan_staffing


@dataclass(frozen=True)
class OwnerDistribution:
    owner_id: str
    owner_name: str
    amount: Decimal


@dataclass(frozen=True)
class ProfitSplit:
    gross_profit: Decimal
    retained_percent: Decimal
    retained_amount: Decimal
    distribution_percent: Decimal
    distribution_amount: Decimal
    owners: tuple[OwnerDistribution, ...]


@dataclass(frozen=True)
class EventFinancials:
    """Revenue, staffing, labor and profit for one event."""

    price: PriceBreakdown
    staffing_plan: StaffingPlan
    labor: tuple[SlotCompensation, ...]
    labor_summary: LaborSummary
    labor_percent_of_revenue: Decimal
    profit: ProfitSplit
    warnings: tuple[str, ...] = ()
    pricing_source: str = "rules"

    @property
    def subtotal(self) -> Decimal:
        return self.price.subtotal

    @property
    def gratuity(self) -> Decimal:
        return self.price.gratuity

    @property
    def distance_fee(self) -> Decimal:
        return self.price.distance_fee

    @property
    def total(self) -> Decimal:
        return self.price.total

    def compensation_for(self, slot_id: str) -> SlotCompensation | None:
        for comp in self.labor:
            if comp.slot_id == slot_id:
                return comp
        return None


def split_profit(gross_profit: Decimal, rules: ProfitDistributionRules) -> ProfitSplit:
    """Split gross profit into retained earnings and per-owner distributions."""
    retained = round_money(percent_of(gross_profit, rules.business_retained_percent))
    distribution = round_money(percent_of(gross_profit, rules.owner_distribution_percent))
    owners = tuple(
        OwnerDistribution(
            owner_id=owner.id,
            owner_name=owner.name,
            amount=round_money(percent_of(distribution, owner.equity_percent)),
        )
        for owner in rules.owners
    )
    return ProfitSplit(
        gross_profit=gross_profit,
        retained_percent=rules.business_retained_percent,
        retained_amount=retained,
        distribution_percent=rules.owner_distribution_percent,
        distribution_amount=distribution,
        owners=owners,
    )


def safety_warnings(
    labor_percent: Decimal,
    food_cost_percent: Decimal,
    config: RatesConfig,
) -> tuple[str, ...]:
    limits = config.safety_limits
    if not limits.warn_when_exceeded:
        return ()
    warnings = []
    if labor_percent > limits.max_total_labor_percent:
        warnings.append(
            f"Labor cost ({labor_percent:.1f}%) exceeds maximum "
            f"({limits.max_total_labor_percent}%) of total revenue"
        )
    if food_cost_percent > limits.max_food_cost_percent:
        warnings.append(
            f"Food cost ({food_cost_percent:.1f}%) exceeds maximum "
            f"({limits.max_food_cost_percent}%)"
        )
    return tuple(warnings)


def calculate_event_financials(
    pricing_input: PricingInput,
    config: RatesConfig,
    staffing_profile_id: str | None = None,
    pay_overrides: Sequence[PayOverride] = (),
    source: str = "rules",
) -> EventFinancials:
    price = price_event(pricing_input=pricing_input, config=config)
    plan = plan_staffing(
        guest_count=price.guest_count,
        event_type=pricing_input.event_type,
        config=config,
        pricing_slot=price.pricing_slot,
        staffing_profile_id=staffing_profile_id,
    )
    labor = calculate_labor(
        plan=plan,
        subtotal=price.subtotal,
        gratuity=price.gratuity,
        overrides=tuple(pay_overrides),
    )
    summary = summarize_labor(labor)
    revenue = price.revenue
    labor_percent = summary.total_paid / revenue * HUNDRED if revenue > 0 else ZERO

    gross_profit = round_money(
        price.discounted_subtotal + price.gratuity - price.total_costs - summary.total_paid
    )
    return EventFinancials(
        price=price,
        staffing_plan=plan,
        labor=labor,
        labor_summary=summary,
        labor_percent_of_revenue=labor_percent,
        profit=split_profit(gross_profit, config.profit_distribution),
        warnings=safety_warnings(labor_percent, price.food_cost_percent, config),
        pricing_source=source,
    )


def pricing_input_for(booking: Booking) -> PricingInput:
    snapshot = booking.menu_pricing_snapshot
    return PricingInput(
        adults=booking.adults,
        children=booking.children,
        event_type=booking.event_type,
        event_date=booking.event_date,
        distance_miles=booking.distance_miles,
        premium_add_on=booking.premium_add_on,
        discount=booking.discount,
        subtotal_override=snapshot.subtotal_override if snapshot else None,
        food_cost_override=snapshot.food_cost_override if snapshot else None,
    )


def calculate_booking_financials(booking: Booking, config: RatesConfig) -> EventFinancials:
    """Financials for a stored booking, honouring its menu snapshot, profile and overrides."""
    return calculate_event_financials(
        pricing_input_for(booking),
        config,
        staffing_profile_id=booking.staffing_profile_id,
        pay_overrides=booking.pay_overrides,
        source=pricing_source(booking),
    )
