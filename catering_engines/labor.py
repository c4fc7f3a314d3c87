"""
Module: catering_engines.labor
Responsibility:
    Per-slot labor compensation: base pay as a share of the subtotal,
    a share of the gratuity pool, an optional cap, and the overflow above
    the cap that stays with the business as profit.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - ``final_pay = min(base_pay + gratuity_share, cap)`` when a cap
      applies; ``excess_to_profit = total_calculated - final_pay``.
    - Base pay and caps use the undiscounted figures: base pay is a share
      of the subtotal, configured cap percentages are a share of
      subtotal + gratuity.
    - Per-event overrides bind to slots by slot id, never by position.
    - Every currency output is rounded to cents.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

from catering_kernel.domain.booking import PayOverride
from catering_kernel.domain.values import ZERO, finite_or, percent_of, round_money
from catering_kernel.logging_config import get_logger
from catering_engines.staffing import StaffingPlan, StaffingSlot
from catering_engines.tracer import traced_engine

logger = get_logger("engines.labor")


@dataclass(frozen=True)
class SlotCompensation:
    """Pay computed for one staffing slot."""

    slot_id: str
    index: int
    role: str
    base_pay_percent: Decimal
    gratuity_split_percent: Decimal
    base_pay: Decimal
    gratuity_share: Decimal
    total_calculated: Decimal
    cap_amount: Decimal | None
    final_pay: Decimal
    excess_to_profit: Decimal
    overridden: bool = False

    @property
    def was_capped(self) -> bool:
        return self.excess_to_profit > 0


@dataclass(frozen=True)
class LaborSummary:
    """Totals across a compensation list."""

    total_base: Decimal
    total_with_gratuity: Decimal
    total_paid: Decimal
    total_excess_to_profit: Decimal


def cap_amount_for(cap_percent: Decimal | None, revenue: Decimal) -> Decimal | None:
    """A cap percent of zero, negative or unset means no cap."""
    percent = finite_or(cap_percent, None)
    if percent is None or percent <= 0:
        return None
    return round_money(percent_of(revenue, percent))


def compensate_slot(
    slot: StaffingSlot,
    subtotal: Decimal,
    gratuity: Decimal,
    override: PayOverride | None = None,
) -> SlotCompensation:
    revenue = subtotal + gratuity
    if override is not None:
        base_percent = override.base_pay_percent
        split_percent = override.gratuity_split_percent
        cap = finite_or(override.cap, None)
        cap = cap if cap is not None and cap >= 0 else None
    else:
        base_percent = slot.base_pay_percent
        split_percent = slot.gratuity_split_percent
        cap = cap_amount_for(slot.cap_percent, revenue)

    base_pay = round_money(percent_of(subtotal, base_percent))
    gratuity_share = round_money(percent_of(gratuity, split_percent))
    total_calculated = base_pay + gratuity_share
    final_pay = min(total_calculated, cap) if cap is not None else total_calculated

    return SlotCompensation(
        slot_id=slot.slot_id,
        index=slot.index,
        role=slot.role.value,
        base_pay_percent=base_percent,
        gratuity_split_percent=split_percent,
        base_pay=base_pay,
        gratuity_share=gratuity_share,
        total_calculated=total_calculated,
        cap_amount=cap,
        final_pay=final_pay,
        excess_to_profit=total_calculated - final_pay,
        overridden=override is not None,
    )


@traced_engine("labor", "1.0", fingerprint_fields=("plan", "subtotal", "gratuity", "overrides"))
def calculate_labor(
    *,
    plan: StaffingPlan,
    subtotal: Decimal,
    gratuity: Decimal,
    overrides: Sequence[PayOverride] = (),
) -> tuple[SlotCompensation, ...]:
    """
    Compensation for every slot of ``plan``, in plan order.

    Overrides naming a slot id that is not in the plan are ignored and
    logged.
    """
    by_slot = {o.slot_id: o for o in overrides}
    unknown = sorted(set(by_slot) - {s.slot_id for s in plan.slots})
    if unknown:
        logger.warning("pay_override_slot_unknown", extra={"slot_ids": unknown})

    return tuple(
        compensate_slot(slot, subtotal, gratuity, by_slot.get(slot.slot_id))
        for slot in plan.slots
    )


def summarize_labor(compensation: Sequence[SlotCompensation]) -> LaborSummary:
    return LaborSummary(
        total_base=sum((c.base_pay for c in compensation), ZERO),
        total_with_gratuity=sum((c.total_calculated for c in compensation), ZERO),
        total_paid=sum((c.final_pay for c in compensation), ZERO),
        total_excess_to_profit=sum((c.excess_to_profit for c in compensation), ZERO),
    )
