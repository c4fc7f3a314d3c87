"""
Catering Engines - pure calculation layer.

Pricing, staffing, labor compensation, event financials, scheduling
conflict detection and payment-status derivation.  Engines take their
inputs as arguments, never read a clock or a repository, and log a
CATERING_ENGINE_TRACE record per traced invocation.
"""

from catering_engines.conflicts import StaffConflict, find_staff_conflicts
from catering_engines.financials import (
    EventFinancials,
    OwnerDistribution,
    ProfitSplit,
    calculate_booking_financials,
    calculate_event_financials,
)
from catering_engines.labor import SlotCompensation, calculate_labor
from catering_engines.payment_status import (
    derive_payment_status,
    is_overdue,
    payment_display_label,
)
from catering_engines.pricing import PriceBreakdown, PricingInput, price_event
from catering_engines.staffing import (
    StaffingPlan,
    StaffingSlot,
    bind_assignments,
    plan_staffing,
)

__all__ = [
    "EventFinancials",
    "OwnerDistribution",
    "PriceBreakdown",
    "PricingInput",
    "ProfitSplit",
    "SlotCompensation",
    "StaffConflict",
    "StaffingPlan",
    "StaffingSlot",
    "bind_assignments",
    "calculate_booking_financials",
    "calculate_event_financials",
    "calculate_labor",
    "derive_payment_status",
    "find_staff_conflicts",
    "is_overdue",
    "payment_display_label",
    "plan_staffing",
    "price_event",
]
