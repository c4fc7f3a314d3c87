"""
Booking Domain Models (``catering_kernel.domain.booking``).

Responsibility
--------------
Frozen dataclass value objects for a catering booking: the booking entity,
its staff assignments, discount, per-slot pay overrides and pricing
snapshots, together with the read-time normalization functions that turn
stored records into bookings.

Architecture position
---------------------
**Kernel domain layer** -- pure data definitions with ZERO I/O.  Consumed
by engines and services; mutated only through ``dataclasses.replace``.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* Exactly one lifecycle status is stored (``Booking.status``).  The legacy
  ``service_status`` field of older records is only read, through
  ``normalize_service_status``, and the canonical field always wins.
* ``is_locked`` treats a completed booking as locked until it is explicitly
  unlocked (``locked=False``).

Failure modes
-------------
* ``booking_from_record`` raises ``KeyError`` for missing identity fields
  and ``ValueError`` for unparseable dates or enum values.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Mapping

from catering_kernel.domain.staff import StaffRole
from catering_kernel.domain.values import ZERO, finite_or, non_negative
from catering_kernel.logging_config import get_logger

logger = get_logger("domain.booking")

DEFAULT_PURCHASE_LEAD_DAYS = 2


class BookingStatus(str, Enum):
    """Canonical lifecycle status (the service status)."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    """Billing status of a booking."""
    DEPOSIT_PENDING = "deposit-pending"
    DEPOSIT_RECEIVED = "deposit-received"
    BALANCE_OUTSTANDING = "balance-outstanding"
    PAID_IN_FULL = "paid-in-full"
    REFUNDED = "refunded"

    @property
    def is_terminal(self) -> bool:
        return self in (PaymentStatus.PAID_IN_FULL, PaymentStatus.REFUNDED)


# Older records stored finer-grained billing states.
LEGACY_PAYMENT_STATUSES: dict[str, PaymentStatus] = {
    "unpaid": PaymentStatus.DEPOSIT_PENDING,
    "deposit-due": PaymentStatus.DEPOSIT_PENDING,
    "deposit-paid": PaymentStatus.DEPOSIT_RECEIVED,
    "balance-due": PaymentStatus.BALANCE_OUTSTANDING,
}


class AssignmentStatus(str, Enum):
    """Status of one staff assignment."""
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"


class DiscountType(str, Enum):
    PERCENT = "percent"
    AMOUNT = "amount"


class PipelineStage(str, Enum):
    """Sales pipeline view of a booking, derived at read time."""
    INQUIRY = "inquiry"
    QUOTE_SENT = "quote_sent"
    BOOKED = "booked"
    COMPLETED = "completed"


@dataclass(frozen=True)
class Discount:
    """Percent or flat discount applied to the subtotal only."""
    type: DiscountType
    value: Decimal

    def __post_init__(self):
        if not isinstance(self.value, Decimal):
            object.__setattr__(self, "value", Decimal(str(self.value)))


@dataclass(frozen=True)
class StaffAssignment:
    """One staff member assigned to a staffing slot of a booking."""
    staff_id: str
    role: StaffRole
    slot_id: str | None = None
    status: AssignmentStatus = AssignmentStatus.SCHEDULED
    estimated_pay: Decimal = ZERO
    notes: str = ""


@dataclass(frozen=True)
class PayOverride:
    """Event-level pay terms for one staffing slot, referenced by slot id."""
    slot_id: str
    base_pay_percent: Decimal
    gratuity_split_percent: Decimal
    cap: Decimal | None = None  # $ max per event, None = no cap


@dataclass(frozen=True)
class MenuPricingSnapshot:
    """Menu-derived pricing captured when a menu was attached."""
    menu_id: str
    subtotal_override: Decimal | None = None
    food_cost_override: Decimal | None = None
    calculated_at: datetime | None = None


@dataclass(frozen=True)
class RateSnapshot:
    """Rates in force when the booking was last priced."""
    adult_base_price: Decimal
    child_base_price: Decimal
    gratuity_percent: Decimal
    captured_at: datetime | None = None


@dataclass(frozen=True)
class Booking:
    """A catering event booking."""
    id: str
    event_type: str
    event_date: date
    event_time: str

    customer_name: str = ""
    customer_email: str = ""
    customer_phone: str = ""

    adults: int = 0
    children: int = 0
    location: str = ""
    distance_miles: Decimal = ZERO
    premium_add_on: Decimal = ZERO
    discount: Discount | None = None

    # Pricing (computed and stored)
    subtotal: Decimal = ZERO
    gratuity: Decimal = ZERO
    distance_fee: Decimal = ZERO
    total: Decimal = ZERO

    status: BookingStatus = BookingStatus.PENDING

    # Payment terms
    payment_status: PaymentStatus | None = None
    deposit_percent: Decimal | None = None
    deposit_amount: Decimal = ZERO
    deposit_due_date: date | None = None
    balance_due_date: date | None = None
    balance_due_amount: Decimal = ZERO
    amount_paid: Decimal = ZERO
    confirmed_at: datetime | None = None

    locked: bool | None = None

    staff_assignments: tuple[StaffAssignment, ...] = ()
    staffing_profile_id: str | None = None
    pay_overrides: tuple[PayOverride, ...] = ()

    menu_pricing_snapshot: MenuPricingSnapshot | None = None
    rate_snapshot: RateSnapshot | None = None
    reconciliation_id: str | None = None
    source: str | None = None
    notes: str = ""

    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def guest_count(self) -> int:
        return self.adults + self.children

    @property
    def service_status(self) -> BookingStatus:
        """Alias of the canonical status, kept for read-side callers."""
        return self.status

    @property
    def is_cancelled(self) -> bool:
        return self.status is BookingStatus.CANCELLED


# =============================================================================
# Read-time derivations
# =============================================================================


def is_locked(booking: Booking) -> bool:
    """Explicitly locked, or completed and never unlocked."""
    if booking.locked is not None:
        return booking.locked
    return booking.status is BookingStatus.COMPLETED


def normalize_service_status(record: Mapping[str, Any]) -> BookingStatus:
    """
    Reconcile the canonical ``status`` with the legacy ``service_status``.

    The canonical field always wins when it holds a valid status; the
    legacy field is consulted only when the canonical one is missing or
    unreadable.  Records with neither default to pending.
    """
    for key in ("status", "service_status", "serviceStatus"):
        raw = record.get(key)
        if raw is None:
            continue
        try:
            return BookingStatus(raw)
        except ValueError:
            logger.warning(
                "booking_status_unreadable",
                extra={"booking_id": record.get("id"), "field": key, "value": str(raw)},
            )
    return BookingStatus.PENDING


def normalize_payment_status(raw: Any) -> PaymentStatus | None:
    """Parse a stored payment status, mapping legacy values."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, PaymentStatus):
        return raw
    if raw in LEGACY_PAYMENT_STATUSES:
        return LEGACY_PAYMENT_STATUSES[raw]
    return PaymentStatus(raw)


def derive_pipeline_stage(booking: Booking) -> PipelineStage:
    """Pipeline view derived from the canonical status, never stored."""
    if booking.source == "inquiry" and booking.status is BookingStatus.PENDING:
        return PipelineStage.INQUIRY
    if booking.status is BookingStatus.COMPLETED:
        return PipelineStage.COMPLETED
    if booking.status is BookingStatus.PENDING:
        return PipelineStage.QUOTE_SENT
    return PipelineStage.BOOKED


def prep_purchase_by_date(
    event_date: date,
    lead_days: int = DEFAULT_PURCHASE_LEAD_DAYS,
) -> date:
    """Date by which ingredients should be bought."""
    return event_date - timedelta(days=lead_days)


def pricing_source(booking: Booking) -> str:
    """``menu`` when a menu pricing snapshot drives the subtotal, else ``rules``."""
    return "menu" if booking.menu_pricing_snapshot is not None else "rules"


def assigned_staff_ids(assignments: Iterable[StaffAssignment]) -> list[str]:
    """Unique, non-empty staff ids in assignment order."""
    seen: set[str] = set()
    ids: list[str] = []
    for assignment in assignments:
        if not assignment.staff_id or assignment.staff_id in seen:
            continue
        seen.add(assignment.staff_id)
        ids.append(assignment.staff_id)
    return ids


def duplicate_staff_ids(assignments: Iterable[StaffAssignment]) -> list[str]:
    """Staff ids that appear more than once, in first-duplicate order."""
    seen: set[str] = set()
    duplicates: list[str] = []
    for assignment in assignments:
        if not assignment.staff_id:
            continue
        if assignment.staff_id in seen and assignment.staff_id not in duplicates:
            duplicates.append(assignment.staff_id)
        seen.add(assignment.staff_id)
    return duplicates


# =============================================================================
# Record (dict) conversion
# =============================================================================


def _parse_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _parse_datetime(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _dec(value: Any) -> Decimal | None:
    return finite_or(value, None)


def _assignment_from_record(data: Mapping[str, Any]) -> StaffAssignment:
    return StaffAssignment(
        staff_id=str(data.get("staff_id") or data.get("staffId") or ""),
        role=StaffRole(data["role"]),
        slot_id=data.get("slot_id"),
        status=AssignmentStatus(data.get("status", "scheduled")),
        estimated_pay=non_negative(data.get("estimated_pay", data.get("estimatedPay"))),
        notes=data.get("notes") or "",
    )


def booking_from_record(record: Mapping[str, Any]) -> Booking:
    """
    Build a Booking from a stored record (import files, legacy exports).

    Status comes from ``normalize_service_status``; missing or non-finite
    money fields fall back to zero.
    """
    discount = None
    discount_type = record.get("discount_type")
    discount_value = _dec(record.get("discount_value"))
    if discount_type and discount_value is not None and discount_value > 0:
        discount = Discount(DiscountType(discount_type), discount_value)

    menu = record.get("menu_pricing_snapshot")
    menu_snapshot = None
    if menu:
        menu_snapshot = MenuPricingSnapshot(
            menu_id=str(menu.get("menu_id", "")),
            subtotal_override=_dec(menu.get("subtotal_override")),
            food_cost_override=_dec(menu.get("food_cost_override")),
            calculated_at=_parse_datetime(menu.get("calculated_at")),
        )

    rates = record.get("rate_snapshot")
    rate_snapshot = None
    if rates:
        rate_snapshot = RateSnapshot(
            adult_base_price=non_negative(rates.get("adult_base_price")),
            child_base_price=non_negative(rates.get("child_base_price")),
            gratuity_percent=non_negative(rates.get("gratuity_percent")),
            captured_at=_parse_datetime(rates.get("captured_at")),
        )

    overrides = tuple(
        PayOverride(
            slot_id=o["slot_id"],
            base_pay_percent=non_negative(o.get("base_pay_percent")),
            gratuity_split_percent=non_negative(o.get("gratuity_split_percent")),
            cap=_dec(o.get("cap")),
        )
        for o in record.get("pay_overrides") or ()
    )

    return Booking(
        id=str(record["id"]),
        event_type=str(record["event_type"]),
        event_date=_parse_date(record["event_date"]),
        event_time=str(record.get("event_time", "")),
        customer_name=record.get("customer_name") or "",
        customer_email=record.get("customer_email") or "",
        customer_phone=record.get("customer_phone") or "",
        adults=int(record.get("adults") or 0),
        children=int(record.get("children") or 0),
        location=record.get("location") or "",
        distance_miles=non_negative(record.get("distance_miles")),
        premium_add_on=non_negative(record.get("premium_add_on")),
        discount=discount,
        subtotal=non_negative(record.get("subtotal")),
        gratuity=non_negative(record.get("gratuity")),
        distance_fee=non_negative(record.get("distance_fee")),
        total=non_negative(record.get("total")),
        status=normalize_service_status(record),
        payment_status=normalize_payment_status(record.get("payment_status")),
        deposit_percent=_dec(record.get("deposit_percent")),
        deposit_amount=non_negative(record.get("deposit_amount")),
        deposit_due_date=_parse_date(record.get("deposit_due_date")),
        balance_due_date=_parse_date(record.get("balance_due_date")),
        balance_due_amount=non_negative(record.get("balance_due_amount")),
        amount_paid=non_negative(record.get("amount_paid")),
        confirmed_at=_parse_datetime(record.get("confirmed_at")),
        locked=record.get("locked"),
        staff_assignments=tuple(
            _assignment_from_record(a) for a in record.get("staff_assignments") or ()
        ),
        staffing_profile_id=record.get("staffing_profile_id"),
        pay_overrides=overrides,
        menu_pricing_snapshot=menu_snapshot,
        rate_snapshot=rate_snapshot,
        reconciliation_id=record.get("reconciliation_id"),
        source=record.get("source"),
        notes=record.get("notes") or "",
        created_at=_parse_datetime(record.get("created_at")),
        updated_at=_parse_datetime(record.get("updated_at")),
    )


def booking_to_record(booking: Booking) -> dict[str, Any]:
    """Serialize a Booking to a JSON-friendly dict with a single status field."""

    def _s(value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, (date, datetime)):
            return value.isoformat()
        if isinstance(value, Decimal):
            return str(value)
        return value

    record: dict[str, Any] = {
        "id": booking.id,
        "event_type": booking.event_type,
        "event_date": _s(booking.event_date),
        "event_time": booking.event_time,
        "customer_name": booking.customer_name,
        "customer_email": booking.customer_email,
        "customer_phone": booking.customer_phone,
        "adults": booking.adults,
        "children": booking.children,
        "location": booking.location,
        "distance_miles": _s(booking.distance_miles),
        "premium_add_on": _s(booking.premium_add_on),
        "discount_type": _s(booking.discount.type) if booking.discount else None,
        "discount_value": _s(booking.discount.value) if booking.discount else None,
        "subtotal": _s(booking.subtotal),
        "gratuity": _s(booking.gratuity),
        "distance_fee": _s(booking.distance_fee),
        "total": _s(booking.total),
        "status": _s(booking.status),
        "payment_status": _s(booking.payment_status),
        "deposit_percent": _s(booking.deposit_percent),
        "deposit_amount": _s(booking.deposit_amount),
        "deposit_due_date": _s(booking.deposit_due_date),
        "balance_due_date": _s(booking.balance_due_date),
        "balance_due_amount": _s(booking.balance_due_amount),
        "amount_paid": _s(booking.amount_paid),
        "confirmed_at": _s(booking.confirmed_at),
        "locked": booking.locked,
        "staff_assignments": [
            {
                "staff_id": a.staff_id,
                "role": _s(a.role),
                "slot_id": a.slot_id,
                "status": _s(a.status),
                "estimated_pay": _s(a.estimated_pay),
                "notes": a.notes,
            }
            for a in booking.staff_assignments
        ],
        "staffing_profile_id": booking.staffing_profile_id,
        "pay_overrides": [
            {
                "slot_id": o.slot_id,
                "base_pay_percent": _s(o.base_pay_percent),
                "gratuity_split_percent": _s(o.gratuity_split_percent),
                "cap": _s(o.cap),
            }
            for o in booking.pay_overrides
        ],
        "menu_pricing_snapshot": (
            {
                "menu_id": booking.menu_pricing_snapshot.menu_id,
                "subtotal_override": _s(booking.menu_pricing_snapshot.subtotal_override),
                "food_cost_override": _s(booking.menu_pricing_snapshot.food_cost_override),
                "calculated_at": _s(booking.menu_pricing_snapshot.calculated_at),
            }
            if booking.menu_pricing_snapshot
            else None
        ),
        "rate_snapshot": (
            {
                "adult_base_price": _s(booking.rate_snapshot.adult_base_price),
                "child_base_price": _s(booking.rate_snapshot.child_base_price),
                "gratuity_percent": _s(booking.rate_snapshot.gratuity_percent),
                "captured_at": _s(booking.rate_snapshot.captured_at),
            }
            if booking.rate_snapshot
            else None
        ),
        "reconciliation_id": booking.reconciliation_id,
        "source": booking.source,
        "notes": booking.notes,
        "created_at": _s(booking.created_at),
        "updated_at": _s(booking.updated_at),
    }
    return record
