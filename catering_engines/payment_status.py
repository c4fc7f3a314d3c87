"""
Module: catering_engines.payment_status
Responsibility:
    Read-time payment derivations for a booking: deposit and balance
    figures, the payment status, its display label and the overdue flag.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  ``today`` is always an
    argument; nothing here reads the clock.

Invariants enforced:
    - ``balance_due = max(0, total - amount_paid)`` rounded to cents.
    - ``paid-in-full`` and ``refunded`` are terminal: once stored they
      short-circuit every other rule.
    - Currency comparisons absorb ``MONEY_EPSILON`` (0.009).
    - ``Balance Outstanding`` starts on the calendar day after the event.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from catering_kernel.domain.booking import Booking, PaymentStatus, normalize_payment_status
from catering_kernel.domain.values import (
    ZERO,
    finite_or,
    money_gte,
    money_positive,
    non_negative,
    percent_of,
    round_money,
)

DEFAULT_DEPOSIT_PERCENT = Decimal("30")

PAYMENT_DISPLAY_LABELS: dict[PaymentStatus, str] = {
    PaymentStatus.DEPOSIT_PENDING: "Deposit Pending",
    PaymentStatus.DEPOSIT_RECEIVED: "Deposit Received",
    PaymentStatus.BALANCE_OUTSTANDING: "Balance Outstanding",
    PaymentStatus.PAID_IN_FULL: "Paid in Full",
    PaymentStatus.REFUNDED: "Refunded",
}


def balance_due(total: Decimal, amount_paid: Decimal) -> Decimal:
    return round_money(max(ZERO, non_negative(total) - non_negative(amount_paid)))


def deposit_percent_for(booking: Booking, default_percent: Decimal = DEFAULT_DEPOSIT_PERCENT) -> Decimal:
    """The booking's own deposit percent when set, else ``default_percent``."""
    percent = finite_or(booking.deposit_percent, None)
    if percent is None or percent < 0:
        return default_percent
    return percent


def deposit_amount_for(booking: Booking, default_percent: Decimal = DEFAULT_DEPOSIT_PERCENT) -> Decimal:
    """The stored deposit amount, or one computed from the deposit percent when unset."""
    if booking.deposit_amount > 0:
        return booking.deposit_amount
    return round_money(percent_of(non_negative(booking.total), deposit_percent_for(booking, default_percent)))


def balance_outstanding_from(event_date: date) -> date:
    """First day a balance counts as outstanding: the day after the event."""
    return event_date + timedelta(days=1)


def derive_payment_status(
    booking: Booking,
    today: date,
    default_deposit_percent: Decimal = DEFAULT_DEPOSIT_PERCENT,
) -> PaymentStatus:
    """
    Payment status of ``booking`` as of ``today``.

    Rules, in order:
        1. A stored ``paid-in-full`` or ``refunded`` status is returned as is.
        2. A positive total that is fully paid is ``paid-in-full``.
        3. A balance still due on or after the day after the event is
           ``balance-outstanding``.
        4. Paid at least the deposit: ``deposit-received``.
        5. Otherwise ``deposit-pending``.
    """
    if booking.payment_status is not None and booking.payment_status.is_terminal:
        return booking.payment_status

    total = non_negative(booking.total)
    paid = non_negative(booking.amount_paid)
    if total > 0 and money_gte(paid, total):
        return PaymentStatus.PAID_IN_FULL

    if money_positive(balance_due(total, paid)) and today >= balance_outstanding_from(booking.event_date):
        return PaymentStatus.BALANCE_OUTSTANDING
    if money_gte(paid, deposit_amount_for(booking, default_deposit_percent)):
        return PaymentStatus.DEPOSIT_RECEIVED
    return PaymentStatus.DEPOSIT_PENDING


def payment_display_label(status: PaymentStatus | str | None) -> str:
    """
    User-facing label for a stored or derived payment status.

    Legacy stored values map through ``LEGACY_PAYMENT_STATUSES``; a missing
    status reads as ``Deposit Pending``.
    """
    parsed = normalize_payment_status(status)
    if parsed is None:
        return PAYMENT_DISPLAY_LABELS[PaymentStatus.DEPOSIT_PENDING]
    return PAYMENT_DISPLAY_LABELS[parsed]


def is_overdue(
    booking: Booking,
    today: date,
    default_deposit_percent: Decimal = DEFAULT_DEPOSIT_PERCENT,
) -> bool:
    """
    True when a payment obligation has passed its due date.

    Deposit pending with a deposit due date before ``today``, or a balance
    outstanding with a balance due date before ``today``.  Cancelled
    bookings are never overdue.
    """
    if booking.is_cancelled:
        return False
    status = derive_payment_status(booking, today, default_deposit_percent)
    if status is PaymentStatus.DEPOSIT_PENDING:
        return booking.deposit_due_date is not None and booking.deposit_due_date < today
    if status is PaymentStatus.BALANCE_OUTSTANDING:
        due = booking.balance_due_date or booking.event_date
        return due < today
    return False
