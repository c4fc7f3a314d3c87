"""
catering_services.payment_ledger -- customer payment and refund application.

Responsibility:
    Applies one customer payment or refund to a booking: validates the
    amount, builds the append-only ``CustomerPaymentRecord``, recomputes
    amount paid and balance due, derives the payment status and, for a
    pending booking that becomes fully paid, confirms it.

Architecture position:
    Services layer.  Works on a single ``Booking``; the booking service
    appends the record and replaces the booking in the snapshot.

Invariants enforced:
    - Amounts must be finite and positive; they are stored rounded to cents.
    - ``amount_paid`` never goes below zero and
      ``balance_due_amount = max(0, total - amount_paid)``.
    - Records are never edited; a correction is a new record.
    - A refund always leaves ``status=cancelled`` and
      ``payment_status=refunded``.

Failure modes:
    - ``InvalidPaymentAmountError``: non-finite or non-positive amount, or one
      above ``MAX_PAYMENT_AMOUNT``.
    - ``PaymentOnCancelledBookingError``: payment on a cancelled booking.
    - ``RefundExceedsPaidError``: refund above amount paid + MONEY_EPSILON.
    - ``BookingLockedError``: the booking is locked.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from typing import Any, Callable

from catering_engines.payment_status import (
    DEFAULT_DEPOSIT_PERCENT,
    balance_due,
    deposit_amount_for,
    derive_payment_status,
)
from catering_kernel.domain.booking import (
    AssignmentStatus,
    Booking,
    BookingStatus,
    PaymentStatus,
    is_locked,
)
from catering_kernel.domain.clock import Clock, SystemClock
from catering_kernel.domain.records import CustomerPaymentRecord, PaymentMethod, PaymentType
from catering_kernel.domain.values import (
    MONEY_EPSILON,
    ZERO,
    finite_or,
    money_gte,
    non_negative,
    round_money,
)
from catering_kernel.exceptions import (
    BookingLockedError,
    InvalidPaymentAmountError,
    PaymentOnCancelledBookingError,
    RefundExceedsPaidError,
)
from catering_kernel.logging_config import LogContext, get_logger
from catering_services.booking_workflow import apply_confirmation_terms

logger = get_logger("services.payment_ledger")

MAX_PAYMENT_AMOUNT = Decimal("1000000000.00")


def default_payment_id(booking_id: str) -> str:
    return f"custpay-{booking_id}-{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class LedgerResult:
    """The updated booking, the record to append, and whether it was auto-confirmed."""

    booking: Booking
    record: CustomerPaymentRecord
    auto_confirmed: bool = False


class PaymentLedger:
    """Applies customer payments and refunds to bookings."""

    def __init__(
        self,
        clock: Clock | None = None,
        default_deposit_percent: Decimal = DEFAULT_DEPOSIT_PERCENT,
        id_factory: Callable[[str], str] = default_payment_id,
    ):
        self._clock = clock or SystemClock()
        self._default_deposit_percent = default_deposit_percent
        self._id_factory = id_factory

    def _validated_amount(self, booking: Booking, amount: Any) -> Decimal:
        value = finite_or(amount, None)
        if value is None or value <= ZERO or value > MAX_PAYMENT_AMOUNT:
            raise InvalidPaymentAmountError(booking.id, amount)
        value = round_money(value)
        if value <= ZERO:
            raise InvalidPaymentAmountError(booking.id, amount)
        return value

    def _record(
        self,
        booking: Booking,
        amount: Decimal,
        payment_type: PaymentType,
        payment_date: date | None,
        method: PaymentMethod | str | None,
        notes: str,
    ) -> CustomerPaymentRecord:
        return CustomerPaymentRecord(
            id=self._id_factory(booking.id),
            booking_id=booking.id,
            payment_date=payment_date or self._clock.today(),
            amount=amount,
            type=payment_type,
            method=PaymentMethod.parse(method),
            notes=notes,
            created_at=self._clock.now(),
        )

    def infer_payment_type(self, booking: Booking) -> PaymentType:
        """``deposit`` until the deposit has been covered, then ``payment``."""
        deposit = deposit_amount_for(booking, self._default_deposit_percent)
        if money_gte(non_negative(booking.amount_paid), deposit):
            return PaymentType.PAYMENT
        return PaymentType.DEPOSIT

    def apply_payment(
        self,
        booking: Booking,
        amount: Any,
        payment_date: date | None = None,
        method: PaymentMethod | str | None = None,
        notes: str = "",
        payment_type: PaymentType | None = None,
    ) -> LedgerResult:
        """
        Record a deposit or payment.

        Raises:
            InvalidPaymentAmountError: ``amount`` is non-finite or not positive.
            BookingLockedError: the booking is locked.
            PaymentOnCancelledBookingError: the booking is cancelled or refunded.
        """
        value = self._validated_amount(booking, amount)
        if is_locked(booking):
            raise BookingLockedError(booking.id, "record_payment")
        if booking.status is BookingStatus.CANCELLED or booking.payment_status is PaymentStatus.REFUNDED:
            raise PaymentOnCancelledBookingError(
                booking.id, booking.payment_status.value if booking.payment_status else None
            )
        if payment_type is PaymentType.REFUND:
            raise ValueError("refunds go through apply_refund")

        with LogContext.bind(booking_id=booking.id, operation="record_payment"):
            record = self._record(
                booking,
                value,
                payment_type or self.infer_payment_type(booking),
                payment_date,
                method,
                notes,
            )
            now = self._clock.now()
            paid = round_money(non_negative(booking.amount_paid) + value)
            updated = replace(
                booking,
                amount_paid=paid,
                balance_due_amount=balance_due(booking.total, paid),
                updated_at=now,
            )
            fully_paid = updated.total > ZERO and updated.balance_due_amount <= MONEY_EPSILON
            updated = replace(
                updated,
                payment_status=(
                    PaymentStatus.PAID_IN_FULL
                    if fully_paid
                    else derive_payment_status(
                        replace(updated, payment_status=None),
                        self._clock.today(),
                        self._default_deposit_percent,
                    )
                ),
            )

            auto_confirmed = fully_paid and booking.status is BookingStatus.PENDING
            if auto_confirmed:
                updated = apply_confirmation_terms(updated, now, self._default_deposit_percent)
                updated = replace(
                    updated,
                    staff_assignments=tuple(
                        replace(a, status=AssignmentStatus.CONFIRMED)
                        for a in updated.staff_assignments
                    ),
                )

            logger.info(
                "payment_recorded",
                extra={
                    "payment_id": record.id,
                    "payment_type": record.type.value,
                    "amount": str(value),
                    "amount_paid": str(updated.amount_paid),
                    "balance_due": str(updated.balance_due_amount),
                    "payment_status": updated.payment_status.value,
                    "auto_confirmed": auto_confirmed,
                },
            )
        return LedgerResult(booking=updated, record=record, auto_confirmed=auto_confirmed)

    def apply_refund(
        self,
        booking: Booking,
        amount: Any,
        refund_date: date | None = None,
        method: PaymentMethod | str | None = None,
        notes: str = "",
    ) -> LedgerResult:
        """
        Record a refund and cancel the booking.

        Raises:
            InvalidPaymentAmountError: ``amount`` is non-finite or not positive.
            RefundExceedsPaidError: ``amount`` exceeds what has been paid.
            BookingLockedError: the booking is locked.
        """
        value = self._validated_amount(booking, amount)
        if is_locked(booking):
            raise BookingLockedError(booking.id, "record_refund")
        paid = non_negative(booking.amount_paid)
        if value > paid + MONEY_EPSILON:
            raise RefundExceedsPaidError(booking.id, str(value), str(paid))

        with LogContext.bind(booking_id=booking.id, operation="record_refund"):
            record = self._record(booking, value, PaymentType.REFUND, refund_date, method, notes)
            remaining = round_money(max(ZERO, paid - value))
            updated = replace(
                booking,
                status=BookingStatus.CANCELLED,
                payment_status=PaymentStatus.REFUNDED,
                amount_paid=remaining,
                balance_due_amount=balance_due(booking.total, remaining),
                staff_assignments=tuple(
                    replace(a, status=AssignmentStatus.SCHEDULED)
                    for a in booking.staff_assignments
                ),
                updated_at=self._clock.now(),
            )
            logger.info(
                "refund_recorded",
                extra={
                    "payment_id": record.id,
                    "amount": str(value),
                    "amount_paid": str(remaining),
                    "previous_status": booking.status.value,
                },
            )
        return LedgerResult(booking=updated, record=record)
