"""
Tests for payment-status derivation.

Covers:
- Terminal statuses short-circuit
- Deposit pending / received / balance outstanding boundaries
- Display labels, legacy values and overdue flags
"""

from datetime import date
from decimal import Decimal

import pytest

from catering_engines.payment_status import (
    balance_due,
    deposit_amount_for,
    derive_payment_status,
    is_overdue,
    payment_display_label,
)
from catering_kernel.domain.booking import BookingStatus, PaymentStatus

BEFORE_EVENT = date(2024, 5, 1)
EVENT_DAY = date(2024, 6, 1)
DAY_AFTER = date(2024, 6, 2)


class TestBalanceDue:
    def test_never_negative(self):
        assert balance_due(Decimal("100"), Decimal("150")) == Decimal("0.00")

    def test_rounded_to_cents(self):
        assert balance_due(Decimal("1680.00"), Decimal("504.004")) == Decimal("1176.00")


class TestDepositAmount:
    def test_computed_from_default_percent(self, make_booking):
        assert deposit_amount_for(make_booking()) == Decimal("504.00")

    def test_booking_percent_wins(self, make_booking):
        assert deposit_amount_for(make_booking(deposit_percent=Decimal("50"))) == Decimal("840.00")

    def test_stored_amount_wins(self, make_booking):
        assert deposit_amount_for(make_booking(deposit_amount=Decimal("250"))) == Decimal("250")


class TestDerivePaymentStatus:
    """Status rules in precedence order."""

    @pytest.mark.parametrize("terminal", [PaymentStatus.PAID_IN_FULL, PaymentStatus.REFUNDED])
    def test_terminal_status_short_circuits(self, make_booking, terminal):
        booking = make_booking(payment_status=terminal, amount_paid=Decimal("0"))

        assert derive_payment_status(booking, DAY_AFTER) is terminal

    def test_nothing_paid_is_deposit_pending(self, make_booking):
        assert derive_payment_status(make_booking(), BEFORE_EVENT) is PaymentStatus.DEPOSIT_PENDING

    def test_deposit_paid_is_deposit_received(self, make_booking):
        booking = make_booking(deposit_amount=Decimal("504.00"), amount_paid=Decimal("504.00"))

        assert derive_payment_status(booking, BEFORE_EVENT) is PaymentStatus.DEPOSIT_RECEIVED

    def test_epsilon_absorbs_rounding_noise(self, make_booking):
        booking = make_booking(deposit_amount=Decimal("504.00"), amount_paid=Decimal("503.995"))

        assert derive_payment_status(booking, BEFORE_EVENT) is PaymentStatus.DEPOSIT_RECEIVED

    def test_event_day_is_not_yet_outstanding(self, make_booking):
        booking = make_booking(deposit_amount=Decimal("504.00"), amount_paid=Decimal("504.00"))

        assert derive_payment_status(booking, EVENT_DAY) is PaymentStatus.DEPOSIT_RECEIVED

    def test_day_after_event_is_balance_outstanding(self, make_booking):
        booking = make_booking(amount_paid=Decimal("504.00"))

        assert derive_payment_status(booking, DAY_AFTER) is PaymentStatus.BALANCE_OUTSTANDING

    def test_fully_paid_positive_total(self, make_booking):
        booking = make_booking(amount_paid=Decimal("1680.00"))

        assert derive_payment_status(booking, DAY_AFTER) is PaymentStatus.PAID_IN_FULL

    def test_zero_total_is_not_paid_in_full(self, make_booking):
        booking = make_booking(total=Decimal("0"), balance_due_amount=Decimal("0"))

        assert derive_payment_status(booking, BEFORE_EVENT) is PaymentStatus.DEPOSIT_RECEIVED


class TestDisplayLabel:
    @pytest.mark.parametrize(
        "status, label",
        [
            (PaymentStatus.DEPOSIT_PENDING, "Deposit Pending"),
            (PaymentStatus.DEPOSIT_RECEIVED, "Deposit Received"),
            (PaymentStatus.BALANCE_OUTSTANDING, "Balance Outstanding"),
            (PaymentStatus.PAID_IN_FULL, "Paid in Full"),
            (PaymentStatus.REFUNDED, "Refunded"),
        ],
    )
    def test_labels(self, status, label):
        assert payment_display_label(status) == label

    def test_legacy_values(self):
        assert payment_display_label("deposit-paid") == "Deposit Received"
        assert payment_display_label("unpaid") == "Deposit Pending"

    def test_missing_status(self):
        assert payment_display_label(None) == "Deposit Pending"


class TestOverdue:
    def test_deposit_overdue_after_due_date(self, make_booking):
        booking = make_booking(deposit_due_date=date(2024, 4, 1))

        assert is_overdue(booking, BEFORE_EVENT)
        assert not is_overdue(booking, date(2024, 4, 1))

    def test_balance_overdue_after_balance_due_date(self, make_booking):
        booking = make_booking(amount_paid=Decimal("504.00"), balance_due_date=EVENT_DAY)

        assert is_overdue(booking, DAY_AFTER)

    def test_cancelled_never_overdue(self, make_booking):
        booking = make_booking(deposit_due_date=date(2024, 4, 1), status=BookingStatus.CANCELLED)

        assert not is_overdue(booking, BEFORE_EVENT)

    def test_deposit_received_not_overdue(self, make_booking):
        booking = make_booking(amount_paid=Decimal("504.00"), deposit_due_date=date(2024, 4, 1))

        assert not is_overdue(booking, BEFORE_EVENT)
