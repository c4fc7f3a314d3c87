"""
Typed Exception Hierarchy for the Catering Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Booking and payment errors are surfaced to people who have to fix their
input and retry. Callers must be able to tell a refund that is too large
from a booking that is locked without parsing message strings, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        ledger.apply_refund(booking, amount, refund_date)
    except RefundExceedsPaidError as e:
        show_error(f"Only {e.amount_paid} has been paid")

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    CateringKernelError (base)
    |
    +-- BookingError
    |   +-- BookingNotFoundError
    |   +-- BookingLockedError
    |   +-- InvalidTransitionError
    |   +-- TransitionRejectedError
    |   +-- AssignmentRejectedError
    |
    +-- PaymentError
    |   +-- InvalidPaymentAmountError
    |   +-- PaymentOnCancelledBookingError
    |   +-- RefundExceedsPaidError
    |
    +-- ConfigurationError
        +-- InvalidRatesConfigError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                      | When Raised
----------------|---------------------------|-------------------------------------
Booking         | BOOKING_NOT_FOUND         | Booking id not in the snapshot
                | BOOKING_LOCKED            | Mutating a locked booking
                | INVALID_TRANSITION        | Transition not in the workflow
                | TRANSITION_REJECTED       | Gate failures (aggregated)
                | ASSIGNMENT_REJECTED       | Duplicate or double-booked staff
----------------|---------------------------|-------------------------------------
Payment         | INVALID_PAYMENT_AMOUNT    | Amount outside the accepted range
                | PAYMENT_ON_CANCELLED_BOOKING | Payment against a cancelled booking
                | REFUND_EXCEEDS_PAID       | Refund larger than amount paid
----------------|---------------------------|-------------------------------------
Configuration   | INVALID_RATES_CONFIG      | Structurally inconsistent rules

===============================================================================
HANDLING PATTERNS
===============================================================================

Transition gates do not raise for validation failures. The state machine
returns a ``TransitionResult`` that lists every reason the transition was
refused. ``TransitionRejectedError`` exists for callers that want an
exception instead (``TransitionResult.raise_for_status()``); it carries the
same aggregated issue list.

Every error in this module is recoverable by correcting input and retrying.
None of them is fatal to the process.
"""

from collections.abc import Sequence
from typing import Any


class CateringKernelError(Exception):
    """
    Base exception for all catering kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "CATERING_KERNEL_ERROR"


# Booking-related exceptions


class BookingError(CateringKernelError):
    """Base exception for booking lifecycle errors."""

    code: str = "BOOKING_ERROR"


class BookingNotFoundError(BookingError):
    """Booking with given ID was not found in the collection."""

    code: str = "BOOKING_NOT_FOUND"

    def __init__(self, booking_id: str):
        self.booking_id = booking_id
        super().__init__(f"Booking not found: {booking_id}")


class BookingLockedError(BookingError):
    """
    Booking is locked and rejects mutating operations.

    A booking is locked when ``locked`` is set, or when it is completed and
    has never been explicitly unlocked. Only ``unlock`` is accepted.
    """

    code: str = "BOOKING_LOCKED"

    def __init__(self, booking_id: str, operation: str):
        self.booking_id = booking_id
        self.operation = operation
        super().__init__(
            f"Booking {booking_id} is locked; '{operation}' requires an explicit unlock"
        )


class InvalidTransitionError(BookingError):
    """Requested status change is not a transition of the booking workflow."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, booking_id: str, from_status: str, to_status: str):
        self.booking_id = booking_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Booking {booking_id} cannot move from {from_status} to {to_status}"
        )


class TransitionRejectedError(BookingError):
    """
    One or more transition gates failed.

    Carries every issue found in the attempt, not just the first, and the
    scheduling conflicts behind any conflict issues.
    """

    code: str = "TRANSITION_REJECTED"

    def __init__(
        self,
        booking_id: str,
        to_status: str,
        issues: Sequence[Any],
        conflicts: Sequence[Any] = (),
    ):
        self.booking_id = booking_id
        self.to_status = to_status
        self.issues = tuple(issues)
        self.conflicts = tuple(conflicts)
        super().__init__(
            f"Booking {booking_id} cannot move to {to_status}: "
            f"{len(self.issues)} issue(s)"
        )


class AssignmentRejectedError(BookingError):
    """Staff assignments would double-book or duplicate a staff member."""

    code: str = "ASSIGNMENT_REJECTED"

    def __init__(self, booking_id: str, issues: Sequence[Any]):
        self.booking_id = booking_id
        self.issues = tuple(issues)
        super().__init__(
            f"Staff assignments for booking {booking_id} rejected: "
            + "; ".join(str(getattr(issue, "message", issue)) for issue in self.issues)
        )


# Payment-related exceptions


class PaymentError(CateringKernelError):
    """Base exception for payment ledger errors."""

    code: str = "PAYMENT_ERROR"


class InvalidPaymentAmountError(PaymentError):
    """Payment or refund amount is non-positive or non-finite."""

    code: str = "INVALID_PAYMENT_AMOUNT"

    def __init__(self, booking_id: str, amount: Any):
        self.booking_id = booking_id
        self.amount = str(amount)
        super().__init__(
            f"Invalid payment amount for booking {booking_id}: {amount}"
        )


class PaymentOnCancelledBookingError(PaymentError):
    """Payment recorded against a cancelled or refunded booking."""

    code: str = "PAYMENT_ON_CANCELLED_BOOKING"

    def __init__(self, booking_id: str, payment_status: str | None):
        self.booking_id = booking_id
        self.payment_status = payment_status
        super().__init__(
            f"Booking {booking_id} is cancelled (payment status {payment_status}); "
            f"payments are not accepted"
        )


class RefundExceedsPaidError(PaymentError):
    """Refund amount is larger than what the customer has paid."""

    code: str = "REFUND_EXCEEDS_PAID"

    def __init__(self, booking_id: str, refund_amount: str, amount_paid: str):
        self.booking_id = booking_id
        self.refund_amount = refund_amount
        self.amount_paid = amount_paid
        super().__init__(
            f"Refund of {refund_amount} exceeds amount paid {amount_paid} "
            f"for booking {booking_id}"
        )


# Configuration exceptions


class ConfigurationError(CateringKernelError):
    """Base exception for rates configuration errors."""

    code: str = "CONFIGURATION_ERROR"


class InvalidRatesConfigError(ConfigurationError):
    """Rates configuration is structurally inconsistent."""

    code: str = "INVALID_RATES_CONFIG"

    def __init__(self, problems: Sequence[str]):
        self.problems = tuple(problems)
        super().__init__(
            f"Rates configuration has {len(self.problems)} problem(s): "
            + "; ".join(self.problems)
        )
