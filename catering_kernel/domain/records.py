"""
Ledger records -- customer payments and labor payouts.

Responsibility:
    Immutable records appended by the payment ledger (customer money in)
    and snapshotted by the completion gate (labor money out).

Architecture position:
    Kernel > Domain -- pure data, zero I/O.

Invariants enforced:
    - Customer payment amounts are positive; refunds are stored positive
      with ``type=REFUND``.
    - Labor record ids are ``labor-{booking_id}-{slot_index}`` so a second
      completion of the same booking replaces rather than duplicates.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from catering_kernel.domain.staff import StaffRole


class PaymentType(str, Enum):
    DEPOSIT = "deposit"
    PAYMENT = "payment"
    REFUND = "refund"


class PaymentMethod(str, Enum):
    CASH = "cash"
    ZELLE = "zelle"
    VENMO = "venmo"
    CARD = "card"
    BANK_TRANSFER = "bank-transfer"
    OTHER = "other"

    @classmethod
    def parse(cls, value: "str | PaymentMethod | None") -> "PaymentMethod":
        """Parse a method name; unknown or missing values map to ``OTHER``."""
        if isinstance(value, PaymentMethod):
            return value
        if not value:
            return cls.OTHER
        normalized = str(value).strip().lower().replace("_", "-").replace(" ", "-")
        try:
            return cls(normalized)
        except ValueError:
            return cls.OTHER


@dataclass(frozen=True)
class CustomerPaymentRecord:
    """One customer payment or refund against a booking."""
    id: str
    booking_id: str
    payment_date: date
    amount: Decimal
    type: PaymentType
    method: PaymentMethod = PaymentMethod.OTHER
    notes: str = ""
    created_at: datetime | None = None


@dataclass(frozen=True)
class LaborPaymentRecord:
    """Labor payout owed to one staff member for a completed booking."""
    id: str
    booking_id: str
    staff_id: str
    role: StaffRole
    amount: Decimal
    event_date: date
    recorded_at: datetime | None = None

    def same_payout(self, other: "LaborPaymentRecord") -> bool:
        """True if ``other`` describes the same payout, ignoring timestamps."""
        return (
            self.id == other.id
            and self.staff_id == other.staff_id
            and self.role == other.role
            and self.amount == other.amount
        )


def labor_record_id(booking_id: str, slot_index: int) -> str:
    return f"labor-{booking_id}-{slot_index}"
