"""
Module: catering_kernel.models.payments
Responsibility: ORM persistence for customer payment records and labor
    payment records.
Architecture position: Kernel > Models.

Invariants enforced:
    - Both tables are keyed by application ids; labor rows use
      ``labor-{booking_id}-{slot_index}``.
    - Rows reference bookings by id only.  Deleting a booking removes its
      rows through the repository, not through cascades.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from catering_kernel.db.base import Base
from catering_kernel.domain.records import (
    CustomerPaymentRecord,
    LaborPaymentRecord,
    PaymentMethod,
    PaymentType,
)
from catering_kernel.domain.staff import StaffRole


class CustomerPaymentModel(Base):
    """Append-only customer payment or refund."""

    __tablename__ = "customer_payments"
    __table_args__ = (Index("idx_customer_payment_booking", "booking_id"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    booking_id: Mapped[str] = mapped_column(String(64), nullable=False)
    payment_date: Mapped[date]
    amount: Mapped[Decimal]
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    method: Mapped[str] = mapped_column(String(20), nullable=False)
    notes: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[datetime | None]

    @classmethod
    def from_domain(cls, record: CustomerPaymentRecord) -> "CustomerPaymentModel":
        return cls(
            id=record.id,
            booking_id=record.booking_id,
            payment_date=record.payment_date,
            amount=record.amount,
            type=record.type.value,
            method=record.method.value,
            notes=record.notes,
            created_at=record.created_at,
        )

    def to_domain(self) -> CustomerPaymentRecord:
        return CustomerPaymentRecord(
            id=self.id,
            booking_id=self.booking_id,
            payment_date=self.payment_date,
            amount=self.amount,
            type=PaymentType(self.type),
            method=PaymentMethod.parse(self.method),
            notes=self.notes or "",
            created_at=self.created_at,
        )


class LaborPaymentModel(Base):
    """Labor payout snapshot taken at completion."""

    __tablename__ = "labor_payments"
    __table_args__ = (Index("idx_labor_payment_booking", "booking_id"),)

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    booking_id: Mapped[str] = mapped_column(String(64), nullable=False)
    staff_id: Mapped[str] = mapped_column(String(64), nullable=False)
    role: Mapped[str] = mapped_column(String(30), nullable=False)
    amount: Mapped[Decimal]
    event_date: Mapped[date]
    recorded_at: Mapped[datetime | None]

    @classmethod
    def from_domain(cls, record: LaborPaymentRecord) -> "LaborPaymentModel":
        return cls(
            id=record.id,
            booking_id=record.booking_id,
            staff_id=record.staff_id,
            role=record.role.value,
            amount=record.amount,
            event_date=record.event_date,
            recorded_at=record.recorded_at,
        )

    def to_domain(self) -> LaborPaymentRecord:
        return LaborPaymentRecord(
            id=self.id,
            booking_id=self.booking_id,
            staff_id=self.staff_id,
            role=StaffRole(self.role),
            amount=self.amount,
            event_date=self.event_date,
            recorded_at=self.recorded_at,
        )
