"""
Module: catering_kernel.models.booking
Responsibility: ORM persistence for bookings.
Architecture position: Kernel > Models.  May import from db/base.py and the
    domain record conversion functions.

Invariants enforced:
    - The full booking is stored as one JSON document (``payload``) written
      by ``booking_to_record``; the scalar columns are query projections of
      that document and are rewritten on every save.
    - Exactly one status column exists.  Legacy payloads carrying
      ``service_status`` are normalized on read.
"""

from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from catering_kernel.db.base import TrackedBase
from catering_kernel.domain.booking import Booking, booking_from_record, booking_to_record


class BookingModel(TrackedBase):
    """One booking row."""

    __tablename__ = "bookings"
    __table_args__ = (
        Index("idx_booking_event_slot", "event_date", "event_time"),
        Index("idx_booking_status", "status"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    event_date: Mapped[date]
    event_time: Mapped[str] = mapped_column(String(5))
    payment_status: Mapped[str | None] = mapped_column(String(30), nullable=True)
    total: Mapped[Decimal]
    amount_paid: Mapped[Decimal]
    locked: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    @classmethod
    def from_domain(cls, booking: Booking) -> "BookingModel":
        row = cls(id=booking.id)
        row.apply(booking)
        return row

    def apply(self, booking: Booking) -> None:
        self.status = booking.status.value
        self.event_date = booking.event_date
        self.event_time = booking.event_time
        self.payment_status = booking.payment_status.value if booking.payment_status else None
        self.total = booking.total
        self.amount_paid = booking.amount_paid
        self.locked = booking.locked
        self.payload = booking_to_record(booking)

    def to_domain(self) -> Booking:
        return booking_from_record(self.payload)

    def __repr__(self) -> str:
        return f"<Booking {self.id} {self.status} {self.event_date} {self.event_time}>"
