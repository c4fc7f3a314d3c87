"""
BookingRepository -- persistence contract for the booking collection.

Responsibility:
    Defines the snapshot the service layer reads and replaces (bookings,
    staff registry, customer payments, labor payments), the change event
    published after every save, and an in-memory implementation.

Architecture position:
    Kernel > Services -- imperative shell.  Engines never see a repository;
    the service façade loads a snapshot, computes, and saves the result.

Invariants enforced:
    - Writes are whole-snapshot replacements.  A save either stores the
      entire new snapshot or raises, leaving the old one in place.
    - Change listeners run after the write.  A failing listener is logged
      and does not affect the save or other listeners.

Failure modes:
    - Exceptions from ``_write`` propagate to the caller unchanged.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Iterable

from catering_kernel.domain.booking import Booking
from catering_kernel.domain.records import CustomerPaymentRecord, LaborPaymentRecord
from catering_kernel.domain.staff import StaffRecord
from catering_kernel.exceptions import BookingNotFoundError
from catering_kernel.logging_config import get_logger

logger = get_logger("services.booking_repository")


class ChangeKind(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    STAFF = "staff"


@dataclass(frozen=True)
class BookingCollectionChanged:
    """Published after a save, naming what changed."""
    kind: ChangeKind
    booking_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class BookingSnapshot:
    """Immutable view of everything the booking services read and write."""
    bookings: tuple[Booking, ...] = ()
    staff: tuple[StaffRecord, ...] = ()
    customer_payments: tuple[CustomerPaymentRecord, ...] = ()
    labor_payments: tuple[LaborPaymentRecord, ...] = ()

    def find(self, booking_id: str) -> Booking | None:
        for booking in self.bookings:
            if booking.id == booking_id:
                return booking
        return None

    def get(self, booking_id: str) -> Booking:
        booking = self.find(booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        return booking

    def with_booking(self, booking: Booking) -> "BookingSnapshot":
        """Insert or replace ``booking``, keeping collection order."""
        if self.find(booking.id) is None:
            return replace(self, bookings=(*self.bookings, booking))
        return replace(
            self,
            bookings=tuple(booking if b.id == booking.id else b for b in self.bookings),
        )

    def without_booking(self, booking_id: str) -> "BookingSnapshot":
        """Drop a booking together with its payment and labor records."""
        return BookingSnapshot(
            bookings=tuple(b for b in self.bookings if b.id != booking_id),
            staff=self.staff,
            customer_payments=tuple(
                p for p in self.customer_payments if p.booking_id != booking_id
            ),
            labor_payments=tuple(
                p for p in self.labor_payments if p.booking_id != booking_id
            ),
        )

    def payments_for(self, booking_id: str) -> tuple[CustomerPaymentRecord, ...]:
        return tuple(p for p in self.customer_payments if p.booking_id == booking_id)

    def labor_for(self, booking_id: str) -> tuple[LaborPaymentRecord, ...]:
        return tuple(p for p in self.labor_payments if p.booking_id == booking_id)

    def with_payment(self, record: CustomerPaymentRecord) -> "BookingSnapshot":
        return replace(self, customer_payments=(*self.customer_payments, record))

    def with_labor_for(
        self,
        booking_id: str,
        records: Iterable[LaborPaymentRecord],
    ) -> "BookingSnapshot":
        """Replace every labor record of ``booking_id`` with ``records``."""
        kept = tuple(p for p in self.labor_payments if p.booking_id != booking_id)
        return replace(self, labor_payments=(*kept, *records))

    def with_staff(self, staff: Iterable[StaffRecord]) -> "BookingSnapshot":
        return replace(self, staff=tuple(staff))


Listener = Callable[[BookingCollectionChanged], None]


class BookingRepository(ABC):
    """
    Load/save contract with change subscription.

    Contract:
        ``load`` returns the current snapshot.  ``save`` replaces it and then
        notifies subscribers with ``change``.  ``subscribe`` returns a
        callable that removes the listener.
    """

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    @abstractmethod
    def load(self) -> BookingSnapshot:
        ...

    @abstractmethod
    def _write(self, snapshot: BookingSnapshot) -> None:
        ...

    def save(self, snapshot: BookingSnapshot, change: BookingCollectionChanged) -> None:
        self._write(snapshot)
        logger.debug(
            "booking_snapshot_saved",
            extra={
                "change_kind": change.kind.value,
                "booking_ids": list(change.booking_ids),
                "booking_count": len(snapshot.bookings),
            },
        )
        self._notify(change)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, change: BookingCollectionChanged) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.warning(
                    "booking_change_listener_failed",
                    extra={"change_kind": change.kind.value},
                    exc_info=True,
                )


class InMemoryBookingRepository(BookingRepository):
    """Repository backed by a single in-process snapshot."""

    def __init__(self, initial: BookingSnapshot | None = None) -> None:
        super().__init__()
        self._snapshot = initial or BookingSnapshot()

    def load(self) -> BookingSnapshot:
        return self._snapshot

    def _write(self, snapshot: BookingSnapshot) -> None:
        self._snapshot = snapshot
