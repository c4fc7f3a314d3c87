"""
SqlBookingRepository -- BookingRepository over SQLAlchemy.

Responsibility:
    Reads the booking snapshot from the ``bookings``, ``staff``,
    ``customer_payments`` and ``labor_payments`` tables and writes a new
    snapshot back in a single transaction.

Architecture position:
    Kernel > Services -- imperative shell.  Owns its transaction: each
    ``save`` runs inside ``session_scope`` and commits or rolls back as a
    whole.

Invariants enforced:
    - Rows absent from the new snapshot are deleted; rows present are
      inserted or updated.  A failed save leaves the previous snapshot.
"""

from __future__ import annotations

from typing import Iterable

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from catering_kernel.db.engine import session_scope
from catering_kernel.logging_config import get_logger
from catering_kernel.models import (
    BookingModel,
    CustomerPaymentModel,
    LaborPaymentModel,
    StaffModel,
)
from catering_kernel.services.booking_repository import BookingRepository, BookingSnapshot

logger = get_logger("services.sql_repository")


class SqlBookingRepository(BookingRepository):
    """Booking repository persisted through a SQLAlchemy session factory."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        super().__init__()
        self._session_factory = session_factory

    def load(self) -> BookingSnapshot:
        with session_scope(self._session_factory) as session:
            bookings = session.scalars(
                select(BookingModel).order_by(BookingModel.created_at, BookingModel.id)
            ).all()
            staff = session.scalars(select(StaffModel).order_by(StaffModel.id)).all()
            payments = session.scalars(
                select(CustomerPaymentModel).order_by(
                    CustomerPaymentModel.payment_date, CustomerPaymentModel.id
                )
            ).all()
            labor = session.scalars(
                select(LaborPaymentModel).order_by(LaborPaymentModel.id)
            ).all()
            return BookingSnapshot(
                bookings=tuple(row.to_domain() for row in bookings),
                staff=tuple(row.to_domain() for row in staff),
                customer_payments=tuple(row.to_domain() for row in payments),
                labor_payments=tuple(row.to_domain() for row in labor),
            )

    def _write(self, snapshot: BookingSnapshot) -> None:
        with session_scope(self._session_factory) as session:
            self._sync_bookings(session, snapshot)
            self._replace(session, StaffModel, (StaffModel.from_domain(s) for s in snapshot.staff))
            self._replace(
                session,
                CustomerPaymentModel,
                (CustomerPaymentModel.from_domain(p) for p in snapshot.customer_payments),
            )
            self._replace(
                session,
                LaborPaymentModel,
                (LaborPaymentModel.from_domain(p) for p in snapshot.labor_payments),
            )

    @staticmethod
    def _sync_bookings(session: Session, snapshot: BookingSnapshot) -> None:
        existing = {row.id: row for row in session.scalars(select(BookingModel))}
        keep = {b.id for b in snapshot.bookings}
        for booking_id, row in existing.items():
            if booking_id not in keep:
                session.delete(row)
        for booking in snapshot.bookings:
            row = existing.get(booking.id)
            if row is None:
                session.add(BookingModel.from_domain(booking))
            else:
                row.apply(booking)
        session.flush()

    @staticmethod
    def _replace(session: Session, model: type, rows: Iterable) -> None:
        session.execute(delete(model))
        session.add_all(list(rows))
        session.flush()
