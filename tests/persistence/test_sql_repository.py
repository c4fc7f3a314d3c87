"""
Tests for the SQLAlchemy-backed booking repository.

Uses an in-memory SQLite database per test.  Timestamps on payment and
labor rows are left unset because SQLite drops timezone information.
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import SQLAlchemyError

from catering_kernel.domain.booking import BookingStatus, StaffAssignment
from catering_kernel.domain.records import (
    CustomerPaymentRecord,
    LaborPaymentRecord,
    PaymentMethod,
    PaymentType,
)
from catering_kernel.domain.staff import StaffRole, TimeWindow
from catering_kernel.services.booking_repository import (
    BookingCollectionChanged,
    BookingSnapshot,
    ChangeKind,
)
from catering_kernel.services.sql_repository import SqlBookingRepository
from catering_services.booking_service import BookingService


@pytest.fixture
def sql_repository(session_factory):
    return SqlBookingRepository(session_factory)


@pytest.fixture
def payment():
    return CustomerPaymentRecord(
        id="pay-1",
        booking_id="bk-1",
        payment_date=date(2024, 1, 5),
        amount=Decimal("504.00"),
        type=PaymentType.DEPOSIT,
        method=PaymentMethod.ZELLE,
        notes="deposit",
    )


@pytest.fixture
def labor():
    return LaborPaymentRecord(
        id="labor-bk-1-0",
        booking_id="bk-1",
        staff_id="S1",
        role=StaffRole.LEAD_CHEF,
        amount=Decimal("287.00"),
        event_date=date(2024, 6, 1),
    )


@pytest.fixture
def saved_snapshot(sql_repository, make_booking, staff_registry, full_crew, payment, labor):
    staff = tuple(
        replace(
            s,
            unavailable_dates=frozenset({date(2024, 7, 4)}),
            availability_hours={"saturday": TimeWindow("10:00", "22:00")},
        )
        if s.id == "S1"
        else s
        for s in staff_registry
    )
    snapshot = BookingSnapshot(
        bookings=(
            make_booking(staff_assignments=full_crew),
            make_booking(id="bk-2", event_date=date(2024, 7, 1)),
        ),
        staff=staff,
        customer_payments=(payment,),
        labor_payments=(labor,),
    )
    sql_repository.save(snapshot, BookingCollectionChanged(ChangeKind.CREATED, ("bk-1", "bk-2")))
    return snapshot


class TestSqlBookingRepository:
    def test_empty_database(self, sql_repository):
        assert sql_repository.load() == BookingSnapshot()

    def test_round_trip(self, sql_repository, saved_snapshot):
        loaded = sql_repository.load()

        assert loaded.bookings == saved_snapshot.bookings
        assert loaded.staff == saved_snapshot.staff
        assert loaded.customer_payments == saved_snapshot.customer_payments
        assert loaded.labor_payments == saved_snapshot.labor_payments

    def test_update_in_place(self, sql_repository, saved_snapshot):
        confirmed = replace(saved_snapshot.get("bk-1"), status=BookingStatus.CONFIRMED)
        sql_repository.save(
            saved_snapshot.with_booking(confirmed),
            BookingCollectionChanged(ChangeKind.UPDATED, ("bk-1",)),
        )

        loaded = sql_repository.load()

        assert loaded.get("bk-1").status is BookingStatus.CONFIRMED
        assert len(loaded.bookings) == 2

    def test_delete_removes_rows(self, sql_repository, saved_snapshot):
        sql_repository.save(
            saved_snapshot.without_booking("bk-1"),
            BookingCollectionChanged(ChangeKind.DELETED, ("bk-1",)),
        )

        loaded = sql_repository.load()

        assert [b.id for b in loaded.bookings] == ["bk-2"]
        assert loaded.customer_payments == ()
        assert loaded.labor_payments == ()

    def test_failed_save_keeps_previous_snapshot(self, sql_repository, saved_snapshot, payment):
        broken = replace(saved_snapshot, customer_payments=(payment, payment))

        with pytest.raises(SQLAlchemyError):
            sql_repository.save(broken, BookingCollectionChanged(ChangeKind.UPDATED, ("bk-1",)))

        assert sql_repository.load().customer_payments == (payment,)

    def test_subscribers_notified_after_save(self, sql_repository, make_booking):
        seen = []
        sql_repository.subscribe(lambda change: seen.append((change, len(sql_repository.load().bookings))))

        sql_repository.save(
            BookingSnapshot(bookings=(make_booking(),)),
            BookingCollectionChanged(ChangeKind.CREATED, ("bk-1",)),
        )

        assert seen == [(BookingCollectionChanged(ChangeKind.CREATED, ("bk-1",)), 1)]


class TestServiceOverSql:
    """The booking service works unchanged over the SQL repository."""

    def test_complete_and_reload(
        self, session_factory, rules, deterministic_clock, staff_registry, make_booking, full_crew
    ):
        repository = SqlBookingRepository(session_factory)
        service = BookingService(repository, rules, clock=deterministic_clock)
        service.save_staff(staff_registry)
        service.create_booking(make_booking(staff_assignments=full_crew))

        service.complete("bk-1").result.raise_for_status()

        reloaded = SqlBookingRepository(session_factory).load()
        booking = reloaded.get("bk-1")
        assert booking.status is BookingStatus.COMPLETED
        assert booking.locked is True
        assert [r.amount for r in reloaded.labor_for("bk-1")] == [
            Decimal("287.00"),
            Decimal("217.00"),
            Decimal("238.00"),
        ]

    def test_legacy_payload_normalized(self, sql_repository, session_factory, make_booking):
        from catering_kernel.db.engine import session_scope
        from catering_kernel.models import BookingModel

        sql_repository.save(
            BookingSnapshot(bookings=(make_booking(),)),
            BookingCollectionChanged(ChangeKind.CREATED, ("bk-1",)),
        )
        with session_scope(session_factory) as session:
            row = session.get(BookingModel, "bk-1")
            payload = dict(row.payload)
            payload.pop("status")
            payload["service_status"] = "confirmed"
            row.payload = payload

        assert sql_repository.load().get("bk-1").status is BookingStatus.CONFIRMED
