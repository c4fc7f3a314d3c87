"""
Pytest fixtures for the catering test suite.

Provides:
- Structured logging for the whole session and captured JSON log records
- A deterministic clock and the default business rules
- A staff registry, booking factories and an in-memory repository
- SQLite in-memory sessions for persistence tests
"""

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO

import pytest

from catering_config import get_active_rules, merge_overrides
from catering_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from catering_kernel.domain.booking import Booking, StaffAssignment
from catering_kernel.domain.clock import DeterministicClock
from catering_kernel.domain.staff import StaffRecord, StaffRole, StaffStatus
from catering_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from catering_kernel.services.booking_repository import (
    BookingSnapshot,
    InMemoryBookingRepository,
)
from catering_services.booking_service import BookingService


EVENT_DATE = date(2024, 6, 1)
EVENT_TIME = "18:00"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture catering_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, service):
            service.complete("bk-1")
            logs = captured_logs()
            assert any(r["message"] == "booking_transition" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("catering_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Clock and rules
# =============================================================================


@pytest.fixture
def deterministic_clock():
    """Provide a deterministic clock for testing (2024-01-01 12:00 UTC)."""
    return DeterministicClock(datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture(scope="session")
def default_rules():
    """The bundled default rules, as loaded at runtime."""
    return get_active_rules()


@pytest.fixture(scope="session")
def rules(default_rules):
    """Default rules with a $70 adult rate and 10 free miles."""
    return merge_overrides(
        default_rules,
        {"pricing": {"primary_base_price": 70}, "distance": {"free_miles": 10}},
    )


# =============================================================================
# Staff and bookings
# =============================================================================


@pytest.fixture
def staff_registry():
    """S1 lead, S2 full, S3 assistant, S4 inactive lead, S5 buffet chef."""
    return (
        StaffRecord(id="S1", name="Sam Lead", primary_role=StaffRole.LEAD_CHEF),
        StaffRecord(
            id="S2",
            name="Jo Full",
            primary_role=StaffRole.FULL_CHEF,
            secondary_roles=(StaffRole.BUFFET_CHEF,),
        ),
        StaffRecord(id="S3", name="Kit Assist", primary_role=StaffRole.ASSISTANT),
        StaffRecord(
            id="S4",
            name="Lee Gone",
            primary_role=StaffRole.LEAD_CHEF,
            status=StaffStatus.INACTIVE,
        ),
        StaffRecord(id="S5", name="Bo Buffet", primary_role=StaffRole.BUFFET_CHEF),
    )


@pytest.fixture
def full_crew():
    """Assignments filling every slot of a 20-guest private dinner."""
    return (
        StaffAssignment("S1", StaffRole.LEAD_CHEF, slot_id="lead-1"),
        StaffAssignment("S2", StaffRole.FULL_CHEF, slot_id="full-1"),
        StaffAssignment("S3", StaffRole.ASSISTANT, slot_id="assistant-1"),
    )


@pytest.fixture
def make_booking():
    """
    Factory for a priced 20-adult private dinner on 2024-06-01 18:00.

    Money fields match the ``rules`` fixture; keyword arguments override
    any field.
    """

    def _make(**overrides) -> Booking:
        values = dict(
            id="bk-1",
            event_type="private-dinner",
            event_date=EVENT_DATE,
            event_time=EVENT_TIME,
            customer_name="Avery Host",
            adults=20,
            children=0,
            distance_miles=Decimal("5"),
            subtotal=Decimal("1400.00"),
            gratuity=Decimal("280.00"),
            distance_fee=Decimal("0.00"),
            total=Decimal("1680.00"),
            balance_due_amount=Decimal("1680.00"),
        )
        values.update(overrides)
        return Booking(**values)

    return _make


@pytest.fixture
def make_snapshot(staff_registry):
    def _make(*bookings: Booking, labor=()) -> BookingSnapshot:
        return BookingSnapshot(
            bookings=tuple(bookings),
            staff=staff_registry,
            labor_payments=tuple(labor),
        )

    return _make


@pytest.fixture
def repository(staff_registry):
    return InMemoryBookingRepository(BookingSnapshot(staff=staff_registry))


@pytest.fixture
def service(repository, rules, deterministic_clock):
    return BookingService(repository, rules, clock=deterministic_clock)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def session_factory():
    """Fresh in-memory SQLite database with all tables created."""
    engine = init_engine_from_url("sqlite://")
    create_tables(engine)
    yield get_session_factory()
    reset_engine()
