"""
Tests for the booking domain model.

Covers:
- Canonical status normalization against the legacy service_status field
- Lock derivation
- Record conversion (import files, persisted payloads)
- Read-time derivations: pipeline stage, purchase-by date, staff id helpers
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from catering_kernel.domain.booking import (
    AssignmentStatus,
    BookingStatus,
    DiscountType,
    MenuPricingSnapshot,
    PaymentStatus,
    PayOverride,
    PipelineStage,
    RateSnapshot,
    StaffAssignment,
    assigned_staff_ids,
    booking_from_record,
    booking_to_record,
    derive_pipeline_stage,
    duplicate_staff_ids,
    is_locked,
    normalize_payment_status,
    normalize_service_status,
    prep_purchase_by_date,
    pricing_source,
)
from catering_kernel.domain.staff import StaffRole


class TestServiceStatus:
    """Exactly one lifecycle status is read, the canonical one first."""

    def test_canonical_status_wins(self):
        record = {"id": "b", "status": "confirmed", "service_status": "completed"}
        assert normalize_service_status(record) is BookingStatus.CONFIRMED

    def test_legacy_field_used_when_canonical_missing(self):
        assert normalize_service_status({"service_status": "completed"}) is BookingStatus.COMPLETED
        assert normalize_service_status({"serviceStatus": "cancelled"}) is BookingStatus.CANCELLED

    def test_unreadable_canonical_falls_back(self, captured_logs):
        record = {"id": "b", "status": "archived", "service_status": "pending"}

        assert normalize_service_status(record) is BookingStatus.PENDING
        assert any(r["message"] == "booking_status_unreadable" for r in captured_logs())

    def test_default_pending(self):
        assert normalize_service_status({}) is BookingStatus.PENDING

    def test_service_status_alias(self, make_booking):
        booking = make_booking(status=BookingStatus.COMPLETED)
        assert booking.service_status is booking.status


class TestPaymentStatusNormalization:
    def test_legacy_values_map(self):
        assert normalize_payment_status("deposit-due") is PaymentStatus.DEPOSIT_PENDING
        assert normalize_payment_status("balance-due") is PaymentStatus.BALANCE_OUTSTANDING

    def test_empty_is_none(self):
        assert normalize_payment_status("") is None
        assert normalize_payment_status(None) is None

    def test_unknown_rejected(self):
        with pytest.raises(ValueError):
            normalize_payment_status("mystery")


class TestLocking:
    def test_completed_without_flag_is_locked(self, make_booking):
        assert is_locked(make_booking(status=BookingStatus.COMPLETED))

    def test_explicit_unlock_wins(self, make_booking):
        assert not is_locked(make_booking(status=BookingStatus.COMPLETED, locked=False))

    def test_explicit_lock_on_pending(self, make_booking):
        assert is_locked(make_booking(locked=True))

    def test_pending_unlocked_by_default(self, make_booking):
        assert not is_locked(make_booking())


class TestRecordConversion:
    """Bookings survive the JSON record round trip used for persistence."""

    def test_round_trip(self, make_booking):
        booking = make_booking(
            status=BookingStatus.CONFIRMED,
            payment_status=PaymentStatus.DEPOSIT_RECEIVED,
            deposit_percent=Decimal("30"),
            deposit_amount=Decimal("504.00"),
            deposit_due_date=date(2024, 1, 1),
            amount_paid=Decimal("504.00"),
            confirmed_at=datetime(2024, 1, 1, 12, tzinfo=timezone.utc),
            staff_assignments=(
                StaffAssignment("S1", StaffRole.LEAD_CHEF, slot_id="lead-1",
                                status=AssignmentStatus.CONFIRMED),
            ),
            pay_overrides=(PayOverride("lead-1", Decimal("20"), Decimal("30"), cap=Decimal("300")),),
            menu_pricing_snapshot=MenuPricingSnapshot("menu-9", subtotal_override=Decimal("1200")),
            rate_snapshot=RateSnapshot(Decimal("70.00"), Decimal("35.00"), Decimal("20")),
        )

        assert booking_from_record(booking_to_record(booking)) == booking

    def test_record_has_single_status_field(self, make_booking):
        record = booking_to_record(make_booking())

        assert record["status"] == "pending"
        assert "service_status" not in record

    def test_legacy_import_record(self):
        booking = booking_from_record(
            {
                "id": "legacy-1",
                "event_type": "buffet",
                "event_date": "2024-06-01T00:00:00Z",
                "event_time": "12:00",
                "adults": "30",
                "serviceStatus": "confirmed",
                "payment_status": "deposit-paid",
                "discount_type": "percent",
                "discount_value": "10",
                "total": "NaN",
                "staff_assignments": [{"staffId": "S5", "role": "buffet-chef", "estimatedPay": 90}],
            }
        )

        assert booking.status is BookingStatus.CONFIRMED
        assert booking.payment_status is PaymentStatus.DEPOSIT_RECEIVED
        assert booking.event_date == date(2024, 6, 1)
        assert booking.adults == 30
        assert booking.discount.type is DiscountType.PERCENT
        assert booking.total == Decimal("0")
        assert booking.staff_assignments[0].staff_id == "S5"
        assert booking.staff_assignments[0].slot_id is None

    def test_missing_identity_raises(self):
        with pytest.raises(KeyError):
            booking_from_record({"event_type": "buffet", "event_date": "2024-06-01"})


class TestDerivations:
    def test_pipeline_stage(self, make_booking):
        assert derive_pipeline_stage(make_booking(source="inquiry")) is PipelineStage.INQUIRY
        assert derive_pipeline_stage(make_booking()) is PipelineStage.QUOTE_SENT
        assert derive_pipeline_stage(make_booking(status=BookingStatus.CONFIRMED)) is PipelineStage.BOOKED
        assert derive_pipeline_stage(make_booking(status=BookingStatus.COMPLETED)) is PipelineStage.COMPLETED

    def test_prep_purchase_by_date(self):
        assert prep_purchase_by_date(date(2024, 6, 1)) == date(2024, 5, 30)
        assert prep_purchase_by_date(date(2024, 6, 1), lead_days=5) == date(2024, 5, 27)

    def test_pricing_source(self, make_booking):
        assert pricing_source(make_booking()) == "rules"
        assert pricing_source(make_booking(menu_pricing_snapshot=MenuPricingSnapshot("m"))) == "menu"

    def test_staff_id_helpers(self):
        assignments = (
            StaffAssignment("S1", StaffRole.LEAD_CHEF),
            StaffAssignment("", StaffRole.FULL_CHEF),
            StaffAssignment("S2", StaffRole.FULL_CHEF),
            StaffAssignment("S1", StaffRole.ASSISTANT),
        )

        assert assigned_staff_ids(assignments) == ["S1", "S2"]
        assert duplicate_staff_ids(assignments) == ["S1"]
