"""
Tests for the booking lifecycle state machine.

Covers:
- Completion gates collected in order, atomic on rejection
- Labor payout snapshot on completion, idempotent on repeat
- Labor release when leaving completed
- Deposit terms on confirmation and the confirmation conflict gate
- Lock / unlock
"""

from datetime import date
from decimal import Decimal

import pytest

from catering_kernel.domain.booking import (
    AssignmentStatus,
    BookingStatus,
    PaymentStatus,
    StaffAssignment,
)
from catering_kernel.domain.issues import IssueKind
from catering_kernel.domain.staff import StaffRole
from catering_kernel.exceptions import (
    BookingLockedError,
    BookingNotFoundError,
    InvalidTransitionError,
    TransitionRejectedError,
)
from catering_services.booking_workflow import BookingWorkflowStateMachine

EVENT_DATE = date(2024, 6, 1)


@pytest.fixture
def machine(rules, deterministic_clock):
    return BookingWorkflowStateMachine(rules, clock=deterministic_clock)


@pytest.fixture
def staffed_snapshot(make_booking, make_snapshot, full_crew):
    return make_snapshot(make_booking(staff_assignments=full_crew))


class TestCompletionGates:
    """Every unmet gate is reported, and nothing changes."""

    def test_all_issues_collected_in_gate_order(self, machine, make_booking, make_snapshot):
        booking = make_booking(
            staff_assignments=(
                StaffAssignment("S4", StaffRole.LEAD_CHEF, slot_id="lead-1"),
                StaffAssignment("S2", StaffRole.FULL_CHEF, slot_id="full-1"),
                StaffAssignment("S2", StaffRole.FULL_CHEF),
            )
        )
        other = make_booking(
            id="bk-2",
            customer_name="Other Party",
            staff_assignments=(StaffAssignment("S2", StaffRole.FULL_CHEF),),
        )
        snapshot = make_snapshot(booking, other)

        result = machine.complete(snapshot, "bk-1")

        assert not result.succeeded
        assert [i.kind for i in result.issues] == [
            IssueKind.MISSING_ASSIGNMENT,
            IssueKind.UNRESOLVED_STAFF_REFERENCE,
            IssueKind.DUPLICATE_ASSIGNMENT,
            IssueKind.SCHEDULING_CONFLICT,
        ]
        assert result.issues[0].subject == "Assistant"
        assert result.issues[1].subject == "S4"
        assert [(c.staff_id, c.booking_id) for c in result.conflicts] == [("S2", "bk-2")]

    def test_rejection_is_atomic(self, machine, make_booking, make_snapshot):
        snapshot = make_snapshot(make_booking())

        result = machine.complete(snapshot, "bk-1")

        assert result.snapshot is snapshot
        assert result.booking is snapshot.get("bk-1")
        assert result.booking.status is BookingStatus.PENDING
        assert result.labor_records == ()

    def test_raise_for_status(self, machine, make_booking, make_snapshot):
        result = machine.complete(make_snapshot(make_booking()), "bk-1")

        with pytest.raises(TransitionRejectedError) as exc_info:
            result.raise_for_status()

        assert exc_info.value.code == "TRANSITION_REJECTED"
        assert len(exc_info.value.issues) == 3

    def test_unknown_staff_reference(self, machine, make_booking, make_snapshot, full_crew):
        crew = (*full_crew[:2], StaffAssignment("S9", StaffRole.ASSISTANT, slot_id="assistant-1"))

        result = machine.complete(make_snapshot(make_booking(staff_assignments=crew)), "bk-1")

        assert [i.kind for i in result.issues] == [IssueKind.UNRESOLVED_STAFF_REFERENCE]
        assert "not in the staff registry" in result.issues[0].message

    def test_second_claim_on_filled_slot_reported(self, machine, make_booking, make_snapshot, full_crew):
        crew = (*full_crew, StaffAssignment("S5", StaffRole.BUFFET_CHEF, slot_id="full-1"))
        snapshot = make_snapshot(make_booking(staff_assignments=crew))

        result = machine.complete(snapshot, "bk-1")

        assert not result.succeeded
        assert [i.kind for i in result.issues] == [IssueKind.UNBOUND_ASSIGNMENT]
        assert result.issues[0].subject == "S5"
        assert result.issues[0].message == "Staff S5 claims slot full-1, already filled by S2"
        assert result.snapshot is snapshot

    def test_assignment_outside_plan_reported(self, machine, make_booking, make_snapshot, full_crew):
        crew = (*full_crew, StaffAssignment("S5", StaffRole.BUFFET_CHEF, slot_id="buffet-1"))

        result = machine.complete(make_snapshot(make_booking(staff_assignments=crew)), "bk-1")

        assert [i.kind for i in result.issues] == [IssueKind.UNBOUND_ASSIGNMENT]
        assert "does not fill any slot" in result.issues[0].message

    def test_rejection_traced(self, machine, make_booking, make_snapshot, captured_logs):
        machine.complete(make_snapshot(make_booking()), "bk-1")

        trace = [r for r in captured_logs() if r["message"] == "booking_transition"][-1]
        assert trace["outcome"] == "rejected"
        assert trace["issue_kinds"] == ["missing_assignment"] * 3
        assert trace["booking_id"] == "bk-1"


class TestCompletion:
    """A successful completion snapshots one labor record per slot."""

    def test_labor_snapshot(self, machine, staffed_snapshot, deterministic_clock):
        result = machine.complete(staffed_snapshot, "bk-1").raise_for_status()

        records = result.snapshot.labor_for("bk-1")
        assert [r.id for r in records] == ["labor-bk-1-0", "labor-bk-1-1", "labor-bk-1-2"]
        assert [r.staff_id for r in records] == ["S1", "S2", "S3"]
        assert [r.amount for r in records] == [
            Decimal("287.00"),
            Decimal("217.00"),
            Decimal("238.00"),
        ]
        assert all(r.event_date == EVENT_DATE for r in records)
        assert all(r.recorded_at == deterministic_clock.now() for r in records)

    def test_completed_booking_is_locked(self, machine, staffed_snapshot):
        booking = machine.complete(staffed_snapshot, "bk-1").booking

        assert booking.status is BookingStatus.COMPLETED
        assert booking.locked is True
        assert booking.confirmed_at is not None
        assert {a.status for a in booking.staff_assignments} == {AssignmentStatus.COMPLETED}
        assert [a.estimated_pay for a in booking.staff_assignments] == [
            Decimal("287.00"),
            Decimal("217.00"),
            Decimal("238.00"),
        ]

    def test_legacy_assignments_bound_by_role(self, machine, make_booking, make_snapshot):
        crew = (
            StaffAssignment("S3", StaffRole.ASSISTANT),
            StaffAssignment("S1", StaffRole.LEAD_CHEF),
            StaffAssignment("S2", StaffRole.FULL_CHEF),
        )

        result = machine.complete(make_snapshot(make_booking(staff_assignments=crew)), "bk-1")

        assert result.succeeded
        assert [a.slot_id for a in result.booking.staff_assignments] == [
            "assistant-1",
            "lead-1",
            "full-1",
        ]

    def test_repeat_completion_is_idempotent(self, machine, staffed_snapshot, deterministic_clock):
        first = machine.complete(staffed_snapshot, "bk-1")
        recorded_at = first.labor_records[0].recorded_at
        deterministic_clock.advance(3600)

        second = machine.complete(first.snapshot, "bk-1")

        assert second.succeeded
        assert len(second.snapshot.labor_payments) == 3
        assert all(r.recorded_at == recorded_at for r in second.snapshot.labor_payments)

    def test_other_bookings_labor_untouched(self, machine, make_booking, make_snapshot, full_crew):
        other = make_booking(id="bk-2", event_date=date(2024, 7, 1), staff_assignments=full_crew)
        snapshot = make_snapshot(make_booking(staff_assignments=full_crew), other)
        snapshot = machine.complete(snapshot, "bk-2").snapshot

        snapshot = machine.complete(snapshot, "bk-1").snapshot

        assert len(snapshot.labor_for("bk-2")) == 3
        assert len(snapshot.labor_payments) == 6


class TestDemotion:
    """Leaving completed releases the labor payouts."""

    def test_reopen_after_unlock(self, machine, staffed_snapshot):
        snapshot = machine.complete(staffed_snapshot, "bk-1").snapshot
        snapshot = machine.unlock(snapshot, "bk-1")

        result = machine.reopen(snapshot, "bk-1")

        assert result.booking.status is BookingStatus.PENDING
        assert result.snapshot.labor_for("bk-1") == ()
        assert {a.status for a in result.booking.staff_assignments} == {AssignmentStatus.SCHEDULED}

    def test_completed_to_confirmed_releases_labor(self, machine, staffed_snapshot):
        snapshot = machine.unlock(machine.complete(staffed_snapshot, "bk-1").snapshot, "bk-1")

        result = machine.confirm(snapshot, "bk-1")

        assert result.booking.status is BookingStatus.CONFIRMED
        assert result.snapshot.labor_for("bk-1") == ()

    def test_cancel(self, machine, make_booking, make_snapshot):
        result = machine.cancel(make_snapshot(make_booking()), "bk-1")

        assert result.booking.status is BookingStatus.CANCELLED


class TestLocking:
    def test_locked_booking_rejects_guarded_transitions(self, machine, staffed_snapshot):
        snapshot = machine.complete(staffed_snapshot, "bk-1").snapshot

        with pytest.raises(BookingLockedError):
            machine.reopen(snapshot, "bk-1")
        with pytest.raises(BookingLockedError):
            machine.cancel(snapshot, "bk-1")

    def test_explicit_lock_on_pending(self, machine, make_booking, make_snapshot):
        snapshot = machine.lock(make_snapshot(make_booking()), "bk-1")

        assert snapshot.get("bk-1").locked is True
        with pytest.raises(BookingLockedError) as exc_info:
            machine.confirm(snapshot, "bk-1")
        assert exc_info.value.operation == "confirm"

    def test_unlock_keeps_status(self, machine, staffed_snapshot):
        snapshot = machine.complete(staffed_snapshot, "bk-1").snapshot

        booking = machine.unlock(snapshot, "bk-1").get("bk-1")

        assert booking.status is BookingStatus.COMPLETED
        assert booking.locked is False


class TestInvalidTransitions:
    def test_cancelled_is_terminal(self, machine, make_booking, make_snapshot):
        snapshot = make_snapshot(make_booking(status=BookingStatus.CANCELLED))

        with pytest.raises(InvalidTransitionError):
            machine.reopen(snapshot, "bk-1")

    def test_pending_to_pending(self, machine, make_booking, make_snapshot):
        with pytest.raises(InvalidTransitionError):
            machine.transition(make_snapshot(make_booking()), "bk-1", "pending")

    def test_unknown_booking(self, machine, make_snapshot):
        with pytest.raises(BookingNotFoundError):
            machine.confirm(make_snapshot(), "missing")


class TestConfirmation:
    """Confirmation fixes deposit terms and refuses double-booked staff."""

    def test_deposit_terms(self, machine, make_booking, make_snapshot, deterministic_clock):
        booking = machine.confirm(make_snapshot(make_booking()), "bk-1").booking

        assert booking.status is BookingStatus.CONFIRMED
        assert booking.deposit_percent == Decimal("30")
        assert booking.deposit_amount == Decimal("504.00")
        assert booking.deposit_due_date == date(2024, 1, 1)
        assert booking.balance_due_date == EVENT_DATE
        assert booking.confirmed_at == deterministic_clock.now()
        assert booking.payment_status is PaymentStatus.DEPOSIT_PENDING

    def test_booking_deposit_percent_wins(self, machine, make_booking, make_snapshot):
        booking = machine.confirm(
            make_snapshot(make_booking(deposit_percent=Decimal("50"))), "bk-1"
        ).booking

        assert booking.deposit_amount == Decimal("840.00")

    def test_existing_due_dates_kept(self, machine, make_booking, make_snapshot):
        booking = machine.confirm(
            make_snapshot(make_booking(deposit_due_date=date(2024, 2, 1))), "bk-1"
        ).booking

        assert booking.deposit_due_date == date(2024, 2, 1)

    def test_assignments_confirmed(self, machine, staffed_snapshot):
        booking = machine.confirm(staffed_snapshot, "bk-1").booking

        assert {a.status for a in booking.staff_assignments} == {AssignmentStatus.CONFIRMED}

    def test_conflict_blocks_confirmation(self, machine, make_booking, make_snapshot):
        mine = make_booking(staff_assignments=(StaffAssignment("S1", StaffRole.LEAD_CHEF),))
        other = make_booking(
            id="bk-2", staff_assignments=(StaffAssignment("S1", StaffRole.LEAD_CHEF),)
        )
        snapshot = make_snapshot(mine, other)

        result = machine.confirm(snapshot, "bk-1")

        assert not result.succeeded
        assert [i.kind for i in result.issues] == [IssueKind.SCHEDULING_CONFLICT]
        assert result.conflicts[0].booking_id == "bk-2"
        assert result.snapshot is snapshot
