"""
catering_services.booking_workflow -- booking lifecycle state machine.

Responsibility:
    Applies status transitions to a booking inside a full collection
    snapshot: pending -> confirmed -> completed, demotions, and
    cancellation.  Evaluates the transition gates (lock, scheduling
    conflicts, staffing completeness), applies deposit terms on
    confirmation, snapshots labor payouts on completion and releases them
    on demotion.  Also owns explicit lock / unlock.

Architecture position:
    Services layer.  Pure with respect to I/O: takes a ``BookingSnapshot``
    and returns a new one; the booking service persists it.  Delegates
    all arithmetic to ``catering_engines``.

Invariants enforced:
    - Only transitions declared in ``BOOKING_WORKFLOW`` are accepted.
    - Gate failures are collected, never fail-fast, and leave the booking
      and snapshot unchanged (atomic).
    - A booking reaches ``completed`` only when every staffing slot holds
      a distinct, active registry member with no double-booking.
    - Labor record ids are ``labor-{booking_id}-{slot_index}``; a repeat
      completion replaces rather than duplicates and keeps the original
      ``recorded_at`` of unchanged payouts.
    - Leaving ``completed`` removes the booking's labor records.
    - A locked booking only accepts transitions without the ``not_locked``
      guard and ``unlock``.

Failure modes:
    - ``BookingNotFoundError``: unknown booking id.
    - ``InvalidTransitionError``: transition not declared in the workflow.
    - ``BookingLockedError``: guarded transition on a locked booking.
    - ``TransitionRejectedError``: only from ``TransitionResult.raise_for_status``.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal

from catering_config.schema import RatesConfig
from catering_engines.conflicts import StaffConflict, find_staff_conflicts
from catering_engines.financials import EventFinancials, calculate_booking_financials
from catering_engines.payment_status import (
    balance_due,
    deposit_percent_for,
    derive_payment_status,
)
from catering_engines.staffing import bind_assignments
from catering_kernel.domain.booking import (
    AssignmentStatus,
    Booking,
    BookingStatus,
    StaffAssignment,
    assigned_staff_ids,
    duplicate_staff_ids,
    is_locked,
)
from catering_kernel.domain.clock import Clock, SystemClock
from catering_kernel.domain.issues import IssueKind, TransitionIssue
from catering_kernel.domain.records import LaborPaymentRecord, labor_record_id
from catering_kernel.domain.staff import build_staff_index
from catering_kernel.domain.values import percent_of, round_money
from catering_kernel.domain.workflow import BOOKING_WORKFLOW, NOT_LOCKED, Workflow
from catering_kernel.exceptions import (
    BookingLockedError,
    InvalidTransitionError,
    TransitionRejectedError,
)
from catering_kernel.logging_config import LogContext, get_logger
from catering_kernel.services.booking_repository import BookingSnapshot

logger = get_logger("services.booking_workflow")

TRACE_TYPE_BOOKING_TRANSITION = "BOOKING_TRANSITION"
OUTCOME_SUCCESS = "success"
OUTCOME_REJECTED = "rejected"


@dataclass(frozen=True)
class TransitionResult:
    """
    Outcome of one transition attempt.

    On rejection ``booking`` and ``snapshot`` are the unchanged inputs and
    ``issues`` lists every reason the transition was refused.
    """

    booking_id: str
    from_status: BookingStatus
    to_status: BookingStatus
    booking: Booking
    snapshot: BookingSnapshot
    issues: tuple[TransitionIssue, ...] = ()
    conflicts: tuple[StaffConflict, ...] = ()
    labor_records: tuple[LaborPaymentRecord, ...] = ()

    @property
    def succeeded(self) -> bool:
        return not any(issue.blocking for issue in self.issues)

    def raise_for_status(self) -> "TransitionResult":
        if not self.succeeded:
            raise TransitionRejectedError(
                self.booking_id, self.to_status.value, self.issues, self.conflicts
            )
        return self


def conflict_issues(conflicts: list[StaffConflict]) -> list[TransitionIssue]:
    return [
        TransitionIssue(IssueKind.SCHEDULING_CONFLICT, conflict.describe(), subject=conflict.staff_id)
        for conflict in conflicts
    ]


def apply_confirmation_terms(
    booking: Booking,
    now: datetime,
    default_deposit_percent: Decimal,
) -> Booking:
    """
    Confirm ``booking`` and fix its payment terms.

    ``deposit_amount = total x deposit_percent / 100`` with the booking's
    own percent when set.  Due dates and ``confirmed_at`` are only filled
    when missing.
    """
    percent = deposit_percent_for(booking, default_deposit_percent)
    confirmed = replace(
        booking,
        status=BookingStatus.CONFIRMED,
        deposit_percent=percent,
        deposit_amount=round_money(percent_of(booking.total, percent)),
        deposit_due_date=booking.deposit_due_date or now.date(),
        balance_due_date=booking.balance_due_date or booking.event_date,
        balance_due_amount=balance_due(booking.total, booking.amount_paid),
        confirmed_at=booking.confirmed_at or now,
        updated_at=now,
    )
    if confirmed.payment_status is None or not confirmed.payment_status.is_terminal:
        confirmed = replace(
            confirmed,
            payment_status=derive_payment_status(
                replace(confirmed, payment_status=None), now.date(), default_deposit_percent
            ),
        )
    return confirmed


def _with_assignment_status(
    assignments: tuple[StaffAssignment, ...],
    status: AssignmentStatus,
) -> tuple[StaffAssignment, ...]:
    return tuple(replace(a, status=status) for a in assignments)


class BookingWorkflowStateMachine:
    """
    Drives bookings through ``BOOKING_WORKFLOW``.

    Every call reads the snapshot it is given; staff indexes and conflict
    scans are rebuilt per call.
    """

    def __init__(
        self,
        config: RatesConfig,
        clock: Clock | None = None,
        workflow: Workflow = BOOKING_WORKFLOW,
    ):
        self._config = config
        self._clock = clock or SystemClock()
        self._workflow = workflow

    @property
    def default_deposit_percent(self) -> Decimal:
        return self._config.pricing.default_deposit_percent

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def transition(
        self,
        snapshot: BookingSnapshot,
        booking_id: str,
        to_status: BookingStatus | str,
    ) -> TransitionResult:
        target = BookingStatus(to_status)
        booking = snapshot.get(booking_id)
        transition = self._workflow.find(booking.status.value, target.value)
        if transition is None:
            raise InvalidTransitionError(booking_id, booking.status.value, target.value)
        if NOT_LOCKED in transition.guards and is_locked(booking):
            raise BookingLockedError(booking_id, transition.action)

        with LogContext.bind(booking_id=booking_id, operation=transition.action):
            t0 = time.monotonic()
            if target is BookingStatus.COMPLETED:
                result = self._complete(snapshot, booking)
            elif target is BookingStatus.CONFIRMED:
                result = self._confirm(snapshot, booking)
            else:
                result = self._demote(snapshot, booking, target)
            self._trace(result, transition.action, (time.monotonic() - t0) * 1000)
        return result

    def confirm(self, snapshot: BookingSnapshot, booking_id: str) -> TransitionResult:
        return self.transition(snapshot, booking_id, BookingStatus.CONFIRMED)

    def complete(self, snapshot: BookingSnapshot, booking_id: str) -> TransitionResult:
        return self.transition(snapshot, booking_id, BookingStatus.COMPLETED)

    def cancel(self, snapshot: BookingSnapshot, booking_id: str) -> TransitionResult:
        return self.transition(snapshot, booking_id, BookingStatus.CANCELLED)

    def reopen(self, snapshot: BookingSnapshot, booking_id: str) -> TransitionResult:
        return self.transition(snapshot, booking_id, BookingStatus.PENDING)

    def lock(self, snapshot: BookingSnapshot, booking_id: str) -> BookingSnapshot:
        booking = snapshot.get(booking_id)
        logger.info("booking_locked", extra={"booking_id": booking_id})
        return snapshot.with_booking(replace(booking, locked=True, updated_at=self._clock.now()))

    def unlock(self, snapshot: BookingSnapshot, booking_id: str) -> BookingSnapshot:
        booking = snapshot.get(booking_id)
        logger.info("booking_unlocked", extra={"booking_id": booking_id})
        return snapshot.with_booking(replace(booking, locked=False, updated_at=self._clock.now()))

    def check_completion(
        self,
        snapshot: BookingSnapshot,
        booking: Booking,
        financials: EventFinancials | None = None,
    ) -> tuple[list[TransitionIssue], list[StaffConflict]]:
        """
        Every reason ``booking`` cannot be completed, in gate order.

        (a) unfilled slots, (b) unknown or inactive staff, (c) duplicate
        staff, (d) assignments that fill no slot of the plan, (e) scheduling
        conflicts.
        """
        financials = financials or calculate_booking_financials(booking, self._config)
        plan = financials.staffing_plan
        bound = bind_assignments(plan, booking.staff_assignments)
        staff_index = build_staff_index(snapshot.staff)

        issues: list[TransitionIssue] = []
        for slot in plan.slots:
            assignment = bound.get(slot.slot_id)
            if assignment is None or not assignment.staff_id:
                issues.append(
                    TransitionIssue(
                        IssueKind.MISSING_ASSIGNMENT,
                        f"No staff assigned to {slot.label} ({slot.slot_id})",
                        subject=slot.label,
                    )
                )

        for staff_id in assigned_staff_ids(booking.staff_assignments):
            record = staff_index.get(staff_id)
            if record is None or not record.is_active:
                reason = "not in the staff registry" if record is None else f"is {record.status.value}"
                issues.append(
                    TransitionIssue(
                        IssueKind.UNRESOLVED_STAFF_REFERENCE,
                        f"Assigned staff {staff_id} {reason}",
                        subject=staff_id,
                    )
                )

        for staff_id in duplicate_staff_ids(booking.staff_assignments):
            issues.append(
                TransitionIssue(
                    IssueKind.DUPLICATE_ASSIGNMENT,
                    f"Staff {staff_id} is assigned more than once",
                    subject=staff_id,
                )
            )

        bound_ids = {id(assignment) for assignment in bound.values()}
        duplicates = set(duplicate_staff_ids(booking.staff_assignments))
        for assignment in booking.staff_assignments:
            if not assignment.staff_id or id(assignment) in bound_ids:
                continue
            if assignment.staff_id in duplicates:
                continue
            if assignment.slot_id and plan.find(assignment.slot_id) is not None:
                holder = bound[assignment.slot_id].staff_id
                message = (
                    f"Staff {assignment.staff_id} claims slot {assignment.slot_id}, "
                    f"already filled by {holder}"
                )
            else:
                message = f"Staff {assignment.staff_id} does not fill any slot of the staffing plan"
            issues.append(
                TransitionIssue(IssueKind.UNBOUND_ASSIGNMENT, message, subject=assignment.staff_id)
            )

        conflicts = self._conflicts(snapshot, booking)
        issues.extend(conflict_issues(conflicts))
        return issues, conflicts

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _conflicts(self, snapshot: BookingSnapshot, booking: Booking) -> list[StaffConflict]:
        return find_staff_conflicts(
            snapshot.bookings,
            booking.event_date,
            booking.event_time,
            assigned_staff_ids(booking.staff_assignments),
            exclude_booking_id=booking.id,
        )

    def _rejected(
        self,
        snapshot: BookingSnapshot,
        booking: Booking,
        target: BookingStatus,
        issues: list[TransitionIssue],
        conflicts: list[StaffConflict],
    ) -> TransitionResult:
        return TransitionResult(
            booking_id=booking.id,
            from_status=booking.status,
            to_status=target,
            booking=booking,
            snapshot=snapshot,
            issues=tuple(issues),
            conflicts=tuple(conflicts),
        )

    def _confirm(self, snapshot: BookingSnapshot, booking: Booking) -> TransitionResult:
        conflicts = self._conflicts(snapshot, booking)
        if conflicts:
            return self._rejected(
                snapshot, booking, BookingStatus.CONFIRMED, conflict_issues(conflicts), conflicts
            )

        now = self._clock.now()
        confirmed = apply_confirmation_terms(booking, now, self.default_deposit_percent)
        confirmed = replace(
            confirmed,
            staff_assignments=_with_assignment_status(
                booking.staff_assignments, AssignmentStatus.CONFIRMED
            ),
        )
        new_snapshot = snapshot.with_booking(confirmed)
        if booking.status is BookingStatus.COMPLETED:
            new_snapshot = new_snapshot.with_labor_for(booking.id, ())
        return TransitionResult(
            booking_id=booking.id,
            from_status=booking.status,
            to_status=BookingStatus.CONFIRMED,
            booking=confirmed,
            snapshot=new_snapshot,
        )

    def _complete(self, snapshot: BookingSnapshot, booking: Booking) -> TransitionResult:
        financials = calculate_booking_financials(booking, self._config)
        issues, conflicts = self.check_completion(snapshot, booking, financials)
        if issues:
            return self._rejected(snapshot, booking, BookingStatus.COMPLETED, issues, conflicts)

        now = self._clock.now()
        bound = bind_assignments(financials.staffing_plan, booking.staff_assignments)
        prior = {record.id: record for record in snapshot.labor_for(booking.id)}
        slot_of = {id(assignment): slot_id for slot_id, assignment in bound.items()}

        records: list[LaborPaymentRecord] = []
        for slot in financials.staffing_plan.slots:
            assignment = bound[slot.slot_id]
            compensation = financials.compensation_for(slot.slot_id)
            record = LaborPaymentRecord(
                id=labor_record_id(booking.id, slot.index),
                booking_id=booking.id,
                staff_id=assignment.staff_id,
                role=assignment.role,
                amount=compensation.final_pay,
                event_date=booking.event_date,
                recorded_at=now,
            )
            previous = prior.get(record.id)
            records.append(previous if previous is not None and previous.same_payout(record) else record)

        pay_by_slot = {c.slot_id: c.final_pay for c in financials.labor}
        assignments = []
        for assignment in booking.staff_assignments:
            slot_id = slot_of.get(id(assignment))
            if slot_id is None:
                assignments.append(replace(assignment, status=AssignmentStatus.COMPLETED))
            else:
                assignments.append(
                    replace(
                        assignment,
                        slot_id=slot_id,
                        status=AssignmentStatus.COMPLETED,
                        estimated_pay=pay_by_slot[slot_id],
                    )
                )

        completed = replace(
            booking,
            status=BookingStatus.COMPLETED,
            locked=True,
            confirmed_at=booking.confirmed_at or now,
            staff_assignments=tuple(assignments),
            updated_at=now,
        )
        return TransitionResult(
            booking_id=booking.id,
            from_status=booking.status,
            to_status=BookingStatus.COMPLETED,
            booking=completed,
            snapshot=snapshot.with_booking(completed).with_labor_for(booking.id, records),
            labor_records=tuple(records),
        )

    def _demote(
        self,
        snapshot: BookingSnapshot,
        booking: Booking,
        target: BookingStatus,
    ) -> TransitionResult:
        now = self._clock.now()
        demoted = replace(
            booking,
            status=target,
            staff_assignments=_with_assignment_status(
                booking.staff_assignments, AssignmentStatus.SCHEDULED
            ),
            updated_at=now,
        )
        new_snapshot = snapshot.with_booking(demoted)
        if snapshot.labor_for(booking.id):
            new_snapshot = new_snapshot.with_labor_for(booking.id, ())
        return TransitionResult(
            booking_id=booking.id,
            from_status=booking.status,
            to_status=target,
            booking=demoted,
            snapshot=new_snapshot,
        )

    def _trace(self, result: TransitionResult, action: str, duration_ms: float) -> None:
        logger.info(
            "booking_transition",
            extra={
                "trace_type": TRACE_TYPE_BOOKING_TRANSITION,
                "workflow": self._workflow.name,
                "action": action,
                "from_state": result.from_status.value,
                "to_state": result.to_status.value,
                "outcome": OUTCOME_SUCCESS if result.succeeded else OUTCOME_REJECTED,
                "issue_kinds": [issue.kind.value for issue in result.issues],
                "labor_record_count": len(result.labor_records),
                "duration_ms": round(duration_ms, 3),
            },
        )
