"""
catering_services.booking_service -- booking façade over the repository.

Responsibility:
    The one entry point collaborators call to create, price, staff,
    transition, pay for and delete bookings.  Each operation loads the full
    snapshot, computes the new one through the engines, the state machine
    or the ledger, saves it with a typed change event, and only then runs
    the side-channel hooks.

Architecture position:
    Services layer, the imperative shell.  Owns the repository, the clock
    and the hooks; delegates arithmetic to ``catering_engines`` and state
    rules to ``BookingWorkflowStateMachine`` / ``PaymentLedger``.

Invariants enforced:
    - Read-full-snapshot -> compute -> replace-full-snapshot for every
      mutation; nothing is updated in place.
    - Stored subtotal, gratuity, distance fee, total and balance due are
      always recomputed from the rules on create and update.
    - A hook failure is reported in the outcome and logged; the saved
      snapshot stays as it is.
    - Locked bookings reject every mutation except ``unlock``.

Failure modes:
    - ``BookingNotFoundError``, ``BookingLockedError``,
      ``InvalidTransitionError`` from lookups and the state machine.
    - ``AssignmentRejectedError`` when assignments duplicate or
      double-book staff.
    - ``InvalidPaymentAmountError`` / ``RefundExceedsPaidError`` from the ledger.

Usage:
    service = BookingService(InMemoryBookingRepository(), get_active_rules())
    booking = service.create_booking(draft)
    change = service.change_status(booking.id, BookingStatus.CONFIRMED)
    change.result.raise_for_status()
    service.record_payment(booking.id, Decimal("504.00"))
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Sequence

from catering_config.schema import RatesConfig
from catering_engines.conflicts import StaffConflict, find_staff_conflicts
from catering_engines.financials import (
    EventFinancials,
    calculate_booking_financials,
    calculate_event_financials,
)
from catering_engines.payment_status import (
    balance_due,
    deposit_amount_for,
    derive_payment_status,
    is_overdue,
    payment_display_label,
)
from catering_engines.pricing import PricingInput
from catering_engines.staffing import (
    StaffingPlan,
    bind_assignments,
    migrate_assignment_slot_ids,
    plan_staffing,
)
from catering_kernel.domain.booking import (
    Booking,
    BookingStatus,
    PayOverride,
    PaymentStatus,
    RateSnapshot,
    StaffAssignment,
    assigned_staff_ids,
    duplicate_staff_ids,
    is_locked,
)
from catering_kernel.domain.clock import Clock, SystemClock
from catering_kernel.domain.issues import IssueKind, TransitionIssue
from catering_kernel.domain.records import PaymentMethod, PaymentType
from catering_kernel.domain.staff import StaffRecord, build_staff_index
from catering_kernel.exceptions import AssignmentRejectedError, BookingLockedError
from catering_kernel.logging_config import LogContext, get_logger
from catering_kernel.services.booking_repository import (
    BookingCollectionChanged,
    BookingRepository,
    BookingSnapshot,
    ChangeKind,
)
from catering_services.booking_workflow import BookingWorkflowStateMachine, TransitionResult
from catering_services.hooks import (
    NOTIFICATION_HOOK,
    SHOPPING_LIST_HOOK,
    HookOutcome,
    NotificationDispatcher,
    ShoppingListSynchronizer,
    run_hook,
)
from catering_services.payment_ledger import LedgerResult, PaymentLedger

logger = get_logger("services.booking")

_LIST_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.COMPLETED)


@dataclass(frozen=True)
class AssignmentCheck:
    """
    Pre-submit view of a booking's staff assignments.

    Duplicate and conflict issues block saving; unknown staff, role
    mismatches and unavailability are advisory.
    """

    issues: tuple[TransitionIssue, ...] = ()
    conflicts: tuple[StaffConflict, ...] = ()

    @property
    def blocking(self) -> tuple[TransitionIssue, ...]:
        return tuple(i for i in self.issues if i.blocking)

    @property
    def warnings(self) -> tuple[TransitionIssue, ...]:
        return tuple(i for i in self.issues if not i.blocking)

    @property
    def ok(self) -> bool:
        return not self.blocking


@dataclass(frozen=True)
class StatusChange:
    """A transition result plus the hook calls made after it was saved."""

    result: TransitionResult
    hooks: tuple[HookOutcome, ...] = ()

    @property
    def succeeded(self) -> bool:
        return self.result.succeeded


@dataclass(frozen=True)
class PaymentOutcome:
    result: LedgerResult
    hooks: tuple[HookOutcome, ...] = ()

    @property
    def booking(self) -> Booking:
        return self.result.booking


@dataclass(frozen=True)
class DeleteOutcome:
    booking_id: str
    hooks: tuple[HookOutcome, ...] = ()


@dataclass(frozen=True)
class PaymentSummary:
    """Display values for a booking's payment panel."""

    booking_id: str
    status: PaymentStatus
    label: str
    overdue: bool
    total: Decimal
    amount_paid: Decimal
    balance_due: Decimal
    deposit_amount: Decimal
    deposit_due_date: date | None
    balance_due_date: date | None


class BookingService:
    """Booking operations over a ``BookingRepository``."""

    def __init__(
        self,
        repository: BookingRepository,
        config: RatesConfig,
        clock: Clock | None = None,
        shopping_lists: ShoppingListSynchronizer | None = None,
        notifications: NotificationDispatcher | None = None,
    ):
        self._repository = repository
        self._config = config
        self._clock = clock or SystemClock()
        self._shopping_lists = shopping_lists
        self._notifications = notifications
        self._workflow = BookingWorkflowStateMachine(config, self._clock)
        self._ledger = PaymentLedger(self._clock, config.pricing.default_deposit_percent)

    @property
    def workflow(self) -> BookingWorkflowStateMachine:
        return self._workflow

    @property
    def ledger(self) -> PaymentLedger:
        return self._ledger

    # =========================================================================
    # Reads
    # =========================================================================

    def load(self) -> BookingSnapshot:
        return self._repository.load()

    def get_booking(self, booking_id: str) -> Booking:
        return self._repository.load().get(booking_id)

    def quote(
        self,
        pricing_input: PricingInput,
        staffing_profile_id: str | None = None,
        pay_overrides: Sequence[PayOverride] = (),
    ) -> EventFinancials:
        """Price, staff and pay out an event that is not stored yet."""
        return calculate_event_financials(
            pricing_input,
            self._config,
            staffing_profile_id=staffing_profile_id,
            pay_overrides=pay_overrides,
        )

    def financials_for(self, booking_id: str) -> EventFinancials:
        return calculate_booking_financials(self.get_booking(booking_id), self._config)

    def staffing_plan_for(self, booking: Booking) -> StaffingPlan:
        return plan_staffing(
            guest_count=booking.guest_count,
            event_type=booking.event_type,
            config=self._config,
            staffing_profile_id=booking.staffing_profile_id,
        )

    def payment_summary(self, booking_id: str, today: date | None = None) -> PaymentSummary:
        booking = self.get_booking(booking_id)
        today = today or self._clock.today()
        default_percent = self._config.pricing.default_deposit_percent
        status = derive_payment_status(booking, today, default_percent)
        return PaymentSummary(
            booking_id=booking.id,
            status=status,
            label=payment_display_label(status),
            overdue=is_overdue(booking, today, default_percent),
            total=booking.total,
            amount_paid=booking.amount_paid,
            balance_due=booking.balance_due_amount,
            deposit_amount=deposit_amount_for(booking, default_percent),
            deposit_due_date=booking.deposit_due_date,
            balance_due_date=booking.balance_due_date,
        )

    # =========================================================================
    # Staff assignment checks
    # =========================================================================

    def check_assignments(
        self,
        booking: Booking,
        snapshot: BookingSnapshot | None = None,
    ) -> AssignmentCheck:
        """
        Validate ``booking``'s assignments against the current collection.

        Uses the same duplicate and conflict rules as the completion gate.
        A cancelled booking holds no staff, so it is never checked for
        scheduling conflicts.
        """
        snapshot = snapshot or self._repository.load()
        staff_index = build_staff_index(snapshot.staff)
        plan = self.staffing_plan_for(booking)
        slot_for = {
            id(assignment): plan.find(slot_id)
            for slot_id, assignment in bind_assignments(plan, booking.staff_assignments).items()
        }

        issues: list[TransitionIssue] = []
        for staff_id in duplicate_staff_ids(booking.staff_assignments):
            issues.append(
                TransitionIssue(
                    IssueKind.DUPLICATE_ASSIGNMENT,
                    f"Staff {staff_id} is assigned more than once",
                    subject=staff_id,
                )
            )

        conflicts: list[StaffConflict] = []
        if booking.status is not BookingStatus.CANCELLED:
            conflicts = find_staff_conflicts(
                snapshot.bookings,
                booking.event_date,
                booking.event_time,
                assigned_staff_ids(booking.staff_assignments),
                exclude_booking_id=booking.id,
            )
        for conflict in conflicts:
            record = staff_index.get(conflict.staff_id)
            issues.append(
                TransitionIssue(
                    IssueKind.SCHEDULING_CONFLICT,
                    conflict.describe(record.name if record else None),
                    subject=conflict.staff_id,
                )
            )

        for assignment in booking.staff_assignments:
            if not assignment.staff_id:
                continue
            record = staff_index.get(assignment.staff_id)
            if record is None or not record.is_active:
                issues.append(
                    TransitionIssue(
                        IssueKind.UNRESOLVED_STAFF_REFERENCE,
                        f"Staff {assignment.staff_id} is not an active registry member",
                        subject=assignment.staff_id,
                        blocking=False,
                    )
                )
                continue
            if not record.is_available(booking.event_date, booking.event_time):
                issues.append(
                    TransitionIssue(
                        IssueKind.STAFF_UNAVAILABLE,
                        f"{record.name} is not available on "
                        f"{booking.event_date.isoformat()} at {booking.event_time}",
                        subject=record.id,
                        blocking=False,
                    )
                )
            slot = slot_for.get(id(assignment))
            if slot is not None and not record.can_fill(slot.role):
                issues.append(
                    TransitionIssue(
                        IssueKind.ROLE_MISMATCH,
                        f"{record.name} does not work as {slot.label}",
                        subject=record.id,
                        blocking=False,
                    )
                )
        return AssignmentCheck(issues=tuple(issues), conflicts=tuple(conflicts))

    def _require_assignable(self, booking: Booking, snapshot: BookingSnapshot) -> AssignmentCheck:
        check = self.check_assignments(booking, snapshot)
        if not check.ok:
            raise AssignmentRejectedError(booking.id, check.blocking)
        for warning in check.warnings:
            logger.info(
                "assignment_warning",
                extra={"issue_kind": warning.kind.value, "subject": warning.subject},
            )
        return check

    # =========================================================================
    # Create / update / delete
    # =========================================================================

    def _priced(self, booking: Booking) -> Booking:
        """Recompute stored money fields from the rules in force."""
        now = self._clock.now()
        plan = self.staffing_plan_for(booking)
        financials = calculate_booking_financials(booking, self._config)
        price = financials.price
        priced = replace(
            booking,
            subtotal=price.subtotal,
            gratuity=price.gratuity,
            distance_fee=price.distance_fee,
            total=price.total,
            staff_assignments=migrate_assignment_slot_ids(plan, booking.staff_assignments),
            rate_snapshot=RateSnapshot(
                adult_base_price=price.adult_price,
                child_base_price=price.child_price,
                gratuity_percent=price.gratuity_percent,
                captured_at=now,
            ),
            updated_at=now,
        )
        priced = replace(priced, balance_due_amount=balance_due(priced.total, priced.amount_paid))
        if priced.payment_status is not PaymentStatus.REFUNDED:
            priced = replace(
                priced,
                payment_status=derive_payment_status(
                    replace(priced, payment_status=None),
                    now.date(),
                    self._config.pricing.default_deposit_percent,
                ),
            )
        for warning in financials.warnings:
            logger.warning("booking_safety_limit", extra={"warning": warning})
        return priced

    def create_booking(self, booking: Booking) -> Booking:
        """
        Price and store a new pending booking.

        Raises:
            ValueError: if a booking with the same id already exists.
            AssignmentRejectedError: if assignments duplicate or double-book staff.
        """
        with LogContext.bind(booking_id=booking.id, operation="create_booking"):
            snapshot = self._repository.load()
            if snapshot.find(booking.id) is not None:
                raise ValueError(f"Booking {booking.id} already exists")
            draft = replace(
                booking,
                status=BookingStatus.PENDING,
                created_at=booking.created_at or self._clock.now(),
            )
            created = self._priced(draft)
            self._require_assignable(created, snapshot)
            self._repository.save(
                snapshot.with_booking(created),
                BookingCollectionChanged(ChangeKind.CREATED, (created.id,)),
            )
            logger.info(
                "booking_created",
                extra={"total": str(created.total), "guest_count": created.guest_count},
            )
        return created

    def update_booking(self, booking: Booking) -> Booking:
        """
        Replace a booking's details and reprice it.

        Status, payments and the lock flag are kept from the stored
        booking; those change through their own operations.
        """
        with LogContext.bind(booking_id=booking.id, operation="update_booking"):
            snapshot = self._repository.load()
            stored = snapshot.get(booking.id)
            if is_locked(stored):
                raise BookingLockedError(booking.id, "update_booking")
            draft = replace(
                booking,
                status=stored.status,
                amount_paid=stored.amount_paid,
                payment_status=stored.payment_status,
                confirmed_at=stored.confirmed_at,
                locked=stored.locked,
                created_at=stored.created_at,
            )
            updated = self._priced(draft)
            self._require_assignable(updated, snapshot)
            self._repository.save(
                snapshot.with_booking(updated),
                BookingCollectionChanged(ChangeKind.UPDATED, (updated.id,)),
            )
            logger.info("booking_updated", extra={"total": str(updated.total)})
        return updated

    def assign_staff(
        self,
        booking_id: str,
        assignments: Iterable[StaffAssignment],
    ) -> tuple[Booking, AssignmentCheck]:
        """Replace the assignment list; returns the booking and its advisory check."""
        with LogContext.bind(booking_id=booking_id, operation="assign_staff"):
            snapshot = self._repository.load()
            stored = snapshot.get(booking_id)
            if is_locked(stored):
                raise BookingLockedError(booking_id, "assign_staff")
            plan = self.staffing_plan_for(stored)
            updated = replace(
                stored,
                staff_assignments=migrate_assignment_slot_ids(plan, tuple(assignments)),
                updated_at=self._clock.now(),
            )
            check = self._require_assignable(updated, snapshot)
            self._repository.save(
                snapshot.with_booking(updated),
                BookingCollectionChanged(ChangeKind.UPDATED, (booking_id,)),
            )
            logger.info(
                "staff_assigned",
                extra={"staff_ids": assigned_staff_ids(updated.staff_assignments)},
            )
        return updated, check

    def delete_booking(self, booking_id: str) -> DeleteOutcome:
        """Remove a booking with its payment and labor records, then drop its shopping list."""
        with LogContext.bind(booking_id=booking_id, operation="delete_booking"):
            snapshot = self._repository.load()
            stored = snapshot.get(booking_id)
            if is_locked(stored):
                raise BookingLockedError(booking_id, "delete_booking")
            self._repository.save(
                snapshot.without_booking(booking_id),
                BookingCollectionChanged(ChangeKind.DELETED, (booking_id,)),
            )
            logger.info("booking_deleted")
            hooks = []
            if self._shopping_lists is not None:
                hooks.append(
                    run_hook(SHOPPING_LIST_HOOK, "remove_list", self._shopping_lists.remove_list, booking_id)
                )
        return DeleteOutcome(booking_id, tuple(hooks))

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def change_status(self, booking_id: str, to_status: BookingStatus | str) -> StatusChange:
        """
        Run one workflow transition.

        A rejected transition is returned, not raised, and nothing is saved.
        """
        snapshot = self._repository.load()
        result = self._workflow.transition(snapshot, booking_id, to_status)
        if not result.succeeded:
            logger.info(
                "booking_transition_rejected",
                extra={
                    "booking_id": booking_id,
                    "to_status": result.to_status.value,
                    "issue_count": len(result.issues),
                },
            )
            return StatusChange(result)

        self._repository.save(
            result.snapshot,
            BookingCollectionChanged(ChangeKind.UPDATED, (booking_id,)),
        )
        hooks = self._after_status_change(result.booking, result.from_status)
        return StatusChange(result, hooks)

    def confirm(self, booking_id: str) -> StatusChange:
        return self.change_status(booking_id, BookingStatus.CONFIRMED)

    def complete(self, booking_id: str) -> StatusChange:
        return self.change_status(booking_id, BookingStatus.COMPLETED)

    def cancel(self, booking_id: str) -> StatusChange:
        return self.change_status(booking_id, BookingStatus.CANCELLED)

    def lock(self, booking_id: str) -> Booking:
        snapshot = self._workflow.lock(self._repository.load(), booking_id)
        self._repository.save(snapshot, BookingCollectionChanged(ChangeKind.UPDATED, (booking_id,)))
        return snapshot.get(booking_id)

    def unlock(self, booking_id: str) -> Booking:
        snapshot = self._workflow.unlock(self._repository.load(), booking_id)
        self._repository.save(snapshot, BookingCollectionChanged(ChangeKind.UPDATED, (booking_id,)))
        return snapshot.get(booking_id)

    def _after_status_change(
        self,
        booking: Booking,
        previous: BookingStatus,
    ) -> tuple[HookOutcome, ...]:
        hooks = []
        if booking.status in _LIST_STATUSES and self._shopping_lists is not None:
            hooks.append(
                run_hook(SHOPPING_LIST_HOOK, "ensure_list", self._shopping_lists.ensure_list, booking.id)
            )
        if (
            booking.status is BookingStatus.CONFIRMED
            and previous is not BookingStatus.CONFIRMED
            and self._notifications is not None
        ):
            hooks.append(
                run_hook(
                    NOTIFICATION_HOOK, "send_confirmation", self._notifications.send_confirmation, booking
                )
            )
        return tuple(hooks)

    # =========================================================================
    # Payments
    # =========================================================================

    def record_payment(
        self,
        booking_id: str,
        amount: Any,
        payment_date: date | None = None,
        method: PaymentMethod | str | None = None,
        notes: str = "",
        payment_type: PaymentType | None = None,
    ) -> PaymentOutcome:
        snapshot = self._repository.load()
        booking = snapshot.get(booking_id)
        result = self._ledger.apply_payment(
            booking, amount, payment_date, method, notes, payment_type
        )
        self._repository.save(
            snapshot.with_booking(result.booking).with_payment(result.record),
            BookingCollectionChanged(ChangeKind.UPDATED, (booking_id,)),
        )

        hooks: list[HookOutcome] = []
        if result.auto_confirmed:
            hooks.extend(self._after_status_change(result.booking, booking.status))
        if self._notifications is not None:
            hooks.append(
                run_hook(
                    NOTIFICATION_HOOK,
                    "send_receipt",
                    self._notifications.send_receipt,
                    result.booking,
                    result.record,
                )
            )
        return PaymentOutcome(result, tuple(hooks))

    def record_refund(
        self,
        booking_id: str,
        amount: Any,
        refund_date: date | None = None,
        method: PaymentMethod | str | None = None,
        notes: str = "",
    ) -> PaymentOutcome:
        """Refund and cancel; any labor snapshotted for the booking is released."""
        snapshot = self._repository.load()
        booking = snapshot.get(booking_id)
        result = self._ledger.apply_refund(booking, amount, refund_date, method, notes)
        new_snapshot = snapshot.with_booking(result.booking).with_payment(result.record)
        if snapshot.labor_for(booking_id):
            new_snapshot = new_snapshot.with_labor_for(booking_id, ())
        self._repository.save(
            new_snapshot,
            BookingCollectionChanged(ChangeKind.UPDATED, (booking_id,)),
        )
        return PaymentOutcome(result)

    # =========================================================================
    # Staff registry
    # =========================================================================

    def save_staff(self, staff: Iterable[StaffRecord]) -> BookingSnapshot:
        snapshot = self._repository.load().with_staff(staff)
        self._repository.save(snapshot, BookingCollectionChanged(ChangeKind.STAFF))
        logger.info("staff_registry_saved", extra={"staff_count": len(snapshot.staff)})
        return snapshot
