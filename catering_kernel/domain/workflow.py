"""
Booking lifecycle workflow (``catering_kernel.domain.workflow``).

Responsibility
--------------
Declarative state machine for the canonical booking status.  The state
machine service evaluates the guards; this module only declares the graph.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``cancelled`` is terminal: it has no outgoing transitions.
"""

from __future__ import annotations

from dataclasses import dataclass

from catering_kernel.domain.booking import BookingStatus


@dataclass(frozen=True)
class Guard:
    """A condition that must be satisfied before a transition fires.

    Contract: frozen, descriptive only.
    Non-goals: does not evaluate the condition -- the state machine does.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid status transition.

    ``snapshots_labor=True`` marks the transition that records labor payouts.
    """
    from_state: str
    to_state: str
    action: str
    guards: tuple[Guard, ...] = ()
    snapshots_labor: bool = False


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a document lifecycle."""
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def find(self, from_state: str, to_state: str) -> Transition | None:
        for transition in self.transitions:
            if transition.from_state == from_state and transition.to_state == to_state:
                return transition
        return None

    def allowed_targets(self, from_state: str) -> tuple[str, ...]:
        return tuple(t.to_state for t in self.transitions if t.from_state == from_state)


_PENDING = BookingStatus.PENDING.value
_CONFIRMED = BookingStatus.CONFIRMED.value
_COMPLETED = BookingStatus.COMPLETED.value
_CANCELLED = BookingStatus.CANCELLED.value

NO_SCHEDULING_CONFLICTS = Guard(
    "no_scheduling_conflicts",
    "No assigned staff member is booked on another active event at the same date and time",
)
STAFFING_COMPLETE = Guard(
    "staffing_complete",
    "Every slot of the staffing plan is filled by a distinct, active registry member",
)
NOT_LOCKED = Guard(
    "not_locked",
    "The booking is not locked",
)

BOOKING_WORKFLOW = Workflow(
    name="booking",
    description="Catering booking lifecycle",
    initial_state=_PENDING,
    states=(_PENDING, _CONFIRMED, _COMPLETED, _CANCELLED),
    transitions=(
        Transition(_PENDING, _CONFIRMED, "confirm", guards=(NOT_LOCKED, NO_SCHEDULING_CONFLICTS)),
        Transition(
            _PENDING, _COMPLETED, "complete",
            guards=(NOT_LOCKED, STAFFING_COMPLETE, NO_SCHEDULING_CONFLICTS),
            snapshots_labor=True,
        ),
        Transition(_PENDING, _CANCELLED, "cancel", guards=(NOT_LOCKED,)),
        Transition(
            _CONFIRMED, _COMPLETED, "complete",
            guards=(NOT_LOCKED, STAFFING_COMPLETE, NO_SCHEDULING_CONFLICTS),
            snapshots_labor=True,
        ),
        Transition(_CONFIRMED, _PENDING, "reopen", guards=(NOT_LOCKED,)),
        Transition(_CONFIRMED, _CANCELLED, "cancel", guards=(NOT_LOCKED,)),
        # Re-completion refreshes the labor snapshot; it is idempotent.
        Transition(
            _COMPLETED, _COMPLETED, "complete",
            guards=(STAFFING_COMPLETE, NO_SCHEDULING_CONFLICTS),
            snapshots_labor=True,
        ),
        Transition(_COMPLETED, _CONFIRMED, "reopen", guards=(NOT_LOCKED,)),
        Transition(_COMPLETED, _PENDING, "reopen", guards=(NOT_LOCKED,)),
        Transition(_COMPLETED, _CANCELLED, "cancel", guards=(NOT_LOCKED,)),
    ),
    terminal_states=(_CANCELLED,),
)
