"""
Staff Domain Models (``catering_kernel.domain.staff``).

Responsibility
--------------
Frozen value objects for the staff registry: staff records, their roles,
employment status and weekly availability, plus the mapping between
staffing-plan slot roles and registry roles.

Architecture position
---------------------
**Kernel domain layer** -- pure data definitions with ZERO I/O.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* Only ``ACTIVE`` staff resolve as assignable references.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum


class StaffRole(str, Enum):
    """Registry role/specialty of a staff member."""
    LEAD_CHEF = "lead-chef"
    FULL_CHEF = "full-chef"
    BUFFET_CHEF = "buffet-chef"
    ASSISTANT = "assistant"
    CONTRACTOR = "contractor"
    # Retired role; old records still carry it.
    OVERFLOW_CHEF = "overflow-chef"


class StaffStatus(str, Enum):
    """Employment status."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    ON_LEAVE = "on-leave"


class SlotRole(str, Enum):
    """Role of a position in a computed staffing plan."""
    LEAD = "lead"
    FULL = "full"
    BUFFET = "buffet"
    ASSISTANT = "assistant"

    @property
    def is_chef(self) -> bool:
        return self is not SlotRole.ASSISTANT

    @property
    def label(self) -> str:
        return SLOT_ROLE_LABELS[self]


SLOT_ROLE_LABELS: dict[SlotRole, str] = {
    SlotRole.LEAD: "Lead Chef",
    SlotRole.FULL: "Full Chef",
    SlotRole.BUFFET: "Buffet Chef",
    SlotRole.ASSISTANT: "Assistant",
}

SLOT_ROLE_TO_STAFF_ROLE: dict[SlotRole, StaffRole] = {
    SlotRole.LEAD: StaffRole.LEAD_CHEF,
    SlotRole.FULL: StaffRole.FULL_CHEF,
    SlotRole.BUFFET: StaffRole.BUFFET_CHEF,
    SlotRole.ASSISTANT: StaffRole.ASSISTANT,
}

STAFF_ROLE_TO_SLOT_ROLE: dict[StaffRole, SlotRole] = {
    StaffRole.LEAD_CHEF: SlotRole.LEAD,
    StaffRole.FULL_CHEF: SlotRole.FULL,
    StaffRole.OVERFLOW_CHEF: SlotRole.FULL,
    StaffRole.BUFFET_CHEF: SlotRole.BUFFET,
    StaffRole.ASSISTANT: SlotRole.ASSISTANT,
}


def parse_slot_role(value: str) -> SlotRole:
    """Parse a slot role, mapping the retired ``overflow`` role to ``full``."""
    if value == "overflow":
        return SlotRole.FULL
    return SlotRole(value)


DAYS_OF_WEEK: tuple[str, ...] = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


@dataclass(frozen=True)
class TimeWindow:
    """Inclusive ``HH:MM`` availability window for one weekday."""
    start_time: str
    end_time: str

    def contains(self, event_time: str) -> bool:
        minutes = time_to_minutes(event_time)
        return time_to_minutes(self.start_time) <= minutes <= time_to_minutes(self.end_time)


def time_to_minutes(value: str) -> int:
    """Convert ``HH:MM`` to minutes after midnight."""
    hours, _, minutes = value.partition(":")
    return int(hours or 0) * 60 + int(minutes or 0)


@dataclass(frozen=True)
class StaffRecord:
    """A member of the staff registry."""
    id: str
    name: str
    status: StaffStatus = StaffStatus.ACTIVE
    primary_role: StaffRole = StaffRole.LEAD_CHEF
    secondary_roles: tuple[StaffRole, ...] = ()
    email: str = ""
    phone: str = ""
    is_owner: bool = False
    available_days: frozenset[str] = field(default_factory=lambda: frozenset(DAYS_OF_WEEK))
    unavailable_dates: frozenset[date] = frozenset()
    availability_hours: dict[str, TimeWindow] = field(default_factory=dict)

    @property
    def is_active(self) -> bool:
        return self.status is StaffStatus.ACTIVE

    @property
    def roles(self) -> tuple[StaffRole, ...]:
        return (self.primary_role, *self.secondary_roles)

    def can_fill(self, slot_role: SlotRole) -> bool:
        """True if any of this person's roles maps to ``slot_role``."""
        if StaffRole.CONTRACTOR in self.roles:
            return True
        return any(STAFF_ROLE_TO_SLOT_ROLE.get(role) is slot_role for role in self.roles)

    def is_available(self, event_date: date, event_time: str) -> bool:
        """
        Check availability for an event start.

        The date must not be blacklisted, the weekday must be enabled, and
        when a time window is set for that weekday the start time must fall
        inside it.
        """
        if event_date in self.unavailable_dates:
            return False
        weekday = DAYS_OF_WEEK[event_date.weekday()]
        if weekday not in self.available_days:
            return False
        window = self.availability_hours.get(weekday)
        if window is not None and not window.contains(event_time):
            return False
        return True


def build_staff_index(staff: tuple[StaffRecord, ...] | list[StaffRecord]) -> dict[str, StaffRecord]:
    """Staff-by-id lookup, rebuilt from the registry on every call."""
    return {record.id: record for record in staff}


def is_staff_available(staff: StaffRecord, event_date: date, event_time: str) -> bool:
    """Inactive staff are never available."""
    return staff.is_active and staff.is_available(event_date, event_time)
