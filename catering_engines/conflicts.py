"""
Module: catering_engines.conflicts
Responsibility:
    Detect staff double-booking: other non-cancelled bookings at the same
    event date and time that already use any of the given staff members.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The same function backs
    the pre-submit assignment check and the confirm/complete gates.

Invariants enforced:
    - Cancelled bookings and the excluded booking never conflict.
    - Results are deduplicated per (staff id, booking id) and ordered by
      booking collection order, then assignment order.
    - Nothing is cached: every call scans the collection it is given.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Sequence

from catering_kernel.domain.booking import Booking


@dataclass(frozen=True)
class StaffConflict:
    """One staff member already assigned to another booking at the same slot."""

    staff_id: str
    booking_id: str
    conflicting_booking: Booking

    def describe(self, staff_name: str | None = None) -> str:
        other = self.conflicting_booking
        who = staff_name or self.staff_id
        customer = other.customer_name or other.id
        return f"{who} is already assigned to {customer} ({other.event_date.isoformat()} {other.event_time})"


def find_staff_conflicts(
    bookings: Sequence[Booking],
    event_date: date,
    event_time: str,
    staff_ids: Iterable[str],
    exclude_booking_id: str | None = None,
) -> list[StaffConflict]:
    """
    Return every (staff id, other booking) pair that double-books.

    Example:
        S1 assigned to booking A at 2024-06-01 18:00; checking booking B
        at the same date and time with ``staff_ids=["S1"]`` yields exactly
        one conflict for S1 against A.
    """
    wanted = {s for s in staff_ids if s}
    if not wanted:
        return []

    conflicts: list[StaffConflict] = []
    seen: set[tuple[str, str]] = set()
    for other in bookings:
        if exclude_booking_id is not None and other.id == exclude_booking_id:
            continue
        if other.is_cancelled:
            continue
        if other.event_date != event_date or other.event_time != event_time:
            continue
        for assignment in other.staff_assignments:
            if assignment.staff_id not in wanted:
                continue
            key = (assignment.staff_id, other.id)
            if key in seen:
                continue
            seen.add(key)
            conflicts.append(StaffConflict(assignment.staff_id, other.id, other))
    return conflicts
