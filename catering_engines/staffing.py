"""
Module: catering_engines.staffing
Responsibility:
    Derive the staffing plan for an event: the ordered list of role slots
    (lead/full/buffet chefs and assistants), each with a stable slot id and
    the default pay terms the labor calculator starts from.  Also binds a
    booking's staff assignments to those slots.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Slot ids are ``{role}-{n}`` with ``n`` counting from 1 within each
      role, in plan order.  The same inputs always produce the same ids.
    - Profile selection: an explicit profile id wins when it exists;
      otherwise the first profile (in configuration order) whose guest
      range contains the guest count, exact event-type matches before
      ``any`` profiles; otherwise the default rule for the pricing slot.
    - Chef gratuity split is shared evenly among chef slots, assistant
      split evenly among assistant slots.

Failure modes:
    - ValueError for a negative guest count.
"""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Iterable, Sequence

from catering_config.schema import (
    ANY_EVENT_TYPE,
    PricingSlot,
    RatesConfig,
    RolePay,
    StaffingProfile,
)
from catering_kernel.domain.booking import StaffAssignment
from catering_kernel.domain.staff import STAFF_ROLE_TO_SLOT_ROLE, SlotRole
from catering_kernel.domain.values import ZERO
from catering_kernel.logging_config import get_logger
from catering_engines.tracer import traced_engine

logger = get_logger("engines.staffing")


@dataclass(frozen=True)
class StaffingSlot:
    """One required role position in a staffing plan."""

    slot_id: str
    index: int
    role: SlotRole
    base_pay_percent: Decimal
    cap_percent: Decimal | None
    gratuity_split_percent: Decimal

    @property
    def label(self) -> str:
        return self.role.label


@dataclass(frozen=True)
class StaffingPlan:
    """Ordered staffing slots plus the profile that produced them, if any."""

    slots: tuple[StaffingSlot, ...]
    profile_id: str | None = None
    profile_name: str | None = None

    @property
    def chef_count(self) -> int:
        return sum(1 for slot in self.slots if slot.role.is_chef)

    @property
    def assistant_needed(self) -> bool:
        return any(slot.role is SlotRole.ASSISTANT for slot in self.slots)

    @property
    def total_staff_count(self) -> int:
        return len(self.slots)

    @property
    def roles(self) -> tuple[SlotRole, ...]:
        return tuple(slot.role for slot in self.slots)

    def find(self, slot_id: str) -> StaffingSlot | None:
        for slot in self.slots:
            if slot.slot_id == slot_id:
                return slot
        return None


def slot_ids_for(roles: Sequence[SlotRole]) -> tuple[str, ...]:
    """Stable ``{role}-{n}`` ids for an ordered role list."""
    seen: Counter[SlotRole] = Counter()
    ids: list[str] = []
    for role in roles:
        seen[role] += 1
        ids.append(f"{role.value}-{seen[role]}")
    return tuple(ids)


def find_matching_profile(
    profiles: Sequence[StaffingProfile],
    event_type: str,
    guest_count: int,
    staffing_profile_id: str | None = None,
) -> StaffingProfile | None:
    """
    Select the staffing profile for an event.

    An explicit id that no longer exists falls through to automatic
    matching.
    """
    if staffing_profile_id:
        for profile in profiles:
            if profile.id == staffing_profile_id:
                return profile
        logger.info(
            "staffing_profile_missing",
            extra={"staffing_profile_id": staffing_profile_id},
        )

    fallback: StaffingProfile | None = None
    for profile in profiles:
        if not profile.matches(event_type, guest_count):
            continue
        if profile.event_type != ANY_EVENT_TYPE:
            return profile
        if fallback is None:
            fallback = profile
    return fallback


def default_roles(guest_count: int, slot: PricingSlot, config: RatesConfig) -> tuple[SlotRole, ...]:
    """
    Rule-based staffing when no profile matches.

    Secondary (buffet) events get one buffet chef per
    ``max_guests_per_chef_secondary`` guests.  Primary events get a lead
    chef, one full chef per further ``max_guests_per_chef_primary``
    guests, and an assistant when configured.
    """
    max_per_chef = max(1, config.max_guests_per_chef(slot))
    if slot is PricingSlot.SECONDARY:
        chefs = max(1, math.ceil(guest_count / max_per_chef))
        return (SlotRole.BUFFET,) * chefs

    roles = [SlotRole.LEAD]
    if guest_count > max_per_chef:
        roles.extend([SlotRole.FULL] * math.ceil((guest_count - max_per_chef) / max_per_chef))
    if config.staffing.assistant_required:
        roles.append(SlotRole.ASSISTANT)
    return tuple(roles)


def role_pay(role: SlotRole, config: RatesConfig) -> RolePay:
    """Buffet chefs are paid from the buffet labor table, everyone else from private."""
    if role is SlotRole.BUFFET:
        return config.buffet_labor.pay_for(role)
    return config.private_labor.pay_for(role)


def build_slots(roles: Sequence[SlotRole], slot: PricingSlot, config: RatesConfig) -> tuple[StaffingSlot, ...]:
    labor = config.labor_rules(slot)
    chef_count = sum(1 for role in roles if role.is_chef)
    assistant_count = len(roles) - chef_count
    chef_share = labor.chef_gratuity_split_percent / chef_count if chef_count else ZERO
    assistant_share = (
        labor.assistant_gratuity_split_percent / assistant_count if assistant_count else ZERO
    )

    slots = []
    for index, (role, slot_id) in enumerate(zip(roles, slot_ids_for(roles))):
        pay = role_pay(role, config)
        slots.append(
            StaffingSlot(
                slot_id=slot_id,
                index=index,
                role=role,
                base_pay_percent=pay.base_percent,
                cap_percent=pay.cap_percent,
                gratuity_split_percent=chef_share if role.is_chef else assistant_share,
            )
        )
    return tuple(slots)


@traced_engine(
    "staffing",
    "1.0",
    fingerprint_fields=("guest_count", "event_type", "pricing_slot", "staffing_profile_id"),
)
def plan_staffing(
    *,
    guest_count: int,
    event_type: str,
    config: RatesConfig,
    pricing_slot: PricingSlot | None = None,
    staffing_profile_id: str | None = None,
) -> StaffingPlan:
    """
    Build the staffing plan for an event.

    Raises:
        ValueError: if ``guest_count`` is negative.
    """
    if guest_count < 0:
        raise ValueError(f"guest_count must be non-negative, got {guest_count}")

    slot = pricing_slot or config.pricing_slot(event_type)
    profile = find_matching_profile(
        config.staffing.profiles, event_type, guest_count, staffing_profile_id
    )
    if profile is not None and profile.roles:
        return StaffingPlan(
            slots=build_slots(profile.roles, slot, config),
            profile_id=profile.id,
            profile_name=profile.name,
        )
    return StaffingPlan(slots=build_slots(default_roles(guest_count, slot, config), slot, config))


def bind_assignments(
    plan: StaffingPlan,
    assignments: Iterable[StaffAssignment],
) -> dict[str, StaffAssignment]:
    """
    Map slot id -> assignment.

    Assignments that carry a slot id of this plan bind to it directly.
    Legacy assignments without a slot id bind to the first still-open
    slot whose role matches their registry role, in plan order.  Anything
    left over stays unbound.
    """
    bound: dict[str, StaffAssignment] = {}
    legacy: list[StaffAssignment] = []
    for assignment in assignments:
        if assignment.slot_id and plan.find(assignment.slot_id) is not None:
            bound.setdefault(assignment.slot_id, assignment)
        elif not assignment.slot_id:
            legacy.append(assignment)

    for assignment in legacy:
        wanted = STAFF_ROLE_TO_SLOT_ROLE.get(assignment.role)
        for slot in plan.slots:
            if slot.slot_id in bound or slot.role is not wanted:
                continue
            bound[slot.slot_id] = assignment
            break
    return bound


def migrate_assignment_slot_ids(
    plan: StaffingPlan,
    assignments: Sequence[StaffAssignment],
) -> tuple[StaffAssignment, ...]:
    """One-time migration: stamp legacy assignments with the slot id they bind to."""
    by_identity = {id(a): slot_id for slot_id, a in bind_assignments(plan, assignments).items()}
    return tuple(
        a if a.slot_id or id(a) not in by_identity else replace(a, slot_id=by_identity[id(a)])
        for a in assignments
    )
