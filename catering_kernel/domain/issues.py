"""Structured reasons a lifecycle transition was rejected."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class IssueKind(str, Enum):
    MISSING_ASSIGNMENT = "missing_assignment"
    UNRESOLVED_STAFF_REFERENCE = "unresolved_staff_reference"
    DUPLICATE_ASSIGNMENT = "duplicate_assignment"
    UNBOUND_ASSIGNMENT = "unbound_assignment"
    SCHEDULING_CONFLICT = "scheduling_conflict"
    STAFF_UNAVAILABLE = "staff_unavailable"
    ROLE_MISMATCH = "role_mismatch"


@dataclass(frozen=True)
class TransitionIssue:
    """
    One blocking (or advisory) problem found by a transition gate.

    ``subject`` names what the issue is about: a role label for missing
    assignments, a staff id for reference and conflict issues.
    """
    kind: IssueKind
    message: str
    subject: str | None = None
    blocking: bool = True
