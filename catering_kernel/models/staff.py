"""
Module: catering_kernel.models.staff
Responsibility: ORM persistence for the staff registry.
Architecture position: Kernel > Models.
"""

from datetime import date
from typing import Any

from sqlalchemy import JSON, Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from catering_kernel.db.base import TrackedBase
from catering_kernel.domain.staff import (
    StaffRecord,
    StaffRole,
    StaffStatus,
    TimeWindow,
)


class StaffModel(TrackedBase):
    """One staff registry row."""

    __tablename__ = "staff"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    primary_role: Mapped[str] = mapped_column(String(30), nullable=False)
    secondary_roles: Mapped[list[Any]] = mapped_column(JSON, default=list)
    email: Mapped[str] = mapped_column(String(200), default="")
    phone: Mapped[str] = mapped_column(String(50), default="")
    is_owner: Mapped[bool] = mapped_column(Boolean, default=False)
    available_days: Mapped[list[Any]] = mapped_column(JSON, default=list)
    unavailable_dates: Mapped[list[Any]] = mapped_column(JSON, default=list)
    availability_hours: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)

    @classmethod
    def from_domain(cls, record: StaffRecord) -> "StaffModel":
        return cls(
            id=record.id,
            name=record.name,
            status=record.status.value,
            primary_role=record.primary_role.value,
            secondary_roles=[r.value for r in record.secondary_roles],
            email=record.email,
            phone=record.phone,
            is_owner=record.is_owner,
            available_days=sorted(record.available_days),
            unavailable_dates=sorted(d.isoformat() for d in record.unavailable_dates),
            availability_hours={
                day: {"start_time": w.start_time, "end_time": w.end_time}
                for day, w in record.availability_hours.items()
            },
        )

    def to_domain(self) -> StaffRecord:
        return StaffRecord(
            id=self.id,
            name=self.name,
            status=StaffStatus(self.status),
            primary_role=StaffRole(self.primary_role),
            secondary_roles=tuple(StaffRole(r) for r in self.secondary_roles or ()),
            email=self.email or "",
            phone=self.phone or "",
            is_owner=bool(self.is_owner),
            available_days=frozenset(self.available_days or ()),
            unavailable_dates=frozenset(
                date.fromisoformat(d) for d in self.unavailable_dates or ()
            ),
            availability_hours={
                day: TimeWindow(w["start_time"], w["end_time"])
                for day, w in (self.availability_hours or {}).items()
            },
        )
