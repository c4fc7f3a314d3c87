"""
Module: catering_kernel.db.base
Responsibility: Declarative base classes for all SQLAlchemy ORM models.
    Provides the type annotation map for consistent column types and the
    TrackedBase mixin for row timestamps.
Architecture position: Kernel > DB.  Lowest-level import target within the
    kernel.  ALL model files import from here.  MUST NOT import from
    models/, services/, domain/, or outer layers.

Invariants enforced:
    - Decimal precision: type_annotation_map maps Python Decimal to
      Numeric(12, 2).  Stored amounts are cents.  NEVER use float for money.
    - Primary keys are caller-supplied strings.  Booking, staff and record
      ids come from the application (``labor-{booking}-{slot}`` etc.), so
      the database never generates them.

Failure modes:
    - IntegrityError on duplicate primary key.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, ClassVar

from sqlalchemy import JSON, Date, DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - Decimal maps to Numeric(12, 2).
        - datetime maps to DateTime(timezone=True).
        - dict/list map to JSON.
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(12, 2, asdecimal=True),
        datetime: DateTime(timezone=True),
        date: Date,
        str: String(255),
        dict[str, Any]: JSON,
        list[Any]: JSON,
    }


class TrackedBase(Base):
    """
    Abstract base with row timestamps.

    Guarantees:
        - created_at is set to server NOW() on INSERT.
        - updated_at auto-updates on every UPDATE.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
