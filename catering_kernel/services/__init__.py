"""Kernel services: booking repository contract and implementations."""

from catering_kernel.services.booking_repository import (
    BookingCollectionChanged,
    BookingRepository,
    BookingSnapshot,
    ChangeKind,
    InMemoryBookingRepository,
)
from catering_kernel.services.sql_repository import SqlBookingRepository

__all__ = [
    "BookingCollectionChanged",
    "BookingRepository",
    "BookingSnapshot",
    "ChangeKind",
    "InMemoryBookingRepository",
    "SqlBookingRepository",
]
