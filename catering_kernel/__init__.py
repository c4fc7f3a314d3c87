"""
Catering Kernel - booking domain core.

Pure value objects and persistence contracts for catering events:
- Bookings, staff assignments and staff records
- Append-only customer payment and labor payment records
- Booking workflow definition and typed errors
- Structured logging and an injectable clock
"""

__version__ = "0.1.0"
