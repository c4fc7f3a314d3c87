"""
Catering kernel domain layer.

Pure value objects and functions with zero I/O: money helpers, bookings,
staff, ledger records, the booking workflow definition and the clock.
"""
