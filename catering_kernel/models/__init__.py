"""
ORM models for the catering kernel.

Importing this package registers every table on ``Base.metadata``.
"""

from catering_kernel.models.booking import BookingModel
from catering_kernel.models.payments import CustomerPaymentModel, LaborPaymentModel
from catering_kernel.models.staff import StaffModel

__all__ = [
    "BookingModel",
    "CustomerPaymentModel",
    "LaborPaymentModel",
    "StaffModel",
]
