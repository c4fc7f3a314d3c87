"""
Catering Services - imperative shell over the engines.

The booking workflow state machine, the payment ledger, the side-channel
hooks, and the ``BookingService`` façade that loads and saves repository
snapshots around them.
"""

from catering_services.booking_service import (
    AssignmentCheck,
    BookingService,
    DeleteOutcome,
    PaymentOutcome,
    PaymentSummary,
    StatusChange,
)
from catering_services.booking_workflow import (
    BookingWorkflowStateMachine,
    TransitionResult,
    apply_confirmation_terms,
)
from catering_services.hooks import (
    HookOutcome,
    NotificationDispatcher,
    ShoppingListSynchronizer,
    run_hook,
)
from catering_services.payment_ledger import LedgerResult, PaymentLedger

__all__ = [
    "AssignmentCheck",
    "BookingService",
    "BookingWorkflowStateMachine",
    "DeleteOutcome",
    "HookOutcome",
    "LedgerResult",
    "NotificationDispatcher",
    "PaymentLedger",
    "PaymentOutcome",
    "PaymentSummary",
    "ShoppingListSynchronizer",
    "StatusChange",
    "TransitionResult",
    "apply_confirmation_terms",
    "run_hook",
]
