"""
catering_services.hooks -- best-effort side-channel collaborators.

Responsibility:
    Declares the two narrow hooks the booking service drives after a
    committed change (shopping-list synchronisation and customer
    notifications) and runs them so that a failing hook is reported, never
    raised.

Architecture position:
    Services layer.  Hooks are invoked only after the repository save has
    returned; a hook failure can never roll back a financial or workflow
    transition.

Invariants enforced:
    - ``run_hook`` never raises for an ``Exception`` from the hook; it
      returns a ``HookOutcome`` with ``succeeded=False`` and logs it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Protocol, runtime_checkable

from catering_kernel.domain.booking import Booking
from catering_kernel.domain.records import CustomerPaymentRecord
from catering_kernel.logging_config import get_logger

logger = get_logger("services.hooks")

SHOPPING_LIST_HOOK = "shopping_list"
NOTIFICATION_HOOK = "notification"


@runtime_checkable
class ShoppingListSynchronizer(Protocol):
    """Keeps one shopping list per confirmed or completed booking."""

    def ensure_list(self, booking_id: str) -> None: ...

    def remove_list(self, booking_id: str) -> None: ...


@runtime_checkable
class NotificationDispatcher(Protocol):
    """Sends customer-facing messages."""

    def send_confirmation(self, booking: Booking) -> None: ...

    def send_receipt(self, booking: Booking, payment: CustomerPaymentRecord) -> None: ...


@dataclass(frozen=True)
class HookOutcome:
    """Result of one hook call, reported alongside (not inside) the transition result."""

    hook: str
    action: str
    succeeded: bool
    error: str | None = None


def run_hook(hook: str, action: str, call: Callable[..., Any], *args: Any) -> HookOutcome:
    try:
        call(*args)
    except Exception as exc:
        logger.warning(
            "hook_failed",
            extra={"hook": hook, "action": action, "error": str(exc)},
            exc_info=True,
        )
        return HookOutcome(hook, action, succeeded=False, error=str(exc))
    logger.debug("hook_succeeded", extra={"hook": hook, "action": action})
    return HookOutcome(hook, action, succeeded=True)
