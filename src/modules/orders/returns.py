"""Return coordination.

A transporter may send a disputed order back to the wholesaler, who then
accepts (stock is restored through a side effect) or rejects the return.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Callable, Dict, Tuple

from modules.orders.transitions import Action

if TYPE_CHECKING:
    from modules.orders.dtos import TransitionPayload
    from modules.orders.models import Order


class ReturnCoordinator:
    """Applies the return actions of the transition table."""

    def appliers(self) -> Dict[str, Callable[..., Tuple[str, ...]]]:
        return {
            Action.REQUEST_RETURN: self.request_return,
            Action.ACCEPT_RETURN: self.accept_return,
            Action.REJECT_RETURN: self.reject_return,
        }

    def request_return(
        self, order: Order, payload: TransitionPayload, now: datetime
    ) -> Tuple[str, ...]:
        order.return_reason = payload.text("return_reason")
        order.return_requested_at = now
        order.return_rejection_reason = None
        order.return_decision_at = None
        return (
            "return_reason",
            "return_requested_at",
            "return_rejection_reason",
            "return_decision_at",
        )

    def accept_return(
        self, order: Order, payload: TransitionPayload, now: datetime
    ) -> Tuple[str, ...]:
        order.return_decision_at = now
        return ("return_decision_at",)

    def reject_return(
        self, order: Order, payload: TransitionPayload, now: datetime
    ) -> Tuple[str, ...]:
        order.return_rejection_reason = payload.text("return_rejection_reason")
        order.return_decision_at = now
        return ("return_rejection_reason", "return_decision_at")
