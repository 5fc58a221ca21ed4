"""Delivery dispute handling.

A retailer disputes a delivered order; the wholesaler later resolves it,
either keeping the order in ``disputed`` (resolve only) or dropping the
transporter and sending it back to ``processing`` for a new assignment.
Each method mutates the in-memory order and returns the names of the
fields it changed; persisting them is the engine's job.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Callable, Dict, Tuple

import structlog

from modules.accounts.constants import ActorRole
from modules.orders.exceptions import InvalidTransition
from modules.orders.transitions import Action

if TYPE_CHECKING:
    from modules.orders.dtos import TransitionPayload
    from modules.orders.models import Order

logger = structlog.get_logger(__name__)


class DisputeResolver:
    """Applies the dispute actions of the transition table."""

    def appliers(self) -> Dict[str, Callable[..., Tuple[str, ...]]]:
        return {
            Action.DISPUTE: self.open_dispute,
            Action.RESOLVE_DISPUTE: self.resolve_only,
            Action.RESOLVE_AND_REASSIGN: self.resolve_and_reassign,
        }

    @staticmethod
    def can_resolve_only(order: Order) -> bool:
        """True while the order carries a dispute nobody has resolved yet."""
        dispute = order.delivery_dispute
        return dispute is not None and dispute.is_open

    def open_dispute(
        self, order: Order, payload: TransitionPayload, now: datetime
    ) -> Tuple[str, ...]:
        order.dispute_reason = payload.text("dispute_reason")
        order.disputed_at = now
        order.dispute_resolution_notes = None
        order.dispute_resolved_at = None
        order.dispute_reassigned = False
        return (
            "dispute_reason",
            "disputed_at",
            "dispute_resolution_notes",
            "dispute_resolved_at",
            "dispute_reassigned",
        )

    def resolve_only(
        self, order: Order, payload: TransitionPayload, now: datetime
    ) -> Tuple[str, ...]:
        """Close the dispute without leaving ``disputed``.

        Raises:
            InvalidTransition: the dispute was already resolved.
        """
        if not self.can_resolve_only(order):
            logger.warning("dispute.already_resolved", order_id=str(order.id))
            raise InvalidTransition(order.status, order.status, ActorRole.WHOLESALER)
        return self._close(order, payload, now, reassigned=False)

    def resolve_and_reassign(
        self, order: Order, payload: TransitionPayload, now: datetime
    ) -> Tuple[str, ...]:
        """Close the dispute and clear the transporter.

        Allowed on a dispute that was already resolved without
        reassignment, so such an order can still move forward.
        """
        changed = self._close(order, payload, now, reassigned=True)
        order.transporter_id = None
        order.transporter_confirmed_at = None
        return changed + ("transporter", "transporter_confirmed_at")

    @staticmethod
    def _close(
        order: Order, payload: TransitionPayload, now: datetime, reassigned: bool
    ) -> Tuple[str, ...]:
        order.dispute_resolution_notes = payload.text("resolution_notes")
        order.dispute_resolved_at = now
        order.dispute_reassigned = reassigned
        logger.info(
            "dispute.resolved",
            order_id=str(order.id),
            reassigned=reassigned,
        )
        return (
            "dispute_resolution_notes",
            "dispute_resolved_at",
            "dispute_reassigned",
        )
