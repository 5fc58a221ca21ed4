"""Event handlers for Orders domain events.

``SideEffectRequested`` is the only event with consequences outside the
order: it is routed to the inventory or notification collaborator.  The
other handlers only log.
"""

from __future__ import annotations

from uuid import UUID

import structlog

from modules.inventory.repositories import InventoryDjangoRepository
from modules.inventory.services import InventoryService
from modules.notifications.services import NotificationService
from modules.orders.events import OrderCreated, OrderTransitioned, SideEffectRequested
from modules.orders.side_effects import SideEffectKind
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class OrderCreatedHandler(IEventHandler[OrderCreated]):
    def handle(self, event: OrderCreated) -> None:
        logger.info("order.event.created", order_id=str(event.aggregate_id))


class OrderTransitionedHandler(IEventHandler[OrderTransitioned]):
    def handle(self, event: OrderTransitioned) -> None:
        logger.info(
            "order.event.transitioned",
            order_id=str(event.aggregate_id),
            from_status=event.from_status,
            to_status=event.to_status,
            actor_role=event.actor_role,
            version=event.version,
        )


class SideEffectRequestedHandler(IEventHandler[SideEffectRequested]):
    """Runs one side-effect descriptor against its collaborator.

    Collaborator errors propagate so the relay keeps the outbox row due.
    """

    def __init__(
        self,
        inventory_service: InventoryService,
        notification_service: NotificationService,
    ) -> None:
        self._inventory = inventory_service
        self._notifications = notification_service

    def handle(self, event: SideEffectRequested) -> None:
        payload = event.payload
        log = logger.bind(
            order_id=str(event.aggregate_id),
            effect_id=event.effect_id,
            kind=event.kind,
        )

        if event.kind == SideEffectKind.RESTORE_STOCK:
            applied = self._inventory.restore_stock(
                event.effect_id, UUID(payload["product_id"]), payload["quantity"]
            )
        elif event.kind == SideEffectKind.COMMIT_STOCK:
            applied = self._inventory.commit_to_retailer(
                event.effect_id,
                UUID(payload["product_id"]),
                UUID(payload["retailer_id"]),
                payload["quantity"],
            )
        elif event.kind == SideEffectKind.NOTIFY_ACTOR:
            applied = self._notifications.notify(
                event.effect_id,
                UUID(payload["recipient_id"]),
                payload["event"],
                event.aggregate_id,
                data={
                    "from_status": payload["from_status"],
                    "to_status": payload["to_status"],
                    "recipient_role": payload["recipient_role"],
                },
            )
        else:
            raise ValueError(f"Unknown side effect kind: {event.kind}")

        log.info("order.side_effect_applied", replayed=not applied)


order_created_handler = OrderCreatedHandler()
order_transitioned_handler = OrderTransitionedHandler()
side_effect_requested_handler = SideEffectRequestedHandler(
    InventoryService(InventoryDjangoRepository()),
    NotificationService(),
)
