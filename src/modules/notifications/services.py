"""Notification collaborator.

``notify`` is fire-and-forget from the order engine's point of view and
idempotent per side-effect id, since the outbox relay delivers at least
once.
"""

from __future__ import annotations

from typing import Any, Dict, Optional
from uuid import UUID

import structlog

from modules.notifications.models import Notification

logger = structlog.get_logger(__name__)


class NotificationService:
    """Records order notifications for participants."""

    def notify(
        self,
        effect_id: str,
        recipient_id: UUID,
        event: str,
        order_id: UUID,
        data: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Create the notification for *effect_id*; ``False`` on replay."""
        _, created = Notification.objects.get_or_create(
            effect_id=effect_id,
            defaults={
                "recipient_id": recipient_id,
                "event": event,
                "order_id": order_id,
                "data": data or {},
            },
        )
        log = logger.bind(
            effect_id=effect_id,
            recipient_id=str(recipient_id),
            order_id=str(order_id),
            notification_event=event,
        )
        if created:
            log.info("notification.created")
        else:
            log.info("notification.replayed")
        return created
