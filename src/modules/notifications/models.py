"""Notification inbox rows produced by order side effects.

Delivery (sockets, push, e-mail) is not handled here: a row is the
fact that an actor should be told about an order event.
"""

from __future__ import annotations

from django.db import models

from modules.core.models import BaseModel


class Notification(BaseModel):
    """One notification for one participant, unique per side effect."""

    effect_id = models.CharField(max_length=128, unique=True)
    recipient = models.ForeignKey(
        "accounts.Participant",
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    event = models.CharField(max_length=64)
    order_id = models.UUIDField()
    data = models.JSONField(default=dict, blank=True)
    read_at = models.DateTimeField(null=True, blank=True, default=None)

    class Meta:
        db_table = "notifications"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["recipient", "-created_at"],
                name="notifications_recipient_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.event} -> {self.recipient_id} ({self.order_id})"
