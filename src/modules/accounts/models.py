"""Participant model: the business identity behind every order actor.

An actor id used by the order lifecycle is a ``Participant`` primary key.
Each participant holds exactly one role; a Django ``User`` may be linked
so that authenticated API requests resolve to an actor.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from modules.accounts.constants import ActorRole
from modules.core.models import BaseModel


class Participant(BaseModel):
    """A retailer, wholesaler, transporter or supplier business."""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="participant",
    )
    role = models.CharField(max_length=20, choices=ActorRole.choices)
    business_name = models.CharField(max_length=255)
    email = models.EmailField(max_length=254, unique=True)
    phone = models.CharField(max_length=20, blank=True, default="")
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "participants"
        ordering = ["business_name"]
        indexes = [
            models.Index(fields=["role", "is_active"], name="participants_role_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.business_name} ({self.role})"
