"""Base abstract model and domain infrastructure for the trading platform.

Provides:
- ``BaseModel``: UUIDv7 primary key + created_at / updated_at timestamps.
- ``OutboxEvent``: Transactional Outbox for reliable side-effect delivery.

Design decisions:
- Orders are never physically removed (``deleted`` is a tombstone status),
  so there is no soft-delete base class.
- ``save()`` guard ensures ``updated_at`` is included when ``update_fields``
  is specified (Django skips ``auto_now`` fields otherwise).
"""

from __future__ import annotations

import uuid6
from django.db import models
from django.utils import timezone

# ---------------------------------------------------------------------------
# BaseModel
# ---------------------------------------------------------------------------


class BaseModel(models.Model):
    """Abstract base with UUIDv7 PK and timestamp bookkeeping."""

    id = models.UUIDField(
        primary_key=True,
        default=uuid6.uuid7,
        editable=False,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs) -> None:
        """Ensure ``updated_at`` is refreshed even when ``update_fields`` is passed."""
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "updated_at" not in update_fields:
            kwargs["update_fields"] = list(update_fields) + ["updated_at"]
        super().save(*args, **kwargs)


# ---------------------------------------------------------------------------
# Transactional Outbox
# ---------------------------------------------------------------------------

MAX_ERROR_LENGTH = 2000


class EventStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PUBLISHED = "published", "Published"
    FAILED = "failed", "Failed"


class OutboxEventQuerySet(models.QuerySet):
    def due(self, max_retries: int) -> OutboxEventQuerySet:
        """Rows the relay should (re)deliver, oldest first."""
        return self.filter(
            models.Q(status=EventStatus.PENDING)
            | models.Q(status=EventStatus.FAILED, retry_count__lt=max_retries)
        ).order_by("created_at", "id")


class OutboxEvent(BaseModel):
    """One domain event waiting for, or done with, in-process delivery.

    Rows are written by the order repository in the transaction that
    commits the order change, so an event exists iff its change does.
    ``relay_outbox_events`` picks up ``due()`` rows after commit (and on
    a beat schedule) and hands them to the event bus.  A row that fails
    stays due until ``retry_count`` reaches ``OUTBOX_MAX_RETRIES``.
    """

    event_type = models.CharField(max_length=100)
    aggregate_id = models.CharField(max_length=64)
    topic = models.CharField(max_length=50, default="orders")
    payload = models.JSONField()
    status = models.CharField(
        max_length=10,
        choices=EventStatus.choices,
        default=EventStatus.PENDING,
    )
    retry_count = models.PositiveIntegerField(default=0)
    last_error = models.TextField(blank=True, default="")
    last_attempt_at = models.DateTimeField(null=True, blank=True)
    published_at = models.DateTimeField(null=True, blank=True)

    objects = OutboxEventQuerySet.as_manager()

    class Meta:
        db_table = "outbox_events"
        ordering = ["created_at"]
        indexes = [
            models.Index(
                fields=["status", "retry_count", "created_at"],
                name="outbox_due_idx",
            ),
            models.Index(
                fields=["aggregate_id", "created_at"],
                name="outbox_aggregate_idx",
            ),
        ]

    def mark_as_published(self) -> None:
        now = timezone.now()
        self.status = EventStatus.PUBLISHED
        self.published_at = now
        self.last_attempt_at = now
        self.last_error = ""
        self.save(
            update_fields=["status", "published_at", "last_attempt_at", "last_error"]
        )

    def mark_as_failed(self, error: str) -> None:
        """Record a failed delivery; the row stays due while retries remain."""
        self.status = EventStatus.FAILED
        self.retry_count += 1
        self.last_attempt_at = timezone.now()
        self.last_error = error[:MAX_ERROR_LENGTH]
        self.save(
            update_fields=["status", "retry_count", "last_attempt_at", "last_error"]
        )

    def __str__(self) -> str:
        return f"{self.event_type}#{self.aggregate_id} ({self.status})"
