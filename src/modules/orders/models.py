"""Order and OrderStatusHistory models.

Business rules implemented:
- ``status`` is the single source of truth and only changes through
  ``OrderEngine`` transitions.
- ``version`` increases by one on every accepted transition and is the
  optimistic-concurrency token.
- Each accepted transition appends one ``OrderStatusHistory`` row whose
  ``sequence`` equals the version it produced; ``(order, sequence)`` is
  unique, so two writers can never append the same step.
- Commercial terms (product, quantity, prices, unit) are fixed at creation.
- Orders are never physically deleted: ``deleted`` is a tombstone status.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

import structlog
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from modules.accounts.constants import ActorRole
from modules.core.models import BaseModel
from modules.orders.constants import (
    INITIAL_STATUS,
    ORDER_NUMBER_MAX_RETRIES,
    TERMINAL_STATES,
    OrderStatus,
)
from shared.domain.events import DomainEventMixin

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class DeliveryDispute:
    """The latest dispute on an order.

    An order holds one dispute at a time.  A new dispute after
    resolve-and-reassign and redelivery replaces the previous reason and
    resolution notes here; earlier ones stay in the status history, whose
    ``reason`` column records each dispute and resolution text.
    """

    reason: str
    disputed_at: datetime
    resolution_notes: Optional[str] = None
    resolved_at: Optional[datetime] = None
    reassigned: bool = False

    @property
    def is_open(self) -> bool:
        return self.resolved_at is None


@dataclass(frozen=True)
class ReturnDetails:
    return_reason: str
    return_requested_at: datetime
    return_rejection_reason: Optional[str] = None
    return_decision_at: Optional[datetime] = None


class Order(DomainEventMixin, BaseModel):
    """Order aggregate root: one retailer purchase request.

    ``order_number`` is a human-readable identifier auto-generated on first
    save (format: ``ORD-YYYYMMDD-XXXXXX``).  The UUIDv7 ``id`` is used for
    all internal references and API lookups.
    """

    order_number = models.CharField(max_length=20, unique=True, editable=False)
    status = models.CharField(
        max_length=32,
        choices=OrderStatus.choices,
        default=INITIAL_STATUS,
    )
    version = models.PositiveIntegerField(default=0)

    # Participants
    retailer = models.ForeignKey(
        "accounts.Participant",
        on_delete=models.PROTECT,
        related_name="retailer_orders",
    )
    wholesaler = models.ForeignKey(
        "accounts.Participant",
        on_delete=models.PROTECT,
        related_name="wholesaler_orders",
    )
    transporter = models.ForeignKey(
        "accounts.Participant",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="transporter_orders",
    )

    # Commercial terms (immutable after creation)
    product = models.ForeignKey(
        "inventory.Product",
        on_delete=models.PROTECT,
        related_name="orders",
    )
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    total_price = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    measurement_unit = models.CharField(max_length=32)
    delivery_place = models.CharField(max_length=255)
    order_notes = models.TextField(blank=True, default="")
    idempotency_key = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
    )

    # Reasons
    cancellation_reason = models.TextField(null=True, blank=True)  # noqa: DJ01
    rejection_reason = models.TextField(null=True, blank=True)  # noqa: DJ01

    # Delivery dispute
    dispute_reason = models.TextField(null=True, blank=True)  # noqa: DJ01
    disputed_at = models.DateTimeField(null=True, blank=True)
    dispute_resolution_notes = models.TextField(null=True, blank=True)  # noqa: DJ01
    dispute_resolved_at = models.DateTimeField(null=True, blank=True)
    dispute_reassigned = models.BooleanField(default=False)

    # Return
    return_reason = models.TextField(null=True, blank=True)  # noqa: DJ01
    return_requested_at = models.DateTimeField(null=True, blank=True)
    return_rejection_reason = models.TextField(null=True, blank=True)  # noqa: DJ01
    return_decision_at = models.DateTimeField(null=True, blank=True)

    # Milestones
    transporter_confirmed_at = models.DateTimeField(null=True, blank=True)
    actual_delivery_date = models.DateTimeField(null=True, blank=True)
    delivery_certification_date = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
            models.Index(fields=["retailer", "-created_at"], name="orders_retailer_idx"),
            models.Index(fields=["wholesaler", "status"], name="orders_wholesaler_idx"),
            models.Index(
                fields=["transporter", "status"], name="orders_transporter_idx"
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="orders_quantity_positive",
            ),
        ]

    # ------------------------------------------------------------------
    # State helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        """Return ``True`` if the order is in a terminal state."""
        return self.status in TERMINAL_STATES

    def holder_id(self, role: str) -> Any:
        """Participant id holding *role* on this order (``None`` if unset)."""
        return {
            ActorRole.RETAILER: self.retailer_id,
            ActorRole.WHOLESALER: self.wholesaler_id,
            ActorRole.TRANSPORTER: self.transporter_id,
        }.get(role)

    @property
    def delivery_dispute(self) -> Optional[DeliveryDispute]:
        if self.disputed_at is None:
            return None
        return DeliveryDispute(
            reason=self.dispute_reason or "",
            disputed_at=self.disputed_at,
            resolution_notes=self.dispute_resolution_notes,
            resolved_at=self.dispute_resolved_at,
            reassigned=self.dispute_reassigned,
        )

    @property
    def return_details(self) -> Optional[ReturnDetails]:
        if self.return_requested_at is None:
            return None
        return ReturnDetails(
            return_reason=self.return_reason or "",
            return_requested_at=self.return_requested_at,
            return_rejection_reason=self.return_rejection_reason,
            return_decision_at=self.return_decision_at,
        )

    # ------------------------------------------------------------------
    # Order number generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_order_number() -> str:
        """Generate a human-readable order number: ``ORD-YYYYMMDD-XXXXXX``."""
        now = timezone.now()
        suffix = secrets.token_hex(3).upper()
        return f"ORD-{now:%Y%m%d}-{suffix}"

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.order_number:
            for _ in range(ORDER_NUMBER_MAX_RETRIES):
                candidate = self.generate_order_number()
                if not Order.objects.filter(order_number=candidate).exists():
                    self.order_number = candidate
                    break
            else:
                raise RuntimeError(
                    f"Failed to generate unique order_number after "
                    f"{ORDER_NUMBER_MAX_RETRIES} attempts"
                )
        if self._state.adding:
            self.total_price = self.quantity * self.unit_price
        super().save(*args, **kwargs)

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status}, v{self.version})"


class OrderStatusHistory(BaseModel):
    """Append-only audit trail for order status transitions.

    This model is never updated after insert.  ``from_status`` is ``None``
    only for the creation entry.  Resolving a dispute without reassignment
    appends a ``disputed -> disputed`` entry.
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    sequence = models.PositiveIntegerField()
    from_status = models.CharField(  # noqa: DJ01
        max_length=32,
        choices=OrderStatus.choices,
        null=True,
        blank=True,
    )
    to_status = models.CharField(max_length=32, choices=OrderStatus.choices)
    actor_role = models.CharField(max_length=20, choices=ActorRole.choices)
    actor_id = models.UUIDField()
    reason = models.TextField(null=True, blank=True)  # noqa: DJ01

    class Meta:
        db_table = "order_status_history"
        ordering = ["sequence"]
        constraints = [
            models.UniqueConstraint(
                fields=["order", "sequence"],
                name="osh_order_sequence_unique",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order_id} #{self.sequence}: {self.from_status} -> {self.to_status}"
