"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.

Concurrency control on transitions is optimistic: ``commit_transition``
issues ``UPDATE ... WHERE id = %s AND version = %s`` and reports whether
a row matched.  No row lock is held between reading an order and
committing a transition on it.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, QuerySet, Sum
from django.utils import timezone

from modules.core.models import OutboxEvent
from modules.orders.models import Order, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

OUTBOX_TOPIC = "orders"


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, order: Order) -> Order:
        order.save(force_insert=True)
        event_count = self._write_outbox(order)
        logger.info(
            "order.persisted",
            order_id=str(order.id),
            order_number=order.order_number,
            event_count=event_count,
        )
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with eager-loaded relations.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return self._queryset().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet[Order]:
        """List orders with optional filters and eager-loaded relations.

        Filter keys are passed straight to ``QuerySet.filter``, e.g.
        ``status``, ``retailer_id``, ``created_at__range``.  The queryset is
        returned unevaluated.
        """
        queryset = self._queryset()
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        return self._queryset().filter(idempotency_key=key).first()

    def status_summary(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        queryset = Order.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(
            queryset.values("status")
            .annotate(
                count=Count("id"),
                total_value=Sum("total_price"),
                total_quantity=Sum("quantity"),
            )
            .order_by("status")
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    @transaction.atomic
    def commit_transition(
        self,
        order: Order,
        expected_version: int,
        fields: Iterable[str],
    ) -> bool:
        values: Dict[str, Any] = {}
        for name in fields:
            attname = Order._meta.get_field(name).attname
            values[attname] = getattr(order, attname)
        values["updated_at"] = timezone.now()

        updated = Order.objects.filter(pk=order.pk, version=expected_version).update(
            **values
        )
        if not updated:
            logger.warning(
                "order.version_conflict",
                order_id=str(order.id),
                expected_version=expected_version,
            )
            order.clear_domain_events()
            return False

        order.updated_at = values["updated_at"]
        self._write_outbox(order)
        return True

    @transaction.atomic
    def add_history(
        self,
        order_id: UUID,
        sequence: int,
        from_status: Optional[str],
        to_status: str,
        actor_role: str,
        actor_id: UUID,
        reason: Optional[str] = None,
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""
        history = OrderStatusHistory.objects.create(
            order_id=order_id,
            sequence=sequence,
            from_status=from_status,
            to_status=to_status,
            actor_role=actor_role,
            actor_id=actor_id,
            reason=reason,
        )
        logger.info(
            "order.history_added",
            order_id=str(order_id),
            sequence=sequence,
            from_status=from_status,
            to_status=to_status,
        )
        return history

    # ------------------------------------------------------------------
    # Save / Delete (IRepository contract)
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Persist an order and flush its domain events to the outbox.

        Transitions must go through ``commit_transition``; this is meant
        for fields outside the lifecycle (e.g. ``order_notes``).
        """
        entity.save()
        event_count = self._write_outbox(entity)
        logger.info("order.saved", order_id=str(entity.id), event_count=event_count)
        return entity

    def delete(self, id: str) -> bool:
        """Orders are never removed; ``deleted`` is a tombstone status."""
        raise NotImplementedError(
            "Orders are deleted through the 'deleted' status transition."
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _queryset():
        return Order.objects.select_related(
            "retailer", "wholesaler", "transporter", "product"
        ).prefetch_related("status_history")

    @staticmethod
    def _write_outbox(entity: Order) -> int:
        events = entity.domain_events
        for event in events:
            OutboxEvent.objects.create(
                event_type=event.event_name,
                aggregate_id=str(event.aggregate_id),
                payload=_serialize_event_payload(event),
                topic=OUTBOX_TOPIC,
            )
        entity.clear_domain_events()
        return len(events)


def _serialize_event_payload(event: Any) -> Dict[str, Any]:
    data = asdict(event)
    normalized = _normalize_for_json(data)
    return json.loads(json.dumps(normalized))


def _normalize_for_json(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [_normalize_for_json(item) for item in value]
    if isinstance(value, dict):
        return {key: _normalize_for_json(val) for key, val in value.items()}
    return value
