"""Transactional outbox integration tests.

Validates:
- Creation and transitions write their events in the same transaction.
- Refused transitions write nothing.
- The relay delivers each side effect, retries failures and is safe to
  replay.
- The relay is scheduled after commit.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest

from modules.core.models import EventStatus, OutboxEvent
from modules.core.tasks import relay_outbox_events
from modules.inventory.models import Product, StockMovement
from modules.notifications.models import Notification
from modules.orders.constants import OrderStatus
from modules.orders.exceptions import InvalidTransition
from modules.orders.handlers import side_effect_requested_handler

pytestmark = pytest.mark.integration


def _types(order):
    return list(
        OutboxEvent.objects.filter(aggregate_id=str(order.id))
        .order_by("created_at", "id")
        .values_list("event_type", flat=True)
    )


class TestOutboxWrites:
    def test_creation_writes_events(self, place_order):
        order = place_order()

        assert sorted(_types(order)) == ["OrderCreated", "SideEffectRequested"]
        assert set(
            OutboxEvent.objects.filter(aggregate_id=str(order.id)).values_list(
                "topic", flat=True
            )
        ) == {"orders"}

    def test_transition_writes_event_and_effects(self, place_order, transition, wholesaler):
        order = place_order()
        OutboxEvent.objects.all().delete()

        transition(order, wholesaler, OrderStatus.REJECTED, rejection_reason="No stock")

        rows = OutboxEvent.objects.filter(aggregate_id=str(order.id))
        assert sorted(rows.values_list("event_type", flat=True)) == [
            "OrderTransitioned",
            "SideEffectRequested",
            "SideEffectRequested",
        ]
        effect_ids = sorted(
            row.payload["effect_id"]
            for row in rows
            if row.event_type == "SideEffectRequested"
        )
        assert effect_ids == [f"{order.id}:1:0", f"{order.id}:1:1"]

    def test_refused_transition_writes_nothing(self, place_order, transition, retailer):
        order = place_order()
        before = OutboxEvent.objects.count()

        with pytest.raises(InvalidTransition):
            transition(order, retailer, OrderStatus.ACCEPTED)

        assert OutboxEvent.objects.count() == before


class TestRelay:
    def test_publishes_everything_due(self, place_order, transition, wholesaler):
        order = place_order()
        transition(order, wholesaler, OrderStatus.ACCEPTED)
        due = OutboxEvent.objects.due(5).count()

        result = relay_outbox_events()

        assert result == {"published": due, "failed": 0}
        assert not OutboxEvent.objects.due(5).exists()
        assert Notification.objects.count() == 2

    def test_failure_is_recorded_and_retried(self, place_order, wholesaler):
        place_order()

        with patch.object(
            side_effect_requested_handler._notifications,
            "notify",
            side_effect=ConnectionError("push gateway down"),
        ):
            result = relay_outbox_events()

        assert result["failed"] == 1
        failed = OutboxEvent.objects.get(status=EventStatus.FAILED)
        assert failed.retry_count == 1
        assert "push gateway down" in failed.last_error
        assert not Notification.objects.exists()

        result = relay_outbox_events()

        assert result == {"published": 1, "failed": 0}
        assert Notification.objects.filter(recipient=wholesaler).count() == 1

    def test_gives_up_after_max_retries(self, place_order, settings):
        settings.OUTBOX_MAX_RETRIES = 2
        place_order()

        with patch.object(
            side_effect_requested_handler._notifications,
            "notify",
            side_effect=ConnectionError("push gateway down"),
        ):
            relay_outbox_events()
            relay_outbox_events()
            result = relay_outbox_events()

        assert result == {"published": 0, "failed": 0}
        assert OutboxEvent.objects.get(status=EventStatus.FAILED).retry_count == 2

    def test_replay_changes_nothing(self, place_order, transition, wholesaler, product):
        order = place_order(quantity=5)
        transition(order, wholesaler, OrderStatus.REJECTED, rejection_reason="No stock")
        relay_outbox_events()

        # Simulate at-least-once delivery handing every event over again.
        OutboxEvent.objects.update(status=EventStatus.PENDING)
        relay_outbox_events()

        assert Product.objects.get(pk=product.pk).stock_quantity == 100
        assert StockMovement.objects.count() == 2
        assert Notification.objects.count() == 2

    def test_relay_runs_after_commit(
        self, place_order, product, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            place_order()

        assert len(callbacks) >= 1
        assert not OutboxEvent.objects.due(5).exists()
        assert Notification.objects.count() == 1
