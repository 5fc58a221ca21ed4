"""Unit tests for Orders event handlers."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from modules.orders.events import OrderCreated, OrderTransitioned, SideEffectRequested
from modules.orders.handlers import (
    OrderCreatedHandler,
    OrderTransitionedHandler,
    SideEffectRequestedHandler,
)
from modules.orders.side_effects import SideEffectKind

pytestmark = pytest.mark.unit


@pytest.fixture()
def inventory():
    return MagicMock()


@pytest.fixture()
def notifications():
    return MagicMock()


@pytest.fixture()
def handler(inventory, notifications):
    return SideEffectRequestedHandler(inventory, notifications)


def test_order_created_handler_logs(caplog):
    event = OrderCreated(aggregate_id=uuid4())

    with caplog.at_level(logging.INFO, logger="modules.orders.handlers"):
        OrderCreatedHandler().handle(event)

    assert any(
        "order.event.created" in record.getMessage() for record in caplog.records
    )


def test_order_transitioned_handler_logs(caplog):
    event = OrderTransitioned(
        aggregate_id=uuid4(), from_status="pending", to_status="accepted", version=1
    )

    with caplog.at_level(logging.INFO, logger="modules.orders.handlers"):
        OrderTransitionedHandler().handle(event)

    assert any(
        "order.event.transitioned" in record.getMessage() for record in caplog.records
    )


def test_restore_stock_is_routed_to_inventory(handler, inventory):
    product_id = uuid4()
    event = SideEffectRequested(
        aggregate_id=uuid4(),
        effect_id="o1:2:0",
        kind=SideEffectKind.RESTORE_STOCK,
        payload={"product_id": str(product_id), "quantity": 4},
    )

    handler.handle(event)

    inventory.restore_stock.assert_called_once_with("o1:2:0", product_id, 4)


def test_commit_stock_is_routed_to_inventory(handler, inventory):
    product_id, retailer_id = uuid4(), uuid4()
    event = SideEffectRequested(
        aggregate_id=uuid4(),
        effect_id="o1:7:0",
        kind=SideEffectKind.COMMIT_STOCK,
        payload={
            "product_id": str(product_id),
            "retailer_id": str(retailer_id),
            "quantity": 2,
        },
    )

    handler.handle(event)

    inventory.commit_to_retailer.assert_called_once_with(
        "o1:7:0", product_id, retailer_id, 2
    )


def test_notification_is_routed_to_notifications(handler, notifications):
    order_id, recipient_id = uuid4(), uuid4()
    event = SideEffectRequested(
        aggregate_id=order_id,
        effect_id="o1:1:0",
        kind=SideEffectKind.NOTIFY_ACTOR,
        payload={
            "recipient_id": str(recipient_id),
            "recipient_role": "retailer",
            "event": "order_accepted",
            "from_status": "pending",
            "to_status": "accepted",
        },
    )

    handler.handle(event)

    notifications.notify.assert_called_once_with(
        "o1:1:0",
        recipient_id,
        "order_accepted",
        order_id,
        data={
            "from_status": "pending",
            "to_status": "accepted",
            "recipient_role": "retailer",
        },
    )


def test_collaborator_errors_propagate(handler, inventory):
    inventory.restore_stock.side_effect = RuntimeError("database unavailable")
    event = SideEffectRequested(
        aggregate_id=uuid4(),
        effect_id="o1:2:0",
        kind=SideEffectKind.RESTORE_STOCK,
        payload={"product_id": str(uuid4()), "quantity": 1},
    )

    with pytest.raises(RuntimeError):
        handler.handle(event)


def test_unknown_kind(handler):
    event = SideEffectRequested(aggregate_id=uuid4(), effect_id="x", kind="Teleport")

    with pytest.raises(ValueError, match="Teleport"):
        handler.handle(event)
