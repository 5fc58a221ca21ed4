"""Unit tests for OrderEngine with mocked collaborators.

Covers:
- The fixed order of request checks (not found, role, version, table,
  holder, required fields).
- Version-conditional commit: a lost race surfaces as StaleVersion and
  appends no history.
- Domain events and side effects queued on the order.
- Creation checks: idempotency, retailer role, product state, minimum
  quantity.
"""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from django.utils import timezone

from modules.accounts.constants import ActorRole
from modules.inventory.exceptions import (
    BelowMinimumOrderQuantity,
    InactiveProduct,
    ProductNotFound,
)
from modules.orders.constants import ErrorKind, OrderStatus
from modules.orders.dtos import CreateOrderDTO, TransitionPayload, TransitionRequestDTO
from modules.orders.events import OrderTransitioned, SideEffectRequested
from modules.orders.exceptions import (
    InvalidTransition,
    MissingRequiredField,
    OrderNotFound,
    StaleVersion,
    Unauthorized,
)
from modules.orders.models import Order
from modules.orders.services import OrderEngine
from modules.orders.side_effects import SideEffectKind

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def order():
    return Order(
        retailer_id=uuid4(),
        wholesaler_id=uuid4(),
        product_id=uuid4(),
        quantity=3,
        unit_price=Decimal("10.00"),
        measurement_unit="bag",
        delivery_place="Dock 1",
        status=OrderStatus.PENDING,
        version=2,
    )


@pytest.fixture()
def order_repo(order):
    repo = MagicMock()
    repo.get_by_id.return_value = order
    repo.commit_transition.return_value = True
    repo.get_by_idempotency_key.return_value = None
    return repo


@pytest.fixture()
def identity():
    identity = MagicMock()
    identity.has_role.return_value = True
    return identity


@pytest.fixture()
def product_repo():
    return MagicMock()


@pytest.fixture()
def inventory():
    return MagicMock()


@pytest.fixture()
def engine(order_repo, product_repo, identity, inventory):
    return OrderEngine(
        order_repository=order_repo,
        product_repository=product_repo,
        identity_service=identity,
        inventory_service=inventory,
    )


def _request(order, role, actor_id, target, version=None, **payload):
    return TransitionRequestDTO(
        order_id=order.id,
        actor_role=role,
        actor_id=actor_id,
        expected_version=order.version if version is None else version,
        target_status=target,
        payload=TransitionPayload(**payload),
    )


# ---------------------------------------------------------------------------
# Check order
# ---------------------------------------------------------------------------


class TestRequestChecks:
    def test_unknown_order(self, engine, order_repo, order):
        order_repo.get_by_id.return_value = None

        with pytest.raises(OrderNotFound) as exc_info:
            engine.request_transition(
                _request(order, ActorRole.WHOLESALER, order.wholesaler_id, "accepted")
            )
        assert exc_info.value.kind == ErrorKind.NOT_FOUND

    def test_role_not_held(self, engine, identity, order_repo, order):
        identity.has_role.return_value = False

        with pytest.raises(Unauthorized):
            engine.request_transition(
                _request(
                    order,
                    ActorRole.WHOLESALER,
                    order.wholesaler_id,
                    OrderStatus.ACCEPTED,
                )
            )
        order_repo.commit_transition.assert_not_called()

    def test_version_is_checked_before_the_table(self, engine, order):
        with pytest.raises(StaleVersion) as exc_info:
            engine.request_transition(
                _request(
                    order,
                    ActorRole.WHOLESALER,
                    order.wholesaler_id,
                    OrderStatus.DELIVERED,
                    version=1,
                )
            )
        assert exc_info.value.expected_version == 1
        assert exc_info.value.current_version == 2

    def test_triple_not_in_table(self, engine, order_repo, order):
        with pytest.raises(InvalidTransition) as exc_info:
            engine.request_transition(
                _request(order, ActorRole.RETAILER, order.retailer_id, OrderStatus.ACCEPTED)
            )
        err = exc_info.value
        assert err.current_status == OrderStatus.PENDING
        assert err.target_status == OrderStatus.ACCEPTED
        assert err.actor_role == ActorRole.RETAILER
        order_repo.commit_transition.assert_not_called()

    def test_different_wholesaler(self, engine, order):
        with pytest.raises(Unauthorized):
            engine.request_transition(
                _request(order, ActorRole.WHOLESALER, uuid4(), OrderStatus.ACCEPTED)
            )

    def test_transporter_not_yet_assigned(self, engine, order):
        with pytest.raises(Unauthorized):
            engine.request_transition(
                _request(
                    order,
                    ActorRole.TRANSPORTER,
                    uuid4(),
                    OrderStatus.CANCELLED_BY_TRANSPORTER,
                    cancellation_reason="Truck broke down",
                )
            )

    def test_blank_reason_counts_as_missing(self, engine, order_repo, order):
        with pytest.raises(MissingRequiredField) as exc_info:
            engine.request_transition(
                _request(
                    order,
                    ActorRole.WHOLESALER,
                    order.wholesaler_id,
                    OrderStatus.REJECTED,
                    rejection_reason="   ",
                )
            )
        assert exc_info.value.field == "rejection_reason"
        order_repo.commit_transition.assert_not_called()
        order_repo.add_history.assert_not_called()

    def test_assignment_to_non_transporter(self, engine, identity, order):
        order.status = OrderStatus.PROCESSING
        not_a_transporter = uuid4()
        identity.has_role.side_effect = lambda actor_id, role: (
            role != ActorRole.TRANSPORTER
        )

        with pytest.raises(MissingRequiredField) as exc_info:
            engine.request_transition(
                _request(
                    order,
                    ActorRole.WHOLESALER,
                    order.wholesaler_id,
                    OrderStatus.ASSIGNED_TO_TRANSPORTER,
                    transporter_id=not_a_transporter,
                )
            )
        assert exc_info.value.field == "transporter_id"
        assert str(not_a_transporter) in str(exc_info.value)


# ---------------------------------------------------------------------------
# Commit
# ---------------------------------------------------------------------------


class TestCommit:
    def test_lost_race_is_stale_and_appends_no_history(
        self, engine, order_repo, order
    ):
        order_repo.commit_transition.return_value = False

        with pytest.raises(StaleVersion):
            engine.request_transition(
                _request(order, ActorRole.WHOLESALER, order.wholesaler_id, OrderStatus.ACCEPTED)
            )
        order_repo.add_history.assert_not_called()

    def test_rejection_commits_reason_and_history(self, engine, order_repo, order):
        actor_id = order.wholesaler_id

        result = engine.request_transition(
            _request(
                order,
                ActorRole.WHOLESALER,
                actor_id,
                OrderStatus.REJECTED,
                rejection_reason="  Out of season  ",
            )
        )

        assert result.status == OrderStatus.REJECTED
        assert result.version == 3
        assert result.rejection_reason == "Out of season"

        args = order_repo.commit_transition.call_args.args
        assert args[1] == 2
        assert tuple(args[2]) == ("status", "version", "rejection_reason")

        order_repo.add_history.assert_called_once_with(
            order_id=order.id,
            sequence=3,
            from_status=OrderStatus.PENDING,
            to_status=OrderStatus.REJECTED,
            actor_role=ActorRole.WHOLESALER,
            actor_id=actor_id,
            reason="Out of season",
        )

    def test_queues_transition_event_and_side_effects(self, engine, order):
        engine.request_transition(
            _request(
                order,
                ActorRole.WHOLESALER,
                order.wholesaler_id,
                OrderStatus.REJECTED,
                rejection_reason="Out of season",
            )
        )

        events = order.domain_events
        assert isinstance(events[0], OrderTransitioned)
        assert events[0].version == 3
        effects = [e for e in events if isinstance(e, SideEffectRequested)]
        assert [e.kind for e in effects] == [
            SideEffectKind.RESTORE_STOCK,
            SideEffectKind.NOTIFY_ACTOR,
        ]
        assert effects[0].effect_id == f"{order.id}:3:0"

    def test_advance_has_no_reason(self, engine, order_repo, order):
        engine.request_transition(
            _request(order, ActorRole.WHOLESALER, order.wholesaler_id, OrderStatus.ACCEPTED)
        )
        assert order_repo.add_history.call_args.kwargs["reason"] is None


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


@pytest.fixture()
def catalog_product(product_repo):
    product = MagicMock(
        id=uuid4(),
        wholesaler_id=uuid4(),
        sku="RICE-5KG",
        price=Decimal("20.00"),
        measurement_unit="bag",
        is_active=True,
        min_order_quantity=2,
    )
    product_repo.get_by_id.return_value = product
    return product


def _create_dto(product_id, retailer_id=None, quantity=5, key=None):
    return CreateOrderDTO(
        retailer_id=retailer_id or uuid4(),
        product_id=product_id,
        quantity=quantity,
        delivery_place="Dock 1",
        idempotency_key=key,
    )


class TestCreateOrder:
    def test_repeated_key_returns_existing(self, engine, order_repo, order, inventory):
        order_repo.get_by_idempotency_key.return_value = order

        result = engine.create_order(
            _create_dto(uuid4(), retailer_id=order.retailer_id, key="k-1")
        )

        assert result is order
        inventory.decrement_stock.assert_not_called()
        order_repo.create.assert_not_called()

    def test_key_of_another_retailer(self, engine, order_repo, order):
        order_repo.get_by_idempotency_key.return_value = order

        with pytest.raises(Unauthorized):
            engine.create_order(_create_dto(uuid4(), key="k-1"))

    def test_non_retailer(self, engine, identity, catalog_product):
        identity.has_role.return_value = False

        with pytest.raises(Unauthorized):
            engine.create_order(_create_dto(catalog_product.id))

    def test_unknown_product(self, engine, product_repo):
        product_repo.get_by_id.return_value = None

        with pytest.raises(ProductNotFound):
            engine.create_order(_create_dto(uuid4()))

    def test_inactive_product(self, engine, catalog_product):
        catalog_product.is_active = False

        with pytest.raises(InactiveProduct):
            engine.create_order(_create_dto(catalog_product.id))

    def test_below_minimum_quantity(self, engine, catalog_product, inventory):
        with pytest.raises(BelowMinimumOrderQuantity):
            engine.create_order(_create_dto(catalog_product.id, quantity=1))
        inventory.decrement_stock.assert_not_called()

    def test_reserves_stock_and_records_creation(
        self, engine, catalog_product, inventory, order_repo
    ):
        order_repo.get_by_id.return_value = None
        retailer_id = uuid4()

        created = engine.create_order(
            _create_dto(catalog_product.id, retailer_id=retailer_id, quantity=4)
        )

        assert created.status == OrderStatus.PENDING
        assert created.version == 0
        assert created.wholesaler_id == catalog_product.wholesaler_id
        assert created.unit_price == Decimal("20.00")

        inventory.decrement_stock.assert_called_once_with(
            f"{created.id}:reserve", catalog_product.id, 4
        )
        history = order_repo.add_history.call_args.kwargs
        assert history["sequence"] == 0
        assert history["from_status"] is None
        assert history["to_status"] == OrderStatus.PENDING
        assert history["actor_role"] == ActorRole.RETAILER


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


class TestQueries:
    def test_actor_scope(self):
        actor_id = uuid4()
        assert OrderEngine.actor_scope(ActorRole.TRANSPORTER, actor_id) == {
            "transporter_id": actor_id
        }

    def test_actor_scope_rejects_supplier(self):
        with pytest.raises(Unauthorized):
            OrderEngine.actor_scope(ActorRole.SUPPLIER, uuid4())

    def test_allowed_transitions(self, order):
        assert OrderEngine.allowed_transitions(order, ActorRole.RETAILER) == [
            OrderStatus.CANCELLED_BY_RETAILER,
            OrderStatus.DELETED,
        ]

    def test_allowed_transitions_empty_without_a_transporter(self, order):
        order.status = OrderStatus.PROCESSING

        assert OrderEngine.allowed_transitions(order, ActorRole.TRANSPORTER) == []

    def test_allowed_transitions_on_open_dispute(self, order):
        order.status = OrderStatus.DISPUTED
        order.transporter_id = uuid4()
        order.disputed_at = timezone.now()
        order.dispute_reason = "Wet bags"

        assert OrderEngine.allowed_transitions(order, ActorRole.WHOLESALER) == [
            OrderStatus.DISPUTED,
            OrderStatus.PROCESSING,
        ]

    def test_allowed_transitions_after_resolve_only(self, order):
        order.status = OrderStatus.DISPUTED
        order.transporter_id = uuid4()
        order.disputed_at = timezone.now()
        order.dispute_reason = "Wet bags"
        order.dispute_resolved_at = timezone.now()

        assert OrderEngine.allowed_transitions(order, ActorRole.WHOLESALER) == [
            OrderStatus.PROCESSING,
        ]

    def test_statistics(self, engine, order_repo):
        order_repo.status_summary.return_value = [
            {
                "status": "pending",
                "count": 2,
                "total_value": Decimal("40.00"),
                "total_quantity": 4,
            },
            {
                "status": "certified",
                "count": 1,
                "total_value": Decimal("10.00"),
                "total_quantity": 1,
            },
        ]
        retailer_id = uuid4()

        stats = engine.statistics(ActorRole.RETAILER, retailer_id)

        order_repo.status_summary.assert_called_once_with({"retailer_id": retailer_id})
        assert stats["total_orders"] == 3
        assert stats["by_status"]["pending"]["total_value"] == Decimal("40.00")
