from __future__ import annotations

import itertools
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from modules.accounts.constants import ActorRole
from modules.accounts.models import Participant
from modules.accounts.repositories import ParticipantDjangoRepository
from modules.accounts.services import IdentityService
from modules.inventory.models import Product, ProductStatus
from modules.inventory.repositories import InventoryDjangoRepository
from modules.inventory.services import InventoryService
from modules.orders.constants import OrderStatus
from modules.orders.dtos import CreateOrderDTO, TransitionPayload, TransitionRequestDTO
from modules.orders.repositories import OrderDjangoRepository
from modules.orders.services import OrderEngine

User = get_user_model()

_sequence = itertools.count(1)


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Participants
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_participant():
    """Factory for participants, each linked to its own Django user."""

    def _make(role: str, is_active: bool = True, **kwargs) -> Participant:
        n = next(_sequence)
        user = User.objects.create_user(
            username=f"{role}-{n}", password="testpass123"
        )
        return Participant.objects.create(
            user=user,
            role=role,
            business_name=kwargs.pop("business_name", f"{role.title()} {n}"),
            email=kwargs.pop("email", f"{role}-{n}@example.com"),
            is_active=is_active,
            **kwargs,
        )

    return _make


@pytest.fixture()
def retailer(make_participant):
    return make_participant(ActorRole.RETAILER)


@pytest.fixture()
def other_retailer(make_participant):
    return make_participant(ActorRole.RETAILER)


@pytest.fixture()
def wholesaler(make_participant):
    return make_participant(ActorRole.WHOLESALER)


@pytest.fixture()
def transporter(make_participant):
    return make_participant(ActorRole.TRANSPORTER)


@pytest.fixture()
def other_transporter(make_participant):
    return make_participant(ActorRole.TRANSPORTER)


@pytest.fixture()
def supplier(make_participant):
    return make_participant(ActorRole.SUPPLIER)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@pytest.fixture()
def product(wholesaler):
    return Product.objects.create(
        wholesaler=wholesaler,
        sku="RICE-5KG",
        name="Rice 5kg",
        price=Decimal("20.00"),
        stock_quantity=100,
        measurement_unit="bag",
        status=ProductStatus.ACTIVE,
    )


# ---------------------------------------------------------------------------
# Engine and lifecycle helpers
# ---------------------------------------------------------------------------


@pytest.fixture()
def engine():
    return OrderEngine(
        order_repository=OrderDjangoRepository(),
        product_repository=InventoryDjangoRepository(),
        identity_service=IdentityService(ParticipantDjangoRepository()),
        inventory_service=InventoryService(InventoryDjangoRepository()),
    )


@pytest.fixture()
def place_order(engine, retailer, product):
    """Place an order for ``retailer`` on ``product``."""

    def _place(quantity: int = 5, **kwargs):
        return engine.create_order(
            CreateOrderDTO(
                retailer_id=kwargs.pop("retailer_id", retailer.id),
                product_id=kwargs.pop("product_id", product.id),
                quantity=quantity,
                delivery_place=kwargs.pop("delivery_place", "Dock 1"),
                **kwargs,
            )
        )

    return _place


@pytest.fixture()
def transition(engine):
    """Apply one transition as *actor*, using the order's current version."""

    def _transition(order, actor, target, expected_version=None, **payload):
        return engine.request_transition(
            TransitionRequestDTO(
                order_id=order.id,
                actor_role=actor.role,
                actor_id=actor.id,
                expected_version=(
                    order.version if expected_version is None else expected_version
                ),
                target_status=target,
                payload=TransitionPayload(**payload),
            )
        )

    return _transition


@pytest.fixture()
def processing_order(place_order, transition, wholesaler):
    order = place_order()
    order = transition(order, wholesaler, OrderStatus.ACCEPTED)
    return transition(order, wholesaler, OrderStatus.PROCESSING)


@pytest.fixture()
def assigned_order(processing_order, transition, wholesaler, transporter):
    return transition(
        processing_order,
        wholesaler,
        OrderStatus.ASSIGNED_TO_TRANSPORTER,
        transporter_id=transporter.id,
    )


@pytest.fixture()
def delivered_order(assigned_order, transition, transporter):
    order = transition(assigned_order, transporter, OrderStatus.IN_TRANSIT)
    return transition(order, transporter, OrderStatus.DELIVERED)


@pytest.fixture()
def disputed_order(delivered_order, transition, retailer):
    return transition(
        delivered_order,
        retailer,
        OrderStatus.DISPUTED,
        dispute_reason="Two bags were torn",
    )


# ---------------------------------------------------------------------------
# API clients
# ---------------------------------------------------------------------------


@pytest.fixture()
def client_for():
    """APIClient force-authenticated as the user behind *participant*."""

    def _client(participant: Participant) -> APIClient:
        client = APIClient()
        client.force_authenticate(user=participant.user)
        return client

    return _client
