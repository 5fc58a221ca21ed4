"""Order API views.

Exposes the ``OrderEngine`` via HTTP using DRF ViewSets.
The acting participant is always derived from the authenticated user;
clients never send their own role or id.  Domain exceptions are
translated into DRF API exceptions, which the core exception handler
renders in the standard error format.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from django_filters.rest_framework import DjangoFilterBackend
from pydantic import TypeAdapter
from rest_framework import exceptions, status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.accounts.constants import ORDER_ROLES
from modules.accounts.models import Participant
from modules.accounts.repositories import ParticipantDjangoRepository
from modules.accounts.services import IdentityService
from modules.core.exceptions import Conflict
from modules.core.pagination import StandardResultsSetPagination
from modules.inventory.exceptions import (
    BelowMinimumOrderQuantity,
    InactiveProduct,
    InsufficientStock,
    ProductNotFound,
)
from modules.inventory.repositories import InventoryDjangoRepository
from modules.inventory.services import InventoryService
from modules.orders.constants import ErrorKind, OrderStatus
from modules.orders.dtos import (
    CreateOrderDTO,
    DisputeResolutionDTO,
    ReturnDecisionDTO,
    TransitionPayload,
    TransitionRequestDTO,
)
from modules.orders.exceptions import MissingRequiredField, OrderError
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories import OrderDjangoRepository
from modules.orders.serializers import (
    CreateOrderSerializer,
    ExpectedVersionSerializer,
    HandleReturnSerializer,
    OrderListSerializer,
    OrderSerializer,
    ResolveDisputeSerializer,
    TransitionRequestSerializer,
)
from modules.orders.services import OrderEngine

_DISPUTE_RESOLUTION = TypeAdapter(DisputeResolutionDTO)

_ERROR_EXCEPTIONS = {
    ErrorKind.NOT_FOUND: exceptions.NotFound,
    ErrorKind.UNAUTHORIZED: exceptions.PermissionDenied,
    ErrorKind.STALE_VERSION: Conflict,
    ErrorKind.INVALID_TRANSITION: Conflict,
}


def _api_error(exc: Exception) -> exceptions.APIException:
    """Translate a domain exception into the matching DRF exception."""
    if isinstance(exc, MissingRequiredField):
        return exceptions.ValidationError({exc.field: [str(exc)]}, code=str(exc.kind))
    if isinstance(exc, OrderError):
        return _ERROR_EXCEPTIONS[exc.kind](detail=str(exc), code=str(exc.kind))
    if isinstance(exc, ProductNotFound):
        return exceptions.NotFound(detail=str(exc), code="ProductNotFound")
    if isinstance(exc, InactiveProduct):
        return exceptions.ValidationError(
            {"product_id": [str(exc)]}, code="InactiveProduct"
        )
    if isinstance(exc, BelowMinimumOrderQuantity):
        return exceptions.ValidationError(
            {"quantity": [str(exc)]}, code="BelowMinimumOrderQuantity"
        )
    if isinstance(exc, InsufficientStock):
        return Conflict(detail=str(exc), code="InsufficientStock")
    raise TypeError(f"No API translation for {type(exc).__name__}")


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Uses ``OrderEngine`` with injected repositories (DIP).
    Does **not** extend ``ModelViewSet``: all writes go through the
    engine, and there is no generic update endpoint; status only changes
    through ``transitions``.
    """

    queryset = Order.objects.none()
    filterset_class = OrderFilter
    search_fields = ["order_number", "product__name", "delivery_place"]
    ordering_fields = ["created_at", "total_price", "status", "quantity"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]
    pagination_class = StandardResultsSetPagination

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._identity = IdentityService(ParticipantDjangoRepository())
        self._engine = OrderEngine(
            order_repository=OrderDjangoRepository(),
            product_repository=InventoryDjangoRepository(),
            identity_service=self._identity,
            inventory_service=InventoryService(InventoryDjangoRepository()),
        )

    def get_throttles(self) -> list[BaseThrottle]:
        """Throttling scopes per action."""
        throttle_scope: Optional[str]
        if self.action == "create":
            throttle_scope = "order_creation"
        elif self.action in {"list", "retrieve", "allowed_transitions", "stats"}:
            throttle_scope = "order_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _actor(self, request: Request) -> Participant:
        participant = self._identity.resolve_user(request.user.pk)
        if participant is None or participant.role not in ORDER_ROLES:
            raise exceptions.PermissionDenied(
                "No active order participant is linked to this user."
            )
        return participant

    @staticmethod
    def _order_id(pk: Optional[str]) -> UUID:
        try:
            return UUID(str(pk))
        except ValueError as exc:
            raise exceptions.NotFound("Order not found.") from exc

    def _visible_order(self, actor: Participant, pk: str) -> Order:
        """The order, if *actor* takes part in it in their role."""
        try:
            order = self._engine.get_order(pk)
        except OrderError as exc:
            raise _api_error(exc) from exc
        if str(order.holder_id(actor.role)) != str(actor.id):
            raise exceptions.NotFound("Order not found.")
        return order

    def _transition(self, request_dto: TransitionRequestDTO) -> Response:
        try:
            order = self._engine.request_transition(request_dto)
        except OrderError as exc:
            raise _api_error(exc) from exc
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/

        Supports idempotency via the ``Idempotency-Key`` header.
        Returns 200 if the key was already used, 201 for new orders.
        """
        actor = self._actor(request)
        create_serializer = CreateOrderSerializer(data=request.data)
        create_serializer.is_valid(raise_exception=True)

        data = create_serializer.validated_data
        idempotency_key = request.headers.get("Idempotency-Key")
        dto = CreateOrderDTO(
            retailer_id=actor.id,
            product_id=data["product_id"],
            quantity=data["quantity"],
            delivery_place=data["delivery_place"],
            order_notes=data.get("order_notes", ""),
            idempotency_key=idempotency_key,
        )

        existed = bool(
            idempotency_key
            and Order.objects.filter(idempotency_key=idempotency_key).exists()
        )
        try:
            order = self._engine.create_order(dto)
        except (
            OrderError,
            ProductNotFound,
            InactiveProduct,
            BelowMinimumOrderQuantity,
            InsufficientStock,
        ) as exc:
            raise _api_error(exc) from exc

        out = OrderSerializer(order)
        return Response(
            out.data,
            status=status.HTTP_200_OK if existed else status.HTTP_201_CREATED,
        )

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def get_queryset(self):
        if getattr(self, "swagger_fake_view", False):
            return Order.objects.none()
        actor = self._actor(self.request)
        return self._engine.list_orders(
            self._engine.actor_scope(actor.role, actor.id)
        )

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/

        Only the caller's own orders are listed.  Filtering is handled by
        ``OrderFilter`` via ``filter_backends``; results are paginated.
        """
        queryset = self.filter_queryset(self.get_queryset())

        page = self.paginate_queryset(queryset)
        serializer = OrderListSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: Optional[str] = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        order = self._visible_order(self._actor(request), pk)
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def transitions(self, request: Request, pk: Optional[str] = None) -> Response:
        """POST /api/v1/orders/{pk}/transitions/

        Body: ``target_status``, ``expected_version`` and whichever reason
        fields (or ``transporter_id``) the transition requires.
        """
        actor = self._actor(request)
        serializer = TransitionRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)

        target_status = data.pop("target_status")
        expected_version = data.pop("expected_version")
        return self._transition(
            TransitionRequestDTO(
                order_id=self._order_id(pk),
                actor_role=actor.role,
                actor_id=actor.id,
                expected_version=expected_version,
                target_status=target_status,
                payload=TransitionPayload(**data),
            )
        )

    @action(detail=True, methods=["post"], url_path="resolve-dispute")
    def resolve_dispute(self, request: Request, pk: Optional[str] = None) -> Response:
        """POST /api/v1/orders/{pk}/resolve-dispute/"""
        actor = self._actor(request)
        serializer = ResolveDisputeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        resolution = _DISPUTE_RESOLUTION.validate_python(
            {
                "resolution": data["resolution"],
                "resolution_notes": data["resolution_notes"],
            }
        )
        return self._transition(
            TransitionRequestDTO(
                order_id=self._order_id(pk),
                actor_role=actor.role,
                actor_id=actor.id,
                expected_version=data["expected_version"],
                target_status=resolution.target_status,
                payload=TransitionPayload(
                    resolution_notes=resolution.resolution_notes
                ),
            )
        )

    @action(detail=True, methods=["post"], url_path="handle-return")
    def handle_return(self, request: Request, pk: Optional[str] = None) -> Response:
        """POST /api/v1/orders/{pk}/handle-return/"""
        actor = self._actor(request)
        serializer = HandleReturnSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        decision = ReturnDecisionDTO(
            decision=data["decision"],
            return_rejection_reason=data["return_rejection_reason"],
        )
        return self._transition(
            TransitionRequestDTO(
                order_id=self._order_id(pk),
                actor_role=actor.role,
                actor_id=actor.id,
                expected_version=data["expected_version"],
                target_status=decision.target_status,
                payload=TransitionPayload(
                    return_rejection_reason=decision.return_rejection_reason
                ),
            )
        )

    def destroy(self, request: Request, pk: Optional[str] = None) -> Response:
        """DELETE /api/v1/orders/{pk}/?expected_version=N

        Tombstones the order (status ``deleted``); nothing is removed.
        """
        actor = self._actor(request)
        serializer = ExpectedVersionSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)

        return self._transition(
            TransitionRequestDTO(
                order_id=self._order_id(pk),
                actor_role=actor.role,
                actor_id=actor.id,
                expected_version=serializer.validated_data["expected_version"],
                target_status=OrderStatus.DELETED,
            )
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @action(detail=True, methods=["get"], url_path="allowed-transitions")
    def allowed_transitions(
        self, request: Request, pk: Optional[str] = None
    ) -> Response:
        """GET /api/v1/orders/{pk}/allowed-transitions/"""
        actor = self._actor(request)
        order = self._visible_order(actor, pk)
        return Response(
            {
                "order_id": str(order.id),
                "status": order.status,
                "version": order.version,
                "actor_role": actor.role,
                "allowed_transitions": self._engine.allowed_transitions(
                    order, actor.role
                ),
            }
        )

    @action(detail=False, methods=["get"])
    def stats(self, request: Request) -> Response:
        """GET /api/v1/orders/stats/"""
        actor = self._actor(request)
        return Response(self._engine.statistics(actor.role, actor.id))
