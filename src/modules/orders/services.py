"""Order engine (Use Cases).

Validates and applies every order status change against the transition
table, commits it atomically under optimistic concurrency and emits the
side effects the change implies.  All write operations are atomic: the
status update, the history entry and the outbox rows for the side
effects commit together or not at all.

Business rules enforced:
- Only the ``(actor_role, status, target)`` triples in the table are legal.
- The actor must hold the role, and be the order's holder for that role.
- ``expected_version`` must match; exactly one of two concurrent writers
  with the same version wins.
- Every accepted change appends exactly one history entry and bumps
  ``version`` by one.
- Stock is reserved at creation and restored or committed through
  idempotent side effects.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

import structlog
from django.db import transaction
from django.utils import timezone

from modules.accounts.constants import ActorRole
from modules.inventory.exceptions import (
    BelowMinimumOrderQuantity,
    InactiveProduct,
    ProductNotFound,
)
from modules.orders.constants import INITIAL_STATUS, OrderStatus
from modules.orders.disputes import DisputeResolver
from modules.orders.dtos import TransitionPayload, TransitionRequestDTO
from modules.orders.events import OrderCreated, OrderTransitioned, SideEffectRequested
from modules.orders.exceptions import (
    InvalidTransition,
    MissingRequiredField,
    OrderNotFound,
    StaleVersion,
    Unauthorized,
)
from modules.orders.models import Order
from modules.orders.returns import ReturnCoordinator
from modules.orders.side_effects import EffectSpec, SideEffectKind, build_side_effects
from modules.orders.transitions import Action, Transition, allowed_targets, lookup

if TYPE_CHECKING:
    from datetime import datetime

    from modules.accounts.services import IdentityService
    from modules.inventory.repositories.interfaces import IInventoryRepository
    from modules.inventory.services import InventoryService
    from modules.orders.dtos import (
        CreateOrderDTO,
        DisputeResolutionDTO,
        ReturnDecisionDTO,
    )
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

Applier = Callable[["Order", TransitionPayload, "datetime"], Tuple[str, ...]]

_CREATION_EFFECTS = (EffectSpec(SideEffectKind.NOTIFY_ACTOR, ActorRole.WHOLESALER),)

# Order fields an actor's role is matched against when scoping queries.
_HOLDER_FILTERS: Dict[str, str] = {
    ActorRole.RETAILER: "retailer_id",
    ActorRole.WHOLESALER: "wholesaler_id",
    ActorRole.TRANSPORTER: "transporter_id",
}


class OrderEngine:
    """Application service for the order lifecycle.

    Receives repositories and collaborators via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        product_repository: IInventoryRepository,
        identity_service: IdentityService,
        inventory_service: InventoryService,
        dispute_resolver: Optional[DisputeResolver] = None,
        return_coordinator: Optional[ReturnCoordinator] = None,
    ) -> None:
        self._order_repo = order_repository
        self._product_repo = product_repository
        self._identity = identity_service
        self._inventory = inventory_service

        self._appliers: Dict[str, Applier] = {
            Action.ADVANCE: self._advance,
            Action.REJECT: self._reject,
            Action.ASSIGN_TRANSPORTER: self._assign_transporter,
            Action.CONFIRM_TRANSPORTER: self._confirm_transporter,
            Action.DELIVER: self._deliver,
            Action.CERTIFY: self._certify,
            Action.CANCEL: self._cancel,
            Action.DELETE: self._advance,
        }
        self._appliers.update((dispute_resolver or DisputeResolver()).appliers())
        self._appliers.update((return_coordinator or ReturnCoordinator()).appliers())

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_order(self, dto: CreateOrderDTO) -> Order:
        """Place a new order and reserve its stock.

        Steps:
        1. Return the existing order for a repeated idempotency key.
        2. Verify the retailer and the product.
        3. Reserve stock under the product row lock.
        4. Persist the order, its creation history entry and a
           notification for the wholesaler.

        Raises:
            Unauthorized: the retailer is not an active retailer.
            ProductNotFound: the product does not exist.
            InactiveProduct: the product is not orderable.
            BelowMinimumOrderQuantity: quantity under the product minimum.
            InsufficientStock: not enough stock to reserve.
        """
        log = logger.bind(
            retailer_id=str(dto.retailer_id), product_id=str(dto.product_id)
        )
        log.info("order.creation_started")

        if dto.idempotency_key:
            existing = self._order_repo.get_by_idempotency_key(dto.idempotency_key)
            if existing:
                if str(existing.retailer_id) != str(dto.retailer_id):
                    raise Unauthorized("Idempotency key belongs to another retailer.")
                log.info(
                    "order.idempotency_hit",
                    order_id=str(existing.id),
                    key=dto.idempotency_key,
                )
                return existing

        if not self._identity.has_role(dto.retailer_id, ActorRole.RETAILER):
            raise Unauthorized(f"Actor {dto.retailer_id} is not an active retailer.")

        product = self._product_repo.get_by_id(str(dto.product_id))
        if not product:
            raise ProductNotFound(f"Product {dto.product_id} not found.")
        if not product.is_active:
            raise InactiveProduct(f"Product {dto.product_id} is inactive.")
        if dto.quantity < product.min_order_quantity:
            raise BelowMinimumOrderQuantity(
                f"Product {product.sku}: minimum order quantity is "
                f"{product.min_order_quantity}, requested {dto.quantity}."
            )

        order = Order(
            retailer_id=dto.retailer_id,
            wholesaler_id=product.wholesaler_id,
            product_id=product.id,
            quantity=dto.quantity,
            unit_price=product.price,
            measurement_unit=product.measurement_unit,
            delivery_place=dto.delivery_place,
            order_notes=dto.order_notes or "",
            idempotency_key=dto.idempotency_key,
        )

        self._inventory.decrement_stock(f"{order.id}:reserve", product.id, dto.quantity)

        order.add_domain_event(OrderCreated(aggregate_id=order.id))
        self._queue_side_effects(
            order, _CREATION_EFFECTS, from_status=None, to_status=INITIAL_STATUS
        )
        self._order_repo.create(order)
        self._order_repo.add_history(
            order_id=order.id,
            sequence=order.version,
            from_status=None,
            to_status=INITIAL_STATUS,
            actor_role=ActorRole.RETAILER,
            actor_id=dto.retailer_id,
            reason="Order created",
        )

        log.info("order.created", order_id=str(order.id))
        self._schedule_relay()

        return self._order_repo.get_by_id(str(order.id)) or order

    @transaction.atomic
    def request_transition(self, request: TransitionRequestDTO) -> Order:
        """Validate and apply one status change.

        Checks run in a fixed order so the same request always fails the
        same way: not found, role membership, version, table, holder,
        required fields, then the version-conditional commit.

        Raises:
            OrderNotFound: order does not exist.
            Unauthorized: actor does not hold the role, or is not the
                order's holder for it.
            StaleVersion: ``expected_version`` is out of date.
            InvalidTransition: the triple is not in the table.
            MissingRequiredField: a field the transition needs is absent.
        """
        order = self._order_repo.get_by_id(str(request.order_id))
        if not order:
            raise OrderNotFound(f"Order {request.order_id} not found.")

        role = request.actor_role
        target = request.target_status
        log = logger.bind(
            order_id=str(order.id),
            actor_role=role,
            actor_id=str(request.actor_id),
            current_status=order.status,
            target_status=target,
            expected_version=request.expected_version,
        )

        if not self._identity.has_role(request.actor_id, role):
            log.warning("order.transition_refused", reason="role_not_held")
            raise Unauthorized(f"Actor {request.actor_id} does not hold role {role}.")

        if order.version != request.expected_version:
            log.warning("order.transition_refused", reason="stale_version")
            raise StaleVersion(request.expected_version, order.version)

        transition = lookup(role, order.status, target)
        if transition is None:
            log.warning("order.transition_refused", reason="invalid_transition")
            raise InvalidTransition(order.status, target, role)

        holder = order.holder_id(role)
        if holder is None or str(holder) != str(request.actor_id):
            log.warning("order.transition_refused", reason="not_holder")
            raise Unauthorized(
                f"Actor {request.actor_id} is not the {role} of this order."
            )

        for name in transition.required_fields:
            if request.payload.text(name) is None:
                log.warning("order.transition_refused", reason="missing_field", field=name)
                raise MissingRequiredField(name)

        from_status = order.status
        changed = self._appliers[transition.action](
            order, request.payload, timezone.now()
        )
        order.status = transition.target
        order.version = request.expected_version + 1

        order.add_domain_event(
            OrderTransitioned(
                aggregate_id=order.id,
                from_status=from_status,
                to_status=transition.target,
                actor_role=role,
                version=order.version,
            )
        )
        effects = self._queue_side_effects(
            order, transition.effects, from_status, transition.target
        )

        fields = ("status", "version") + tuple(changed)
        if not self._order_repo.commit_transition(
            order, request.expected_version, fields
        ):
            raise StaleVersion(request.expected_version)

        self._order_repo.add_history(
            order_id=order.id,
            sequence=order.version,
            from_status=from_status,
            to_status=transition.target,
            actor_role=role,
            actor_id=request.actor_id,
            reason=self._history_reason(transition, request.payload),
        )

        log.info(
            "order.transition_applied",
            version=order.version,
            side_effects=[effect.kind for effect in effects],
        )
        self._schedule_relay()

        return self._order_repo.get_by_id(str(order.id)) or order

    def resolve_dispute(
        self,
        order_id: UUID,
        actor_id: UUID,
        expected_version: int,
        resolution: DisputeResolutionDTO,
    ) -> Order:
        """Wholesaler closes a delivery dispute, optionally reassigning."""
        return self.request_transition(
            TransitionRequestDTO(
                order_id=order_id,
                actor_role=ActorRole.WHOLESALER,
                actor_id=actor_id,
                expected_version=expected_version,
                target_status=resolution.target_status,
                payload=TransitionPayload(resolution_notes=resolution.resolution_notes),
            )
        )

    def handle_return(
        self,
        order_id: UUID,
        actor_id: UUID,
        expected_version: int,
        decision: ReturnDecisionDTO,
    ) -> Order:
        """Wholesaler accepts or rejects a returned order."""
        return self.request_transition(
            TransitionRequestDTO(
                order_id=order_id,
                actor_role=ActorRole.WHOLESALER,
                actor_id=actor_id,
                expected_version=expected_version,
                target_status=decision.target_status,
                payload=TransitionPayload(
                    return_rejection_reason=decision.return_rejection_reason
                ),
            )
        )

    def delete_order(
        self, order_id: UUID, actor_id: UUID, expected_version: int
    ) -> Order:
        """Retailer tombstones an order (status ``deleted``)."""
        return self.request_transition(
            TransitionRequestDTO(
                order_id=order_id,
                actor_role=ActorRole.RETAILER,
                actor_id=actor_id,
                expected_version=expected_version,
                target_status=OrderStatus.DELETED,
            )
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> Order:
        """Retrieve a single order by ID.

        Raises:
            OrderNotFound: if the order does not exist.
        """
        order = self._order_repo.get_by_id(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def list_orders(self, filters: Optional[Dict[str, Any]] = None) -> Sequence[Order]:
        """Return a list of orders, optionally filtered."""
        return self._order_repo.list(filters)

    @staticmethod
    def allowed_transitions(order: Order, actor_role: str) -> List[str]:
        """Statuses *actor_role* could move *order* to right now.

        Starts from the table and drops what the engine would still refuse
        for this order: everything when nobody holds *actor_role* on it yet,
        and resolve-only once the dispute is closed.
        """
        if order.holder_id(actor_role) is None:
            return []
        return [
            target
            for target in allowed_targets(actor_role, order.status)
            if lookup(actor_role, order.status, target).action
            != Action.RESOLVE_DISPUTE
            or DisputeResolver.can_resolve_only(order)
        ]

    @staticmethod
    def actor_scope(actor_role: str, actor_id: UUID) -> Dict[str, Any]:
        """Filters selecting the orders *actor_id* takes part in as *actor_role*.

        Raises:
            Unauthorized: *actor_role* does not act on orders.
        """
        field = _HOLDER_FILTERS.get(actor_role)
        if field is None:
            raise Unauthorized(f"Role {actor_role} does not act on orders.")
        return {field: actor_id}

    def statistics(self, actor_role: str, actor_id: UUID) -> Dict[str, Any]:
        """Per-status totals over the orders *actor_id* takes part in."""
        rows = self._order_repo.status_summary(self.actor_scope(actor_role, actor_id))
        by_status = {
            row["status"]: {
                "count": row["count"],
                "total_value": row["total_value"],
                "total_quantity": row["total_quantity"],
            }
            for row in rows
        }
        return {
            "total_orders": sum(row["count"] for row in rows),
            "by_status": by_status,
        }

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def _advance(
        self, order: Order, payload: TransitionPayload, now: datetime
    ) -> Tuple[str, ...]:
        return ()

    def _reject(
        self, order: Order, payload: TransitionPayload, now: datetime
    ) -> Tuple[str, ...]:
        order.rejection_reason = payload.text("rejection_reason")
        return ("rejection_reason",)

    def _assign_transporter(
        self, order: Order, payload: TransitionPayload, now: datetime
    ) -> Tuple[str, ...]:
        if not self._identity.has_role(payload.transporter_id, ActorRole.TRANSPORTER):
            raise MissingRequiredField(
                "transporter_id",
                f"Participant {payload.transporter_id} is not an active transporter.",
            )
        order.transporter_id = payload.transporter_id
        order.transporter_confirmed_at = None
        return ("transporter", "transporter_confirmed_at")

    def _confirm_transporter(
        self, order: Order, payload: TransitionPayload, now: datetime
    ) -> Tuple[str, ...]:
        order.transporter_confirmed_at = now
        return ("transporter_confirmed_at",)

    def _deliver(
        self, order: Order, payload: TransitionPayload, now: datetime
    ) -> Tuple[str, ...]:
        order.actual_delivery_date = now
        return ("actual_delivery_date",)

    def _certify(
        self, order: Order, payload: TransitionPayload, now: datetime
    ) -> Tuple[str, ...]:
        order.delivery_certification_date = now
        return ("delivery_certification_date",)

    def _cancel(
        self, order: Order, payload: TransitionPayload, now: datetime
    ) -> Tuple[str, ...]:
        order.cancellation_reason = payload.text("cancellation_reason")
        return ("cancellation_reason",)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _history_reason(
        transition: Transition, payload: TransitionPayload
    ) -> Optional[str]:
        for name in transition.required_fields:
            if name != "transporter_id":
                return payload.text(name)
        return None

    @staticmethod
    def _queue_side_effects(
        order: Order,
        specs: Tuple[EffectSpec, ...],
        from_status: Optional[str],
        to_status: str,
    ):
        effects = build_side_effects(order, specs, from_status, to_status)
        for effect in effects:
            order.add_domain_event(
                SideEffectRequested(
                    aggregate_id=order.id,
                    effect_id=effect.effect_id,
                    kind=effect.kind,
                    payload=effect.payload,
                )
            )
        return effects

    @staticmethod
    def _schedule_relay() -> None:
        from modules.core.tasks import relay_outbox_events

        transaction.on_commit(relay_outbox_events.delay, robust=True)
