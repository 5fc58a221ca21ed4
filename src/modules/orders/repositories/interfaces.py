"""Order repository interface.

Extends ``IRepository[Order]`` with the methods the order engine needs:
idempotent creation look-up, version-conditional commits, the
append-only status history and per-status counts.

The engine depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Sequence
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderStatusHistory


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    Every mutation writes the aggregate's pending domain events to the
    outbox in the same transaction.
    """

    @abstractmethod
    def create(self, order: Order) -> Order:
        """Insert a new order and its pending outbox events."""

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with its participants and status history."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> Sequence[Order]:
        """List orders with optional filters.

        The result may be lazy so callers can filter, order and paginate
        it further.
        """

    @abstractmethod
    def commit_transition(
        self,
        order: Order,
        expected_version: int,
        fields: Iterable[str],
    ) -> bool:
        """Write *fields* only if the stored version is still *expected_version*.

        Returns ``False`` (and writes nothing) when another writer got
        there first.
        """

    @abstractmethod
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
        """Append one entry to the order's audit trail."""

    @abstractmethod
    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        """Retrieve an order by its idempotency key."""

    @abstractmethod
    def status_summary(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """Order count, total value and total quantity per status."""
