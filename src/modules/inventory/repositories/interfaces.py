"""Inventory repository interface.

Extends ``IRepository[Product]`` with the row-locking and ledger
operations the stock side effects need.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Optional
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.inventory.models import Product, RetailerStock


class IInventoryRepository(IRepository["Product"]):
    """Repository contract for products and their stock ledger."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Product]:
        """Retrieve a product with a row-level lock (SELECT FOR UPDATE)."""

    @abstractmethod
    def record_movement(
        self,
        effect_id: str,
        kind: str,
        product_id: UUID,
        quantity: int,
        retailer_id: Optional[UUID] = None,
    ) -> bool:
        """Insert a ledger row; ``False`` if *effect_id* was already recorded."""

    @abstractmethod
    def get_retailer_stock_for_update(
        self, retailer_id: UUID, product_id: UUID
    ) -> RetailerStock:
        """Fetch (creating if needed) and lock a retailer's stock row."""
