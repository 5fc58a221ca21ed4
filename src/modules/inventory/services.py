"""Inventory collaborator (Use Cases).

Applies the stock side effects produced by order transitions.  Every
operation takes the side-effect id that caused it and is idempotent per
id: the ledger row is inserted in the same transaction as the stock
change, so a replay finds the row and returns ``False`` without touching
stock.

Lock order is always product row first, then ledger, then retailer
stock, to keep concurrent side effects deadlock-free.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

import structlog
from django.db import transaction

from modules.inventory.exceptions import InsufficientStock, ProductNotFound
from modules.inventory.models import MovementKind

if TYPE_CHECKING:
    from modules.inventory.models import Product
    from modules.inventory.repositories.interfaces import IInventoryRepository

logger = structlog.get_logger(__name__)


class InventoryService:
    """Idempotent stock operations keyed by side-effect id."""

    def __init__(self, repository: IInventoryRepository) -> None:
        self._repo = repository

    @transaction.atomic
    def decrement_stock(self, effect_id: str, product_id: UUID, quantity: int) -> bool:
        """Take *quantity* out of the wholesaler's available stock.

        Raises:
            ProductNotFound: product does not exist.
            InsufficientStock: available stock is below *quantity*.
        """
        log = logger.bind(effect_id=effect_id, product_id=str(product_id))
        product = self._lock_product(product_id)

        if not self._repo.record_movement(
            effect_id, MovementKind.DECREMENT, product.id, quantity
        ):
            log.info("inventory.effect_replayed", kind=MovementKind.DECREMENT)
            return False

        # Raising rolls the ledger row back with the rest of the transaction.
        if product.stock_quantity < quantity:
            log.warning(
                "inventory.insufficient_stock",
                requested=quantity,
                available=product.stock_quantity,
            )
            raise InsufficientStock(
                f"Product {product.sku}: requested {quantity}, "
                f"available {product.stock_quantity}."
            )

        product.stock_quantity -= quantity
        product.save(update_fields=["stock_quantity"])
        log.info(
            "inventory.stock_decremented",
            quantity=quantity,
            remaining=product.stock_quantity,
        )
        return True

    @transaction.atomic
    def restore_stock(self, effect_id: str, product_id: UUID, quantity: int) -> bool:
        """Put *quantity* back into the wholesaler's available stock."""
        log = logger.bind(effect_id=effect_id, product_id=str(product_id))
        product = self._lock_product(product_id)

        if not self._repo.record_movement(
            effect_id, MovementKind.RESTORE, product.id, quantity
        ):
            log.info("inventory.effect_replayed", kind=MovementKind.RESTORE)
            return False

        product.stock_quantity += quantity
        product.save(update_fields=["stock_quantity"])
        log.info(
            "inventory.stock_restored",
            quantity=quantity,
            restored_stock=product.stock_quantity,
        )
        return True

    @transaction.atomic
    def commit_to_retailer(
        self,
        effect_id: str,
        product_id: UUID,
        retailer_id: UUID,
        quantity: int,
    ) -> bool:
        """Add a certified delivery to the retailer's system stock."""
        log = logger.bind(
            effect_id=effect_id,
            product_id=str(product_id),
            retailer_id=str(retailer_id),
        )
        product = self._lock_product(product_id)

        if not self._repo.record_movement(
            effect_id, MovementKind.COMMIT, product.id, quantity, retailer_id
        ):
            log.info("inventory.effect_replayed", kind=MovementKind.COMMIT)
            return False

        stock = self._repo.get_retailer_stock_for_update(retailer_id, product.id)
        stock.quantity += quantity
        stock.save(update_fields=["quantity"])
        log.info("inventory.retailer_stock_committed", quantity=quantity)
        return True

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _lock_product(self, product_id: UUID) -> Product:
        product = self._repo.get_for_update(str(product_id))
        if not product:
            raise ProductNotFound(f"Product {product_id} not found.")
        return product
