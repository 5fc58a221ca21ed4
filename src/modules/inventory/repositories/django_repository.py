"""Django ORM implementation of the Inventory repository.

Look-ups follow the Null Object pattern (``None`` for missing or
malformed IDs).  Ledger inserts translate the unique-constraint violation
on ``effect_id`` into a ``False`` return instead of an exception.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction

from modules.inventory.models import Product, ProductStatus, RetailerStock, StockMovement
from modules.inventory.repositories.interfaces import IInventoryRepository

logger = structlog.get_logger(__name__)


class InventoryDjangoRepository(IInventoryRepository):
    """Concrete Inventory repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Product]:
        try:
            return Product.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Product]:
        try:
            return Product.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Product]:
        queryset = Product.objects.select_related("wholesaler")
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    @transaction.atomic
    def save(self, entity: Product) -> Product:
        entity.save()
        logger.info("product.saved", product_id=str(entity.id), sku=entity.sku)
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        """Deactivate a product; existing orders keep referencing it."""
        updated = Product.objects.filter(id=id).update(status=ProductStatus.INACTIVE)
        if updated:
            logger.info("product.deactivated", product_id=str(id))
        return bool(updated)

    # ------------------------------------------------------------------
    # Stock ledger
    # ------------------------------------------------------------------

    def record_movement(
        self,
        effect_id: str,
        kind: str,
        product_id: UUID,
        quantity: int,
        retailer_id: Optional[UUID] = None,
    ) -> bool:
        try:
            with transaction.atomic():
                StockMovement.objects.create(
                    effect_id=effect_id,
                    kind=kind,
                    product_id=product_id,
                    quantity=quantity,
                    retailer_id=retailer_id,
                )
        except IntegrityError:
            return False
        return True

    def get_retailer_stock_for_update(
        self, retailer_id: UUID, product_id: UUID
    ) -> RetailerStock:
        stock, _ = RetailerStock.objects.select_for_update().get_or_create(
            retailer_id=retailer_id,
            product_id=product_id,
        )
        return stock
