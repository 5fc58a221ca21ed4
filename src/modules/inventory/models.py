"""Wholesaler products, retailer system stock and the stock ledger.

Business rules implemented:
- Product stock quantity cannot be negative.
- Product price must be greater than zero.
- Every stock mutation is recorded once in ``StockMovement``, keyed by the
  side-effect id that caused it.  A replayed side effect finds its movement
  already recorded and changes nothing.
"""

from __future__ import annotations

from decimal import Decimal

import structlog
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel

logger = structlog.get_logger(__name__)


class ProductStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"


class MovementKind(models.TextChoices):
    DECREMENT = "DECREMENT", "Decrement"
    RESTORE = "RESTORE", "Restore"
    COMMIT = "COMMIT", "Commit to retailer"


class Product(BaseModel):
    """A wholesaler's sellable product.

    ``stock_quantity`` is the quantity still available for new orders;
    orders reserve stock from it at creation time.
    """

    wholesaler = models.ForeignKey(
        "accounts.Participant",
        on_delete=models.PROTECT,
        related_name="products",
    )
    sku = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=255)
    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    stock_quantity = models.PositiveIntegerField(default=0)
    min_order_quantity = models.PositiveIntegerField(default=1)
    measurement_unit = models.CharField(max_length=32, default="unit")
    status = models.CharField(
        max_length=20,
        choices=ProductStatus.choices,
        default=ProductStatus.ACTIVE,
    )

    class Meta:
        db_table = "products"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["status"], name="products_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price__gt=0),
                name="products_price_positive",
            ),
        ]

    @property
    def is_active(self) -> bool:
        return self.status == ProductStatus.ACTIVE

    def save(self, *args, **kwargs) -> None:
        if self.sku:
            self.sku = self.sku.strip().upper()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.sku} - {self.name}"


class RetailerStock(BaseModel):
    """A retailer's system stock of a product, fed by certified orders."""

    retailer = models.ForeignKey(
        "accounts.Participant",
        on_delete=models.PROTECT,
        related_name="system_stock",
    )
    product = models.ForeignKey(
        "inventory.Product",
        on_delete=models.PROTECT,
        related_name="retailer_stock",
    )
    quantity = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "retailer_stock"
        constraints = [
            models.UniqueConstraint(
                fields=["retailer", "product"],
                name="retailer_stock_unique_product",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.retailer_id}: {self.product_id} x{self.quantity}"


class StockMovement(BaseModel):
    """Append-only ledger of applied stock side effects.

    ``effect_id`` is unique: the database rejects a second movement for the
    same side effect, which is what makes at-least-once delivery safe.
    """

    effect_id = models.CharField(max_length=128, unique=True)
    kind = models.CharField(max_length=20, choices=MovementKind.choices)
    product = models.ForeignKey(
        "inventory.Product",
        on_delete=models.PROTECT,
        related_name="movements",
    )
    retailer = models.ForeignKey(
        "accounts.Participant",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )
    quantity = models.PositiveIntegerField()

    class Meta:
        db_table = "stock_movements"
        ordering = ["created_at"]

    def __str__(self) -> str:
        return f"{self.kind} {self.product_id} x{self.quantity} [{self.effect_id}]"
