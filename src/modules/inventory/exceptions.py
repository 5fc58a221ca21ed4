"""Inventory domain exceptions.

Raised by the inventory collaborator and surfaced by the order engine
at order creation time.
"""

from __future__ import annotations


class ProductNotFound(Exception):
    """The requested product does not exist."""


class InactiveProduct(Exception):
    """The product is inactive and cannot be ordered."""


class InsufficientStock(Exception):
    """Not enough stock to reserve the requested quantity."""


class BelowMinimumOrderQuantity(Exception):
    """The requested quantity is below the product's minimum order quantity."""
