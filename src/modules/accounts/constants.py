"""Participant role constants."""

from django.db import models


class ActorRole(models.TextChoices):
    RETAILER = "retailer", "Retailer"
    WHOLESALER = "wholesaler", "Wholesaler"
    TRANSPORTER = "transporter", "Transporter"
    SUPPLIER = "supplier", "Supplier"


# Roles that take part in the retailer order lifecycle.
ORDER_ROLES: frozenset[str] = frozenset(
    {ActorRole.RETAILER, ActorRole.WHOLESALER, ActorRole.TRANSPORTER}
)
