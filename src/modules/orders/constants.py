"""Order domain constants.

Defines the order status choices, the terminal set and the error
taxonomy shared by the engine and the API layer.  The legal transitions
themselves live in ``modules.orders.transitions``.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    ACCEPTED = "accepted", "Accepted"
    REJECTED = "rejected", "Rejected"
    PROCESSING = "processing", "Processing"
    ASSIGNED_TO_TRANSPORTER = "assigned_to_transporter", "Assigned to transporter"
    ACCEPTED_BY_TRANSPORTER = "accepted_by_transporter", "Accepted by transporter"
    IN_TRANSIT = "in_transit", "In transit"
    DELIVERED = "delivered", "Delivered"
    CERTIFIED = "certified", "Certified"
    DISPUTED = "disputed", "Disputed"
    RETURN_TO_WHOLESALER = "return_to_wholesaler", "Return to wholesaler"
    RETURN_ACCEPTED = "return_accepted", "Return accepted"
    RETURN_REJECTED = "return_rejected", "Return rejected"
    CANCELLED_BY_RETAILER = "cancelled_by_retailer", "Cancelled by retailer"
    CANCELLED_BY_WHOLESALER = "cancelled_by_wholesaler", "Cancelled by wholesaler"
    CANCELLED_BY_TRANSPORTER = "cancelled_by_transporter", "Cancelled by transporter"
    DELETED = "deleted", "Deleted"


INITIAL_STATUS = OrderStatus.PENDING

TERMINAL_STATES: frozenset[str] = frozenset(
    {
        OrderStatus.REJECTED,
        OrderStatus.CERTIFIED,
        OrderStatus.RETURN_ACCEPTED,
        OrderStatus.RETURN_REJECTED,
        OrderStatus.CANCELLED_BY_RETAILER,
        OrderStatus.CANCELLED_BY_WHOLESALER,
        OrderStatus.CANCELLED_BY_TRANSPORTER,
        OrderStatus.DELETED,
    }
)

# States in which a transporter must be on record.
TRANSPORTER_REQUIRED_STATES: frozenset[str] = frozenset(
    {
        OrderStatus.ASSIGNED_TO_TRANSPORTER,
        OrderStatus.ACCEPTED_BY_TRANSPORTER,
        OrderStatus.IN_TRANSIT,
        OrderStatus.DELIVERED,
        OrderStatus.CERTIFIED,
        OrderStatus.RETURN_TO_WHOLESALER,
    }
)


class ErrorKind(models.TextChoices):
    INVALID_TRANSITION = "InvalidTransition", "Invalid transition"
    UNAUTHORIZED = "Unauthorized", "Unauthorized"
    STALE_VERSION = "StaleVersion", "Stale version"
    MISSING_REQUIRED_FIELD = "MissingRequiredField", "Missing required field"
    NOT_FOUND = "NotFound", "Not found"


ORDER_NUMBER_MAX_RETRIES = 5
