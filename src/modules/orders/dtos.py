"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the order engine.  DTOs are immutable (``frozen=True``).

- ``CreateOrderDTO``: input for order creation by a retailer.
- ``TransitionPayload``: transition-specific fields (reasons, transporter).
- ``TransitionRequestDTO``: one ``request_transition`` call.
- ``ResolveOnlyDTO`` / ``ResolveAndReassignDTO``: the two dispute
  resolution variants, discriminated by ``resolution``.
- ``ReturnDecisionDTO``: a wholesaler's answer to a return request.
"""

from __future__ import annotations

from typing import Annotated, ClassVar, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from modules.accounts.constants import ORDER_ROLES
from modules.orders.constants import OrderStatus

# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


class CreateOrderDTO(BaseModel):
    """Immutable DTO for order creation requests.

    ``unit_price``, ``measurement_unit`` and the wholesaler are resolved by
    the engine from the product catalog.
    """

    model_config = ConfigDict(frozen=True)

    retailer_id: UUID
    product_id: UUID
    quantity: int
    delivery_place: str
    order_notes: Optional[str] = ""
    idempotency_key: Optional[str] = None

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v

    @field_validator("delivery_place")
    @classmethod
    def delivery_place_must_not_be_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Delivery place is required.")
        return v.strip()


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


class TransitionPayload(BaseModel):
    """Transition-specific fields; which ones are required depends on the
    table entry being applied."""

    model_config = ConfigDict(frozen=True)

    cancellation_reason: Optional[str] = None
    rejection_reason: Optional[str] = None
    transporter_id: Optional[UUID] = None
    dispute_reason: Optional[str] = None
    resolution_notes: Optional[str] = None
    return_reason: Optional[str] = None
    return_rejection_reason: Optional[str] = None

    def text(self, name: str) -> Optional[str]:
        """Field value with surrounding whitespace removed; blank -> ``None``."""
        value = getattr(self, name)
        if value is None:
            return None
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value


class TransitionRequestDTO(BaseModel):
    """Immutable DTO for one ``OrderEngine.request_transition`` call."""

    model_config = ConfigDict(frozen=True)

    order_id: UUID
    actor_role: str
    actor_id: UUID
    expected_version: int
    target_status: str
    payload: TransitionPayload = Field(default_factory=TransitionPayload)

    @field_validator("actor_role")
    @classmethod
    def actor_role_must_take_part_in_orders(cls, v: str) -> str:
        if v not in ORDER_ROLES:
            raise ValueError(f"Role '{v}' does not act on orders.")
        return v

    @field_validator("expected_version")
    @classmethod
    def expected_version_must_not_be_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Expected version cannot be negative.")
        return v


# ---------------------------------------------------------------------------
# Dispute resolution variants
# ---------------------------------------------------------------------------


class ResolveOnlyDTO(BaseModel):
    """Close the dispute; the order stays ``disputed``."""

    model_config = ConfigDict(frozen=True)

    target_status: ClassVar[str] = OrderStatus.DISPUTED

    resolution: Literal["resolve_only"] = "resolve_only"
    resolution_notes: str


class ResolveAndReassignDTO(BaseModel):
    """Close the dispute, drop the transporter and go back to ``processing``."""

    model_config = ConfigDict(frozen=True)

    target_status: ClassVar[str] = OrderStatus.PROCESSING

    resolution: Literal["resolve_and_reassign"] = "resolve_and_reassign"
    resolution_notes: str


DisputeResolutionDTO = Annotated[
    Union[ResolveOnlyDTO, ResolveAndReassignDTO],
    Field(discriminator="resolution"),
]


# ---------------------------------------------------------------------------
# Return decision
# ---------------------------------------------------------------------------


class ReturnDecisionDTO(BaseModel):
    """Wholesaler decision on a ``return_to_wholesaler`` order."""

    model_config = ConfigDict(frozen=True)

    decision: Literal["accept", "reject"]
    return_rejection_reason: Optional[str] = None

    @property
    def target_status(self) -> str:
        if self.decision == "accept":
            return OrderStatus.RETURN_ACCEPTED
        return OrderStatus.RETURN_REJECTED

    @model_validator(mode="after")
    def reason_only_on_reject(self):
        if self.decision == "accept" and self.return_rejection_reason:
            raise ValueError("A rejection reason is only allowed when rejecting.")
        return self
