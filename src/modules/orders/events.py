"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """Raised when a retailer places an order."""


@dataclass(frozen=True)
class OrderTransitioned(DomainEvent):
    """Raised when a transition is committed."""

    from_status: str = ""
    to_status: str = ""
    actor_role: str = ""
    version: int = 0


@dataclass(frozen=True)
class SideEffectRequested(DomainEvent):
    """One side-effect descriptor awaiting delivery to its collaborator."""

    effect_id: str = ""
    kind: str = ""
    payload: Dict[str, Any] = field(default_factory=dict)
