"""Side-effect descriptors produced by accepted transitions.

A descriptor is plain data: which collaborator action to run, with which
arguments, under which id.  ``effect_id`` is derived from the order id,
the version the transition produced and the descriptor's position, so the
same transition always yields the same ids and collaborators can
deduplicate replays.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

from django.db import models

if TYPE_CHECKING:
    from modules.orders.models import Order


class SideEffectKind(models.TextChoices):
    RESTORE_STOCK = "RestoreStock", "Restore stock"
    COMMIT_STOCK = "CommitStock", "Commit stock to retailer"
    NOTIFY_ACTOR = "NotifyActor", "Notify actor"


@dataclass(frozen=True)
class EffectSpec:
    """Static side-effect template attached to a table entry."""

    kind: SideEffectKind
    recipient_role: Optional[str] = None


@dataclass(frozen=True)
class SideEffect:
    effect_id: str
    kind: str
    order_id: str
    payload: Dict[str, Any] = field(default_factory=dict)


def build_side_effects(
    order: Order,
    specs: Tuple[EffectSpec, ...],
    from_status: str,
    to_status: str,
) -> Tuple[SideEffect, ...]:
    """Materialise *specs* against the committed state of *order*.

    Notifications addressed to a role nobody holds are dropped before ids
    are assigned.
    """
    effects = []
    for spec in specs:
        payload = _payload_for(order, spec, from_status, to_status)
        if payload is None:
            continue
        effect_id = f"{order.id}:{order.version}:{len(effects)}"
        effects.append(
            SideEffect(
                effect_id=effect_id,
                kind=str(spec.kind),
                order_id=str(order.id),
                payload=payload,
            )
        )
    return tuple(effects)


def _payload_for(
    order: Order, spec: EffectSpec, from_status: str, to_status: str
) -> Optional[Dict[str, Any]]:
    if spec.kind == SideEffectKind.RESTORE_STOCK:
        return {"product_id": str(order.product_id), "quantity": order.quantity}
    if spec.kind == SideEffectKind.COMMIT_STOCK:
        return {
            "product_id": str(order.product_id),
            "retailer_id": str(order.retailer_id),
            "quantity": order.quantity,
        }
    recipient_id = order.holder_id(spec.recipient_role)
    if recipient_id is None:
        return None
    return {
        "recipient_id": str(recipient_id),
        "recipient_role": str(spec.recipient_role),
        "event": f"order_{to_status}",
        "from_status": from_status,
        "to_status": to_status,
    }
