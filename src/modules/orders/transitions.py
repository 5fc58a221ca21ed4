"""The order transition table.

One authoritative, static table of every legal status change, indexed by
``(actor_role, source_status, target_status)``.  Each entry names the
payload fields the transition requires, the action the engine applies to
the record and the side effects it produces.  The engine, the API and any
UI deciding which buttons to show all read this table.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from modules.accounts.constants import ActorRole
from modules.orders.constants import OrderStatus
from modules.orders.side_effects import EffectSpec, SideEffectKind


class Action:
    ADVANCE = "advance"
    REJECT = "reject"
    ASSIGN_TRANSPORTER = "assign_transporter"
    CONFIRM_TRANSPORTER = "confirm_transporter"
    DELIVER = "deliver"
    CERTIFY = "certify"
    DISPUTE = "dispute"
    CANCEL = "cancel"
    RESOLVE_DISPUTE = "resolve_dispute"
    RESOLVE_AND_REASSIGN = "resolve_and_reassign"
    REQUEST_RETURN = "request_return"
    ACCEPT_RETURN = "accept_return"
    REJECT_RETURN = "reject_return"
    DELETE = "delete"


@dataclass(frozen=True)
class Transition:
    actor_role: str
    source: str
    target: str
    action: str
    required_fields: Tuple[str, ...] = ()
    effects: Tuple[EffectSpec, ...] = ()

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.actor_role, self.source, self.target)


def _notify(*roles: str) -> Tuple[EffectSpec, ...]:
    return tuple(EffectSpec(SideEffectKind.NOTIFY_ACTOR, role) for role in roles)


_RESTORE = (EffectSpec(SideEffectKind.RESTORE_STOCK),)
_COMMIT = (EffectSpec(SideEffectKind.COMMIT_STOCK),)

R = ActorRole.RETAILER
W = ActorRole.WHOLESALER
T = ActorRole.TRANSPORTER
S = OrderStatus

PRE_SHIPMENT_STATES = (S.PENDING, S.ACCEPTED, S.PROCESSING)
IN_TRANSPORT_STATES = (
    S.ASSIGNED_TO_TRANSPORTER,
    S.ACCEPTED_BY_TRANSPORTER,
    S.IN_TRANSIT,
)
DELETABLE_STATES = (
    S.PENDING,
    S.REJECTED,
    S.RETURN_ACCEPTED,
    S.RETURN_REJECTED,
    S.CANCELLED_BY_WHOLESALER,
)

CANCELLED_STATUS_BY_ROLE: Dict[str, str] = {
    R: S.CANCELLED_BY_RETAILER,
    W: S.CANCELLED_BY_WHOLESALER,
    T: S.CANCELLED_BY_TRANSPORTER,
}

_COUNTERPARTIES: Dict[str, Tuple[str, ...]] = {
    R: (W,),
    W: (R, T),
    T: (W, R),
}


def _cancellations() -> Iterable[Transition]:
    for role in (R, W, T):
        for source in PRE_SHIPMENT_STATES:
            yield Transition(
                role,
                source,
                CANCELLED_STATUS_BY_ROLE[role],
                Action.CANCEL,
                required_fields=("cancellation_reason",),
                effects=_RESTORE + _notify(*_COUNTERPARTIES[role]),
            )
    for role in (W, T):
        for source in IN_TRANSPORT_STATES:
            yield Transition(
                role,
                source,
                CANCELLED_STATUS_BY_ROLE[role],
                Action.CANCEL,
                required_fields=("cancellation_reason",),
                effects=_notify(*_COUNTERPARTIES[role]),
            )


def _deletions() -> Iterable[Transition]:
    for source in DELETABLE_STATES:
        # Only a pending order still holds its stock reservation.
        effects = _RESTORE if source == S.PENDING else ()
        yield Transition(R, source, S.DELETED, Action.DELETE, effects=effects)


TRANSITIONS: Tuple[Transition, ...] = (
    # Wholesaler: acceptance and preparation
    Transition(W, S.PENDING, S.ACCEPTED, Action.ADVANCE, effects=_notify(R)),
    Transition(
        W,
        S.PENDING,
        S.REJECTED,
        Action.REJECT,
        required_fields=("rejection_reason",),
        effects=_RESTORE + _notify(R),
    ),
    Transition(W, S.ACCEPTED, S.PROCESSING, Action.ADVANCE, effects=_notify(R)),
    Transition(
        W,
        S.PROCESSING,
        S.ASSIGNED_TO_TRANSPORTER,
        Action.ASSIGN_TRANSPORTER,
        required_fields=("transporter_id",),
        effects=_notify(T),
    ),
    # Transporter: pickup and delivery
    Transition(
        T,
        S.ASSIGNED_TO_TRANSPORTER,
        S.ACCEPTED_BY_TRANSPORTER,
        Action.CONFIRM_TRANSPORTER,
        effects=_notify(W),
    ),
    Transition(
        T,
        S.ASSIGNED_TO_TRANSPORTER,
        S.IN_TRANSIT,
        Action.CONFIRM_TRANSPORTER,
        effects=_notify(R),
    ),
    Transition(
        T, S.ACCEPTED_BY_TRANSPORTER, S.IN_TRANSIT, Action.ADVANCE, effects=_notify(R)
    ),
    Transition(T, S.IN_TRANSIT, S.DELIVERED, Action.DELIVER, effects=_notify(R)),
    # Retailer: certification or dispute
    Transition(
        R, S.DELIVERED, S.CERTIFIED, Action.CERTIFY, effects=_COMMIT + _notify(W)
    ),
    Transition(
        R,
        S.DELIVERED,
        S.DISPUTED,
        Action.DISPUTE,
        required_fields=("dispute_reason",),
        effects=_notify(W),
    ),
    # Dispute resolution (DisputeResolver)
    Transition(
        W,
        S.DISPUTED,
        S.DISPUTED,
        Action.RESOLVE_DISPUTE,
        required_fields=("resolution_notes",),
        effects=_notify(R),
    ),
    Transition(
        W,
        S.DISPUTED,
        S.PROCESSING,
        Action.RESOLVE_AND_REASSIGN,
        required_fields=("resolution_notes",),
        effects=_notify(R),
    ),
    # Returns (ReturnCoordinator)
    Transition(
        T,
        S.DISPUTED,
        S.RETURN_TO_WHOLESALER,
        Action.REQUEST_RETURN,
        required_fields=("return_reason",),
        effects=_notify(W),
    ),
    Transition(
        W,
        S.RETURN_TO_WHOLESALER,
        S.RETURN_ACCEPTED,
        Action.ACCEPT_RETURN,
        effects=_RESTORE + _notify(R),
    ),
    Transition(
        W,
        S.RETURN_TO_WHOLESALER,
        S.RETURN_REJECTED,
        Action.REJECT_RETURN,
        required_fields=("return_rejection_reason",),
        effects=_notify(R),
    ),
    *_cancellations(),
    *_deletions(),
)

TRANSITION_TABLE: Dict[Tuple[str, str, str], Transition] = {
    t.key: t for t in TRANSITIONS
}


def lookup(actor_role: str, source: str, target: str) -> Optional[Transition]:
    """Return the table entry for the triple, or ``None`` if it is illegal."""
    return TRANSITION_TABLE.get((actor_role, source, target))


def allowed_targets(actor_role: str, source: str) -> List[str]:
    """Statuses *actor_role* may move an order to from *source*, in table order."""
    return [
        t.target
        for t in TRANSITIONS
        if t.actor_role == actor_role and t.source == source
    ]
