"""Order domain exceptions.

Raised by the order engine when a transition request is refused.  Every
exception carries an ``ErrorKind`` so callers can branch on the kind
instead of the class; the API layer (Views) translates them into HTTP
responses.  The engine never retries any of them.
"""

from __future__ import annotations

from typing import Optional

from modules.orders.constants import ErrorKind


class OrderError(Exception):
    """Base class for refused order requests."""

    kind: ErrorKind


class OrderNotFound(OrderError):
    """The requested order does not exist."""

    kind = ErrorKind.NOT_FOUND


class InvalidTransition(OrderError):
    """``(actor_role, current_status, target_status)`` is not in the table."""

    kind = ErrorKind.INVALID_TRANSITION

    def __init__(self, current_status: str, target_status: str, actor_role: str):
        self.current_status = current_status
        self.target_status = target_status
        self.actor_role = actor_role
        super().__init__(
            f"Invalid transition from {current_status} to {target_status} "
            f"for {actor_role}."
        )


class Unauthorized(OrderError):
    """The actor does not hold the role it claims on this order."""

    kind = ErrorKind.UNAUTHORIZED


class StaleVersion(OrderError):
    """The caller's view of ``version`` is out of date; refetch and retry."""

    kind = ErrorKind.STALE_VERSION

    def __init__(self, expected_version: int, current_version: Optional[int] = None):
        self.expected_version = expected_version
        self.current_version = current_version
        if current_version is None:
            message = f"Order changed concurrently (expected version {expected_version})."
        else:
            message = (
                f"Expected version {expected_version}, "
                f"current version is {current_version}."
            )
        super().__init__(message)


class MissingRequiredField(OrderError):
    """The transition payload lacks a field this transition requires."""

    kind = ErrorKind.MISSING_REQUIRED_FIELD

    def __init__(self, field: str, detail: Optional[str] = None):
        self.field = field
        super().__init__(detail or f"Field '{field}' is required for this transition.")
