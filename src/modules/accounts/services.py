"""Identity collaborator.

Answers the only question the order lifecycle asks about identities:
does this actor id hold this role right now?
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import structlog

if TYPE_CHECKING:
    from modules.accounts.models import Participant
    from modules.accounts.repositories.interfaces import IParticipantRepository

logger = structlog.get_logger(__name__)


class IdentityService:
    """Resolves actor ids to verified role membership."""

    def __init__(self, repository: IParticipantRepository) -> None:
        self._repo = repository

    def has_role(self, actor_id: str, role: str) -> bool:
        """``True`` if *actor_id* is an active participant holding *role*."""
        found = self._repo.get_active(str(actor_id), role=role) is not None
        if not found:
            logger.warning("identity.role_not_held", actor_id=str(actor_id), role=role)
        return found

    def resolve_user(self, user_id: int) -> Optional[Participant]:
        """Return the active participant behind an authenticated user."""
        participant = self._repo.get_by_user(user_id)
        if participant is None or not participant.is_active:
            return None
        return participant
