"""Participant repository interface."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.accounts.models import Participant


class IParticipantRepository(IRepository["Participant"]):
    """Repository contract for participants (identity look-ups only)."""

    @abstractmethod
    def get_active(self, id: str, role: Optional[str] = None) -> Optional[Participant]:
        """Retrieve an active participant, optionally restricted to *role*."""

    @abstractmethod
    def get_by_user(self, user_id: int) -> Optional[Participant]:
        """Retrieve the participant linked to a Django user."""
