"""Django ORM implementation of the Participant repository.

Error handling follows the Null Object pattern: look-ups return ``None``
for missing or malformed IDs.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.accounts.models import Participant
from modules.accounts.repositories.interfaces import IParticipantRepository

logger = structlog.get_logger(__name__)


class ParticipantDjangoRepository(IParticipantRepository):
    """Concrete Participant repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Participant]:
        try:
            return Participant.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_active(self, id: str, role: Optional[str] = None) -> Optional[Participant]:
        queryset = Participant.objects.filter(is_active=True)
        if role is not None:
            queryset = queryset.filter(role=role)
        try:
            return queryset.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_by_user(self, user_id: int) -> Optional[Participant]:
        return Participant.objects.filter(user_id=user_id).first()

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Participant]:
        queryset = Participant.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    @transaction.atomic
    def save(self, entity: Participant) -> Participant:
        entity.save()
        logger.info(
            "participant.saved",
            participant_id=str(entity.id),
            role=entity.role,
        )
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        """Deactivate a participant; past orders keep referencing it."""
        updated = Participant.objects.filter(id=id).update(is_active=False)
        if updated:
            logger.info("participant.deactivated", participant_id=str(id))
        return bool(updated)
