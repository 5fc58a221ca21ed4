"""Participant repositories package."""

from modules.accounts.repositories.django_repository import (
    ParticipantDjangoRepository,
)
from modules.accounts.repositories.interfaces import IParticipantRepository

__all__ = ["IParticipantRepository", "ParticipantDjangoRepository"]
