"""Base repository contracts shared by the domain modules.

Services receive repositories through their constructor and only ever
see these abstractions; the Django implementations live next to each
module's interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, Optional, Sequence, TypeVar

EntityT = TypeVar("EntityT")


class IReadRepository(ABC, Generic[EntityT]):
    """Look-ups by primary key and by field filters."""

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[EntityT]:
        """The entity with primary key *id*, or ``None``.

        Malformed ids are treated as unknown rather than raising.
        """

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> Sequence[EntityT]:
        """Entities matching *filters* (``QuerySet.filter`` keyword style)."""


class IRepository(IReadRepository[EntityT]):
    """Read contract plus persistence of a single aggregate."""

    @abstractmethod
    def save(self, entity: EntityT) -> EntityT:
        """Insert or update *entity* and return it."""

    @abstractmethod
    def delete(self, id: str) -> bool:
        """Remove the entity, where the aggregate allows removal at all."""
