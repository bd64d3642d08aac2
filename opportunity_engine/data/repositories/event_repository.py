"""
Association event repository for the opportunity engine.
"""

from typing import Optional

from bson import ObjectId
from pymongo import ASCENDING

from opportunity_engine.data.models.event import AssociationEvent

from .base import BaseRepository


class AssociationEventRepository(BaseRepository[AssociationEvent]):
    """Repository for association event documents."""

    @property
    def collection_name(self) -> str:
        return "opportunity_user_events"

    @property
    def model_class(self) -> type[AssociationEvent]:
        return AssociationEvent

    def find_for_association(
        self, association_id: str | ObjectId
    ) -> list[AssociationEvent]:
        """Get the events of one association by start date."""
        return self.find(
            {"association_id": self._to_object_id(association_id)},
            sort=[("start_date", ASCENDING), ("_id", ASCENDING)],
        )

    def find_for_candidate(
        self, candidate_id: str | ObjectId
    ) -> list[AssociationEvent]:
        """Get every event of a candidate, across opportunities."""
        return self.find(
            {"candidate_id": self._to_object_id(candidate_id)},
            sort=[("start_date", ASCENDING), ("_id", ASCENDING)],
        )


# Singleton instance
_event_repository: Optional[AssociationEventRepository] = None


def get_event_repository() -> AssociationEventRepository:
    """Get the association event repository singleton instance."""
    global _event_repository
    if _event_repository is None:
        _event_repository = AssociationEventRepository()
    return _event_repository
