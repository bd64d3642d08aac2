"""
Status change repository for the opportunity engine.

The status change collection is append-only: this repository exposes no
update or delete operation.
"""

from typing import Optional

from bson import ObjectId
from pymongo import ASCENDING
from pymongo.client_session import ClientSession

from opportunity_engine.data.models.status_change import StatusChangeRecord

from .base import BaseRepository

# Oldest first; ObjectIds break ties between records written in the same instant
CHRONOLOGICAL = [("created_at", ASCENDING), ("_id", ASCENDING)]


class StatusChangeRepository(BaseRepository[StatusChangeRecord]):
    """Repository for status change records."""

    @property
    def collection_name(self) -> str:
        return "opportunity_user_status_changes"

    @property
    def model_class(self) -> type[StatusChangeRecord]:
        return StatusChangeRecord

    def update(self, *args, **kwargs):
        raise NotImplementedError("Status change records are append-only")

    def append(
        self, record: StatusChangeRecord, session: Optional[ClientSession] = None
    ) -> StatusChangeRecord:
        """Append one status change record."""
        return self.create(record, session=session)

    def history(self, association_id: str | ObjectId) -> list[StatusChangeRecord]:
        """Get every record of one association, oldest first."""
        return self.find(
            {"association_id": self._to_object_id(association_id)},
            sort=CHRONOLOGICAL,
        )

    def get_for_opportunity(
        self, opportunity_id: str | ObjectId
    ) -> list[StatusChangeRecord]:
        """Get every record of an opportunity's associations, oldest first."""
        return self.find(
            {"opportunity_id": self._to_object_id(opportunity_id)},
            sort=CHRONOLOGICAL,
        )

    def get_for_candidate(
        self, candidate_id: str | ObjectId
    ) -> list[StatusChangeRecord]:
        """Get every record of a candidate's associations, oldest first."""
        return self.find(
            {"candidate_id": self._to_object_id(candidate_id)},
            sort=CHRONOLOGICAL,
        )


# Singleton instance
_status_change_repository: Optional[StatusChangeRepository] = None


def get_status_change_repository() -> StatusChangeRepository:
    """Get the status change repository singleton instance."""
    global _status_change_repository
    if _status_change_repository is None:
        _status_change_repository = StatusChangeRepository()
    return _status_change_repository
