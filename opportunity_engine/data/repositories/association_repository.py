"""
Association repository for the opportunity engine.

Provides data access for candidate-opportunity associations. Rows are never
hard-deleted: removal sets ``deleted_at`` and a later create-or-restore
clears it again, keeping the row id.
"""

from datetime import datetime
from typing import Any, Optional

from bson import ObjectId
from pymongo.client_session import ClientSession

from opportunity_engine.data.models.association import OpportunityAssociation
from opportunity_engine.data.models.status_change import StatusCount
from opportunity_engine.utils.constants import OfferStatus
from opportunity_engine.utils.logger import get_logger

from .base import BaseRepository

logger = get_logger(__name__)

LIVE = {"deleted_at": None}


class AssociationRepository(BaseRepository[OpportunityAssociation]):
    """Repository for opportunity association document operations."""

    COLLECTION = "opportunity_users"

    @property
    def collection_name(self) -> str:
        return self.COLLECTION

    @property
    def model_class(self) -> type[OpportunityAssociation]:
        return OpportunityAssociation

    # -------------------------------------------------------------------------
    # Write Operations
    # -------------------------------------------------------------------------

    def create_or_restore(
        self,
        opportunity_id: str | ObjectId,
        candidate_id: str | ObjectId,
        overrides: Optional[dict[str, Any]] = None,
        session: Optional[ClientSession] = None,
    ) -> tuple[OpportunityAssociation, Optional[OpportunityAssociation]]:
        """
        Create the association for a pair, or restore its soft-deleted row.

        Returns ``(association, before)`` where ``before`` is None when the row
        was inserted, and the stored row prior to the write otherwise.
        """
        overrides = dict(overrides or {})
        before = self.get_by_pair(
            opportunity_id, candidate_id, include_deleted=True, session=session
        )

        if before is None:
            association = OpportunityAssociation(
                opportunity_id=self._to_object_id(opportunity_id),
                candidate_id=self._to_object_id(candidate_id),
                **overrides,
            )
            return self.create(association, session=session), None

        update_data = {**overrides, "deleted_at": None}
        if before.is_deleted:
            logger.debug(f"Restoring association {before.id}")
        association = self.update(before.id, update_data, session=session)
        return association, before

    def update_fields(
        self,
        id_value: str | ObjectId,
        fields: dict[str, Any],
        session: Optional[ClientSession] = None,
    ) -> Optional[OpportunityAssociation]:
        """Set plain fields on one association."""
        if "status" in fields and fields["status"] is not None:
            fields = {**fields, "status": int(fields["status"])}
        return self.update(id_value, dict(fields), session=session)

    def soft_delete_many(
        self,
        ids: list[str | ObjectId],
        session: Optional[ClientSession] = None,
    ) -> int:
        """Mark associations as removed from their opportunity."""
        if not ids:
            return 0
        now = datetime.utcnow()
        result = self.collection.update_many(
            {"_id": {"$in": [self._to_object_id(i) for i in ids]}},
            {"$set": {"deleted_at": now, "updated_at": now}},
            session=session,
        )
        logger.debug(f"Soft-deleted {result.modified_count} associations")
        return result.modified_count

    # -------------------------------------------------------------------------
    # Query Operations
    # -------------------------------------------------------------------------

    def get_by_pair(
        self,
        opportunity_id: str | ObjectId,
        candidate_id: str | ObjectId,
        include_deleted: bool = False,
        session: Optional[ClientSession] = None,
    ) -> Optional[OpportunityAssociation]:
        """Get the association of one candidate on one opportunity."""
        query: dict[str, Any] = {
            "opportunity_id": self._to_object_id(opportunity_id),
            "candidate_id": self._to_object_id(candidate_id),
        }
        if not include_deleted:
            query.update(LIVE)
        return self.find_one(query, session=session)

    def find_by_opportunity(
        self,
        opportunity_id: str | ObjectId,
        include_deleted: bool = False,
        session: Optional[ClientSession] = None,
    ) -> list[OpportunityAssociation]:
        """Get the associations of an opportunity, oldest first."""
        query: dict[str, Any] = {"opportunity_id": self._to_object_id(opportunity_id)}
        if not include_deleted:
            query.update(LIVE)
        return self.find(query, session=session)

    def find_by_candidate(
        self,
        candidate_id: str | ObjectId,
        include_deleted: bool = False,
        session: Optional[ClientSession] = None,
    ) -> list[OpportunityAssociation]:
        """Get the associations of a candidate, oldest first."""
        query: dict[str, Any] = {"candidate_id": self._to_object_id(candidate_id)}
        if not include_deleted:
            query.update(LIVE)
        return self.find(query, session=session)

    def has_active_interview(self, opportunity_id: str | ObjectId) -> bool:
        """Check for a live, non-archived association in the interview phase."""
        return self.exists(
            {
                "opportunity_id": self._to_object_id(opportunity_id),
                "status": int(OfferStatus.INTERVIEW),
                "archived": False,
                **LIVE,
            }
        )

    def has_response(self, opportunity_id: str | ObjectId) -> bool:
        """Check whether any live association moved past the to-process bucket."""
        return self.exists(
            {
                "opportunity_id": self._to_object_id(opportunity_id),
                "status": {"$gte": int(OfferStatus.CONTACTED)},
                **LIVE,
            }
        )

    def count_by_status_for_candidate(
        self, candidate_id: str | ObjectId
    ) -> list[StatusCount]:
        """
        Count a candidate's live associations per status.

        Archived associations are counted in their own ``archived`` bucket and
        not under their status.
        """
        collection = self.collection
        match = {"candidate_id": self._to_object_id(candidate_id), **LIVE}

        pipeline = [
            {"$match": {**match, "archived": False}},
            {"$group": {"_id": "$status", "count": {"$sum": 1}}},
            {"$sort": {"_id": 1}},
        ]
        counts = [
            StatusCount(status=str(row["_id"]), count=row["count"])
            for row in collection.aggregate(pipeline)
        ]
        archived = collection.count_documents({**match, "archived": True})
        counts.append(StatusCount(status="archived", count=archived))
        return counts


# Singleton instance
_association_repository: Optional[AssociationRepository] = None


def get_association_repository() -> AssociationRepository:
    """Get the association repository singleton instance."""
    global _association_repository
    if _association_repository is None:
        _association_repository = AssociationRepository()
    return _association_repository
