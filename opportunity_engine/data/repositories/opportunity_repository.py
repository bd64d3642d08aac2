"""
Opportunity repository for the opportunity engine.

Provides data access for opportunity documents, the locked-field rule for
validated opportunities, and execution of composed list-view predicates.
"""

from typing import Any, Optional

from bson import ObjectId
from pymongo.client_session import ClientSession

from opportunity_engine.data.models.filters import Predicate
from opportunity_engine.data.models.opportunity import (
    Opportunity,
    OpportunityCreate,
    OpportunityUpdate,
)
from opportunity_engine.utils.constants import ViewerRole
from opportunity_engine.utils.exceptions import NotFound, OpportunityLocked
from opportunity_engine.utils.logger import get_logger

from .association_repository import AssociationRepository
from .base import BaseRepository

logger = get_logger(__name__)


class OpportunityRepository(BaseRepository[Opportunity]):
    """Repository for opportunity document operations."""

    @property
    def collection_name(self) -> str:
        return "opportunities"

    @property
    def model_class(self) -> type[Opportunity]:
        return Opportunity

    # -------------------------------------------------------------------------
    # Create Operations
    # -------------------------------------------------------------------------

    def create_from_schema(
        self,
        data: OpportunityCreate,
        is_validated: bool = False,
        created_by: Optional[str | ObjectId] = None,
        session: Optional[ClientSession] = None,
    ) -> Opportunity:
        """Create an opportunity from a create schema."""
        opportunity = Opportunity(
            **data.model_dump(),
            is_validated=is_validated,
            created_by=self._to_object_id(created_by) if created_by else None,
        )
        return self.create(opportunity, session=session)

    # -------------------------------------------------------------------------
    # Update Operations
    # -------------------------------------------------------------------------

    def get_or_raise(
        self, id_value: str | ObjectId, session: Optional[ClientSession] = None
    ) -> Opportunity:
        """Get an opportunity, raising NotFound when it does not exist."""
        opportunity = self.get_by_id(id_value, session=session)
        if opportunity is None:
            raise NotFound(
                f"Opportunity {id_value} not found",
                resource="opportunity",
                resource_id=id_value,
            )
        return opportunity

    def update_opportunity(
        self,
        id_value: str | ObjectId,
        patch: OpportunityUpdate | dict[str, Any],
        session: Optional[ClientSession] = None,
    ) -> Opportunity:
        """
        Apply a patch to an opportunity.

        A validated opportunity only accepts changes to its business lines and
        its archival/validation flags; any other changed field raises
        OpportunityLocked and nothing is written.
        """
        opportunity = self.get_or_raise(id_value, session=session)

        if isinstance(patch, OpportunityUpdate):
            update_data = patch.model_dump(exclude_unset=True, exclude_none=True)
        else:
            update_data = dict(patch)

        locked = opportunity.locked_fields(update_data)
        if locked:
            raise OpportunityLocked(
                f"Opportunity {id_value} is validated; cannot change: {', '.join(locked)}",
                resource="opportunity",
                resource_id=id_value,
                fields=tuple(locked),
            )

        if not update_data:
            return opportunity

        updated = self.update(id_value, update_data, session=session)
        logger.debug(f"Patched opportunity {id_value}: {sorted(update_data)}")
        return updated

    # -------------------------------------------------------------------------
    # Predicate Execution
    # -------------------------------------------------------------------------

    def _base_pipeline(self, predicate: Predicate) -> list[dict[str, Any]]:
        """Join stage for the view the predicate targets, followed by its filter."""
        associations = AssociationRepository.COLLECTION

        if predicate.role == ViewerRole.ADMIN:
            pipeline: list[dict[str, Any]] = [
                {
                    "$lookup": {
                        "from": associations,
                        "localField": "_id",
                        "foreignField": "opportunity_id",
                        "as": "associations",
                    }
                },
            ]
        else:
            pipeline = [
                {
                    "$match": {
                        "candidate_id": self._to_object_id(predicate.candidate_id),
                        "deleted_at": None,
                    }
                },
                {
                    "$lookup": {
                        "from": self.collection_name,
                        "localField": "opportunity_id",
                        "foreignField": "_id",
                        "as": "opportunity",
                    }
                },
                {"$unwind": "$opportunity"},
            ]

        if predicate.query:
            pipeline.append({"$match": predicate.query})
        return pipeline

    def _view_collection(self, predicate: Predicate):
        if predicate.role == ViewerRole.ADMIN:
            return self.collection
        return self.other_collection(AssociationRepository.COLLECTION)

    def find_by_predicate(self, predicate: Predicate) -> list[Opportunity]:
        """Run a composed predicate and return one page of opportunities."""
        pipeline = self._base_pipeline(predicate)
        pipeline.append({"$sort": dict(predicate.sort)})
        pipeline.append({"$skip": predicate.skip})
        pipeline.append({"$limit": predicate.limit})

        documents = list(self._view_collection(predicate).aggregate(pipeline))
        if predicate.role == ViewerRole.CANDIDATE:
            documents = [doc["opportunity"] for doc in documents]
        return self._to_models(documents)

    def count_by_predicate(self, predicate: Predicate) -> int:
        """Count every document a composed predicate matches, ignoring pagination."""
        pipeline = self._base_pipeline(predicate)
        pipeline.append({"$count": "total"})

        results = list(self._view_collection(predicate).aggregate(pipeline))
        return results[0]["total"] if results else 0


# Singleton instance
_opportunity_repository: Optional[OpportunityRepository] = None


def get_opportunity_repository() -> OpportunityRepository:
    """Get the opportunity repository singleton instance."""
    global _opportunity_repository
    if _opportunity_repository is None:
        _opportunity_repository = OpportunityRepository()
    return _opportunity_repository
