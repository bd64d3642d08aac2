"""
Association events.

Dated milestones (calls, interviews, trial periods, hiring) recorded on a
candidate's association with an opportunity. Events can only be recorded on
a live association; on an opportunity still waiting for validation, only
admins may record or edit them.
"""

from typing import Any, Optional

from bson import ObjectId
from pymongo.client_session import ClientSession

from opportunity_engine.data.database import DatabaseManager, get_database_manager
from opportunity_engine.data.models.association import OpportunityAssociation
from opportunity_engine.data.models.event import (
    AssociationEvent,
    AssociationEventCreate,
    AssociationEventUpdate,
)
from opportunity_engine.data.models.opportunity import Opportunity
from opportunity_engine.data.repositories.association_repository import (
    AssociationRepository,
)
from opportunity_engine.data.repositories.event_repository import (
    AssociationEventRepository,
)
from opportunity_engine.data.repositories.opportunity_repository import (
    OpportunityRepository,
)
from opportunity_engine.utils.constants import EventType
from opportunity_engine.utils.exceptions import Forbidden, NotFound
from opportunity_engine.utils.logger import LoggerMixin, audit_log


class AssociationEvents(LoggerMixin):
    """Records and edits the events of associations."""

    def __init__(self, db_manager: Optional[DatabaseManager] = None):
        self._db_manager = db_manager or get_database_manager()
        self._opportunities = OpportunityRepository(self._db_manager)
        self._associations = AssociationRepository(self._db_manager)
        self._events = AssociationEventRepository(self._db_manager)

    def create_event(
        self,
        opportunity_id: str | ObjectId,
        candidate_id: str | ObjectId,
        data: AssociationEventCreate,
        is_admin: bool = False,
    ) -> AssociationEvent:
        """
        Record an event on the association of a candidate.

        Raises:
            NotFound: unknown opportunity, or the candidate is not attached
            Forbidden: the opportunity is not validated and the caller is
                not an admin
        """
        with self._db_manager.transaction() as session:
            opportunity = self._opportunities.get_or_raise(opportunity_id, session=session)
            self._check_access(opportunity, is_admin)
            association = self._live_association(opportunity.id, candidate_id, session)

            event = self._events.create(
                AssociationEvent(
                    association_id=association.id,
                    opportunity_id=association.opportunity_id,
                    candidate_id=association.candidate_id,
                    **data.model_dump(),
                ),
                session=session,
            )

        self.logger.info(
            f"Recorded {event.type} event on association {association.id}"
        )
        self._audit("association_event_recorded", event)
        return event

    def update_event(
        self,
        event_id: str | ObjectId,
        patch: AssociationEventUpdate | dict[str, Any],
        is_admin: bool = False,
    ) -> AssociationEvent:
        """
        Edit an event.

        Raises:
            NotFound: unknown event, or its association or opportunity is gone
            Forbidden: same rule as ``create_event``
            ValueError: the edit would end the event before it starts
        """
        if isinstance(patch, AssociationEventUpdate):
            update_data = patch.model_dump(exclude_unset=True)
        else:
            update_data = dict(patch)
        if update_data.get("type") is not None:
            update_data["type"] = EventType(update_data["type"]).value

        with self._db_manager.transaction() as session:
            event = self._events.get_by_id(event_id, session=session)
            if event is None:
                raise NotFound(
                    f"Event {event_id} not found", resource="event", resource_id=event_id
                )
            opportunity = self._opportunities.get_or_raise(
                event.opportunity_id, session=session
            )
            self._check_access(opportunity, is_admin)
            self._live_association(opportunity.id, event.candidate_id, session)

            if not update_data:
                return event

            # Dates are checked on the merged event, not on the patch alone
            AssociationEventCreate(
                **{
                    **event.model_dump(include={"type", "start_date", "end_date", "contract"}),
                    **update_data,
                }
            )

            updated = self._events.update(event.id, update_data, session=session)

        self._audit("association_event_updated", updated)
        return updated

    def events_for(
        self, association: OpportunityAssociation | str | ObjectId
    ) -> list[AssociationEvent]:
        """Events of one association, by start date."""
        if isinstance(association, OpportunityAssociation):
            association = association.id
        return self._events.find_for_association(association)

    def _check_access(self, opportunity: Opportunity, is_admin: bool) -> None:
        if not opportunity.is_validated and not is_admin:
            raise Forbidden(
                f"Opportunity {opportunity.id} is waiting for validation",
                resource="opportunity",
                resource_id=opportunity.id,
            )

    def _live_association(
        self,
        opportunity_id: ObjectId,
        candidate_id: str | ObjectId,
        session: Optional[ClientSession],
    ) -> OpportunityAssociation:
        association = self._associations.get_by_pair(
            opportunity_id, candidate_id, session=session
        )
        if association is None:
            raise NotFound(
                f"Candidate {candidate_id} is not associated with "
                f"opportunity {opportunity_id}",
                resource="association",
                resource_id=(opportunity_id, candidate_id),
            )
        return association

    @staticmethod
    def _audit(action: str, event: AssociationEvent) -> None:
        audit_log(
            action,
            {
                "event_id": event.id,
                "association_id": event.association_id,
                "type": event.type,
                "start_date": event.start_date,
            },
            audit_type="EVENT",
        )
