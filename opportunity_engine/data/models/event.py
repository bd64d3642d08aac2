"""
Association event data models.

Events are the dated milestones of a candidate on an opportunity: contacts,
interviews, trial periods, hiring. They complement the status, which only
holds the latest stage.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, model_validator

from opportunity_engine.utils.constants import EventType

from .base import BaseDocument, PyObjectId


class AssociationEvent(BaseDocument):
    """One dated milestone of an association."""

    association_id: PyObjectId
    opportunity_id: PyObjectId
    candidate_id: PyObjectId

    type: EventType
    start_date: datetime
    end_date: Optional[datetime] = None

    # Contract signed at hiring or for a trial period
    contract: Optional[str] = None

    @property
    def is_hiring_milestone(self) -> bool:
        """Interviews and hirings are the milestones partners track."""
        return self.type in (EventType.INTERVIEW, EventType.HIRING)

    class Settings:
        """MongoDB collection settings."""

        name = "opportunity_user_events"
        indexes = [
            "association_id",
            "opportunity_id",
            "candidate_id",
        ]


class AssociationEventCreate(BaseModel):
    """Schema for recording an event on an association."""

    type: EventType
    start_date: datetime
    end_date: Optional[datetime] = None
    contract: Optional[str] = None

    @model_validator(mode="after")
    def check_dates(self) -> "AssociationEventCreate":
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class AssociationEventUpdate(BaseModel):
    """
    Schema for editing an event.

    Unset fields are left alone; an explicit ``contract=None`` clears the
    contract.
    """

    type: Optional[EventType] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    contract: Optional[str] = None
