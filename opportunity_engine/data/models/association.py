"""
Opportunity association data models.

An association links one candidate to one opportunity and carries the
candidate's workflow status and per-candidate flags.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from opportunity_engine.utils.constants import OfferStatus

from .base import BaseDocument, PyObjectId
from .status_change import StatusChangeRecord


class OpportunityAssociation(BaseDocument):
    """
    Candidate-opportunity join document.

    At most one document exists per (opportunity_id, candidate_id), soft-deleted
    ones included: a removed candidate is restored, not re-inserted.
    """

    # References
    opportunity_id: PyObjectId
    candidate_id: PyObjectId

    # Workflow
    status: OfferStatus = OfferStatus.TO_PROCESS

    # Flags
    seen: bool = False
    bookmarked: bool = False
    archived: bool = False
    recommended: bool = False

    note: Optional[str] = None

    # Soft delete
    deleted_at: Optional[datetime] = None

    @property
    def is_deleted(self) -> bool:
        """Check if the association was removed from its opportunity."""
        return self.deleted_at is not None

    @property
    def offer_status(self) -> OfferStatus:
        """Status as the enum (stored as its integer value)."""
        return OfferStatus(self.status)

    @property
    def is_active_interview(self) -> bool:
        """An ongoing interview keeps the opportunity alive."""
        return (
            not self.is_deleted
            and not self.archived
            and self.status == OfferStatus.INTERVIEW
        )

    class Settings:
        """MongoDB collection settings."""

        name = "opportunity_users"
        indexes = [
            [("opportunity_id", 1), ("candidate_id", 1)],  # Compound unique index
            "candidate_id",
            "status",
            "deleted_at",
        ]


class AssociationUpdate(BaseModel):
    """Schema for updating an association (recruiter and candidate actions)."""

    status: Optional[OfferStatus] = None
    seen: Optional[bool] = None
    bookmarked: Optional[bool] = None
    archived: Optional[bool] = None
    recommended: Optional[bool] = None
    note: Optional[str] = None


class ReconcileResult(BaseModel):
    """Outcome of aligning an opportunity's associations with a candidate set."""

    opportunity_id: PyObjectId
    desired_candidate_ids: list[PyObjectId] = Field(default_factory=list)

    # Created, restored, or newly recommended: these need a first contact
    to_notify: list[OpportunityAssociation] = Field(default_factory=list)
    unrecommended: list[OpportunityAssociation] = Field(default_factory=list)
    removed: list[OpportunityAssociation] = Field(default_factory=list)

    # Every association the run wrote to
    associations: list[OpportunityAssociation] = Field(default_factory=list)

    # Status records appended by the run, published to the audit log on commit
    status_changes: list[StatusChangeRecord] = Field(default_factory=list)

    @property
    def notified_candidate_ids(self) -> list[PyObjectId]:
        """Candidate ids that require a first-contact notification."""
        return [a.candidate_id for a in self.to_notify]
