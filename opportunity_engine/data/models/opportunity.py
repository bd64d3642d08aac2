"""
Opportunity data models.

Defines the schema for job opportunities, their business lines, and the
create/update schemas used by the workflow.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from opportunity_engine.utils.constants import UNLOCKED_FIELDS

from .base import BaseDocument, EmbeddedModel, PyObjectId


class BusinessLine(EmbeddedModel):
    """A business line attached to an opportunity."""

    name: str
    order: int = -1


class Opportunity(BaseDocument):
    """
    Main opportunity document.

    Visibility, validation and archival flags drive which candidates see it
    and which reminders keep running for it.
    """

    # Offer
    title: str
    company: Optional[str] = None
    description: Optional[str] = None
    company_description: Optional[str] = None
    address: Optional[str] = None
    department: Optional[str] = None
    contract: Optional[str] = None
    date: Optional[datetime] = None

    # Recruiter contact
    recruiter_name: Optional[str] = None
    recruiter_mail: Optional[str] = None
    contact_mail: Optional[str] = None

    # Workflow flags
    is_public: bool = False
    is_validated: bool = False
    is_archived: bool = False
    is_external: bool = False

    business_lines: list[BusinessLine] = Field(default_factory=list)

    created_by: Optional[PyObjectId] = None

    @property
    def is_active(self) -> bool:
        """Validated and not archived: reminders keep running."""
        return self.is_validated and not self.is_archived

    @property
    def recruiter_contact(self) -> Optional[str]:
        """Address follow-ups go to."""
        return self.contact_mail or self.recruiter_mail

    def locked_fields(self, patch: dict[str, Any]) -> list[str]:
        """Fields of ``patch`` that may not change on a validated opportunity."""
        if not self.is_validated:
            return []
        return sorted(
            key
            for key, value in patch.items()
            if key not in UNLOCKED_FIELDS and getattr(self, key, None) != value
        )

    class Settings:
        """MongoDB collection settings."""

        name = "opportunities"
        indexes = [
            "is_validated",
            "is_archived",
            "is_external",
            "department",
            "business_lines.name",
            "created_at",
        ]


class OpportunityCreate(BaseModel):
    """Schema for creating a new opportunity."""

    title: str
    company: Optional[str] = None
    description: Optional[str] = None
    company_description: Optional[str] = None
    address: Optional[str] = None
    department: Optional[str] = None
    contract: Optional[str] = None
    date: Optional[datetime] = None
    recruiter_name: Optional[str] = None
    recruiter_mail: Optional[str] = None
    contact_mail: Optional[str] = None
    is_public: bool = False
    is_external: bool = False
    business_lines: list[BusinessLine] = Field(default_factory=list)


class OpportunityUpdate(BaseModel):
    """Schema for updating an opportunity (admin actions)."""

    title: Optional[str] = None
    company: Optional[str] = None
    description: Optional[str] = None
    company_description: Optional[str] = None
    address: Optional[str] = None
    department: Optional[str] = None
    contract: Optional[str] = None
    recruiter_name: Optional[str] = None
    recruiter_mail: Optional[str] = None
    contact_mail: Optional[str] = None
    is_public: Optional[bool] = None
    is_validated: Optional[bool] = None
    is_archived: Optional[bool] = None
    business_lines: Optional[list[BusinessLine]] = None
