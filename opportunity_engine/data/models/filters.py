"""
Filter request and predicate models.

A FilterRequest is what a list view asks for; the composer turns it into a
Predicate that the repositories execute without inspecting.
"""

from typing import Any, Optional, Union

from pydantic import BaseModel, Field, field_validator

from opportunity_engine.utils.constants import (
    MAX_PAGE_SIZE,
    OfferAdminTab,
    OfferCandidateTab,
    OfferStatus,
    ViewerRole,
)


class FilterRequest(BaseModel):
    """Query parameters of an opportunity list view. Not persisted."""

    tab: Optional[Union[OfferAdminTab, OfferCandidateTab]] = None
    search: Optional[str] = None

    departments: list[str] = Field(default_factory=list)
    business_lines: list[str] = Field(default_factory=list)
    statuses: list[OfferStatus] = Field(default_factory=list)
    contracts: list[str] = Field(default_factory=list)
    visibility: list[bool] = Field(default_factory=list)

    offset: int = Field(default=0, ge=0)
    limit: int = Field(default=50, ge=1, le=MAX_PAGE_SIZE)

    @field_validator("search")
    @classmethod
    def strip_search(cls, v: Optional[str]) -> Optional[str]:
        """Blank search means no search."""
        if v is None:
            return None
        v = v.strip()
        return v or None

    @property
    def has_status(self) -> bool:
        return bool(self.statuses)


class Predicate(BaseModel):
    """
    A composed query over one of the two opportunity views.

    ``query`` is a MongoDB filter document. For the admin view it applies to
    opportunity documents with all their association rows joined as
    ``associations``; for the candidate view it applies to one candidate's
    association documents with the opportunity joined as ``opportunity``.
    """

    role: ViewerRole
    query: dict[str, Any] = Field(default_factory=dict)
    candidate_id: Optional[Any] = None

    skip: int = 0
    limit: int = 50
    sort: list[tuple[str, int]] = Field(default_factory=lambda: [("created_at", -1)])

    @property
    def is_unfiltered(self) -> bool:
        return not self.query
