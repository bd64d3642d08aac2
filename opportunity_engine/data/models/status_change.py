"""
Status change records: the append-only audit trail of association statuses.
"""

from typing import Optional

from pydantic import BaseModel

from .base import BaseDocument, PyObjectId


class StatusChangeRecord(BaseDocument):
    """
    One status transition of one association.

    ``old_status`` is None on creation; ``new_status`` is None when the
    association was removed from its opportunity.
    """

    association_id: PyObjectId
    candidate_id: PyObjectId
    opportunity_id: PyObjectId

    old_status: Optional[int] = None
    new_status: Optional[int] = None

    @property
    def is_creation(self) -> bool:
        return self.old_status is None

    @property
    def is_removal(self) -> bool:
        return self.new_status is None

    class Settings:
        """MongoDB collection settings."""

        name = "opportunity_user_status_changes"
        indexes = [
            "association_id",
            "opportunity_id",
            "candidate_id",
            "created_at",
        ]


class StatusCount(BaseModel):
    """Number of associations in one status bucket."""

    status: str
    count: int = 0
