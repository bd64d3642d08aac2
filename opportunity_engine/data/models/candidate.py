"""
Candidate data model.

The engine only reads candidates: existence checks before reconciliation and
contact details for notifications.
"""

from typing import Optional

from .base import BaseDocument


class Candidate(BaseDocument):
    """A candidate as seen by the association engine."""

    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    department: Optional[str] = None

    class Settings:
        """MongoDB collection settings."""

        name = "candidates"
        indexes = ["email", "department"]
