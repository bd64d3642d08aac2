"""
Scheduled reminder data models.

A reminder is a delayed, re-entrant check: when it fires, the handler reads
the current state and either stops or enqueues the next reminder with the
same delay.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from opportunity_engine.utils.constants import ReminderKind, ReminderState

from .base import BaseDocument, PyObjectId


class ScheduledReminder(BaseDocument):
    """A pending or processed reminder task."""

    kind: ReminderKind
    opportunity_id: PyObjectId
    candidate_id: Optional[PyObjectId] = None

    run_at: datetime
    delay_seconds: float

    state: ReminderState = ReminderState.PENDING
    attempts: int = 0
    claimed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    # The fire that produced this reminder (None for the first one)
    rescheduled_from: Optional[PyObjectId] = None

    outcome: Optional[str] = None
    error: Optional[str] = None

    @property
    def payload(self) -> dict:
        """Queue payload for this reminder."""
        data = {"opportunity_id": self.opportunity_id}
        if self.candidate_id is not None:
            data["candidate_id"] = self.candidate_id
        return data

    class Settings:
        """MongoDB collection settings."""

        name = "scheduled_reminders"
        indexes = [
            [("state", 1), ("run_at", 1)],
            "rescheduled_from",  # Unique: one follow-up per fire
            "opportunity_id",
        ]


class ReminderOutcome(BaseModel):
    """What a fired reminder decided."""

    reminder_id: Optional[PyObjectId] = None
    kind: ReminderKind
    sent: bool = False
    rescheduled: bool = False
    next_reminder_id: Optional[PyObjectId] = None
    reason: str = ""

    @property
    def is_terminal(self) -> bool:
        """The reminder chain ends here."""
        return not self.rescheduled

    def describe(self) -> str:
        """Short human-readable summary stored on the reminder document."""
        action = "sent" if self.sent else "skipped"
        follow_up = "rescheduled" if self.rescheduled else "stopped"
        return f"{action}, {follow_up}: {self.reason}"
