"""
Scheduled reminder repository for the opportunity engine.

Persists delayed follow-up checks and hands them out to workers one at a
time through atomic claims.
"""

from datetime import datetime, timedelta
from typing import Any, Optional

from bson import ObjectId
from pymongo import ASCENDING, ReturnDocument

from opportunity_engine.data.models.reminder import ScheduledReminder
from opportunity_engine.utils.constants import ReminderState

from .base import BaseRepository


class ScheduledReminderRepository(BaseRepository[ScheduledReminder]):
    """Repository for scheduled reminder documents."""

    @property
    def collection_name(self) -> str:
        return "scheduled_reminders"

    @property
    def model_class(self) -> type[ScheduledReminder]:
        return ScheduledReminder

    # -------------------------------------------------------------------------
    # Write Operations
    # -------------------------------------------------------------------------

    def insert_follow_up(self, reminder: ScheduledReminder) -> ScheduledReminder:
        """
        Store the follow-up of a fired reminder at most once.

        Upserts on ``rescheduled_from``: a second call for the same fire
        returns the follow-up stored by the first one.
        """
        reminder.touch(created=True)
        document = reminder.to_mongo()
        parent_id = document.pop("rescheduled_from")

        stored = self.collection.find_one_and_update(
            {"rescheduled_from": parent_id},
            {"$setOnInsert": document},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return self._to_model(stored)

    def claim_next_due(
        self, now: datetime, lease: Optional[timedelta] = None
    ) -> Optional[ScheduledReminder]:
        """
        Atomically move the oldest due reminder to running.

        With ``lease`` set, a reminder left running for longer than the lease
        (its worker died before completing it) is claimed again.
        """
        query: dict[str, Any] = {
            "state": ReminderState.PENDING.value,
            "run_at": {"$lte": now},
        }
        if lease is not None:
            query = {
                "$or": [
                    query,
                    {
                        "state": ReminderState.RUNNING.value,
                        "claimed_at": {"$lte": now - lease},
                    },
                ]
            }

        document = self.collection.find_one_and_update(
            query,
            {
                "$set": {
                    "state": ReminderState.RUNNING.value,
                    "claimed_at": now,
                    "updated_at": now,
                },
                "$inc": {"attempts": 1},
            },
            sort=[("run_at", ASCENDING)],
            return_document=ReturnDocument.AFTER,
        )
        return self._to_model(document)

    def mark_done(
        self, id_value: str | ObjectId, outcome: str
    ) -> Optional[ScheduledReminder]:
        """Record the decision of a processed reminder."""
        return self.update(
            id_value,
            {
                "state": ReminderState.DONE.value,
                "outcome": outcome,
                "completed_at": datetime.utcnow(),
            },
        )

    def mark_failed(
        self, id_value: str | ObjectId, error: str
    ) -> Optional[ScheduledReminder]:
        """Record a reminder that will not be retried."""
        return self.update(
            id_value,
            {
                "state": ReminderState.FAILED.value,
                "error": error,
                "completed_at": datetime.utcnow(),
            },
        )

    def mark_retry(
        self, id_value: str | ObjectId, error: str, run_at: datetime
    ) -> Optional[ScheduledReminder]:
        """Put a failed reminder back in the queue, due at ``run_at``."""
        return self.update(
            id_value,
            {
                "state": ReminderState.PENDING.value,
                "error": error,
                "run_at": run_at,
            },
        )

    # -------------------------------------------------------------------------
    # Query Operations
    # -------------------------------------------------------------------------

    def get_follow_up(self, id_value: str | ObjectId) -> Optional[ScheduledReminder]:
        """Get the reminder produced by a fired reminder, if any."""
        return self.find_one({"rescheduled_from": self._to_object_id(id_value)})

    def find_for_opportunity(
        self,
        opportunity_id: str | ObjectId,
        state: Optional[ReminderState] = None,
    ) -> list[ScheduledReminder]:
        """Get the reminders of an opportunity, in firing order."""
        query: dict[str, Any] = {"opportunity_id": self._to_object_id(opportunity_id)}
        if state is not None:
            query["state"] = state.value
        return self.find(query, sort=[("run_at", ASCENDING)])

    def count_pending(self) -> int:
        """Count reminders waiting to fire."""
        return self.count({"state": ReminderState.PENDING.value})


# Singleton instance
_reminder_repository: Optional[ScheduledReminderRepository] = None


def get_reminder_repository() -> ScheduledReminderRepository:
    """Get the scheduled reminder repository singleton instance."""
    global _reminder_repository
    if _reminder_repository is None:
        _reminder_repository = ScheduledReminderRepository()
    return _reminder_repository
