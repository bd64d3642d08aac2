"""
Delayed task queue abstraction and its MongoDB implementation.

A task is stored as a ScheduledReminder document and becomes claimable once
its ``run_at`` has passed. Claims expire after a lease, and failed tasks are
retried with exponential backoff, so a follow-up is only given up on after
the configured number of attempts.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Optional

from bson import ObjectId

from opportunity_engine.data.models.reminder import ReminderOutcome, ScheduledReminder
from opportunity_engine.data.repositories.reminder_repository import (
    ScheduledReminderRepository,
    get_reminder_repository,
)
from opportunity_engine.utils.config import ReminderSettings, get_settings
from opportunity_engine.utils.constants import ReminderKind
from opportunity_engine.utils.logger import audit_log, get_logger

logger = get_logger(__name__)


class DelayedTaskQueue(ABC):
    """Abstract base class for delayed task queues."""

    @abstractmethod
    def enqueue(
        self,
        kind: ReminderKind,
        payload: dict[str, Any],
        delay: timedelta,
        rescheduled_from: Optional[ObjectId] = None,
        now: Optional[datetime] = None,
    ) -> ScheduledReminder:
        """
        Schedule a task ``delay`` after ``now``.

        With ``rescheduled_from`` set, at most one task is ever stored per
        value: repeated calls return the task stored first.
        """
        pass

    @abstractmethod
    def claim_due(self, now: Optional[datetime] = None) -> Optional[ScheduledReminder]:
        """Claim the oldest task due at ``now``, or None."""
        pass

    @abstractmethod
    def complete(self, reminder: ScheduledReminder, outcome: ReminderOutcome) -> None:
        """Mark a claimed task as processed."""
        pass

    @abstractmethod
    def fail(
        self, reminder: ScheduledReminder, error: str, now: Optional[datetime] = None
    ) -> None:
        """Report a claimed task whose processing raised."""
        pass


class MongoTaskQueue(DelayedTaskQueue):
    """Delayed task queue backed by the scheduled reminders collection."""

    def __init__(
        self,
        repository: Optional[ScheduledReminderRepository] = None,
        settings: Optional[ReminderSettings] = None,
    ):
        self._repository = repository or get_reminder_repository()
        self._settings = settings or get_settings().reminders

    def enqueue(
        self,
        kind: ReminderKind,
        payload: dict[str, Any],
        delay: timedelta,
        rescheduled_from: Optional[ObjectId] = None,
        now: Optional[datetime] = None,
    ) -> ScheduledReminder:
        now = now or datetime.utcnow()
        reminder = ScheduledReminder(
            kind=kind,
            opportunity_id=payload["opportunity_id"],
            candidate_id=payload.get("candidate_id"),
            run_at=now + delay,
            delay_seconds=delay.total_seconds(),
            rescheduled_from=rescheduled_from,
        )

        if rescheduled_from is None:
            stored = self._repository.create(reminder)
        else:
            stored = self._repository.insert_follow_up(reminder)

        logger.debug(
            f"Enqueued {stored.kind} for opportunity {stored.opportunity_id} "
            f"at {stored.run_at:%Y-%m-%d %H:%M}"
        )
        return stored

    def claim_due(self, now: Optional[datetime] = None) -> Optional[ScheduledReminder]:
        """
        Claim the oldest due reminder, or a running one whose lease expired.

        A reclaimed reminder that already used every attempt is abandoned
        and the next one is claimed instead.
        """
        now = now or datetime.utcnow()
        lease = timedelta(seconds=self._settings.claim_lease_seconds)
        while True:
            reminder = self._repository.claim_next_due(now, lease=lease)
            if reminder is None or reminder.attempts == 1:
                return reminder
            if reminder.attempts > self._settings.max_attempts:
                self.fail(reminder, "claim lease expired", now=now)
                continue
            logger.warning(
                f"Reminder {reminder.id} claimed again (attempt {reminder.attempts})"
            )
            return reminder

    def complete(self, reminder: ScheduledReminder, outcome: ReminderOutcome) -> None:
        self._repository.mark_done(reminder.id, outcome.describe())

    def retry_delay(self, attempts: int) -> timedelta:
        """Wait before the next attempt: the backoff doubles with each failure."""
        return timedelta(
            seconds=self._settings.retry_backoff_seconds * 2 ** max(attempts - 1, 0)
        )

    def fail(
        self, reminder: ScheduledReminder, error: str, now: Optional[datetime] = None
    ) -> None:
        """
        Retry a failed task later, or give up once it used every attempt.

        Giving up is logged as an error and written to the audit log.
        """
        now = now or datetime.utcnow()
        if reminder.attempts < self._settings.max_attempts:
            run_at = now + self.retry_delay(reminder.attempts)
            self._repository.mark_retry(reminder.id, error, run_at)
            logger.warning(
                f"Reminder {reminder.id} failed (attempt {reminder.attempts}), "
                f"retrying at {run_at:%Y-%m-%d %H:%M}: {error}"
            )
            return

        self._repository.mark_failed(reminder.id, error)
        logger.error(
            f"Reminder {reminder.id} abandoned after {reminder.attempts} attempts: {error}"
        )
        audit_log(
            "reminder_abandoned",
            {
                "reminder_id": reminder.id,
                "kind": reminder.kind,
                "opportunity_id": reminder.opportunity_id,
                "attempts": reminder.attempts,
                "error": error,
            },
            audit_type="REMINDER",
        )
