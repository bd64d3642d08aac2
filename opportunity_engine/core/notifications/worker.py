"""
Reminder worker.

Claims due reminders one at a time and hands each to the scheduler. Claims
are atomic, so several workers can poll the same queue.
"""

import threading
from datetime import datetime
from typing import Optional

from opportunity_engine.data.models.reminder import ReminderOutcome
from opportunity_engine.utils.config import ReminderSettings, get_settings
from opportunity_engine.utils.logger import LoggerMixin

from .queue import DelayedTaskQueue
from .scheduler import NotificationScheduler


class ReminderWorker(LoggerMixin):
    """Polls the delayed task queue and processes due reminders."""

    def __init__(
        self,
        scheduler: NotificationScheduler,
        queue: DelayedTaskQueue,
        settings: Optional[ReminderSettings] = None,
    ):
        self._scheduler = scheduler
        self._queue = queue
        self._settings = settings or get_settings().reminders

    def run_once(
        self, now: Optional[datetime] = None, limit: Optional[int] = None
    ) -> list[ReminderOutcome]:
        """
        Process the reminders due at ``now``.

        Stops after ``limit`` reminders (default: the configured batch size).
        A reminder whose handling raises goes back to the queue for a later
        attempt (see ``DelayedTaskQueue.fail``) and the batch goes on.
        """
        now = now or datetime.utcnow()
        limit = limit or self._settings.batch_size
        outcomes = []

        for _ in range(limit):
            reminder = self._queue.claim_due(now)
            if reminder is None:
                break

            try:
                outcome = self._scheduler.handle(reminder, now=now)
            except Exception as e:
                self.logger.exception(f"Reminder {reminder.id} failed")
                self._queue.fail(reminder, str(e), now=now)
                continue

            self._queue.complete(reminder, outcome)
            outcomes.append(outcome)

        if outcomes:
            self.logger.info(f"Processed {len(outcomes)} reminders")
        return outcomes

    def run_forever(self, stop_event: Optional[threading.Event] = None) -> None:
        """Poll until ``stop_event`` is set."""
        stop_event = stop_event or threading.Event()
        interval = self._settings.poll_interval_seconds
        self.logger.info(f"Reminder worker started, polling every {interval}s")

        while not stop_event.is_set():
            self.run_once()
            stop_event.wait(interval)

        self.logger.info("Reminder worker stopped")
