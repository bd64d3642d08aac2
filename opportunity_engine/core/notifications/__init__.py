"""Delayed follow-up reminders and notification dispatch."""

from .dispatch import LoggingNotificationDispatcher, NotificationDispatcher
from .queue import DelayedTaskQueue, MongoTaskQueue
from .scheduler import Decision, NotificationScheduler
from .worker import ReminderWorker

__all__ = [
    "LoggingNotificationDispatcher",
    "NotificationDispatcher",
    "DelayedTaskQueue",
    "MongoTaskQueue",
    "Decision",
    "NotificationScheduler",
    "ReminderWorker",
]
