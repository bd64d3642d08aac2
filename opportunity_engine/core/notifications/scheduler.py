"""
Notification scheduler.

Reminders are re-entrant checks rather than timers. When one fires, the
scheduler re-reads the opportunity and its associations and decides:

- terminal: nothing is sent and no follow-up is scheduled, which ends the
  chain;
- otherwise it optionally sends, then schedules the next check with the same
  delay.

A failure while reading state counts as "reschedule" so that no follow-up is
lost. Dispatch failures are logged and never change the decision.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from bson import ObjectId

from opportunity_engine.data.database import DatabaseManager, get_database_manager
from opportunity_engine.data.models.association import OpportunityAssociation
from opportunity_engine.data.models.opportunity import Opportunity
from opportunity_engine.data.models.reminder import ReminderOutcome, ScheduledReminder
from opportunity_engine.data.repositories.association_repository import (
    AssociationRepository,
)
from opportunity_engine.data.repositories.opportunity_repository import (
    OpportunityRepository,
)
from opportunity_engine.utils.config import ReminderSettings, get_settings
from opportunity_engine.utils.constants import SECONDS_PER_DAY, OfferStatus, ReminderKind
from opportunity_engine.utils.logger import audit_log, get_logger

from .dispatch import NotificationDispatcher
from .queue import DelayedTaskQueue

logger = get_logger(__name__)


@dataclass
class Decision:
    """What a fired reminder should do."""

    reschedule: bool
    reason: str
    send: Optional[Callable[[], None]] = None


class NotificationScheduler:
    """Schedules follow-up reminders and handles them when they fire."""

    def __init__(
        self,
        queue: DelayedTaskQueue,
        dispatcher: NotificationDispatcher,
        db_manager: Optional[DatabaseManager] = None,
        settings: Optional[ReminderSettings] = None,
    ):
        db_manager = db_manager or get_database_manager()
        self._queue = queue
        self._dispatcher = dispatcher
        self._opportunities = OpportunityRepository(db_manager)
        self._associations = AssociationRepository(db_manager)
        self._settings = settings or get_settings().reminders

    # -------------------------------------------------------------------------
    # Scheduling
    # -------------------------------------------------------------------------

    def default_delay(self, kind: ReminderKind) -> timedelta:
        """Configured delay for a reminder kind."""
        days = {
            ReminderKind.ARCHIVE: self._settings.archive_delay_days,
            ReminderKind.NO_RESPONSE: self._settings.no_response_delay_days,
            ReminderKind.CANDIDATE: self._settings.candidate_delay_days,
        }[ReminderKind(kind)]
        return timedelta(seconds=days * SECONDS_PER_DAY)

    def _schedule(
        self,
        kind: ReminderKind,
        payload: dict,
        delay: Optional[timedelta],
    ) -> ScheduledReminder:
        if delay is None:
            delay = self.default_delay(kind)
        reminder = self._queue.enqueue(kind, payload, delay)
        logger.info(
            f"Scheduled {kind.value} for opportunity {payload['opportunity_id']} "
            f"at {reminder.run_at:%Y-%m-%d %H:%M}"
        )
        return reminder

    def schedule_archive_reminder(
        self, opportunity_id: ObjectId, delay: Optional[timedelta] = None
    ) -> ScheduledReminder:
        return self._schedule(
            ReminderKind.ARCHIVE, {"opportunity_id": opportunity_id}, delay
        )

    def schedule_no_response_reminder(
        self, opportunity_id: ObjectId, delay: Optional[timedelta] = None
    ) -> ScheduledReminder:
        return self._schedule(
            ReminderKind.NO_RESPONSE, {"opportunity_id": opportunity_id}, delay
        )

    def schedule_candidate_reminder(
        self,
        opportunity_id: ObjectId,
        candidate_id: ObjectId,
        delay: Optional[timedelta] = None,
    ) -> ScheduledReminder:
        return self._schedule(
            ReminderKind.CANDIDATE,
            {"opportunity_id": opportunity_id, "candidate_id": candidate_id},
            delay,
        )

    def on_opportunity_validated(
        self, opportunity: Opportunity
    ) -> list[ScheduledReminder]:
        """Start the recruiter-side reminder chains of a validated opportunity."""
        return [
            self.schedule_archive_reminder(opportunity.id),
            self.schedule_no_response_reminder(opportunity.id),
        ]

    def on_candidates_associated(
        self,
        opportunity: Opportunity,
        associations: list[OpportunityAssociation],
        should_send_notifications: bool = True,
    ) -> list[ScheduledReminder]:
        """
        First contact for newly attached candidates.

        Private opportunities also start a reminder chain per contacted
        candidate. With notifications disabled nobody is contacted, so no
        candidate reminder is scheduled either.
        """
        if not should_send_notifications:
            logger.info(
                f"Notifications disabled for opportunity {opportunity.id}: "
                f"{len(associations)} candidates not contacted"
            )
            return []

        reminders = []
        for association in associations:
            self._dispatch(
                lambda a=association: self._dispatcher.notify_candidate_of_opportunity(
                    a.candidate_id, opportunity.id
                ),
                f"first contact of candidate {association.candidate_id}",
            )
            if not opportunity.is_public:
                reminders.append(
                    self.schedule_candidate_reminder(
                        opportunity.id, association.candidate_id
                    )
                )
        return reminders

    # -------------------------------------------------------------------------
    # Fire-time Handling
    # -------------------------------------------------------------------------

    def handle(
        self, reminder: ScheduledReminder, now: Optional[datetime] = None
    ) -> ReminderOutcome:
        """
        Decide what a fired reminder does, based on current state.

        Args:
            reminder: The reminder that fired
            now: Fire time; the follow-up is scheduled relative to it

        Returns:
            ReminderOutcome describing whether it sent and rescheduled
        """
        kind = ReminderKind(reminder.kind)
        checks = {
            ReminderKind.ARCHIVE: self._check_archive,
            ReminderKind.NO_RESPONSE: self._check_no_response,
            ReminderKind.CANDIDATE: self._check_candidate,
        }

        try:
            decision = checks[kind](reminder)
        except Exception as e:
            logger.exception(f"Precondition check failed for reminder {reminder.id}")
            decision = Decision(reschedule=True, reason=f"check failed: {e}")

        sent = False
        if decision.send is not None:
            sent = self._dispatch(decision.send, f"{kind.value} {reminder.id}")

        next_reminder = None
        if decision.reschedule:
            next_reminder = self._queue.enqueue(
                kind,
                reminder.payload,
                timedelta(seconds=reminder.delay_seconds),
                rescheduled_from=reminder.id,
                now=now,
            )

        outcome = ReminderOutcome(
            reminder_id=reminder.id,
            kind=kind,
            sent=sent,
            rescheduled=decision.reschedule,
            next_reminder_id=next_reminder.id if next_reminder else None,
            reason=decision.reason,
        )
        audit_log(
            "reminder_fired",
            {
                "reminder_id": reminder.id,
                "kind": kind.value,
                "opportunity_id": reminder.opportunity_id,
                "outcome": outcome.describe(),
            },
            audit_type="REMINDER",
        )
        return outcome

    def _dispatch(self, send: Callable[[], None], what: str) -> bool:
        try:
            send()
            return True
        except Exception:
            logger.exception(f"Notification dispatch failed: {what}")
            return False

    def _active_opportunity(self, reminder: ScheduledReminder) -> Optional[Opportunity]:
        opportunity = self._opportunities.get_by_id(reminder.opportunity_id)
        if opportunity is None or not opportunity.is_active:
            return None
        return opportunity

    def _check_archive(self, reminder: ScheduledReminder) -> Decision:
        opportunity = self._active_opportunity(reminder)
        if opportunity is None:
            return Decision(reschedule=False, reason="opportunity closed")

        if self._associations.has_active_interview(opportunity.id):
            return Decision(reschedule=True, reason="interview in progress")

        return Decision(
            reschedule=True,
            reason="archive reminder due",
            send=lambda: self._dispatcher.notify_recruiter_of_archive_candidate(
                opportunity.id
            ),
        )

    def _check_no_response(self, reminder: ScheduledReminder) -> Decision:
        opportunity = self._active_opportunity(reminder)
        if opportunity is None:
            return Decision(reschedule=False, reason="opportunity closed")

        if self._associations.has_response(opportunity.id):
            return Decision(reschedule=False, reason="candidates answered")

        return Decision(
            reschedule=True,
            reason="no response yet",
            send=lambda: self._dispatcher.notify_recruiter_no_response(opportunity.id),
        )

    def _check_candidate(self, reminder: ScheduledReminder) -> Decision:
        opportunity = self._active_opportunity(reminder)
        if opportunity is None:
            return Decision(reschedule=False, reason="opportunity closed")

        association = self._associations.get_by_pair(
            opportunity.id, reminder.candidate_id
        )
        if association is None or association.archived:
            return Decision(reschedule=False, reason="candidate no longer attached")
        if association.status != OfferStatus.TO_PROCESS:
            return Decision(reschedule=False, reason="candidate already processed")

        return Decision(
            reschedule=True,
            reason="candidate still to process",
            send=lambda: self._dispatcher.notify_candidate_of_opportunity(
                association.candidate_id, opportunity.id
            ),
        )
