"""
Notification dispatch abstraction.

Delivery (mail, SMS) happens outside the engine. The engine only calls a
dispatcher and treats every call as fire-and-forget.
"""

from abc import ABC, abstractmethod

from bson import ObjectId

from opportunity_engine.utils.logger import get_logger

logger = get_logger(__name__)


class NotificationDispatcher(ABC):
    """Abstract base class for notification dispatchers."""

    @abstractmethod
    def notify_candidate_of_opportunity(
        self, candidate_id: ObjectId, opportunity_id: ObjectId
    ) -> None:
        """Tell a candidate about an opportunity they were attached to."""
        pass

    @abstractmethod
    def notify_recruiter_of_archive_candidate(self, opportunity_id: ObjectId) -> None:
        """Ask the recruiter whether the opportunity can be archived."""
        pass

    @abstractmethod
    def notify_recruiter_no_response(self, opportunity_id: ObjectId) -> None:
        """Tell the recruiter none of the candidates has been answered yet."""
        pass


class LoggingNotificationDispatcher(NotificationDispatcher):
    """Dispatcher that writes each notification to the application log."""

    def notify_candidate_of_opportunity(
        self, candidate_id: ObjectId, opportunity_id: ObjectId
    ) -> None:
        logger.info(f"Notify candidate {candidate_id} of opportunity {opportunity_id}")

    def notify_recruiter_of_archive_candidate(self, opportunity_id: ObjectId) -> None:
        logger.info(f"Notify recruiter: opportunity {opportunity_id} may be archived")

    def notify_recruiter_no_response(self, opportunity_id: ObjectId) -> None:
        logger.info(f"Notify recruiter: no response on opportunity {opportunity_id}")
