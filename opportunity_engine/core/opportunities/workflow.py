"""
Opportunity workflow.

Wires the engine together for the application-level entry points: creating
an opportunity, recording an external one, and updating one. Each call checks
the candidates first, then stores the opportunity and reconciles its
candidates in one transaction, then starts reminders and first contacts.
Notification problems are logged and never undo the stored changes.
"""

from dataclasses import dataclass, field
from typing import Optional

from bson import ObjectId

from opportunity_engine.core.associations.reconciler import AssociationReconciler
from opportunity_engine.core.notifications.scheduler import NotificationScheduler
from opportunity_engine.data.database import DatabaseManager, get_database_manager
from opportunity_engine.data.models.association import (
    OpportunityAssociation,
    ReconcileResult,
)
from opportunity_engine.data.models.opportunity import (
    Opportunity,
    OpportunityCreate,
    OpportunityUpdate,
)
from opportunity_engine.data.models.reminder import ScheduledReminder
from opportunity_engine.data.repositories.association_repository import (
    AssociationRepository,
)
from opportunity_engine.data.repositories.opportunity_repository import (
    OpportunityRepository,
)
from opportunity_engine.utils.constants import OfferStatus
from opportunity_engine.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class WorkflowResult:
    """Opportunity after a workflow step, with what the step triggered."""

    opportunity: Opportunity
    reconciliation: ReconcileResult
    reminders: list[ScheduledReminder] = field(default_factory=list)


class OpportunityWorkflow:
    """Create/update entry points for opportunities."""

    def __init__(
        self,
        scheduler: NotificationScheduler,
        db_manager: Optional[DatabaseManager] = None,
        reconciler: Optional[AssociationReconciler] = None,
    ):
        self._db_manager = db_manager or get_database_manager()
        self._opportunities = OpportunityRepository(self._db_manager)
        self._associations = AssociationRepository(self._db_manager)
        self._reconciler = reconciler or AssociationReconciler(self._db_manager)
        self._scheduler = scheduler

    def create_opportunity(
        self,
        data: OpportunityCreate,
        candidate_ids: Optional[list[str | ObjectId]] = None,
        is_admin: bool = False,
        created_by: Optional[str | ObjectId] = None,
        should_send_notifications: bool = True,
    ) -> WorkflowResult:
        """
        Create an opportunity and attach its candidates.

        Opportunities created by an admin are validated right away, which
        starts their reminders and, unless disabled, notifies the candidates.

        Raises:
            NotFound: unknown candidate; no opportunity is stored
        """
        candidate_ids = list(candidate_ids or [])
        self._reconciler.ensure_candidates_exist(candidate_ids)

        with self._db_manager.transaction() as session:
            opportunity = self._opportunities.create_from_schema(
                data, is_validated=is_admin, created_by=created_by, session=session
            )
            reconciliation = self._reconciler.reconcile_in_transaction(
                opportunity, candidate_ids=candidate_ids, session=session
            )

        self._reconciler.publish(reconciliation, opportunity)
        logger.info(f"Created opportunity {opportunity.id} ({opportunity.title})")
        result = WorkflowResult(opportunity=opportunity, reconciliation=reconciliation)

        if opportunity.is_validated:
            result.reminders.extend(self._after_validation(opportunity))
            result.reminders.extend(
                self._contact_candidates(
                    opportunity, reconciliation.to_notify, should_send_notifications
                )
            )
        return result

    def create_external_opportunity(
        self,
        data: OpportunityCreate,
        candidate_id: str | ObjectId,
        status: Optional[OfferStatus | int] = None,
        created_by: Optional[str | ObjectId] = None,
    ) -> WorkflowResult:
        """
        Store an offer a candidate found outside the platform.

        The opportunity is private, external and validated, and is attached
        to that candidate only. No reminder is started and the candidate is
        not contacted: they brought the offer themselves.

        Raises:
            NotFound: unknown candidate; nothing is stored
        """
        self._reconciler.ensure_candidates_exist([candidate_id])
        fields = {
            **data.model_dump(),
            "is_external": True,
            "is_public": False,
        }

        with self._db_manager.transaction() as session:
            opportunity = self._opportunities.create_from_schema(
                OpportunityCreate(**fields),
                is_validated=True,
                created_by=created_by,
                session=session,
            )
            reconciliation = self._reconciler.attach_external(
                opportunity, candidate_id, status=status, session=session
            )

        self._reconciler.publish(reconciliation, opportunity)
        logger.info(
            f"Created external opportunity {opportunity.id} for candidate {candidate_id}"
        )
        return WorkflowResult(opportunity=opportunity, reconciliation=reconciliation)

    def update_opportunity(
        self,
        opportunity_id: str | ObjectId,
        patch: OpportunityUpdate,
        candidate_ids: Optional[list[str | ObjectId]] = None,
        should_send_notifications: bool = True,
    ) -> WorkflowResult:
        """
        Patch an opportunity and reconcile its candidates.

        ``candidate_ids`` None keeps the current candidates. Validating the
        opportunity starts its reminders and contacts every attached
        candidate; later on, only newly attached candidates are contacted.
        The patch and the reconciliation commit together or not at all.

        Raises:
            NotFound: unknown opportunity or candidate
            OpportunityLocked: the patch changes a locked field
        """
        before = self._opportunities.get_or_raise(opportunity_id)
        if candidate_ids is not None:
            self._reconciler.ensure_candidates_exist(list(candidate_ids))

        with self._db_manager.transaction() as session:
            opportunity = self._opportunities.update_opportunity(
                before.id, patch, session=session
            )
            reconciliation = self._reconciler.reconcile_in_transaction(
                opportunity, candidate_ids=candidate_ids, session=session
            )

        self._reconciler.publish(reconciliation, opportunity)
        result = WorkflowResult(opportunity=opportunity, reconciliation=reconciliation)

        if opportunity.is_validated and not before.is_validated:
            logger.info(f"Opportunity {opportunity.id} validated")
            result.reminders.extend(self._after_validation(opportunity))
            # Drafts never contacted anyone
            to_contact = self._associations.find_by_opportunity(opportunity.id)
        else:
            to_contact = reconciliation.to_notify

        if opportunity.is_validated:
            result.reminders.extend(
                self._contact_candidates(
                    opportunity, to_contact, should_send_notifications
                )
            )
        return result

    def _after_validation(self, opportunity: Opportunity) -> list[ScheduledReminder]:
        try:
            return self._scheduler.on_opportunity_validated(opportunity)
        except Exception:
            logger.exception(f"Could not schedule reminders for {opportunity.id}")
            return []

    def _contact_candidates(
        self,
        opportunity: Opportunity,
        associations: list[OpportunityAssociation],
        should_send_notifications: bool,
    ) -> list[ScheduledReminder]:
        if not associations:
            return []
        try:
            return self._scheduler.on_candidates_associated(
                opportunity,
                associations,
                should_send_notifications=should_send_notifications,
            )
        except Exception:
            logger.exception(f"Could not contact candidates of {opportunity.id}")
            return []
