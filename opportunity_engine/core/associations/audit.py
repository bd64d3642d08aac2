"""
Status audit log for opportunity associations.

Every association write that creates a row or changes its status is followed,
in the same transaction, by an explicit call into this module. The call
appends one immutable StatusChangeRecord; the caller publishes the records
to the audit log after the transaction commits.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Union

from bson import ObjectId
from pymongo.client_session import ClientSession

from opportunity_engine.data.models.association import OpportunityAssociation
from opportunity_engine.data.models.status_change import StatusChangeRecord
from opportunity_engine.data.repositories.status_change_repository import (
    StatusChangeRepository,
    get_status_change_repository,
)
from opportunity_engine.utils.logger import audit_log


@dataclass(frozen=True)
class AssociationCreated:
    """A new association row was inserted."""

    association: OpportunityAssociation


@dataclass(frozen=True)
class AssociationUpdated:
    """
    An association row was written.

    ``new_status`` is None when the association was removed from its
    opportunity.
    """

    association: OpportunityAssociation
    old_status: Optional[int]
    new_status: Optional[int]

    @property
    def status_changed(self) -> bool:
        return self.old_status != self.new_status


AuditEvent = Union[AssociationCreated, AssociationUpdated]


class StatusAuditLog:
    """Appends status change records for association writes."""

    def __init__(self, repository: Optional[StatusChangeRepository] = None):
        self._repository = repository or get_status_change_repository()

    def record(
        self, event: AuditEvent, session: Optional[ClientSession] = None
    ) -> Optional[StatusChangeRecord]:
        """
        Append the record an event calls for.

        Returns None for updates that leave the status unchanged.
        """
        association = event.association
        if isinstance(event, AssociationCreated):
            old_status, new_status = None, association.status
        elif event.status_changed:
            old_status, new_status = event.old_status, event.new_status
        else:
            return None

        return self._repository.append(
            StatusChangeRecord(
                association_id=association.id,
                candidate_id=association.candidate_id,
                opportunity_id=association.opportunity_id,
                old_status=old_status,
                new_status=new_status,
            ),
            session=session,
        )

    def publish(self, records: Iterable[Optional[StatusChangeRecord]]) -> None:
        """
        Write committed records to the audit log.

        Called once the transaction that stored them has committed, so a
        rolled-back batch leaves no audit line behind. None entries (updates
        without a status change) are skipped.
        """
        for record in records:
            if record is None:
                continue
            audit_log(
                "association_status_changed",
                {
                    "association_id": record.association_id,
                    "opportunity_id": record.opportunity_id,
                    "candidate_id": record.candidate_id,
                    "old_status": record.old_status,
                    "new_status": record.new_status,
                },
            )

    def on_association_created(
        self,
        association: OpportunityAssociation,
        session: Optional[ClientSession] = None,
    ) -> StatusChangeRecord:
        return self.record(AssociationCreated(association), session=session)

    def on_association_updated(
        self,
        before: OpportunityAssociation,
        after: OpportunityAssociation,
        session: Optional[ClientSession] = None,
    ) -> Optional[StatusChangeRecord]:
        return self.record(
            AssociationUpdated(after, old_status=before.status, new_status=after.status),
            session=session,
        )

    def on_association_removed(
        self,
        association: OpportunityAssociation,
        session: Optional[ClientSession] = None,
    ) -> StatusChangeRecord:
        """Record the removal before the row is soft-deleted."""
        return self.record(
            AssociationUpdated(association, old_status=association.status, new_status=None),
            session=session,
        )

    def history(self, association_id: str | ObjectId) -> list[StatusChangeRecord]:
        """Status records of one association, oldest first."""
        return self._repository.history(association_id)
