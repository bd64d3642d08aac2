"""
Association reconciler.

Aligns the stored associations of an opportunity with the set of candidates
that should be attached to it:

- every desired candidate gets a live association (created, or restored when
  a soft-deleted row exists for the pair), flagged ``recommended`` when the
  opportunity is public;
- on a public opportunity, associations outside the desired set lose their
  ``recommended`` flag but stay attached;
- on a private opportunity, associations outside the desired set are
  soft-deleted after their removal is recorded in the audit log.

All writes of one run, audit records included, share a single transaction;
the audit log lines are written once it has committed.
"""

from datetime import datetime
from typing import Any, Iterable, Optional

from bson import ObjectId
from pymongo.client_session import ClientSession

from opportunity_engine.data.database import DatabaseManager, get_database_manager
from opportunity_engine.data.models.association import (
    AssociationUpdate,
    OpportunityAssociation,
    ReconcileResult,
)
from opportunity_engine.data.models.base import to_object_id
from opportunity_engine.data.models.opportunity import Opportunity
from opportunity_engine.data.repositories.association_repository import (
    AssociationRepository,
)
from opportunity_engine.data.repositories.candidate_repository import (
    CandidateRepository,
)
from opportunity_engine.data.repositories.opportunity_repository import (
    OpportunityRepository,
)
from opportunity_engine.data.repositories.status_change_repository import (
    StatusChangeRepository,
)
from opportunity_engine.utils.constants import OfferStatus
from opportunity_engine.utils.exceptions import Forbidden, NotFound
from opportunity_engine.utils.logger import LoggerMixin, audit_log

from .audit import StatusAuditLog


def dedupe(ids: Iterable[ObjectId]) -> list[ObjectId]:
    """Drop repeated ids, keeping first-seen order."""
    seen: set[ObjectId] = set()
    unique = []
    for id_value in ids:
        if id_value not in seen:
            seen.add(id_value)
            unique.append(id_value)
    return unique


class AssociationReconciler(LoggerMixin):
    """Sole writer of association state."""

    def __init__(
        self,
        db_manager: Optional[DatabaseManager] = None,
        audit: Optional[StatusAuditLog] = None,
    ):
        self._db_manager = db_manager or get_database_manager()
        self._opportunities = OpportunityRepository(self._db_manager)
        self._associations = AssociationRepository(self._db_manager)
        self._candidates = CandidateRepository(self._db_manager)
        self._audit = audit or StatusAuditLog(StatusChangeRepository(self._db_manager))

    # -------------------------------------------------------------------------
    # Reconciliation
    # -------------------------------------------------------------------------

    def reconcile(
        self,
        opportunity_id: str | ObjectId,
        candidate_ids: Optional[list[str | ObjectId]] = None,
        recommended_candidate_ids: Optional[list[str | ObjectId]] = None,
    ) -> ReconcileResult:
        """
        Align an opportunity's associations with the desired candidates.

        Args:
            opportunity_id: Opportunity to reconcile
            candidate_ids: Candidates that should be attached. None keeps the
                currently attached candidates.
            recommended_candidate_ids: Extra candidates surfaced by a
                recommendation pool, merged into the desired set

        Returns:
            ReconcileResult listing the associations that need a first
            contact, lost their recommendation, or were removed

        Raises:
            NotFound: the opportunity or one of the requested candidates
                does not exist
            TransactionFailed: the store rejected the batch; nothing was kept
        """
        opportunity = self._opportunities.get_or_raise(opportunity_id)
        self.ensure_candidates_exist(
            list(candidate_ids or []) + list(recommended_candidate_ids or [])
        )

        with self._db_manager.transaction() as session:
            result = self.reconcile_in_transaction(
                opportunity, candidate_ids, recommended_candidate_ids, session=session
            )

        self.publish(result, opportunity)
        return result

    def reconcile_in_transaction(
        self,
        opportunity: Opportunity,
        candidate_ids: Optional[list[str | ObjectId]] = None,
        recommended_candidate_ids: Optional[list[str | ObjectId]] = None,
        session: Optional[ClientSession] = None,
    ) -> ReconcileResult:
        """
        Reconcile inside a transaction the caller owns.

        The caller checks the candidate ids with ``ensure_candidates_exist``
        before its first write, and calls ``publish`` once its transaction
        has committed.
        """
        if candidate_ids is None:
            requested: list[Any] = [
                a.candidate_id
                for a in self._associations.find_by_opportunity(
                    opportunity.id, session=session
                )
            ]
        else:
            requested = list(candidate_ids)

        extra = list(recommended_candidate_ids or [])
        desired = dedupe(to_object_id(i) for i in requested + extra)
        result = ReconcileResult(
            opportunity_id=opportunity.id, desired_candidate_ids=desired
        )

        self._attach(opportunity, desired, result, session)
        self._detach(opportunity, set(desired), result, session)
        return result

    def ensure_candidates_exist(self, candidate_ids: list[Any]) -> None:
        """Raise NotFound for the first id with no candidate behind it."""
        missing = self._candidates.find_missing(candidate_ids)
        if missing:
            raise NotFound(
                f"Candidate {missing[0]} not found",
                resource="candidate",
                resource_id=missing[0],
            )

    def publish(self, result: ReconcileResult, opportunity: Opportunity) -> None:
        """Log a committed reconciliation and its status records."""
        self._audit.publish(result.status_changes)
        self.logger.info(
            f"Reconciled opportunity {opportunity.id}: "
            f"{len(result.desired_candidate_ids)} desired, "
            f"{len(result.to_notify)} to notify, {len(result.unrecommended)} "
            f"unrecommended, {len(result.removed)} removed"
        )
        audit_log(
            "opportunity_reconciled",
            {
                "opportunity_id": opportunity.id,
                "is_public": opportunity.is_public,
                "to_notify": result.notified_candidate_ids,
                "removed": [a.candidate_id for a in result.removed],
            },
            audit_type="RECONCILE",
        )

    def _attach(
        self,
        opportunity: Opportunity,
        desired: list[ObjectId],
        result: ReconcileResult,
        session: Optional[ClientSession],
    ) -> None:
        overrides = {"recommended": opportunity.is_public}

        for candidate_id in desired:
            association, before = self._associations.create_or_restore(
                opportunity.id, candidate_id, overrides, session=session
            )
            result.associations.append(association)

            if before is None:
                result.status_changes.append(
                    self._audit.on_association_created(association, session=session)
                )
                result.to_notify.append(association)
                continue

            record = self._audit.on_association_updated(
                before, association, session=session
            )
            if record is not None:
                result.status_changes.append(record)
            newly_recommended = opportunity.is_public and not before.recommended
            if before.is_deleted or newly_recommended:
                result.to_notify.append(association)

    def _detach(
        self,
        opportunity: Opportunity,
        desired: set[ObjectId],
        result: ReconcileResult,
        session: Optional[ClientSession],
    ) -> None:
        others = [
            a
            for a in self._associations.find_by_opportunity(
                opportunity.id, session=session
            )
            if a.candidate_id not in desired
        ]

        if opportunity.is_public:
            for association in others:
                if not association.recommended:
                    continue
                updated = self._associations.update_fields(
                    association.id, {"recommended": False}, session=session
                )
                result.unrecommended.append(updated)
                result.associations.append(updated)
            return

        for association in others:
            result.status_changes.append(
                self._audit.on_association_removed(association, session=session)
            )
        self._associations.soft_delete_many([a.id for a in others], session=session)

        now = datetime.utcnow()
        removed = [a.model_copy(update={"deleted_at": now}) for a in others]
        result.removed.extend(removed)
        result.associations.extend(removed)

    def attach_external(
        self,
        opportunity: Opportunity,
        candidate_id: str | ObjectId,
        status: Optional[OfferStatus | int] = None,
        session: Optional[ClientSession] = None,
    ) -> ReconcileResult:
        """
        Attach the candidate who reported an offer found on their own.

        The association is already seen, and its status is at least
        CONTACTED: the candidate has been in touch with the company. Runs in
        the caller's transaction; publish the result after commit.
        """
        requested = OfferStatus(status) if status is not None else OfferStatus.CONTACTED
        overrides = {"seen": True, "status": int(max(requested, OfferStatus.CONTACTED))}

        association, before = self._associations.create_or_restore(
            opportunity.id, candidate_id, overrides, session=session
        )
        result = ReconcileResult(
            opportunity_id=opportunity.id,
            desired_candidate_ids=[association.candidate_id],
            associations=[association],
        )
        if before is None:
            record = self._audit.on_association_created(association, session=session)
        else:
            record = self._audit.on_association_updated(before, association, session=session)
        if record is not None:
            result.status_changes.append(record)
        return result

    # -------------------------------------------------------------------------
    # Single Association Writes
    # -------------------------------------------------------------------------

    def update_association(
        self,
        opportunity_id: str | ObjectId,
        candidate_id: str | ObjectId,
        patch: AssociationUpdate | dict[str, Any],
    ) -> OpportunityAssociation:
        """
        Update one live association (status, flags, note).

        A status record is appended only when the status value changed.
        """
        if isinstance(patch, AssociationUpdate):
            update_data = patch.model_dump(exclude_unset=True, exclude_none=True)
        else:
            update_data = dict(patch)

        with self._db_manager.transaction() as session:
            before = self._associations.get_by_pair(
                opportunity_id, candidate_id, session=session
            )
            if before is None:
                raise NotFound(
                    f"Candidate {candidate_id} is not associated with "
                    f"opportunity {opportunity_id}",
                    resource="association",
                    resource_id=(opportunity_id, candidate_id),
                )
            if not update_data:
                return before

            after = self._associations.update_fields(
                before.id, update_data, session=session
            )
            record = self._audit.on_association_updated(before, after, session=session)

        self._audit.publish([record])
        self.logger.debug(f"Updated association {after.id}: {sorted(update_data)}")
        return after

    def join(
        self, opportunity_id: str | ObjectId, candidate_id: str | ObjectId
    ) -> OpportunityAssociation:
        """
        Attach a candidate who opened an opportunity.

        An existing association is marked seen. Otherwise only public
        opportunities can be joined.
        """
        opportunity = self._opportunities.get_or_raise(opportunity_id)
        if self._candidates.find_candidate(candidate_id) is None:
            raise NotFound(
                f"Candidate {candidate_id} not found",
                resource="candidate",
                resource_id=candidate_id,
            )

        if not opportunity.is_active:
            raise Forbidden(
                f"Opportunity {opportunity_id} is not open to candidates",
                resource="opportunity",
                resource_id=opportunity_id,
            )

        existing = self._associations.get_by_pair(opportunity.id, candidate_id)
        if existing is not None:
            if existing.seen:
                return existing
            return self._associations.update_fields(existing.id, {"seen": True})

        if not opportunity.is_public:
            raise Forbidden(
                f"Opportunity {opportunity_id} is private",
                resource="opportunity",
                resource_id=opportunity_id,
            )

        with self._db_manager.transaction() as session:
            association, before = self._associations.create_or_restore(
                opportunity.id, candidate_id, {"seen": True}, session=session
            )
            if before is None:
                record = self._audit.on_association_created(association, session=session)
            else:
                record = self._audit.on_association_updated(
                    before, association, session=session
                )

        self._audit.publish([record])
        self.logger.info(f"Candidate {candidate_id} joined opportunity {opportunity.id}")
        return association
