"""
Tests for Pydantic data models in opportunity_engine.data.models.
"""

from datetime import datetime

import pytest
from bson import ObjectId
from pydantic import ValidationError

from opportunity_engine.data.models import (
    BusinessLine,
    FilterRequest,
    Opportunity,
    OpportunityAssociation,
    OpportunityUpdate,
    ReconcileResult,
    ReminderOutcome,
    ScheduledReminder,
    StatusChangeRecord,
)
from opportunity_engine.data.models.base import to_object_id
from opportunity_engine.utils.constants import (
    OfferCandidateTab,
    OfferStatus,
    ReminderKind,
    ReminderState,
)


# ── Base ────────────────────────────────────────────────────────────────────


class TestBaseDocument:
    def test_string_id_is_converted(self):
        oid = ObjectId()
        opportunity = Opportunity(_id=str(oid), title="Cook")
        assert opportunity.id == oid

    def test_dump_mongo_uses_alias_and_drops_missing_id(self):
        opportunity = Opportunity(title="Cook")
        data = opportunity.to_mongo()
        assert "_id" not in data
        assert "id" not in data
        assert data["title"] == "Cook"

    def test_dump_mongo_keeps_id(self):
        oid = ObjectId()
        data = Opportunity(_id=oid, title="Cook").to_mongo()
        assert data["_id"] == oid

    def test_to_object_id_rejects_garbage(self):
        with pytest.raises(ValueError):
            to_object_id("not-an-id")

    def test_to_object_id_passes_object_ids_through(self):
        oid = ObjectId()
        assert to_object_id(oid) is oid


# ── Opportunity ─────────────────────────────────────────────────────────────


class TestOpportunity:
    def test_defaults(self):
        opportunity = Opportunity(title="Cook")
        assert not opportunity.is_public
        assert not opportunity.is_validated
        assert not opportunity.is_archived
        assert opportunity.business_lines == []

    def test_is_active(self):
        assert Opportunity(title="Cook", is_validated=True).is_active
        assert not Opportunity(title="Cook", is_validated=True, is_archived=True).is_active
        assert not Opportunity(title="Cook").is_active

    def test_recruiter_contact_prefers_contact_mail(self):
        opportunity = Opportunity(
            title="Cook", recruiter_mail="r@example.com", contact_mail="c@example.com"
        )
        assert opportunity.recruiter_contact == "c@example.com"
        assert Opportunity(title="Cook", recruiter_mail="r@example.com").recruiter_contact == "r@example.com"

    def test_nothing_locked_before_validation(self):
        opportunity = Opportunity(title="Cook")
        assert opportunity.locked_fields({"title": "Chef", "company": "Other"}) == []

    def test_changed_fields_locked_after_validation(self):
        opportunity = Opportunity(title="Cook", company="Bistro", is_validated=True)
        locked = opportunity.locked_fields({"title": "Chef", "company": "Bistro", "is_archived": True})
        assert locked == ["title"]

    def test_business_lines_stay_editable(self):
        opportunity = Opportunity(title="Cook", is_validated=True)
        patch = {"business_lines": [{"name": "hospitality", "order": 0}]}
        assert opportunity.locked_fields(patch) == []

    def test_business_line_default_order(self):
        assert BusinessLine(name="logistics").order == -1

    def test_update_schema_dump_skips_unset(self):
        patch = OpportunityUpdate(is_archived=True)
        assert patch.model_dump(exclude_unset=True, exclude_none=True) == {"is_archived": True}


# ── Association ─────────────────────────────────────────────────────────────


class TestOpportunityAssociation:
    def _association(self, **kwargs):
        return OpportunityAssociation(
            opportunity_id=ObjectId(), candidate_id=ObjectId(), **kwargs
        )

    def test_defaults(self):
        association = self._association()
        assert association.status == OfferStatus.TO_PROCESS
        assert not association.seen
        assert not association.bookmarked
        assert not association.archived
        assert not association.recommended
        assert not association.is_deleted

    def test_status_stored_as_integer(self):
        association = self._association(status=OfferStatus.HIRED)
        assert association.to_mongo()["status"] == 2
        assert association.offer_status is OfferStatus.HIRED

    def test_invalid_status_rejected(self):
        with pytest.raises(ValidationError):
            self._association(status=9)

    def test_is_deleted(self):
        assert self._association(deleted_at=datetime.utcnow()).is_deleted

    def test_active_interview(self):
        assert self._association(status=OfferStatus.INTERVIEW).is_active_interview
        assert not self._association(status=OfferStatus.INTERVIEW, archived=True).is_active_interview
        assert not self._association(
            status=OfferStatus.INTERVIEW, deleted_at=datetime.utcnow()
        ).is_active_interview
        assert not self._association(status=OfferStatus.HIRED).is_active_interview

    def test_reconcile_result_notified_ids(self):
        association = self._association()
        result = ReconcileResult(
            opportunity_id=association.opportunity_id, to_notify=[association]
        )
        assert result.notified_candidate_ids == [association.candidate_id]


class TestStatusChangeRecord:
    def _record(self, old_status, new_status):
        return StatusChangeRecord(
            association_id=ObjectId(),
            candidate_id=ObjectId(),
            opportunity_id=ObjectId(),
            old_status=old_status,
            new_status=new_status,
        )

    def test_creation(self):
        record = self._record(None, -1)
        assert record.is_creation
        assert not record.is_removal

    def test_removal(self):
        record = self._record(1, None)
        assert record.is_removal
        assert not record.is_creation


# ── Filters ─────────────────────────────────────────────────────────────────


class TestFilterRequest:
    def test_blank_search_is_none(self):
        assert FilterRequest(search="   ").search is None

    def test_search_is_stripped(self):
        assert FilterRequest(search="  cook ").search == "cook"

    def test_candidate_tab_parsed(self):
        assert FilterRequest(tab="private").tab == OfferCandidateTab.PRIVATE

    def test_shared_tab_value(self):
        assert FilterRequest(tab="archived").tab.value == "archived"

    def test_unknown_tab_rejected(self):
        with pytest.raises(ValidationError):
            FilterRequest(tab="drafts")

    def test_statuses_parsed(self):
        request = FilterRequest(statuses=[-1, 3])
        assert request.statuses == [OfferStatus.TO_PROCESS, OfferStatus.REFUSAL_BEFORE_INTERVIEW]
        assert request.has_status

    def test_limit_capped(self):
        with pytest.raises(ValidationError):
            FilterRequest(limit=5000)


# ── Reminders ───────────────────────────────────────────────────────────────


class TestReminderModels:
    def test_payload_without_candidate(self):
        oid = ObjectId()
        reminder = ScheduledReminder(
            kind=ReminderKind.ARCHIVE, opportunity_id=oid, run_at=datetime.utcnow(), delay_seconds=60
        )
        assert reminder.payload == {"opportunity_id": oid}
        assert reminder.state == ReminderState.PENDING

    def test_payload_with_candidate(self):
        oid, cid = ObjectId(), ObjectId()
        reminder = ScheduledReminder(
            kind=ReminderKind.CANDIDATE,
            opportunity_id=oid,
            candidate_id=cid,
            run_at=datetime.utcnow(),
            delay_seconds=60,
        )
        assert reminder.payload == {"opportunity_id": oid, "candidate_id": cid}

    def test_first_reminder_has_no_parent_in_document(self):
        reminder = ScheduledReminder(
            kind=ReminderKind.ARCHIVE, opportunity_id=ObjectId(), run_at=datetime.utcnow(), delay_seconds=60
        )
        assert "rescheduled_from" not in reminder.to_mongo()

    def test_outcome_describe(self):
        outcome = ReminderOutcome(
            kind=ReminderKind.ARCHIVE, sent=False, rescheduled=True, reason="interview in progress"
        )
        assert outcome.describe() == "skipped, rescheduled: interview in progress"
        assert not outcome.is_terminal

    def test_terminal_outcome(self):
        outcome = ReminderOutcome(kind=ReminderKind.NO_RESPONSE, reason="candidates answered")
        assert outcome.is_terminal
