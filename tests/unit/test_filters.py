"""
Tests for opportunity_engine.core.filters — predicate clauses, FilterComposer,
and predicate execution by OpportunityRepository.
"""

from datetime import datetime, timedelta

import pytest
from bson import ObjectId

from opportunity_engine.core.filters import (
    count_admin_tabs,
    refusal_before_interview_archived_clause,
    search_clause,
    status_clause,
    to_process_clause,
)
from opportunity_engine.data.models import FilterRequest, OpportunityAssociation
from opportunity_engine.utils.constants import OfferStatus, ViewerRole


@pytest.fixture
def associations(db_manager):
    """Raw association collection, for evaluating clauses directly."""
    return db_manager.get_sync_collection("opportunity_users")


@pytest.fixture
def attach(association_repo):
    """Store an association with the given fields."""

    def _attach(opportunity, candidate_id=None, **fields):
        return association_repo.create(
            OpportunityAssociation(
                opportunity_id=opportunity.id,
                candidate_id=candidate_id or ObjectId(),
                **fields,
            )
        )

    return _attach


def _matches(collection, clause, **document):
    collection.delete_many({})
    collection.insert_one({"status": -1, "bookmarked": False, "recommended": False, "archived": False, **document})
    return collection.count_documents(clause) == 1


# ── Named clauses ───────────────────────────────────────────────────────────


class TestToProcessClause:
    def test_literal_status(self, associations):
        assert _matches(associations, to_process_clause(), status=-1)

    def test_bookmarked_with_other_status(self, associations):
        assert _matches(associations, to_process_clause(), status=2, bookmarked=True)

    def test_recommended_with_other_status(self, associations):
        assert _matches(associations, to_process_clause(), status=1, recommended=True)

    def test_plain_other_status(self, associations):
        assert not _matches(associations, to_process_clause(), status=2)

    def test_prefix(self):
        clause = to_process_clause(prefix="associations.")
        assert {"associations.bookmarked": True} in clause["$or"]


class TestRefusalArchivedClause:
    def test_archived_refusal(self, associations):
        assert _matches(associations, refusal_before_interview_archived_clause(), status=3, archived=True)

    def test_open_refusal(self, associations):
        assert not _matches(associations, refusal_before_interview_archived_clause(), status=3)

    def test_archived_other_status(self, associations):
        assert not _matches(associations, refusal_before_interview_archived_clause(), status=4, archived=True)


class TestStatusClause:
    def test_to_process_bucket(self, associations):
        assert _matches(associations, status_clause([-1]), status=2, bookmarked=True)

    def test_refusal_bucket(self, associations):
        assert _matches(associations, status_clause([3]), status=3, archived=True)

    def test_literal_values(self, associations):
        clause = status_clause([OfferStatus.INTERVIEW, OfferStatus.HIRED])
        assert _matches(associations, clause, status=2)
        assert not _matches(associations, clause, status=0)

    def test_bookmark_not_matched_without_to_process(self, associations):
        assert not _matches(associations, status_clause([1]), status=2, bookmarked=True)

    def test_plain_statuses_only_add_one_group(self):
        assert status_clause([0, 1]) == {"$or": [{"status": {"$in": [0, 1]}}]}


class TestSearchClause:
    def test_empty(self):
        assert search_clause(None) is None
        assert search_clause("   ") is None

    def test_case_insensitive(self, db_manager):
        collection = db_manager.get_sync_collection("scratch")
        collection.insert_one({"title": "Warehouse Operator", "company": "Acme"})
        assert collection.count_documents(search_clause("warehouse")) == 1
        assert collection.count_documents(search_clause("ACME")) == 1
        assert collection.count_documents(search_clause("driver")) == 0

    def test_regex_characters_are_literal(self, db_manager):
        collection = db_manager.get_sync_collection("scratch")
        collection.insert_one({"title": "C++ developer"})
        collection.insert_one({"title": "CC developer"})
        assert collection.count_documents(search_clause("c++")) == 1


# ── FilterComposer ──────────────────────────────────────────────────────────


class TestFilterComposer:
    def test_no_filters_is_unfiltered(self, composer):
        predicate = composer.compose(FilterRequest(), ViewerRole.ADMIN)
        assert predicate.is_unfiltered
        assert predicate.role == ViewerRole.ADMIN

    def test_groups_combined_with_and(self, composer):
        request = FilterRequest(departments=["Paris (75)", "Lyon (69)"], contracts=["cdi"])
        query = composer.compose(request, "admin").query
        assert query == {
            "$and": [
                {"department": {"$in": ["Paris (75)", "Lyon (69)"]}},
                {"contract": {"$in": ["cdi"]}},
            ]
        }

    def test_pagination_copied(self, composer):
        predicate = composer.compose(FilterRequest(offset=20, limit=10), ViewerRole.ADMIN)
        assert (predicate.skip, predicate.limit) == (20, 10)

    def test_candidate_view_needs_candidate(self, composer):
        with pytest.raises(ValueError):
            composer.compose(FilterRequest(), ViewerRole.CANDIDATE)

    def test_candidate_tab_rejected_for_admin(self, composer):
        with pytest.raises(ValueError):
            composer.compose(FilterRequest(tab="private"), ViewerRole.ADMIN)

    def test_candidate_fields_prefixed(self, composer):
        query = composer.compose(
            FilterRequest(departments=["Paris (75)"]), ViewerRole.CANDIDATE, candidate_id=ObjectId()
        ).query
        assert {"opportunity.department": {"$in": ["Paris (75)"]}} in query["$and"]


# ── Admin view execution ────────────────────────────────────────────────────


class TestAdminView:
    def _count(self, composer, opportunity_repo, **request):
        return opportunity_repo.count_by_predicate(
            composer.compose(FilterRequest(**request), ViewerRole.ADMIN)
        )

    def test_to_process_bucket_matches_bookmarked(self, composer, opportunity_repo, make_opportunity, attach):
        bookmarked = make_opportunity(title="Bookmarked")
        attach(bookmarked, status=OfferStatus.HIRED, bookmarked=True)
        plain = make_opportunity(title="Plain")
        attach(plain, status=OfferStatus.HIRED)

        found = opportunity_repo.find_by_predicate(
            composer.compose(FilterRequest(statuses=[-1]), ViewerRole.ADMIN)
        )
        assert [o.title for o in found] == ["Bookmarked"]

    def test_archived_refusal_matches(self, composer, opportunity_repo, make_opportunity, attach):
        opportunity = make_opportunity()
        attach(opportunity, status=OfferStatus.REFUSAL_BEFORE_INTERVIEW, archived=True)
        assert self._count(composer, opportunity_repo, statuses=[3]) == 1

    def test_removed_associations_ignored(self, composer, opportunity_repo, make_opportunity, attach):
        opportunity = make_opportunity()
        attach(opportunity, status=OfferStatus.INTERVIEW, deleted_at=datetime.utcnow())
        assert self._count(composer, opportunity_repo, statuses=[1]) == 0

    def test_tabs(self, opportunity_repo, make_opportunity):
        make_opportunity(is_validated=False)
        make_opportunity(is_validated=True)
        make_opportunity(is_validated=True)
        make_opportunity(is_validated=True, is_external=True)
        make_opportunity(is_validated=True, is_archived=True)

        counts = count_admin_tabs(FilterRequest(), opportunity_repo)
        assert counts == {"pending": 1, "validated": 2, "external": 1, "archived": 1}

    def test_tab_counts_keep_other_filters(self, opportunity_repo, make_opportunity):
        make_opportunity(department="Paris (75)")
        make_opportunity(department="Lyon (69)")

        counts = count_admin_tabs(FilterRequest(departments=["Lyon (69)"]), opportunity_repo)
        assert counts["validated"] == 1

    def test_search_and_visibility(self, composer, opportunity_repo, make_opportunity):
        make_opportunity(title="Forklift driver", is_public=True)
        make_opportunity(title="Forklift driver", is_public=False)
        make_opportunity(title="Cook", is_public=True)

        assert self._count(composer, opportunity_repo, search="forklift") == 2
        assert self._count(composer, opportunity_repo, search="forklift", visibility=[True]) == 1

    def test_business_lines(self, composer, opportunity_repo, make_opportunity):
        make_opportunity(business_lines=[{"name": "logistics", "order": 0}])
        make_opportunity(business_lines=[{"name": "hospitality", "order": 0}])
        assert self._count(composer, opportunity_repo, business_lines=["logistics"]) == 1

    def test_pagination_newest_first(self, composer, opportunity_repo, make_opportunity):
        now = datetime.utcnow()
        for i in range(3):
            opportunity = make_opportunity(title=f"Offer {i}")
            opportunity_repo.collection.update_one(
                {"_id": opportunity.id}, {"$set": {"created_at": now + timedelta(minutes=i)}}
            )

        page = opportunity_repo.find_by_predicate(
            composer.compose(FilterRequest(limit=2), ViewerRole.ADMIN)
        )
        assert [o.title for o in page] == ["Offer 2", "Offer 1"]
        assert self._count(composer, opportunity_repo, limit=2) == 3


# ── Candidate view execution ────────────────────────────────────────────────


class TestCandidateView:
    @pytest.fixture
    def candidate_id(self):
        return ObjectId()

    def _count(self, composer, opportunity_repo, candidate_id, **request):
        return opportunity_repo.count_by_predicate(
            composer.compose(FilterRequest(**request), ViewerRole.CANDIDATE, candidate_id=candidate_id)
        )

    def test_archived_refusal_shown_when_requested(
        self, composer, opportunity_repo, make_opportunity, attach, candidate_id
    ):
        opportunity = make_opportunity(is_public=False)
        attach(opportunity, candidate_id, status=OfferStatus.REFUSAL_BEFORE_INTERVIEW, archived=True)

        assert self._count(composer, opportunity_repo, candidate_id, tab="private") == 0
        assert self._count(composer, opportunity_repo, candidate_id, tab="private", statuses=[3]) == 1

    def test_tabs_split_by_visibility(
        self, composer, opportunity_repo, make_opportunity, attach, candidate_id
    ):
        attach(make_opportunity(is_public=False), candidate_id)
        attach(make_opportunity(is_public=True), candidate_id)
        attach(make_opportunity(is_public=True), candidate_id, archived=True)

        assert self._count(composer, opportunity_repo, candidate_id, tab="private") == 1
        assert self._count(composer, opportunity_repo, candidate_id, tab="public") == 1
        assert self._count(composer, opportunity_repo, candidate_id, tab="archived") == 1

    def test_only_own_live_associations(
        self, composer, opportunity_repo, make_opportunity, attach, candidate_id
    ):
        attach(make_opportunity(), candidate_id)
        attach(make_opportunity(), candidate_id, deleted_at=datetime.utcnow())
        attach(make_opportunity())

        assert self._count(composer, opportunity_repo, candidate_id) == 1

    def test_hides_closed_opportunities(
        self, composer, opportunity_repo, make_opportunity, attach, candidate_id
    ):
        attach(make_opportunity(is_validated=False), candidate_id)
        attach(make_opportunity(is_archived=True), candidate_id)
        assert self._count(composer, opportunity_repo, candidate_id) == 0

    def test_to_process_bucket(
        self, composer, opportunity_repo, make_opportunity, attach, candidate_id
    ):
        attach(make_opportunity(title="Recommended"), candidate_id, status=OfferStatus.CONTACTED, recommended=True)
        attach(make_opportunity(title="Contacted"), candidate_id, status=OfferStatus.CONTACTED)

        found = opportunity_repo.find_by_predicate(
            composer.compose(FilterRequest(statuses=[-1]), ViewerRole.CANDIDATE, candidate_id=candidate_id)
        )
        assert [o.title for o in found] == ["Recommended"]

    def test_status_counts(self, association_repo, make_opportunity, attach, candidate_id):
        attach(make_opportunity(), candidate_id, status=OfferStatus.CONTACTED)
        attach(make_opportunity(), candidate_id, status=OfferStatus.CONTACTED)
        attach(make_opportunity(), candidate_id, status=OfferStatus.HIRED)
        attach(make_opportunity(), candidate_id, status=OfferStatus.HIRED, archived=True)

        counts = {c.status: c.count for c in association_repo.count_by_status_for_candidate(candidate_id)}
        assert counts == {"0": 2, "2": 1, "archived": 1}
