"""
Filter/query composer for opportunity list views.

Turns a FilterRequest into a Predicate for one of the two views:

- admin: opportunity documents, with every association row of the
  opportunity joined as ``associations``;
- candidate: one candidate's live association documents, with the
  opportunity joined as ``opportunity``.

Each filter key contributes one OR-group; groups are combined with AND. The
composer builds filter documents only and never reads the store.
"""

from enum import Enum
from typing import Any, Optional

from bson import ObjectId

from opportunity_engine.data.models.filters import FilterRequest, Predicate
from opportunity_engine.utils.constants import (
    OfferAdminTab,
    OfferCandidateTab,
    OfferStatus,
    ViewerRole,
)
from opportunity_engine.utils.logger import get_logger

from .predicates import (
    and_all,
    in_clause,
    refusal_before_interview_archived_clause,
    search_clause,
    status_clause,
)

logger = get_logger(__name__)

OPPORTUNITY = "opportunity."

ADMIN_TAB_CLAUSES: dict[OfferAdminTab, dict[str, Any]] = {
    OfferAdminTab.PENDING: {
        "is_validated": False,
        "is_archived": False,
        "is_external": False,
    },
    OfferAdminTab.VALIDATED: {
        "is_validated": True,
        "is_archived": False,
        "is_external": False,
    },
    OfferAdminTab.EXTERNAL: {"is_external": True, "is_archived": False},
    OfferAdminTab.ARCHIVED: {"is_archived": True},
}


def _tab_value(tab: Any) -> Optional[str]:
    # "archived" exists in both tab enums and may arrive as either
    if tab is None:
        return None
    return tab.value if isinstance(tab, Enum) else str(tab)


class FilterComposer:
    """Builds list-view predicates from filter requests."""

    def compose(
        self,
        request: FilterRequest,
        role: ViewerRole | str,
        candidate_id: Optional[str | ObjectId] = None,
    ) -> Predicate:
        """
        Compose the predicate for one page of a list view.

        Raises:
            ValueError: unknown tab for the role, or a candidate view
                without a candidate
        """
        role = ViewerRole(role)

        if role == ViewerRole.ADMIN:
            query = self._admin_query(request)
            sort = [("created_at", -1)]
        else:
            if candidate_id is None:
                raise ValueError("candidate view requires a candidate id")
            query = self._candidate_query(request)
            sort = [(f"{OPPORTUNITY}created_at", -1)]

        logger.debug(f"Composed {role.value} predicate: {query}")
        return Predicate(
            role=role,
            query=query,
            candidate_id=candidate_id,
            skip=request.offset,
            limit=request.limit,
            sort=sort,
        )

    # -------------------------------------------------------------------------
    # Admin View
    # -------------------------------------------------------------------------

    def _admin_query(self, request: FilterRequest) -> dict[str, Any]:
        tab = _tab_value(request.tab)
        clauses = [
            ADMIN_TAB_CLAUSES[OfferAdminTab(tab)] if tab else None,
            search_clause(request.search),
            in_clause("department", request.departments),
            in_clause("business_lines.name", request.business_lines),
            in_clause("contract", request.contracts),
            in_clause("is_public", request.visibility),
        ]
        if request.has_status:
            clauses.append(
                {
                    "associations": {
                        "$elemMatch": {
                            "deleted_at": None,
                            **status_clause(request.statuses),
                        }
                    }
                }
            )
        return and_all(clauses)

    # -------------------------------------------------------------------------
    # Candidate View
    # -------------------------------------------------------------------------

    def _candidate_query(self, request: FilterRequest) -> dict[str, Any]:
        tab = _tab_value(request.tab)
        clauses: list[Optional[dict[str, Any]]] = [
            {
                f"{OPPORTUNITY}is_validated": True,
                f"{OPPORTUNITY}is_archived": False,
            },
        ]

        if tab:
            clauses.extend(self._candidate_tab_clauses(OfferCandidateTab(tab), request))

        clauses.extend(
            [
                search_clause(request.search, prefix=OPPORTUNITY),
                in_clause(f"{OPPORTUNITY}department", request.departments),
                in_clause(f"{OPPORTUNITY}business_lines.name", request.business_lines),
                in_clause(f"{OPPORTUNITY}contract", request.contracts),
                in_clause(f"{OPPORTUNITY}is_public", request.visibility),
                status_clause(request.statuses) if request.has_status else None,
            ]
        )
        return and_all(clauses)

    def _candidate_tab_clauses(
        self, tab: OfferCandidateTab, request: FilterRequest
    ) -> list[dict[str, Any]]:
        if tab == OfferCandidateTab.ARCHIVED:
            return [{"archived": True}]

        # Archived refusals before interview still show under the open tabs
        # when that status is requested
        not_archived: dict[str, Any] = {"archived": False}
        if OfferStatus.REFUSAL_BEFORE_INTERVIEW in request.statuses:
            not_archived = {
                "$or": [not_archived, refusal_before_interview_archived_clause()]
            }

        is_public = tab == OfferCandidateTab.PUBLIC
        return [{f"{OPPORTUNITY}is_public": is_public}, not_archived]


def count_admin_tabs(request: FilterRequest, repository: Any) -> dict[str, int]:
    """
    Count the admin view per tab, keeping the request's other filters.

    ``repository`` is anything with a ``count_by_predicate`` method.
    """
    composer = FilterComposer()
    counts = {}
    for tab in OfferAdminTab:
        predicate = composer.compose(
            request.model_copy(update={"tab": tab}), ViewerRole.ADMIN
        )
        counts[tab.value] = repository.count_by_predicate(predicate)
    return counts
