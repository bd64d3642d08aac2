"""Filter/query composition for opportunity list views."""

from .composer import FilterComposer, count_admin_tabs
from .labels import find_offer_status
from .predicates import (
    refusal_before_interview_archived_clause,
    search_clause,
    status_clause,
    to_process_clause,
)

__all__ = [
    "FilterComposer",
    "count_admin_tabs",
    "find_offer_status",
    "refusal_before_interview_archived_clause",
    "search_clause",
    "status_clause",
    "to_process_clause",
]
