"""
Named predicate clauses for opportunity list views.

Each function returns a MongoDB filter fragment over association fields
(``status``, ``bookmarked``, ``recommended``, ``archived``). The two status
buckets that do not map to a plain status value live here so they can be
tested on their own.
"""

import re
from typing import Any, Iterable, Optional

from opportunity_engine.utils.constants import SEARCH_FIELDS, OfferStatus


def _prefixed(field: str, prefix: str) -> str:
    return f"{prefix}{field}" if prefix else field


def to_process_clause(prefix: str = "") -> dict[str, Any]:
    """
    The "to process" bucket: anything that needs attention.

    Matches the to-process status, and also any bookmarked or recommended
    association whatever its stored status.
    """
    return {
        "$or": [
            {_prefixed("status", prefix): int(OfferStatus.TO_PROCESS)},
            {_prefixed("bookmarked", prefix): True},
            {_prefixed("recommended", prefix): True},
        ]
    }


def refusal_before_interview_archived_clause(prefix: str = "") -> dict[str, Any]:
    """A refusal before interview that the recruiter archived."""
    return {
        _prefixed("status", prefix): int(OfferStatus.REFUSAL_BEFORE_INTERVIEW),
        _prefixed("archived", prefix): True,
    }


def status_clause(statuses: Iterable[OfferStatus | int], prefix: str = "") -> dict[str, Any]:
    """
    OR-group for a status filter.

    Requested values match literally. Requesting the to-process value adds
    the to-process bucket; requesting refusal before interview adds its
    archived variant.
    """
    values = sorted({int(s) for s in statuses})
    clauses: list[dict[str, Any]] = [{_prefixed("status", prefix): {"$in": values}}]

    if OfferStatus.TO_PROCESS in values:
        clauses.extend(to_process_clause(prefix)["$or"])
    if OfferStatus.REFUSAL_BEFORE_INTERVIEW in values:
        clauses.append(refusal_before_interview_archived_clause(prefix))

    return {"$or": clauses}


def in_clause(field: str, values: Iterable[Any]) -> Optional[dict[str, Any]]:
    """OR-group over one field; no values contributes nothing."""
    values = list(values)
    if not values:
        return None
    return {field: {"$in": values}}


def search_clause(search: Optional[str], prefix: str = "") -> Optional[dict[str, Any]]:
    """Case-insensitive substring match over the searchable opportunity fields."""
    if not search or not search.strip():
        return None
    pattern = re.escape(search.strip())
    return {
        "$or": [
            {_prefixed(field, prefix): {"$regex": pattern, "$options": "i"}}
            for field in SEARCH_FIELDS
        ]
    }


def and_all(clauses: Iterable[Optional[dict[str, Any]]]) -> dict[str, Any]:
    """Combine clauses with AND, dropping empty ones."""
    kept = [c for c in clauses if c]
    if not kept:
        return {}
    if len(kept) == 1:
        return kept[0]
    return {"$and": kept}
