"""
Candidate repository for the opportunity engine.

Read access to the candidate directory.
"""

from typing import Optional

from bson import ObjectId

from opportunity_engine.data.models.candidate import Candidate

from .base import BaseRepository


class CandidateRepository(BaseRepository[Candidate]):
    """Repository for candidate document operations."""

    @property
    def collection_name(self) -> str:
        return "candidates"

    @property
    def model_class(self) -> type[Candidate]:
        return Candidate

    def find_missing(self, ids: list[str | ObjectId]) -> list[str | ObjectId]:
        """Return the ids of ``ids`` with no matching candidate, malformed ones included."""
        parsed = {}
        for id_value in ids:
            try:
                parsed[id_value] = self._to_object_id(id_value)
            except ValueError:
                continue

        found = {
            doc["_id"]
            for doc in self.collection.find(
                {"_id": {"$in": list(parsed.values())}}, {"_id": 1}
            )
        }
        return [i for i in ids if parsed.get(i) not in found]

    def find_candidate(self, id_value: str | ObjectId) -> Optional[Candidate]:
        """Get a candidate; unknown and malformed ids both give None."""
        try:
            return self.get_by_id(id_value)
        except ValueError:
            return None


# Singleton instance
_candidate_repository: Optional[CandidateRepository] = None


def get_candidate_repository() -> CandidateRepository:
    """Get the candidate repository singleton instance."""
    global _candidate_repository
    if _candidate_repository is None:
        _candidate_repository = CandidateRepository()
    return _candidate_repository
