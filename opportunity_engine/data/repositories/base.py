"""
Repository base class.

One repository per collection. Reads return Pydantic documents; every write
takes an optional ``session`` so a caller can run several writes in one
transaction (see ``DatabaseManager.transaction``).
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Generic, Optional, Sequence, TypeVar

from bson import ObjectId
from pymongo import ASCENDING, ReturnDocument
from pymongo.client_session import ClientSession
from pymongo.collection import Collection

from opportunity_engine.data.database import DatabaseManager, get_database_manager
from opportunity_engine.data.models.base import BaseDocument, to_object_id
from opportunity_engine.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T", bound=BaseDocument)

Sort = Sequence[tuple[str, int]]
OLDEST_FIRST: Sort = [("created_at", ASCENDING)]


class BaseRepository(ABC, Generic[T]):
    """Typed access to one MongoDB collection."""

    @property
    @abstractmethod
    def collection_name(self) -> str:
        pass

    @property
    @abstractmethod
    def model_class(self) -> type[T]:
        pass

    def __init__(self, db_manager: Optional[DatabaseManager] = None) -> None:
        self._db_manager = db_manager or get_database_manager()

    @property
    def collection(self) -> Collection:
        return self._db_manager.get_sync_collection(self.collection_name)

    def other_collection(self, name: str) -> Collection:
        """Another collection of the same database, for ``$lookup`` views."""
        return self._db_manager.get_sync_collection(name)

    def _to_model(self, document: Optional[dict[str, Any]]) -> Optional[T]:
        return self.model_class.from_mongo(document)

    def _to_models(self, documents) -> list[T]:
        return [self.model_class.from_mongo(doc) for doc in documents]

    @staticmethod
    def _to_object_id(id_value: str | ObjectId) -> ObjectId:
        return to_object_id(id_value)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def create(self, model: T, session: Optional[ClientSession] = None) -> T:
        """Insert ``model`` and set its id."""
        model.touch(created=True)
        result = self.collection.insert_one(model.to_mongo(), session=session)
        model.id = result.inserted_id
        logger.debug(f"Inserted {self.collection_name}/{result.inserted_id}")
        return model

    def update(
        self,
        id_value: str | ObjectId,
        fields: dict[str, Any],
        session: Optional[ClientSession] = None,
    ) -> Optional[T]:
        """
        Set ``fields`` on one document.

        Returns:
            The document as stored after the update, or None if no document
            has that id
        """
        document = self.collection.find_one_and_update(
            {"_id": self._to_object_id(id_value)},
            {"$set": {**fields, "updated_at": datetime.utcnow()}},
            return_document=ReturnDocument.AFTER,
            session=session,
        )
        if document is not None:
            logger.debug(f"Updated {self.collection_name}/{id_value}: {sorted(fields)}")
        return self._to_model(document)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_by_id(
        self, id_value: str | ObjectId, session: Optional[ClientSession] = None
    ) -> Optional[T]:
        """Get a document by id; malformed ids raise ValueError."""
        return self.find_one({"_id": self._to_object_id(id_value)}, session=session)

    def find_one(
        self, query: dict[str, Any], session: Optional[ClientSession] = None
    ) -> Optional[T]:
        return self._to_model(self.collection.find_one(query, session=session))

    def find(
        self,
        query: dict[str, Any],
        sort: Optional[Sort] = None,
        skip: int = 0,
        limit: int = 0,
        session: Optional[ClientSession] = None,
    ) -> list[T]:
        """
        Find documents matching ``query``.

        Sorted oldest first unless ``sort`` is given; ``limit=0`` returns
        every match.
        """
        cursor = (
            self.collection.find(query, session=session)
            .sort(list(sort or OLDEST_FIRST))
            .skip(skip)
            .limit(limit)
        )
        return self._to_models(cursor)

    def count(
        self,
        query: Optional[dict[str, Any]] = None,
        session: Optional[ClientSession] = None,
    ) -> int:
        return self.collection.count_documents(query or {}, session=session)

    def exists(
        self, query: dict[str, Any], session: Optional[ClientSession] = None
    ) -> bool:
        return self.collection.count_documents(query, limit=1, session=session) > 0
