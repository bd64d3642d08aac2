"""
MongoDB connection management for the opportunity engine.

Holds the single ``MongoClient`` of the process, the transaction scope that
every multi-step association write runs in, and the index definitions the
engine relies on (one association per pair, one follow-up per fired
reminder).
"""

from contextlib import contextmanager
from typing import Iterator, Optional
from urllib.parse import quote_plus

from pymongo import ASCENDING, DESCENDING, MongoClient, WriteConcern
from pymongo.client_session import ClientSession
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import ConnectionFailure, PyMongoError, ServerSelectionTimeoutError
from pymongo.read_concern import ReadConcern

from opportunity_engine.utils.config import DatabaseSettings, get_settings
from opportunity_engine.utils.exceptions import TransactionFailed
from opportunity_engine.utils.logger import get_logger

logger = get_logger(__name__)


def build_uri(db_settings: DatabaseSettings) -> str:
    """Connection URI from settings; credentials are URL-encoded."""
    if db_settings.uri:
        return db_settings.uri

    host = db_settings.host.strip()
    if not host or any(c in host for c in "/@?;&|$`"):
        raise ValueError(f"Invalid database host: {host!r}")

    auth = ""
    if db_settings.username and db_settings.password:
        auth = f"{quote_plus(db_settings.username)}:{quote_plus(db_settings.password)}@"

    uri = f"mongodb://{auth}{host}:{db_settings.port}"
    if db_settings.replica_set:
        uri += f"/?replicaSet={quote_plus(db_settings.replica_set)}"
    return uri


class DatabaseManager:
    """Lazily connected MongoDB client shared by the repositories."""

    def __init__(self, db_settings: Optional[DatabaseSettings] = None) -> None:
        self._settings = db_settings or get_settings().database
        self._client: Optional[MongoClient] = None

    def get_sync_client(self) -> MongoClient:
        if self._client is None:
            logger.info(f"Connecting to MongoDB database {self._settings.name!r}")
            self._client = MongoClient(
                build_uri(self._settings),
                serverSelectionTimeoutMS=self._settings.server_selection_timeout_ms,
                maxPoolSize=self._settings.max_pool_size,
            )
        return self._client

    def get_sync_database(self) -> Database:
        return self.get_sync_client()[self._settings.name]

    def get_sync_collection(self, collection_name: str) -> Collection:
        return self.get_sync_database()[collection_name]

    @contextmanager
    def transaction(self) -> Iterator[ClientSession]:
        """
        Run the enclosed writes as one multi-document transaction.

        Commits on normal exit and aborts on any exception. Driver errors
        surface as TransactionFailed; other exceptions propagate unchanged.
        Pass the yielded session to every repository write in the block.
        """
        try:
            with self.get_sync_client().start_session() as session:
                with session.start_transaction(
                    read_concern=ReadConcern("snapshot"),
                    write_concern=WriteConcern(w="majority"),
                ):
                    yield session
        except PyMongoError as e:
            logger.error(f"Transaction aborted: {e}")
            raise TransactionFailed(f"Transaction aborted: {e}", cause=e) from e

    def check_sync_connection(self) -> bool:
        """Ping the server; a failed ping drops the client so the next call reconnects."""
        try:
            self.get_sync_client().admin.command("ping")
            return True
        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            logger.error(f"MongoDB ping failed: {e}")
            self.close()
            return False

    def close(self) -> None:
        if self._client is not None:
            logger.info("Closing MongoDB client")
            self._client.close()
            self._client = None

    def ensure_indexes(self) -> None:
        logger.info("Ensuring database indexes")
        create_indexes(self.get_sync_database())


def create_indexes(database: Database) -> None:
    """Create the indexes the engine's invariants and views rely on."""
    opportunities = database["opportunities"]
    for field in ("is_validated", "is_archived", "is_external", "department", "business_lines.name"):
        opportunities.create_index(field)
    opportunities.create_index([("created_at", DESCENDING)])

    # One association per pair, soft-deleted rows included
    associations = database["opportunity_users"]
    associations.create_index(
        [("opportunity_id", ASCENDING), ("candidate_id", ASCENDING)], unique=True
    )
    associations.create_index([("candidate_id", ASCENDING), ("deleted_at", ASCENDING)])
    associations.create_index("status")

    status_changes = database["opportunity_user_status_changes"]
    status_changes.create_index([("association_id", ASCENDING), ("created_at", ASCENDING)])
    status_changes.create_index("opportunity_id")
    status_changes.create_index("candidate_id")

    events = database["opportunity_user_events"]
    events.create_index([("association_id", ASCENDING), ("start_date", ASCENDING)])
    events.create_index("candidate_id")

    database["candidates"].create_index("email")

    # Claims by due date or stale lease; one follow-up per fired reminder
    reminders = database["scheduled_reminders"]
    reminders.create_index([("state", ASCENDING), ("run_at", ASCENDING)])
    reminders.create_index([("state", ASCENDING), ("claimed_at", ASCENDING)])
    reminders.create_index("rescheduled_from", unique=True, sparse=True)
    reminders.create_index("opportunity_id")


_db_manager: Optional[DatabaseManager] = None


def get_database_manager() -> DatabaseManager:
    """Process-wide database manager."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


def get_sync_db() -> Database:
    return get_database_manager().get_sync_database()
