"""
Shared test fixtures for the opportunity engine test suite.

Sets environment variables before any package imports, then provides a
mongomock-backed database manager, repositories, factories for stored
documents, and a dispatcher that records the notifications it is asked
to send.
"""

import os

# === Set environment BEFORE any package imports ===
os.environ.setdefault("APP_ENVIRONMENT", "testing")
os.environ.setdefault("DB_NAME", "opportunity_engine_test")

from contextlib import contextmanager
from typing import Any, Optional

import mongomock
import pytest
from bson import ObjectId
from pymongo.errors import PyMongoError

from loguru import logger

from opportunity_engine.core.associations import (
    AssociationEvents,
    AssociationReconciler,
    StatusAuditLog,
)
from opportunity_engine.core.filters import FilterComposer
from opportunity_engine.core.notifications import (
    MongoTaskQueue,
    NotificationDispatcher,
    NotificationScheduler,
    ReminderWorker,
)
from opportunity_engine.core.opportunities import OpportunityWorkflow
from opportunity_engine.data.database import create_indexes
from opportunity_engine.data.models import Candidate, Opportunity
from opportunity_engine.data.repositories import (
    AssociationEventRepository,
    AssociationRepository,
    CandidateRepository,
    OpportunityRepository,
    ScheduledReminderRepository,
    StatusChangeRepository,
)
from opportunity_engine.utils.config import ReminderSettings
from opportunity_engine.utils.exceptions import TransactionFailed


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


class MongomockDatabaseManager:
    """
    In-memory stand-in for DatabaseManager.

    mongomock has no sessions, so ``transaction()`` snapshots every
    collection and restores the snapshot when the block raises.
    """

    def __init__(self, name: str = "opportunity_engine_test"):
        self.client = mongomock.MongoClient()
        self.database = self.client[name]
        self.transactions = 0

    def get_sync_client(self):
        return self.client

    def get_sync_database(self):
        return self.database

    def get_sync_collection(self, collection_name: str):
        return self.database[collection_name]

    def check_sync_connection(self) -> bool:
        return True

    def ensure_indexes(self) -> None:
        create_indexes(self.database)

    @contextmanager
    def transaction(self):
        self.transactions += 1
        snapshot = {
            name: list(self.database[name].find())
            for name in self.database.list_collection_names()
        }
        try:
            yield None
        except Exception as e:
            for name in self.database.list_collection_names():
                collection = self.database[name]
                collection.delete_many({})
                if snapshot.get(name):
                    collection.insert_many(snapshot[name])
            if isinstance(e, PyMongoError):
                raise TransactionFailed(f"Transaction aborted: {e}", cause=e) from e
            raise


@pytest.fixture
def db_manager():
    manager = MongomockDatabaseManager()
    manager.ensure_indexes()
    return manager


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


@pytest.fixture
def opportunity_repo(db_manager):
    return OpportunityRepository(db_manager)


@pytest.fixture
def association_repo(db_manager):
    return AssociationRepository(db_manager)


@pytest.fixture
def candidate_repo(db_manager):
    return CandidateRepository(db_manager)


@pytest.fixture
def status_repo(db_manager):
    return StatusChangeRepository(db_manager)


@pytest.fixture
def reminder_repo(db_manager):
    return ScheduledReminderRepository(db_manager)


@pytest.fixture
def event_repo(db_manager):
    return AssociationEventRepository(db_manager)


# ---------------------------------------------------------------------------
# Document factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_candidate(candidate_repo):
    """Factory that stores a candidate and returns it."""
    counter = {"n": 0}

    def _factory(first_name: Optional[str] = None, **kwargs: Any) -> Candidate:
        counter["n"] += 1
        n = counter["n"]
        candidate = Candidate(
            first_name=first_name or f"Candidate{n}",
            last_name=kwargs.pop("last_name", "Test"),
            email=kwargs.pop("email", f"candidate{n}@example.com"),
            **kwargs,
        )
        return candidate_repo.create(candidate)

    return _factory


@pytest.fixture
def make_opportunity(opportunity_repo):
    """Factory that stores an opportunity (validated and private by default)."""

    def _factory(**kwargs: Any) -> Opportunity:
        data = {
            "title": "Warehouse operator",
            "company": "Acme Logistics",
            "department": "Paris (75)",
            "contract": "cdi",
            "recruiter_mail": "recruiter@acme.example",
            "is_public": False,
            "is_validated": True,
        }
        data.update(kwargs)
        return opportunity_repo.create(Opportunity(**data))

    return _factory


@pytest.fixture
def candidates(make_candidate):
    """Three stored candidates: A, B and C."""
    return [make_candidate("A"), make_candidate("B"), make_candidate("C")]


# ---------------------------------------------------------------------------
# Engine components
# ---------------------------------------------------------------------------


@pytest.fixture
def status_audit(status_repo):
    return StatusAuditLog(status_repo)


@pytest.fixture
def reconciler(db_manager, status_audit):
    return AssociationReconciler(db_manager, audit=status_audit)


@pytest.fixture
def events(db_manager):
    return AssociationEvents(db_manager)


@pytest.fixture
def composer():
    return FilterComposer()


class RecordingDispatcher(NotificationDispatcher):
    """Dispatcher that records calls and can be told to fail."""

    def __init__(self):
        self.calls: list[tuple] = []
        self.fail = False

    def _record(self, *call):
        self.calls.append(call)
        if self.fail:
            raise RuntimeError("mail service unavailable")

    def notify_candidate_of_opportunity(self, candidate_id: ObjectId, opportunity_id: ObjectId) -> None:
        self._record("candidate", candidate_id, opportunity_id)

    def notify_recruiter_of_archive_candidate(self, opportunity_id: ObjectId) -> None:
        self._record("archive", opportunity_id)

    def notify_recruiter_no_response(self, opportunity_id: ObjectId) -> None:
        self._record("no_response", opportunity_id)

    def kinds(self) -> list[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def reminder_settings():
    return ReminderSettings(
        archive_delay_days=30,
        no_response_delay_days=15,
        candidate_delay_days=5,
        poll_interval_seconds=1,
        batch_size=10,
        claim_lease_seconds=600,
        max_attempts=2,
        retry_backoff_seconds=60,
    )


@pytest.fixture
def queue(reminder_repo, reminder_settings):
    return MongoTaskQueue(reminder_repo, settings=reminder_settings)


@pytest.fixture
def scheduler(queue, dispatcher, db_manager, reminder_settings):
    return NotificationScheduler(queue, dispatcher, db_manager, settings=reminder_settings)


@pytest.fixture
def worker(scheduler, queue, reminder_settings):
    return ReminderWorker(scheduler, queue, settings=reminder_settings)


@pytest.fixture
def workflow(scheduler, db_manager, reconciler):
    return OpportunityWorkflow(scheduler, db_manager, reconciler=reconciler)


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@pytest.fixture
def audit_lines():
    """Messages written to the audit log while the test runs."""
    lines: list[str] = []
    handler_id = logger.add(
        lambda message: lines.append(message.record["message"]),
        filter=lambda record: "audit_type" in record["extra"],
        level="INFO",
    )
    yield lines
    logger.remove(handler_id)
