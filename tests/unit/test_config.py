"""
Tests for settings, connection URIs and audit-log formatting.
"""

from datetime import datetime

import pytest
from bson import ObjectId
from pydantic import ValidationError

from opportunity_engine.data.database import build_uri
from opportunity_engine.utils.config import DatabaseSettings, ReminderSettings
from opportunity_engine.utils.logger import _loggable


# ── DatabaseSettings / build_uri ────────────────────────────────────────────


class TestBuildUri:
    def test_host_and_port(self):
        assert build_uri(DatabaseSettings(host="db", port=27018)) == "mongodb://db:27018"

    def test_credentials_are_encoded(self):
        uri = build_uri(DatabaseSettings(host="db", username="ops", password="p@ss/word"))
        assert uri == "mongodb://ops:p%40ss%2Fword@db:27017"

    def test_replica_set(self):
        uri = build_uri(DatabaseSettings(host="db", replica_set="rs0"))
        assert uri.endswith("/?replicaSet=rs0")

    def test_uri_overrides_host(self):
        settings = DatabaseSettings(uri="mongodb+srv://cluster.example/", host="ignored")
        assert build_uri(settings) == "mongodb+srv://cluster.example/"

    @pytest.mark.parametrize("host", ["", "   ", "db;rm", "evil@db"])
    def test_invalid_host(self, host):
        with pytest.raises(ValueError):
            build_uri(DatabaseSettings(host=host))


# ── ReminderSettings ────────────────────────────────────────────────────────


class TestReminderSettings:
    def test_defaults(self):
        settings = ReminderSettings()
        assert settings.archive_delay_days == 30
        assert settings.no_response_delay_days == 15
        assert settings.candidate_delay_days == 5

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("REMINDER_CANDIDATE_DELAY_DAYS", "2.5")
        assert ReminderSettings().candidate_delay_days == 2.5

    @pytest.mark.parametrize(
        "field",
        ["archive_delay_days", "poll_interval_seconds", "claim_lease_seconds", "retry_backoff_seconds"],
    )
    def test_rejects_non_positive_delays(self, field):
        with pytest.raises(ValidationError):
            ReminderSettings(**{field: 0})

    @pytest.mark.parametrize("field", ["batch_size", "max_attempts"])
    def test_rejects_counts_below_one(self, field):
        with pytest.raises(ValidationError):
            ReminderSettings(**{field: 0})

    def test_retry_defaults(self):
        settings = ReminderSettings()
        assert settings.max_attempts == 5
        assert settings.claim_lease_seconds == 900
        assert settings.retry_backoff_seconds == 300


# ── Audit formatting ────────────────────────────────────────────────────────


class TestLoggable:
    def test_ids_and_dates_become_strings(self):
        oid = ObjectId()
        data = _loggable({"opportunity_id": oid, "at": datetime(2024, 5, 1, 9, 30, 15, 123)})
        assert data == {"opportunity_id": str(oid), "at": "2024-05-01T09:30:15"}

    def test_nested_lists(self):
        oid = ObjectId()
        assert _loggable({"to_notify": [oid]}) == {"to_notify": [str(oid)]}

    def test_contact_fields_redacted(self):
        data = _loggable({"recruiter_mail": "a@b.example", "candidate": {"phone": "0600"}})
        assert data == {"recruiter_mail": "***", "candidate": {"phone": "***"}}
