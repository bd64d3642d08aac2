"""
Configuration for the opportunity engine.

Pydantic Settings, one nested group per concern; each group reads its own
environment prefix (``DB_``, ``LOG_``, ``REMINDER_``) and the top-level
settings read ``APP_`` plus an optional ``.env`` file.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


ROOT_DIR = Path(__file__).parent.parent.parent
LOG_DIR = ROOT_DIR / "logs"


class DatabaseSettings(BaseSettings):
    """MongoDB connection and transaction options."""

    model_config = SettingsConfigDict(env_prefix="DB_")

    # A full URI wins over host/port/credentials (e.g. Atlas SRV strings)
    uri: str | None = None

    host: str = "localhost"
    port: int = 27017
    name: str = "opportunity_engine"
    username: str | None = None
    password: str | None = None

    # Multi-document transactions need a replica set (or mongos)
    replica_set: str | None = None

    server_selection_timeout_ms: int = 5000
    max_pool_size: int = 50


class LoggingSettings(BaseSettings):
    """Console, application file and audit file sinks."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: str = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}"
    console_output: bool = True

    file_path: Path = LOG_DIR / "opportunity_engine.log"
    rotation: str = "10 MB"
    retention: str = "30 days"

    # Status transitions, reconciliations and reminder decisions
    audit_file_path: Path = LOG_DIR / "audit.log"
    audit_retention: str = "1 year"


class ReminderSettings(BaseSettings):
    """Delays and polling for the follow-up reminders."""

    model_config = SettingsConfigDict(env_prefix="REMINDER_")

    archive_delay_days: float = 30
    no_response_delay_days: float = 15
    candidate_delay_days: float = 5

    # Worker loop
    poll_interval_seconds: float = 60
    batch_size: int = 50

    # A running claim older than this is handed out again (crashed worker)
    claim_lease_seconds: float = 900
    # Failed reminders go back to pending, doubling the wait each time
    max_attempts: int = 5
    retry_backoff_seconds: float = 300

    @field_validator(
        "archive_delay_days",
        "no_response_delay_days",
        "candidate_delay_days",
        "poll_interval_seconds",
        "claim_lease_seconds",
        "retry_backoff_seconds",
    )
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """A non-positive delay would re-fire a reminder immediately."""
        if v <= 0:
            raise ValueError("delay must be positive")
        return v

    @field_validator("batch_size", "max_attempts")
    @classmethod
    def validate_at_least_one(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v


class AppSettings(BaseSettings):
    """Top-level settings."""

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    name: str = "Opportunity Engine"
    version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "production", "testing"] = "development"

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    reminders: ReminderSettings = Field(default_factory=ReminderSettings)

    @property
    def is_testing(self) -> bool:
        return self.environment == "testing"


_settings: AppSettings | None = None


def get_settings() -> AppSettings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = AppSettings()
    return _settings


def reload_settings() -> AppSettings:
    """Re-read settings from the environment."""
    global _settings
    _settings = AppSettings()
    return _settings
