"""
Logging for the opportunity engine.

Loguru with three sinks: coloured console output, a rotating application
log, and an audit log that only receives records bound with
``audit_type``. The audit log is where status transitions, reconciliations,
reminder decisions and association events end up, one line per event.
"""

import sys
from datetime import datetime
from typing import Any

from bson import ObjectId
from loguru import logger

from opportunity_engine.utils.config import get_settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan> | "
    "<level>{message}</level>"
)
AUDIT_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {extra[audit_type]: <9} | {message}"

# Contact details of candidates and recruiters never reach the log files
REDACTED_KEYS = frozenset(
    {"password", "token", "secret", "email", "mail", "phone", "address"}
)


def _is_audit(record: dict) -> bool:
    return "audit_type" in record["extra"]


def setup_logging() -> None:
    """
    Configure the console, application and audit sinks.

    Under ``APP_ENVIRONMENT=testing`` only the console sink is installed.
    """
    settings = get_settings()
    log_settings = settings.logging

    logger.remove()
    logger.configure(extra={"name": "opportunity_engine"})

    # Stack-trace variables can hold candidate data
    diagnose = settings.debug and settings.environment == "development"

    if log_settings.console_output:
        logger.add(
            sys.stderr,
            format=CONSOLE_FORMAT,
            level=log_settings.level,
            colorize=True,
            backtrace=True,
            diagnose=diagnose,
        )

    if settings.is_testing:
        return

    log_settings.file_path.parent.mkdir(parents=True, exist_ok=True)
    logger.add(
        log_settings.file_path,
        format=log_settings.format,
        level=log_settings.level,
        filter=lambda record: not _is_audit(record),
        rotation=log_settings.rotation,
        retention=log_settings.retention,
        compression="zip",
        diagnose=diagnose,
        enqueue=True,
    )

    log_settings.audit_file_path.parent.mkdir(parents=True, exist_ok=True)
    logger.add(
        log_settings.audit_file_path,
        format=AUDIT_FORMAT,
        level="INFO",
        filter=_is_audit,
        rotation="1 week",
        retention=log_settings.audit_retention,
        compression="zip",
        enqueue=True,
    )

    logger.bind(name=__name__).info(
        f"Logging initialized - level {log_settings.level}, "
        f"audit trail in {log_settings.audit_file_path}"
    )


def get_logger(name: str) -> Any:
    """Logger bound to a module or class name."""
    return logger.bind(name=name)


def _loggable(value: Any) -> Any:
    """Redact contact fields and turn ids/dates into plain strings."""
    if isinstance(value, dict):
        return {
            k: "***" if any(s in k.lower() for s in REDACTED_KEYS) else _loggable(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple, set)):
        return [_loggable(v) for v in value]
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat(timespec="seconds")
    return value


def audit_log(action: str, details: dict[str, Any], audit_type: str = "STATUS") -> None:
    """
    Write one event to the audit log.

    Args:
        action: What happened, e.g. "association_status_changed"
        details: Ids and values describing the event
        audit_type: STATUS, RECONCILE, REMINDER or EVENT
    """
    fields = " ".join(f"{k}={v}" for k, v in _loggable(details).items())
    logger.bind(name="audit", audit_type=audit_type).info(f"{action} {fields}")


class LoggerMixin:
    """Adds a ``logger`` property bound to the class name."""

    @property
    def logger(self) -> Any:
        if not hasattr(self, "_logger"):
            self._logger = get_logger(self.__class__.__name__)
        return self._logger
