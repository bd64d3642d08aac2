"""
Utility modules for the opportunity engine.

This package contains shared utilities used across the application:
- config: Configuration management
- logger: Logging infrastructure
- constants: Application-wide constants and enums
- exceptions: Errors surfaced to callers
"""

from opportunity_engine.utils.config import (
    AppSettings,
    get_settings,
    reload_settings,
    ROOT_DIR,
)
from opportunity_engine.utils.constants import (
    APP_NAME,
    APP_DISPLAY_NAME,
    VERSION,
    OfferStatus,
    OfferAdminTab,
    OfferCandidateTab,
    ViewerRole,
    ReminderKind,
    ReminderState,
)
from opportunity_engine.utils.exceptions import (
    EngineError,
    Forbidden,
    NotFound,
    OpportunityLocked,
    TransactionFailed,
)
from opportunity_engine.utils.logger import (
    setup_logging,
    get_logger,
    audit_log,
    LoggerMixin,
)

__all__ = [
    # Config
    "AppSettings",
    "get_settings",
    "reload_settings",
    "ROOT_DIR",
    # Constants
    "APP_NAME",
    "APP_DISPLAY_NAME",
    "VERSION",
    "OfferStatus",
    "OfferAdminTab",
    "OfferCandidateTab",
    "ViewerRole",
    "ReminderKind",
    "ReminderState",
    # Exceptions
    "EngineError",
    "Forbidden",
    "NotFound",
    "OpportunityLocked",
    "TransactionFailed",
    # Logger
    "setup_logging",
    "get_logger",
    "audit_log",
    "LoggerMixin",
]
