"""
Application-wide constants for the opportunity engine.

This module contains all constant values used throughout the application:
workflow statuses, view tabs, reminder kinds and searchable fields.
"""

from enum import Enum, IntEnum
from typing import Final


# =============================================================================
# Application Constants
# =============================================================================

APP_NAME: Final[str] = "opportunity-engine"
APP_DISPLAY_NAME: Final[str] = "Opportunity Engine"
VERSION: Final[str] = "0.1.0"


# =============================================================================
# Workflow Status
# =============================================================================


class OfferStatus(IntEnum):
    """Status of a candidate on an opportunity, ordered by workflow progress."""

    TO_PROCESS = -1
    CONTACTED = 0
    INTERVIEW = 1
    HIRED = 2
    REFUSAL_BEFORE_INTERVIEW = 3
    REFUSAL_AFTER_INTERVIEW = 4

    @property
    def is_refusal(self) -> bool:
        """Check if this status closes the workflow with a refusal."""
        return self in (
            OfferStatus.REFUSAL_BEFORE_INTERVIEW,
            OfferStatus.REFUSAL_AFTER_INTERVIEW,
        )


# Labels shown to recruiters and candidates. The to-process bucket reads
# differently on public offers, and again when the offer was recommended.
OFFER_STATUS_LABELS: Final[dict[OfferStatus, dict[str, str]]] = {
    OfferStatus.TO_PROCESS: {
        "label": "To process",
        "public": "Viewed offer",
        "recommended": "Recommended offer",
        "color": "muted",
    },
    OfferStatus.CONTACTED: {"label": "Contacted", "color": "muted"},
    OfferStatus.INTERVIEW: {"label": "Interview phase", "color": "warning"},
    OfferStatus.HIRED: {"label": "Hired", "color": "success"},
    OfferStatus.REFUSAL_BEFORE_INTERVIEW: {
        "label": "Refusal before interview",
        "color": "danger",
    },
    OfferStatus.REFUSAL_AFTER_INTERVIEW: {
        "label": "Refusal after interview",
        "color": "danger",
    },
}

UNKNOWN_STATUS_LABEL: Final[dict[str, str]] = {"label": "Undefined", "color": "muted"}


class EventType(str, Enum):
    """Milestones recorded on an association (calls, interviews, trials...)."""

    CONTACT = "contact"
    FOLLOWUP = "followup"
    INTERVIEW = "interview"
    TRIAL = "trial"
    PMSMP = "pmsmp"
    HIRING = "hiring"
    END = "end"


# =============================================================================
# View Tabs
# =============================================================================


class OfferAdminTab(str, Enum):
    """Tabs of the recruiter/admin opportunity list."""

    PENDING = "pending"
    VALIDATED = "validated"
    EXTERNAL = "external"
    ARCHIVED = "archived"


class OfferCandidateTab(str, Enum):
    """Tabs of the candidate opportunity list."""

    PRIVATE = "private"
    PUBLIC = "public"
    ARCHIVED = "archived"


class ViewerRole(str, Enum):
    """Who is looking at the opportunity list."""

    ADMIN = "admin"
    CANDIDATE = "candidate"


# =============================================================================
# Reminders
# =============================================================================


class ReminderKind(str, Enum):
    """Kinds of delayed follow-up checks."""

    ARCHIVE = "archive_reminder"
    NO_RESPONSE = "no_response_reminder"
    CANDIDATE = "candidate_reminder"


class ReminderState(str, Enum):
    """Lifecycle of a scheduled reminder document."""

    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


SECONDS_PER_DAY: Final[int] = 24 * 3600


# =============================================================================
# Search
# =============================================================================

# Opportunity fields matched by free-text search
SEARCH_FIELDS: Final[tuple[str, ...]] = (
    "title",
    "company",
    "description",
    "company_description",
    "address",
    "department",
    "contract",
    "recruiter_name",
    "recruiter_mail",
)

# Opportunity fields that stay editable once the opportunity is validated
UNLOCKED_FIELDS: Final[frozenset[str]] = frozenset(
    {"business_lines", "is_archived", "is_validated"}
)

MAX_PAGE_SIZE: Final[int] = 1000
