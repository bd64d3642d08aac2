"""
Database repositories for the opportunity engine.

This module provides repository classes for all database collections,
implementing the repository pattern for clean data access.
"""

# Base repository
from .base import BaseRepository

# Entity repositories
from .association_repository import AssociationRepository, get_association_repository
from .candidate_repository import CandidateRepository, get_candidate_repository
from .event_repository import AssociationEventRepository, get_event_repository
from .opportunity_repository import OpportunityRepository, get_opportunity_repository
from .reminder_repository import ScheduledReminderRepository, get_reminder_repository
from .status_change_repository import (
    StatusChangeRepository,
    get_status_change_repository,
)

__all__ = [
    # Base
    "BaseRepository",
    # Association
    "AssociationRepository",
    "get_association_repository",
    # Candidate
    "CandidateRepository",
    "get_candidate_repository",
    # Event
    "AssociationEventRepository",
    "get_event_repository",
    # Opportunity
    "OpportunityRepository",
    "get_opportunity_repository",
    # Reminder
    "ScheduledReminderRepository",
    "get_reminder_repository",
    # Status change
    "StatusChangeRepository",
    "get_status_change_repository",
]
