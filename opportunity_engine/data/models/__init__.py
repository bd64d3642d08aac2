"""
Pydantic data models and schemas for the opportunity engine.

This module provides all data models used throughout the application,
including database documents, embedded models, and transient schemas.
"""

# Base models
from .base import BaseDocument, EmbeddedModel, PyObjectId, to_object_id

# Opportunity models
from .opportunity import (
    BusinessLine,
    Opportunity,
    OpportunityCreate,
    OpportunityUpdate,
)

# Association models
from .association import (
    AssociationUpdate,
    OpportunityAssociation,
    ReconcileResult,
)

# Event models
from .event import AssociationEvent, AssociationEventCreate, AssociationEventUpdate

# Audit models
from .status_change import StatusChangeRecord, StatusCount

# Candidate models
from .candidate import Candidate

# Reminder models
from .reminder import ReminderOutcome, ScheduledReminder

# Filter models
from .filters import FilterRequest, Predicate

__all__ = [
    # Base
    "BaseDocument",
    "EmbeddedModel",
    "PyObjectId",
    "to_object_id",
    # Opportunity
    "BusinessLine",
    "Opportunity",
    "OpportunityCreate",
    "OpportunityUpdate",
    # Association
    "AssociationUpdate",
    "OpportunityAssociation",
    "ReconcileResult",
    # Event
    "AssociationEvent",
    "AssociationEventCreate",
    "AssociationEventUpdate",
    # Audit
    "StatusChangeRecord",
    "StatusCount",
    # Candidate
    "Candidate",
    # Reminder
    "ReminderOutcome",
    "ScheduledReminder",
    # Filters
    "FilterRequest",
    "Predicate",
]
