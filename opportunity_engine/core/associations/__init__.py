"""Association reconciliation, status auditing and events."""

from .audit import (
    AssociationCreated,
    AssociationUpdated,
    AuditEvent,
    StatusAuditLog,
)
from .events import AssociationEvents
from .reconciler import AssociationReconciler, dedupe

__all__ = [
    "AssociationCreated",
    "AssociationUpdated",
    "AuditEvent",
    "StatusAuditLog",
    "AssociationEvents",
    "AssociationReconciler",
    "dedupe",
]
