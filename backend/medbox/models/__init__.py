"""Database models."""

from medbox.models.user import User
from medbox.models.box import MedicationBox, BoxAssignment
from medbox.models.audit_log import AuditLog

__all__ = [
    "User",
    "MedicationBox",
    "BoxAssignment",
    "AuditLog",
]
