"""
Database models for SalesDesk.

All models are exported here for convenient imports:
    from salesdesk.models import User, Conversion, Deduction, etc.
"""

from salesdesk.models.audit import AuditAction, AuditLog
from salesdesk.models.base import Base, BaseModel, TimestampMixin, utcnow
from salesdesk.models.conversion import TERMINAL_STATUSES, Conversion, ConversionStatus
from salesdesk.models.deduction import Deduction
from salesdesk.models.goal import Goal
from salesdesk.models.lead import DailyVisit, Lead, LeadStatus, VisitType
from salesdesk.models.user import User, UserRole

__all__ = [
    # Base
    "Base",
    "BaseModel",
    "TimestampMixin",
    "utcnow",
    # User
    "User",
    "UserRole",
    # Lead / visit
    "Lead",
    "LeadStatus",
    "DailyVisit",
    "VisitType",
    # Conversion
    "Conversion",
    "ConversionStatus",
    "TERMINAL_STATUSES",
    # Deduction
    "Deduction",
    # Goal
    "Goal",
    # Audit
    "AuditLog",
    "AuditAction",
]
