"""
Data Models Package

This package contains all Pydantic models used in Financely.
All data flowing through the system must conform to these schemas.
"""

from financely.models.transaction import (
    CategoryTotal,
    DashboardSummary,
    MonthlyTotals,
    NewTransaction,
    SortColumn,
    Transaction,
    TransactionType,
    TypeFilter,
    UserIdentity,
)
from financely.models.feedback import (
    Notification,
    NotificationLevel,
    ValidationIssue,
    ValidationResult,
)
from financely.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transaction models
    "CategoryTotal",
    "DashboardSummary",
    "MonthlyTotals",
    "NewTransaction",
    "SortColumn",
    "Transaction",
    "TransactionType",
    "TypeFilter",
    "UserIdentity",
    # Feedback models
    "Notification",
    "NotificationLevel",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
