"""
Data Models Package

This package contains all Pydantic models used in Expense Insights.
All data flowing through the system must conform to these schemas.
"""

from expense_insights.models.record import (
    UNCATEGORIZED,
    DailyCategoryMatrix,
    ExpenseRecord,
    SummaryError,
    SummaryResult,
    coerce_amount,
    day_key,
    to_utc,
    utcnow,
)
from expense_insights.models.user import (
    CheckUserResult,
    IdentityUser,
    UserProfile,
)
from expense_insights.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Record models
    "UNCATEGORIZED",
    "DailyCategoryMatrix",
    "ExpenseRecord",
    "SummaryError",
    "SummaryResult",
    "coerce_amount",
    "day_key",
    "to_utc",
    "utcnow",
    # User models
    "CheckUserResult",
    "IdentityUser",
    "UserProfile",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
