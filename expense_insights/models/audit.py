"""
Audit Models for Expense Insights

Every significant action in the system is logged for audit purposes.
This provides:
1. Traceability of sign-ins and record changes
2. Debugging information when a summary fails
3. Ability to reconstruct history

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from expense_insights.models.record import utcnow


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Identity
    USER_SIGNED_IN = "user_signed_in"
    USER_CREATED = "user_created"
    UNAUTHENTICATED_ACCESS = "unauthenticated_access"

    # Records
    RECORD_SAVED = "record_saved"
    RECORD_DELETED = "record_deleted"

    # Aggregation
    SUMMARY_COMPUTED = "summary_computed"
    CHART_BUILT = "chart_built"

    # Failures
    PERSISTENCE_ERROR = "persistence_error"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Who and what
    user_id: Optional[str] = Field(
        default=None,
        description="Provider user id of the caller, if known"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'record', 'user', 'summary')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one dashboard load)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.user_created(profile_id, user_id)
        event = AuditEventBuilder.persistence_error(user_id, "list_records", str(e))
    """

    @staticmethod
    def user_signed_in(
        profile_id: UUID,
        user_id: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_SIGNED_IN,
            user_id=user_id,
            entity_type="user",
            entity_id=profile_id,
            correlation_id=correlation_id,
            description="Existing user signed in",
        )

    @staticmethod
    def user_created(
        profile_id: UUID,
        user_id: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_CREATED,
            user_id=user_id,
            entity_type="user",
            entity_id=profile_id,
            correlation_id=correlation_id,
            description="New user profile created",
        )

    @staticmethod
    def unauthenticated_access(
        operation: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.UNAUTHENTICATED_ACCESS,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Unauthenticated call to {operation}",
            details={"operation": operation},
        )

    @staticmethod
    def record_saved(
        record_id: UUID,
        user_id: str,
        amount: str,
        category: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_SAVED,
            user_id=user_id,
            entity_type="record",
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"Record saved: {category} {amount}",
            details={
                "amount": amount,
                "category": category,
            },
        )

    @staticmethod
    def record_deleted(
        record_id: UUID,
        user_id: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_DELETED,
            user_id=user_id,
            entity_type="record",
            entity_id=record_id,
            correlation_id=correlation_id,
            description="Record deleted",
        )

    @staticmethod
    def summary_computed(
        user_id: str,
        record_count: int,
        days_with_records: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUMMARY_COMPUTED,
            severity=AuditSeverity.DEBUG,
            user_id=user_id,
            entity_type="summary",
            correlation_id=correlation_id,
            description=f"Summary over {record_count} records",
            details={
                "record_count": record_count,
                "days_with_records": days_with_records,
            },
        )

    @staticmethod
    def chart_built(
        user_id: str,
        day_count: int,
        category_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHART_BUILT,
            severity=AuditSeverity.DEBUG,
            user_id=user_id,
            entity_type="chart",
            correlation_id=correlation_id,
            description=f"Chart built: {day_count} days x {category_count} categories",
            details={
                "day_count": day_count,
                "category_count": category_count,
            },
        )

    @staticmethod
    def persistence_error(
        user_id: Optional[str],
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSISTENCE_ERROR,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Storage failed during {operation}",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
