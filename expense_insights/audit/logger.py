"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Complete traceability
2. Debugging capability when a summary comes back as "Database error"
3. User can see history of their interactions

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
import sys
from typing import Optional
from uuid import UUID, uuid4

import structlog

from expense_insights.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from expense_insights.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route stdlib logging (and so structlog) to stderr at the given level."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
    )


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit table (for persistence), when storage is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = get_logger("expense_insights.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_user_signed_in(
        self,
        profile_id: UUID,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.user_signed_in(
            profile_id=profile_id,
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    async def log_user_created(
        self,
        profile_id: UUID,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.user_created(
            profile_id=profile_id,
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    async def log_unauthenticated(
        self,
        operation: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a call that arrived without a signed-in user."""
        await self.log(AuditEventBuilder.unauthenticated_access(
            operation=operation,
            correlation_id=correlation_id,
        ))

    async def log_record_saved(
        self,
        record_id: UUID,
        user_id: str,
        amount: str,
        category: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.record_saved(
            record_id=record_id,
            user_id=user_id,
            amount=amount,
            category=category,
            correlation_id=correlation_id,
        ))

    async def log_record_deleted(
        self,
        record_id: UUID,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.record_deleted(
            record_id=record_id,
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    async def log_summary_computed(
        self,
        user_id: str,
        record_count: int,
        days_with_records: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.summary_computed(
            user_id=user_id,
            record_count=record_count,
            days_with_records=days_with_records,
            correlation_id=correlation_id,
        ))

    async def log_chart_built(
        self,
        user_id: str,
        day_count: int,
        category_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.chart_built(
            user_id=user_id,
            day_count=day_count,
            category_count=category_count,
            correlation_id=correlation_id,
        ))

    async def log_persistence_error(
        self,
        user_id: Optional[str],
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a storage failure."""
        await self.log(AuditEventBuilder.persistence_error(
            user_id=user_id,
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a dashboard load).
    Pass it through all subsequent operations.
    """
    return uuid4()
