"""
Main Orchestrator for Expense Insights

This module ties together all the components and defines the
end-to-end flows for:
1. Dashboard (identity → profile → summary + chart + recent records)
2. Records (add / list / delete for the signed-in user)

DESIGN DECISION: The orchestrator enforces the boundaries:
- The caller identity is passed in explicitly, never read from globals
- Nothing is read or written for a caller who is not signed in
- Every step is audited

This is the "glue" that ensures the system works correctly
even when individual components fail.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field
from sqlalchemy.pool import NullPool

from expense_insights.aggregation import SummaryAggregator, bucketize_records
from expense_insights.audit import (
    AuditLogger,
    configure_logging,
    create_correlation_id,
    get_logger,
)
from expense_insights.config import get_settings
from expense_insights.identity import UserDirectory
from expense_insights.models.record import (
    MAX_CATEGORY_LENGTH,
    MAX_TEXT_LENGTH,
    DailyCategoryMatrix,
    ExpenseRecord,
    SummaryError,
    SummaryResult,
)
from expense_insights.models.user import CheckUserResult, IdentityUser
from expense_insights.services.storage import (
    InMemoryAuditStorage,
    InMemoryRecordStorage,
    InMemoryUserStorage,
    RecordStorageInterface,
    SqlAuditStorage,
    SqlDatabase,
    SqlRecordStorage,
    SqlUserStorage,
    StorageError,
    UserStorageInterface,
)


logger = get_logger(__name__)


class UnauthenticatedError(Exception):
    """A record operation was attempted without a signed-in user."""
    pass


class DashboardView(BaseModel):
    """Everything the dashboard page shows for one caller."""

    user: Optional[CheckUserResult] = None
    summary: SummaryResult
    chart: DailyCategoryMatrix = Field(default_factory=DailyCategoryMatrix)
    recent_records: list[ExpenseRecord] = Field(default_factory=list)


class DashboardFlow:
    """
    Orchestrates a dashboard load.

    Flow:
    1. Profile → find or create the local user
    2. Fetch → one snapshot of the user's records
    3. Summary → total spend and days with spend
    4. Chart → day x category matrix
    5. Recent → newest records for the table

    The summary, the chart and the table are all computed from the same
    snapshot. A failed fetch gives "Database error" with an empty chart.
    """

    def __init__(
        self,
        record_storage: RecordStorageInterface,
        user_directory: UserDirectory,
        audit_logger: Optional[AuditLogger] = None,
        recent_limit: int = 20,
    ):
        self._record_storage = record_storage
        self._users = user_directory
        self._aggregator = SummaryAggregator(record_storage, audit_logger)
        self._audit_logger = audit_logger
        self._recent_limit = recent_limit

    async def load(
        self,
        identity: Optional[IdentityUser],
        correlation_id: Optional[UUID] = None,
    ) -> DashboardView:
        correlation_id = correlation_id or create_correlation_id()
        user_id = identity.id if identity else None

        user = None
        try:
            user = await self._users.check_user(identity, correlation_id)
        except StorageError as e:
            logger.error("check_user_failed", user_id=user_id, error=str(e))
            if self._audit_logger:
                await self._audit_logger.log_persistence_error(
                    user_id=user_id,
                    operation="check_user",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )

        if not user_id:
            summary = await self._aggregator.get_user_record(None, correlation_id)
            return DashboardView(user=user, summary=summary)

        records = await self._fetch_records(user_id, "load_dashboard", correlation_id)
        if records is None:
            return DashboardView(
                user=user,
                summary=SummaryResult.failure(SummaryError.PERSISTENCE),
            )

        summary = await self._aggregator.summarize(user_id, records, correlation_id)
        chart = await self._build_chart(user_id, records, correlation_id)

        return DashboardView(
            user=user,
            summary=summary,
            chart=chart,
            recent_records=list(reversed(records))[:self._recent_limit],
        )

    async def load_chart(
        self,
        user_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> DailyCategoryMatrix:
        """The chart matrix alone; empty for anonymous callers or on failure."""
        if not user_id:
            return DailyCategoryMatrix()

        records = await self._fetch_records(user_id, "load_chart", correlation_id)
        if records is None:
            return DailyCategoryMatrix()
        return await self._build_chart(user_id, records, correlation_id)

    async def _fetch_records(
        self,
        user_id: str,
        operation: str,
        correlation_id: Optional[UUID],
    ) -> Optional[list[ExpenseRecord]]:
        """
        Fetch the user's records, or None if that failed.

        Storage errors are audited as persistence errors; anything else
        a backend raises is audited as a system error.
        """
        try:
            return await self._record_storage.list_records(user_id)
        except Exception as e:
            logger.error(
                "records_fetch_failed",
                user_id=user_id,
                operation=operation,
                error=str(e),
                exc_info=True,
            )
            if self._audit_logger is None:
                return None
            if isinstance(e, StorageError):
                await self._audit_logger.log_persistence_error(
                    user_id=user_id,
                    operation=operation,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            else:
                await self._audit_logger.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    details={"operation": operation, "user_id": user_id},
                    correlation_id=correlation_id,
                )
            return None

    async def _build_chart(
        self,
        user_id: str,
        records: list[ExpenseRecord],
        correlation_id: Optional[UUID],
    ) -> DailyCategoryMatrix:
        chart = bucketize_records(records)
        if self._audit_logger:
            await self._audit_logger.log_chart_built(
                user_id=user_id,
                day_count=len(chart.days),
                category_count=len(chart.categories),
                correlation_id=correlation_id,
            )
        return chart


class RecordFlow:
    """Adds, lists and deletes the signed-in user's records."""

    def __init__(
        self,
        record_storage: RecordStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        user_directory: Optional[UserDirectory] = None,
    ):
        self._record_storage = record_storage
        self._audit_logger = audit_logger
        self._users = user_directory

    async def _require_user(self, user_id: Optional[str], operation: str) -> str:
        if not user_id:
            if self._audit_logger:
                await self._audit_logger.log_unauthenticated(operation=operation)
            raise UnauthenticatedError("User not found")
        return user_id

    async def _ensure_profile(
        self,
        user_id: str,
        identity: Optional[IdentityUser],
        correlation_id: Optional[UUID],
    ) -> None:
        """Records reference a user profile, so make sure one exists first."""
        if self._users is None:
            return
        if identity is None or identity.id != user_id:
            identity = IdentityUser(id=user_id)
        await self._users.check_user(identity, correlation_id)

    async def add_record(
        self,
        user_id: Optional[str],
        text: str,
        amount: Decimal,
        category: str,
        date: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
        identity: Optional[IdentityUser] = None,
    ) -> ExpenseRecord:
        """
        Save a new record for the caller.

        `identity` fills in the profile when this is the caller's first
        write; without it a bare profile keyed on `user_id` is created.

        Raises:
            UnauthenticatedError: If nobody is signed in
            ValueError: If the description is blank or a field is too long
            StorageError: If the save fails
        """
        user_id = await self._require_user(user_id, "add_record")
        if not text or not text.strip():
            raise ValueError("Please describe the expense")
        if len(text.strip()) > MAX_TEXT_LENGTH:
            raise ValueError(
                f"Description must be at most {MAX_TEXT_LENGTH} characters"
            )
        if category and len(category.strip()) > MAX_CATEGORY_LENGTH:
            raise ValueError(
                f"Category must be at most {MAX_CATEGORY_LENGTH} characters"
            )

        record = ExpenseRecord(
            user_id=user_id,
            text=text,
            amount=amount,
            category=category,
            date=date,
        )

        try:
            await self._ensure_profile(user_id, identity, correlation_id)
            await self._record_storage.save_record(record)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_persistence_error(
                    user_id=user_id,
                    operation="add_record",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_record_saved(
                record_id=record.id,
                user_id=user_id,
                amount=str(record.amount),
                category=record.category,
                correlation_id=correlation_id,
            )
        return record

    async def list_records(self, user_id: Optional[str]) -> list[ExpenseRecord]:
        user_id = await self._require_user(user_id, "list_records")
        return await self._record_storage.list_records(user_id)

    async def delete_record(
        self,
        user_id: Optional[str],
        record_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Delete one of the caller's records.

        Raises:
            UnauthenticatedError: If nobody is signed in
            NotFoundError: If the caller has no such record
        """
        user_id = await self._require_user(user_id, "delete_record")
        await self._record_storage.delete_record(user_id, record_id)
        if self._audit_logger:
            await self._audit_logger.log_record_deleted(
                record_id=record_id,
                user_id=user_id,
                correlation_id=correlation_id,
            )
        return True


def create_app_components(
    use_storage: bool = True,
    database_url: Optional[str] = None,
) -> tuple[DashboardFlow, RecordFlow, Optional[SqlDatabase]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to use the SQL database.
                    Set to False for in-memory storage (tests, demos).
        database_url: Overrides DATABASE_URL.

    Returns:
        (dashboard_flow, record_flow, database)

    The caller still has to run `database.init_schema()` once.
    """
    settings = get_settings()
    configure_logging(settings.app.effective_log_level)

    database = None
    record_storage: RecordStorageInterface
    user_storage: UserStorageInterface

    if use_storage:
        try:
            # Streamlit runs each call on a fresh event loop, so
            # connections must not be pooled across calls.
            database = SqlDatabase(url=database_url, poolclass=NullPool)
            record_storage = SqlRecordStorage(database)
            user_storage = SqlUserStorage(database)
            audit_logger = AuditLogger(SqlAuditStorage(database))
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_unavailable", error=str(e))
            database = None

    if database is None:
        record_storage = InMemoryRecordStorage()
        user_storage = InMemoryUserStorage()
        audit_logger = AuditLogger(InMemoryAuditStorage())

    user_directory = UserDirectory(user_storage, audit_logger)
    dashboard_flow = DashboardFlow(
        record_storage=record_storage,
        user_directory=user_directory,
        audit_logger=audit_logger,
        recent_limit=settings.app.recent_records_limit,
    )
    record_flow = RecordFlow(
        record_storage=record_storage,
        audit_logger=audit_logger,
        user_directory=user_directory,
    )

    logger.info(
        "components_created",
        environment=settings.app.app_environment,
        storage="sql" if database is not None else "memory",
    )
    return dashboard_flow, record_flow, database
