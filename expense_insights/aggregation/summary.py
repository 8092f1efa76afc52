"""
Summary Aggregator

DESIGN DECISION: The summary is computed in Python over a snapshot of
the user's records, not with SQL aggregates. The "days with spend"
count needs the resolved timestamp (date, else created_at) bucketed on
UTC calendar days, and doing that in one place keeps it identical
across database backends.

The caller identity is an explicit argument. Nothing here reads
ambient request state.
"""

from typing import Iterable, Optional
from uuid import UUID

from expense_insights.audit import AuditLogger, get_logger
from expense_insights.models.record import (
    ZERO,
    ExpenseRecord,
    SummaryError,
    SummaryResult,
)
from expense_insights.services.storage import RecordStorageInterface


logger = get_logger(__name__)


def count_days_with_spend(records: Iterable[ExpenseRecord]) -> int:
    """Number of distinct UTC days holding at least one amount > 0."""
    return len({record.day_key for record in records if record.is_spend})


def summarize_records(records: list[ExpenseRecord]) -> SummaryResult:
    """Total and days-with-spend over an already fetched snapshot."""
    total = sum((record.amount for record in records), ZERO)
    return SummaryResult(
        total_amount=total,
        days_with_records=count_days_with_spend(records),
    )


class SummaryAggregator:
    """
    Produces the two headline numbers of the dashboard.

    GUARANTEES:
    - Returns totals or an error, never both
    - Storage exceptions never reach the caller
    - Failures are logged and audited
    """

    def __init__(
        self,
        storage: RecordStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger

    async def get_user_record(
        self,
        user_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> SummaryResult:
        """
        Summarize all records of `user_id`.

        `None` (or an empty id) means nobody is signed in.
        """
        if not user_id:
            if self._audit_logger:
                await self._audit_logger.log_unauthenticated(
                    operation="get_user_record",
                    correlation_id=correlation_id,
                )
            return SummaryResult.failure(SummaryError.UNAUTHENTICATED)

        try:
            records = await self._storage.list_records(user_id)
        except Exception as e:
            logger.error(
                "summary_fetch_failed",
                user_id=user_id,
                error=str(e),
                exc_info=True,
            )
            if self._audit_logger:
                await self._audit_logger.log_persistence_error(
                    user_id=user_id,
                    operation="get_user_record",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            return SummaryResult.failure(SummaryError.PERSISTENCE)

        return await self.summarize(user_id, records, correlation_id)

    async def summarize(
        self,
        user_id: str,
        records: list[ExpenseRecord],
        correlation_id: Optional[UUID] = None,
    ) -> SummaryResult:
        """Summarize records the caller already fetched for `user_id`."""
        result = summarize_records(records)

        if self._audit_logger:
            await self._audit_logger.log_summary_computed(
                user_id=user_id,
                record_count=len(records),
                days_with_records=result.days_with_records,
                correlation_id=correlation_id,
            )

        return result
