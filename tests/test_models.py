"""
Tests for Expense Insights

Test strategy:
1. Unit tests for individual components (models, aggregation)
2. Integration tests for flows (with in-memory storage)
3. Real SQL only against a temporary SQLite file
"""

import pytest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from expense_insights.config import AppSettings, DatabaseSettings
from expense_insights.models.record import (
    UNCATEGORIZED,
    DailyCategoryMatrix,
    ExpenseRecord,
    SummaryError,
    SummaryResult,
    coerce_amount,
    day_key,
)
from expense_insights.models.user import IdentityUser, UserProfile
from expense_insights.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestAmountCoercion:
    """Tests for turning stored amounts into Decimals."""

    def test_numeric_values_pass_through(self):
        """Test ints, floats and numeric strings."""
        assert coerce_amount(10) == Decimal("10")
        assert coerce_amount(2.5) == Decimal("2.5")
        assert coerce_amount(" 12.50 ") == Decimal("12.50")
        assert coerce_amount(Decimal("-3.10")) == Decimal("-3.10")

    def test_malformed_values_become_zero(self):
        """Test that nothing malformed raises."""
        for value in (None, "abc", "", [], {}, True, float("nan"), "Infinity"):
            assert coerce_amount(value) == Decimal("0")


class TestExpenseRecord:
    """Tests for the ExpenseRecord model."""

    def test_record_prefers_explicit_date(self):
        """Test that occurred_at is the explicit date when present."""
        record = ExpenseRecord(
            user_id="user_1",
            amount=10,
            date="2024-03-01",
            created_at=datetime(2024, 3, 5, 12, 0, tzinfo=timezone.utc),
        )
        assert record.occurred_at == datetime(2024, 3, 1, tzinfo=timezone.utc)
        assert record.day_key == "2024-03-01"

    def test_record_falls_back_to_created_at(self):
        """Test that a missing date does not crash and uses created_at."""
        created = datetime(2024, 3, 5, 12, 0, tzinfo=timezone.utc)
        record = ExpenseRecord(user_id="user_1", amount=10, created_at=created)
        assert record.date is None
        assert record.occurred_at == created
        assert record.day_key == "2024-03-05"

    def test_unreadable_date_falls_back_to_created_at(self):
        """Test that a garbage date is treated as absent."""
        created = datetime(2024, 3, 5, 12, 0, tzinfo=timezone.utc)
        record = ExpenseRecord(
            user_id="user_1",
            amount=10,
            date="not a date",
            created_at=created,
        )
        assert record.date is None
        assert record.occurred_at == created

    def test_date_object_means_midnight_utc(self):
        """Test that plain dates are accepted."""
        record = ExpenseRecord(user_id="user_1", date=date(2024, 2, 29))
        assert record.occurred_at == datetime(2024, 2, 29, tzinfo=timezone.utc)

    def test_naive_datetimes_are_utc(self):
        """Test that naive timestamps are read as UTC."""
        record = ExpenseRecord(user_id="user_1", date=datetime(2024, 1, 1, 23, 59))
        assert record.occurred_at.tzinfo == timezone.utc
        assert record.day_key == "2024-01-01"

    def test_offset_datetimes_are_converted_to_utc(self):
        """Test that 20:00 at UTC-5 lands on the next UTC day."""
        eastern = timezone(timedelta(hours=-5))
        record = ExpenseRecord(
            user_id="user_1",
            date=datetime(2024, 1, 1, 20, 0, tzinfo=eastern),
        )
        assert record.day_key == "2024-01-02"

    def test_malformed_amount_is_zero(self):
        """Test that a bad amount does not reject the record."""
        record = ExpenseRecord(user_id="user_1", amount="twelve")
        assert record.amount == Decimal("0")
        assert record.is_spend is False

    def test_missing_category_defaults(self):
        """Test blank and missing categories."""
        assert ExpenseRecord(user_id="user_1").category == UNCATEGORIZED
        assert ExpenseRecord(user_id="user_1", category="  ").category == UNCATEGORIZED
        assert ExpenseRecord(user_id="user_1", category=" Food ").category == "Food"

    def test_long_stored_labels_are_kept(self):
        """Test that the model does not reject long free-form labels."""
        record = ExpenseRecord(user_id="u1", text="t" * 300, category="C" * 80)
        assert record.category == "C" * 80
        assert len(record.text) == 300

    def test_only_positive_amounts_are_spend(self):
        """Test the strict > 0 rule."""
        assert ExpenseRecord(user_id="u", amount=Decimal("0.01")).is_spend is True
        assert ExpenseRecord(user_id="u", amount=0).is_spend is False
        assert ExpenseRecord(user_id="u", amount=-5).is_spend is False

    def test_day_key_format(self):
        """Test zero padding of month and day."""
        assert day_key(datetime(2024, 3, 7, 8, 0, tzinfo=timezone.utc)) == "2024-03-07"


class TestSummaryResult:
    """Tests for SummaryResult."""

    def test_success_response_shape(self):
        """Test the flat caller-facing shape."""
        result = SummaryResult(total_amount=Decimal("13.50"), days_with_records=2)
        assert result.ok is True
        assert result.to_response() == {"totalAmount": 13.5, "daysWithRecords": 2}

    def test_failure_response_shape(self):
        """Test that errors carry nothing else."""
        result = SummaryResult.failure(SummaryError.UNAUTHENTICATED)
        assert result.ok is False
        assert result.to_response() == {"error": "User not found"}
        assert SummaryResult.failure(SummaryError.PERSISTENCE).to_response() == {
            "error": "Database error"
        }

    def test_error_and_totals_are_exclusive(self):
        """Test that a result cannot be both."""
        with pytest.raises(ValueError, match="cannot carry totals"):
            SummaryResult(
                total_amount=Decimal("1"),
                days_with_records=1,
                error=SummaryError.PERSISTENCE,
            )

    def test_success_needs_both_numbers(self):
        """Test that partial totals are rejected."""
        with pytest.raises(ValueError, match="needs both"):
            SummaryResult(total_amount=Decimal("1"))


class TestDailyCategoryMatrix:
    """Tests for the matrix model."""

    def test_sparse_matrix_is_rejected(self):
        """Test that every cell must be present."""
        with pytest.raises(ValueError, match="not dense"):
            DailyCategoryMatrix(
                days=["2024-01-01"],
                categories=["Food", "Rent"],
                values={"2024-01-01": {"Food": Decimal("1")}},
            )

    def test_helpers(self):
        """Test rows, series and totals."""
        matrix = DailyCategoryMatrix(
            days=["2024-01-01", "2024-01-02"],
            categories=["Food", "Rent"],
            values={
                "2024-01-01": {"Food": Decimal("3"), "Rent": Decimal("0")},
                "2024-01-02": {"Food": Decimal("1"), "Rent": Decimal("500")},
            },
        )
        assert matrix.rows() == [[3, 0], [1, 500]]
        assert matrix.series() == {"Food": [3, 1], "Rent": [0, 500]}
        assert matrix.day_totals() == {"2024-01-01": 3, "2024-01-02": 501}
        assert matrix.total() == Decimal("504")
        assert matrix.value("2024-01-02", "Rent") == Decimal("500")

    def test_empty_matrix(self):
        """Test the empty default."""
        matrix = DailyCategoryMatrix()
        assert matrix.is_empty is True
        assert matrix.rows() == []
        assert matrix.total() == Decimal("0")


class TestUserModels:
    """Tests for identity and profile models."""

    def test_profile_from_identity(self):
        """Test name joining and first email."""
        identity = IdentityUser(
            id="user_1",
            first_name="Ada",
            last_name="Lovelace",
            image_url="https://img.example/ada.png",
            email_addresses=["ada@example.com", "other@example.com"],
        )
        profile = UserProfile.from_identity(identity)
        assert profile.external_id == "user_1"
        assert profile.name == "Ada Lovelace"
        assert profile.email == "ada@example.com"

    def test_profile_without_names_or_email(self):
        """Test that missing parts collapse cleanly."""
        profile = UserProfile.from_identity(IdentityUser(id="user_2", last_name="Hopper"))
        assert profile.name == "Hopper"
        assert profile.email is None


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.RECORD_SAVED,
            description="Record saved",
        )
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEventBuilder.record_saved(
            record_id=uuid4(),
            user_id="user_1",
            amount="12.50",
            category="Food",
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "record_saved"
        assert log_dict["user_id"] == "user_1"
        assert log_dict["details"]["category"] == "Food"

    def test_persistence_error_builder(self):
        """Test AuditEventBuilder.persistence_error."""
        event = AuditEventBuilder.persistence_error(
            user_id="user_1",
            operation="get_user_record",
            error_message="connection refused",
        )
        assert event.event_type == AuditEventType.PERSISTENCE_ERROR
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "connection refused"


class TestSettings:
    """Tests for configuration validation."""

    def test_database_url_needs_async_driver(self):
        """Test that sync URLs are rejected."""
        with pytest.raises(ValueError, match="async driver"):
            DatabaseSettings(url="sqlite:///expenses.db")
        assert DatabaseSettings(url="sqlite+aiosqlite:///x.db").url.startswith("sqlite+")

    def test_log_level_is_normalized(self):
        """Test log level validation."""
        assert AppSettings(log_level="debug").log_level == "DEBUG"
        with pytest.raises(ValueError):
            AppSettings(log_level="loud")

    def test_debug_mode_forces_debug_logging(self):
        """Test DEBUG_MODE overrides LOG_LEVEL."""
        assert AppSettings(log_level="warning").effective_log_level == "WARNING"
        assert AppSettings(log_level="warning", debug_mode=True).effective_log_level == "DEBUG"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
