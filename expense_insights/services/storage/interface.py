"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap SQLite for PostgreSQL (or anything else) without touching flows
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

The interface is intentionally simple - we're not building a full ORM.
Just the operations we need for expense tracking.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from expense_insights.models.audit import AuditEvent
from expense_insights.models.record import ExpenseRecord
from expense_insights.models.user import UserProfile


class RecordStorageInterface(ABC):
    """
    Abstract interface for expense record storage.

    Records are always scoped to one user; no method ever returns
    another user's data.
    """

    @abstractmethod
    async def save_record(self, record: ExpenseRecord) -> bool:
        """
        Save a new record.

        Returns:
            True if saved successfully

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def list_records(self, user_id: str) -> list[ExpenseRecord]:
        """
        All records of a user, oldest first.

        Ordered by created_at ascending, ties broken by id so repeated
        calls return the same sequence.

        Raises:
            StorageError: If the fetch fails
        """
        pass

    @abstractmethod
    async def delete_record(self, user_id: str, record_id: UUID) -> bool:
        """
        Delete one of the user's records.

        Raises:
            NotFoundError: If the user has no such record
        """
        pass


class UserStorageInterface(ABC):
    """Abstract interface for local user profiles."""

    @abstractmethod
    async def find_by_external_id(self, external_id: str) -> Optional[UserProfile]:
        """
        Look up a profile by identity provider user id.

        Returns:
            The profile if found, None otherwise
        """
        pass

    @abstractmethod
    async def create_user(self, profile: UserProfile) -> UserProfile:
        """
        Insert a new profile.

        Raises:
            DuplicateError: If a profile with that external id exists
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
