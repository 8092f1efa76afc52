"""
In-Memory Storage Implementation

Used by the test suite and when the database cannot be reached at
startup. Nothing survives a restart.
"""

from typing import Optional
from uuid import UUID

from expense_insights.models.audit import AuditEvent
from expense_insights.models.record import ExpenseRecord
from expense_insights.models.user import UserProfile
from expense_insights.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    NotFoundError,
    RecordStorageInterface,
    UserStorageInterface,
)


class InMemoryRecordStorage(RecordStorageInterface):

    def __init__(self, records: Optional[list[ExpenseRecord]] = None):
        self._records: dict[UUID, ExpenseRecord] = {}
        for record in records or []:
            self._records[record.id] = record

    async def save_record(self, record: ExpenseRecord) -> bool:
        if record.id in self._records:
            raise DuplicateError(f"Record already exists: {record.id}")
        self._records[record.id] = record
        return True

    async def list_records(self, user_id: str) -> list[ExpenseRecord]:
        owned = [r for r in self._records.values() if r.user_id == user_id]
        return sorted(owned, key=lambda r: (r.created_at, str(r.id)))

    async def delete_record(self, user_id: str, record_id: UUID) -> bool:
        record = self._records.get(record_id)
        if record is None or record.user_id != user_id:
            raise NotFoundError(f"Record not found: {record_id}")
        del self._records[record_id]
        return True


class InMemoryUserStorage(UserStorageInterface):

    def __init__(self):
        self._users: dict[str, UserProfile] = {}

    async def find_by_external_id(self, external_id: str) -> Optional[UserProfile]:
        return self._users.get(external_id)

    async def create_user(self, profile: UserProfile) -> UserProfile:
        if profile.external_id in self._users:
            raise DuplicateError(f"User already exists: {profile.external_id}")
        self._users[profile.external_id] = profile
        return profile


class InMemoryAuditStorage(AuditStorageInterface):

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self.events))[:limit]
