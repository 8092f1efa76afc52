"""Services package."""

from expense_insights.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    InMemoryAuditStorage,
    InMemoryRecordStorage,
    InMemoryUserStorage,
    NotFoundError,
    RecordStorageInterface,
    SqlAuditStorage,
    SqlDatabase,
    SqlRecordStorage,
    SqlUserStorage,
    StorageError,
    UserStorageInterface,
)

__all__ = [
    "AuditStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "InMemoryAuditStorage",
    "InMemoryRecordStorage",
    "InMemoryUserStorage",
    "NotFoundError",
    "RecordStorageInterface",
    "SqlAuditStorage",
    "SqlDatabase",
    "SqlRecordStorage",
    "SqlUserStorage",
    "StorageError",
    "UserStorageInterface",
]
