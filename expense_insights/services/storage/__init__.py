"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Currently implements a SQL backend (SQLAlchemy asyncio) and an in-memory
backend for tests, but designed to be swappable.
"""

from expense_insights.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    NotFoundError,
    RecordStorageInterface,
    StorageError,
    UserStorageInterface,
)
from expense_insights.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryRecordStorage,
    InMemoryUserStorage,
)
from expense_insights.services.storage.sql import (
    SqlAuditStorage,
    SqlDatabase,
    SqlRecordStorage,
    SqlUserStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "RecordStorageInterface",
    "UserStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryRecordStorage",
    "InMemoryUserStorage",
    # SQL implementation
    "SqlAuditStorage",
    "SqlDatabase",
    "SqlRecordStorage",
    "SqlUserStorage",
]
