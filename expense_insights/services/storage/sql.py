"""
SQL Storage Implementation

DESIGN DECISION: Records, users and audit events live in a relational
database accessed through the SQLAlchemy asyncio ORM. SQLite (via
aiosqlite) is the default so the app runs with no setup; any async
driver URL works.

TRADEOFFS:
- Amounts are stored as floats in the records table. They are
  turned back into Decimal on the way out.
- SQLite hands datetimes back naive. Everything we write is UTC and the
  models read naive values as UTC.

Every SQLAlchemy error is wrapped in a StorageError subclass so callers
never depend on the driver. Only unique-constraint violations become
DuplicateError. SQLite connections turn foreign keys on so a record for
an unknown user fails the same way it does on other backends.

A stored row that no longer converts to an ExpenseRecord is skipped and
logged; the rest of the user's records still load.
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

import structlog
from sqlalchemy import (
    JSON,
    DateTime,
    Float,
    ForeignKey,
    String,
    delete,
    event,
    select,
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncAttrs,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.pool import Pool
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from expense_insights.config import get_settings
from expense_insights.models.audit import AuditEvent, AuditEventType, AuditSeverity
from expense_insights.models.record import (
    MAX_CATEGORY_LENGTH,
    MAX_TEXT_LENGTH,
    ExpenseRecord,
)
from expense_insights.models.user import UserProfile
from expense_insights.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    NotFoundError,
    RecordStorageInterface,
    StorageError,
    UserStorageInterface,
)


logger = structlog.get_logger(__name__)

# SQLSTATE class 23 code for unique_violation
UNIQUE_VIOLATION = "23505"


def is_unique_violation(error: IntegrityError) -> bool:
    """True when the driver reports a unique or primary key conflict."""
    orig = error.orig
    if getattr(orig, "sqlstate", None) == UNIQUE_VIOLATION:
        return True
    if getattr(orig, "pgcode", None) == UNIQUE_VIOLATION:
        return True
    return "unique constraint" in str(orig).lower()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Base(AsyncAttrs, DeclarativeBase):
    pass


class UserRow(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    external_id: Mapped[str] = mapped_column(String(200), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(200), default="")
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class RecordRow(Base):
    __tablename__ = "records"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(200), ForeignKey("users.external_id"), index=True
    )
    text: Mapped[Optional[str]] = mapped_column(String(MAX_TEXT_LENGTH), nullable=True)
    amount: Mapped[float] = mapped_column(Float)
    category: Mapped[str] = mapped_column(String(MAX_CATEGORY_LENGTH))
    date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)


class AuditRow(Base):
    __tablename__ = "audit_events"

    event_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    event_type: Mapped[str] = mapped_column(String(50))
    severity: Mapped[str] = mapped_column(String(20))
    user_id: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    entity_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    entity_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    correlation_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    description: Mapped[str] = mapped_column(String(500))
    details: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    error_message: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)


class SqlDatabase:
    """
    Engine and session factory wrapper.

    Handles schema creation with retry logic for the initial connection.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        echo: Optional[bool] = None,
        connect_attempts: Optional[int] = None,
        poolclass: Optional[type[Pool]] = None,
    ):
        if url is None:
            settings = get_settings().database
            url = settings.url
            echo = settings.echo if echo is None else echo
            connect_attempts = connect_attempts or settings.connect_attempts

        self._url = url
        self._echo = bool(echo)
        self._connect_attempts = connect_attempts or 3
        engine_options: dict[str, Any] = {"echo": self._echo}
        if poolclass is not None:
            engine_options["poolclass"] = poolclass
        self.engine: AsyncEngine = create_async_engine(self._url, **engine_options)
        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        self.sessions = async_sessionmaker(
            self.engine, expire_on_commit=False, class_=AsyncSession
        )

    async def init_schema(self) -> None:
        """Create missing tables, retrying while the database comes up."""
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._connect_attempts),
                wait=wait_exponential(multiplier=1, min=1, max=10),
                retry=retry_if_exception_type(SQLAlchemyError),
                reraise=True,
            ):
                with attempt:
                    async with self.engine.begin() as conn:
                        await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            raise ConnectionError(f"Failed to initialize database {self._url}: {e}")

    async def dispose(self) -> None:
        await self.engine.dispose()


class SqlRecordStorage(RecordStorageInterface):
    """SQL implementation of record storage."""

    def __init__(self, database: SqlDatabase):
        self._db = database

    def _record_to_row(self, record: ExpenseRecord) -> RecordRow:
        return RecordRow(
            id=str(record.id),
            user_id=record.user_id,
            text=record.text,
            amount=float(record.amount),
            category=record.category,
            date=record.date,
            created_at=record.created_at,
        )

    def _row_to_record(self, row: RecordRow) -> ExpenseRecord:
        return ExpenseRecord(
            id=UUID(row.id),
            user_id=row.user_id,
            text=row.text,
            amount=row.amount,
            category=row.category,
            date=row.date,
            created_at=row.created_at,
        )

    async def save_record(self, record: ExpenseRecord) -> bool:
        try:
            async with self._db.sessions() as session:
                session.add(self._record_to_row(record))
                await session.commit()
            return True
        except IntegrityError as e:
            if is_unique_violation(e):
                raise DuplicateError(f"Record already exists: {record.id}") from e
            raise StorageError(f"Failed to save record: {e}") from e
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to save record: {e}") from e

    async def list_records(self, user_id: str) -> list[ExpenseRecord]:
        try:
            async with self._db.sessions() as session:
                result = await session.execute(
                    select(RecordRow)
                    .where(RecordRow.user_id == user_id)
                    .order_by(RecordRow.created_at.asc(), RecordRow.id.asc())
                )
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list records: {e}") from e

        records = []
        for row in rows:
            try:
                records.append(self._row_to_record(row))
            except ValueError as e:
                logger.warning(
                    "record_row_skipped",
                    record_id=row.id,
                    user_id=user_id,
                    error=str(e),
                )
        return records

    async def delete_record(self, user_id: str, record_id: UUID) -> bool:
        try:
            async with self._db.sessions() as session:
                result = await session.execute(
                    delete(RecordRow).where(
                        RecordRow.id == str(record_id),
                        RecordRow.user_id == user_id,
                    )
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to delete record: {e}") from e
        if result.rowcount == 0:
            raise NotFoundError(f"Record not found: {record_id}")
        return True


class SqlUserStorage(UserStorageInterface):
    """SQL implementation of user profile storage."""

    def __init__(self, database: SqlDatabase):
        self._db = database

    def _row_to_profile(self, row: UserRow) -> UserProfile:
        return UserProfile(
            id=UUID(row.id),
            external_id=row.external_id,
            name=row.name,
            image_url=row.image_url,
            email=row.email,
            created_at=row.created_at,
        )

    async def find_by_external_id(self, external_id: str) -> Optional[UserProfile]:
        try:
            async with self._db.sessions() as session:
                result = await session.execute(
                    select(UserRow).where(UserRow.external_id == external_id)
                )
                row = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to look up user: {e}") from e
        return self._row_to_profile(row) if row else None

    async def create_user(self, profile: UserProfile) -> UserProfile:
        try:
            async with self._db.sessions() as session:
                session.add(
                    UserRow(
                        id=str(profile.id),
                        external_id=profile.external_id,
                        name=profile.name,
                        image_url=profile.image_url,
                        email=profile.email,
                        created_at=profile.created_at,
                    )
                )
                await session.commit()
        except IntegrityError as e:
            if is_unique_violation(e):
                raise DuplicateError(f"User already exists: {profile.external_id}") from e
            raise StorageError(f"Failed to create user: {e}") from e
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to create user: {e}") from e
        return profile


class SqlAuditStorage(AuditStorageInterface):
    """SQL implementation of the append-only audit log."""

    def __init__(self, database: SqlDatabase):
        self._db = database

    async def append_event(self, event: AuditEvent) -> bool:
        try:
            async with self._db.sessions() as session:
                session.add(
                    AuditRow(
                        event_id=str(event.event_id),
                        timestamp=event.timestamp,
                        event_type=event.event_type.value,
                        severity=event.severity.value,
                        user_id=event.user_id,
                        entity_type=event.entity_type,
                        entity_id=str(event.entity_id) if event.entity_id else None,
                        correlation_id=(
                            str(event.correlation_id) if event.correlation_id else None
                        ),
                        description=event.description,
                        details=event.details,
                        error_message=event.error_message,
                    )
                )
                await session.commit()
            return True
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to append audit event: {e}") from e

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        try:
            async with self._db.sessions() as session:
                result = await session.execute(
                    select(AuditRow).order_by(AuditRow.timestamp.desc()).limit(limit)
                )
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read audit events: {e}") from e

        return [
            AuditEvent(
                event_id=UUID(row.event_id),
                timestamp=row.timestamp,
                event_type=AuditEventType(row.event_type),
                severity=AuditSeverity(row.severity),
                user_id=row.user_id,
                entity_type=row.entity_type,
                entity_id=UUID(row.entity_id) if row.entity_id else None,
                correlation_id=UUID(row.correlation_id) if row.correlation_id else None,
                description=row.description,
                details=row.details or {},
                error_message=row.error_message,
            )
            for row in rows
        ]
