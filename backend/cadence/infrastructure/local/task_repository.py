"""
SQLite implementation of Task repository.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import date
from enum import Enum
from typing import Any, AsyncIterator, Optional
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import and_, delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cadence.core.exceptions import StorageError
from cadence.core.logger import setup_logger
from cadence.infrastructure.local.database import TaskORM, get_session_factory
from cadence.interfaces.task_repository import (
    UPDATABLE_FIELDS,
    ITaskRepository,
    ITaskTransaction,
)
from cadence.models.enums import TaskStatus
from cadence.models.recurrence import TaskRecurrence
from cadence.models.task import Task, TaskInsert
from cadence.utils.datetime_utils import as_utc, now_utc

logger = setup_logger(__name__)


def _to_column_value(field: str, value: Any) -> Any:
    """Convert a model value into its column representation."""
    if value is None:
        return None
    if field == "series_master_id":
        return str(value)
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, Enum):
        return value.value
    return value


def _to_columns(fields: dict[str, Any]) -> dict[str, Any]:
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update task fields: {sorted(unknown)}")
    return {field: _to_column_value(field, value) for field, value in fields.items()}


class SqliteTaskTransaction(ITaskTransaction):
    """Task operations bound to one AsyncSession transaction."""

    def __init__(self, session: AsyncSession):
        self._session = session

    def _orm_to_model(self, orm: TaskORM) -> Task:
        """Convert ORM object to Pydantic model."""
        return Task(
            id=UUID(orm.id),
            user_id=orm.user_id,
            title=orm.title,
            description=orm.description,
            status=TaskStatus(orm.status),
            due_date=orm.due_date,
            start_date=orm.start_date,
            start_time=orm.start_time,
            duration_minutes=orm.duration_minutes,
            series_master_id=UUID(orm.series_master_id) if orm.series_master_id else None,
            recurrence=TaskRecurrence.model_validate(orm.recurrence) if orm.recurrence else None,
            is_exception=bool(orm.is_exception),
            created_at=as_utc(orm.created_at),
            updated_at=as_utc(orm.updated_at),
        )

    def _series_conditions(
        self, user_id: str, series_master_id: UUID, from_date: Optional[date] = None
    ) -> list:
        conditions = [
            TaskORM.user_id == user_id,
            TaskORM.series_master_id == str(series_master_id),
        ]
        if from_date is not None:
            conditions.append(TaskORM.start_date >= from_date)
        return conditions

    async def _apply(self, orms: list[TaskORM], fields: dict[str, Any]) -> list[Task]:
        columns = _to_columns(fields)
        timestamp = now_utc()
        for orm in orms:
            for column, value in columns.items():
                setattr(orm, column, value)
            orm.updated_at = timestamp
        await self._session.flush()
        return [self._orm_to_model(orm) for orm in orms]

    async def _select(self, *conditions) -> list[TaskORM]:
        result = await self._session.execute(
            select(TaskORM)
            .where(and_(*conditions))
            .order_by(TaskORM.start_date.asc(), TaskORM.created_at.asc())
        )
        return list(result.scalars().all())

    async def insert_rows(self, user_id: str, rows: list[TaskInsert]) -> list[Task]:
        """Insert fully resolved rows."""
        timestamp = now_utc()
        orms = []
        for row in rows:
            orm = TaskORM(
                id=str(row.id),
                user_id=user_id,
                title=row.title,
                description=row.description,
                status=row.status.value,
                due_date=row.due_date,
                start_date=row.start_date,
                start_time=row.start_time,
                duration_minutes=row.duration_minutes,
                series_master_id=str(row.series_master_id) if row.series_master_id else None,
                recurrence=row.recurrence.model_dump(mode="json") if row.recurrence else None,
                is_exception=row.is_exception,
                created_at=timestamp,
                updated_at=timestamp,
            )
            orms.append(orm)
        self._session.add_all(orms)
        await self._session.flush()
        return [self._orm_to_model(orm) for orm in orms]

    async def update_by_id(
        self, user_id: str, task_id: UUID, fields: dict[str, Any]
    ) -> Optional[Task]:
        """Update one row."""
        orms = await self._select(TaskORM.id == str(task_id), TaskORM.user_id == user_id)
        if not orms:
            return None
        updated = await self._apply(orms, fields)
        return updated[0]

    async def update_by_series_id(
        self, user_id: str, series_master_id: UUID, fields: dict[str, Any]
    ) -> list[Task]:
        """Update every row of a series."""
        orms = await self._select(*self._series_conditions(user_id, series_master_id))
        return await self._apply(orms, fields)

    async def update_by_series_from_date(
        self,
        user_id: str,
        series_master_id: UUID,
        from_date: date,
        fields: dict[str, Any],
    ) -> list[Task]:
        """Update every row of a series whose start_date >= from_date."""
        orms = await self._select(
            *self._series_conditions(user_id, series_master_id, from_date)
        )
        return await self._apply(orms, fields)

    async def delete_by_id(self, user_id: str, task_id: UUID) -> None:
        """Delete one row."""
        await self._session.execute(
            delete(TaskORM).where(
                and_(TaskORM.id == str(task_id), TaskORM.user_id == user_id)
            )
        )

    async def delete_by_series_from_date(
        self, user_id: str, series_master_id: UUID, from_date: date
    ) -> None:
        """Delete every row of a series whose start_date >= from_date."""
        await self._session.execute(
            delete(TaskORM).where(
                and_(*self._series_conditions(user_id, series_master_id, from_date))
            )
        )

    async def delete_non_exceptions_by_series_from_date(
        self, user_id: str, series_master_id: UUID, from_date: date
    ) -> None:
        """Delete non-exception rows of a series whose start_date >= from_date."""
        conditions = self._series_conditions(user_id, series_master_id, from_date)
        conditions.append(TaskORM.is_exception.is_(False))
        await self._session.execute(delete(TaskORM).where(and_(*conditions)))

    async def select_by_id(self, user_id: str, task_id: UUID) -> Optional[Task]:
        """Get a task by ID."""
        result = await self._session.execute(
            select(TaskORM).where(
                and_(TaskORM.id == str(task_id), TaskORM.user_id == user_id)
            )
        )
        orm = result.scalar_one_or_none()
        return self._orm_to_model(orm) if orm else None

    async def select_by_series_id(self, user_id: str, series_master_id: UUID) -> list[Task]:
        """Get every row of a series, ordered by start_date."""
        orms = await self._select(*self._series_conditions(user_id, series_master_id))
        return [self._orm_to_model(orm) for orm in orms]

    async def select_by_user(self, user_id: str) -> list[Task]:
        """Get every row owned by the user."""
        orms = await self._select(TaskORM.user_id == user_id)
        return [self._orm_to_model(orm) for orm in orms]


class SqliteTaskRepository(ITaskRepository):
    """SQLite implementation of task repository."""

    def __init__(self, session_factory=None):
        """
        Initialize repository.

        Args:
            session_factory: Optional session factory (for testing)
        """
        self._session_factory = session_factory or get_session_factory()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[ITaskTransaction]:
        """Open a session and run the block inside one transaction."""
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield SqliteTaskTransaction(session)
        except SQLAlchemyError as exc:
            logger.error(f"Task store transaction rolled back: {exc}")
            raise StorageError(
                "Task store transaction failed",
                details={"cause": str(exc)},
            ) from exc
