"""
Task repository interface.

Defines the contract for task persistence operations. The store knows nothing
about recurrence semantics: it offers row-level operations keyed by user, id,
series and series-from-date. Every operation runs inside an explicit
transaction obtained from ``ITaskRepository.transaction()``.
Implementations: SQLite
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from datetime import date
from typing import Any, Optional
from uuid import UUID

from cadence.models.task import Task, TaskInsert

# Columns that update operations may write
UPDATABLE_FIELDS = frozenset(
    {
        "title",
        "description",
        "status",
        "due_date",
        "start_date",
        "start_time",
        "duration_minutes",
        "series_master_id",
        "recurrence",
        "is_exception",
    }
)


class ITaskTransaction(ABC):
    """Row-level task operations bound to one open transaction."""

    @abstractmethod
    async def insert_rows(self, user_id: str, rows: list[TaskInsert]) -> list[Task]:
        """
        Insert fully resolved rows.

        Args:
            user_id: Owner user ID
            rows: Rows with pre-assigned IDs

        Returns:
            Inserted tasks, in input order
        """
        pass

    @abstractmethod
    async def update_by_id(
        self, user_id: str, task_id: UUID, fields: dict[str, Any]
    ) -> Optional[Task]:
        """
        Update one row.

        Returns:
            Updated task, or None if not found
        """
        pass

    @abstractmethod
    async def update_by_series_id(
        self, user_id: str, series_master_id: UUID, fields: dict[str, Any]
    ) -> list[Task]:
        """Update every row of a series."""
        pass

    @abstractmethod
    async def update_by_series_from_date(
        self,
        user_id: str,
        series_master_id: UUID,
        from_date: date,
        fields: dict[str, Any],
    ) -> list[Task]:
        """Update every row of a series whose start_date >= from_date."""
        pass

    @abstractmethod
    async def delete_by_id(self, user_id: str, task_id: UUID) -> None:
        """Delete one row (no-op if absent)."""
        pass

    @abstractmethod
    async def delete_by_series_from_date(
        self, user_id: str, series_master_id: UUID, from_date: date
    ) -> None:
        """Delete every row of a series whose start_date >= from_date."""
        pass

    @abstractmethod
    async def delete_non_exceptions_by_series_from_date(
        self, user_id: str, series_master_id: UUID, from_date: date
    ) -> None:
        """Delete non-exception rows of a series whose start_date >= from_date."""
        pass

    @abstractmethod
    async def select_by_id(self, user_id: str, task_id: UUID) -> Optional[Task]:
        """Get a task by ID."""
        pass

    @abstractmethod
    async def select_by_series_id(self, user_id: str, series_master_id: UUID) -> list[Task]:
        """Get every row of a series, ordered by start_date."""
        pass

    @abstractmethod
    async def select_by_user(self, user_id: str) -> list[Task]:
        """Get every row owned by the user, ordered by start_date then created_at."""
        pass


class ITaskRepository(ABC):
    """Abstract interface for task persistence."""

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[ITaskTransaction]:
        """
        Open a transaction.

        Usage::

            async with repo.transaction() as tx:
                task = await tx.select_by_id(user_id, task_id)
                ...

        Commits when the block exits normally, rolls back on any exception.

        Raises:
            StorageError: If the transaction cannot be opened or committed
        """
        pass
