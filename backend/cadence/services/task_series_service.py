"""
Task series service.

Creates tasks and recurring series, and applies scoped updates and deletes to
them. A series is implicit: the rows sharing one ``series_master_id``. The
master row (``id == series_master_id``) is the only one carrying the
recurrence pattern; every occurrence is a full, independent row.

Every entry point runs inside a single store transaction. An update request is
classified once into one of the mutation cases below and dispatched once.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, ClassVar, Optional, Union
from uuid import UUID, uuid4

from cadence.core.exceptions import NotFoundError, StorageError, ValidationError
from cadence.core.logger import setup_logger
from cadence.interfaces.task_repository import ITaskRepository, ITaskTransaction
from cadence.models.enums import DeleteScope, RecurrenceEndType, UpdateScope
from cadence.models.recurrence import TaskRecurrence
from cadence.models.task import Task, TaskCreate, TaskInsert, TaskUpdate
from cadence.services.occurrence_generator import OccurrenceGenerator
from cadence.utils.datetime_utils import day_offset, shift_date

logger = setup_logger(__name__)

# Copying one date onto every later occurrence would collapse the series, so
# bulk updates apply these to the target row only.
DATE_FIELDS = ("start_date", "due_date")


# ===========================================
# Mutation cases
# ===========================================


@dataclass(frozen=True)
class StandaloneUpdate:
    """Update of a task that is not part of a series; it is marked as an exception."""

    task: Task
    fields: dict[str, Any]

    retryable: ClassVar[bool] = True


@dataclass(frozen=True)
class ConvertToSeries:
    """A standalone task receives a recurrence and becomes the series master."""

    task: Task
    fields: dict[str, Any]
    recurrence: TaskRecurrence
    start_date: date

    retryable: ClassVar[bool] = False


@dataclass(frozen=True)
class OccurrenceUpdate:
    """Edit of a single occurrence; it becomes an exception."""

    task: Task
    fields: dict[str, Any]

    retryable: ClassVar[bool] = True


@dataclass(frozen=True)
class SeriesUpdate:
    """Following-scope edit of the series master with the pattern unchanged."""

    task: Task
    fields: dict[str, Any]

    retryable: ClassVar[bool] = False


@dataclass(frozen=True)
class FollowingUpdate:
    """Field update of the target and every later occurrence, pattern unchanged."""

    task: Task
    fields: dict[str, Any]

    retryable: ClassVar[bool] = False


@dataclass(frozen=True)
class FollowingRegeneration:
    """
    Pattern change from ``from_date`` on.

    Non-exception rows at or after ``from_date`` are dropped and, unless the
    pattern was removed, regenerated under a new series id. ``task`` is the
    template of the new rows.
    """

    task: Task
    fields: dict[str, Any]
    recurrence: Optional[TaskRecurrence]
    from_date: date

    retryable: ClassVar[bool] = False


SeriesMutation = Union[
    StandaloneUpdate,
    ConvertToSeries,
    OccurrenceUpdate,
    SeriesUpdate,
    FollowingUpdate,
    FollowingRegeneration,
]


class TaskSeriesService:
    """Service for creating, updating and deleting tasks and recurring series."""

    def __init__(
        self,
        task_repo: ITaskRepository,
        generator: Optional[OccurrenceGenerator] = None,
    ):
        self.task_repo = task_repo
        self.generator = generator or OccurrenceGenerator()
        self._handlers = {
            StandaloneUpdate: self._apply_standalone,
            ConvertToSeries: self._apply_conversion,
            OccurrenceUpdate: self._apply_occurrence,
            SeriesUpdate: self._apply_series,
            FollowingUpdate: self._apply_following,
            FollowingRegeneration: self._apply_regeneration,
        }

    # ===========================================
    # Reads
    # ===========================================

    async def list_tasks(self, user_id: str) -> list[Task]:
        """List every task of the user, ordered by start date."""
        async with self.task_repo.transaction() as tx:
            return await tx.select_by_user(user_id)

    async def get_task(self, user_id: str, task_id: UUID) -> Task:
        """Get a task by ID."""
        async with self.task_repo.transaction() as tx:
            return await self._get_owned(tx, user_id, task_id)

    async def list_series(self, user_id: str, task_id: UUID) -> list[Task]:
        """List all rows of the series the task belongs to."""
        async with self.task_repo.transaction() as tx:
            task = await self._get_owned(tx, user_id, task_id)
            if task.is_standalone:
                return [task]
            return await tx.select_by_series_id(user_id, task.series_master_id)

    # ===========================================
    # Create
    # ===========================================

    async def create_task(self, user_id: str, data: TaskCreate) -> list[Task]:
        """
        Create a task, or a whole series when a recurrence is given.

        Returns:
            Created rows in date order; the first one is the series master

        Raises:
            ValidationError: If a recurrence is given without a start date
            InvalidPatternError: If the recurrence cannot be expanded
        """
        if data.recurrence is None:
            rows = [TaskInsert(id=uuid4(), **data.model_dump(exclude={"recurrence"}))]
            series_id = None
        else:
            if data.start_date is None:
                raise ValidationError(
                    "start_date is required for a recurring task",
                    details={"field": "start_date"},
                )
            dates = self._generate(data.recurrence, data.start_date)
            series_id = uuid4()
            template = data.model_dump(exclude={"recurrence"})
            rows = self._build_series_rows(template, dates, series_id, data.recurrence)

        try:
            async with self.task_repo.transaction() as tx:
                created = await tx.insert_rows(user_id, rows)
        except StorageError as exc:
            exc.annotate("create_task", series_id=series_id, retryable=True)
            raise

        logger.info(
            f"create_task user={user_id} rows={len(created)} series={series_id}"
        )
        return created

    # ===========================================
    # Update
    # ===========================================

    async def update_task(
        self,
        user_id: str,
        task_id: UUID,
        update: TaskUpdate,
        scope: UpdateScope = UpdateScope.THIS,
    ) -> list[Task]:
        """
        Apply a scoped update.

        Returns:
            Rows written by the update (updated or newly generated)

        Raises:
            NotFoundError: If the task does not exist for the user
            ValidationError: If a required date cannot be resolved
        """
        mutation: Optional[SeriesMutation] = None
        try:
            async with self.task_repo.transaction() as tx:
                task = await self._get_owned(tx, user_id, task_id)
                mutation = await self._classify(tx, user_id, task, update, scope)
                logger.info(
                    f"update_task user={user_id} task={task_id} scope={scope.value} "
                    f"case={type(mutation).__name__} series={task.series_master_id}"
                )
                handler = self._handlers[type(mutation)]
                return await handler(tx, user_id, mutation)
        except StorageError as exc:
            if mutation is None:
                exc.annotate("update_task", retryable=True)
            else:
                exc.annotate(
                    f"update_task:{type(mutation).__name__}",
                    series_id=mutation.task.series_master_id,
                    retryable=mutation.retryable,
                )
            raise

    async def _classify(
        self,
        tx: ITaskTransaction,
        user_id: str,
        task: Task,
        update: TaskUpdate,
        scope: UpdateScope,
    ) -> SeriesMutation:
        fields = update.model_dump(exclude_unset=True)
        recurrence_given = "recurrence" in fields
        fields.pop("recurrence", None)
        new_recurrence = update.recurrence if recurrence_given else None

        if task.is_standalone:
            if new_recurrence is None:
                return StandaloneUpdate(task, fields)
            start_date = fields.get("start_date") or task.start_date
            if start_date is None:
                raise ValidationError(
                    "start_date is required to make a task recurring",
                    details={"field": "start_date", "task_id": str(task.id)},
                )
            return ConvertToSeries(task, fields, new_recurrence, start_date)

        if scope == UpdateScope.THIS:
            # The pattern belongs to the series; a single occurrence cannot change it.
            return OccurrenceUpdate(task, fields)

        if task.start_date is None:
            # Cannot take part in date-relative operations
            return OccurrenceUpdate(task, fields)

        pattern_changed = False
        if recurrence_given:
            current = await self._current_pattern(tx, user_id, task)
            pattern_changed = new_recurrence != current

        if pattern_changed:
            new_start = fields.get("start_date")
            if new_start is not None and new_start < task.start_date:
                raise ValidationError(
                    "start_date cannot move before the occurrence being regenerated",
                    details={
                        "start_date": new_start.isoformat(),
                        "from_date": task.start_date.isoformat(),
                    },
                )
            return FollowingRegeneration(task, fields, new_recurrence, task.start_date)
        if task.is_series_master:
            return SeriesUpdate(task, fields)
        return FollowingUpdate(task, fields)

    async def _current_pattern(
        self, tx: ITaskTransaction, user_id: str, task: Task
    ) -> Optional[TaskRecurrence]:
        """Pattern stored on the series master (None if the master is gone)."""
        if task.is_series_master:
            return task.recurrence
        master = await tx.select_by_id(user_id, task.series_master_id)
        return master.recurrence if master else None

    async def _apply_standalone(
        self, tx: ITaskTransaction, user_id: str, mutation: StandaloneUpdate
    ) -> list[Task]:
        updated = await tx.update_by_id(
            user_id, mutation.task.id, {**mutation.fields, "is_exception": True}
        )
        return [updated] if updated else []

    async def _apply_conversion(
        self, tx: ITaskTransaction, user_id: str, mutation: ConvertToSeries
    ) -> list[Task]:
        task = mutation.task
        dates = self._generate(mutation.recurrence, mutation.start_date)

        master = await tx.update_by_id(
            user_id,
            task.id,
            {
                **mutation.fields,
                "start_date": mutation.start_date,
                "series_master_id": task.id,
                "recurrence": mutation.recurrence,
                "is_exception": False,
            },
        )
        # The first date is the converted row itself
        template = self._template(master)
        rows = [
            self._build_row(template, occurrence_date, uuid4(), task.id)
            for occurrence_date in dates[1:]
        ]
        inserted = await tx.insert_rows(user_id, rows) if rows else []
        return [master, *inserted]

    async def _apply_occurrence(
        self, tx: ITaskTransaction, user_id: str, mutation: OccurrenceUpdate
    ) -> list[Task]:
        updated = await tx.update_by_id(
            user_id, mutation.task.id, {**mutation.fields, "is_exception": True}
        )
        return [updated] if updated else []

    async def _apply_series(
        self, tx: ITaskTransaction, user_id: str, mutation: SeriesUpdate
    ) -> list[Task]:
        task = mutation.task
        bulk_fields, date_fields = self._split_date_fields(mutation.fields)
        updated = []
        if bulk_fields:
            updated = await tx.update_by_series_id(
                user_id, task.series_master_id, bulk_fields
            )
        return await self._apply_target_dates(tx, user_id, task, date_fields, updated)

    async def _apply_following(
        self, tx: ITaskTransaction, user_id: str, mutation: FollowingUpdate
    ) -> list[Task]:
        task = mutation.task
        bulk_fields, date_fields = self._split_date_fields(mutation.fields)
        updated = []
        if bulk_fields:
            updated = await tx.update_by_series_from_date(
                user_id, task.series_master_id, task.start_date, bulk_fields
            )
        return await self._apply_target_dates(tx, user_id, task, date_fields, updated)

    async def _apply_regeneration(
        self, tx: ITaskTransaction, user_id: str, mutation: FollowingRegeneration
    ) -> list[Task]:
        old_series_id = mutation.task.series_master_id
        template = self._template(mutation.task, mutation.fields)
        anchor = mutation.fields.get("start_date") or mutation.from_date

        # Expand before writing so an invalid pattern leaves the series alone
        dates = []
        if mutation.recurrence is not None:
            dates = self._generate(mutation.recurrence, anchor)

        await tx.delete_non_exceptions_by_series_from_date(
            user_id, old_series_id, mutation.from_date
        )
        if mutation.recurrence is None:
            logger.info(
                f"Truncated series {old_series_id} from {mutation.from_date.isoformat()}"
            )
            return []

        new_series_id = uuid4()
        rows = self._build_series_rows(template, dates, new_series_id, mutation.recurrence)
        inserted = await tx.insert_rows(user_id, rows)
        logger.info(
            f"Regenerated series {old_series_id} from {mutation.from_date.isoformat()} "
            f"as {new_series_id} ({len(inserted)} occurrences)"
        )
        return inserted

    async def _apply_target_dates(
        self,
        tx: ITaskTransaction,
        user_id: str,
        task: Task,
        date_fields: dict[str, Any],
        updated: list[Task],
    ) -> list[Task]:
        """Write date changes to the target row and merge it into ``updated``."""
        if not date_fields and updated:
            return updated
        target = await tx.update_by_id(user_id, task.id, date_fields)
        if target is None:
            return updated
        merged = [row for row in updated if row.id != target.id]
        merged.append(target)
        merged.sort(key=lambda row: (row.start_date or date.min, row.created_at))
        return merged

    @staticmethod
    def _split_date_fields(fields: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
        bulk = {key: value for key, value in fields.items() if key not in DATE_FIELDS}
        dates = {key: value for key, value in fields.items() if key in DATE_FIELDS}
        return bulk, dates

    # ===========================================
    # Delete
    # ===========================================

    async def delete_task(
        self,
        user_id: str,
        task_id: UUID,
        scope: DeleteScope = DeleteScope.THIS,
    ) -> None:
        """
        Apply a scoped delete.

        ``following`` removes the target and every later occurrence of its
        series, exceptions included. Rows without a series or a start date
        fall back to ``this``.

        Raises:
            NotFoundError: If the task does not exist for the user
        """
        series_id: Optional[UUID] = None
        retryable = True
        try:
            async with self.task_repo.transaction() as tx:
                task = await self._get_owned(tx, user_id, task_id)
                series_id = task.series_master_id
                if (
                    scope == DeleteScope.FOLLOWING
                    and task.series_master_id is not None
                    and task.start_date is not None
                ):
                    retryable = False
                    await tx.delete_by_series_from_date(
                        user_id, task.series_master_id, task.start_date
                    )
                else:
                    await tx.delete_by_id(user_id, task.id)
        except StorageError as exc:
            exc.annotate(f"delete_task:{scope.value}", series_id=series_id, retryable=retryable)
            raise

        logger.info(
            f"delete_task user={user_id} task={task_id} scope={scope.value} series={series_id}"
        )

    # ===========================================
    # Helpers
    # ===========================================

    def _generate(self, pattern: TaskRecurrence, anchor: date) -> list[date]:
        dates = self.generator.generate(pattern, anchor)
        if pattern.end.type != RecurrenceEndType.COUNT and (
            len(dates) == self.generator.max_occurrences
        ):
            logger.debug(
                f"Recurrence from {anchor.isoformat()} stopped at the horizon "
                f"({self.generator.max_occurrences} occurrences)"
            )
        return dates

    async def _get_owned(self, tx: ITaskTransaction, user_id: str, task_id: UUID) -> Task:
        task = await tx.select_by_id(user_id, task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")
        return task

    @staticmethod
    def _template(task: Task, fields: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """Content fields copied onto generated occurrences."""
        template = task.model_dump(
            include={
                "title",
                "description",
                "status",
                "due_date",
                "start_date",
                "start_time",
                "duration_minutes",
            }
        )
        if fields:
            template.update(fields)
        return template

    def _build_series_rows(
        self,
        template: dict[str, Any],
        dates: list[date],
        series_id: UUID,
        recurrence: TaskRecurrence,
    ) -> list[TaskInsert]:
        """First date becomes the master (id == series id, carries the pattern)."""
        rows = []
        for index, occurrence_date in enumerate(dates):
            is_master = index == 0
            rows.append(
                self._build_row(
                    template,
                    occurrence_date,
                    series_id if is_master else uuid4(),
                    series_id,
                    recurrence if is_master else None,
                )
            )
        return rows

    @staticmethod
    def _build_row(
        template: dict[str, Any],
        occurrence_date: date,
        row_id: UUID,
        series_id: UUID,
        recurrence: Optional[TaskRecurrence] = None,
    ) -> TaskInsert:
        # Keep the template's start-to-due distance on every occurrence
        offset = day_offset(template.get("start_date"), template.get("due_date"))
        return TaskInsert(
            id=row_id,
            title=template["title"],
            description=template.get("description"),
            status=template.get("status"),
            due_date=shift_date(occurrence_date, offset),
            start_date=occurrence_date,
            start_time=template.get("start_time"),
            duration_minutes=template.get("duration_minutes"),
            series_master_id=series_id,
            recurrence=recurrence,
            is_exception=False,
        )
