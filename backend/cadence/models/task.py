"""
Task model definitions.

Tasks are the only persisted entity. A recurring series is the set of task
rows sharing one ``series_master_id``; every occurrence is a full row.
"""

from datetime import date, datetime, time
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from cadence.models.enums import TaskStatus
from cadence.models.recurrence import TaskRecurrence


class TaskBase(BaseModel):
    """Base task fields shared across create/read."""

    title: str = Field(..., min_length=1, max_length=500, description="Task title")
    description: Optional[str] = Field(None, max_length=2000, description="Task details")
    status: TaskStatus = Field(TaskStatus.TODO, description="todo/in_progress/done")
    due_date: Optional[date] = Field(None, description="Due date (YYYY-MM-DD)")
    start_date: Optional[date] = Field(
        None, description="Scheduled date (YYYY-MM-DD), required for recurring tasks"
    )
    start_time: Optional[time] = Field(
        None, description="Local time-of-day, resolved by the client's timezone"
    )
    duration_minutes: Optional[int] = Field(None, ge=1, description="Duration in minutes")


class TaskCreate(TaskBase):
    """Schema for creating a new task, optionally as a recurring series."""

    recurrence: Optional[TaskRecurrence] = Field(
        None, description="Recurrence pattern (None = one-off task)"
    )


class TaskUpdate(BaseModel):
    """
    Schema for updating an existing task.

    Only explicitly provided fields are applied. Sending ``"recurrence": null``
    is different from omitting it: it removes the pattern from the series tail.
    """

    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = Field(None, max_length=2000)
    status: Optional[TaskStatus] = None
    due_date: Optional[date] = None
    start_date: Optional[date] = None
    start_time: Optional[time] = None
    duration_minutes: Optional[int] = Field(None, ge=1)
    recurrence: Optional[TaskRecurrence] = None

    @field_validator("title", "status")
    @classmethod
    def reject_null(cls, value):
        """title and status may be omitted but not cleared."""
        if value is None:
            raise ValueError("must not be null")
        return value


class TaskInsert(TaskBase):
    """Fully resolved row handed to the store for insertion."""

    id: UUID
    series_master_id: Optional[UUID] = None
    recurrence: Optional[TaskRecurrence] = None
    is_exception: bool = False


class Task(TaskBase):
    """Task stored in the database."""

    id: UUID
    user_id: str
    series_master_id: Optional[UUID] = None
    recurrence: Optional[TaskRecurrence] = None
    is_exception: bool = False
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

    @property
    def is_standalone(self) -> bool:
        return self.series_master_id is None

    @property
    def is_series_master(self) -> bool:
        return self.series_master_id is not None and self.series_master_id == self.id
