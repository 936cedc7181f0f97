"""Pydantic models (schemas) for the application."""

from cadence.models.enums import (
    DeleteScope,
    RecurrenceEndType,
    RecurrenceFrequency,
    TaskStatus,
    UpdateScope,
    Weekday,
)
from cadence.models.recurrence import (
    RecurrenceEndCount,
    RecurrenceEndNever,
    RecurrenceEndUntil,
    TaskRecurrence,
)
from cadence.models.task import Task, TaskCreate, TaskInsert, TaskUpdate

__all__ = [
    # Enums
    "TaskStatus",
    "RecurrenceFrequency",
    "RecurrenceEndType",
    "Weekday",
    "UpdateScope",
    "DeleteScope",
    # Recurrence
    "TaskRecurrence",
    "RecurrenceEndNever",
    "RecurrenceEndUntil",
    "RecurrenceEndCount",
    # Task
    "Task",
    "TaskCreate",
    "TaskInsert",
    "TaskUpdate",
]
