"""
Enum definitions for the application.

These enums are used across models and provide type-safe status/recurrence values.
"""

from enum import Enum


class TaskStatus(str, Enum):
    """Task status."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class RecurrenceFrequency(str, Enum):
    """How often a series repeats."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class Weekday(str, Enum):
    """
    Weekday selector codes for weekly recurrences.

    Declared Monday first so that ``index`` matches ``date.weekday()``.
    """

    MO = "MO"
    TU = "TU"
    WE = "WE"
    TH = "TH"
    FR = "FR"
    SA = "SA"
    SU = "SU"

    @property
    def index(self) -> int:
        """0=Monday ... 6=Sunday."""
        return list(Weekday).index(self)


class RecurrenceEndType(str, Enum):
    """Termination rule of a recurrence."""

    NEVER = "never"
    UNTIL = "until"
    COUNT = "count"


class UpdateScope(str, Enum):
    """Blast radius of an update."""

    THIS = "this"
    FOLLOWING = "following"


class DeleteScope(str, Enum):
    """Blast radius of a delete."""

    THIS = "this"
    FOLLOWING = "following"
