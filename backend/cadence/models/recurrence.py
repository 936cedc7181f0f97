"""
Recurrence pattern models.

A pattern lives only on the series master row and is expanded into dated
occurrences by the occurrence generator.
"""

from __future__ import annotations

from datetime import date
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, model_validator

from cadence.models.enums import RecurrenceFrequency, Weekday


class RecurrenceEndNever(BaseModel):
    """Repeat until the materialization horizon."""

    type: Literal["never"] = "never"


class RecurrenceEndUntil(BaseModel):
    """Repeat up to and including ``until``."""

    type: Literal["until"] = "until"
    until: date


class RecurrenceEndCount(BaseModel):
    """Repeat exactly ``count`` times, the first occurrence included."""

    type: Literal["count"] = "count"
    # Range checks happen in the generator so that a bad count surfaces as
    # InvalidPatternError rather than a request schema error.
    count: int


RecurrenceEnd = Annotated[
    Union[RecurrenceEndNever, RecurrenceEndUntil, RecurrenceEndCount],
    Field(discriminator="type"),
]


class TaskRecurrence(BaseModel):
    """Recurrence pattern stored on a series master."""

    frequency: RecurrenceFrequency = Field(..., description="daily/weekly/monthly/yearly")
    interval: int = Field(1, ge=1, description="Repeat every N frequency units")
    by_day: list[Weekday] = Field(
        default_factory=list,
        description="Weekday selectors, weekly only",
    )
    end: RecurrenceEnd = Field(default_factory=RecurrenceEndNever)

    @model_validator(mode="after")
    def normalize_by_day(self):
        """Weekday selectors only mean something for weekly patterns."""
        if self.frequency != RecurrenceFrequency.WEEKLY:
            self.by_day = []
        elif self.by_day:
            # Set semantics, Monday-first order
            self.by_day = sorted(set(self.by_day), key=lambda day: day.index)
        return self
