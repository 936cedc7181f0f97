"""
Unit tests for recurrence and task schemas.
"""

from datetime import date

import pytest
from pydantic import ValidationError

from cadence.models.enums import RecurrenceFrequency, Weekday
from cadence.models.recurrence import (
    RecurrenceEndCount,
    RecurrenceEndNever,
    RecurrenceEndUntil,
    TaskRecurrence,
)
from cadence.models.task import TaskCreate, TaskUpdate


def test_weekly_by_day_is_deduplicated_and_sorted():
    pattern = TaskRecurrence(
        frequency=RecurrenceFrequency.WEEKLY,
        by_day=[Weekday.FR, Weekday.MO, Weekday.FR, Weekday.WE],
    )

    assert pattern.by_day == [Weekday.MO, Weekday.WE, Weekday.FR]


def test_by_day_is_dropped_for_non_weekly():
    pattern = TaskRecurrence(frequency=RecurrenceFrequency.DAILY, by_day=[Weekday.MO])

    assert pattern.by_day == []


def test_patterns_compare_by_value():
    first = TaskRecurrence(
        frequency=RecurrenceFrequency.WEEKLY, by_day=[Weekday.WE, Weekday.MO]
    )
    second = TaskRecurrence(
        frequency=RecurrenceFrequency.WEEKLY, by_day=[Weekday.MO, Weekday.WE]
    )

    assert first == second


def test_end_defaults_to_never():
    pattern = TaskRecurrence(frequency=RecurrenceFrequency.MONTHLY)

    assert isinstance(pattern.end, RecurrenceEndNever)
    assert pattern.interval == 1


@pytest.mark.parametrize(
    ("payload", "expected_type"),
    [
        ({"type": "never"}, RecurrenceEndNever),
        ({"type": "until", "until": "2024-03-01"}, RecurrenceEndUntil),
        ({"type": "count", "count": 5}, RecurrenceEndCount),
    ],
)
def test_end_is_parsed_by_type(payload, expected_type):
    pattern = TaskRecurrence.model_validate({"frequency": "daily", "end": payload})

    assert isinstance(pattern.end, expected_type)


def test_until_end_parses_date():
    pattern = TaskRecurrence.model_validate(
        {"frequency": "daily", "end": {"type": "until", "until": "2024-03-01"}}
    )

    assert pattern.end.until == date(2024, 3, 1)


def test_unknown_end_type_is_rejected():
    with pytest.raises(ValidationError):
        TaskRecurrence.model_validate({"frequency": "daily", "end": {"type": "forever"}})


def test_interval_must_be_positive():
    with pytest.raises(ValidationError):
        TaskRecurrence(frequency=RecurrenceFrequency.DAILY, interval=0)


def test_stored_pattern_round_trips_through_json():
    pattern = TaskRecurrence(
        frequency=RecurrenceFrequency.WEEKLY,
        interval=2,
        by_day=[Weekday.TU],
        end=RecurrenceEndUntil(until=date(2024, 6, 30)),
    )

    assert TaskRecurrence.model_validate(pattern.model_dump(mode="json")) == pattern


def test_task_create_defaults():
    data = TaskCreate(title="Water plants")

    assert data.recurrence is None
    assert data.status.value == "todo"


def test_task_update_distinguishes_null_recurrence_from_missing():
    cleared = TaskUpdate.model_validate({"recurrence": None})
    untouched = TaskUpdate.model_validate({"title": "Renamed"})

    assert "recurrence" in cleared.model_dump(exclude_unset=True)
    assert "recurrence" not in untouched.model_dump(exclude_unset=True)


@pytest.mark.parametrize("field", ["title", "status"])
def test_task_update_rejects_clearing_required_fields(field):
    with pytest.raises(ValidationError):
        TaskUpdate.model_validate({field: None})
