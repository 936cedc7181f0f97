"""
Unit tests for the occurrence generator.
"""

from datetime import date, timedelta

import pytest

from cadence.core.exceptions import InvalidPatternError, ValidationError
from cadence.models.enums import RecurrenceFrequency, Weekday
from cadence.models.recurrence import (
    RecurrenceEndCount,
    RecurrenceEndNever,
    RecurrenceEndUntil,
    TaskRecurrence,
)
from cadence.services.occurrence_generator import (
    DEFAULT_MAX_OCCURRENCES,
    OccurrenceGenerator,
    generate_occurrences,
)


def _pattern(frequency, *, interval=1, by_day=None, end=None) -> TaskRecurrence:
    return TaskRecurrence(
        frequency=frequency,
        interval=interval,
        by_day=by_day or [],
        end=end or RecurrenceEndNever(),
    )


def test_weekly_by_day_with_count():
    pattern = _pattern(
        RecurrenceFrequency.WEEKLY,
        by_day=[Weekday.MO, Weekday.WE],
        end=RecurrenceEndCount(count=4),
    )

    dates = OccurrenceGenerator().generate(pattern, date(2024, 1, 1))

    assert dates == [
        date(2024, 1, 1),
        date(2024, 1, 3),
        date(2024, 1, 8),
        date(2024, 1, 10),
    ]


def test_weekly_anchor_off_pattern_is_still_first():
    pattern = _pattern(
        RecurrenceFrequency.WEEKLY,
        by_day=[Weekday.MO],
        end=RecurrenceEndCount(count=3),
    )

    dates = OccurrenceGenerator().generate(pattern, date(2024, 1, 3))

    assert dates == [date(2024, 1, 3), date(2024, 1, 8), date(2024, 1, 15)]


def test_weekly_without_by_day_uses_anchor_weekday():
    pattern = _pattern(RecurrenceFrequency.WEEKLY, end=RecurrenceEndCount(count=3))

    dates = OccurrenceGenerator().generate(pattern, date(2024, 1, 3))

    assert dates == [date(2024, 1, 3), date(2024, 1, 10), date(2024, 1, 17)]


def test_weekly_interval_skips_weeks():
    pattern = _pattern(
        RecurrenceFrequency.WEEKLY,
        interval=2,
        by_day=[Weekday.TU, Weekday.TH],
        end=RecurrenceEndCount(count=4),
    )

    dates = OccurrenceGenerator().generate(pattern, date(2024, 1, 2))

    assert dates == [
        date(2024, 1, 2),
        date(2024, 1, 4),
        date(2024, 1, 16),
        date(2024, 1, 18),
    ]


def test_daily_until_is_inclusive():
    pattern = _pattern(
        RecurrenceFrequency.DAILY,
        end=RecurrenceEndUntil(until=date(2024, 1, 3)),
    )

    dates = OccurrenceGenerator().generate(pattern, date(2024, 1, 1))

    assert dates == [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3)]


def test_until_equal_to_anchor_gives_single_date():
    pattern = _pattern(
        RecurrenceFrequency.DAILY,
        end=RecurrenceEndUntil(until=date(2024, 1, 1)),
    )

    assert OccurrenceGenerator().generate(pattern, date(2024, 1, 1)) == [date(2024, 1, 1)]


def test_weekly_until_between_matches():
    pattern = _pattern(
        RecurrenceFrequency.WEEKLY,
        by_day=[Weekday.MO],
        end=RecurrenceEndUntil(until=date(2024, 1, 14)),
    )

    dates = OccurrenceGenerator().generate(pattern, date(2024, 1, 1))

    assert dates == [date(2024, 1, 1), date(2024, 1, 8)]


def test_daily_interval():
    pattern = _pattern(
        RecurrenceFrequency.DAILY,
        interval=3,
        end=RecurrenceEndCount(count=3),
    )

    dates = OccurrenceGenerator().generate(pattern, date(2024, 2, 27))

    assert dates == [date(2024, 2, 27), date(2024, 3, 1), date(2024, 3, 4)]


def test_monthly_clamps_to_month_end():
    pattern = _pattern(RecurrenceFrequency.MONTHLY, end=RecurrenceEndCount(count=4))

    dates = OccurrenceGenerator().generate(pattern, date(2024, 1, 31))

    # Clamping is relative to the anchor, so March is back on the 31st
    assert dates == [
        date(2024, 1, 31),
        date(2024, 2, 29),
        date(2024, 3, 31),
        date(2024, 4, 30),
    ]


def test_monthly_interval_crosses_year():
    pattern = _pattern(
        RecurrenceFrequency.MONTHLY,
        interval=2,
        end=RecurrenceEndCount(count=3),
    )

    dates = OccurrenceGenerator().generate(pattern, date(2024, 11, 15))

    assert dates == [date(2024, 11, 15), date(2025, 1, 15), date(2025, 3, 15)]


def test_yearly_leap_day_falls_back_to_feb_28():
    pattern = _pattern(RecurrenceFrequency.YEARLY, end=RecurrenceEndCount(count=5))

    dates = OccurrenceGenerator().generate(pattern, date(2024, 2, 29))

    assert dates == [
        date(2024, 2, 29),
        date(2025, 2, 28),
        date(2026, 2, 28),
        date(2027, 2, 28),
        date(2028, 2, 29),
    ]


def test_never_stops_at_horizon():
    pattern = _pattern(RecurrenceFrequency.DAILY)

    dates = OccurrenceGenerator().generate(pattern, date(2024, 1, 1))

    assert len(dates) == DEFAULT_MAX_OCCURRENCES
    assert dates[-1] == date(2024, 1, 1) + timedelta(days=DEFAULT_MAX_OCCURRENCES - 1)


def test_until_is_bounded_by_horizon():
    pattern = _pattern(
        RecurrenceFrequency.DAILY,
        end=RecurrenceEndUntil(until=date(2030, 1, 1)),
    )

    dates = OccurrenceGenerator(max_occurrences=5).generate(pattern, date(2024, 1, 1))

    assert len(dates) == 5


def test_count_is_not_bounded_by_horizon():
    pattern = _pattern(RecurrenceFrequency.DAILY, end=RecurrenceEndCount(count=10))

    dates = OccurrenceGenerator(max_occurrences=5).generate(pattern, date(2024, 1, 1))

    assert len(dates) == 10


def test_generate_occurrences_wrapper():
    pattern = _pattern(RecurrenceFrequency.DAILY)

    dates = generate_occurrences(pattern, date(2024, 1, 1), max_occurrences=3)

    assert dates == [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3)]


@pytest.mark.parametrize(
    "pattern",
    [
        _pattern(RecurrenceFrequency.DAILY, interval=2),
        _pattern(RecurrenceFrequency.WEEKLY, by_day=[Weekday.SU, Weekday.FR]),
        _pattern(RecurrenceFrequency.MONTHLY, end=RecurrenceEndCount(count=24)),
        _pattern(RecurrenceFrequency.YEARLY, interval=4, end=RecurrenceEndCount(count=6)),
    ],
)
def test_output_starts_at_anchor_and_strictly_increases(pattern):
    anchor = date(2024, 1, 31)
    generator = OccurrenceGenerator()

    first = generator.generate(pattern, anchor)
    second = generator.generate(pattern, anchor)

    assert first == second
    assert first[0] == anchor
    assert all(earlier < later for earlier, later in zip(first, first[1:]))


def test_count_zero_is_invalid():
    pattern = _pattern(RecurrenceFrequency.DAILY, end=RecurrenceEndCount(count=0))

    with pytest.raises(InvalidPatternError):
        OccurrenceGenerator().generate(pattern, date(2024, 1, 1))


def test_count_above_cap_is_invalid():
    pattern = _pattern(RecurrenceFrequency.DAILY, end=RecurrenceEndCount(count=11))

    with pytest.raises(InvalidPatternError):
        OccurrenceGenerator(max_count=10).generate(pattern, date(2024, 1, 1))


def test_until_before_anchor_is_invalid():
    pattern = _pattern(
        RecurrenceFrequency.DAILY,
        end=RecurrenceEndUntil(until=date(2023, 12, 31)),
    )

    with pytest.raises(InvalidPatternError):
        OccurrenceGenerator().generate(pattern, date(2024, 1, 1))


def test_weekly_without_valid_weekday_is_invalid():
    pattern = TaskRecurrence.model_construct(
        frequency=RecurrenceFrequency.WEEKLY,
        interval=1,
        by_day=["XX"],
        end=RecurrenceEndCount(count=2),
    )

    with pytest.raises(InvalidPatternError):
        OccurrenceGenerator().generate(pattern, date(2024, 1, 1))


def test_weekly_with_one_unknown_weekday_is_invalid():
    pattern = TaskRecurrence.model_construct(
        frequency=RecurrenceFrequency.WEEKLY,
        interval=1,
        by_day=[Weekday.MO, "XX"],
        end=RecurrenceEndCount(count=2),
    )

    with pytest.raises(InvalidPatternError):
        OccurrenceGenerator().generate(pattern, date(2024, 1, 1))


def test_non_positive_interval_is_invalid():
    pattern = TaskRecurrence.model_construct(
        frequency=RecurrenceFrequency.DAILY,
        interval=0,
        by_day=[],
        end=RecurrenceEndNever(),
    )

    with pytest.raises(InvalidPatternError):
        OccurrenceGenerator().generate(pattern, date(2024, 1, 1))


def test_invalid_pattern_is_a_validation_error():
    assert issubclass(InvalidPatternError, ValidationError)


def test_horizon_must_be_positive():
    with pytest.raises(ValueError):
        OccurrenceGenerator(max_occurrences=0)
