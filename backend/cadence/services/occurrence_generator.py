"""
Occurrence generator.

Expands a recurrence pattern and an anchor date into the finite, strictly
increasing list of calendar dates that become task rows. Pure date math: no
I/O, no clock reads, same inputs always give the same output.
"""

from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import Iterable, Iterator, Optional

from cadence.core.exceptions import InvalidPatternError
from cadence.models.enums import RecurrenceEndType, RecurrenceFrequency, Weekday
from cadence.models.recurrence import TaskRecurrence

# Safety cap for patterns without a count (~1 year of weekly occurrences)
DEFAULT_MAX_OCCURRENCES = 52
DEFAULT_MAX_COUNT = 730


class OccurrenceGenerator:
    """
    Generates occurrence dates for recurring tasks.

    Args:
        max_occurrences: Materialization horizon for ``never``/``until`` patterns.
        max_count: Largest ``count`` accepted.
    """

    def __init__(
        self,
        max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
        max_count: int = DEFAULT_MAX_COUNT,
    ):
        if max_occurrences < 1:
            raise ValueError("max_occurrences must be positive")
        self.max_occurrences = max_occurrences
        self.max_count = max_count

    def generate(self, pattern: TaskRecurrence, anchor: date) -> list[date]:
        """
        Generate occurrence dates for ``pattern`` starting at ``anchor``.

        The anchor is always the first element.

        Raises:
            InvalidPatternError: If the pattern cannot be expanded.
        """
        if pattern.interval is None or pattern.interval < 1:
            raise InvalidPatternError(
                "Recurrence interval must be a positive integer",
                details={"interval": pattern.interval},
            )

        limit, until = self._resolve_end(pattern, anchor)
        candidates = self._candidates(pattern, anchor)

        occurrences: list[date] = []
        for candidate in candidates:
            if len(occurrences) >= limit:
                break
            if until is not None and candidate > until:
                break
            occurrences.append(candidate)
        return occurrences

    def _resolve_end(
        self, pattern: TaskRecurrence, anchor: date
    ) -> tuple[int, Optional[date]]:
        """Return (max number of dates, inclusive upper bound)."""
        end = pattern.end
        if end.type == RecurrenceEndType.COUNT:
            if end.count is None or end.count <= 0:
                raise InvalidPatternError(
                    "Recurrence count must be at least 1",
                    details={"count": end.count},
                )
            if end.count > self.max_count:
                raise InvalidPatternError(
                    f"Recurrence count must not exceed {self.max_count}",
                    details={"count": end.count},
                )
            return end.count, None

        if end.type == RecurrenceEndType.UNTIL:
            if end.until < anchor:
                raise InvalidPatternError(
                    "Recurrence end date is before the first occurrence",
                    details={"until": end.until.isoformat(), "anchor": anchor.isoformat()},
                )
            return self.max_occurrences, end.until

        return self.max_occurrences, None

    def _candidates(self, pattern: TaskRecurrence, anchor: date) -> Iterator[date]:
        freq = pattern.frequency

        if freq == RecurrenceFrequency.DAILY:
            return self._iter_daily(anchor, pattern.interval)
        if freq == RecurrenceFrequency.WEEKLY:
            weekdays = self._resolve_weekdays(pattern.by_day, anchor)
            return self._iter_weekly(anchor, pattern.interval, weekdays)
        if freq == RecurrenceFrequency.MONTHLY:
            return self._iter_monthly(anchor, pattern.interval)
        if freq == RecurrenceFrequency.YEARLY:
            return self._iter_yearly(anchor, pattern.interval)

        raise InvalidPatternError(
            f"Unsupported recurrence frequency: {freq}",
            details={"frequency": str(freq)},
        )

    @staticmethod
    def _resolve_weekdays(by_day: Iterable, anchor: date) -> list[int]:
        """Map weekday selectors to sorted date.weekday() indexes."""
        selectors = list(by_day or [])
        if not selectors:
            return [anchor.weekday()]

        indexes: set[int] = set()
        for selector in selectors:
            try:
                indexes.add(Weekday(selector).index)
            except ValueError as e:
                raise InvalidPatternError(
                    f"Unknown weekday selector: {selector!r}",
                    details={"by_day": [str(s) for s in selectors]},
                ) from e
        return sorted(indexes)

    @staticmethod
    def _iter_daily(anchor: date, interval: int) -> Iterator[date]:
        step = timedelta(days=interval)
        current = anchor
        while True:
            yield current
            try:
                current = current + step
            except OverflowError:
                return

    @staticmethod
    def _iter_weekly(anchor: date, interval: int, weekdays: list[int]) -> Iterator[date]:
        """
        Walk week by week from the Monday of the anchor's week.

        The anchor is emitted first even if its weekday is not selected, since
        it is the date of the series master.
        """
        yield anchor
        week_start = anchor - timedelta(days=anchor.weekday())
        step = timedelta(weeks=interval)
        while True:
            for weekday in weekdays:
                try:
                    candidate = week_start + timedelta(days=weekday)
                except OverflowError:
                    return
                if candidate <= anchor:
                    continue
                yield candidate
            try:
                week_start = week_start + step
            except OverflowError:
                return

    @staticmethod
    def _iter_monthly(anchor: date, interval: int) -> Iterator[date]:
        """Same day-of-month as the anchor, clamped to the last day of short months."""
        anchor_index = anchor.year * 12 + anchor.month - 1
        step = 0
        while True:
            month_index = anchor_index + step * interval
            year, month = divmod(month_index, 12)
            month += 1
            if year > date.max.year:
                return
            last_day = calendar.monthrange(year, month)[1]
            yield date(year, month, min(anchor.day, last_day))
            step += 1

    @staticmethod
    def _iter_yearly(anchor: date, interval: int) -> Iterator[date]:
        """Same month/day as the anchor; Feb 29 falls back to Feb 28."""
        step = 0
        while True:
            year = anchor.year + step * interval
            if year > date.max.year:
                return
            last_day = calendar.monthrange(year, anchor.month)[1]
            yield date(year, anchor.month, min(anchor.day, last_day))
            step += 1


def generate_occurrences(
    pattern: TaskRecurrence,
    anchor: date,
    max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
) -> list[date]:
    """Convenience wrapper around ``OccurrenceGenerator.generate``."""
    return OccurrenceGenerator(max_occurrences=max_occurrences).generate(pattern, anchor)
