"""Date ranges and period filtering.

Ranges are computed in the configured timezone (calendar days, weeks
running Sunday to Saturday) and compared against record timestamps as
aware datetimes, so both sides refer to the same instants.
"""

from __future__ import annotations

import calendar
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo

from claude_usage.config import ConfigurationError
from claude_usage.tracker.aggregator import fold
from claude_usage.tracker.models import UsageAggregate, UsageRecord

PERIODS = ("today", "yesterday", "week", "month")

_END_OF_DAY = time(23, 59, 59, 999_000)


def filter_by_range(records: Iterable[UsageRecord], start: datetime, end: datetime) -> UsageAggregate:
    """Fold only the records dated within ``[start, end]`` (inclusive).

    Takes the raw record stream: a folded aggregate no longer knows when
    its records happened. Undated records cannot be placed in any period
    and are left out.
    """
    return fold(r for r in records if r.timestamp is not None and start <= r.timestamp <= end)


def _local_now(tz: tzinfo, now: datetime | None) -> datetime:
    if now is None:
        return datetime.now(tz)
    if now.tzinfo is None:
        now = now.replace(tzinfo=tz)
    return now.astimezone(tz)


def _start_of(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def _end_of(day: date, tz: tzinfo) -> datetime:
    # Midnight + 24h - 1ms, in wall-clock terms so DST days still end at 23:59
    return datetime.combine(day, _END_OF_DAY, tzinfo=tz)


def parse_date(text: str) -> date:
    try:
        return date.fromisoformat(text)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid date '{text}' (expected YYYY-MM-DD)") from e


@dataclass(frozen=True)
class DateRange:
    start: datetime
    end: datetime
    label: str = "custom"

    def contains(self, moment: datetime | None) -> bool:
        return moment is not None and self.start <= moment <= self.end

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def filter(self, records: Iterable[UsageRecord]) -> UsageAggregate:
        return filter_by_range(records, self.start, self.end)

    # -- constructors ----------------------------------------------------------

    @classmethod
    def for_day(cls, day: date, tz: tzinfo, label: str = "day") -> DateRange:
        return cls(_start_of(day, tz), _end_of(day, tz), label)

    @classmethod
    def today(cls, tz: tzinfo, now: datetime | None = None) -> DateRange:
        return cls.for_day(_local_now(tz, now).date(), tz, "today")

    @classmethod
    def yesterday(cls, tz: tzinfo, now: datetime | None = None) -> DateRange:
        return cls.for_day(_local_now(tz, now).date() - timedelta(days=1), tz, "yesterday")

    @classmethod
    def this_week(cls, tz: tzinfo, now: datetime | None = None) -> DateRange:
        """Sunday 00:00 through Saturday 23:59:59.999 of the current week."""
        today = _local_now(tz, now).date()
        sunday = today - timedelta(days=(today.weekday() + 1) % 7)
        return cls(_start_of(sunday, tz), _end_of(sunday + timedelta(days=6), tz), "week")

    @classmethod
    def this_month(cls, tz: tzinfo, now: datetime | None = None) -> DateRange:
        today = _local_now(tz, now).date()
        last_day = calendar.monthrange(today.year, today.month)[1]
        return cls(
            _start_of(today.replace(day=1), tz),
            _end_of(today.replace(day=last_day), tz),
            "month",
        )

    @classmethod
    def custom(cls, start_day: date, end_day: date, tz: tzinfo) -> DateRange:
        """Whole days from ``start_day`` through ``end_day`` inclusive."""
        if end_day < start_day:
            raise ConfigurationError(f"Range end {end_day} is before its start {start_day}")
        return cls(_start_of(start_day, tz), _end_of(end_day, tz), "custom")

    @classmethod
    def rolling(cls, hours: float, tz: tzinfo, now: datetime | None = None) -> DateRange:
        """The trailing ``hours`` up to now, e.g. the current billing window."""
        end = _local_now(tz, now).astimezone(timezone.utc)
        start = end - timedelta(hours=hours)
        return cls(start.astimezone(tz), end.astimezone(tz), f"last {hours:g}h")

    @classmethod
    def named(cls, period: str, tz: tzinfo, now: datetime | None = None) -> DateRange:
        builders = {
            "today": cls.today,
            "yesterday": cls.yesterday,
            "week": cls.this_week,
            "month": cls.this_month,
        }
        builder = builders.get(period.lower())
        if builder is None:
            raise ValueError(f"Unknown period: {period}")
        return builder(tz, now)
