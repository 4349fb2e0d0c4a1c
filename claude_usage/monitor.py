"""Usage monitor — one object wiring reader, aggregator, periods, plan
tracking and burn-rate prediction together for each refresh.

Each call re-reads the log store through the reader's cache, so unchanged
files are not parsed again and changed ones are picked up automatically.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from pathlib import Path
from typing import Any

from rich.console import Console, RenderableType
from rich.live import Live

from claude_usage.tracker.aggregator import UsageAggregator
from claude_usage.tracker.cache import DEFAULT_TIMEOUT_SECONDS, CacheStats, ReadCache
from claude_usage.tracker.models import GlobalUsage, ProjectLookup, UsageAggregate
from claude_usage.tracker.periods import DateRange, filter_by_range
from claude_usage.tracker.plans import DEFAULT_WINDOW_DIVISOR, Plan, QuotaSnapshot, assess_quota
from claude_usage.tracker.predictive import BurnRatePrediction, elapsed_hours, predict
from claude_usage.tracker.reader import LogStoreReader

logger = logging.getLogger(__name__)


@dataclass
class QuotaReport:
    """Billing-window and daily position against the plan, plus burn rate."""

    window: DateRange
    window_usage: UsageAggregate
    today_usage: UsageAggregate
    quota: QuotaSnapshot
    prediction: BurnRatePrediction


class UsageMonitor:
    """Reads Claude conversation logs and answers usage questions."""

    def __init__(
        self,
        projects_dir: Path,
        tz: tzinfo,
        plan: Plan,
        *,
        cache_timeout: float = DEFAULT_TIMEOUT_SECONDS,
        window_hours: float = 5,
        window_divisor: float = DEFAULT_WINDOW_DIVISOR,
        max_workers: int = 1,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.tz = tz
        self.plan = plan
        self.window_hours = window_hours
        self.window_divisor = window_divisor
        self.reader = LogStoreReader(projects_dir, cache=ReadCache(cache_timeout, clock=clock))
        self.aggregator = UsageAggregator(self.reader, max_workers=max_workers)

    @property
    def projects_dir(self) -> Path:
        return self.reader.base_dir

    @property
    def has_data_source(self) -> bool:
        return self.reader.base_dir.is_dir()

    # -- aggregate views -------------------------------------------------------

    def summary(self) -> GlobalUsage:
        return self.aggregator.aggregate_all()

    def project_details(self, project_id: str) -> ProjectLookup:
        return self.aggregator.project_details(project_id)

    def period_range(self, period: str, now: datetime | None = None) -> DateRange:
        return DateRange.named(period, self.tz, now)

    def usage_for_range(self, date_range: DateRange) -> GlobalUsage:
        return self.aggregator.aggregate_all(date_range=date_range)

    def usage_for_period(self, period: str, now: datetime | None = None) -> tuple[DateRange, GlobalUsage]:
        date_range = self.period_range(period, now)
        return date_range, self.usage_for_range(date_range)

    # -- plan / prediction -----------------------------------------------------

    def quota_report(self, now: datetime | None = None) -> QuotaReport:
        """Current 5-hour window and today's usage measured against the plan."""
        now = now or datetime.now(timezone.utc)
        window = DateRange.rolling(self.window_hours, self.tz, now)
        today = DateRange.today(self.tz, now)

        records = list(self.reader.iter_records())
        window_usage = filter_by_range(records, window.start, window.end)
        today_usage = filter_by_range(records, today.start, today.end)

        quota = assess_quota(window_usage, today_usage, self.plan, self.window_divisor)
        prediction = predict(
            window_usage,
            self.plan,
            elapsed_hours(window_usage.time_range.start, now),
            self.window_divisor,
        )
        return QuotaReport(
            window=window,
            window_usage=window_usage,
            today_usage=today_usage,
            quota=quota,
            prediction=prediction,
        )

    # -- cache -----------------------------------------------------------------

    def cache_stats(self) -> CacheStats:
        return self.reader.cache_stats()

    def clear_cache(self) -> None:
        self.reader.clear_cache()
        logger.info("Read cache cleared")

    def status(self) -> dict[str, Any]:
        """Small JSON-safe status blob, used by verbose output."""
        return {
            "projects_dir": str(self.projects_dir),
            "data_source_present": self.has_data_source,
            "plan": self.plan.key,
            "cache": self.cache_stats().to_dict(),
            "parse_count": self.reader.parse_count,
            "warnings": len(self.reader.warnings),
        }


def watch(
    render: Callable[[], RenderableType],
    interval: float,
    console: Console,
    *,
    iterations: int | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Re-render ``render()`` every ``interval`` seconds until interrupted.

    Refreshes run back to back on one thread: the next one starts only after
    the previous render returned and the interval elapsed. Returns the number
    of refreshes performed.
    """
    count = 0
    try:
        with Live(render(), console=console, auto_refresh=False, transient=False) as live:
            count = 1
            while iterations is None or count < iterations:
                sleep(interval)
                live.update(render(), refresh=True)
                count += 1
    except KeyboardInterrupt:
        logger.debug("Live refresh interrupted after %d refreshes", count)
    return count
