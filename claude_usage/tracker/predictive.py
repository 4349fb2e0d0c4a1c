"""Burn-rate prediction — how fast requests are being spent, and when the
current 5-hour window would run out at that pace.

This is a point estimate from a single average rate over the elapsed time.
It does not smooth, weight recent activity, or detect trend changes, so
treat the projection as a heuristic, not a guarantee.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from claude_usage.tracker.models import UsageAggregate
from claude_usage.tracker.plans import DEFAULT_WINDOW_DIVISOR, Plan, window_messages

logger = logging.getLogger(__name__)


@dataclass
class BurnRatePrediction:
    """Requests per hour and hours left in the window (None = no prediction)."""

    rate_per_hour: float | None
    hours_to_window_limit: float | None

    def limit_reached_at(self, now: datetime | None = None) -> datetime | None:
        if self.hours_to_window_limit is None:
            return None
        now = now or datetime.now(timezone.utc)
        return now + timedelta(hours=self.hours_to_window_limit)


def elapsed_hours(since: datetime | None, now: datetime | None = None) -> float:
    """Hours between ``since`` and ``now``; 0 when there is no start time."""
    if since is None:
        return 0.0
    now = now or datetime.now(timezone.utc)
    return max(0.0, (now - since).total_seconds() / 3600)


def predict(
    aggregate: UsageAggregate,
    plan: Plan,
    elapsed: float,
    divisor: float = DEFAULT_WINDOW_DIVISOR,
) -> BurnRatePrediction:
    """Project time-to-limit from ``request_count`` spent over ``elapsed`` hours."""
    if elapsed <= 0:
        return BurnRatePrediction(rate_per_hour=None, hours_to_window_limit=None)

    rate = aggregate.request_count / elapsed
    current = window_messages(aggregate, divisor)

    hours_left = None
    if rate > 0 and current < plan.limit_per_5h_window:
        hours_left = (plan.limit_per_5h_window - current) / rate

    logger.debug("Burn rate %.1f req/h, window %.1f/%d", rate, current, plan.limit_per_5h_window)
    return BurnRatePrediction(rate_per_hour=rate, hours_to_window_limit=hours_left)


def prediction_to_dict(p: BurnRatePrediction) -> dict[str, Any]:
    """Serialize a BurnRatePrediction to a JSON-safe dict."""
    return {
        "rate_per_hour": round(p.rate_per_hour, 2) if p.rate_per_hour is not None else None,
        "hours_to_window_limit": (
            round(p.hours_to_window_limit, 2) if p.hours_to_window_limit is not None else None
        ),
    }
