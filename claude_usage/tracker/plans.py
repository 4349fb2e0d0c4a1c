"""Plan limits and quota tracking.

A plan caps messages per rolling 5-hour window and per day. Logs count raw
requests, so window usage is approximated as ``requests / divisor``; the
divisor (default 5) is a heuristic and configurable, not a billing fact.

Extra or overridden plans can be supplied in a YAML file::

    plans:
      team:
        name: Team Plan
        limit_per_5h: 300
        daily_limit: 1500
        description: Shared team limits
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from claude_usage.config import ConfigurationError
from claude_usage.tracker.models import UsageAggregate

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DIVISOR = 5.0

HIGH_THRESHOLD = 75.0
CRITICAL_THRESHOLD = 90.0


# ── Plans ────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Plan:
    key: str
    name: str
    limit_per_5h_window: int
    daily_limit: int
    description: str = ""


BUILTIN_PLANS: dict[str, Plan] = {
    "pro": Plan("pro", "Claude Pro", 1000, 5000, "Claude Pro plan - High message limits"),
    "max5": Plan("max5", "Claude Max5", 40, 200, "Claude Max plan - 5 conversations per day"),
    "max20": Plan("max20", "Claude Max20", 160, 800, "Claude Max plan - 20 conversations per day"),
    "custom": Plan("custom", "Custom Plan", 100, 500, "Custom plan - Configurable limits"),
}


def _positive_int(value: Any, field_name: str, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigurationError(f"Plan '{key}': '{field_name}' must be a positive integer, got {value!r}")
    return value


def _parse_plan(key: str, raw: Any) -> Plan:
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Plan '{key}' must be a mapping")
    base = BUILTIN_PLANS.get(key)
    limit = raw.get("limit_per_5h", base.limit_per_5h_window if base else None)
    daily = raw.get("daily_limit", base.daily_limit if base else None)
    return Plan(
        key=key,
        name=str(raw.get("name") or (base.name if base else key)),
        limit_per_5h_window=_positive_int(limit, "limit_per_5h", key),
        daily_limit=_positive_int(daily, "daily_limit", key),
        description=str(raw.get("description") or (base.description if base else "")),
    )


def load_plans(path: Path | None = None) -> dict[str, Plan]:
    """Built-in plans, overlaid with the entries of ``path`` when it exists."""
    plans = dict(BUILTIN_PLANS)
    if path is None:
        return plans
    if not path.exists():
        logger.warning("Plans file not found: %s", path)
        return plans

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Could not read plans file {path}: {e}") from e

    entries = raw.get("plans") if isinstance(raw, dict) else None
    if not isinstance(entries, dict):
        raise ConfigurationError(f"Plans file {path} must contain a 'plans' mapping")

    for key, entry in entries.items():
        plan = _parse_plan(str(key).lower(), entry)
        plans[plan.key] = plan

    logger.info("Loaded %d plans from %s", len(entries), path)
    return plans


def get_plan(key: str, plans: dict[str, Plan] | None = None) -> Plan:
    plans = plans if plans is not None else BUILTIN_PLANS
    plan = plans.get(key.lower())
    if plan is None:
        available = ", ".join(sorted(plans))
        raise ConfigurationError(f"Unknown plan '{key}' (available: {available})")
    return plan


# ── Quota tracking ───────────────────────────────────────────────────────────


class UsageStatus(str, Enum):
    NORMAL = "normal"
    HIGH = "high"
    CRITICAL = "critical"


def classify_status(percent: float) -> UsageStatus:
    if percent > CRITICAL_THRESHOLD:
        return UsageStatus.CRITICAL
    if percent >= HIGH_THRESHOLD:
        return UsageStatus.HIGH
    return UsageStatus.NORMAL


def window_messages(aggregate: UsageAggregate, divisor: float = DEFAULT_WINDOW_DIVISOR) -> float:
    if divisor <= 0:
        raise ValueError("window divisor must be positive")
    return aggregate.request_count / divisor


def window_usage_percent(
    aggregate: UsageAggregate,
    plan: Plan,
    divisor: float = DEFAULT_WINDOW_DIVISOR,
) -> float:
    """Share of the 5-hour window used, capped at 100."""
    return min(window_messages(aggregate, divisor) / plan.limit_per_5h_window * 100, 100.0)


def daily_usage_percent(aggregate: UsageAggregate, plan: Plan) -> float:
    """Share of the daily limit used. Not capped: >100 means over the limit."""
    return aggregate.request_count / plan.daily_limit * 100


@dataclass
class QuotaSnapshot:
    plan: Plan
    window_messages: float
    window_percent: float
    daily_requests: int
    daily_percent: float

    @property
    def window_status(self) -> UsageStatus:
        return classify_status(self.window_percent)

    @property
    def daily_status(self) -> UsageStatus:
        return classify_status(self.daily_percent)

    @property
    def over_daily_limit(self) -> bool:
        return self.daily_percent > 100

    def to_dict(self) -> dict[str, Any]:
        return {
            "plan": self.plan.key,
            "window_messages": round(self.window_messages, 1),
            "window_percent": round(self.window_percent, 1),
            "window_status": self.window_status.value,
            "daily_requests": self.daily_requests,
            "daily_percent": round(self.daily_percent, 1),
            "daily_status": self.daily_status.value,
            "over_daily_limit": self.over_daily_limit,
        }


def assess_quota(
    window: UsageAggregate,
    daily: UsageAggregate,
    plan: Plan,
    divisor: float = DEFAULT_WINDOW_DIVISOR,
) -> QuotaSnapshot:
    """Window figures from the current billing window, daily from today."""
    return QuotaSnapshot(
        plan=plan,
        window_messages=window_messages(window, divisor),
        window_percent=window_usage_percent(window, plan, divisor),
        daily_requests=daily.request_count,
        daily_percent=daily_usage_percent(daily, plan),
    )
