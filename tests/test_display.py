"""Tests for rich rendering helpers."""

from __future__ import annotations

from datetime import date, datetime, timezone
from pathlib import Path

from rich.console import Console

from claude_usage.display import (
    burn_rate_line,
    cache_table,
    fmt_number,
    no_data_message,
    period_header,
    project_table,
    projects_table,
    quota_view,
    summary_table,
    usage_bar,
)
from claude_usage.monitor import UsageMonitor
from claude_usage.tracker.aggregator import UsageAggregator
from claude_usage.tracker.cache import CacheStats
from claude_usage.tracker.periods import DateRange
from claude_usage.tracker.plans import get_plan
from claude_usage.tracker.predictive import BurnRatePrediction


def render(renderable) -> str:
    console = Console(record=True, width=120, color_system=None)
    console.print(renderable)
    return console.export_text()


class TestFormatting:
    def test_fmt_number(self):
        assert fmt_number(1234567) == "1,234,567"
        assert fmt_number(12.0) == "12"
        assert fmt_number(0.4) == "0.4"


class TestTables:
    def test_summary_table(self, reader):
        usage = UsageAggregator(reader).aggregate_all()
        out = render(summary_table(usage, timezone.utc))
        assert "Total Tokens" in out
        assert "2,945" in out
        assert "Cache Read Tokens" in out
        assert "Active Projects" in out
        assert "Feb 17 09:30 - Feb 19 11:00" in out

    def test_summary_table_hides_zero_cache_rows(self, reader):
        usage = UsageAggregator(reader).aggregate_project("beta")
        out = render(summary_table(usage, timezone.utc))
        assert "Cache Creation Tokens" not in out
        assert "Active Projects" not in out

    def test_projects_table_sorted_and_filtered(self, reader):
        usage = UsageAggregator(reader).aggregate_all()
        out = render(projects_table(usage))
        assert out.index("alpha") < out.index("beta")
        assert "empty" not in out
        assert "claude-haiku-4-5, claude-opus-4-6..." in out

    def test_projects_table_include_empty(self, reader):
        usage = UsageAggregator(reader).aggregate_all()
        assert "empty" in render(projects_table(usage, include_empty=True))

    def test_project_table_totals(self, reader):
        project = UsageAggregator(reader).aggregate_project("alpha")
        out = render(project_table(project, timezone.utc))
        assert "conv-1" in out
        assert "TOTALS" in out
        assert "2,942" in out

    def test_cache_table(self):
        out = render(cache_table(CacheStats(size=3, timeout=300, hits=5, misses=3)))
        assert "Cache entries" in out
        assert "300s" in out


class TestQuotaRendering:
    def test_bar_flags_over_limit(self):
        assert "over limit" in render(usage_bar("Today", 200.0, "400 / 200 requests"))
        assert "over limit" not in render(usage_bar("Today", 50.0, "100 / 200 requests"))

    def test_burn_rate_line(self):
        assert "not enough data" in render(burn_rate_line(BurnRatePrediction(None, None)))
        out = render(burn_rate_line(BurnRatePrediction(25.0, 1.2)))
        assert "25.0 requests/hour" in out
        assert "1h 12m" in out
        assert "no window limit projection" in render(burn_rate_line(BurnRatePrediction(5.0, None)))

    def test_quota_view(self, projects_dir: Path):
        monitor = UsageMonitor(projects_dir, timezone.utc, get_plan("max5"))
        report = monitor.quota_report(datetime(2026, 2, 19, 12, tzinfo=timezone.utc))
        out = render(quota_view(report, timezone.utc))
        assert "Claude Max5" in out
        assert "Window" in out
        assert "2 / 200 requests" in out


class TestMessages:
    def test_no_data_message(self, tmp_path: Path):
        assert "No usage data yet" in render(no_data_message(tmp_path))

    def test_period_header(self):
        r = DateRange.for_day(date(2026, 2, 19), timezone.utc, "today")
        out = render(period_header(r, timezone.utc))
        assert "Today Usage" in out
        assert "Feb 19 00:00 - Feb 19 23:59" in out
        custom = DateRange.custom(date(2026, 2, 1), date(2026, 2, 2), timezone.utc)
        assert "Custom range Usage" in render(period_header(custom, timezone.utc))
