"""Terminal rendering with rich: tables, quota bars and the burn-rate line.

Every function returns a rich renderable; printing is left to the caller so
the same views work for one-shot output and the live refresh.
"""

from __future__ import annotations

from datetime import tzinfo
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Group
from rich.progress_bar import ProgressBar
from rich.table import Table
from rich.text import Text

from claude_usage.timezones import format_datetime, format_duration, format_range
from claude_usage.tracker.cache import CacheStats
from claude_usage.tracker.models import GlobalUsage, ProjectUsage, UsageAggregate
from claude_usage.tracker.periods import DateRange
from claude_usage.tracker.plans import UsageStatus, classify_status
from claude_usage.tracker.predictive import BurnRatePrediction

if TYPE_CHECKING:
    from claude_usage.monitor import QuotaReport

STATUS_STYLES = {
    UsageStatus.NORMAL: "green",
    UsageStatus.HIGH: "yellow",
    UsageStatus.CRITICAL: "red",
}

BAR_WIDTH = 30


def fmt_number(n: int | float) -> str:
    """Format a number with thousands separators."""
    if isinstance(n, float) and not n.is_integer():
        return f"{n:,.1f}"
    return f"{int(n):,}"


def _model_list(models: set[str], limit: int | None = None) -> str:
    names = sorted(models)
    if limit is not None and len(names) > limit:
        return ", ".join(names[:limit]) + "..."
    return ", ".join(names)


# ── Tables ───────────────────────────────────────────────────────────────────


def summary_table(usage: UsageAggregate, tz: tzinfo, title: str | None = None) -> Table:
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Total Tokens", fmt_number(usage.total_tokens))
    table.add_row("Input Tokens", fmt_number(usage.input_tokens))
    table.add_row("Output Tokens", fmt_number(usage.output_tokens))
    if usage.cache_creation_tokens > 0:
        table.add_row("Cache Creation Tokens", fmt_number(usage.cache_creation_tokens))
    if usage.cache_read_tokens > 0:
        table.add_row("Cache Read Tokens", fmt_number(usage.cache_read_tokens))
    table.add_row("Total Requests", fmt_number(usage.request_count))
    if isinstance(usage, GlobalUsage):
        table.add_row("Active Projects", fmt_number(usage.project_count))
    if usage.models:
        table.add_row("Models Used", _model_list(usage.models))
    if not usage.time_range.is_empty:
        table.add_row("Time Range", format_range(usage.time_range.start, usage.time_range.end, tz))
    return table


def projects_table(usage: GlobalUsage, include_empty: bool = False) -> Table:
    """Projects sorted by total tokens; empty ones hidden unless asked for."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("Project", style="cyan", overflow="fold")
    table.add_column("Total Tokens", justify="right")
    table.add_column("Requests", justify="right")
    table.add_column("Conversations", justify="right")
    table.add_column("Models")

    ranked = sorted(usage.projects.values(), key=lambda p: p.total_tokens, reverse=True)
    for project in ranked:
        if project.total_tokens == 0 and not include_empty:
            continue
        table.add_row(
            project.project_id,
            fmt_number(project.total_tokens),
            fmt_number(project.request_count),
            fmt_number(project.conversation_count),
            _model_list(project.models, limit=2),
        )
    return table


def project_table(project: ProjectUsage, tz: tzinfo) -> Table:
    """One row per conversation plus a TOTALS row."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("Conversation", style="cyan", overflow="fold")
    table.add_column("Tokens", justify="right")
    table.add_column("Requests", justify="right")
    table.add_column("Last Modified")

    for conv in project.conversations:
        table.add_row(
            conv.file_name,
            fmt_number(conv.usage.total_tokens),
            fmt_number(conv.usage.request_count),
            format_datetime(conv.modified_time, tz),
        )
    table.add_row(
        Text("TOTALS", style="bold"),
        Text(fmt_number(project.total_tokens), style="bold"),
        Text(fmt_number(project.request_count), style="bold"),
        "-",
        end_section=True,
    )
    return table


def cache_table(stats: CacheStats) -> Table:
    table = Table(show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Cache entries", fmt_number(stats.size))
    table.add_row("Cache timeout", f"{stats.timeout:g}s")
    table.add_row("Hits", fmt_number(stats.hits))
    table.add_row("Misses", fmt_number(stats.misses))
    return table


# ── Quota / burn rate ────────────────────────────────────────────────────────


def usage_bar(label: str, percent: float, detail: str) -> Table:
    """A labelled bar coloured by status; values over 100% are flagged."""
    style = STATUS_STYLES[classify_status(percent)]
    row = Table.grid(padding=(0, 1))
    row.add_column(width=14)
    row.add_column(width=BAR_WIDTH)
    row.add_column()
    suffix = Text(f"{percent:5.1f}%  {detail}", style=style)
    if percent > 100:
        suffix.append("  over limit", style="bold red")
    row.add_row(
        Text(label),
        ProgressBar(
            total=100,
            completed=min(percent, 100.0),
            width=BAR_WIDTH,
            complete_style=style,
            finished_style=style,
        ),
        suffix,
    )
    return row


def burn_rate_line(prediction: BurnRatePrediction) -> Text:
    if prediction.rate_per_hour is None:
        return Text("Burn rate: not enough data for a prediction", style="dim")
    line = Text(f"Burn rate: {prediction.rate_per_hour:,.1f} requests/hour")
    if prediction.hours_to_window_limit is None:
        line.append("  (no window limit projection)", style="dim")
    else:
        line.append("  window limit in ~")
        line.append(format_duration(prediction.hours_to_window_limit), style="bold")
    return line


def quota_view(report: QuotaReport, tz: tzinfo) -> Group:
    quota = report.quota
    plan = quota.plan
    header = Text.assemble(
        ("Plan: ", "bold"),
        f"{plan.name} ({fmt_number(plan.limit_per_5h_window)} / {report.window.label}, "
        f"{fmt_number(plan.daily_limit)} / day)",
    )
    window_bar = usage_bar(
        "Window",
        quota.window_percent,
        f"{fmt_number(round(quota.window_messages, 1))} / {fmt_number(plan.limit_per_5h_window)} messages",
    )
    daily_bar = usage_bar(
        "Today",
        quota.daily_percent,
        f"{fmt_number(quota.daily_requests)} / {fmt_number(plan.daily_limit)} requests",
    )
    return Group(header, window_bar, daily_bar, burn_rate_line(report.prediction))


# ── Messages / headers ───────────────────────────────────────────────────────


def no_data_message(projects_dir: Path) -> Text:
    return Text.assemble(
        ("No usage data yet. ", "yellow"),
        (f"Looked in {projects_dir}", "dim"),
    )


def period_header(date_range: DateRange, tz: tzinfo) -> Text:
    title = date_range.label.capitalize() if date_range.label != "custom" else "Custom range"
    return Text.assemble(
        (f"{title} Usage\n", "bold"),
        (f"Period: {format_range(date_range.start, date_range.end, tz)}", "dim"),
    )


def heading(text: str) -> Text:
    return Text(f"\n{text}\n", style="bold")