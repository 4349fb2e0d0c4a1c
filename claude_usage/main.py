"""Entry point for the `claude-usage` console script."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from rich.console import Console, Group, RenderableType
from rich.text import Text

from claude_usage import __version__
from claude_usage.config import ConfigurationError, Settings, settings
from claude_usage.display import (
    cache_table,
    heading,
    no_data_message,
    period_header,
    project_table,
    projects_table,
    quota_view,
    summary_table,
)
from claude_usage.monitor import UsageMonitor, watch
from claude_usage.paths import resolve_projects_dir
from claude_usage.timezones import resolve_timezone
from claude_usage.tracker.periods import PERIODS, DateRange, parse_date
from claude_usage.tracker.plans import get_plan, load_plans

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"

# Commands that keep refreshing on a terminal unless --once is given
LIVE_COMMANDS = {"summary", *PERIODS}


class _ArgumentParser(argparse.ArgumentParser):
    """argparse with exit code 1 for usage errors, like every other failure."""

    def error(self, message: str) -> None:  # type: ignore[override]
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\nUse --help for usage information\n")


def _common_options() -> argparse.ArgumentParser:
    # SUPPRESS defaults so the options work before or after the subcommand
    common = _ArgumentParser(add_help=False, argument_default=argparse.SUPPRESS)
    common.add_argument("-t", "--timezone", help="Timezone for date ranges and formatting (default: system)")
    common.add_argument("-c", "--config-dir", help="Claude configuration or projects directory")
    common.add_argument("--plan", help="Plan limits to measure against (pro, max5, max20, custom, ...)")
    common.add_argument("--plans-file", help="YAML file with extra or overridden plans")
    common.add_argument("-p", "--project-id", help="Project ID for the project command")
    common.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    common.add_argument("-q", "--quiet", action="store_true", help="Quiet mode - minimal output")
    common.add_argument("--once", action="store_true", help="Print once instead of refreshing")
    common.add_argument("--interval", type=float, help="Seconds between live refreshes")
    common.add_argument("--no-color", action="store_true", help="Disable colored output")
    common.add_argument("--include-empty", action="store_true", help="Include projects with no usage")
    return common


def build_parser() -> argparse.ArgumentParser:
    common = _common_options()
    parser = _ArgumentParser(
        prog="claude-usage",
        description="Monitor your Claude usage from local conversation files",
        parents=[common],
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("summary", parents=[common], help="Show overall usage summary (default)")
    project = sub.add_parser("project", parents=[common], help="Show detailed usage for one project")
    project.add_argument("project", nargs="?", help="Project ID")
    sub.add_parser("projects", parents=[common], help="List all projects with usage")
    sub.add_parser("today", parents=[common], help="Show today's usage")
    sub.add_parser("yesterday", parents=[common], help="Show yesterday's usage")
    sub.add_parser("week", parents=[common], help="Show this week's usage (Sunday to Saturday)")
    sub.add_parser("month", parents=[common], help="Show this month's usage")

    range_parser = sub.add_parser("range", parents=[common], help="Show usage between two dates")
    range_parser.add_argument("--from", dest="from_date", required=True, help="First day, YYYY-MM-DD")
    range_parser.add_argument("--to", dest="to_date", required=True, help="Last day, YYYY-MM-DD")

    cache = sub.add_parser("cache", parents=[common], help="Manage the read cache")
    cache.add_argument("action", nargs="?", choices=["clear", "stats", "info"], default="stats")
    return parser


def _opt(args: argparse.Namespace, name: str, default: Any = None) -> Any:
    return getattr(args, name, default)


def _configure_logging(args: argparse.Namespace, cfg: Settings) -> None:
    if _opt(args, "verbose"):
        level = logging.DEBUG
    elif _opt(args, "quiet"):
        level = logging.ERROR
    else:
        level = getattr(logging, cfg.log_level.upper(), logging.WARNING)
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)
    logging.getLogger().setLevel(level)


def _positive(name: str, value: float) -> float:
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value:g}")
    return value


def build_monitor(args: argparse.Namespace, cfg: Settings) -> UsageMonitor:
    """Resolve configuration, failing fast before any log file is read."""
    interval = _opt(args, "interval")
    if interval is not None:
        _positive("--interval", interval)
    else:
        _positive("refresh_interval_seconds", cfg.refresh_interval_seconds)
    _positive("cache_timeout_seconds", cfg.cache_timeout_seconds)
    _positive("window_hours", cfg.window_hours)
    _positive("window_message_divisor", cfg.window_message_divisor)
    _positive("max_workers", cfg.max_workers)

    tz = resolve_timezone(_opt(args, "timezone", cfg.timezone))

    plans_file = _opt(args, "plans_file", cfg.plans_file)
    plans = load_plans(Path(plans_file).expanduser() if plans_file else None)
    plan = get_plan(_opt(args, "plan", cfg.plan), plans)

    projects_dir = resolve_projects_dir(_opt(args, "config_dir", cfg.config_dir))
    logger.debug("Reading Claude projects from %s", projects_dir)

    return UsageMonitor(
        projects_dir,
        tz,
        plan,
        cache_timeout=cfg.cache_timeout_seconds,
        window_hours=cfg.window_hours,
        window_divisor=cfg.window_message_divisor,
        max_workers=cfg.max_workers,
    )


# ── Views ────────────────────────────────────────────────────────────────────


def summary_view(monitor: UsageMonitor, quiet: bool = False) -> RenderableType:
    if not monitor.has_data_source:
        return no_data_message(monitor.projects_dir)
    parts: list[RenderableType] = []
    if not quiet:
        parts.append(heading("Claude Usage Summary"))
    parts.append(summary_table(monitor.summary(), monitor.tz))
    parts.append(Text(""))
    parts.append(quota_view(monitor.quota_report(), monitor.tz))
    return Group(*parts)


def range_view(
    monitor: UsageMonitor,
    date_range: DateRange,
    quiet: bool = False,
    include_empty: bool = False,
) -> RenderableType:
    usage = monitor.usage_for_range(date_range)
    parts: list[RenderableType] = []
    if not quiet:
        parts.append(period_header(date_range, monitor.tz))
    parts.append(summary_table(usage, monitor.tz))
    if usage.project_count or include_empty:
        parts.append(projects_table(usage, include_empty=include_empty))
    return Group(*parts)


# ── Commands ─────────────────────────────────────────────────────────────────


def _show(
    console: Console,
    render,
    live: bool,
    interval: float,
) -> int:
    if live:
        watch(render, interval, console)
    else:
        console.print(render())
    return 0


def _handle_project(console: Console, monitor: UsageMonitor, args: argparse.Namespace) -> int:
    project_id = _opt(args, "project") or _opt(args, "project_id")
    if not project_id:
        print("Error: Project ID is required\nUsage: claude-usage project <project-id>", file=sys.stderr)
        return 1

    lookup = monitor.project_details(project_id)
    if not lookup.found:
        print(f"Error: {lookup.error}", file=sys.stderr)
        return 1

    if not _opt(args, "quiet"):
        console.print(heading(f"Project: {project_id}"))
    console.print(project_table(lookup.usage, monitor.tz))
    return 0


def _handle_projects(console: Console, monitor: UsageMonitor, args: argparse.Namespace) -> int:
    if not monitor.has_data_source:
        console.print(no_data_message(monitor.projects_dir))
        return 0
    usage = monitor.summary()
    if not _opt(args, "quiet"):
        console.print(heading("All Projects"))
    console.print(projects_table(usage, include_empty=_opt(args, "include_empty", False)))
    if _opt(args, "verbose"):
        console.print(Text(f"Total projects: {len(usage.projects)}", style="dim"))
    return 0


def _handle_cache(console: Console, monitor: UsageMonitor, args: argparse.Namespace) -> int:
    if _opt(args, "action") == "clear":
        monitor.clear_cache()
        if not _opt(args, "quiet"):
            console.print(Text("Cache cleared", style="green"))
        return 0
    console.print(cache_table(monitor.cache_stats()))
    return 0


def run(argv: list[str] | None = None, cfg: Settings | None = None) -> int:
    """Parse ``argv``, run one command and return the process exit code."""
    cfg = cfg or settings
    args = build_parser().parse_args(argv)
    _configure_logging(args, cfg)

    console = Console(no_color=_opt(args, "no_color", False), highlight=False)
    quiet = _opt(args, "quiet", False)
    command = args.command or "summary"

    try:
        monitor = build_monitor(args, cfg)
        date_range = None
        if command == "range":
            date_range = DateRange.custom(parse_date(args.from_date), parse_date(args.to_date), monitor.tz)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    live = command in LIVE_COMMANDS and not _opt(args, "once", False) and console.is_terminal
    interval = _opt(args, "interval", cfg.refresh_interval_seconds)
    include_empty = _opt(args, "include_empty", False)

    if command == "summary":
        code = _show(console, lambda: summary_view(monitor, quiet), live, interval)
    elif command in PERIODS:
        code = _show(
            console,
            lambda: range_view(monitor, monitor.period_range(command), quiet, include_empty),
            live,
            interval,
        )
    elif command == "range":
        code = _show(console, lambda: range_view(monitor, date_range, quiet, include_empty), False, interval)
    elif command == "project":
        code = _handle_project(console, monitor, args)
    elif command == "projects":
        code = _handle_projects(console, monitor, args)
    elif command == "cache":
        code = _handle_cache(console, monitor, args)
    else:
        build_parser().print_help()
        return 1

    if _opt(args, "verbose"):
        status = monitor.status()
        console.print(
            Text(
                f"\nCache: {status['cache']['size']} entries, "
                f"{status['parse_count']} files parsed, {status['warnings']} warnings",
                style="dim",
            )
        )
    return code


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
