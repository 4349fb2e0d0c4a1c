"""Timezone resolution and date formatting helpers."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from datetime import datetime, timezone, tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from claude_usage.config import ConfigurationError

logger = logging.getLogger(__name__)

LOCALTIME_PATH = Path("/etc/localtime")

SHORT_FORMAT = "%b %d %H:%M"
LONG_FORMAT = "%Y-%m-%d %H:%M:%S"


def _zone_from_key(key: str) -> tzinfo | None:
    key = key.lstrip(":")
    if not key:
        return None
    try:
        return ZoneInfo(key)
    except (ZoneInfoNotFoundError, ValueError):
        return None


def local_timezone(
    env: Mapping[str, str] | None = None,
    localtime: Path = LOCALTIME_PATH,
) -> tzinfo:
    """The system zone as a ZoneInfo, so DST changes inside a range are honoured.

    Tries ``$TZ``, then the ``/etc/localtime`` symlink target. Only when
    neither names a known zone does it fall back to the current fixed offset.
    """
    env = os.environ if env is None else env
    zone = _zone_from_key(env.get("TZ", ""))
    if zone is not None:
        return zone

    try:
        target = str(localtime.resolve()) if localtime.is_symlink() else ""
    except OSError:
        target = ""
    marker = "zoneinfo/"
    if marker in target:
        zone = _zone_from_key(target.split(marker, 1)[1])
        if zone is not None:
            return zone

    logger.debug("Could not name the system timezone, using its current UTC offset")
    return datetime.now().astimezone().tzinfo  # type: ignore[return-value]


def resolve_timezone(name: str | None) -> tzinfo:
    """Return the zone for an IANA name, or the local zone when empty."""
    if not name:
        return local_timezone()
    if name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigurationError(
            f"Invalid timezone '{name}'. Use a valid timezone like \"America/New_York\" or \"UTC\""
        ) from e


def timezone_name(tz: tzinfo) -> str:
    return getattr(tz, "key", None) or tz.tzname(datetime.now()) or str(tz)


def format_datetime(dt: datetime | None, tz: tzinfo, fmt: str = SHORT_FORMAT) -> str:
    if dt is None:
        return "-"
    return dt.astimezone(tz).strftime(fmt)


def format_range(start: datetime | None, end: datetime | None, tz: tzinfo, fmt: str = SHORT_FORMAT) -> str:
    return f"{format_datetime(start, tz, fmt)} - {format_datetime(end, tz, fmt)}"


def format_duration(hours: float | None) -> str:
    """Format hours as '2h 13m' / '6d 4h'; 'now' when nothing is left."""
    if hours is None:
        return "-"
    seconds = int(hours * 3600)
    if seconds <= 0:
        return "now"
    days = seconds // 86400
    hrs = (seconds % 86400) // 3600
    minutes = (seconds % 3600) // 60
    if days > 0:
        return f"{days}d {hrs}h" if hrs else f"{days}d"
    if hrs > 0:
        return f"{hrs}h {minutes}m" if minutes else f"{hrs}h"
    return f"{minutes}m" if minutes else "<1m"
