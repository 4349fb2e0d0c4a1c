"""Locate the Claude projects directory."""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping
from pathlib import Path

logger = logging.getLogger(__name__)


def candidate_dirs(
    platform: str | None = None,
    home: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> list[Path]:
    """Search order for the projects directory, primary first."""
    platform = platform or sys.platform
    home = home or Path.home()
    env = os.environ if env is None else env

    if platform == "win32":
        app_data = Path(env.get("APPDATA") or home / "AppData" / "Roaming")
        return [app_data / "claude" / "projects", home / "claude" / "projects"]
    return [home / ".claude" / "projects", home / ".config" / "claude" / "projects"]


def resolve_projects_dir(
    config_dir: str | Path | None = None,
    *,
    platform: str | None = None,
    home: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> Path:
    """Projects directory to read from.

    An explicit ``config_dir`` wins: its ``projects/`` sub-directory when it
    has one, otherwise the directory itself. Without one, the first existing
    platform candidate is used, falling back to the primary location so a
    fresh install reads as "no data yet".
    """
    if config_dir:
        base = Path(config_dir).expanduser()
        nested = base / "projects"
        return nested if nested.is_dir() else base

    candidates = candidate_dirs(platform, home, env)
    for candidate in candidates:
        if candidate.is_dir():
            return candidate
    logger.debug("No Claude projects directory found, defaulting to %s", candidates[0])
    return candidates[0]
