"""Read Claude conversation logs from the local projects directory.

Layout on disk::

    <base>/<project_id>/<conversation>.jsonl

Each line is one JSON object. Lines carrying a usage object become
``UsageRecord`` instances; everything else is ignored. Reading is
fault-tolerant: bad lines and unreadable files are recorded as warnings
and skipped, never raised.
"""

from __future__ import annotations

import json
import threading
import logging
from collections.abc import Iterator, Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from claude_usage.tracker.cache import CacheStats, ReadCache
from claude_usage.tracker.models import ConversationFile, ReadWarning, UsageRecord

logger = logging.getLogger(__name__)

# Where a usage object may live inside a log entry, tried in order.
# ``message.usage`` is the shape current Claude Code builds write.
USAGE_LOCATIONS: list[tuple[str, ...]] = [
    ("usage",),
    ("response", "usage"),
    ("metadata", "usage"),
    ("stats",),
    ("message", "usage"),
]

MODEL_LOCATIONS: list[tuple[str, ...]] = [
    ("model",),
    ("response", "model"),
    ("message", "model"),
    ("metadata", "model"),
]

TIMESTAMP_KEYS = ("created_at", "timestamp")

# Record field -> accepted source keys, first present wins
TOKEN_FIELDS: dict[str, tuple[str, ...]] = {
    "total_tokens": ("total_tokens", "totalTokens"),
    "input_tokens": ("input_tokens", "inputTokens", "prompt_tokens"),
    "output_tokens": ("output_tokens", "outputTokens", "completion_tokens"),
    "cache_creation_tokens": ("cache_creation_input_tokens", "cacheCreationTokens"),
    "cache_read_tokens": ("cache_read_input_tokens", "cacheReadTokens"),
}

_KNOWN_TOKEN_KEYS = frozenset(k for keys in TOKEN_FIELDS.values() for k in keys)

SYNTHETIC_MODEL = "<synthetic>"


# ── Extraction ───────────────────────────────────────────────────────────────


def _dig(entry: Mapping[str, Any], path: tuple[str, ...]) -> Any:
    node: Any = entry
    for key in path:
        if not isinstance(node, Mapping):
            return None
        node = node.get(key)
    return node


def _find_usage(entry: Mapping[str, Any]) -> Mapping[str, Any] | None:
    for path in USAGE_LOCATIONS:
        candidate = _dig(entry, path)
        if isinstance(candidate, Mapping) and _KNOWN_TOKEN_KEYS.intersection(candidate):
            return candidate
    return None


def _find_model(entry: Mapping[str, Any]) -> str | None:
    for path in MODEL_LOCATIONS:
        value = _dig(entry, path)
        if isinstance(value, str) and value:
            return value
    return None


def _token_count(value: Any) -> int:
    """Coerce a reported token count; anything odd counts as zero."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if value != value or value < 0:  # NaN or negative
        return 0
    return int(value)


def _first_present(usage: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if usage.get(key) is not None:
            return usage[key]
    return None


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 string or epoch number into an aware datetime."""
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float)):
            seconds = value / 1000 if value > 1e11 else value
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        if isinstance(value, str) and value.strip():
            dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)
            return dt
    except (ValueError, OverflowError, OSError):
        return None
    return None


def extract_record(entry: Mapping[str, Any]) -> UsageRecord | None:
    """Build a UsageRecord from one log entry, or None if it carries no usage."""
    usage = _find_usage(entry)
    if usage is None:
        return None

    model = _find_model(entry)
    if model == SYNTHETIC_MODEL:
        return None

    counts = {name: _token_count(_first_present(usage, keys)) for name, keys in TOKEN_FIELDS.items()}
    reported_total = _first_present(usage, TOKEN_FIELDS["total_tokens"])
    if reported_total is None:
        counts["total_tokens"] = (
            counts["input_tokens"]
            + counts["output_tokens"]
            + counts["cache_creation_tokens"]
            + counts["cache_read_tokens"]
        )

    timestamp = None
    for key in TIMESTAMP_KEYS:
        if entry.get(key) is not None:
            timestamp = parse_timestamp(entry[key])
            break

    return UsageRecord(timestamp=timestamp, model=model, **counts)


# ── Reader ───────────────────────────────────────────────────────────────────


class LogStoreReader:
    """Discovers projects / conversation files and parses them with caching."""

    def __init__(self, base_dir: Path, cache: ReadCache | None = None) -> None:
        self.base_dir = Path(base_dir)
        self.cache = cache or ReadCache()
        self.warnings: list[ReadWarning] = []
        self.parse_count = 0  # uncached file parses, for instrumentation
        self._count_lock = threading.Lock()

    # -- discovery -------------------------------------------------------------

    def list_projects(self) -> list[str]:
        """Sorted project directory names; empty when the base dir is absent."""
        if not self.base_dir.is_dir():
            return []
        try:
            return sorted(d.name for d in self.base_dir.iterdir() if d.is_dir())
        except OSError as e:
            self._warn(str(self.base_dir), f"could not list projects: {e}")
            return []

    def has_project(self, project_id: str) -> bool:
        return project_id in self.list_projects()

    def list_conversation_files(self, project_id: str) -> list[Path]:
        project_dir = self.base_dir / project_id
        if not project_dir.is_dir():
            return []
        try:
            return sorted(p for p in project_dir.glob("*.jsonl") if p.is_file())
        except OSError as e:
            self._warn(str(project_dir), f"could not list conversations: {e}")
            return []

    # -- parsing ---------------------------------------------------------------

    def parse_lines(self, path: Path) -> list[dict[str, Any]]:
        """Parse a JSONL file, skipping (and recording) malformed lines."""
        entries: list[dict[str, Any]] = []
        try:
            with open(path, "r", encoding="utf-8") as f:
                for line_number, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        value = json.loads(line)
                    except json.JSONDecodeError as e:
                        self._warn(str(path), f"skipping invalid JSON line: {e.msg}", line_number)
                        continue
                    if not isinstance(value, dict):
                        self._warn(str(path), "skipping line that is not a JSON object", line_number)
                        continue
                    entries.append(value)
        except (OSError, UnicodeDecodeError) as e:
            self._warn(str(path), f"could not read file: {e}")
            return []
        return entries

    def read_file(self, path: Path) -> list[UsageRecord]:
        """Usage records of one file, served from cache while unchanged."""
        key = str(path)
        try:
            mtime_ns = path.stat().st_mtime_ns
        except OSError as e:
            self._warn(key, f"could not stat file: {e}")
            return []

        cached = self.cache.get(key, mtime_ns)
        if cached is not None:
            return cached

        records: list[UsageRecord] = []
        for entry in self.parse_lines(path):
            record = extract_record(entry)
            if record is not None:
                records.append(record)
        with self._count_lock:
            self.parse_count += 1
        self.cache.put(key, mtime_ns, records)
        logger.debug("Parsed %s: %d usage records", path, len(records))
        return records

    def load_conversations(self, project_id: str) -> list[ConversationFile]:
        """Conversation files that carry usage, newest modification first."""
        conversations: list[ConversationFile] = []
        for path in self.list_conversation_files(project_id):
            records = self.read_file(path)
            if not records:
                continue
            try:
                modified = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
            except OSError as e:
                self._warn(str(path), f"could not stat file: {e}")
                continue
            conversations.append(
                ConversationFile(
                    project_id=project_id,
                    file_name=path.stem,
                    path=path,
                    modified_time=modified,
                    records=records,
                )
            )
        conversations.sort(key=lambda c: c.modified_time, reverse=True)
        return conversations

    def iter_records(self, project_id: str | None = None) -> Iterator[UsageRecord]:
        """Raw record stream for one project, or all projects."""
        projects = [project_id] if project_id is not None else self.list_projects()
        for pid in projects:
            for path in self.list_conversation_files(pid):
                yield from self.read_file(path)

    # -- cache / warnings ------------------------------------------------------

    def clear_cache(self) -> None:
        self.cache.clear()

    def cache_stats(self) -> CacheStats:
        return self.cache.stats()

    def drain_warnings(self) -> list[ReadWarning]:
        """Return and forget the warnings recorded so far."""
        drained, self.warnings = self.warnings, []
        return drained

    def _warn(self, path: str, message: str, line_number: int | None = None) -> None:
        warning = ReadWarning(path=path, message=message, line_number=line_number)
        self.warnings.append(warning)
        logger.warning("%s", warning)
