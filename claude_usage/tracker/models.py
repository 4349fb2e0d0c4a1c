"""Usage data model — records, aggregates and the per-project / global layers.

Everything here is a plain dataclass. Aggregates are produced by folding
records (see ``aggregator.fold``) and are never mutated after construction
by callers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any


# ── Records ──────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class UsageRecord:
    """A single assistant response with token usage."""

    timestamp: datetime | None  # None when missing or unparseable
    model: str | None
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0
    total_tokens: int = 0


@dataclass
class ConversationFile:
    """One parsed conversation log (a single .jsonl file)."""

    project_id: str
    file_name: str
    path: Path
    modified_time: datetime
    records: list[UsageRecord] = field(default_factory=list)


@dataclass(frozen=True)
class ReadWarning:
    """A recovered problem met while reading the log store."""

    path: str
    message: str
    line_number: int | None = None

    def __str__(self) -> str:
        where = f"{self.path}:{self.line_number}" if self.line_number else self.path
        return f"{where}: {self.message}"


# ── Aggregates ───────────────────────────────────────────────────────────────


@dataclass
class TimeRange:
    start: datetime | None = None
    end: datetime | None = None

    @property
    def is_empty(self) -> bool:
        return self.start is None


@dataclass
class UsageAggregate:
    """Accumulated totals over some set of records."""

    total_tokens: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0
    request_count: int = 0
    models: set[str] = field(default_factory=set)
    time_range: TimeRange = field(default_factory=TimeRange)

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe view of the numeric totals."""
        return {
            "total_tokens": self.total_tokens,
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "cache_creation_tokens": self.cache_creation_tokens,
            "cache_read_tokens": self.cache_read_tokens,
            "request_count": self.request_count,
            "models": sorted(self.models),
            "time_range": {
                "start": self.time_range.start.isoformat() if self.time_range.start else None,
                "end": self.time_range.end.isoformat() if self.time_range.end else None,
            },
        }


@dataclass
class ConversationUsage:
    """Usage of a single conversation file, for the project detail view."""

    file_name: str
    modified_time: datetime
    usage: UsageAggregate


@dataclass
class ProjectUsage(UsageAggregate):
    project_id: str = ""
    conversation_count: int = 0
    conversations: list[ConversationUsage] = field(default_factory=list)


@dataclass
class GlobalUsage(UsageAggregate):
    project_count: int = 0  # projects with total_tokens > 0
    projects: dict[str, ProjectUsage] = field(default_factory=dict)


@dataclass
class ProjectLookup:
    """Result of a project-detail request.

    An unknown project is an expected condition in interactive use, so it is
    reported here (``found=False``) rather than raised.
    """

    project_id: str
    usage: ProjectUsage | None = None
    error: str | None = None

    @property
    def found(self) -> bool:
        return self.usage is not None
