"""Fold usage records into conversation, project and global totals.

``fold`` is a pure reduction; the ``UsageAggregator`` only adds discovery
(via the reader) on top of it, so aggregating an unchanged log store twice
gives identical results.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import TYPE_CHECKING

from claude_usage.tracker.models import (
    ConversationFile,
    ConversationUsage,
    GlobalUsage,
    ProjectLookup,
    ProjectUsage,
    TimeRange,
    UsageAggregate,
    UsageRecord,
)
from claude_usage.tracker.reader import LogStoreReader

if TYPE_CHECKING:
    from claude_usage.tracker.periods import DateRange

logger = logging.getLogger(__name__)

_NUMERIC_FIELDS = (
    "total_tokens",
    "input_tokens",
    "output_tokens",
    "cache_creation_tokens",
    "cache_read_tokens",
)


def _widen(time_range: TimeRange, start: datetime | None, end: datetime | None) -> None:
    if start is not None and (time_range.start is None or start < time_range.start):
        time_range.start = start
    if end is not None and (time_range.end is None or end > time_range.end):
        time_range.end = end


def fold(records: Iterable[UsageRecord]) -> UsageAggregate:
    """Sum records into a UsageAggregate. Empty input gives all zeros."""
    agg = UsageAggregate()
    for r in records:
        agg.total_tokens += r.total_tokens
        agg.input_tokens += r.input_tokens
        agg.output_tokens += r.output_tokens
        agg.cache_creation_tokens += r.cache_creation_tokens
        agg.cache_read_tokens += r.cache_read_tokens
        agg.request_count += 1
        if r.model:
            agg.models.add(r.model)
        _widen(agg.time_range, r.timestamp, r.timestamp)
    return agg


def merge(aggregates: Iterable[UsageAggregate], into: UsageAggregate | None = None) -> UsageAggregate:
    """Sum already-folded aggregates (same result as folding all their records)."""
    total = into if into is not None else UsageAggregate()
    for agg in aggregates:
        for name in _NUMERIC_FIELDS:
            setattr(total, name, getattr(total, name) + getattr(agg, name))
        total.request_count += agg.request_count
        total.models |= agg.models
        _widen(total.time_range, agg.time_range.start, agg.time_range.end)
    return total


class UsageAggregator:
    """Builds ProjectUsage / GlobalUsage from a LogStoreReader."""

    def __init__(self, reader: LogStoreReader, max_workers: int = 1) -> None:
        self.reader = reader
        self.max_workers = max(1, max_workers)

    def aggregate_conversation(
        self,
        conversation: ConversationFile,
        date_range: DateRange | None = None,
    ) -> ConversationUsage:
        if date_range is None:
            usage = fold(conversation.records)
        else:
            usage = fold(r for r in conversation.records if date_range.contains(r.timestamp))
        return ConversationUsage(
            file_name=conversation.file_name,
            modified_time=conversation.modified_time,
            usage=usage,
        )

    def aggregate_project(self, project_id: str, date_range: DateRange | None = None) -> ProjectUsage:
        conversations = self.reader.load_conversations(project_id)
        breakdown = [self.aggregate_conversation(c, date_range) for c in conversations]
        if date_range is not None:
            breakdown = [c for c in breakdown if c.usage.request_count > 0]

        project = ProjectUsage(
            project_id=project_id,
            conversation_count=len(breakdown),
            conversations=breakdown,
        )
        merge((c.usage for c in breakdown), into=project)
        return project

    def aggregate_all(self, date_range: DateRange | None = None) -> GlobalUsage:
        """Per-project usage, summed into global totals."""
        project_ids = self.reader.list_projects()
        if self.max_workers > 1 and len(project_ids) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                projects = list(pool.map(lambda pid: self.aggregate_project(pid, date_range), project_ids))
        else:
            projects = [self.aggregate_project(pid, date_range) for pid in project_ids]

        usage = GlobalUsage()
        for project in projects:
            usage.projects[project.project_id] = project
            if project.total_tokens > 0:
                usage.project_count += 1
        merge(projects, into=usage)

        logger.debug(
            "Aggregated %d projects (%d active), %d requests",
            len(projects), usage.project_count, usage.request_count,
        )
        return usage

    def project_details(self, project_id: str) -> ProjectLookup:
        """Per-conversation breakdown for one project, or a not-found result."""
        if not self.reader.has_project(project_id):
            return ProjectLookup(project_id=project_id, error=f"Project '{project_id}' not found")
        project = self.aggregate_project(project_id)
        if project.conversation_count == 0:
            return ProjectLookup(
                project_id=project_id,
                error="No conversations found for this project",
            )
        return ProjectLookup(project_id=project_id, usage=project)
