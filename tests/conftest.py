"""Shared test fixtures."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from claude_usage.tracker.cache import ReadCache
from claude_usage.tracker.reader import LogStoreReader


class FakeClock:
    """Manually advanced stand-in for time.monotonic."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _write_jsonl(path: Path, entries: list[Any]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        for entry in entries:
            f.write((entry if isinstance(entry, str) else json.dumps(entry)) + "\n")
    return path


@pytest.fixture
def write_jsonl() -> Callable[[Path, list[Any]], Path]:
    """Write dicts (as JSON) or raw strings, one per line."""
    return _write_jsonl


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def tmp_claude_dir(tmp_path: Path) -> Path:
    """A fake ~/.claude directory with three projects in different log shapes.

    alpha/conv-1: Claude Code ``message.usage`` entry (2900 tokens) and a
                  top-level ``usage`` entry (30 tokens)
    alpha/conv-2: ``response.usage`` entry with a reported total (12 tokens)
    beta/b:       ``metadata.usage`` entry in camelCase (3 tokens)
    empty/e:      user messages only, no usage
    """
    claude_dir = tmp_path / ".claude"
    projects = claude_dir / "projects"

    _write_jsonl(
        projects / "alpha" / "conv-1.jsonl",
        [
            {
                "type": "user",
                "message": {"role": "user", "content": "Build a landing page"},
                "timestamp": "2026-02-19T10:00:00.000Z",
            },
            {
                "type": "assistant",
                "message": {
                    "role": "assistant",
                    "model": "claude-sonnet-4-6",
                    "usage": {
                        "input_tokens": 100,
                        "cache_creation_input_tokens": 500,
                        "cache_read_input_tokens": 2000,
                        "output_tokens": 300,
                    },
                },
                "timestamp": "2026-02-19T10:00:05.000Z",
            },
            {
                "model": "claude-opus-4-6",
                "usage": {"input_tokens": 10, "output_tokens": 20},
                "created_at": "2026-02-19T11:00:00Z",
            },
        ],
    )
    _write_jsonl(
        projects / "alpha" / "conv-2.jsonl",
        [
            {
                "timestamp": "2026-02-18T14:00:00Z",
                "response": {
                    "model": "claude-haiku-4-5",
                    "usage": {"prompt_tokens": 5, "completion_tokens": 5, "total_tokens": 12},
                },
            },
        ],
    )
    _write_jsonl(
        projects / "beta" / "b.jsonl",
        [
            {
                "timestamp": "2026-02-17T09:30:00Z",
                "metadata": {"usage": {"inputTokens": 1, "outputTokens": 2}},
            },
        ],
    )
    _write_jsonl(
        projects / "empty" / "e.jsonl",
        [{"type": "user", "message": {"role": "user", "content": "hi"}}],
    )
    return claude_dir


@pytest.fixture
def projects_dir(tmp_claude_dir: Path) -> Path:
    return tmp_claude_dir / "projects"


@pytest.fixture
def reader(projects_dir: Path, clock: FakeClock) -> LogStoreReader:
    return LogStoreReader(projects_dir, cache=ReadCache(timeout=300, clock=clock))
