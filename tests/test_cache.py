"""Tests for the parsed-file cache and its use by the reader."""

from __future__ import annotations

import os
from pathlib import Path

from claude_usage.tracker.cache import ReadCache
from claude_usage.tracker.models import UsageRecord
from claude_usage.tracker.reader import LogStoreReader


def _record(tokens: int) -> UsageRecord:
    return UsageRecord(
        timestamp=None,
        model=None,
        input_tokens=tokens,
        output_tokens=0,
        cache_creation_tokens=0,
        cache_read_tokens=0,
        total_tokens=tokens,
    )


class TestReadCache:
    def test_hit_within_timeout(self, clock):
        cache = ReadCache(timeout=300, clock=clock)
        cache.put("/a.jsonl", 1, [_record(5)])
        clock.advance(299)
        assert cache.get("/a.jsonl", 1) == [_record(5)]
        assert cache.hits == 1

    def test_expires_after_timeout(self, clock):
        cache = ReadCache(timeout=300, clock=clock)
        cache.put("/a.jsonl", 1, [_record(5)])
        clock.advance(301)
        assert cache.get("/a.jsonl", 1) is None
        assert len(cache) == 0
        assert cache.misses == 1

    def test_new_mtime_misses_and_evicts_old_version(self, clock):
        cache = ReadCache(clock=clock)
        cache.put("/a.jsonl", 1, [_record(5)])
        assert cache.get("/a.jsonl", 2) is None
        assert len(cache) == 0

    def test_put_replaces_older_version(self, clock):
        cache = ReadCache(clock=clock)
        cache.put("/a.jsonl", 1, [_record(5)])
        cache.put("/a.jsonl", 2, [_record(7)])
        assert len(cache) == 1
        assert cache.get("/a.jsonl", 2) == [_record(7)]

    def test_clear_resets_everything(self, clock):
        cache = ReadCache(clock=clock)
        cache.put("/a.jsonl", 1, [])
        cache.get("/a.jsonl", 1)
        cache.get("/b.jsonl", 1)
        cache.clear()
        stats = cache.stats()
        assert (stats.size, stats.hits, stats.misses) == (0, 0, 0)

    def test_stats_to_dict(self, clock):
        cache = ReadCache(timeout=120, clock=clock)
        cache.put("/a.jsonl", 1, [])
        cache.put("/b.jsonl", 1, [])
        assert cache.stats().to_dict() == {"size": 2, "timeout": 120, "hits": 0, "misses": 0}


class TestReaderCaching:
    def test_second_read_is_not_reparsed(self, reader: LogStoreReader, projects_dir: Path):
        path = projects_dir / "alpha" / "conv-1.jsonl"
        first = reader.read_file(path)
        assert reader.parse_count == 1
        second = reader.read_file(path)
        assert reader.parse_count == 1
        assert second == first

    def test_timeout_forces_reparse(self, reader: LogStoreReader, projects_dir: Path, clock):
        path = projects_dir / "alpha" / "conv-1.jsonl"
        reader.read_file(path)
        clock.advance(301)
        reader.read_file(path)
        assert reader.parse_count == 2

    def test_modified_file_is_reparsed(self, reader: LogStoreReader, projects_dir: Path, write_jsonl):
        path = projects_dir / "beta" / "b.jsonl"
        os.utime(path, (1_700_000_000, 1_700_000_000))
        assert [r.total_tokens for r in reader.read_file(path)] == [3]

        write_jsonl(path, [{"usage": {"input_tokens": 40, "output_tokens": 2}}])
        os.utime(path, (1_700_000_100, 1_700_000_100))
        assert [r.total_tokens for r in reader.read_file(path)] == [42]
        assert reader.parse_count == 2

    def test_full_scan_twice_parses_each_file_once(self, reader: LogStoreReader):
        list(reader.iter_records())
        parsed = reader.parse_count
        list(reader.iter_records())
        assert reader.parse_count == parsed == 4

    def test_clear_cache_forces_reparse(self, reader: LogStoreReader):
        list(reader.iter_records())
        reader.clear_cache()
        assert reader.cache_stats().size == 0
        list(reader.iter_records())
        assert reader.parse_count == 8

    def test_cache_stats_after_scan(self, reader: LogStoreReader):
        list(reader.iter_records())
        stats = reader.cache_stats()
        assert stats.size == 4
        assert stats.timeout == 300
