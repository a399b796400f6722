"""Tests for core domain models."""
import pytest
from datetime import datetime

from mediatidy.core.models import (
    FileState,
    MediaKind,
    RecordStatus,
    ResolvedMetadata,
    RunStats,
)


class TestMediaKind:
    """Tests for MediaKind."""

    def test_from_name_known(self):
        assert MediaKind.from_name("Video") == MediaKind.VIDEO

    def test_from_name_unknown_is_custom(self):
        assert MediaKind.from_name("scans") == MediaKind.CUSTOM


class TestStatuses:
    """Tests for status and state helpers."""

    def test_record_status_terminal(self):
        assert not RecordStatus.PENDING.is_terminal
        assert RecordStatus.FAILED.is_terminal

    def test_handled_excludes_failed(self):
        assert RecordStatus.COPIED.is_handled
        assert RecordStatus.SKIPPED.is_handled
        assert not RecordStatus.FAILED.is_handled
        assert not RecordStatus.PENDING.is_handled

    def test_file_state_terminal(self):
        terminal = {s for s in FileState if s.is_terminal}
        assert terminal == {FileState.FINALIZED, FileState.FAILED, FileState.DROPPED}


class TestResolvedMetadata:
    """Tests for ResolvedMetadata."""

    def test_fallback_sources(self):
        assert ResolvedMetadata(datetime(2020, 1, 1), "file_mtime").is_fallback
        assert ResolvedMetadata(None).is_fallback
        assert not ResolvedMetadata(datetime(2020, 1, 1), "exif").is_fallback


class TestRunStats:
    """Tests for run counters."""

    def test_record_outcomes(self):
        stats = RunStats()
        stats.record(RecordStatus.COPIED, 100)
        stats.record(RecordStatus.MOVED, 50)
        stats.record(RecordStatus.SKIPPED, 999)
        stats.record(RecordStatus.FAILED)

        assert stats.imported == 2
        assert stats.bytes_moved == 150
        assert stats.skipped == 1
        assert stats.failed == 1

    def test_pending_rejected(self):
        with pytest.raises(ValueError):
            RunStats().record(RecordStatus.PENDING)

    def test_snapshot_is_independent(self):
        stats = RunStats(scanned=1)
        snap = stats.snapshot()
        stats.scanned += 1

        assert snap.scanned == 1
        assert stats.scanned == 2

    def test_summary(self):
        stats = RunStats(scanned=3, imported=2, skipped=1)
        assert stats.summary() == {
            "scanned": 3,
            "imported": 2,
            "skipped": 1,
            "failed": 0,
            "bytes_moved": 0,
        }
