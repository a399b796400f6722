"""Domain models."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional


class MediaKind(Enum):
    """Classification of a file, drives destination bucketing."""
    PHOTO = "photo"
    VIDEO = "video"
    DOCUMENT = "document"
    CUSTOM = "custom"
    UNKNOWN = "unknown"

    @classmethod
    def from_name(cls, name: str) -> "MediaKind":
        """Map a user-supplied type name onto a kind, `CUSTOM` if unknown."""
        try:
            return cls(name.lower())
        except ValueError:
            return cls.CUSTOM


class RecordStatus(Enum):
    """Lifecycle status of an indexed file."""
    PENDING = "pending"
    COPIED = "copied"
    MOVED = "moved"
    SKIPPED = "skipped"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not RecordStatus.PENDING

    @property
    def is_handled(self) -> bool:
        """Terminal and not failed: the file needs no further work."""
        return self in (RecordStatus.COPIED, RecordStatus.MOVED, RecordStatus.SKIPPED)


class FileState(Enum):
    """States of the per-file pipeline."""
    DISCOVERED = "discovered"
    CLASSIFIED = "classified"
    METADATA_RESOLVED = "metadata_resolved"
    DEDUP_CHECKED = "dedup_checked"
    PLANNED = "planned"
    PLACED = "placed"
    FINALIZED = "finalized"
    FAILED = "failed"
    DROPPED = "dropped"

    @property
    def is_terminal(self) -> bool:
        return self in (FileState.FINALIZED, FileState.FAILED, FileState.DROPPED)


@dataclass(frozen=True, slots=True)
class Classification:
    """Result of classifying a path."""
    in_scope: bool
    kind: MediaKind = MediaKind.UNKNOWN


@dataclass(frozen=True, slots=True)
class ResolvedMetadata:
    """Capture timestamp and where it came from."""
    captured_at: Optional[datetime]
    date_source: str = "unknown"
    error: Optional[str] = None

    @property
    def is_fallback(self) -> bool:
        """True when the timestamp is the filesystem mtime, not embedded metadata."""
        return self.date_source in ("file_mtime", "unknown")


@dataclass
class FileRecord:
    """A row in the index, one per processed source file."""
    fingerprint: str
    source_path: str
    dest_path: Optional[str] = None
    media_kind: MediaKind = MediaKind.UNKNOWN
    captured_at: Optional[datetime] = None
    status: RecordStatus = RecordStatus.PENDING
    imported_at: datetime = field(default_factory=datetime.now)
    date_source: str = "unknown"
    size_bytes: int = 0
    error: Optional[str] = None


@dataclass(frozen=True, slots=True)
class PlanResult:
    """Destination decided by the planner."""
    dest_path: Path
    duplicate: bool = False


@dataclass(slots=True)
class RunStats:
    """Counters for one run. Mutated only by the engine."""
    scanned: int = 0
    imported: int = 0
    skipped: int = 0
    failed: int = 0
    bytes_moved: int = 0

    def record(self, status: RecordStatus, size_bytes: int = 0) -> None:
        """Count one terminal per-file outcome."""
        match status:
            case RecordStatus.COPIED | RecordStatus.MOVED:
                self.imported += 1
                self.bytes_moved += size_bytes
            case RecordStatus.SKIPPED:
                self.skipped += 1
            case RecordStatus.FAILED:
                self.failed += 1
            case RecordStatus.PENDING:
                raise ValueError("pending is not a terminal outcome")

    def snapshot(self) -> "RunStats":
        return replace(self)

    def summary(self) -> dict[str, int]:
        return {
            "scanned": self.scanned,
            "imported": self.imported,
            "skipped": self.skipped,
            "failed": self.failed,
            "bytes_moved": self.bytes_moved,
        }


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    """Emitted once per finalized or failed file."""
    path: Path
    state: FileState
    status: RecordStatus
    stats: RunStats
    dest_path: Optional[Path] = None
    error: Optional[str] = None
