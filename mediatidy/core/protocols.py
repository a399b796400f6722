"""Protocol definitions (interfaces) for dependency injection."""
from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Iterable, Iterator, Optional, Protocol

from .models import FileRecord, MediaKind, ProgressEvent, RunStats


class MetadataExtractor(Protocol):
    """Reads an embedded capture timestamp from a media file.

    Implementations:
    - ExifToolMetadataExtractor: Pillow EXIF for photos, exiftool for the rest
    """

    @abstractmethod
    def extract_datetime(self, path: Path, kind: MediaKind) -> tuple[Optional[datetime], str]:
        """Return (timestamp, source) or (None, "unknown") if no usable tag.

        Raises:
            ExtractionError: The metadata could not be read at all.
        """
        ...

    @abstractmethod
    def close(self) -> None:
        """Clean up resources."""
        ...


class ThumbnailGenerator(Protocol):
    """Produces a thumbnail image for a placed file."""

    @abstractmethod
    def supports(self, kind: MediaKind) -> bool:
        """Whether thumbnails can be made for this kind."""
        ...

    @abstractmethod
    def generate(self, source: Path, kind: MediaKind, target: Path) -> Path:
        """Write a thumbnail for `source` to `target`.

        Raises:
            ThumbnailError: Unsupported input or the conversion failed.
        """
        ...


class IndexStore(Protocol):
    """Interface for the persistent file index."""

    @abstractmethod
    def lookup(self, fingerprint: str) -> Optional[FileRecord]:
        """Get a record by fingerprint."""
        ...

    @abstractmethod
    def upsert(self, record: FileRecord) -> None:
        """Insert or update a record."""
        ...

    @abstractmethod
    def scan_all(self) -> Iterator[FileRecord]:
        """Iterate over every record."""
        ...

    @abstractmethod
    def remove(self, fingerprint: str) -> bool:
        """Delete a record. Returns True if one existed."""
        ...

    @abstractmethod
    def find_by_dest_path(self, dest_path: str) -> Optional[FileRecord]:
        """Get the record that claims a destination path."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Close the underlying connection."""
        ...


class ProgressReporter(Protocol):
    """User-facing output of a command.

    Implementations:
    - RichProgressReporter: live spinner and tables
    - QuietProgressReporter: errors and the final summary only
    """

    @abstractmethod
    def consume(self, events: Iterable[ProgressEvent]) -> Optional[RunStats]:
        """Render events until the channel closes, return the last stats seen."""
        ...

    @abstractmethod
    def info(self, message: str) -> None:
        ...

    @abstractmethod
    def error(self, message: str) -> None:
        ...

    @abstractmethod
    def print_header(self, title: str) -> None:
        ...

    @abstractmethod
    def print_config(self, config_items: dict) -> None:
        ...

    @abstractmethod
    def print_stats(self, stats: RunStats, elapsed_seconds: float = 0.0) -> None:
        """Print the final run summary. Never suppressed."""
        ...

    @abstractmethod
    def print_summary(self, title: str, counts: dict[str, int]) -> None:
        """Print a maintenance summary. Never suppressed."""
        ...
