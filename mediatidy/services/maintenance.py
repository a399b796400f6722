"""Library maintenance: reconcile the index with disk, repair stored paths.

Both operations only talk to the store they are given. A dry run hands them
an in-memory snapshot of the index, so nothing reaches disk.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..core.config import INDEX_FILENAME, THUMBNAIL_DIRNAME
from ..core.errors import FilesystemError
from ..core.models import FileRecord, MediaKind, RecordStatus
from ..core.protocols import IndexStore
from ..engines.classifier import builtin_kind
from ..engines.fingerprint import fingerprint_file
from ..engines.metadata import MetadataResolver
from .scanner import DirectoryScanner

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RescanResult:
    """Outcome of reconciling a library with its index."""
    checked: int = 0
    requeued: int = 0
    orphaned: int = 0
    added: int = 0
    failed: int = 0

    @property
    def removed(self) -> int:
        return self.requeued + self.orphaned

    def summary(self) -> dict[str, int]:
        return {
            "checked": self.checked,
            "removed": self.removed,
            "requeued": self.requeued,
            "orphaned": self.orphaned,
            "added": self.added,
            "failed": self.failed,
        }


@dataclass(slots=True)
class FixDbResult:
    """Outcome of repairing stored paths."""
    checked: int = 0
    fixed: int = 0

    def summary(self) -> dict[str, int]:
        return {"checked": self.checked, "fixed": self.fixed}


def kind_from_library_path(library: Path, path: Path) -> MediaKind:
    """Infer the kind of a library file from its top-level folder."""
    try:
        parts = path.relative_to(library).parts
    except ValueError:
        parts = ()
    if len(parts) > 1:
        return MediaKind.from_name(parts[0])
    return builtin_kind(path) or MediaKind.UNKNOWN


def collapse_dot_segments(value: Optional[str]) -> Optional[str]:
    """Collapse `/./` segments and a trailing `/.` in a stored path.

    >>> collapse_dot_segments("/a/./b.jpg")
    '/a/b.jpg'
    """
    if not value:
        return value
    while "/./" in value:
        value = value.replace("/./", "/")
    if value.endswith("/."):
        value = value[:-2] or "/"
    return value


def rescan(
    library: Path,
    store: IndexStore,
    resolver: Optional[MetadataResolver] = None,
) -> RescanResult:
    """Reconcile the index of `library` with the files actually there.

    Records whose destination file is gone are removed; if the source still
    exists it will be picked up again by the next run. Library files the
    index does not know are added as copied, with the library path as both
    source and destination.

    Raises:
        IndexStoreError: The index could not be read or written.
    """
    result = RescanResult()
    library = library.resolve()

    for record in store.scan_all():
        result.checked += 1
        if record.dest_path is None or Path(record.dest_path).exists():
            continue
        if Path(record.source_path).exists():
            result.requeued += 1
            logger.info("Re-queued %s (missing %s)", record.source_path, record.dest_path)
        else:
            result.orphaned += 1
            logger.info("Dropped orphan %s", record.dest_path)
        store.remove(record.fingerprint)

    scanner = DirectoryScanner(
        skip_dirs=[library / THUMBNAIL_DIRNAME],
        skip_files=[library / INDEX_FILENAME],
    )
    for path in scanner.walk(library):
        if store.find_by_dest_path(str(path)) is not None:
            continue
        try:
            record = _library_record(library, path, resolver)
        except FilesystemError as e:
            logger.warning("%s", e)
            result.failed += 1
            continue
        if store.lookup(record.fingerprint) is not None:
            logger.debug("%s duplicates an indexed file", path)
            continue
        store.upsert(record)
        result.added += 1
        logger.info("Indexed %s", path)

    return result


def _library_record(library: Path, path: Path, resolver: Optional[MetadataResolver]) -> FileRecord:
    kind = kind_from_library_path(library, path)
    fingerprint = fingerprint_file(path)
    try:
        size_bytes = path.stat().st_size
    except OSError as e:
        raise FilesystemError(f"Cannot stat {path}: {e}") from e

    record = FileRecord(
        fingerprint=fingerprint,
        source_path=str(path),
        dest_path=str(path),
        media_kind=kind,
        status=RecordStatus.COPIED,
        size_bytes=size_bytes,
    )
    if resolver is not None:
        metadata = resolver.resolve(path, kind)
        record.captured_at = metadata.captured_at
        record.date_source = metadata.date_source
    return record


def fixdb(store: IndexStore) -> FixDbResult:
    """Rewrite stored paths containing `/./` into their collapsed form.

    Raises:
        IndexStoreError: The index could not be read or written.
    """
    result = FixDbResult()
    for record in store.scan_all():
        result.checked += 1
        source = collapse_dot_segments(record.source_path)
        dest = collapse_dot_segments(record.dest_path)
        if source == record.source_path and dest == record.dest_path:
            continue
        logger.debug("Fixing %s -> %s", record.source_path, source)
        record.source_path = source
        record.dest_path = dest
        store.upsert(record)
        result.fixed += 1
    return result
