"""Tidy engine - per-file pipeline driven by an explicit state machine.

Each discovered file moves through:

    DISCOVERED -> CLASSIFIED -> METADATA_RESOLVED -> DEDUP_CHECKED
               -> PLANNED -> PLACED -> FINALIZED

Any per-file error sends the file to FAILED and the run continues.
Out-of-scope files go to DROPPED without an event. An `IndexStoreError`
aborts the whole run.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from ..core.config import RunContext
from ..core.errors import FilesystemError, IndexStoreError, MediaTidyError, ThumbnailError
from ..core.models import (
    Classification, FileRecord, FileState, PlanResult, ProgressEvent,
    RecordStatus, ResolvedMetadata, RunStats,
)
from ..core.protocols import IndexStore, ThumbnailGenerator
from ..engines.classifier import PathClassifier
from ..engines.fingerprint import fingerprint_file
from ..engines.metadata import MetadataResolver
from ..engines.thumbnails import thumbnail_path_for
from .channel import ProgressChannel
from .file_ops import FileManager
from .planner import DestinationPlanner
from .scanner import DirectoryScanner

logger = logging.getLogger(__name__)


@dataclass
class EngineDependencies:
    """All collaborators needed by the engine.

    This is explicitly passed in - no globals or singletons.
    """
    store: IndexStore
    classifier: PathClassifier
    resolver: MetadataResolver
    planner: DestinationPlanner
    file_manager: FileManager
    scanner: DirectoryScanner
    thumbnailer: Optional[ThumbnailGenerator] = None


@dataclass
class FileJob:
    """Working state of one file while it moves through the pipeline."""
    path: Path
    state: FileState = FileState.DISCOVERED
    classification: Optional[Classification] = None
    metadata: Optional[ResolvedMetadata] = None
    record: Optional[FileRecord] = None
    plan: Optional[PlanResult] = None
    status: RecordStatus = RecordStatus.PENDING
    index_hit: bool = False
    error: Optional[str] = None


class TidyEngine:
    """Runs the tidy pipeline over a source tree.

    Files are processed one at a time in walk order. Every finalized or
    failed file produces exactly one `ProgressEvent` on the channel.
    """

    def __init__(self, ctx: RunContext, deps: EngineDependencies, channel: ProgressChannel):
        """Initialize engine with config and dependencies.

        Args:
            ctx: Run configuration.
            deps: All required collaborators.
            channel: Where progress events are sent. Closed when `run` returns.
        """
        self._ctx = ctx
        self._deps = deps
        self._channel = channel
        self._stats = RunStats()
        self._handlers: dict[FileState, Callable[[FileJob], FileState]] = {
            FileState.DISCOVERED: self._classify,
            FileState.CLASSIFIED: self._resolve_metadata,
            FileState.METADATA_RESOLVED: self._check_index,
            FileState.DEDUP_CHECKED: self._plan,
            FileState.PLANNED: self._place,
            FileState.PLACED: self._post_place,
        }

    @property
    def stats(self) -> RunStats:
        return self._stats

    def run(self) -> RunStats:
        """Process every file under the source directory.

        Returns:
            Final counters.

        Raises:
            IndexStoreError: The index could not be read or written.
        """
        processed = 0
        try:
            for path in self._deps.scanner.walk(self._ctx.source_dir):
                if self.process_file(path) is FileState.DROPPED:
                    continue
                processed += 1
                if self._ctx.limit and processed >= self._ctx.limit:
                    logger.info("Limit of %d files reached", self._ctx.limit)
                    break
        finally:
            self._channel.close()
        return self._stats.snapshot()

    def process_file(self, path: Path) -> FileState:
        """Drive a single file to a terminal state."""
        job = FileJob(path=path)
        while not job.state.is_terminal:
            handler = self._handlers.get(job.state)
            if handler is None:
                raise RuntimeError(f"No handler for state {job.state.name}")
            try:
                job.state = handler(job)
            except IndexStoreError:
                raise
            except MediaTidyError as e:
                logger.debug("%s failed in %s: %s", path, job.state.name, e)
                job.error = str(e)
                job.state = FileState.FAILED
            except Exception as e:
                logger.warning("Unexpected error on %s in %s: %r", path, job.state.name, e)
                job.error = f"{type(e).__name__}: {e}"
                job.state = FileState.FAILED

        if job.state is FileState.FINALIZED:
            self._finalize(job)
        elif job.state is FileState.FAILED:
            self._fail(job)
        return job.state

    # State handlers

    def _classify(self, job: FileJob) -> FileState:
        job.classification = self._deps.classifier.classify(job.path)
        if not job.classification.in_scope:
            return FileState.DROPPED
        self._stats.scanned += 1
        return FileState.CLASSIFIED

    def _resolve_metadata(self, job: FileJob) -> FileState:
        job.metadata = self._deps.resolver.resolve(job.path, job.classification.kind)
        return FileState.METADATA_RESOLVED

    def _check_index(self, job: FileJob) -> FileState:
        fingerprint = fingerprint_file(job.path)
        try:
            size_bytes = job.path.stat().st_size
        except OSError as e:
            raise FilesystemError(f"Cannot stat {job.path}: {e}") from e

        job.record = FileRecord(
            fingerprint=fingerprint,
            source_path=str(job.path),
            media_kind=job.classification.kind,
            captured_at=job.metadata.captured_at,
            date_source=job.metadata.date_source,
            size_bytes=size_bytes,
        )

        existing = self._deps.store.lookup(fingerprint)
        if existing is not None and existing.status.is_handled:
            logger.debug("%s already indexed as %s", job.path, existing.status.value)
            job.record = existing
            job.index_hit = True
            job.status = RecordStatus.SKIPPED
        elif existing is not None:
            logger.debug("Retrying %s (was %s)", job.path, existing.status.value)
        return FileState.DEDUP_CHECKED

    def _plan(self, job: FileJob) -> FileState:
        if job.index_hit:
            return FileState.FINALIZED

        job.plan = self._deps.planner.plan(job.record, self._ctx)
        job.record.dest_path = str(job.plan.dest_path)
        if job.plan.duplicate:
            job.status = RecordStatus.SKIPPED
            return FileState.FINALIZED

        self._deps.store.upsert(job.record)
        return FileState.PLANNED

    def _place(self, job: FileJob) -> FileState:
        if self._ctx.simulated:
            job.status = self._deps.file_manager.placed_status
        else:
            job.status = self._deps.file_manager.place(job.path, job.plan.dest_path)
        return FileState.PLACED

    def _post_place(self, job: FileJob) -> FileState:
        if self._ctx.simulated:
            return FileState.FINALIZED

        dest = job.plan.dest_path
        if self._ctx.fix_creation_dates and not job.metadata.is_fallback:
            try:
                self._deps.file_manager.set_timestamps(dest, job.metadata.captured_at)
            except MediaTidyError as e:
                logger.warning("%s", e)

        thumbnailer = self._deps.thumbnailer
        if self._ctx.create_thumbnails and thumbnailer and thumbnailer.supports(job.record.media_kind):
            target = thumbnail_path_for(self._ctx.thumbnail_root, self._ctx.dest_dir, dest)
            try:
                thumbnailer.generate(dest, job.record.media_kind, target)
            except ThumbnailError as e:
                logger.warning("%s", e)
            except Exception as e:
                logger.warning("Thumbnail for %s failed: %r", dest, e)
        return FileState.FINALIZED

    # Terminal states

    def _finalize(self, job: FileJob) -> None:
        if not job.index_hit:
            job.record.status = job.status
            job.record.error = None
            self._deps.store.upsert(job.record)
        self._stats.record(job.status, job.record.size_bytes)
        self._emit(job, FileState.FINALIZED)

    def _fail(self, job: FileJob) -> None:
        job.status = RecordStatus.FAILED
        if job.record is not None:
            job.record.status = RecordStatus.FAILED
            job.record.error = job.error
            self._deps.store.upsert(job.record)
        self._stats.record(RecordStatus.FAILED)
        self._emit(job, FileState.FAILED)

    def _emit(self, job: FileJob, state: FileState) -> None:
        dest = job.record.dest_path if job.record else None
        self._channel.send(ProgressEvent(
            path=job.path,
            state=state,
            status=job.status,
            stats=self._stats.snapshot(),
            dest_path=Path(dest) if dest else None,
            error=job.error,
        ))


class TidyWorker(threading.Thread):
    """Runs a `TidyEngine` on its own thread.

    A fatal error raised by the engine is kept and re-raised by `join_result`
    on the calling thread.
    """

    def __init__(self, engine: TidyEngine):
        super().__init__(name="mediatidy-engine", daemon=True)
        self._engine = engine
        self._stats: Optional[RunStats] = None
        self._error: Optional[BaseException] = None

    def run(self) -> None:
        try:
            self._stats = self._engine.run()
        except BaseException as e:
            self._error = e

    def join_result(self) -> RunStats:
        """Wait for the engine and return its stats.

        Raises:
            Whatever fatal error stopped the engine.
        """
        self.join()
        if self._error is not None:
            raise self._error
        return self._stats if self._stats is not None else self._engine.stats.snapshot()
