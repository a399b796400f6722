"""Application context - service wiring for CLI commands.

Sets up everything a command needs in the right order and tears it down
again, so the CLI never builds collaborators by hand.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ..core.config import RunContext, index_path_for
from ..core.errors import FilesystemError
from ..core.models import RunStats
from ..core.protocols import ProgressReporter
from ..engines.classifier import PathClassifier
from ..engines.metadata import ExifToolMetadataExtractor, MetadataResolver
from ..engines.thumbnails import PillowThumbnailGenerator
from ..persistence.database import SQLiteIndexStore, open_index
from .channel import ProgressChannel
from .engine import EngineDependencies, TidyEngine, TidyWorker
from .file_ops import FileManager
from .planner import DestinationPlanner
from .scanner import DirectoryScanner

logger = logging.getLogger(__name__)


class AppContext:
    """Owns the services of one tidy run.

    Usage:
        with AppContext(ctx) as app:
            engine = TidyEngine(ctx, app.deps, channel)
            ...
    """

    def __init__(self, ctx: RunContext):
        self._ctx = ctx
        self._store: Optional[SQLiteIndexStore] = None
        self._extractor: Optional[ExifToolMetadataExtractor] = None
        self._deps: Optional[EngineDependencies] = None

    def initialize(self) -> None:
        """Open the index and build every collaborator.

        Raises:
            FilesystemError: The destination directory cannot be created.
            IndexStoreError: The index cannot be opened.
        """
        if self._deps is not None:
            return
        ctx = self._ctx

        if not ctx.dry_run:
            try:
                ctx.dest_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise FilesystemError(f"Cannot create destination {ctx.dest_dir}: {e}") from e

        self._store = open_index(ctx.index_path, dry_run=ctx.dry_run)
        self._extractor = ExifToolMetadataExtractor()
        file_manager = FileManager(ctx.dest_dir, move_files=ctx.move_files)

        self._deps = EngineDependencies(
            store=self._store,
            classifier=PathClassifier(ctx),
            resolver=MetadataResolver(self._extractor),
            planner=DestinationPlanner(self._store, file_manager),
            file_manager=file_manager,
            scanner=DirectoryScanner(
                skip_dirs=[ctx.dest_dir],
                skip_files=[ctx.index_path],
            ),
            thumbnailer=PillowThumbnailGenerator() if ctx.create_thumbnails else None,
        )
        logger.debug("Services ready (index %s)", self._store.path)

    @property
    def deps(self) -> EngineDependencies:
        if self._deps is None:
            self.initialize()
        return self._deps

    @property
    def store(self) -> SQLiteIndexStore:
        return self.deps.store

    def shutdown(self) -> None:
        """Close the index and the metadata extractor."""
        if self._extractor:
            self._extractor.close()
            self._extractor = None
        if self._store:
            self._store.close()
            self._store = None
        self._deps = None

    def __enter__(self) -> "AppContext":
        self.initialize()
        return self

    def __exit__(self, *args) -> None:
        self.shutdown()


def run_tidy(ctx: RunContext, reporter: ProgressReporter, deps: Optional[EngineDependencies] = None) -> RunStats:
    """Run the engine on a worker thread while `reporter` consumes its events.

    Args:
        ctx: Run configuration.
        reporter: Consumer of progress events, runs on the calling thread.
        deps: Prebuilt collaborators; built from `ctx` when omitted.

    Returns:
        Final counters.

    Raises:
        IndexStoreError: The run was aborted by an index failure.
    """
    if deps is not None:
        return _run_with(ctx, deps, reporter)
    with AppContext(ctx) as app:
        return _run_with(ctx, app.deps, reporter)


def _run_with(ctx: RunContext, deps: EngineDependencies, reporter: ProgressReporter) -> RunStats:
    channel = ProgressChannel()
    worker = TidyWorker(TidyEngine(ctx, deps, channel))
    worker.start()
    reporter.consume(channel)
    return worker.join_result()


def open_library_index(directory: Path, dry_run: bool = False) -> SQLiteIndexStore:
    """Open the index of an existing library for maintenance commands."""
    return open_index(index_path_for(directory), dry_run=dry_run)


def create_resolver() -> MetadataResolver:
    return MetadataResolver(ExifToolMetadataExtractor())
