"""Destination path planning."""
from __future__ import annotations

import itertools
import logging
from pathlib import Path

from ..core.config import RunContext
from ..core.models import FileRecord, MediaKind, PlanResult
from ..core.protocols import IndexStore
from ..engines.fingerprint import same_content
from .file_ops import FileManager

logger = logging.getLogger(__name__)


def kind_folder(kind: MediaKind, ctx: RunContext) -> str:
    """Top-level library folder for a media kind."""
    if kind == MediaKind.CUSTOM and ctx.custom_media_type:
        return ctx.custom_media_type
    return kind.value


def suffixed_name(name: str, counter: int) -> str:
    """`photo.jpg` -> `photo_2.jpg`; counter 0 keeps the name."""
    if counter == 0:
        return name
    path = Path(name)
    return f"{path.stem}_{counter}{path.suffix}"


class DestinationPlanner:
    """Decides where a file goes in the library.

    A candidate path is taken when a file exists there or another index
    record claims it. An existing file with identical content makes the
    source a duplicate; otherwise the name gets the first free `_<n>` suffix.
    """

    def __init__(self, store: IndexStore, file_manager: FileManager):
        self._store = store
        self._file_manager = file_manager

    def plan(self, record: FileRecord, ctx: RunContext) -> PlanResult:
        """Compute the destination of `record`.

        Args:
            record: Record with fingerprint, kind and capture date resolved.
            ctx: Run configuration.

        Returns:
            The destination path, flagged as duplicate when identical
            content already sits there.
        """
        directory = self._file_manager.build_output_directory(
            kind_folder(record.media_kind, ctx),
            record.captured_at,
        )
        name = Path(record.source_path).name

        for counter in itertools.count():
            candidate = directory / suffixed_name(name, counter)
            if candidate.exists():
                if same_content(candidate, record.fingerprint):
                    logger.debug("%s already present at %s", record.source_path, candidate)
                    return PlanResult(dest_path=candidate, duplicate=True)
                continue

            claimant = self._store.find_by_dest_path(str(candidate))
            if claimant is not None and claimant.fingerprint != record.fingerprint:
                continue

            return PlanResult(dest_path=candidate)

        raise AssertionError("unreachable")
