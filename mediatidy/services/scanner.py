"""Directory scanning service."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Iterator

logger = logging.getLogger(__name__)


class DirectoryScanner:
    """Walks a directory tree in a deterministic order.

    Entries are visited sorted by name, depth first, so repeated runs over
    an unchanged tree see files in the same order.
    """

    def __init__(
        self,
        skip_dirs: Iterable[Path] = (),
        skip_files: Iterable[Path] = (),
        follow_symlinks: bool = False,
    ):
        """Initialize the scanner.

        Args:
            skip_dirs: Directories whose subtree is never entered.
            skip_files: Files never yielded.
            follow_symlinks: Whether to follow symbolic links.
        """
        self._skip_dirs = {p.resolve() for p in skip_dirs}
        self._skip_files = {p.resolve() for p in skip_files}
        self._follow_symlinks = follow_symlinks

    def walk(self, root: Path) -> Iterator[Path]:
        """Yield every regular file under `root`."""
        yield from self._scan_directory(root.resolve())

    def _scan_directory(self, directory: Path) -> Iterator[Path]:
        try:
            entries = sorted(directory.iterdir(), key=lambda p: p.name)
        except OSError as e:
            logger.warning("Cannot list %s: %s", directory, e)
            return

        for entry in entries:
            if entry.is_symlink() and not self._follow_symlinks:
                continue

            if entry.is_dir():
                if entry.resolve() in self._skip_dirs:
                    logger.debug("Skipping %s", entry)
                    continue
                yield from self._scan_directory(entry)
            elif entry.is_file():
                if entry.resolve() in self._skip_files:
                    continue
                yield entry

