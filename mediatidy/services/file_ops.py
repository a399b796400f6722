"""File operations service."""
from __future__ import annotations

import logging
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..core.errors import FilesystemError
from ..core.models import RecordStatus

logger = logging.getLogger(__name__)


UNKNOWN_DATE_FOLDER = "unknown"


class FileManager:
    """Places files into the library.

    Never overwrites: a target that appeared since planning is an error.
    """

    def __init__(self, output_root: Path, move_files: bool = False):
        """Initialize file manager.

        Args:
            output_root: Root directory of the organized library.
            move_files: Move instead of copy.
        """
        self._output_root = output_root
        self._move_files = move_files

    @property
    def placed_status(self) -> RecordStatus:
        """Status recorded for a placed (or simulated) file."""
        return RecordStatus.MOVED if self._move_files else RecordStatus.COPIED

    def build_output_directory(self, kind_folder: str, date_taken: Optional[datetime]) -> Path:
        """Build output directory path from kind and date.

        Args:
            kind_folder: Top-level folder for the media kind.
            date_taken: Capture date of the media.

        Returns:
            `<root>/<kind>/<YYYY>/<YYYY-MM>`, or `<root>/<kind>/unknown`.
        """
        base = self._output_root / kind_folder
        if date_taken is None:
            return base / UNKNOWN_DATE_FOLDER

        year = str(date_taken.year)
        month = f"{date_taken.month:02d}"
        return base / year / f"{year}-{month}"

    def place(self, source: Path, target: Path) -> RecordStatus:
        """Copy or move `source` to `target`.

        Returns:
            COPIED or MOVED.

        Raises:
            FilesystemError: Placement failed or the target already exists.
        """
        if target.exists():
            raise FilesystemError(f"Refusing to overwrite {target}")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            if self._move_files:
                shutil.move(str(source), str(target))
            else:
                shutil.copy2(source, target)
        except (OSError, shutil.Error) as e:
            raise FilesystemError(f"Cannot place {source} at {target}: {e}") from e

        logger.debug("%s %s -> %s", self.placed_status.value, source, target)
        return self.placed_status

    def set_timestamps(self, path: Path, when: datetime) -> None:
        """Set access and modification time of `path` to `when`.

        Raises:
            FilesystemError: The timestamps could not be changed.
        """
        ts = when.timestamp()
        try:
            os.utime(path, (ts, ts))
        except OSError as e:
            raise FilesystemError(f"Cannot set timestamps on {path}: {e}") from e

