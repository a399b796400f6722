"""Capture-date extraction and resolution."""
from __future__ import annotations

import json
import logging
import shutil
import subprocess
from datetime import datetime
from pathlib import Path
from typing import Optional

from PIL import Image, UnidentifiedImageError

from ..core.errors import ExtractionError, FilesystemError
from ..core.models import MediaKind, ResolvedMetadata
from ..core.protocols import MetadataExtractor

logger = logging.getLogger(__name__)


EXIF_IFD_POINTER = 0x8769
# DateTimeOriginal, DateTimeDigitized (Exif IFD), DateTime (IFD0)
EXIF_DATE_TAGS = (36867, 36868)
IFD0_DATE_TAG = 306

# Priority order for exiftool JSON output
EXIFTOOL_DATE_TAGS = (
    "DateTimeOriginal",
    "CreateDate",
    "MediaCreateDate",
    "TrackCreateDate",
)
EXIFTOOL_TIMEOUT = 30


def parse_exif_datetime(dt_str: str) -> Optional[datetime]:
    """Parse an EXIF/QuickTime datetime string.

    Returns None for the all-zero placeholder some cameras write.
    """
    dt_str = dt_str.strip().rstrip("\x00")
    if not dt_str or dt_str.startswith("0000"):
        return None
    # Drop sub-seconds and timezone suffixes ("2021:05:01 10:00:00.123+02:00")
    dt_str = dt_str[:19]
    formats = [
        "%Y:%m:%d %H:%M:%S",
        "%Y-%m-%d %H:%M:%S",
        "%Y/%m/%d %H:%M:%S",
        "%Y-%m-%dT%H:%M:%S",
    ]
    for fmt in formats:
        try:
            return datetime.strptime(dt_str, fmt)
        except ValueError:
            continue
    return None


class ExifToolMetadataExtractor:
    """Metadata extractor using Pillow for photos and exiftool for everything else.

    exiftool is optional: without it, photos Pillow can read still resolve,
    and other files raise `ExtractionError` so the resolver falls back to the
    filesystem timestamp.
    """

    def __init__(self, exiftool_bin: str = "exiftool"):
        """Initialize the extractor.

        Args:
            exiftool_bin: Name or path of the exiftool executable.
        """
        self._exiftool_bin = exiftool_bin
        self._exiftool_available = shutil.which(exiftool_bin) is not None
        if not self._exiftool_available:
            logger.debug("exiftool not found, video dates will fall back to file mtime")

    def extract_datetime(self, path: Path, kind: MediaKind) -> tuple[Optional[datetime], str]:
        """Extract the embedded capture date.

        Priority:
        1. EXIF DateTimeOriginal / DateTimeDigitized / DateTime (photos, Pillow)
        2. exiftool date tags (videos, and photos Pillow cannot decode)

        Returns:
            (datetime, source_description), (None, "unknown") if no tag.

        Raises:
            ExtractionError: No reader could parse the file.
        """
        if kind == MediaKind.PHOTO:
            try:
                dt = self._extract_from_exif(path)
            except ExtractionError:
                if not self._exiftool_available:
                    raise
            else:
                if dt or not self._exiftool_available:
                    return (dt, "exif") if dt else (None, "unknown")

        if not self._exiftool_available:
            raise ExtractionError(f"exiftool is not installed, cannot read {path.name}")

        dt = self._extract_with_exiftool(path)
        return (dt, "exiftool") if dt else (None, "unknown")

    def _extract_from_exif(self, path: Path) -> Optional[datetime]:
        """Extract datetime from EXIF data."""
        try:
            with Image.open(path) as img:
                exif = img.getexif()
                exif_ifd = exif.get_ifd(EXIF_IFD_POINTER) if exif else {}
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError, SyntaxError) as e:
            raise ExtractionError(f"Cannot decode {path.name}: {e}") from e

        if not exif:
            return None

        for tag_id in EXIF_DATE_TAGS:
            value = exif_ifd.get(tag_id)
            if isinstance(value, str):
                dt = parse_exif_datetime(value)
                if dt:
                    return dt

        value = exif.get(IFD0_DATE_TAG)
        if isinstance(value, str):
            return parse_exif_datetime(value)
        return None

    def _extract_with_exiftool(self, path: Path) -> Optional[datetime]:
        """Read date tags through a single exiftool invocation."""
        args = [self._exiftool_bin, "-json", "-n"]
        args.extend(f"-{tag}" for tag in EXIFTOOL_DATE_TAGS)
        args.append(str(path))
        try:
            result = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=EXIFTOOL_TIMEOUT,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ExtractionError(f"exiftool failed on {path.name}: {e}") from e

        if result.returncode != 0 or not result.stdout.strip():
            raise ExtractionError(
                f"exiftool failed on {path.name}: {result.stderr.strip() or 'no output'}"
            )

        try:
            payload = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise ExtractionError(f"Unreadable exiftool output for {path.name}") from e

        tags = payload[0] if payload else {}
        for tag in EXIFTOOL_DATE_TAGS:
            value = tags.get(tag)
            if isinstance(value, str):
                dt = parse_exif_datetime(value)
                if dt:
                    return dt
        return None

    def close(self) -> None:
        """Nothing to release; exiftool runs one process per call."""


class MetadataResolver:
    """Resolves a canonical capture timestamp for a file.

    Embedded metadata wins; otherwise the filesystem modification time is
    used and the result is marked as a fallback.
    """

    def __init__(self, extractor: MetadataExtractor):
        self._extractor = extractor

    def resolve(self, path: Path, kind: MediaKind) -> ResolvedMetadata:
        """Resolve the capture timestamp of `path`.

        Raises:
            FilesystemError: The file cannot be stat'ed.
        """
        try:
            mtime = path.stat().st_mtime
        except OSError as e:
            raise FilesystemError(f"Cannot stat {path}: {e}") from e

        error: Optional[str] = None
        try:
            captured_at, source = self._extractor.extract_datetime(path, kind)
            if captured_at is not None:
                return ResolvedMetadata(captured_at=captured_at, date_source=source)
        except ExtractionError as e:
            error = str(e)
            logger.debug("Metadata extraction failed for %s: %s", path, e)

        return ResolvedMetadata(
            captured_at=datetime.fromtimestamp(mtime),
            date_source="file_mtime",
            error=error,
        )
