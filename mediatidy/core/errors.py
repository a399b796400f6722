"""Exception taxonomy.

Per-file errors (extraction, filesystem, thumbnail) are recovered by the
engine; validation and index errors abort the run.
"""
from __future__ import annotations


class MediaTidyError(Exception):
    """Base error type."""


class ValidationError(MediaTidyError):
    """Bad command-line arguments or run configuration."""


class ExtractionError(MediaTidyError):
    """Capture metadata could not be read from a file."""


class FilesystemError(MediaTidyError):
    """Stat, copy or move of a single file failed."""


class IndexStoreError(MediaTidyError):
    """The persistent index is unreachable or corrupt."""


class ThumbnailError(MediaTidyError):
    """Thumbnail could not be produced for a placed file."""
