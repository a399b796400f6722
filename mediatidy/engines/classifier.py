"""Path classification: scope and media kind."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..core.config import RunContext
from ..core.models import Classification, MediaKind


PHOTO_EXTENSIONS = frozenset({
    "jpg", "jpeg", "png", "gif", "bmp", "webp", "heic", "heif", "tif", "tiff",
    "dng", "cr2", "nef", "arw", "raf", "orf", "rw2",
})

VIDEO_EXTENSIONS = frozenset({
    "mp4", "mov", "avi", "mkv", "m4v", "3gp", "wmv", "webm",
    "flv", "mts", "m2ts", "mpg", "mpeg",
})

BUILTIN_KINDS: dict[str, MediaKind] = {
    **{ext: MediaKind.PHOTO for ext in PHOTO_EXTENSIONS},
    **{ext: MediaKind.VIDEO for ext in VIDEO_EXTENSIONS},
}

OUT_OF_SCOPE = Classification(in_scope=False)


def extension_of(path: Path) -> str:
    return path.suffix.lower().lstrip(".")


def builtin_kind(path: Path) -> Optional[MediaKind]:
    """Kind from the built-in photo/video tables, None if not media."""
    return BUILTIN_KINDS.get(extension_of(path))


def is_excluded(path: Path, patterns: tuple[str, ...]) -> bool:
    """Plain case-sensitive substring match against the full path."""
    path_str = str(path)
    return any(pattern in path_str for pattern in patterns)


class PathClassifier:
    """Decides whether a file is processed and which kind it is.

    With custom extensions the custom list replaces the built-in tables as the
    scope; the custom media type (when given) tags every custom extension.
    """

    def __init__(self, ctx: RunContext):
        self._excludes = ctx.exclude_patterns
        self._custom_extensions = frozenset(ctx.custom_extensions)
        self._custom_kind = (
            MediaKind.from_name(ctx.custom_media_type) if ctx.custom_media_type else None
        )

    def classify(self, path: Path) -> Classification:
        if is_excluded(path, self._excludes):
            return OUT_OF_SCOPE

        if self._custom_extensions:
            if extension_of(path) not in self._custom_extensions:
                return OUT_OF_SCOPE
            if self._custom_kind is not None:
                return Classification(in_scope=True, kind=self._custom_kind)
            return Classification(in_scope=True, kind=builtin_kind(path) or MediaKind.UNKNOWN)

        kind = builtin_kind(path)
        if kind is None:
            return OUT_OF_SCOPE
        return Classification(in_scope=True, kind=kind)


def classify(path: Path, ctx: RunContext) -> Classification:
    """Classify a single path under a run configuration."""
    return PathClassifier(ctx).classify(path)
