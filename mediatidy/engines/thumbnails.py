"""Thumbnail generation for placed media."""
from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

from PIL import Image, ImageFile, ImageOps, UnidentifiedImageError

from ..core.config import THUMBNAIL_SIZE
from ..core.errors import ThumbnailError
from ..core.models import MediaKind

logger = logging.getLogger(__name__)

# Allow loading truncated images
ImageFile.LOAD_TRUNCATED_IMAGES = True

FFMPEG_TIMEOUT = 60


class PillowThumbnailGenerator:
    """Thumbnails via Pillow for photos and an ffmpeg frame grab for videos."""

    def __init__(
        self,
        size: tuple[int, int] = THUMBNAIL_SIZE,
        ffmpeg_bin: str = "ffmpeg",
    ):
        """Initialize the generator.

        Args:
            size: Bounding box of the thumbnail, aspect ratio is kept.
            ffmpeg_bin: Name or path of the ffmpeg executable.
        """
        self._size = size
        self._ffmpeg_bin = ffmpeg_bin
        self._ffmpeg_available = shutil.which(ffmpeg_bin) is not None

    def supports(self, kind: MediaKind) -> bool:
        if kind == MediaKind.PHOTO:
            return True
        return kind == MediaKind.VIDEO and self._ffmpeg_available

    def generate(self, source: Path, kind: MediaKind, target: Path) -> Path:
        """Write a JPEG thumbnail of `source` to `target`.

        Raises:
            ThumbnailError: The kind is unsupported or the thumbnail could not be written.
        """
        if not self.supports(kind):
            raise ThumbnailError(f"No thumbnail support for {kind.value} file {source.name}")

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ThumbnailError(f"Cannot create {target.parent}: {e}") from e
        if kind == MediaKind.VIDEO:
            self._video_thumbnail(source, target)
        else:
            self._image_thumbnail(source, target)
        return target

    def _image_thumbnail(self, source: Path, target: Path) -> None:
        try:
            with Image.open(source) as img:
                img = ImageOps.exif_transpose(img)
                img.thumbnail(self._size)
                img.convert("RGB").save(target, "JPEG", quality=85)
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise ThumbnailError(f"Cannot thumbnail {source.name}: {e}") from e

    def _video_thumbnail(self, source: Path, target: Path) -> None:
        width, height = self._size
        args = [
            self._ffmpeg_bin, "-y", "-loglevel", "error",
            "-i", str(source),
            "-frames:v", "1",
            "-vf", f"scale={width}:{height}:force_original_aspect_ratio=decrease",
            str(target),
        ]
        try:
            result = subprocess.run(args, capture_output=True, text=True, timeout=FFMPEG_TIMEOUT)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ThumbnailError(f"ffmpeg failed on {source.name}: {e}") from e
        if result.returncode != 0 or not target.exists():
            raise ThumbnailError(
                f"ffmpeg failed on {source.name}: {result.stderr.strip() or 'no frame'}"
            )


def thumbnail_path_for(thumbnail_root: Path, dest_root: Path, dest_path: Path) -> Path:
    """Thumbnail location mirroring the placed file's library path."""
    try:
        relative = dest_path.relative_to(dest_root)
    except ValueError:
        relative = Path(dest_path.name)
    return thumbnail_root / relative.with_name(relative.name + ".jpg")
