"""Tests for thumbnail generation."""
import subprocess
import pytest
from pathlib import Path
from unittest.mock import patch

from PIL import Image

from mediatidy.core.errors import ThumbnailError
from mediatidy.core.models import MediaKind
from mediatidy.engines.thumbnails import PillowThumbnailGenerator, thumbnail_path_for

from .fixtures import write_jpeg, write_oversized_png


class TestPillowThumbnailGenerator:
    """Tests for PillowThumbnailGenerator."""

    @pytest.fixture
    def generator(self):
        with patch("mediatidy.engines.thumbnails.shutil.which", return_value=None):
            yield PillowThumbnailGenerator(size=(32, 32))

    def test_photo_thumbnail(self, generator, tmp_path: Path):
        source = write_jpeg(tmp_path / "a.jpg")
        target = tmp_path / "thumbs" / "a.jpg.jpg"

        generator.generate(source, MediaKind.PHOTO, target)

        with Image.open(target) as img:
            assert img.format == "JPEG"
            assert max(img.size) <= 32

    def test_supports(self, generator):
        assert generator.supports(MediaKind.PHOTO)
        assert not generator.supports(MediaKind.VIDEO)
        assert not generator.supports(MediaKind.CUSTOM)

    def test_undecodable_photo(self, generator, tmp_path: Path):
        source = tmp_path / "broken.jpg"
        source.write_bytes(b"nope")

        with pytest.raises(ThumbnailError):
            generator.generate(source, MediaKind.PHOTO, tmp_path / "t.jpg")

    def test_oversized_photo(self, generator, tmp_path: Path):
        source = write_oversized_png(tmp_path / "huge.png")

        with pytest.raises(ThumbnailError):
            generator.generate(source, MediaKind.PHOTO, tmp_path / "t.jpg")

    def test_target_directory_blocked(self, generator, tmp_path: Path):
        source = write_jpeg(tmp_path / "a.jpg")
        (tmp_path / "thumbs").write_bytes(b"a file, not a directory")

        with pytest.raises(ThumbnailError, match="Cannot create"):
            generator.generate(source, MediaKind.PHOTO, tmp_path / "thumbs" / "photo" / "a.jpg.jpg")

    def test_unsupported_kind(self, generator, tmp_path: Path):
        source = tmp_path / "clip.mp4"
        source.write_bytes(b"data")

        with pytest.raises(ThumbnailError):
            generator.generate(source, MediaKind.VIDEO, tmp_path / "t.jpg")

    def test_video_ffmpeg_failure(self, tmp_path: Path):
        with patch("mediatidy.engines.thumbnails.shutil.which", return_value="/usr/bin/ffmpeg"):
            generator = PillowThumbnailGenerator()
        source = tmp_path / "clip.mp4"
        source.write_bytes(b"data")
        failed = subprocess.CompletedProcess(args=[], returncode=1, stdout="", stderr="Invalid data")

        with patch("mediatidy.engines.thumbnails.subprocess.run", return_value=failed):
            with pytest.raises(ThumbnailError, match="Invalid data"):
                generator.generate(source, MediaKind.VIDEO, tmp_path / "t.jpg")


def test_thumbnail_path_mirrors_library(tmp_path: Path):
    dest = tmp_path / "dst"
    placed = dest / "photo" / "2021" / "2021-05" / "a.jpg"

    assert thumbnail_path_for(dest / ".thumbnails", dest, placed) == (
        dest / ".thumbnails" / "photo" / "2021" / "2021-05" / "a.jpg.jpg"
    )
