"""Test fixtures for engine and integration tests.

Fixture classes generate media files on disk and know where a run should
place them in the library.
"""
from __future__ import annotations

import os
import struct
import zlib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

from PIL import Image

from mediatidy.core.config import RunContext
from mediatidy.core.models import RunStats
from mediatidy.engines.classifier import PathClassifier
from mediatidy.engines.metadata import ExifToolMetadataExtractor, MetadataResolver
from mediatidy.services.engine import EngineDependencies
from mediatidy.services.file_ops import FileManager
from mediatidy.services.planner import DestinationPlanner
from mediatidy.services.scanner import DirectoryScanner


EXIF_DATETIME = 306


def write_jpeg(path: Path, color: str = "red", date_taken: Optional[datetime] = None) -> Path:
    """Write a small JPEG, with an EXIF DateTime when `date_taken` is given."""
    path.parent.mkdir(parents=True, exist_ok=True)
    img = Image.new("RGB", (64, 48), color=color)
    if date_taken is not None:
        exif = Image.Exif()
        exif[EXIF_DATETIME] = date_taken.strftime("%Y:%m:%d %H:%M:%S")
        img.save(path, "JPEG", exif=exif)
    else:
        img.save(path, "JPEG")
    return path


def set_mtime(path: Path, when: datetime) -> None:
    ts = when.timestamp()
    os.utime(path, (ts, ts))


def _png_chunk(kind: bytes, data: bytes) -> bytes:
    crc = zlib.crc32(kind + data) & 0xFFFFFFFF
    return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", crc)


def write_oversized_png(path: Path, width: int = 20000, height: int = 20000) -> Path:
    """Write a PNG whose header declares more pixels than Pillow will decode."""
    path.parent.mkdir(parents=True, exist_ok=True)
    header = struct.pack(">IIBBBBB", width, height, 1, 0, 0, 0, 0)
    path.write_bytes(
        b"\x89PNG\r\n\x1a\n"
        + _png_chunk(b"IHDR", header)
        + _png_chunk(b"IDAT", zlib.compress(b"\x00" * 64))
        + _png_chunk(b"IEND", b"")
    )
    return path


@dataclass
class MediaFixture(ABC):
    """Base class for test media fixtures.

    Each fixture knows:
    - How to create its source file
    - Which library folder a run should put it in
    """
    name: str
    parent_folder: Optional[str] = None

    @abstractmethod
    def create(self, base_path: Path) -> Path:
        """Create the fixture file and return its path."""

    @abstractmethod
    def expected_folder(self) -> str:
        """Library folder relative to the destination (e.g. 'photo/2021/2021-05')."""

    def expected_path(self, dest_root: Path) -> Path:
        return dest_root / self.expected_folder() / self.filename

    @property
    @abstractmethod
    def filename(self) -> str:
        ...

    def _folder(self, base_path: Path) -> Path:
        folder = base_path / (self.parent_folder or "")
        folder.mkdir(parents=True, exist_ok=True)
        return folder


@dataclass
class PhotoWithExifDate(MediaFixture):
    """JPEG with the capture date embedded in EXIF."""
    date_taken: datetime = field(default_factory=lambda: datetime(2021, 5, 10, 12, 0, 0))
    color: str = "red"

    @property
    def filename(self) -> str:
        return f"{self.name}.jpg"

    def create(self, base_path: Path) -> Path:
        return write_jpeg(self._folder(base_path) / self.filename, self.color, self.date_taken)

    def expected_folder(self) -> str:
        return f"photo/{self.date_taken:%Y}/{self.date_taken:%Y-%m}"


@dataclass
class PhotoNoDate(MediaFixture):
    """JPEG without EXIF; the file's mtime decides its bucket."""
    mtime: datetime = field(default_factory=lambda: datetime(2019, 3, 2, 8, 0, 0))
    color: str = "yellow"

    @property
    def filename(self) -> str:
        return f"{self.name}.jpg"

    def create(self, base_path: Path) -> Path:
        path = write_jpeg(self._folder(base_path) / self.filename, self.color)
        set_mtime(path, self.mtime)
        return path

    def expected_folder(self) -> str:
        return f"photo/{self.mtime:%Y}/{self.mtime:%Y-%m}"


@dataclass
class VideoFile(MediaFixture):
    """Opaque bytes with a video extension; dated by mtime."""
    mtime: datetime = field(default_factory=lambda: datetime(2020, 7, 4, 20, 0, 0))
    payload: bytes = b"\x00\x00\x00\x18ftypmp42 not really a video"

    @property
    def filename(self) -> str:
        return f"{self.name}.mp4"

    def create(self, base_path: Path) -> Path:
        path = self._folder(base_path) / self.filename
        path.write_bytes(self.payload + self.name.encode())
        set_mtime(path, self.mtime)
        return path

    def expected_folder(self) -> str:
        return f"video/{self.mtime:%Y}/{self.mtime:%Y-%m}"


@dataclass
class NonMediaFile(MediaFixture):
    """File outside the built-in photo/video tables."""
    extension: str = ".txt"
    content: str = "notes"

    @property
    def filename(self) -> str:
        return f"{self.name}{self.extension}"

    def create(self, base_path: Path) -> Path:
        path = self._folder(base_path) / self.filename
        path.write_text(self.content)
        return path

    def expected_folder(self) -> str:
        return ""


def make_context(source: Path, dest: Path, **kwargs) -> RunContext:
    return RunContext.create(source_dir=source, dest_dir=dest, **kwargs)


def make_deps(ctx: RunContext, store, extractor=None, thumbnailer=None) -> EngineDependencies:
    """Wire engine dependencies around a given store."""
    file_manager = FileManager(ctx.dest_dir, move_files=ctx.move_files)
    return EngineDependencies(
        store=store,
        classifier=PathClassifier(ctx),
        resolver=MetadataResolver(extractor or ExifToolMetadataExtractor()),
        planner=DestinationPlanner(store, file_manager),
        file_manager=file_manager,
        scanner=DirectoryScanner(skip_dirs=[ctx.dest_dir], skip_files=[ctx.index_path]),
        thumbnailer=thumbnailer,
    )


class EventCollector:
    """Consumer that keeps every event it receives."""

    def __init__(self):
        self.events = []

    def consume(self, events) -> Optional[RunStats]:
        for event in events:
            self.events.append(event)
        return self.events[-1].stats if self.events else None
