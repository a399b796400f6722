"""Run configuration.

`RunContext` is built once per invocation from CLI arguments and shared
read-only by every pipeline stage.
"""
from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError


INDEX_FILENAME = ".mediatidy.db"
THUMBNAIL_DIRNAME = ".thumbnails"
THUMBNAIL_SIZE = (320, 320)
CHANNEL_MAXSIZE = 256


def split_pipe_list(value: Any) -> tuple[str, ...]:
    """Split a pipe-separated option ("a|b|c") into its non-empty parts."""
    if value is None:
        return ()
    if isinstance(value, str):
        parts = value.split("|")
    else:
        parts = list(value)
    return tuple(p.strip() for p in parts if p and p.strip())


class RunContext(BaseModel):
    """Configuration of a single tidy run.

    Immutable once constructed. Use `RunContext.create()` from calling code so
    that validation failures surface as `ValidationError`.
    """
    model_config = ConfigDict(frozen=True)

    source_dir: Path = Field(..., description="Directory to organize")
    dest_dir: Path = Field(..., description="Root of the organized library")
    dry_run: bool = Field(default=False, description="Simulate without touching the filesystem")
    limit: int = Field(default=0, ge=0, description="Max in-scope files to process (0 = no limit)")
    custom_extensions: tuple[str, ...] = Field(
        default=(),
        description="Extensions to process instead of the built-in photo/video tables",
    )
    custom_media_type: str = Field(default="", description="Media kind for the custom extensions")
    exclude_patterns: tuple[str, ...] = Field(
        default=(),
        description="Case-sensitive path substrings to skip",
    )
    fix_creation_dates: bool = Field(default=False, description="Set placed file mtime to capture date")
    db_only: bool = Field(default=False, description="Only build the index, never copy or move")
    create_thumbnails: bool = Field(default=False, description="Create thumbnails for placed media")
    move_files: bool = Field(default=False, description="Move instead of copy")
    quiet: bool = Field(default=False, description="Suppress per-file progress output")
    start_time: datetime = Field(default_factory=datetime.now)

    @field_validator("source_dir", "dest_dir")
    @classmethod
    def expand_path(cls, value: Path) -> Path:
        return value.expanduser().resolve()

    @field_validator("custom_extensions", mode="before")
    @classmethod
    def parse_extensions(cls, value: Any) -> tuple[str, ...]:
        return tuple(ext.lower().lstrip(".") for ext in split_pipe_list(value))

    @field_validator("exclude_patterns", mode="before")
    @classmethod
    def parse_excludes(cls, value: Any) -> tuple[str, ...]:
        return split_pipe_list(value)

    @field_validator("custom_media_type")
    @classmethod
    def normalize_media_type(cls, value: str) -> str:
        return value.strip().lower()

    @model_validator(mode="after")
    def check_directories(self) -> "RunContext":
        if not self.source_dir.exists():
            raise ValueError("Source directory does not exist.")
        if not self.source_dir.is_dir():
            raise ValueError("Source path is not a directory.")
        if self.source_dir == self.dest_dir:
            raise ValueError("Source and destination directories cannot be the same.")
        if self.custom_media_type and not self.custom_extensions:
            raise ValueError("A custom media type requires a list of custom extensions.")
        return self

    @classmethod
    def create(cls, **kwargs: Any) -> "RunContext":
        """Build a context, translating pydantic errors into `ValidationError`."""
        try:
            return cls(**kwargs)
        except PydanticValidationError as exc:
            messages = []
            for err in exc.errors():
                original = (err.get("ctx") or {}).get("error")
                messages.append(str(original) if original else err["msg"])
            raise ValidationError(" ".join(messages)) from None

    @property
    def index_path(self) -> Path:
        return self.dest_dir / INDEX_FILENAME

    @property
    def thumbnail_root(self) -> Path:
        return self.dest_dir / THUMBNAIL_DIRNAME

    @property
    def simulated(self) -> bool:
        """True when placement is skipped (dry run or index-only run)."""
        return self.dry_run or self.db_only


def index_path_for(directory: Path, db_path: Optional[Path] = None) -> Path:
    """Index file location for a library directory."""
    return db_path or (directory / INDEX_FILENAME)
