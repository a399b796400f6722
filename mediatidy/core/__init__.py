"""Core domain models, configuration and protocols."""
from .config import RunContext
from .errors import (
    MediaTidyError,
    ValidationError,
    ExtractionError,
    FilesystemError,
    IndexStoreError,
    ThumbnailError,
)
from .models import (
    MediaKind,
    RecordStatus,
    FileState,
    Classification,
    ResolvedMetadata,
    FileRecord,
    PlanResult,
    RunStats,
    ProgressEvent,
)
from .protocols import MetadataExtractor, ThumbnailGenerator, IndexStore, ProgressReporter

__all__ = [
    # Config
    "RunContext",
    # Errors
    "MediaTidyError",
    "ValidationError",
    "ExtractionError",
    "FilesystemError",
    "IndexStoreError",
    "ThumbnailError",
    # Models
    "MediaKind",
    "RecordStatus",
    "FileState",
    "Classification",
    "ResolvedMetadata",
    "FileRecord",
    "PlanResult",
    "RunStats",
    "ProgressEvent",
    # Protocols
    "MetadataExtractor",
    "ThumbnailGenerator",
    "IndexStore",
    "ProgressReporter",
]
