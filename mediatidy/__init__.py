"""Organize photos and videos into a dated, deduplicated library.

Dependency-injected architecture: engines and the index are passed to the
pipeline explicitly, nothing is global.
"""

__version__ = "1.0.0"

# Core exports
from .core.config import RunContext
from .core.errors import (
    ExtractionError, FilesystemError, IndexStoreError, MediaTidyError,
    ThumbnailError, ValidationError,
)
from .core.models import FileRecord, MediaKind, RecordStatus, RunStats
from .core.protocols import IndexStore, MetadataExtractor, ProgressReporter, ThumbnailGenerator

# Engine exports
from .engines.classifier import PathClassifier, classify
from .engines.metadata import ExifToolMetadataExtractor, MetadataResolver

# Service exports
from .services.engine import EngineDependencies, TidyEngine
from .services.app_context import run_tidy
from .services.maintenance import fixdb, rescan

# Persistence exports
from .persistence.database import SQLiteIndexStore

# Logging exports
from .logging.rich_logger import RichProgressReporter

__all__ = [
    # Core
    "RunContext",
    "MediaTidyError",
    "ValidationError",
    "ExtractionError",
    "FilesystemError",
    "IndexStoreError",
    "ThumbnailError",
    "FileRecord",
    "MediaKind",
    "RecordStatus",
    "RunStats",
    "IndexStore",
    "MetadataExtractor",
    "ProgressReporter",
    "ThumbnailGenerator",
    # Engines
    "PathClassifier",
    "classify",
    "ExifToolMetadataExtractor",
    "MetadataResolver",
    # Services
    "EngineDependencies",
    "TidyEngine",
    "run_tidy",
    "rescan",
    "fixdb",
    # Persistence
    "SQLiteIndexStore",
    # Logging
    "RichProgressReporter",
]
