"""Leaf adapters: classification, fingerprints, metadata, thumbnails."""
from .classifier import PathClassifier, classify
from .fingerprint import fingerprint_file
from .metadata import ExifToolMetadataExtractor, MetadataResolver
from .thumbnails import PillowThumbnailGenerator

__all__ = [
    "PathClassifier",
    "classify",
    "fingerprint_file",
    "ExifToolMetadataExtractor",
    "MetadataResolver",
    "PillowThumbnailGenerator",
]
