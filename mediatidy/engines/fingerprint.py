"""Content fingerprints used as the index primary key."""
from __future__ import annotations

import hashlib
from pathlib import Path

from ..core.errors import FilesystemError


FINGERPRINT_PREFIX = "sha256:"


def sha256_file(path: Path, chunk_size: int = 1024 * 1024) -> str:
    """Compute SHA256 of file contents."""
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()


def fingerprint_file(path: Path) -> str:
    """Stable identity of a file's content.

    Byte-identical files share a fingerprint regardless of name or location.

    Raises:
        FilesystemError: The file could not be read.
    """
    try:
        return f"{FINGERPRINT_PREFIX}{sha256_file(path)}"
    except OSError as e:
        raise FilesystemError(f"Cannot read {path}: {e}") from e


def same_content(path: Path, fingerprint: str) -> bool:
    """Whether the file at `path` has the given fingerprint.

    Unreadable files never match.
    """
    try:
        return fingerprint_file(path) == fingerprint
    except FilesystemError:
        return False
