"""Persistent index."""
from .database import SQLiteIndexStore, open_index

__all__ = ["SQLiteIndexStore", "open_index"]
