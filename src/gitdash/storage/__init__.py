"""Persistence collaborators for gitdash."""

from .chroma import ChromaStore, ChromaUnavailableError
from .memory import KeyValueStore, MemoryStore

__all__ = [
    "ChromaStore",
    "ChromaUnavailableError",
    "KeyValueStore",
    "MemoryStore",
]
