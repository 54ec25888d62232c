"""In-process key/value store used when no persistent backend is configured."""

from __future__ import annotations

import json
from typing import Any, Protocol


class KeyValueStore(Protocol):
    """Get/set of JSON-encodable values; implementations may raise on I/O errors."""

    def get(self, key: str) -> Any | None:
        ...

    def set(self, key: str, value: Any) -> None:
        ...


class MemoryStore:
    """Holds values as JSON text so callers see the same encoding rules as on disk."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, str] = {}
        for key, value in (initial or {}).items():
            self.set(key, value)

    def get(self, key: str) -> Any | None:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)


__all__ = ["KeyValueStore", "MemoryStore"]
