"""Chroma-backed key/value persistence."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable, Protocol


class ChromaUnavailableError(RuntimeError):
    """Raised when the Chroma client cannot be constructed."""


class CollectionProtocol(Protocol):
    """Protocol for the minimal Chroma collection API used by gitdash."""

    def upsert(
        self,
        *,
        documents: Iterable[str],
        metadatas: Iterable[dict[str, Any]],
        ids: Iterable[str],
    ) -> None:
        ...

    def get(
        self,
        *,
        ids: Iterable[str] | None = None,
        where: dict[str, Any] | None = None,
        limit: int | None = None,
    ) -> dict[str, list[Any]]:
        ...


class ClientProtocol(Protocol):
    """Protocol for the minimal Chroma client API used by gitdash."""

    def get_or_create_collection(self, name: str) -> CollectionProtocol:
        ...


class ChromaStore:
    """Persist JSON-encodable values under string keys in a Chroma collection.

    Each key is stored as one document whose id is the key itself, so ``set``
    replaces the previous value atomically.
    """

    def __init__(
        self,
        path: Path,
        *,
        collection_name: str = "gitdash_state",
        client_factory: Callable[[], ClientProtocol] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._path = Path(path)
        self._collection_name = collection_name
        self._client_factory = client_factory or self._default_client_factory
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._client: ClientProtocol | None = None
        self._collection: CollectionProtocol | None = None

    def _default_client_factory(self) -> ClientProtocol:
        try:
            import chromadb
        except ImportError as exc:  # pragma: no cover - depends on environment
            raise ChromaUnavailableError(
                "chromadb package is not installed; install gitdash with persistence extras"
            ) from exc

        return chromadb.PersistentClient(path=str(self._path))

    def _ensure_collection(self) -> CollectionProtocol:
        if self._collection is None:
            client = self._client or self._client_factory()
            self._client = client
            self._collection = client.get_or_create_collection(self._collection_name)
        return self._collection

    def ping(self) -> bool:
        """Verify that the underlying collection can be obtained."""

        self._ensure_collection()
        return True

    def get(self, key: str) -> Any | None:
        collection = self._ensure_collection()
        result = collection.get(ids=[key])
        documents = result.get("documents") or []
        if not documents or documents[0] is None:
            return None
        return json.loads(documents[0])

    def set(self, key: str, value: Any) -> None:
        collection = self._ensure_collection()
        collection.upsert(
            documents=[json.dumps(value)],
            metadatas=[{"key": key, "updated_at": self._clock().isoformat()}],
            ids=[key],
        )


__all__ = ["ChromaStore", "ChromaUnavailableError", "ClientProtocol", "CollectionProtocol"]
