"""Bounded, persisted ledger of executed commands."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from .execution.result import CommandResult
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

HISTORY_KEY = "git-command-history"
DEFAULT_CAPACITY = 50


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    """A command result plus the branch that was current when it was logged."""

    result: CommandResult
    branch: str = "unknown"

    def to_dict(self) -> dict[str, Any]:
        payload = self.result.to_dict()
        payload["branch"] = self.branch
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "HistoryEntry":
        return cls(result=CommandResult.from_dict(payload), branch=str(payload.get("branch") or "unknown"))


class CommandHistory:
    """Most-recent-first ledger capped at ``capacity`` entries.

    The in-memory list is authoritative for the session; the store is loaded
    once on construction and written after every ``record``, and failures of
    either are logged and otherwise ignored.
    """

    def __init__(
        self,
        store: KeyValueStore | None = None,
        *,
        capacity: int = DEFAULT_CAPACITY,
        key: str = HISTORY_KEY,
    ) -> None:
        if capacity < 1:
            raise ValueError("history capacity must be >= 1")
        self._store = store
        self._capacity = capacity
        self._key = key
        self._entries: list[HistoryEntry] = self._load()

    @property
    def capacity(self) -> int:
        return self._capacity

    def _load(self) -> list[HistoryEntry]:
        if self._store is None:
            return []
        try:
            raw = self._store.get(self._key)
        except Exception as exc:  # persistence is best effort
            logger.warning("Failed to load command history", extra={"error": str(exc)})
            return []
        if not isinstance(raw, list):
            return []

        entries: list[HistoryEntry] = []
        for item in raw:
            if not isinstance(item, Mapping):
                continue
            try:
                entries.append(HistoryEntry.from_dict(item))
            except (TypeError, ValueError) as exc:
                logger.debug("Skipping malformed history entry", extra={"error": str(exc)})
        return entries[: self._capacity]

    def _save(self) -> None:
        if self._store is None:
            return
        try:
            self._store.set(self._key, [entry.to_dict() for entry in self._entries])
        except Exception as exc:  # persistence is best effort
            logger.warning("Failed to persist command history", extra={"error": str(exc)})

    def record(self, entry: HistoryEntry) -> HistoryEntry:
        self._entries.insert(0, entry)
        del self._entries[self._capacity :]
        self._save()
        return entry

    def clear(self) -> None:
        self._entries.clear()
        self._save()

    def __len__(self) -> int:
        return len(self._entries)

    def list(self) -> list[HistoryEntry]:
        """Return a copy of the ledger, most recent first."""

        return list(self._entries)


__all__ = ["CommandHistory", "HistoryEntry", "HISTORY_KEY", "DEFAULT_CAPACITY"]
