from __future__ import annotations

from typing import Any

from gitdash.execution.result import CommandResult
from gitdash.history import HISTORY_KEY, CommandHistory, HistoryEntry
from gitdash.storage import MemoryStore


def _entry(index: int, branch: str = "develop") -> HistoryEntry:
    return HistoryEntry(result=CommandResult(command=f"git cmd-{index}", success=True), branch=branch)


class FailingStore:
    def get(self, key: str) -> Any:
        raise OSError("disk unavailable")

    def set(self, key: str, value: Any) -> None:
        raise OSError("disk unavailable")


def test_record_is_most_recent_first_and_bounded() -> None:
    history = CommandHistory(capacity=50)

    for index in range(120):
        history.record(_entry(index))
        assert len(history) <= 50

    commands = [entry.result.command for entry in history.list()]
    assert len(commands) == 50
    assert commands[0] == "git cmd-119"
    assert commands[-1] == "git cmd-70"


def test_every_record_is_persisted_and_reloaded() -> None:
    store = MemoryStore()
    history = CommandHistory(store, capacity=3)
    for index in range(4):
        history.record(_entry(index, branch="feature/x"))

    saved = store.get(HISTORY_KEY)
    assert [item["command"] for item in saved] == ["git cmd-3", "git cmd-2", "git cmd-1"]
    assert saved[0]["branch"] == "feature/x"

    reloaded = CommandHistory(store, capacity=3)
    assert [entry.result.command for entry in reloaded.list()] == ["git cmd-3", "git cmd-2", "git cmd-1"]
    assert reloaded.list()[0].branch == "feature/x"


def test_persistence_failures_are_not_fatal() -> None:
    history = CommandHistory(FailingStore())

    history.record(_entry(1))

    assert [entry.result.command for entry in history.list()] == ["git cmd-1"]


def test_malformed_stored_entries_are_skipped() -> None:
    store = MemoryStore({HISTORY_KEY: ["garbage", {"command": "git status", "success": True}]})

    history = CommandHistory(store)

    assert [entry.result.command for entry in history.list()] == ["git status"]
    assert history.list()[0].branch == "unknown"


def test_list_returns_a_copy() -> None:
    history = CommandHistory()
    history.record(_entry(1))

    history.list().clear()

    assert len(history) == 1
