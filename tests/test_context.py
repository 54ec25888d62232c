from __future__ import annotations

import asyncio
from pathlib import Path

from gitdash import context as context_module
from gitdash.config import GitDashSettings
from gitdash.context import build_context, open_store
from gitdash.execution.strategies import ManualStrategy
from gitdash.history import HISTORY_KEY
from gitdash.presenter import RecordingPresenter
from gitdash.runner import FakeStrategy
from gitdash.storage import ChromaUnavailableError, MemoryStore


def test_history_entries_carry_current_branch(tmp_path: Path) -> None:
    store = MemoryStore()
    strategy = FakeStrategy({"git branch --show-current": "feature/login"})
    dash = asyncio.run(
        build_context(
            GitDashSettings(repo_path=tmp_path, history_capacity=5),
            presenter=RecordingPresenter(),
            store=store,
            strategy=strategy,
            tutorials={},
        )
    )

    asyncio.run(dash.status.refresh())
    asyncio.run(dash.operations.stash("wip"))

    assert dash.history.capacity == 5
    assert store.get(HISTORY_KEY)[0]["branch"] == "feature/login"
    assert dash.tutorials.available == []


def test_open_store_falls_back_to_memory(monkeypatch, tmp_path: Path) -> None:
    class UnavailableStore:
        def __init__(self, path, **kwargs) -> None:
            self.path = path

        def ping(self) -> bool:
            raise ChromaUnavailableError("chromadb missing")

    monkeypatch.setattr(context_module, "ChromaStore", UnavailableStore)

    store = open_store(GitDashSettings(chroma_persist_path=tmp_path / "chroma"))

    assert isinstance(store, MemoryStore)


def test_refresh_strategy_drops_pending_manual_commands(tmp_path: Path) -> None:
    presenter = RecordingPresenter()
    manual = ManualStrategy(presenter)
    dash = asyncio.run(
        build_context(
            GitDashSettings(repo_path=tmp_path, execution_mode="manual"),
            presenter=presenter,
            store=MemoryStore(),
            strategy=manual,
            tutorials={},
        )
    )
    for name in ("one", "two", "three"):
        asyncio.run(dash.operations.create_branch(name))
    assert len(manual.pending) == 9

    strategy = asyncio.run(dash.refresh_strategy())

    assert isinstance(strategy, ManualStrategy) and strategy is not manual
    assert manual.pending == []
    assert dash.runner.strategy is strategy
