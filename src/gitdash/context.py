"""Construction of the shared object graph that components receive explicitly."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping

import httpx

from .config import GitDashSettings, get_settings
from .execution.strategies import ExecutionStrategy, ManualStrategy, StrategyResolver
from .history import CommandHistory
from .operations import OperationSequencer
from .preferences import ThemePreference
from .presenter import LoggingPresenter, Presenter
from .runner import CommandRunner
from .status import StatusAggregator
from .storage import ChromaStore, ChromaUnavailableError, KeyValueStore, MemoryStore
from .tutorials import Tutorial, TutorialEngine, TutorialLoader

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DashContext:
    """Every long-lived component, wired once and passed by reference."""

    settings: GitDashSettings
    presenter: Presenter
    store: KeyValueStore
    history: CommandHistory
    resolver: StrategyResolver
    runner: CommandRunner
    status: StatusAggregator
    operations: OperationSequencer
    tutorials: TutorialEngine
    theme: ThemePreference

    async def refresh_strategy(self) -> ExecutionStrategy:
        """Re-run backend detection and switch the runner to the result."""

        previous = self.runner.strategy
        strategy = await self.resolver.resolve(refresh=True)
        if isinstance(previous, ManualStrategy) and previous is not strategy:
            previous.clear_pending()
        self.runner.use_strategy(strategy)
        return strategy


def open_store(settings: GitDashSettings) -> KeyValueStore:
    """Return the Chroma store, or an in-memory one when Chroma is unavailable."""

    try:
        store = ChromaStore(settings.chroma_persist_path)
        store.ping()
        return store
    except ChromaUnavailableError as exc:
        logger.warning("Persistence unavailable; history is kept in memory", extra={"error": str(exc)})
        return MemoryStore()


async def build_context(
    settings: GitDashSettings | None = None,
    *,
    presenter: Presenter | None = None,
    store: KeyValueStore | None = None,
    strategy: ExecutionStrategy | None = None,
    tutorials: Mapping[str, Tutorial] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> DashContext:
    """Wire the components; ``strategy`` skips detection when given."""

    settings = settings or get_settings()
    presenter = presenter or LoggingPresenter()
    store = store if store is not None else open_store(settings)

    resolver = StrategyResolver(settings, presenter, transport=transport)
    active = strategy or await resolver.resolve()

    history = CommandHistory(store, capacity=settings.history_capacity)
    runner = CommandRunner(active, history=history, presenter=presenter, cwd=settings.repo_path)
    status = StatusAggregator(runner)
    runner.branch_provider = lambda: status.current_branch

    operations = OperationSequencer(
        runner,
        status,
        presenter,
        integration_branch=settings.integration_branch,
        fallback_branch=settings.fallback_branch,
        remote=settings.remote_name,
        user_name=settings.user_name,
    )
    catalog = tutorials if tutorials is not None else TutorialLoader(settings.tutorial_paths).load_all()
    engine = TutorialEngine(catalog, operations, presenter)

    return DashContext(
        settings=settings,
        presenter=presenter,
        store=store,
        history=history,
        resolver=resolver,
        runner=runner,
        status=status,
        operations=operations,
        tutorials=engine,
        theme=ThemePreference(store, presenter),
    )


__all__ = ["DashContext", "build_context", "open_store"]
