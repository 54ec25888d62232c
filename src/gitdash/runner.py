"""Single-command execution through the active strategy."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable, Mapping

from .errors import ExecutionFailure, TransportFailure, UserCancelled
from .execution.commands import GitCommand
from .execution.result import CommandResult
from .execution.strategies import MANUAL_ACKNOWLEDGED, ExecutionStrategy, ManualStrategy, StrategyKind
from .history import CommandHistory, HistoryEntry
from .presenter import Presenter

logger = logging.getLogger(__name__)


class CommandRunner:
    """Execute one command, then notify the presenter and record it in history.

    Expected failures never escape ``run``: backend errors come back as a
    ``CommandResult`` with ``success=False`` (or ``cancelled=True``) so callers
    decide whether to stop. Results are passed through unchanged apart from
    filling ``error`` on failure.
    """

    def __init__(
        self,
        strategy: ExecutionStrategy,
        *,
        history: CommandHistory,
        presenter: Presenter,
        cwd: Path | None = None,
        branch_provider: Callable[[], str | None] | None = None,
    ) -> None:
        self._strategy = strategy
        self._history = history
        self._presenter = presenter
        self._cwd = cwd
        self.branch_provider = branch_provider

    @property
    def strategy(self) -> ExecutionStrategy:
        return self._strategy

    @property
    def history(self) -> CommandHistory:
        return self._history

    def use_strategy(self, strategy: ExecutionStrategy) -> None:
        self._strategy = strategy

    def _current_branch(self) -> str:
        if self.branch_provider is None:
            return "unknown"
        return self.branch_provider() or "unknown"

    async def run(self, command: GitCommand | str, *, quiet: bool = False) -> CommandResult:
        """Run ``command``; ``quiet`` skips the notification and the history entry."""

        text = command.text if isinstance(command, GitCommand) else command
        logger.debug(
            "Executing command",
            extra={"command": text, "strategy": self._strategy.kind.value},
        )
        try:
            result = await self._strategy.run(text, cwd=self._cwd)
        except UserCancelled as exc:
            result = CommandResult(command=text, success=False, error=str(exc), cancelled=True)
        except ExecutionFailure as exc:
            result = CommandResult(command=text, success=False, stderr=exc.stderr, error=str(exc))
        except TransportFailure as exc:
            result = CommandResult(command=text, success=False, error=str(exc))

        result = result.normalized()
        if not result.success and not result.cancelled:
            logger.warning(
                "Command failed",
                extra={"command": text, "error": result.failure_text},
            )
        if not quiet:
            self._publish(result)
        return result

    def acknowledge(self, command: str) -> CommandResult:
        """Record that a human ran a manually surfaced command."""

        manual = self._manual_strategy()
        if manual is not None:
            result = manual.settle(command, acknowledged=True)
        else:
            result = CommandResult(command=command, success=True, stdout=MANUAL_ACKNOWLEDGED, manual=True)
        self._record(result)
        self._presenter.notify("Command marked as executed", "info")
        return result

    def dismiss(self, command: str) -> CommandResult:
        """Record that a manually surfaced command was dismissed without running."""

        reason = f"Manual execution dismissed: {command}"
        manual = self._manual_strategy()
        if manual is not None:
            try:
                manual.settle(command, acknowledged=False)
            except UserCancelled as exc:
                reason = str(exc)
        result = CommandResult(command=command, success=False, error=reason, manual=True, cancelled=True)
        self._record(result)
        self._presenter.notify(f"Command dismissed: {command}", "warning")
        return result

    def _manual_strategy(self) -> ManualStrategy | None:
        strategy = self._strategy
        return strategy if isinstance(strategy, ManualStrategy) else None

    def _record(self, result: CommandResult) -> None:
        self._history.record(HistoryEntry(result=result, branch=self._current_branch()))

    def _publish(self, result: CommandResult) -> None:
        message = f"Command: {result.command}\n\n"
        if result.cancelled:
            self._presenter.notify(message + "Cancelled", "warning")
        elif result.manual:
            self._presenter.notify(message + result.stdout, "info")
        elif result.success:
            self._presenter.notify(message + f"Success!\n{result.stdout}".rstrip(), "success")
        else:
            self._presenter.notify(message + f"Error!\n{result.failure_text}", "error")
        self._record(result)


class FakeStrategy(ExecutionStrategy):
    """Test double that answers commands from canned tables.

    Keys may be command text or ``GitCommand`` objects. Unknown commands
    succeed with empty output.
    """

    def __init__(
        self,
        responses: Mapping[object, str] | None = None,
        *,
        failures: Mapping[object, str] | None = None,
        errors: Mapping[object, BaseException] | None = None,
        kind: StrategyKind = StrategyKind.LOCAL,
    ) -> None:
        self.kind = kind
        self.responses = {str(key): value for key, value in (responses or {}).items()}
        self.failures = {str(key): value for key, value in (failures or {}).items()}
        self.errors = {str(key): value for key, value in (errors or {}).items()}
        self._invocations: list[str] = []

    async def run(self, command: str, *, cwd: Path | None = None) -> CommandResult:
        self._invocations.append(command)
        await asyncio.sleep(0)
        if command in self.errors:
            raise self.errors[command]
        if command in self.failures:
            return CommandResult(command=command, success=False, stderr=self.failures[command], simulated=True)
        return CommandResult(
            command=command, success=True, stdout=self.responses.get(command, ""), simulated=True
        )

    @property
    def invocations(self) -> list[str]:
        return self._invocations


__all__ = ["CommandRunner", "FakeStrategy"]
