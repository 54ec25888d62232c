"""Ordered multi-step git workflows with abort-on-first-failure semantics."""

from __future__ import annotations

import inspect
import logging
import shlex
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Literal, Sequence

from pydantic import BaseModel, Field

from .execution.commands import GitCommand, InvalidCommandError, MergeStrategy, validate_ref_name
from .execution.result import CommandResult
from .presenter import Presenter
from .runner import CommandRunner
from .status import StatusAggregator

logger = logging.getLogger(__name__)

OperationKind = Literal[
    "create_branch",
    "switch_branch",
    "commit",
    "merge",
    "delete_branch",
    "stash",
    "pull",
    "push",
    "backup_branch",
    "run_command",
]

OPERATION_HANDLERS: dict[str, str] = {
    "create_branch": "create_branch",
    "switch_branch": "switch_branch",
    "commit": "commit",
    "merge": "merge",
    "delete_branch": "delete_branch",
    "stash": "stash",
    "pull": "pull",
    "push": "push",
    "backup_branch": "backup_branch",
    "run_command": "run_command",
}


class OperationRequest(BaseModel):
    """A serializable reference to one sequencer operation and its arguments."""

    kind: OperationKind = Field(..., description="Operation to invoke on the sequencer.")
    parameters: dict[str, Any] = Field(
        default_factory=dict,
        description="Keyword arguments passed to the operation.",
    )


@dataclass(frozen=True, slots=True)
class OperationStep:
    command: GitCommand
    description: str = ""


@dataclass(slots=True)
class OperationResult:
    """Outcome of a compound operation.

    ``results`` holds one entry per step that actually ran; after a failure it
    ends with the failing step.
    """

    operation: str
    success: bool
    results: list[CommandResult] = field(default_factory=list)
    error: str | None = None
    branch_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "success": self.success,
            "error": self.error,
            "branch_name": self.branch_name,
            "results": [result.to_dict() for result in self.results],
        }


@dataclass(slots=True)
class _Plan:
    steps: list[OperationStep]
    success_message: str
    branch_name: str | None = None


class OperationSequencer:
    """Build and run the command sequences behind each compound operation.

    Steps run strictly in order, each awaited before the next. The first step
    that neither succeeds nor was cancelled stops the sequence; steps that
    already ran are not rolled back. A fully successful sequence triggers a
    status refresh.

    Callers must not run two sequences at the same time against the same
    repository: nothing here serializes them and their steps would interleave.
    """

    def __init__(
        self,
        runner: CommandRunner,
        status: StatusAggregator,
        presenter: Presenter,
        *,
        integration_branch: str = "develop",
        fallback_branch: str = "main",
        remote: str = "origin",
        user_name: str = "user",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._runner = runner
        self._status = status
        self._presenter = presenter
        self.integration_branch = integration_branch
        self.fallback_branch = fallback_branch
        self.remote = remote
        self.user_name = user_name
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # Sequencing

    async def run_steps(
        self,
        operation: str,
        steps: Sequence[OperationStep],
        *,
        success_message: str,
        failure_prefix: str,
        branch_name: str | None = None,
    ) -> OperationResult:
        results: list[CommandResult] = []
        for index, step in enumerate(steps):
            logger.debug(
                "Running operation step",
                extra={"operation": operation, "step": index + 1, "of": len(steps), "command": step.command.text},
            )
            result = await self._runner.run(step.command)
            results.append(result)
            if not result.success and not result.cancelled:
                error = result.failure_text
                logger.warning(
                    "Operation aborted",
                    extra={"operation": operation, "failed_step": index + 1, "error": error},
                )
                self._presenter.notify(f"{failure_prefix}: {error}", "error")
                return OperationResult(operation=operation, success=False, results=results, error=error)

        await self._status.refresh()
        self._presenter.notify(success_message, "success")
        return OperationResult(operation=operation, success=True, results=results, branch_name=branch_name)

    async def _execute(self, operation: str, failure_prefix: str, build: Callable[[], _Plan]) -> OperationResult:
        try:
            plan = build()
        except InvalidCommandError as exc:
            logger.warning("Operation rejected", extra={"operation": operation, "error": str(exc)})
            self._presenter.notify(f"{failure_prefix}: {exc}", "error")
            return OperationResult(operation=operation, success=False, error=str(exc))
        return await self.run_steps(
            operation,
            plan.steps,
            success_message=plan.success_message,
            failure_prefix=failure_prefix,
            branch_name=plan.branch_name,
        )

    def branch_name_for(self, name: str, branch_type: str = "feature") -> str:
        """Return the full branch name for ``name`` under the ``branch_type`` namespace."""

        validate_ref_name(branch_type, label="branch type")
        if branch_type == "personal":
            full = f"personal/{self.user_name}/{name}"
        else:
            full = f"{branch_type}/{name}"
        return validate_ref_name(full)

    def _working_branch(self) -> str:
        current = self._status.current_branch
        if not current or current == "unknown":
            return self.fallback_branch
        return current

    # Operations

    async def create_branch(
        self,
        name: str,
        start_from: str | None = None,
        branch_type: str = "feature",
    ) -> OperationResult:
        base = start_from or self.integration_branch

        def plan() -> _Plan:
            full = self.branch_name_for(name, branch_type)
            return _Plan(
                steps=[
                    OperationStep(GitCommand.checkout(base), f"Switch to {base}"),
                    OperationStep(GitCommand.pull(self.remote, base), f"Update {base}"),
                    OperationStep(GitCommand.checkout_new(full), f"Create {full}"),
                ],
                success_message=f"Created branch: {full}",
                branch_name=full,
            )

        return await self._execute("create_branch", "Failed to create branch", plan)

    async def switch_branch(self, name: str) -> OperationResult:
        def plan() -> _Plan:
            return _Plan(
                steps=[OperationStep(GitCommand.checkout(name), f"Switch to {name}")],
                success_message=f"Switched to branch: {name}",
                branch_name=name,
            )

        return await self._execute("switch_branch", "Failed to switch branch", plan)

    async def commit(self, message: str, commit_type: str = "feat", add_all: bool = True) -> OperationResult:
        commit_message = f"{commit_type}: {message}"

        def plan() -> _Plan:
            steps: list[OperationStep] = []
            if add_all:
                steps.append(OperationStep(GitCommand.add_all(), "Stage all changes"))
            steps.append(OperationStep(GitCommand.commit(commit_message), "Commit"))
            return _Plan(steps=steps, success_message=f"Committed: {commit_message}")

        return await self._execute("commit", "Commit failed", plan)

    async def merge(
        self,
        source: str,
        target: str | None = None,
        strategy: MergeStrategy | str = MergeStrategy.NO_FAST_FORWARD,
    ) -> OperationResult:
        destination = target or self.integration_branch

        def plan() -> _Plan:
            return _Plan(
                steps=[
                    OperationStep(GitCommand.checkout(destination), f"Switch to {destination}"),
                    OperationStep(GitCommand.pull(self.remote, destination), f"Update {destination}"),
                    OperationStep(GitCommand.merge(source, strategy), f"Merge {source}"),
                    OperationStep(GitCommand.push(self.remote, destination), f"Publish {destination}"),
                ],
                success_message=f"Merged {source} into {destination}",
                branch_name=destination,
            )

        return await self._execute("merge", "Merge failed", plan)

    async def delete_branch(self, name: str, force: bool = False) -> OperationResult:
        def plan() -> _Plan:
            return _Plan(
                steps=[OperationStep(GitCommand.delete_branch(name, force=force), f"Delete {name}")],
                success_message=f"Deleted branch: {name}",
                branch_name=name,
            )

        return await self._execute("delete_branch", "Failed to delete branch", plan)

    async def stash(self, message: str = "Work in progress") -> OperationResult:
        def plan() -> _Plan:
            return _Plan(
                steps=[OperationStep(GitCommand.stash_push(message), "Stash changes")],
                success_message=f"Stashed changes: {message}",
            )

        return await self._execute("stash", "Stash failed", plan)

    async def pull(self) -> OperationResult:
        branch = self._working_branch()

        def plan() -> _Plan:
            return _Plan(
                steps=[OperationStep(GitCommand.pull(self.remote, branch), f"Pull {branch}")],
                success_message=f"Pulled latest changes for {branch}",
                branch_name=branch,
            )

        return await self._execute("pull", "Pull failed", plan)

    async def push(self) -> OperationResult:
        branch = self._working_branch()

        def plan() -> _Plan:
            return _Plan(
                steps=[OperationStep(GitCommand.push(self.remote, branch), f"Push {branch}")],
                success_message=f"Pushed changes to {branch}",
                branch_name=branch,
            )

        return await self._execute("push", "Push failed", plan)

    async def backup_branch(self, prefix: str) -> OperationResult:
        """Create and switch to ``backup/<prefix>-<YYYYMMDD>``."""

        def plan() -> _Plan:
            name = f"backup/{prefix}-{self._clock().strftime('%Y%m%d')}"
            return _Plan(
                steps=[OperationStep(GitCommand.checkout_new(name), f"Create {name}")],
                success_message=f"Created backup branch: {name}",
                branch_name=name,
            )

        return await self._execute("backup_branch", "Backup failed", plan)

    async def run_command(self, args: Sequence[str] | str) -> OperationResult:
        """Run a single git command given as an argument list or a command line."""

        def plan() -> _Plan:
            try:
                items = shlex.split(args) if isinstance(args, str) else list(args)
            except ValueError as exc:
                raise InvalidCommandError(f"cannot parse command: {exc}") from exc
            command = GitCommand.from_args(items)
            return _Plan(steps=[OperationStep(command)], success_message=f"Ran: {command.text}")

        return await self._execute("run_command", "Command failed", plan)

    # Dispatch

    async def dispatch(self, request: OperationRequest) -> OperationResult:
        """Invoke the operation named by ``request`` with its parameters."""

        handler = getattr(self, OPERATION_HANDLERS[request.kind])
        try:
            inspect.signature(handler).bind(**request.parameters)
        except TypeError as exc:
            message = f"Invalid parameters for {request.kind}: {exc}"
            logger.warning("Operation request rejected", extra={"kind": request.kind, "error": str(exc)})
            self._presenter.notify(message, "error")
            return OperationResult(operation=request.kind, success=False, error=message)
        return await handler(**request.parameters)


__all__ = [
    "OperationRequest",
    "OperationResult",
    "OperationSequencer",
    "OperationStep",
    "OPERATION_HANDLERS",
]
