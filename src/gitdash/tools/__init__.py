"""Tool registration for the gitdash MCP server."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from fastmcp import Context, FastMCP

from ..context import DashContext
from ..execution.commands import MergeStrategy
from ..operations import OperationResult
from ..presenter import RecordingPresenter
from ..tutorials import TutorialStep

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ToolHandles:
    repo_status: Any
    list_branches: Any
    create_branch: Any
    switch_branch: Any
    commit_changes: Any
    merge_branch: Any
    delete_branch: Any
    stash_changes: Any
    pull_latest: Any
    push_changes: Any
    acknowledge_command: Any
    dismiss_command: Any
    command_history: Any
    start_tutorial: Any
    advance_tutorial: Any
    run_tutorial_action: Any
    skip_tutorial: Any
    toggle_theme: Any
    refresh_strategy: Any


def _step_payload(step: TutorialStep | None) -> dict[str, Any] | None:
    if step is None:
        return None
    return {
        "title": step.title,
        "content": step.content,
        "highlight": step.highlight,
        "has_action": step.action is not None,
    }


def register_tools(server: FastMCP, *, dash: DashContext) -> ToolHandles:
    """Register gitdash's MCP tools on the server."""

    def _with_feedback(payload: dict[str, Any]) -> dict[str, Any]:
        presenter = dash.presenter
        if isinstance(presenter, RecordingPresenter):
            payload["feedback"] = presenter.drain()
        return payload

    def _operation_response(result: OperationResult, ctx: Context | None) -> dict[str, Any]:
        _emit_log(
            ctx,
            "info" if result.success else "warning",
            "Operation finished",
            extra={"operation": result.operation, "success": result.success, "steps": len(result.results)},
        )
        return _with_feedback(result.to_dict())

    def _tutorial_payload() -> dict[str, Any]:
        engine = dash.tutorials
        session = engine.session
        return {
            "state": engine.state.value,
            "tutorial": session.name,
            "step_index": session.step_index,
            "step_count": len(session.steps),
            "step": _step_payload(engine.current_step),
            "available": engine.available,
        }

    async def _repo_status(context: Context | None = None) -> dict[str, Any]:
        """Refresh and return the repository status snapshot."""

        snapshot = await dash.status.refresh()
        _emit_log(context, "debug", "Status refreshed", extra={"available": snapshot is not None})
        return _with_feedback(
            {
                "strategy": dash.runner.strategy.kind.value,
                "status": snapshot.to_dict() if snapshot is not None else None,
            }
        )

    async def _list_branches(context: Context | None = None) -> list[dict[str, Any]]:
        """List local branches with their classification."""

        branches = await dash.status.list_branches()
        _emit_log(context, "debug", "Listed branches", extra={"count": len(branches)})
        return [branch.to_dict() for branch in branches]

    async def _create_branch(
        name: str,
        start_from: str | None = None,
        branch_type: str = "feature",
        context: Context | None = None,
    ) -> dict[str, Any]:
        result = await dash.operations.create_branch(name, start_from, branch_type)
        return _operation_response(result, context)

    async def _switch_branch(name: str, context: Context | None = None) -> dict[str, Any]:
        result = await dash.operations.switch_branch(name)
        return _operation_response(result, context)

    async def _commit_changes(
        message: str,
        commit_type: str = "feat",
        add_all: bool = True,
        context: Context | None = None,
    ) -> dict[str, Any]:
        result = await dash.operations.commit(message, commit_type, add_all)
        return _operation_response(result, context)

    async def _merge_branch(
        source: str,
        target: str | None = None,
        strategy: str = MergeStrategy.NO_FAST_FORWARD.value,
        context: Context | None = None,
    ) -> dict[str, Any]:
        result = await dash.operations.merge(source, target, strategy)
        return _operation_response(result, context)

    async def _delete_branch(name: str, force: bool = False, context: Context | None = None) -> dict[str, Any]:
        result = await dash.operations.delete_branch(name, force)
        return _operation_response(result, context)

    async def _stash_changes(message: str = "Work in progress", context: Context | None = None) -> dict[str, Any]:
        result = await dash.operations.stash(message)
        return _operation_response(result, context)

    async def _pull_latest(context: Context | None = None) -> dict[str, Any]:
        result = await dash.operations.pull()
        return _operation_response(result, context)

    async def _push_changes(context: Context | None = None) -> dict[str, Any]:
        result = await dash.operations.push()
        return _operation_response(result, context)

    def _acknowledge_command(command: str, context: Context | None = None) -> dict[str, Any]:
        """Mark a manually surfaced command as executed."""

        result = dash.runner.acknowledge(command)
        _emit_log(context, "info", "Manual command acknowledged", extra={"command": command})
        return _with_feedback(result.to_dict())

    def _dismiss_command(command: str, context: Context | None = None) -> dict[str, Any]:
        """Dismiss a manually surfaced command without running it."""

        result = dash.runner.dismiss(command)
        _emit_log(context, "info", "Manual command dismissed", extra={"command": command})
        return _with_feedback(result.to_dict())

    def _command_history(limit: int | None = None, context: Context | None = None) -> dict[str, Any]:
        """Return recorded commands, most recent first."""

        entries = dash.history.list()
        if limit is not None:
            entries = entries[: max(limit, 0)]
        return {
            "capacity": dash.history.capacity,
            "entries": [entry.to_dict() for entry in entries],
        }

    def _start_tutorial(name: str, context: Context | None = None) -> dict[str, Any]:
        dash.tutorials.start(name)
        _emit_log(context, "info", "Tutorial started", extra={"tutorial": dash.tutorials.session.name})
        return _with_feedback(_tutorial_payload())

    def _advance_tutorial(context: Context | None = None) -> dict[str, Any]:
        dash.tutorials.advance()
        return _with_feedback(_tutorial_payload())

    async def _run_tutorial_action(context: Context | None = None) -> dict[str, Any]:
        result = await dash.tutorials.run_step_action()
        payload = _tutorial_payload()
        payload["operation"] = result.to_dict() if result is not None else None
        return _with_feedback(payload)

    def _skip_tutorial(context: Context | None = None) -> dict[str, Any]:
        dash.tutorials.skip()
        return _with_feedback(_tutorial_payload())

    def _toggle_theme(context: Context | None = None) -> dict[str, Any]:
        theme = dash.theme.toggle()
        return _with_feedback({"theme": theme})

    async def _refresh_strategy(context: Context | None = None) -> dict[str, Any]:
        """Re-detect which execution backend is usable."""

        strategy = await dash.refresh_strategy()
        _emit_log(context, "info", "Execution strategy refreshed", extra={"strategy": strategy.kind.value})
        return {"strategy": strategy.kind.value}

    tool_status = server.tool(
        name="repo_status",
        description="Refresh and return the current repository status snapshot.",
    )(_repo_status)
    tool_branches = server.tool(
        name="list_branches",
        description="List local branches with last commit details and branch type.",
    )(_list_branches)
    tool_create = server.tool(
        name="create_branch",
        description="Create and switch to <type>/<name> from an up-to-date base branch.",
    )(_create_branch)
    tool_switch = server.tool(
        name="switch_branch",
        description="Switch to an existing branch.",
    )(_switch_branch)
    tool_commit = server.tool(
        name="commit_changes",
        description="Stage changes and commit with a '<type>: <message>' message.",
    )(_commit_changes)
    tool_merge = server.tool(
        name="merge_branch",
        description="Merge a branch into the target, then push the target. Steps already run are not undone on failure.",
    )(_merge_branch)
    tool_delete = server.tool(
        name="delete_branch",
        description="Delete a local branch, optionally forcing it.",
    )(_delete_branch)
    tool_stash = server.tool(
        name="stash_changes",
        description="Stash working tree changes with a message.",
    )(_stash_changes)
    tool_pull = server.tool(
        name="pull_latest",
        description="Pull the current branch from the remote.",
    )(_pull_latest)
    tool_push = server.tool(
        name="push_changes",
        description="Push the current branch to the remote.",
    )(_push_changes)
    tool_ack = server.tool(
        name="acknowledge_command",
        description="Confirm that a manually surfaced command was executed.",
    )(_acknowledge_command)
    tool_dismiss = server.tool(
        name="dismiss_command",
        description="Dismiss a manually surfaced command without executing it.",
    )(_dismiss_command)
    tool_history = server.tool(
        name="command_history",
        description="Return recently executed commands, most recent first.",
    )(_command_history)
    tool_start = server.tool(
        name="start_tutorial",
        description="Start a guided tutorial by name.",
    )(_start_tutorial)
    tool_advance = server.tool(
        name="advance_tutorial",
        description="Move the running tutorial to its next step.",
    )(_advance_tutorial)
    tool_action = server.tool(
        name="run_tutorial_action",
        description="Run the current tutorial step's operation, then advance.",
    )(_run_tutorial_action)
    tool_skip = server.tool(
        name="skip_tutorial",
        description="End the running tutorial.",
    )(_skip_tutorial)
    tool_theme = server.tool(
        name="toggle_theme",
        description="Toggle the dashboard theme between light and dark.",
    )(_toggle_theme)
    tool_strategy = server.tool(
        name="refresh_strategy",
        description="Re-detect the execution backend (local, remote, or manual).",
    )(_refresh_strategy)

    return ToolHandles(
        repo_status=tool_status,
        list_branches=tool_branches,
        create_branch=tool_create,
        switch_branch=tool_switch,
        commit_changes=tool_commit,
        merge_branch=tool_merge,
        delete_branch=tool_delete,
        stash_changes=tool_stash,
        pull_latest=tool_pull,
        push_changes=tool_push,
        acknowledge_command=tool_ack,
        dismiss_command=tool_dismiss,
        command_history=tool_history,
        start_tutorial=tool_start,
        advance_tutorial=tool_advance,
        run_tutorial_action=tool_action,
        skip_tutorial=tool_skip,
        toggle_theme=tool_theme,
        refresh_strategy=tool_strategy,
    )


def _emit_log(
    context: Context | None,
    level: str,
    message: str,
    *,
    extra: dict[str, Any] | None = None,
) -> None:
    """Best-effort logging that prefers the MCP context logger when available."""

    payload = extra or {}

    if context is not None:
        ctx_logger = getattr(context, "logger", None)
        if ctx_logger is not None:
            log_method = getattr(ctx_logger, level, None)
            if callable(log_method):
                log_method(message, extra=payload)
                return

    fallback = getattr(logger, level, logger.info)
    fallback(message, extra=payload)


__all__ = ["register_tools", "ToolHandles"]
