"""FastMCP server exposing the gitdash core to a dashboard or agent."""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Optional

from fastmcp import Context, FastMCP

from . import __version__
from .config import GitDashSettings, get_settings
from .context import DashContext, build_context
from .presenter import RecordingPresenter
from .tools import register_tools


def configure_logging(level: str) -> None:
    """Configure root logging for the gitdash server."""

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


def _run_sync(coro):
    """Execute an async coroutine on a dedicated event loop."""

    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def create_server(
    settings: Optional[GitDashSettings] = None,
    dash: DashContext | None = None,
) -> FastMCP:
    """Instantiate the FastMCP server around a fully wired context."""

    settings = settings or get_settings()
    if dash is None:
        dash = _run_sync(build_context(settings, presenter=RecordingPresenter()))
        _run_sync(dash.status.refresh())

    server = FastMCP(
        name="gitdash",
        version=__version__,
        instructions=(
            "gitdash runs git workflows (branching, committing, merging, stashing, "
            "syncing) against a repository and reports their outcomes. Compound "
            "operations stop at the first failing step without undoing earlier "
            "steps; run one operation at a time."
        ),
    )

    handles = register_tools(server, dash=dash)

    @server.resource(
        "resource://gitdash/status",
        name="gitdash_status",
        title="gitdash Status",
        description="Last known repository status, execution backend, and history size.",
        mime_type="application/json",
        tags={"status", "health"},
    )
    def status_resource(context: Context) -> str:
        """Return a JSON string summarizing runtime state without running commands."""

        snapshot = dash.status.current
        strategy = dash.runner.strategy
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "server_version": __version__,
            "log_level": settings.log_level,
            "repo_path": str(settings.repo_path),
            "execution": {
                "mode": settings.execution_mode,
                "strategy": strategy.kind.value,
                "remote_url": settings.remote_url,
                "pending_manual": getattr(strategy, "pending", []),
            },
            "status": snapshot.to_dict() if snapshot is not None else None,
            "history": {
                "count": len(dash.history),
                "capacity": dash.history.capacity,
            },
            "tutorial": {
                "state": dash.tutorials.state.value,
                "available": dash.tutorials.available,
            },
            "theme": dash.theme.get(),
            "request_id": getattr(context, "request_id", None),
        }
        return json.dumps(payload)

    setattr(server, "dash", dash)
    setattr(server, "tool_handles", handles)
    return server


def main() -> None:
    """Entry point for running the gitdash server via CLI."""

    settings = get_settings()
    configure_logging(settings.log_level)

    server = create_server(settings)
    dash: DashContext = getattr(server, "dash")
    logging.getLogger(__name__).info(
        "Launching gitdash server",
        extra={
            "version": __version__,
            "log_level": settings.log_level,
            "strategy": dash.runner.strategy.kind.value,
            "repo_path": str(settings.repo_path),
        },
    )
    server.run()


if __name__ == "__main__":
    main()
