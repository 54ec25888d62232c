"""Execution backends and the detection logic that picks one of them."""

from __future__ import annotations

import asyncio
import logging
import shlex
import shutil
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

import httpx

from ..errors import ExecutionFailure, GitDashError, TransportFailure, UserCancelled
from ..presenter import Presenter
from .result import CommandResult
from .utils import sanitize_environment

if TYPE_CHECKING:
    from ..config import GitDashSettings

logger = logging.getLogger(__name__)

MANUAL_PLACEHOLDER = "Command prepared for manual execution"
MANUAL_ACKNOWLEDGED = "Manually executed"


class StrategyKind(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"
    MANUAL = "manual"


class GitNotFoundError(GitDashError):
    """Raised when no git executable can be located for local execution."""


class ExecutionStrategy(ABC):
    """Uniform "run one command" capability over the three backends."""

    kind: StrategyKind

    @abstractmethod
    async def run(self, command: str, *, cwd: Path | None = None) -> CommandResult:
        """Execute ``command`` and return its outcome.

        Backends return a result for commands that ran to completion, whatever
        the exit status; they raise ``ExecutionFailure`` when the command could
        not be run at all and ``TransportFailure`` when the remote service
        could not be reached.
        """

    @property
    def can_query(self) -> bool:
        """Whether results carry real repository output."""

        return True


class LocalStrategy(ExecutionStrategy):
    """Run commands as local processes, without a shell."""

    kind = StrategyKind.LOCAL

    def __init__(
        self,
        executable: Path | None = None,
        *,
        cwd: Path | None = None,
        timeout: float | None = None,
    ) -> None:
        self._executable_path = self._resolve_executable(executable)
        self._cwd = Path(cwd) if cwd is not None else None
        self._timeout = timeout

    @staticmethod
    def _resolve_executable(explicit: Path | None) -> Path:
        if explicit is not None:
            candidate = Path(explicit)
            if candidate.exists() and candidate.is_file():
                return candidate
            raise GitNotFoundError(f"git executable not found at {candidate}")

        binary = shutil.which("git")
        if binary is None:
            raise GitNotFoundError("git executable not found on PATH")
        return Path(binary)

    @property
    def executable(self) -> Path:
        return self._executable_path

    def _argv(self, command: str) -> list[str]:
        try:
            argv = shlex.split(command)
        except ValueError as exc:
            raise ExecutionFailure(f"Cannot parse command {command!r}: {exc}") from exc
        if not argv:
            raise ExecutionFailure("Cannot execute an empty command")
        if argv[0] == "git":
            argv[0] = str(self._executable_path)
        return argv

    async def run(self, command: str, *, cwd: Path | None = None) -> CommandResult:
        argv = self._argv(command)
        workdir = cwd or self._cwd
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(workdir) if workdir is not None else None,
                env=sanitize_environment(),
            )
        except OSError as exc:
            raise ExecutionFailure(f"Failed to start {argv[0]}: {exc}") from exc

        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                process.communicate(), timeout=self._timeout
            )
        except asyncio.TimeoutError as exc:
            process.kill()
            await process.wait()
            raise ExecutionFailure(f"Command timed out after {self._timeout}s: {command}") from exc

        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")
        ok = process.returncode == 0
        return CommandResult(
            command=command,
            success=ok,
            stdout=stdout,
            stderr=stderr,
            error=None if ok else f"Command failed: {command} (exit code {process.returncode})",
        )


class RemoteStrategy(ExecutionStrategy):
    """Proxy commands to the companion execution service over HTTP."""

    kind = StrategyKind.REMOTE

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float | None = None,
        probe_timeout: float = 2.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._probe_timeout = probe_timeout
        self._transport = transport

    def _client(self, timeout: float | None) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    async def probe(self) -> bool:
        """Return True when ``GET <base>/status`` answers with any 2xx status."""

        try:
            async with self._client(self._probe_timeout) as client:
                response = await client.get(f"{self.base_url}/status")
        except httpx.HTTPError as exc:
            logger.debug("Remote execution probe failed", extra={"url": self.base_url, "error": str(exc)})
            return False
        return response.is_success

    async def run(self, command: str, *, cwd: Path | None = None) -> CommandResult:
        options = {"cwd": str(cwd)} if cwd is not None else {}
        try:
            async with self._client(self._timeout) as client:
                response = await client.post(
                    f"{self.base_url}/execute",
                    json={"command": command, "options": options},
                )
        except httpx.TimeoutException as exc:
            raise TransportFailure(f"Execution service timed out running {command!r}") from exc
        except httpx.HTTPError as exc:
            raise TransportFailure(f"Execution service unreachable at {self.base_url}: {exc}") from exc

        if not response.is_success:
            raise TransportFailure(
                f"Server error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise TransportFailure("Execution service returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise TransportFailure("Execution service returned a non-object payload")
        try:
            return CommandResult.from_dict(payload, command=command)
        except (TypeError, ValueError) as exc:
            raise TransportFailure(f"Execution service returned a malformed result: {exc}") from exc


class ManualStrategy(ExecutionStrategy):
    """Surface commands for a human to run elsewhere and acknowledge back."""

    kind = StrategyKind.MANUAL

    def __init__(self, presenter: Presenter) -> None:
        self._presenter = presenter
        self._pending: list[str] = []

    @property
    def can_query(self) -> bool:
        return False

    @property
    def pending(self) -> list[str]:
        """Commands shown to the human that are not yet acknowledged or dismissed."""

        return list(self._pending)

    def clear_pending(self) -> list[str]:
        """Forget every unsettled command and return what was dropped."""

        dropped, self._pending = self._pending, []
        if dropped:
            logger.info("Cleared pending manual commands", extra={"count": len(dropped)})
        return dropped

    async def run(self, command: str, *, cwd: Path | None = None) -> CommandResult:
        self._pending.append(command)
        self._presenter.show_modal(
            "Execute Command",
            f"Copy and run this command in your terminal:\n\n{command}",
        )
        return CommandResult(command=command, success=True, stdout=MANUAL_PLACEHOLDER, manual=True)

    def settle(self, command: str, *, acknowledged: bool) -> CommandResult:
        """Close out a pending command with the human's answer.

        Raises ``UserCancelled`` when the prompt was dismissed.
        """

        if command in self._pending:
            self._pending.remove(command)
        else:
            logger.debug("Settling a command that was not pending", extra={"command": command})
        if not acknowledged:
            raise UserCancelled(f"Manual execution dismissed: {command}")
        return CommandResult(command=command, success=True, stdout=MANUAL_ACKNOWLEDGED, manual=True)


class StrategyResolver:
    """Pick the execution backend once and cache it until explicitly refreshed.

    In ``auto`` mode the order is Local when a git executable is present, then
    Remote when its liveness probe succeeds, then Manual.
    """

    def __init__(
        self,
        settings: "GitDashSettings",
        presenter: Presenter,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._presenter = presenter
        self._transport = transport
        self._cached: ExecutionStrategy | None = None

    @property
    def current(self) -> ExecutionStrategy | None:
        return self._cached

    def _local(self) -> LocalStrategy:
        explicit = Path(self._settings.git_path) if self._settings.git_path else None
        return LocalStrategy(
            explicit,
            cwd=self._settings.repo_path,
            timeout=self._settings.command_timeout,
        )

    def _remote(self) -> RemoteStrategy:
        return RemoteStrategy(
            self._settings.remote_url,
            timeout=self._settings.command_timeout,
            probe_timeout=self._settings.probe_timeout,
            transport=self._transport,
        )

    async def resolve(self, *, refresh: bool = False) -> ExecutionStrategy:
        if self._cached is not None and not refresh:
            return self._cached

        mode = self._settings.execution_mode
        strategy: ExecutionStrategy
        if mode == "local":
            strategy = self._local()
        elif mode == "remote":
            strategy = self._remote()
        elif mode == "manual":
            strategy = ManualStrategy(self._presenter)
        else:
            strategy = await self._detect()

        logger.info(
            "Execution strategy resolved",
            extra={"mode": mode, "strategy": strategy.kind.value},
        )
        self._cached = strategy
        return strategy

    async def _detect(self) -> ExecutionStrategy:
        try:
            return self._local()
        except GitNotFoundError as exc:
            logger.info("Local execution unavailable", extra={"reason": str(exc)})

        remote = self._remote()
        if await remote.probe():
            return remote

        logger.warning(
            "Execution service not available; commands will be shown for manual execution",
            extra={"url": self._settings.remote_url},
        )
        return ManualStrategy(self._presenter)


__all__ = [
    "ExecutionStrategy",
    "GitNotFoundError",
    "LocalStrategy",
    "ManualStrategy",
    "RemoteStrategy",
    "StrategyKind",
    "StrategyResolver",
    "MANUAL_ACKNOWLEDGED",
    "MANUAL_PLACEHOLDER",
]
