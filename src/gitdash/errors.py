"""Error taxonomy shared by the execution, status, and operation layers."""

from __future__ import annotations


class GitDashError(RuntimeError):
    """Base class for gitdash errors."""


class ExecutionFailure(GitDashError):
    """The process or remote call completed but reported non-success."""

    def __init__(self, message: str, *, stderr: str = "") -> None:
        super().__init__(message)
        self.stderr = stderr


class TransportFailure(GitDashError):
    """The remote execution service was unreachable or answered with a non-2xx status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ParseFailure(GitDashError):
    """A status or branch query returned output in an unexpected format."""


class UserCancelled(GitDashError):
    """A manual execution prompt was dismissed without acknowledgement."""


__all__ = [
    "GitDashError",
    "ExecutionFailure",
    "TransportFailure",
    "ParseFailure",
    "UserCancelled",
]
