"""Repository status snapshots and branch listings built from read-only queries."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

from .errors import ExecutionFailure, GitDashError, ParseFailure
from .execution.commands import GitCommand
from .runner import CommandRunner

logger = logging.getLogger(__name__)

BRANCH_FIELD_SEPARATOR = "|"

CURRENT_BRANCH_QUERY = GitCommand.git("branch", "--show-current")
CHANGES_QUERY = GitCommand.git("status", "--porcelain")
BRANCHES_QUERY = GitCommand.git("branch", "-a")
RECENT_COMMITS_QUERY = GitCommand.git("log", "--oneline", "-5")
STASH_QUERY = GitCommand.git("stash", "list")
STATUS_QUERIES = (
    CURRENT_BRANCH_QUERY,
    CHANGES_QUERY,
    BRANCHES_QUERY,
    RECENT_COMMITS_QUERY,
    STASH_QUERY,
)
BRANCH_DETAIL_QUERY = GitCommand.git(
    "for-each-ref",
    "--format=%(refname:short)|%(committerdate:relative)|%(authorname)|%(subject)",
    "refs/heads/",
)


class BranchType(str, Enum):
    CORE = "core"
    FEATURE = "feature"
    EXPERIMENT = "experiment"
    PERSONAL = "personal"
    HOTFIX = "hotfix"
    OTHER = "other"


CORE_BRANCHES = frozenset({"main", "master", "staging", "develop", "draft"})
_PREFIX_TYPES = (
    ("feature/", BranchType.FEATURE),
    ("experiment/", BranchType.EXPERIMENT),
    ("personal/", BranchType.PERSONAL),
    ("hotfix/", BranchType.HOTFIX),
)


def classify_branch(name: str) -> BranchType:
    """Classify a branch by name; the first matching rule wins."""

    if name in CORE_BRANCHES:
        return BranchType.CORE
    for prefix, branch_type in _PREFIX_TYPES:
        if name.startswith(prefix):
            return branch_type
    return BranchType.OTHER


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _non_blank_lines(text: str) -> list[str]:
    return [line for line in text.split("\n") if line.strip()]


@dataclass(frozen=True, slots=True)
class RepositoryStatus:
    """A fully populated point-in-time view of the repository."""

    current_branch: str
    uncommitted_file_count: int
    total_branches: int
    recent_commits: tuple[str, ...]
    stash_count: int
    is_clean: bool
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_branch": self.current_branch,
            "uncommitted_file_count": self.uncommitted_file_count,
            "total_branches": self.total_branches,
            "recent_commits": list(self.recent_commits),
            "stash_count": self.stash_count,
            "is_clean": self.is_clean,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True, slots=True)
class BranchInfo:
    name: str
    last_commit_relative: str
    author: str
    subject: str
    type: BranchType
    is_current: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "last_commit_relative": self.last_commit_relative,
            "author": self.author,
            "subject": self.subject,
            "type": self.type.value,
            "is_current": self.is_current,
        }


def parse_branch_line(line: str, *, current_branch: str | None = None) -> BranchInfo:
    """Parse one ``name|relativeDate|author|subject`` line.

    The subject is the last field and may itself contain the separator.
    """

    parts = line.split(BRANCH_FIELD_SEPARATOR, 3)
    if len(parts) < 4:
        raise ParseFailure(f"Expected 4 fields in branch line, got {len(parts)}: {line!r}")
    name, relative, author, subject = (part.strip() for part in parts)
    if not name:
        raise ParseFailure(f"Branch line has an empty name: {line!r}")
    return BranchInfo(
        name=name,
        last_commit_relative=relative,
        author=author,
        subject=subject,
        type=classify_branch(name),
        is_current=current_branch is not None and name == current_branch,
    )


StatusListener = Callable[[RepositoryStatus], None]


class StatusAggregator:
    """Owns the current ``RepositoryStatus`` snapshot.

    The snapshot is only ever replaced whole: a failed refresh leaves the
    previous one in place and reports ``None`` to the caller.
    """

    def __init__(self, runner: CommandRunner, *, clock: Callable[[], datetime] | None = None) -> None:
        self._runner = runner
        self._clock = clock or _utcnow
        self._status: RepositoryStatus | None = None
        self._listeners: list[StatusListener] = []

    @property
    def current(self) -> RepositoryStatus | None:
        return self._status

    @property
    def current_branch(self) -> str | None:
        status = self._status
        return status.current_branch if status is not None else None

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """Call ``listener`` with every new snapshot; returns an unsubscribe callable."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def _query(self, command: GitCommand) -> str:
        result = await self._runner.run(command, quiet=True)
        if result.manual:
            raise ParseFailure(f"No output available for manually executed {command.text!r}")
        if not result.success:
            raise ExecutionFailure(result.failure_text, stderr=result.stderr)
        return result.stdout

    async def refresh(self) -> RepositoryStatus | None:
        """Run the five status queries together and publish a new snapshot."""

        if not self._runner.strategy.can_query:
            logger.debug("Status unavailable for the active strategy")
            return None

        outputs = await asyncio.gather(
            *(self._query(query) for query in STATUS_QUERIES),
            return_exceptions=True,
        )
        for query, output in zip(STATUS_QUERIES, outputs):
            if isinstance(output, BaseException):
                self._log_failure("Status refresh failed", query, output)
                return None

        current, changes, branches, commits, stashes = outputs
        snapshot = RepositoryStatus(
            current_branch=current.strip() or "unknown",
            uncommitted_file_count=len(_non_blank_lines(changes)),
            total_branches=len(_non_blank_lines(branches)),
            recent_commits=tuple(_non_blank_lines(commits)),
            stash_count=len(_non_blank_lines(stashes)),
            is_clean=changes.strip() == "",
            timestamp=self._clock(),
        )
        self._status = snapshot
        self._emit(snapshot)
        return snapshot

    async def list_branches(self) -> list[BranchInfo]:
        """Return local branches with last-commit details; empty on any failure."""

        if not self._runner.strategy.can_query:
            return []
        try:
            output = await self._query(BRANCH_DETAIL_QUERY)
            current = self.current_branch
            return [parse_branch_line(line, current_branch=current) for line in _non_blank_lines(output)]
        except GitDashError as exc:
            self._log_failure("Branch listing failed", BRANCH_DETAIL_QUERY, exc)
            return []

    def _emit(self, snapshot: RepositoryStatus) -> None:
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Status listener raised")

    @staticmethod
    def _log_failure(message: str, query: GitCommand, exc: BaseException) -> None:
        # Parse problems degrade silently to "no status"; everything else is worth a warning.
        level = logging.DEBUG if isinstance(exc, ParseFailure) else logging.WARNING
        logger.log(level, message, extra={"command": query.text, "error": str(exc)})


__all__ = [
    "BranchInfo",
    "BranchType",
    "RepositoryStatus",
    "StatusAggregator",
    "classify_branch",
    "parse_branch_line",
    "STATUS_QUERIES",
    "BRANCH_DETAIL_QUERY",
]
