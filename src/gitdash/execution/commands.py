"""Structured construction of git command lines.

Commands are assembled as argument vectors and only rendered to text at the
edge, so user-supplied branch names and messages never reach a shell unquoted.
"""

from __future__ import annotations

import re
import shlex
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from ..errors import GitDashError

_FORBIDDEN_REF_CHARS = re.compile(r"[\s~^:?*\[\\\x00-\x1f\x7f]")


class InvalidCommandError(GitDashError, ValueError):
    """Raised when a command parameter would produce an unsafe or invalid command."""


class MergeStrategy(str, Enum):
    NO_FAST_FORWARD = "--no-ff"
    FAST_FORWARD = "--ff"
    FAST_FORWARD_ONLY = "--ff-only"
    SQUASH = "--squash"


def validate_ref_name(name: str, *, label: str = "branch name") -> str:
    """Return ``name`` stripped, or raise if git would reject it as a ref."""

    if not isinstance(name, str):
        raise InvalidCommandError(f"{label} must be a string")
    candidate = name.strip()
    if not candidate:
        raise InvalidCommandError(f"{label} must not be empty")
    if candidate.startswith("-"):
        raise InvalidCommandError(f"{label} must not start with '-': {candidate!r}")
    if _FORBIDDEN_REF_CHARS.search(candidate):
        raise InvalidCommandError(f"{label} contains forbidden characters: {candidate!r}")
    if ".." in candidate or "@{" in candidate or "//" in candidate:
        raise InvalidCommandError(f"{label} contains a forbidden sequence: {candidate!r}")
    if candidate.startswith("/") or candidate.endswith(("/", ".", ".lock")) or candidate == "@":
        raise InvalidCommandError(f"{label} has an invalid form: {candidate!r}")
    if any(part.startswith(".") for part in candidate.split("/")):
        raise InvalidCommandError(f"{label} has a component starting with '.': {candidate!r}")
    return candidate


def _validate_text(value: str, *, label: str) -> str:
    if not isinstance(value, str):
        raise InvalidCommandError(f"{label} must be a string")
    if "\x00" in value:
        raise InvalidCommandError(f"{label} must not contain NUL bytes")
    return value


@dataclass(frozen=True, slots=True)
class GitCommand:
    """An immutable git invocation expressed as an argument vector."""

    args: tuple[str, ...]
    executable: str = "git"

    @property
    def argv(self) -> list[str]:
        return [self.executable, *self.args]

    @property
    def text(self) -> str:
        """Shell-quoted rendering, safe to show to a human or send to a proxy."""

        return shlex.join(self.argv)

    def __str__(self) -> str:
        return self.text

    @classmethod
    def git(cls, *args: str) -> "GitCommand":
        for arg in args:
            _validate_text(arg, label="argument")
            if "\n" in arg or "\r" in arg:
                raise InvalidCommandError(f"argument must be a single line: {arg!r}")
        return cls(tuple(args))

    @classmethod
    def from_args(cls, args: Iterable[str]) -> "GitCommand":
        items = list(args)
        if items and items[0] == "git":
            items = items[1:]
        if not items:
            raise InvalidCommandError("a git subcommand is required")
        return cls.git(*items)

    # Builders for the fixed set of operations.

    @classmethod
    def checkout(cls, branch: str) -> "GitCommand":
        return cls(("checkout", validate_ref_name(branch)))

    @classmethod
    def checkout_new(cls, branch: str) -> "GitCommand":
        return cls(("checkout", "-b", validate_ref_name(branch)))

    @classmethod
    def pull(cls, remote: str, branch: str) -> "GitCommand":
        return cls(("pull", validate_ref_name(remote, label="remote"), validate_ref_name(branch)))

    @classmethod
    def push(cls, remote: str, branch: str) -> "GitCommand":
        return cls(("push", validate_ref_name(remote, label="remote"), validate_ref_name(branch)))

    @classmethod
    def add_all(cls) -> "GitCommand":
        return cls(("add", "."))

    @classmethod
    def commit(cls, message: str) -> "GitCommand":
        _validate_text(message, label="commit message")
        if not message.strip():
            raise InvalidCommandError("commit message must not be empty")
        return cls(("commit", "-m", message))

    @classmethod
    def merge(cls, source: str, strategy: MergeStrategy | str = MergeStrategy.NO_FAST_FORWARD) -> "GitCommand":
        try:
            flag = MergeStrategy(strategy)
        except ValueError as exc:
            raise InvalidCommandError(f"unsupported merge strategy: {strategy!r}") from exc
        return cls(("merge", flag.value, validate_ref_name(source)))

    @classmethod
    def delete_branch(cls, branch: str, *, force: bool = False) -> "GitCommand":
        return cls(("branch", "-D" if force else "-d", validate_ref_name(branch)))

    @classmethod
    def stash_push(cls, message: str) -> "GitCommand":
        _validate_text(message, label="stash message")
        return cls(("stash", "push", "-m", message))


__all__ = ["GitCommand", "InvalidCommandError", "MergeStrategy", "validate_ref_name"]
