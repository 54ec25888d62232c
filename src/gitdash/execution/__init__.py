"""Command construction and execution backends."""

from .commands import GitCommand, InvalidCommandError, MergeStrategy, validate_ref_name
from .result import CommandResult
from .strategies import (
    ExecutionStrategy,
    GitNotFoundError,
    LocalStrategy,
    ManualStrategy,
    RemoteStrategy,
    StrategyKind,
    StrategyResolver,
)

__all__ = [
    "CommandResult",
    "ExecutionStrategy",
    "GitCommand",
    "GitNotFoundError",
    "InvalidCommandError",
    "LocalStrategy",
    "ManualStrategy",
    "MergeStrategy",
    "RemoteStrategy",
    "StrategyKind",
    "StrategyResolver",
    "validate_ref_name",
]
