from __future__ import annotations

import asyncio
from datetime import datetime

import pytest

from gitdash.errors import ParseFailure, TransportFailure
from gitdash.execution.strategies import ManualStrategy
from gitdash.history import CommandHistory
from gitdash.presenter import RecordingPresenter
from gitdash.runner import CommandRunner, FakeStrategy
from gitdash.status import (
    BRANCH_DETAIL_QUERY,
    BranchType,
    StatusAggregator,
    classify_branch,
    parse_branch_line,
)

FIXED = datetime.fromisoformat("2025-01-01T00:00:00+00:00")

HEALTHY = {
    "git branch --show-current": "feature/login\n",
    "git status --porcelain": " M a.py\n?? b.py\n\n M c.py\n",
    "git branch -a": "  develop\n* feature/login\n  main\n  remotes/origin/main\n",
    "git log --oneline -5": "abc123 add login\ndef456 init\n",
    "git stash list": "",
}


def _aggregator(strategy) -> tuple[StatusAggregator, CommandHistory, RecordingPresenter]:
    history = CommandHistory()
    presenter = RecordingPresenter()
    runner = CommandRunner(strategy, history=history, presenter=presenter)
    return StatusAggregator(runner, clock=lambda: FIXED), history, presenter


def test_refresh_builds_snapshot_from_queries() -> None:
    strategy = FakeStrategy(HEALTHY)
    aggregator, history, presenter = _aggregator(strategy)

    status = asyncio.run(aggregator.refresh())

    assert status is not None
    assert status.current_branch == "feature/login"
    assert status.uncommitted_file_count == 3
    assert status.total_branches == 4
    assert status.recent_commits == ("abc123 add login", "def456 init")
    assert status.stash_count == 0
    assert status.is_clean is False
    assert status.timestamp == FIXED
    assert aggregator.current is status
    assert sorted(strategy.invocations) == sorted(HEALTHY)
    assert len(history) == 0
    assert presenter.notifications == []


def test_clean_tree_and_detached_head() -> None:
    responses = dict(HEALTHY)
    responses["git status --porcelain"] = "\n"
    responses["git branch --show-current"] = ""
    responses["git stash list"] = "stash@{0}: WIP\nstash@{1}: WIP\n"
    aggregator, _, _ = _aggregator(FakeStrategy(responses))

    status = asyncio.run(aggregator.refresh())

    assert status is not None
    assert status.is_clean is True
    assert status.uncommitted_file_count == 0
    assert status.current_branch == "unknown"
    assert status.stash_count == 2


def test_failed_query_keeps_previous_snapshot() -> None:
    strategy = FakeStrategy(HEALTHY)
    aggregator, _, _ = _aggregator(strategy)
    first = asyncio.run(aggregator.refresh())

    strategy.failures["git stash list"] = "fatal: not a git repository"
    second = asyncio.run(aggregator.refresh())

    assert second is None
    assert aggregator.current is first


def test_change_list_error_keeps_previous_snapshot() -> None:
    strategy = FakeStrategy(HEALTHY)
    aggregator, _, _ = _aggregator(strategy)
    first = asyncio.run(aggregator.refresh())

    strategy.errors["git status --porcelain"] = TransportFailure("Execution service unreachable")
    second = asyncio.run(aggregator.refresh())

    assert first is not None
    assert second is None
    assert aggregator.current is first
    assert aggregator.current.uncommitted_file_count == 3


def test_manual_strategy_reports_no_status() -> None:
    presenter = RecordingPresenter()
    strategy = ManualStrategy(presenter)
    aggregator, _, _ = _aggregator(strategy)

    assert asyncio.run(aggregator.refresh()) is None
    assert asyncio.run(aggregator.list_branches()) == []
    assert strategy.pending == []


def test_subscribers_receive_new_snapshots() -> None:
    aggregator, _, _ = _aggregator(FakeStrategy(HEALTHY))
    seen: list[str] = []
    unsubscribe = aggregator.subscribe(lambda status: seen.append(status.current_branch))

    asyncio.run(aggregator.refresh())
    unsubscribe()
    asyncio.run(aggregator.refresh())

    assert seen == ["feature/login"]


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("main", BranchType.CORE),
        ("develop", BranchType.CORE),
        ("draft", BranchType.CORE),
        ("feature/login", BranchType.FEATURE),
        ("experiment/new-ui", BranchType.EXPERIMENT),
        ("personal/alice/scratch", BranchType.PERSONAL),
        ("hotfix/crash", BranchType.HOTFIX),
        ("release/1.0", BranchType.OTHER),
        ("mainline", BranchType.OTHER),
    ],
)
def test_classify_branch(name: str, expected: BranchType) -> None:
    assert classify_branch(name) is expected


def test_parse_branch_line_keeps_separator_in_subject() -> None:
    info = parse_branch_line("feature/x|2 days ago|Alice|fix: a|b", current_branch="feature/x")

    assert info.name == "feature/x"
    assert info.last_commit_relative == "2 days ago"
    assert info.author == "Alice"
    assert info.subject == "fix: a|b"
    assert info.type is BranchType.FEATURE
    assert info.is_current is True


def test_parse_branch_line_rejects_short_lines() -> None:
    with pytest.raises(ParseFailure):
        parse_branch_line("feature/x|2 days ago|Alice")


def test_list_branches_marks_current() -> None:
    responses = dict(HEALTHY)
    responses[BRANCH_DETAIL_QUERY.text] = (
        "develop|3 hours ago|Bob|merge login\n"
        "feature/login|1 hour ago|Alice|add login\n"
        "\n"
    )
    aggregator, _, _ = _aggregator(FakeStrategy(responses))
    asyncio.run(aggregator.refresh())

    branches = asyncio.run(aggregator.list_branches())

    assert [branch.name for branch in branches] == ["develop", "feature/login"]
    assert [branch.is_current for branch in branches] == [False, True]
    assert branches[0].type is BranchType.CORE


def test_list_branches_is_empty_on_failure_or_bad_output() -> None:
    failing, _, _ = _aggregator(FakeStrategy(failures={BRANCH_DETAIL_QUERY: "fatal"}))
    garbled, _, _ = _aggregator(FakeStrategy({BRANCH_DETAIL_QUERY: "not a branch line"}))

    assert asyncio.run(failing.list_branches()) == []
    assert asyncio.run(garbled.list_branches()) == []
