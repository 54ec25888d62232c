from __future__ import annotations

import asyncio
from datetime import datetime

from gitdash.errors import UserCancelled
from gitdash.history import CommandHistory
from gitdash.operations import OperationRequest, OperationSequencer
from gitdash.presenter import RecordingPresenter
from gitdash.runner import CommandRunner, FakeStrategy
from gitdash.status import STATUS_QUERIES, StatusAggregator

FIXED = datetime.fromisoformat("2025-03-07T12:00:00+00:00")


def _sequencer(strategy: FakeStrategy, **kwargs) -> tuple[OperationSequencer, CommandHistory, RecordingPresenter]:
    history = CommandHistory()
    presenter = RecordingPresenter()
    runner = CommandRunner(strategy, history=history, presenter=presenter)
    status = StatusAggregator(runner)
    runner.branch_provider = lambda: status.current_branch
    kwargs.setdefault("clock", lambda: FIXED)
    sequencer = OperationSequencer(runner, status, presenter, **kwargs)
    return sequencer, history, presenter


def _mutating(strategy: FakeStrategy) -> list[str]:
    queries = {query.text for query in STATUS_QUERIES}
    return [command for command in strategy.invocations if command not in queries]


def test_create_branch_runs_three_steps_in_order() -> None:
    strategy = FakeStrategy()
    sequencer, history, presenter = _sequencer(strategy)

    result = asyncio.run(sequencer.create_branch("login"))

    assert result.success
    assert result.branch_name == "feature/login"
    assert [r.command for r in result.results] == [
        "git checkout develop",
        "git pull origin develop",
        "git checkout -b feature/login",
    ]
    assert _mutating(strategy) == [r.command for r in result.results]
    assert len(history) == 3
    assert presenter.notifications[-1].message == "Created branch: feature/login"
    assert presenter.notifications[-1].severity == "success"


def test_create_branch_stops_at_first_failure() -> None:
    strategy = FakeStrategy(failures={"git pull origin develop": "fatal: couldn't find remote ref"})
    sequencer, _, presenter = _sequencer(strategy)

    result = asyncio.run(sequencer.create_branch("login"))

    assert not result.success
    assert [r.success for r in result.results] == [True, False]
    assert "git checkout -b feature/login" not in strategy.invocations
    assert result.error == "fatal: couldn't find remote ref"
    assert presenter.notifications[-1].message == "Failed to create branch: fatal: couldn't find remote ref"
    assert presenter.notifications[-1].severity == "error"


def test_successful_operation_refreshes_status() -> None:
    strategy = FakeStrategy({"git branch --show-current": "feature/login"})
    sequencer, _, _ = _sequencer(strategy)

    asyncio.run(sequencer.switch_branch("feature/login"))

    assert "git stash list" in strategy.invocations


def test_failed_operation_skips_status_refresh() -> None:
    strategy = FakeStrategy(failures={"git checkout nowhere": "error: pathspec"})
    sequencer, _, _ = _sequencer(strategy)

    asyncio.run(sequencer.switch_branch("nowhere"))

    assert strategy.invocations == ["git checkout nowhere"]


def test_personal_branches_are_namespaced_by_user() -> None:
    strategy = FakeStrategy()
    sequencer, _, _ = _sequencer(strategy, user_name="alice")

    result = asyncio.run(sequencer.create_branch("scratch", "main", "personal"))

    assert result.branch_name == "personal/alice/scratch"
    assert result.results[0].command == "git checkout main"


def test_commit_prefixes_type_and_stages_changes() -> None:
    strategy = FakeStrategy()
    sequencer, _, presenter = _sequencer(strategy)

    result = asyncio.run(sequencer.commit("add x"))
    unstaged = asyncio.run(sequencer.commit("typo", "docs", add_all=False))

    assert [r.command for r in result.results] == ["git add .", "git commit -m 'feat: add x'"]
    assert [r.command for r in unstaged.results] == ["git commit -m 'docs: typo'"]
    assert presenter.notifications[-1].message == "Committed: docs: typo"


def test_merge_publishes_target() -> None:
    strategy = FakeStrategy()
    sequencer, _, presenter = _sequencer(strategy)

    result = asyncio.run(sequencer.merge("feature/login"))

    assert [r.command for r in result.results] == [
        "git checkout develop",
        "git pull origin develop",
        "git merge --no-ff feature/login",
        "git push origin develop",
    ]
    assert presenter.notifications[-1].message == "Merged feature/login into develop"


def test_merge_conflict_leaves_push_unrun() -> None:
    strategy = FakeStrategy(failures={"git merge --squash feature/a": "CONFLICT (content)"})
    sequencer, _, _ = _sequencer(strategy)

    result = asyncio.run(sequencer.merge("feature/a", "main", "--squash"))

    assert not result.success
    assert len(result.results) == 3
    assert "git push origin main" not in strategy.invocations


def test_delete_and_stash() -> None:
    strategy = FakeStrategy()
    sequencer, _, _ = _sequencer(strategy)

    deleted = asyncio.run(sequencer.delete_branch("feature/old", force=True))
    stashed = asyncio.run(sequencer.stash())

    assert deleted.results[0].command == "git branch -D feature/old"
    assert stashed.results[0].command == "git stash push -m 'Work in progress'"


def test_pull_and_push_use_current_branch_or_fallback() -> None:
    strategy = FakeStrategy()
    sequencer, _, _ = _sequencer(strategy)

    pulled = asyncio.run(sequencer.pull())
    strategy.responses["git branch --show-current"] = "feature/login"
    asyncio.run(sequencer._status.refresh())
    pushed = asyncio.run(sequencer.push())

    assert pulled.results[0].command == "git pull origin main"
    assert pushed.results[0].command == "git push origin feature/login"


def test_invalid_branch_name_runs_nothing() -> None:
    strategy = FakeStrategy()
    sequencer, history, presenter = _sequencer(strategy)

    result = asyncio.run(sequencer.create_branch("bad name; rm -rf /"))

    assert not result.success
    assert result.results == []
    assert strategy.invocations == []
    assert len(history) == 0
    assert presenter.notifications[-1].message.startswith("Failed to create branch: ")


def test_cancelled_step_does_not_abort() -> None:
    strategy = FakeStrategy(errors={"git add .": UserCancelled("dismissed")})
    sequencer, _, _ = _sequencer(strategy)

    result = asyncio.run(sequencer.commit("add x"))

    assert result.success
    assert result.results[0].cancelled
    assert result.results[1].command == "git commit -m 'feat: add x'"


def test_backup_branch_is_dated() -> None:
    strategy = FakeStrategy()
    sequencer, _, presenter = _sequencer(strategy)

    result = asyncio.run(sequencer.backup_branch("personal-tutorial"))

    assert result.branch_name == "backup/personal-tutorial-20250307"
    assert result.results[0].command == "git checkout -b backup/personal-tutorial-20250307"
    assert presenter.notifications[-1].message == "Created backup branch: backup/personal-tutorial-20250307"


def test_run_command_accepts_lists_and_text() -> None:
    strategy = FakeStrategy()
    sequencer, _, _ = _sequencer(strategy)

    listed = asyncio.run(sequencer.run_command(["fetch", "--all"]))
    typed = asyncio.run(sequencer.run_command("git status"))
    broken = asyncio.run(sequencer.run_command("log 'unterminated"))

    assert listed.results[0].command == "git fetch --all"
    assert typed.results[0].command == "git status"
    assert not broken.success and broken.results == []


def test_dispatch_routes_requests() -> None:
    strategy = FakeStrategy()
    sequencer, _, _ = _sequencer(strategy)

    result = asyncio.run(
        sequencer.dispatch(OperationRequest(kind="create_branch", parameters={"name": "my-first-feature"}))
    )

    assert result.success
    assert result.branch_name == "feature/my-first-feature"


def test_dispatch_rejects_unknown_parameters() -> None:
    strategy = FakeStrategy()
    sequencer, _, presenter = _sequencer(strategy)

    result = asyncio.run(sequencer.dispatch(OperationRequest(kind="stash", parameters={"colour": "red"})))

    assert not result.success
    assert result.error.startswith("Invalid parameters for stash")
    assert strategy.invocations == []
    assert presenter.notifications[-1].severity == "error"
