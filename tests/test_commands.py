from __future__ import annotations

import pytest

from gitdash.execution.commands import GitCommand, InvalidCommandError, MergeStrategy, validate_ref_name


def test_commit_message_is_a_single_argument() -> None:
    command = GitCommand.commit("feat: add x")

    assert command.argv == ["git", "commit", "-m", "feat: add x"]
    assert command.text == "git commit -m 'feat: add x'"


def test_checkout_renders_plain_text() -> None:
    assert GitCommand.checkout("develop").text == "git checkout develop"
    assert GitCommand.checkout_new("feature/login").text == "git checkout -b feature/login"
    assert GitCommand.pull("origin", "develop").text == "git pull origin develop"


@pytest.mark.parametrize(
    "name",
    [
        "",
        "   ",
        "-D",
        "feature/has space",
        "bad..name",
        "ends/with/",
        "ends.lock",
        "semi;colon~",
        "feature/.hidden",
        "x@{1}",
        "tab\tname",
    ],
)
def test_invalid_ref_names_are_rejected(name: str) -> None:
    with pytest.raises(InvalidCommandError):
        validate_ref_name(name)


def test_valid_ref_names_pass_through() -> None:
    assert validate_ref_name(" hotfix/1.2 ") == "hotfix/1.2"
    assert validate_ref_name("personal/alice/x") == "personal/alice/x"


def test_shell_metacharacters_stay_quoted() -> None:
    command = GitCommand.stash_push("wip $(rm -rf /)")

    assert command.args[-1] == "wip $(rm -rf /)"
    assert "'wip $(rm -rf /)'" in command.text


def test_merge_strategy_validation() -> None:
    assert GitCommand.merge("feature/a").args == ("merge", "--no-ff", "feature/a")
    assert GitCommand.merge("feature/a", "--squash").args[1] == MergeStrategy.SQUASH.value
    with pytest.raises(InvalidCommandError):
        GitCommand.merge("feature/a", "--strategy=ours")


def test_empty_commit_message_rejected() -> None:
    with pytest.raises(InvalidCommandError):
        GitCommand.commit("   ")


def test_from_args_strips_leading_git_and_rejects_multiline() -> None:
    assert GitCommand.from_args(["git", "fetch", "--all"]).args == ("fetch", "--all")
    with pytest.raises(InvalidCommandError):
        GitCommand.from_args([])
    with pytest.raises(InvalidCommandError):
        GitCommand.git("status\nrm")


def test_delete_branch_flag() -> None:
    assert GitCommand.delete_branch("old").args == ("branch", "-d", "old")
    assert GitCommand.delete_branch("old", force=True).args == ("branch", "-D", "old")
