"""Unit tests for the git runner seam (GitPython mocked)."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from git.exc import GitCommandError, GitCommandNotFound

from dockyard.core.errors import GitCommandFailed, LockConflict
from dockyard.core.worktree.git import GitRunner


@pytest.fixture
def git_cls():
    with patch("dockyard.core.worktree.git.Git") as mock_git:
        yield mock_git


def test_run_passes_argument_array_and_returns_stdout(git_cls: MagicMock, tmp_path: Path) -> None:
    git_cls.return_value.execute.return_value = "main"

    assert GitRunner().run(["rev-parse", "--abbrev-ref", "HEAD"], cwd=tmp_path) == "main"
    git_cls.assert_called_once_with(str(tmp_path))
    git_cls.return_value.execute.assert_called_once_with(["git", "rev-parse", "--abbrev-ref", "HEAD"], env=None)


def test_run_merges_environment(git_cls: MagicMock, tmp_path: Path) -> None:
    git_cls.return_value.execute.return_value = ""

    GitRunner(env={"GIT_AUTHOR_NAME": "bot"}).run(["status"], cwd=tmp_path, env={"GIT_EDITOR": "true"})

    _, kwargs = git_cls.return_value.execute.call_args
    assert kwargs["env"] == {"GIT_AUTHOR_NAME": "bot", "GIT_EDITOR": "true"}


def test_missing_cwd_fails_without_running_git(git_cls: MagicMock, tmp_path: Path) -> None:
    with pytest.raises(GitCommandFailed, match="No such directory"):
        GitRunner().run(["status"], cwd=tmp_path / "missing")
    git_cls.assert_not_called()


def test_command_error_is_converted_with_clean_stderr(git_cls: MagicMock, tmp_path: Path) -> None:
    git_cls.return_value.execute.side_effect = GitCommandError(
        ["git", "checkout", "task/T404"], 1, stderr="error: pathspec 'task/T404' did not match any file(s)"
    )

    with pytest.raises(GitCommandFailed) as excinfo:
        GitRunner().run(["checkout", "task/T404"], cwd=tmp_path)

    error = excinfo.value
    assert error.command == ("checkout", "task/T404")
    assert error.status == 1
    assert error.stderr == "error: pathspec 'task/T404' did not match any file(s)"
    assert str(error) == "git checkout task/T404 failed: error: pathspec 'task/T404' did not match any file(s)"


def test_lock_file_error_becomes_lock_conflict(git_cls: MagicMock, tmp_path: Path) -> None:
    git_cls.return_value.execute.side_effect = GitCommandError(
        ["git", "branch", "x"], 128, stderr="fatal: Unable to create '/repo/.git/index.lock': File exists."
    )

    with pytest.raises(LockConflict) as excinfo:
        GitRunner().run(["branch", "x"], cwd=tmp_path)

    assert excinfo.value.lock_path == "/repo/.git/index.lock"
    assert excinfo.value.category == "lock_conflict"


def test_missing_git_binary_is_categorised(git_cls: MagicMock, tmp_path: Path) -> None:
    git_cls.return_value.execute.side_effect = GitCommandNotFound("git", FileNotFoundError("git"))

    with pytest.raises(GitCommandFailed) as excinfo:
        GitRunner().run(["status"], cwd=tmp_path)

    assert excinfo.value.category == "no_git"


def test_try_run_and_succeeds_swallow_failures(git_cls: MagicMock, tmp_path: Path) -> None:
    git_cls.return_value.execute.side_effect = GitCommandError(["git", "rev-parse"], 128, stderr="fatal: bad")
    runner = GitRunner()

    assert runner.try_run(["rev-parse", "HEAD"], cwd=tmp_path) is None
    assert runner.succeeds(["rev-parse", "HEAD"], cwd=tmp_path) is False


def test_available_reports_missing_git(git_cls: MagicMock) -> None:
    git_cls.return_value.execute.side_effect = GitCommandNotFound("git", FileNotFoundError("git"))

    assert GitRunner().available() is False
