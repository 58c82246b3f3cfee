"""Unit tests for the dockyard error taxonomy."""

from dockyard.core.errors import (
    ActionFailed,
    ConflictDetected,
    DockyardError,
    GitCommandFailed,
    GuardFailed,
    InvalidTransition,
    LockConflict,
    StaleReference,
    UnknownRegistryEntry,
)


def test_all_errors_share_the_base_class() -> None:
    errors = [
        InvalidTransition("idle", "merge", ["spawn"]),
        GuardFailed("has_git"),
        ActionFailed("delete_branch", RuntimeError("boom")),
        GitCommandFailed(["status"], 128),
        ConflictDetected("conflict", ["a.py"]),
        LockConflict(["commit"], 128, lock_path="/repo/.git/index.lock"),
        StaleReference("worktree", "/wt/T001"),
        UnknownRegistryEntry("guard", "is_friday"),
    ]
    assert all(isinstance(error, DockyardError) for error in errors)
    assert isinstance(errors[-1], ValueError)


def test_guard_failed_defaults_reason() -> None:
    error = GuardFailed("worktree_clean")

    assert error.reason == "Guard failed: worktree_clean"


def test_action_failed_inherits_cause_category() -> None:
    cause = LockConflict(["commit"], 128, stderr="fatal: Unable to create", lock_path="/repo/.git/index.lock")
    error = ActionFailed("commit_resolution", cause, ["abort_merge"])

    assert error.category == "lock_conflict"
    assert error.completed == ("abort_merge",)
    assert str(error).startswith("commit_resolution: git commit failed")


def test_git_command_failed_falls_back_to_status() -> None:
    assert str(GitCommandFailed(["fetch"], 128)) == "git fetch failed: exit status 128"


def test_stale_reference_category_by_kind() -> None:
    assert StaleReference("worktree", "/wt/T001").category == "worktree_missing"
    assert StaleReference("branch", "task/T001").category == "branch_missing"
    assert str(StaleReference("branch", "task/T001")) == "Branch not found: task/T001"


def test_conflict_detected_lists_files() -> None:
    error = ConflictDetected("Unresolved conflicts remain", ["a.py", "b.py"])

    assert error.files == ("a.py", "b.py")
    assert error.category == "merge_conflict"
