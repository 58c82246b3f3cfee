"""Merge strategies and error recovery matrix.

Static lookup tables. `MERGE_STRATEGIES` describes how a task branch is folded
into its parent; `ERROR_RECOVERY` maps an error category to remediation steps
and copy-pasteable commands. Lookups return None (or an empty list) for
unknown keys and never raise.
"""

from __future__ import annotations

import re
import shlex
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True)
class MergeStrategy:
    """How to fold a source branch into the checked-out target branch."""

    name: str
    description: str
    command: tuple[str, ...]
    on_conflict: str
    preserves_history: bool
    creates_merge_commit: bool
    pre_command: tuple[str, ...] | None = None
    post_command: tuple[str, ...] | None = None

    def command_args(self, branch: str) -> list[str]:
        return [part.format(branch=branch) for part in self.command]

    def pre_command_args(self, branch: str) -> list[str] | None:
        if self.pre_command is None:
            return None
        return [part.format(branch=branch) for part in self.pre_command]

    def post_command_args(self, message: str) -> list[str] | None:
        if self.post_command is None:
            return None
        return [part.format(message=message) for part in self.post_command]


@dataclass(frozen=True)
class ErrorRecovery:
    """Remediation for one error category."""

    key: str
    description: str
    actions: tuple[str, ...]
    alternatives: tuple[str, ...] = ()
    requires_force: bool = False
    message: str | None = None
    commands: Mapping[str, str] = field(default_factory=dict)


MERGE_STRATEGIES: Mapping[str, MergeStrategy] = MappingProxyType(
    {
        "merge": MergeStrategy(
            name="merge",
            description="Standard merge with merge commit",
            command=("merge", "{branch}", "--no-edit"),
            on_conflict="merge_conflict",
            preserves_history=True,
            creates_merge_commit=True,
        ),
        "squash": MergeStrategy(
            name="squash",
            description="Squash all commits into one",
            command=("merge", "--squash", "{branch}"),
            post_command=("commit", "-m", "{message}"),
            on_conflict="merge_conflict",
            preserves_history=False,
            creates_merge_commit=False,
        ),
        "rebase": MergeStrategy(
            name="rebase",
            description="Rebase and fast-forward",
            pre_command=("rebase", "{branch}"),
            command=("merge", "{branch}", "--ff-only"),
            on_conflict="rebase_conflict",
            preserves_history=True,
            creates_merge_commit=False,
        ),
    }
)

ERROR_RECOVERY: Mapping[str, ErrorRecovery] = MappingProxyType(
    {
        "worktree_exists": ErrorRecovery(
            key="worktree_exists",
            description="Worktree already exists at target path",
            actions=("remove_worktree", "retry"),
            requires_force=True,
            commands={
                "remove": "git worktree remove --force {path}",
                "prune": "git worktree prune",
            },
        ),
        "branch_exists": ErrorRecovery(
            key="branch_exists",
            description="Branch name already in use",
            actions=("delete_branch", "retry"),
            requires_force=True,
            commands={"delete": "git branch -D {branch}"},
        ),
        "merge_conflict": ErrorRecovery(
            key="merge_conflict",
            description="Merge conflict detected",
            actions=("abort_merge",),
            alternatives=("manual_resolve", "reject"),
            commands={
                "abort": "git merge --abort",
                "status": "git status",
                "continue": "git merge --continue",
            },
        ),
        "rebase_conflict": ErrorRecovery(
            key="rebase_conflict",
            description="Rebase conflict detected",
            actions=("abort_rebase",),
            alternatives=("manual_resolve", "reject"),
            commands={
                "abort": "git rebase --abort",
                "continue": "git rebase --continue",
                "skip": "git rebase --skip",
            },
        ),
        "dirty_worktree": ErrorRecovery(
            key="dirty_worktree",
            description="Worktree has uncommitted changes",
            actions=("stash_changes", "retry"),
            alternatives=("commit_changes", "discard_changes"),
            commands={
                "stash": 'git stash push -m "dockyard: auto-stash"',
                "stash_pop": "git stash pop",
                "commit": "git add -A && git commit -m {message}",
                "discard": "git checkout -- . && git clean -fd",
            },
        ),
        "worktree_missing": ErrorRecovery(
            key="worktree_missing",
            description="Worktree not found on disk",
            actions=("prune_worktrees", "update_state"),
            commands={"prune": "git worktree prune"},
        ),
        "branch_missing": ErrorRecovery(
            key="branch_missing",
            description="Branch not found",
            actions=("update_state",),
            message="Branch may have been deleted manually",
        ),
        "no_git": ErrorRecovery(
            key="no_git",
            description="Git is not installed",
            actions=("abort",),
            message="Git is required for worktree operations",
        ),
        "not_git_repo": ErrorRecovery(
            key="not_git_repo",
            description="Not a git repository",
            actions=("abort",),
            alternatives=("init_git_repo",),
            commands={"init": "git init"},
        ),
        "lock_conflict": ErrorRecovery(
            key="lock_conflict",
            description="Git lock file exists (concurrent operation)",
            actions=("wait", "retry"),
            alternatives=("remove_lock",),
            commands={
                "check": "ls -la {git_dir}/*.lock",
                "remove": "rm -f {lock_file}",
            },
        ),
        "detached_head": ErrorRecovery(
            key="detached_head",
            description="Worktree is in detached HEAD state",
            actions=("checkout_branch",),
            commands={
                "checkout": "git checkout {branch}",
                "create_branch": "git checkout -b {branch}",
            },
        ),
    }
)

# Ordered: the first matching pattern wins.
_ERROR_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("lock_conflict", re.compile(r"Unable to create '[^']+\.lock'|\.lock': File exists")),
    ("no_git", re.compile(r"git executable not found|git: command not found", re.IGNORECASE)),
    ("not_git_repo", re.compile(r"not a git repository", re.IGNORECASE)),
    ("rebase_conflict", re.compile(r"could not apply|Resolve all conflicts manually|rebase --continue")),
    ("merge_conflict", re.compile(r"CONFLICT \(|Automatic merge failed|fix conflicts")),
    ("dirty_worktree", re.compile(r"would be overwritten|contains modified or untracked files|uncommitted changes")),
    ("branch_exists", re.compile(r"a branch named '[^']+' already exists")),
    ("worktree_exists", re.compile(r"already exists|is already checked out|already used by worktree")),
    ("detached_head", re.compile(r"not currently on a branch|HEAD detached")),
    ("worktree_missing", re.compile(r"is not a working tree|Worktree not found")),
    ("branch_missing", re.compile(r"branch '[^']+' not found|unknown revision|did not match any|Branch not found")),
)


class _Placeholders(dict[str, str]):
    def __missing__(self, key: str) -> str:
        return f"<{key}>"


def get_merge_strategy(name: str) -> MergeStrategy | None:
    return MERGE_STRATEGIES.get(name)


def get_recovery_strategy(error_type: str) -> ErrorRecovery | None:
    return ERROR_RECOVERY.get(error_type)


def list_merge_strategies() -> list[str]:
    return list(MERGE_STRATEGIES)


def list_error_types() -> list[str]:
    return list(ERROR_RECOVERY)


def render_commands(error_type: str, **params: str) -> list[str]:
    """Render the remediation commands for a category.

    Parameters are shell-quoted; a parameter the caller did not supply is left
    as a visible `<name>` placeholder.
    """
    recovery = ERROR_RECOVERY.get(error_type)
    if recovery is None:
        return []
    quoted = _Placeholders({key: shlex.quote(str(value)) for key, value in params.items()})
    return [template.format_map(quoted) for template in recovery.commands.values()]


def classify_git_error(text: str) -> str | None:
    """Map git output (usually stderr) to an error category, if recognisable."""
    for category, pattern in _ERROR_PATTERNS:
        if pattern.search(text):
            return category
    return None
