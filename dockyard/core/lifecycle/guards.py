"""Transition preconditions.

Guards are read-only: they query git and the filesystem through WorktreeOps
and never change anything. Each returns a GuardResult with a human-readable
reason on failure.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Mapping

from dockyard.core.lifecycle.context import TransitionContext
from dockyard.core.worktree.ops import WorktreeOps


class GuardId(str, Enum):
    HAS_GIT = "has_git"
    HAS_GIT_REPO = "has_git_repo"
    NO_EXISTING_WORKTREE = "no_existing_worktree"
    BRANCH_AVAILABLE = "branch_available"
    WORKTREE_EXISTS = "worktree_exists"
    HAS_COMMITS = "has_commits"
    WORKTREE_CLEAN = "worktree_clean"
    CONFLICT_RESOLVED = "conflict_resolved"
    NO_PARALLEL_CONFLICTS = "no_parallel_conflicts"


@dataclass(frozen=True)
class GuardResult:
    ok: bool
    reason: str | None = None


PASS = GuardResult(ok=True)

Guard = Callable[[TransitionContext], GuardResult]


def _fail(reason: str) -> GuardResult:
    return GuardResult(ok=False, reason=reason)


def build_guard_registry(ops: WorktreeOps) -> Mapping[GuardId, Guard]:
    """Bind every guard to `ops`."""

    def has_git(ctx: TransitionContext) -> GuardResult:
        if ops.runner.available():
            return PASS
        return _fail("Git not installed")

    def has_git_repo(ctx: TransitionContext) -> GuardResult:
        if ops.git_dir(ctx.project_root) is not None:
            return PASS
        return _fail(f"Not a git repository: {ctx.project_root}")

    def holds_task_worktree(ctx: TransitionContext) -> bool:
        info = ops.registered_worktree(ctx.worktree_path)
        return info is not None and info.branch == ctx.branch

    def no_existing_worktree(ctx: TransitionContext) -> GuardResult:
        if ctx.worktree_path.exists():
            if holds_task_worktree(ctx):
                # Left by an earlier spawn that failed after create_worktree.
                return PASS
            return _fail(f"Worktree already exists: {ctx.worktree_path}")
        return PASS

    def branch_available(ctx: TransitionContext) -> GuardResult:
        if not ops.branch_exists(ctx.branch):
            return PASS
        if ctx.worktree_path.exists() and holds_task_worktree(ctx):
            return PASS
        ahead = ops.commits_ahead(ctx.branch, ctx.base_branch)
        if not ahead:
            # Stale branch without work; create_worktree recreates it.
            return PASS
        return _fail(f"Branch {ctx.branch} already exists with {ahead} commit(s) ahead of {ctx.base_branch}")

    def worktree_exists(ctx: TransitionContext) -> GuardResult:
        if ctx.worktree_path.exists():
            return PASS
        return _fail(f"Worktree not found: {ctx.worktree_path}")

    def has_commits(ctx: TransitionContext) -> GuardResult:
        ahead = ops.commits_ahead(ctx.branch, ctx.base_branch)
        if ahead == 0:
            return _fail(f"No commits to merge on {ctx.branch}")
        return PASS

    def worktree_clean(ctx: TransitionContext) -> GuardResult:
        clean = ops.is_clean(ctx.worktree_path)
        if clean is None:
            return _fail(f"Cannot read status of {ctx.worktree_path}")
        if not clean:
            return _fail("Worktree has uncommitted changes")
        return PASS

    def conflict_resolved(ctx: TransitionContext) -> GuardResult:
        remaining = ops.unmerged_files(ctx.project_root)
        if ctx.worktree_path.exists():
            remaining += ops.unmerged_files(ctx.worktree_path)
        if remaining:
            return _fail(f"Unresolved conflicts remain: {', '.join(sorted(set(remaining)))}")
        return PASS

    def no_parallel_conflicts(ctx: TransitionContext) -> GuardResult:
        if ctx.conflicts_with:
            return _fail(f"Conflicts with: {', '.join(ctx.conflicts_with)}")
        return PASS

    return {
        GuardId.HAS_GIT: has_git,
        GuardId.HAS_GIT_REPO: has_git_repo,
        GuardId.NO_EXISTING_WORKTREE: no_existing_worktree,
        GuardId.BRANCH_AVAILABLE: branch_available,
        GuardId.WORKTREE_EXISTS: worktree_exists,
        GuardId.HAS_COMMITS: has_commits,
        GuardId.WORKTREE_CLEAN: worktree_clean,
        GuardId.CONFLICT_RESOLVED: conflict_resolved,
        GuardId.NO_PARALLEL_CONFLICTS: no_parallel_conflicts,
    }
