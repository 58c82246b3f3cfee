"""Git worktree and branch orchestration for agent tasks.

Each task gets one worktree under the worktrees directory, checked out on
`task/<TaskID>` and forked from its parent branch. Read-only queries never
raise and fall back to conservative defaults; mutating operations return
result objects carrying `success` / `error`.
"""

from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import TYPE_CHECKING, Sequence

from dockyard.constants import (
    DEFAULT_MAIN_BRANCH,
    DEFAULT_REMOTE,
    MERGE_HEAD_MARKER,
    REBASE_MARKERS,
)
from dockyard.core.errors import ConflictDetected, GitCommandFailed
from dockyard.core.recovery import get_merge_strategy
from dockyard.core.worktree import naming
from dockyard.core.worktree.git import GitRunner
from dockyard.core.worktree.models import (
    CleanupResult,
    Divergence,
    EnsureBranchResult,
    HierarchyResult,
    MergeResult,
    ParentSyncResult,
    SyncResult,
    UpwardSyncResult,
    WorktreeInfo,
    WorktreeResult,
    WorktreeStatus,
)
from dockyard.core.worktree.status import parse_porcelain
from dockyard.logging_config import get_logger

if TYPE_CHECKING:
    from dockyard.config.schema import DockyardConfig

logger = get_logger(__name__)

SQUASH_MSG_MARKER = "SQUASH_MSG"
_NON_INTERACTIVE_ENV = {"GIT_EDITOR": "true"}


class WorktreeOps:
    """Worktree, branch, sync and merge operations for one repository."""

    def __init__(
        self,
        project_root: Path,
        worktrees_dir: Path,
        *,
        main_branch: str = DEFAULT_MAIN_BRANCH,
        remote: str = DEFAULT_REMOTE,
        sync_before_spawn: bool = True,
        runner: GitRunner | None = None,
    ) -> None:
        self.project_root = Path(project_root)
        self.worktrees_dir = Path(worktrees_dir)
        self.main_branch = main_branch
        self.remote = remote
        self.sync_before_spawn = sync_before_spawn
        self.runner = runner or GitRunner()

    @classmethod
    def from_config(
        cls, project_root: Path, config: DockyardConfig, *, runner: GitRunner | None = None
    ) -> WorktreeOps:
        return cls(
            project_root,
            config.worktrees.resolve_dir(Path(project_root)),
            main_branch=config.git.main_branch,
            remote=config.git.remote,
            sync_before_spawn=config.git.sync_before_spawn,
            runner=runner,
        )

    # ------------------------------------------------------------------
    # Low-level helpers

    def _git(self, args: Sequence[str], cwd: Path | None = None) -> str:
        return self.runner.run(args, cwd=cwd or self.project_root)

    def _query(self, args: Sequence[str], cwd: Path | None = None) -> str | None:
        return self.runner.try_run(args, cwd=cwd or self.project_root)

    def _context(self, context: naming.BranchingContext) -> naming.BranchingContext:
        return dataclasses.replace(context, main_branch=self.main_branch)

    def _current_ref(self, cwd: Path | None = None) -> str | None:
        """Return the checked-out branch, or the HEAD sha when detached."""
        branch = self.current_branch(cwd)
        if branch:
            return branch
        return self.head_commit(cwd)

    def _clear_squash_message(self, cwd: Path | None = None) -> None:
        git_dir = self.git_dir(cwd)
        if git_dir:
            (git_dir / SQUASH_MSG_MARKER).unlink(missing_ok=True)

    def checkout_ref(self, ref: str) -> str | None:
        """Check out `ref` in the project root. Returns an error message on failure."""
        try:
            self._git(["checkout", ref])
        except GitCommandFailed as exc:
            logger.error("Failed to restore %s: %s", ref, exc)
            return f"Failed to restore {ref}: {exc}"
        return None

    # ------------------------------------------------------------------
    # Naming

    def get_worktree_path(self, task_id: str) -> Path:
        return naming.worktree_path(self.worktrees_dir, task_id)

    def task_branch(self, task_id: str) -> str:
        return naming.task_branch(task_id)

    def get_parent_branch(self, context: naming.BranchingContext) -> str:
        return naming.get_parent_branch(self._context(context))

    def get_branch_hierarchy(self, context: naming.BranchingContext) -> list[str]:
        return naming.get_branch_hierarchy(self._context(context))

    # ------------------------------------------------------------------
    # Read-only queries

    def worktree_exists(self, task_id: str) -> bool:
        return self.get_worktree_path(task_id).exists()

    def branch_exists(self, branch: str) -> bool:
        return self.runner.succeeds(["rev-parse", "--verify", "--quiet", f"refs/heads/{branch}"], cwd=self.project_root)

    def remote_branch_exists(self, branch: str) -> bool:
        ref = f"refs/remotes/{self.remote}/{branch}"
        return self.runner.succeeds(["rev-parse", "--verify", "--quiet", ref], cwd=self.project_root)

    def current_branch(self, cwd: Path | None = None) -> str | None:
        """Return the checked-out branch name, or None when detached or unknown."""
        output = self._query(["rev-parse", "--abbrev-ref", "HEAD"], cwd)
        if not output or output == "HEAD":
            return None
        return output

    def head_commit(self, cwd: Path | None = None) -> str | None:
        return self._query(["rev-parse", "HEAD"], cwd) or None

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        return self.runner.succeeds(["merge-base", "--is-ancestor", ancestor, descendant], cwd=self.project_root)

    def get_branch_divergence(self, branch: str, upstream: str) -> Divergence:
        """Count commits `branch` is ahead of and behind `upstream`."""
        output = self._query(["rev-list", "--left-right", "--count", f"{upstream}...{branch}"])
        return _parse_left_right(output)

    def commits_ahead(self, branch: str, base: str) -> int | None:
        output = self._query(["rev-list", "--count", f"{base}..{branch}"])
        if output is None:
            return None
        try:
            return int(output)
        except ValueError:
            return None

    def git_dir(self, cwd: Path | None = None) -> Path | None:
        """Return the git dir for `cwd` (per-worktree for linked worktrees)."""
        cwd = cwd or self.project_root
        output = self._query(["rev-parse", "--git-dir"], cwd)
        if not output:
            return None
        path = Path(output)
        return path if path.is_absolute() else Path(cwd) / path

    def merge_in_progress(self, cwd: Path | None = None) -> bool:
        git_dir = self.git_dir(cwd)
        return bool(git_dir and (git_dir / MERGE_HEAD_MARKER).exists())

    def rebase_in_progress(self, cwd: Path | None = None) -> bool:
        git_dir = self.git_dir(cwd)
        return bool(git_dir and any((git_dir / marker).exists() for marker in REBASE_MARKERS))

    def squash_pending(self, cwd: Path | None = None) -> bool:
        git_dir = self.git_dir(cwd)
        return bool(git_dir and (git_dir / SQUASH_MSG_MARKER).exists())

    def unmerged_files(self, cwd: Path | None = None) -> list[str]:
        output = self._query(["status", "--porcelain"], cwd)
        if not output:
            return []
        return [entry.path for entry in parse_porcelain(output) if entry.is_conflict]

    def is_clean(self, cwd: Path | None = None) -> bool | None:
        output = self._query(["status", "--porcelain"], cwd)
        if output is None:
            return None
        return not output.strip()

    # ------------------------------------------------------------------
    # Branches

    def ensure_branch(self, branch: str, base: str | None = None) -> EnsureBranchResult:
        """Create `branch` from `base` unless it already exists."""
        if self.branch_exists(branch):
            return EnsureBranchResult(branch=branch, created=False, existed=True)

        base = base or self.main_branch
        try:
            self._git(["branch", branch, base])
        except GitCommandFailed as exc:
            logger.warning("Failed to create branch %s from %s: %s", branch, base, exc)
            return EnsureBranchResult(branch=branch, created=False, error=str(exc))

        logger.info("Created branch %s from %s", branch, base)
        return EnsureBranchResult(branch=branch, created=True)

    def ensure_branch_hierarchy(self, context: naming.BranchingContext) -> HierarchyResult:
        """Create missing prd/epic branches, each forked from the level above."""
        chain = self.get_branch_hierarchy(context)
        created: list[str] = []
        errors: list[str] = []
        for parent, branch in zip(chain, chain[1:]):
            result = self.ensure_branch(branch, parent)
            if result.created:
                created.append(branch)
            elif result.error:
                errors.append(f"{branch}: {result.error}")
        return HierarchyResult(branches=tuple(chain), created=tuple(created), errors=tuple(errors))

    def delete_branch(self, branch: str, *, force: bool = False) -> bool:
        """Delete a local branch. Failure is logged and reported as False."""
        try:
            self._git(["branch", "-D" if force else "-d", branch])
        except GitCommandFailed as exc:
            logger.info("Branch %s not deleted: %s", branch, exc)
            return False
        logger.info("Deleted branch %s", branch)
        return True

    # ------------------------------------------------------------------
    # Sync

    def sync_branch(self, branch: str, upstream: str, strategy: str = "merge") -> SyncResult:
        """Bring `branch` up to date with `upstream` by merge or rebase.

        The branch checked out before the call is checked out again afterwards,
        including when the merge or rebase stops on a conflict (which is
        aborted first).
        """
        if strategy not in ("merge", "rebase"):
            return SyncResult(success=False, synced=False, error=f"Unknown sync strategy: {strategy}")

        divergence = self.get_branch_divergence(branch, upstream)
        if divergence.behind == 0:
            return SyncResult(success=True, synced=False, message="Already up to date")

        original = self._current_ref()
        if original is None:
            return SyncResult(
                success=False, synced=False, behind=divergence.behind, error="Cannot determine current branch"
            )

        try:
            self._git(["checkout", branch])
        except GitCommandFailed as exc:
            return SyncResult(success=False, synced=False, behind=divergence.behind, error=str(exc))

        try:
            if strategy == "rebase":
                self._git(["rebase", upstream])
            else:
                self._git(["merge", upstream, "--no-edit"])
        except GitCommandFailed as exc:
            self.runner.try_run([strategy, "--abort"], cwd=self.project_root)
            restore_error = self.checkout_ref(original)
            logger.warning("Sync of %s from %s failed: %s", branch, upstream, exc)
            error = f"Conflict during {strategy} of {upstream} into {branch}: {exc}"
            if restore_error:
                error = f"{error}; {restore_error}"
            return SyncResult(success=False, synced=False, behind=divergence.behind, error=error)

        restore_error = self.checkout_ref(original)
        if restore_error:
            return SyncResult(success=False, synced=True, behind=divergence.behind, error=restore_error)

        logger.info("Synced %s with %s (%d commits)", branch, upstream, divergence.behind)
        return SyncResult(success=True, synced=True, behind=divergence.behind)

    def sync_parent_branch(self, context: naming.BranchingContext) -> ParentSyncResult:
        """Sync the task's parent branch from the level directly above it."""
        if not self.sync_before_spawn:
            return ParentSyncResult(success=True, disabled=True)

        chain = self.get_branch_hierarchy(context)
        if len(chain) < 2:
            return ParentSyncResult(success=True)

        parent, upstream = chain[-1], chain[-2]
        if not self.branch_exists(parent):
            return ParentSyncResult(success=True, skipped=f"{parent} does not exist yet")

        result = self.sync_branch(parent, upstream)
        if not result.success:
            return ParentSyncResult(success=False, error=result.error)
        return ParentSyncResult(success=True, synced=parent if result.synced else None)

    def sync_upward_hierarchy(self, level: str, context: naming.BranchingContext) -> UpwardSyncResult:
        """Sync the completed level from its parent, one level at a time.

        `level` is "epic" (epic <- prd) or "prd" (prd <- main, and the epic
        below it <- prd when the task runs in epic mode). Flat tasks have no
        hierarchy, and the epic level only exists in epic mode.
        """
        context = self._context(context)
        if context.branching == "flat":
            return UpwardSyncResult(success=True)
        pairs: list[tuple[str, str]] = []
        if level == "epic" and context.branching == "epic" and context.epic_id and context.prd_id:
            pairs.append((naming.epic_branch(context.epic_id), naming.prd_branch(context.prd_id)))
        elif level == "prd" and context.prd_id:
            prd = naming.prd_branch(context.prd_id)
            pairs.append((prd, context.main_branch))
            if context.branching == "epic" and context.epic_id:
                pairs.append((naming.epic_branch(context.epic_id), prd))

        synced: list[str] = []
        errors: list[str] = []
        skipped: list[str] = []
        for branch, upstream in pairs:
            if not self.branch_exists(branch) or not self.branch_exists(upstream):
                skipped.append(branch)
                continue
            result = self.sync_branch(branch, upstream)
            if result.success:
                if result.synced:
                    synced.append(branch)
            else:
                errors.append(f"{branch}: {result.error}")
                # Lower levels depend on this one being current.
                break
        return UpwardSyncResult(
            success=not errors, synced=tuple(synced), errors=tuple(errors), skipped=tuple(skipped)
        )

    # ------------------------------------------------------------------
    # Worktrees

    def create_worktree(self, task_id: str, base_branch: str | None = None) -> WorktreeResult:
        """Create the task worktree on `task/<task_id>` forked from `base_branch`.

        A leftover task branch with no commits beyond the base is deleted and
        recreated; one that carries work is never touched.
        """
        path = self.get_worktree_path(task_id)
        branch = naming.task_branch(task_id)
        base = base_branch or self.current_branch() or "HEAD"

        if path.exists():
            return WorktreeResult(
                success=False, path=path, branch=branch, base_branch=base, error=f"Worktree already exists: {path}"
            )

        recreated = False
        if self.branch_exists(branch):
            ahead = self.commits_ahead(branch, base)
            if ahead is None:
                return WorktreeResult(
                    success=False,
                    path=path,
                    branch=branch,
                    base_branch=base,
                    error=f"Cannot compare existing branch {branch} with {base}",
                )
            if ahead:
                return WorktreeResult(
                    success=False,
                    path=path,
                    branch=branch,
                    base_branch=base,
                    error=(
                        f"Branch {branch} already exists with {ahead} commit(s) ahead of {base}. "
                        "Merge or delete it before spawning again."
                    ),
                )
            logger.info("Branch %s exists with no new commits; recreating from %s", branch, base)
            self.prune_worktrees()
            if not self.delete_branch(branch, force=True):
                return WorktreeResult(
                    success=False,
                    path=path,
                    branch=branch,
                    base_branch=base,
                    error=f"Could not delete stale branch {branch}",
                )
            recreated = True

        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self._git(["worktree", "add", str(path), "-b", branch, base])
        except GitCommandFailed as exc:
            logger.error("Failed to create worktree for %s: %s", task_id, exc)
            return WorktreeResult(success=False, path=path, branch=branch, base_branch=base, error=str(exc))

        logger.info("Created worktree at %s on %s (base %s)", path, branch, base)
        return WorktreeResult(success=True, path=path, branch=branch, base_branch=base, recreated=recreated)

    def remove_worktree(self, task_id: str, *, force: bool = False, keep_branch: bool = False) -> WorktreeResult:
        """Remove the task worktree, then delete its branch unless `keep_branch`."""
        path = self.get_worktree_path(task_id)
        branch = naming.task_branch(task_id)
        if not path.exists():
            return WorktreeResult(success=False, path=path, branch=branch, error=f"Worktree not found: {path}")

        args = ["worktree", "remove", str(path)]
        if force:
            args.append("--force")
        try:
            self._git(args)
        except GitCommandFailed as exc:
            logger.error("Failed to remove worktree %s: %s", path, exc)
            return WorktreeResult(success=False, path=path, branch=branch, error=str(exc))

        logger.info("Removed worktree %s", path)
        if not keep_branch:
            self.delete_branch(branch, force=force)
        return WorktreeResult(success=True, path=path, branch=branch)

    def cleanup_worktree(self, task_id: str, *, force: bool = False) -> CleanupResult:
        """Tear down worktree, local branch and remote branch, attempting every step."""
        path = self.get_worktree_path(task_id)
        branch = naming.task_branch(task_id)
        removed: list[str] = []
        errors: list[str] = []
        skipped: list[str] = []

        if path.exists():
            args = ["worktree", "remove", str(path)]
            if force:
                args.append("--force")
            try:
                self._git(args)
                removed.append(f"worktree: {path}")
            except GitCommandFailed as exc:
                errors.append(f"worktree: {exc}")
        elif self.prune_worktrees():
            skipped.append(f"worktree: {path} (not on disk, pruned)")

        if self.branch_exists(branch):
            if self.delete_branch(branch, force=True):
                removed.append(f"branch: {branch}")
            else:
                skipped.append(f"branch: {branch} (not deleted)")

        if self.remote_branch_exists(branch):
            try:
                self._git(["push", self.remote, "--delete", branch])
                removed.append(f"remote: {self.remote}/{branch}")
            except GitCommandFailed as exc:
                errors.append(f"remote: {exc}")

        return CleanupResult(task_id=task_id, removed=tuple(removed), errors=tuple(errors), skipped=tuple(skipped))

    def list_worktrees(self) -> list[WorktreeInfo]:
        output = self._query(["worktree", "list", "--porcelain"])
        if not output:
            return []
        return parse_worktree_list(output)

    def registered_worktree(self, path: Path) -> WorktreeInfo | None:
        """Return the worktree git has registered at `path`, if any."""
        target = path.resolve()
        for info in self.list_worktrees():
            if info.path.resolve() == target:
                return info
        return None

    def list_agent_worktrees(self) -> list[WorktreeInfo]:
        return [info for info in self.list_worktrees() if info.task_id]

    def prune_worktrees(self) -> bool:
        return self.runner.succeeds(["worktree", "prune"], cwd=self.project_root)

    def get_worktree_status(self, task_id: str) -> WorktreeStatus:
        path = self.get_worktree_path(task_id)
        branch = naming.task_branch(task_id)
        if not path.exists():
            return WorktreeStatus(exists=False, path=path, branch=branch)

        clean = self.is_clean(path)
        if clean is None:
            return WorktreeStatus(exists=True, path=path, branch=branch, error="Cannot read worktree status")

        output = self._query(["rev-list", "--left-right", "--count", "HEAD...@{upstream}"], path)
        counts = _parse_left_right(output)
        # Left side is HEAD here, so "behind" in the parsed sense is ahead of upstream.
        return WorktreeStatus(
            exists=True, path=path, branch=branch, clean=clean, ahead=counts.behind, behind=counts.ahead
        )

    # ------------------------------------------------------------------
    # Merging

    def merge_branch(
        self,
        source: str,
        target: str,
        *,
        strategy: str = "merge",
        message: str | None = None,
        source_worktree: Path | None = None,
    ) -> MergeResult:
        """Fold `source` into `target` in the project root.

        On conflict the merge (or rebase) is left in progress and the result
        lists the conflicting files, plus `original_ref` when the project root
        was moved off its checked-out branch. On any other failure the
        previously checked-out branch is restored.
        """
        spec = get_merge_strategy(strategy)
        if spec is None:
            return MergeResult(
                success=False, source=source, target=target, strategy=strategy, error=f"Unknown strategy: {strategy}"
            )
        if self.is_ancestor(source, target):
            logger.info("%s is already merged into %s", source, target)
            return MergeResult(success=True, source=source, target=target, strategy=strategy)

        original = self._current_ref()

        pre_args = spec.pre_command_args(target)
        if pre_args:
            cwd = source_worktree if source_worktree and source_worktree.exists() else self.project_root
            try:
                if cwd == self.project_root:
                    self._git(["checkout", source])
                self._git(pre_args, cwd)
            except GitCommandFailed as exc:
                files = self.unmerged_files(cwd)
                if files or self.rebase_in_progress(cwd):
                    logger.warning("Conflict rebasing %s onto %s: %s", source, target, ", ".join(files))
                    return MergeResult(
                        success=False,
                        source=source,
                        target=target,
                        strategy=strategy,
                        conflict=True,
                        conflict_files=tuple(files),
                        error=str(exc),
                        original_ref=original if cwd == self.project_root else None,
                    )
                if original:
                    self.checkout_ref(original)
                return MergeResult(success=False, source=source, target=target, strategy=strategy, error=str(exc))

        try:
            self._git(["checkout", target])
        except GitCommandFailed as exc:
            if original:
                self.checkout_ref(original)
            return MergeResult(success=False, source=source, target=target, strategy=strategy, error=str(exc))

        try:
            self._git(spec.command_args(source))
        except GitCommandFailed as exc:
            files = self.unmerged_files()
            if files:
                logger.warning("Conflict merging %s into %s: %s", source, target, ", ".join(files))
                return MergeResult(
                    success=False,
                    source=source,
                    target=target,
                    strategy=strategy,
                    conflict=True,
                    conflict_files=tuple(files),
                    error=str(exc),
                    original_ref=original if original != target else None,
                )
            if self.merge_in_progress():
                self.runner.try_run(["merge", "--abort"], cwd=self.project_root)
            if original:
                self.checkout_ref(original)
            return MergeResult(success=False, source=source, target=target, strategy=strategy, error=str(exc))

        post_args = spec.post_command_args(message or f"Merge {source} into {target}")
        merged = True
        if post_args:
            if self.runner.succeeds(["diff", "--cached", "--quiet"], cwd=self.project_root):
                merged = False
                self._clear_squash_message()
            else:
                try:
                    self._git(post_args)
                except GitCommandFailed as exc:
                    return MergeResult(success=False, source=source, target=target, strategy=strategy, error=str(exc))

        if original and original != target:
            self.checkout_ref(original)
        logger.info("Merged %s into %s (%s)", source, target, strategy)
        return MergeResult(success=True, source=source, target=target, strategy=strategy, merged=merged)

    def abort_operation(self, cwd: Path | None = None) -> str | None:
        """Abort an in-progress rebase, merge or pending squash in `cwd`.

        Returns the kind of operation aborted, or None when nothing was in progress.
        """
        if self.rebase_in_progress(cwd):
            self._git(["rebase", "--abort"], cwd)
            return "rebase"
        if self.merge_in_progress(cwd):
            self._git(["merge", "--abort"], cwd)
            return "merge"
        if self.squash_pending(cwd):
            self._git(["reset", "--merge"], cwd)
            self._clear_squash_message(cwd)
            return "squash"
        return None

    def commit_resolution(self, cwd: Path | None = None, message: str | None = None) -> bool:
        """Stage resolved files and conclude an in-progress merge commit.

        Returns True when a merge commit was created.

        Raises:
            ConflictDetected: unmerged files remain.
            GitCommandFailed: staging or committing failed.
        """
        files = self.unmerged_files(cwd)
        if files:
            raise ConflictDetected(f"Unresolved conflicts remain: {', '.join(files)}", files)
        if not (self.merge_in_progress(cwd) or self.rebase_in_progress(cwd) or self.squash_pending(cwd)):
            return False

        self._git(["add", "-A"], cwd)
        if self.merge_in_progress(cwd):
            args = ["commit", "-m", message] if message else ["commit", "--no-edit"]
            self._git(args, cwd)
            return True
        return False

    def continue_operation(self, cwd: Path | None = None, message: str | None = None) -> str | None:
        """Continue an in-progress rebase or finish a pending squash commit."""
        if self.rebase_in_progress(cwd):
            self.runner.run(["rebase", "--continue"], cwd=cwd or self.project_root, env=_NON_INTERACTIVE_ENV)
            return "rebase"
        if self.squash_pending(cwd):
            if self.runner.succeeds(["diff", "--cached", "--quiet"], cwd=cwd or self.project_root):
                self._clear_squash_message(cwd)
                return None
            self._git(["commit", "-m", message or "Squash merge"], cwd)
            return "squash"
        return None


def _parse_left_right(output: str | None) -> Divergence:
    """Parse `rev-list --left-right --count A...B` output (left=behind, right=ahead)."""
    if not output:
        return Divergence()
    parts = output.split()
    if len(parts) != 2:
        return Divergence()
    try:
        behind, ahead = int(parts[0]), int(parts[1])
    except ValueError:
        return Divergence()
    return Divergence(ahead=ahead, behind=behind)


def parse_worktree_list(output: str) -> list[WorktreeInfo]:
    """Parse `git worktree list --porcelain` into WorktreeInfo records."""
    worktrees: list[WorktreeInfo] = []
    for block in output.strip().split("\n\n"):
        fields: dict[str, str] = {}
        flags: set[str] = set()
        for line in block.splitlines():
            key, _, value = line.partition(" ")
            if value:
                fields[key] = value
            else:
                flags.add(key)
        if "worktree" not in fields:
            continue
        ref = fields.get("branch")
        worktrees.append(
            WorktreeInfo(
                path=Path(fields["worktree"]),
                branch=ref.removeprefix("refs/heads/") if ref else None,
                head=fields.get("HEAD"),
                task_id=naming.task_id_from_ref(ref) if ref else None,
                detached="detached" in flags,
                bare="bare" in flags,
            )
        )
    return worktrees
