"""Compare declared agent state against what git, the filesystem and the OS show.

Nothing here mutates anything or raises for inspection problems: failures to
read git state are collected in `WorktreeDetails.errors` and the diagnosis
falls back to the most conservative classification.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import psutil

from dockyard.constants import DEFAULT_MAIN_BRANCH, MERGE_HEAD_MARKER, REBASE_MARKERS
from dockyard.core.errors import GitCommandFailed
from dockyard.core.lifecycle.records import AgentRecord
from dockyard.core.lifecycle.states import AgentState, WorktreeState
from dockyard.core.recovery import render_commands
from dockyard.core.worktree.git import GitRunner
from dockyard.core.worktree.status import parse_porcelain
from dockyard.logging_config import get_logger

logger = get_logger(__name__)

ISSUE_ORPHANED = "Orphaned worktree found"
ISSUE_MISSING = "State says worktree exists but not found on disk"
ISSUE_UNRECORDED = "Worktree exists but not recorded in state"
ISSUE_NO_MERGE = "State is merging but no merge in progress"
ISSUE_DIRTY_COMPLETED = "Completed but worktree has uncommitted changes"
ISSUE_DETACHED = "Worktree is in detached HEAD state"


@dataclass
class WorktreeDetails:
    path: Path
    base_branch: str
    exists: bool = False
    is_git_worktree: bool = False
    branch: str | None = None
    clean: bool | None = None
    has_commits: bool | None = None
    ahead: int = 0
    behind: int = 0
    uncommitted_files: list[str] = field(default_factory=list)
    staged_files: list[str] = field(default_factory=list)
    conflict_files: list[str] = field(default_factory=list)
    merge_in_progress: bool = False
    rebase_in_progress: bool = False
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class WorktreeDiagnosis:
    state: WorktreeState
    details: WorktreeDetails


@dataclass(frozen=True)
class DiagnosisPaths:
    project_root: Path
    worktree_path: Path
    branch: str
    base_branch: str = DEFAULT_MAIN_BRANCH


@dataclass(frozen=True)
class Diagnosis:
    """Declared state next to observed state, with any inconsistencies found."""

    task_id: str
    agent_state: AgentState
    worktree_state: WorktreeState
    details: WorktreeDetails
    record: AgentRecord | None = None
    issues: tuple[str, ...] = ()


def _read_gitdir(worktree_path: Path, details: WorktreeDetails) -> Path | None:
    git_file = worktree_path / ".git"
    if not git_file.exists():
        details.errors.append("No .git file found")
        return None
    if git_file.is_dir():
        details.errors.append("Invalid .git file (not a worktree)")
        return None
    try:
        content = git_file.read_text(encoding="utf-8").strip()
    except OSError as exc:
        details.errors.append(f"Cannot read .git file: {exc}")
        return None
    if not content.startswith("gitdir:"):
        details.errors.append("Invalid .git file (not a worktree)")
        return None
    git_dir = Path(content[len("gitdir:") :].strip())
    return git_dir if git_dir.is_absolute() else (worktree_path / git_dir).resolve()


def _root_merge_head(project_root: Path, runner: GitRunner) -> str | None:
    git_dir = runner.try_run(["rev-parse", "--git-dir"], cwd=project_root)
    if not git_dir:
        return None
    path = Path(git_dir)
    if not path.is_absolute():
        path = project_root / path
    marker = path / MERGE_HEAD_MARKER
    try:
        return marker.read_text(encoding="utf-8").strip() if marker.exists() else None
    except OSError:
        return None


def diagnose_worktree_state(
    worktree_path: Path,
    project_root: Path,
    base_branch: str = DEFAULT_MAIN_BRANCH,
    *,
    runner: GitRunner | None = None,
) -> WorktreeDiagnosis:
    """Classify a task worktree from what is actually on disk.

    Precedence: conflict files or a merge/rebase in progress, then uncommitted
    changes, then commits ahead of `base_branch`, then clean. A missing path
    or a `.git` that is not a worktree pointer classifies as NONE.
    """
    runner = runner or GitRunner()
    worktree_path = Path(worktree_path)
    details = WorktreeDetails(path=worktree_path, base_branch=base_branch)

    if not worktree_path.exists():
        return WorktreeDiagnosis(WorktreeState.NONE, details)
    details.exists = True

    git_dir = _read_gitdir(worktree_path, details)
    if git_dir is None:
        return WorktreeDiagnosis(WorktreeState.NONE, details)
    details.is_git_worktree = True

    try:
        details.branch = runner.run(["branch", "--show-current"], cwd=worktree_path) or None
    except GitCommandFailed as exc:
        details.errors.append(f"Cannot get branch: {exc}")

    details.merge_in_progress = (git_dir / MERGE_HEAD_MARKER).exists()
    details.rebase_in_progress = any((git_dir / marker).exists() for marker in REBASE_MARKERS)
    if not details.merge_in_progress:
        # merge and squash strategies run in the project root, not the worktree
        root_merge_head = _root_merge_head(Path(project_root), runner)
        if root_merge_head:
            head = runner.try_run(["rev-parse", "HEAD"], cwd=worktree_path)
            details.merge_in_progress = head == root_merge_head

    try:
        status = runner.run(["status", "--porcelain"], cwd=worktree_path)
    except GitCommandFailed as exc:
        details.errors.append(f"Cannot get status: {exc}")
    else:
        for entry in parse_porcelain(status):
            if entry.is_conflict:
                details.conflict_files.append(entry.path)
            elif entry.is_staged:
                details.staged_files.append(entry.path)
            if entry.is_uncommitted:
                details.uncommitted_files.append(entry.path)
        details.clean = not details.uncommitted_files and not details.staged_files

    counts = runner.try_run(["rev-list", "--left-right", "--count", f"{base_branch}...HEAD"], cwd=worktree_path)
    if counts:
        parts = counts.split()
        try:
            details.behind, details.ahead = int(parts[0]), int(parts[1])
            details.has_commits = details.ahead > 0
        except (IndexError, ValueError):
            details.errors.append(f"Unexpected rev-list output: {counts}")

    if details.conflict_files or details.merge_in_progress or details.rebase_in_progress:
        state = WorktreeState.CONFLICT
    elif details.clean is False:
        state = WorktreeState.DIRTY
    elif details.has_commits:
        state = WorktreeState.COMMITTED
    else:
        state = WorktreeState.CLEAN
    return WorktreeDiagnosis(state, details)


def diagnose_agent_state(
    task_id: str,
    record: AgentRecord | None,
    paths: DiagnosisPaths,
    *,
    runner: GitRunner | None = None,
) -> Diagnosis:
    """Cross-validate the declared record for `task_id` against reality."""
    observed = diagnose_worktree_state(paths.worktree_path, paths.project_root, paths.base_branch, runner=runner)
    issues: list[str] = []

    if record is None:
        if observed.state != WorktreeState.NONE:
            issues.append(f"{ISSUE_ORPHANED}: {paths.worktree_path}")
        return Diagnosis(
            task_id=task_id,
            agent_state=AgentState.IDLE,
            worktree_state=observed.state,
            details=observed.details,
            issues=tuple(issues),
        )

    if record.worktree is not None and observed.state == WorktreeState.NONE:
        issues.append(ISSUE_MISSING)
    if record.worktree is None and observed.state != WorktreeState.NONE:
        issues.append(ISSUE_UNRECORDED)
    if record.status == AgentState.RUNNING and record.pid is not None and not psutil.pid_exists(record.pid):
        issues.append(f"Process {record.pid} not found but state is 'running'")
    if record.status == AgentState.MERGING and observed.state != WorktreeState.CONFLICT:
        if not observed.details.merge_in_progress and not observed.details.rebase_in_progress:
            issues.append(ISSUE_NO_MERGE)
    if record.status == AgentState.COMPLETED and observed.state == WorktreeState.DIRTY:
        issues.append(ISSUE_DIRTY_COMPLETED)
    details = observed.details
    if details.is_git_worktree and not details.errors and not details.rebase_in_progress:
        if details.branch is None:
            issues.append(f"{ISSUE_DETACHED}, expected {paths.branch}")
        elif details.branch != paths.branch:
            issues.append(f"Worktree is on {details.branch}, expected {paths.branch}")

    if issues:
        logger.info("Diagnosis for %s found %d issue(s)", task_id, len(issues))
    return Diagnosis(
        task_id=task_id,
        agent_state=record.status,
        worktree_state=observed.state,
        details=observed.details,
        record=record,
        issues=tuple(issues),
    )


def get_recommended_actions(diagnosis: Diagnosis) -> list[str]:
    """Ordered, de-duplicated next steps for a diagnosis."""
    actions: list[str] = []
    path = str(diagnosis.details.path)

    for issue in diagnosis.issues:
        if issue.startswith(ISSUE_ORPHANED):
            actions.append("cleanup: Remove orphaned worktree")
            actions.extend(render_commands("worktree_exists", path=path))
        if issue == ISSUE_MISSING:
            actions.append("Prune stale worktree registration and update state")
            actions.extend(render_commands("worktree_missing"))
        if "not found but state is" in issue:
            actions.append("kill: Update state to reflect terminated process")
        if "uncommitted changes" in issue:
            actions.append("Escalate: uncommitted changes must be resolved")
        if "no merge in progress" in issue:
            actions.append("Inspect the repository to verify the actual merge state")
        if issue.startswith(ISSUE_DETACHED):
            actions.append("Check out the task branch in the worktree")
            if diagnosis.record and diagnosis.record.worktree:
                actions.extend(render_commands("detached_head", branch=diagnosis.record.worktree.branch))

    state = diagnosis.agent_state
    worktree_state = diagnosis.worktree_state
    if state == AgentState.COMPLETED:
        if worktree_state == WorktreeState.COMMITTED:
            actions.append("merge: Ready to merge")
        elif worktree_state == WorktreeState.DIRTY:
            actions.append("Commit changes, then merge")
        elif worktree_state == WorktreeState.CLEAN:
            actions.append("reject: No changes to merge")
    elif state == AgentState.CONFLICT:
        actions.append("Resolve conflicts manually, then resolve")
        actions.append("Or: abort to cancel the merge")
        actions.append("Or: reject to discard all work")
    elif state == AgentState.FAILED:
        actions.append("reject: Clean up failed agent")
        actions.append("Or: merge if partial work is salvageable")
    elif state == AgentState.KILLED:
        actions.append("cleanup: Clean up killed agent")
    elif state == AgentState.RUNNING:
        if any("Process" in issue and "not found" in issue for issue in diagnosis.issues):
            actions.append("kill: Mark as killed and clean up")

    return list(dict.fromkeys(actions))


def diagnosis_to_dict(diagnosis: Diagnosis) -> dict[str, Any]:
    """Plain-dict view for machine-readable output."""
    details = diagnosis.details
    return {
        "task_id": diagnosis.task_id,
        "agent_state": diagnosis.agent_state.value,
        "worktree_state": diagnosis.worktree_state.value,
        "issues": list(diagnosis.issues),
        "worktree": {
            "path": str(details.path),
            "exists": details.exists,
            "branch": details.branch,
            "base_branch": details.base_branch,
            "clean": details.clean,
            "ahead": details.ahead,
            "behind": details.behind,
            "conflict_files": list(details.conflict_files),
            "uncommitted_files": list(details.uncommitted_files),
            "staged_files": list(details.staged_files),
            "merge_in_progress": details.merge_in_progress,
            "rebase_in_progress": details.rebase_in_progress,
            "errors": list(details.errors),
        },
    }
