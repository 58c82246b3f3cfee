"""Deterministic branch and worktree naming.

Every name is a pure function of entity type and ID. The branch hierarchy is
strictly layered main -> prd/* -> epic/* -> task/*; which intermediate levels
exist depends on the branching mode:

- flat: task branches fork from main
- prd:  task branches fork from prd/<PrdID>
- epic: task branches fork from epic/<EpicID>, which forks from prd/<PrdID>
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from dockyard.constants import (
    AGENT_BRANCH_PATTERN,
    DEFAULT_MAIN_BRANCH,
    EPIC_BRANCH_PREFIX,
    MERGE_BRANCH_PATTERN,
    MERGE_BRANCH_PREFIX,
    PRD_BRANCH_PREFIX,
    RECONCILE_BRANCH_PREFIX,
    TASK_BRANCH_PREFIX,
)

BranchingMode = Literal["flat", "prd", "epic"]


@dataclass(frozen=True)
class BranchingContext:
    """Where a task sits in the PRD/epic hierarchy and how branches are layered."""

    prd_id: str | None = None
    epic_id: str | None = None
    branching: BranchingMode = "flat"
    main_branch: str = DEFAULT_MAIN_BRANCH


@dataclass(frozen=True)
class MergeBranchName:
    source: str
    target: str


def worktree_path(worktrees_dir: Path, task_id: str) -> Path:
    """Return the worktree directory for a task (directory name = task ID)."""
    return worktrees_dir / task_id


def task_branch(task_id: str) -> str:
    return f"{TASK_BRANCH_PREFIX}{task_id}"


def prd_branch(prd_id: str) -> str:
    return f"{PRD_BRANCH_PREFIX}{prd_id}"


def epic_branch(epic_id: str) -> str:
    return f"{EPIC_BRANCH_PREFIX}{epic_id}"


def merge_branch(source_id: str, target_id: str) -> str:
    """Branch used when merging `source_id` into `target_id` needs a staging area."""
    return f"{MERGE_BRANCH_PREFIX}{source_id}-to-{target_id}"


def reconcile_branch(branch_id: str) -> str:
    """Branch used when pulling parent changes into `branch_id`."""
    return f"{RECONCILE_BRANCH_PREFIX}{branch_id}"


def parse_merge_branch_name(branch: str) -> MergeBranchName | None:
    match = MERGE_BRANCH_PATTERN.match(branch)
    if not match:
        return None
    return MergeBranchName(source=match.group(1), target=match.group(2))


def is_merge_branch(branch: str) -> bool:
    return branch.startswith(MERGE_BRANCH_PREFIX)


def is_reconcile_branch(branch: str) -> bool:
    return branch.startswith(RECONCILE_BRANCH_PREFIX)


def task_id_from_ref(ref: str) -> str | None:
    """Extract the task ID from a `refs/heads/task/T<digits>` ref."""
    match = AGENT_BRANCH_PATTERN.search(ref)
    return match.group(1) if match else None


def get_parent_branch(context: BranchingContext) -> str:
    """Return the branch a task forks from (and merges back into)."""
    if context.branching == "epic":
        if context.epic_id:
            return epic_branch(context.epic_id)
        if context.prd_id:
            return prd_branch(context.prd_id)
        return context.main_branch
    if context.branching == "prd" and context.prd_id:
        return prd_branch(context.prd_id)
    return context.main_branch


def get_branch_hierarchy(context: BranchingContext) -> list[str]:
    """Return the chain from main down to the task's parent branch.

    >>> get_branch_hierarchy(BranchingContext(prd_id="PRD-001", epic_id="E001", branching="epic"))
    ['main', 'prd/PRD-001', 'epic/E001']
    """
    chain = [context.main_branch]
    if context.branching == "flat":
        return chain
    if context.prd_id and context.branching in ("prd", "epic"):
        chain.append(prd_branch(context.prd_id))
    if context.epic_id and context.branching == "epic":
        chain.append(epic_branch(context.epic_id))
    return chain
