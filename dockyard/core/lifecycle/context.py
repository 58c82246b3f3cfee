"""Runtime context handed to guards and actions."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from dockyard.core.lifecycle.records import AgentRecord
from dockyard.core.lifecycle.states import WorktreeState
from dockyard.core.worktree.naming import BranchingContext
from dockyard.core.worktree.ops import WorktreeOps


@dataclass(frozen=True)
class TransitionContext:
    """Everything a transition needs to know about one task.

    `base_branch` is the branch the task forks from and merges back into.
    `strategy` overrides the configured merge strategy for that branch.
    """

    task_id: str
    project_root: Path
    worktree_path: Path
    branch: str
    base_branch: str
    strategy: str | None = None
    message: str | None = None
    worktree_state: WorktreeState | None = None
    record: AgentRecord | None = None
    conflicts_with: tuple[str, ...] = ()
    branching: BranchingContext | None = None

    @classmethod
    def for_task(
        cls,
        ops: WorktreeOps,
        task_id: str,
        *,
        branching: BranchingContext | None = None,
        base_branch: str | None = None,
        record: AgentRecord | None = None,
        **overrides: object,
    ) -> TransitionContext:
        """Derive paths and branch names for `task_id` from WorktreeOps naming."""
        if base_branch is None:
            if record and record.worktree and record.worktree.base_branch:
                base_branch = record.worktree.base_branch
            elif branching is not None:
                base_branch = ops.get_parent_branch(branching)
            else:
                base_branch = ops.main_branch
        return cls(
            task_id=task_id,
            project_root=ops.project_root,
            worktree_path=ops.get_worktree_path(task_id),
            branch=ops.task_branch(task_id),
            base_branch=base_branch,
            record=record,
            worktree_state=record.worktree_state if record else None,
            branching=branching,
            **overrides,  # type: ignore[arg-type]
        )
