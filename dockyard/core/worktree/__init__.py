"""Git worktree and branch orchestration package."""

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
from dockyard.core.worktree.naming import (
    BranchingContext,
    MergeBranchName,
    epic_branch,
    get_branch_hierarchy,
    get_parent_branch,
    is_merge_branch,
    is_reconcile_branch,
    merge_branch,
    parse_merge_branch_name,
    prd_branch,
    reconcile_branch,
    task_branch,
    task_id_from_ref,
)
from dockyard.core.worktree.ops import WorktreeOps, parse_worktree_list

__all__ = [
    "BranchingContext",
    "CleanupResult",
    "Divergence",
    "EnsureBranchResult",
    "GitRunner",
    "HierarchyResult",
    "MergeBranchName",
    "MergeResult",
    "ParentSyncResult",
    "SyncResult",
    "UpwardSyncResult",
    "WorktreeInfo",
    "WorktreeOps",
    "WorktreeResult",
    "WorktreeStatus",
    "epic_branch",
    "get_branch_hierarchy",
    "get_parent_branch",
    "is_merge_branch",
    "is_reconcile_branch",
    "merge_branch",
    "parse_merge_branch_name",
    "parse_worktree_list",
    "prd_branch",
    "reconcile_branch",
    "task_branch",
    "task_id_from_ref",
]
