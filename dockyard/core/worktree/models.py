"""Result types returned by WorktreeOps.

Mutating operations report failure through `success` / `error` fields instead
of raising, so callers can decide whether to escalate.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Divergence:
    ahead: int = 0
    behind: int = 0


@dataclass(frozen=True)
class WorktreeInfo:
    """One entry of `git worktree list --porcelain`."""

    path: Path
    branch: str | None = None
    head: str | None = None
    task_id: str | None = None
    detached: bool = False
    bare: bool = False


@dataclass(frozen=True)
class EnsureBranchResult:
    branch: str
    created: bool
    existed: bool = False
    error: str | None = None


@dataclass(frozen=True)
class HierarchyResult:
    branches: tuple[str, ...]
    created: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()


@dataclass(frozen=True)
class SyncResult:
    success: bool
    synced: bool
    behind: int = 0
    message: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class ParentSyncResult:
    success: bool
    synced: str | None = None
    skipped: str | None = None
    error: str | None = None
    disabled: bool = False


@dataclass(frozen=True)
class UpwardSyncResult:
    success: bool
    synced: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()
    skipped: tuple[str, ...] = ()


@dataclass(frozen=True)
class WorktreeResult:
    success: bool
    path: Path
    branch: str
    base_branch: str | None = None
    recreated: bool = False
    error: str | None = None


@dataclass(frozen=True)
class CleanupResult:
    """Outcome of a full teardown; every step is attempted regardless of earlier failures."""

    task_id: str
    removed: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()
    skipped: tuple[str, ...] = ()

    @property
    def success(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class WorktreeStatus:
    exists: bool
    path: Path
    branch: str
    clean: bool | None = None
    ahead: int = 0
    behind: int = 0
    error: str | None = None


@dataclass(frozen=True)
class MergeResult:
    """Outcome of folding `source` into `target`.

    A conflict leaves the merge (or rebase) in progress so it can be resolved
    or aborted through the lifecycle. `original_ref` names the branch the
    project root had checked out when the conflict left it elsewhere.
    """

    success: bool
    source: str
    target: str
    strategy: str
    merged: bool = False
    conflict: bool = False
    conflict_files: tuple[str, ...] = ()
    error: str | None = None
    original_ref: str | None = None
