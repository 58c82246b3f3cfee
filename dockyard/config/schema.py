import hashlib
from pathlib import Path

from pydantic import BaseModel, ConfigDict, field_validator

from dockyard.constants import (
    DEFAULT_MAIN_BRANCH,
    DEFAULT_REMOTE,
    DEFAULT_WORKTREES_ROOT,
    EPIC_BRANCH_PREFIX,
    PRD_BRANCH_PREFIX,
)
from dockyard.core.recovery import MERGE_STRATEGIES


class GitConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    main_branch: str = DEFAULT_MAIN_BRANCH
    remote: str = DEFAULT_REMOTE
    sync_before_spawn: bool = True
    # Strategy used when a finished branch is folded into its parent
    merge_to_main: str = "squash"
    merge_to_prd: str = "squash"
    merge_to_epic: str = "merge"

    @field_validator("merge_to_main", "merge_to_prd", "merge_to_epic")
    @classmethod
    def validate_strategy(cls, v: str) -> str:
        if v not in MERGE_STRATEGIES:
            raise ValueError(f"Unknown merge strategy: {v}. Expected one of: {', '.join(MERGE_STRATEGIES)}")
        return v

    @field_validator("main_branch", "remote")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v.strip()


class WorktreeConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    root: str = DEFAULT_WORKTREES_ROOT
    per_project: bool = True  # <root>/<project-name>-<hash> instead of <root>

    def resolve_dir(self, project_root: Path) -> Path:
        """Directory holding one worktree per task for `project_root`."""
        root = Path(self.root).expanduser()
        if not root.is_absolute():
            root = project_root / root
        if not self.per_project:
            return root
        resolved = project_root.expanduser().resolve()
        digest = hashlib.sha1(str(resolved).encode("utf-8")).hexdigest()[:8]
        return root / f"{resolved.name}-{digest}"


class DockyardConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    git: GitConfig = GitConfig()
    worktrees: WorktreeConfig = WorktreeConfig()

    def merge_strategy_for(self, target_branch: str) -> str:
        """Strategy for merging into `target_branch` (main, prd/* or epic/*)."""
        if target_branch.startswith(EPIC_BRANCH_PREFIX):
            return self.git.merge_to_epic
        if target_branch.startswith(PRD_BRANCH_PREFIX):
            return self.git.merge_to_prd
        return self.git.merge_to_main
