"""Typed settings for the git and worktree layers."""

from dockyard.config.loader import load_config, load_project_config
from dockyard.config.schema import DockyardConfig, GitConfig, WorktreeConfig

__all__ = ["DockyardConfig", "GitConfig", "WorktreeConfig", "load_config", "load_project_config"]
