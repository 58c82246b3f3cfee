"""Constants used across dockyard.

Naming prefixes here are part of the on-disk contract with existing
repositories: branches and worktree directories created by earlier runs must
keep resolving to the same names.
"""

import re

# Branch namespaces
TASK_BRANCH_PREFIX = "task/"
PRD_BRANCH_PREFIX = "prd/"
EPIC_BRANCH_PREFIX = "epic/"
MERGE_BRANCH_PREFIX = "merge/"
RECONCILE_BRANCH_PREFIX = "reconcile/"

# Agent worktrees are the ones checked out on a task branch (task/T042)
AGENT_BRANCH_PATTERN = re.compile(r"refs/heads/task/(T\d+)$")
MERGE_BRANCH_PATTERN = re.compile(r"^merge/([^-]+)-to-(.+)$")

# Git defaults (overridable via config)
DEFAULT_MAIN_BRANCH = "main"
DEFAULT_REMOTE = "origin"
DEFAULT_WORKTREES_ROOT = "~/.dockyard/worktrees"
PROJECT_CONFIG_REL = ".dockyard/config.yml"

# Git state markers inside a (worktree) git dir
MERGE_HEAD_MARKER = "MERGE_HEAD"
REBASE_MARKERS = ("rebase-merge", "rebase-apply")

# Two-character porcelain codes that mean "unmerged"
UNMERGED_STATUS_CODES = frozenset({"DD", "AU", "UD", "UA", "DU", "AA", "UU"})

# Environment
LOG_LEVEL_ENV = "DOCKYARD_LOG_LEVEL"
