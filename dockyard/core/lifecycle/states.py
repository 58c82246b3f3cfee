"""Agent lifecycle vocabulary: states, events and worktree states."""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Mapping


class AgentState(str, Enum):
    IDLE = "idle"
    DISPATCHED = "dispatched"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    KILLED = "killed"
    MERGING = "merging"
    CONFLICT = "conflict"
    MERGED = "merged"
    REJECTED = "rejected"
    ERROR = "error"


class WorktreeState(str, Enum):
    NONE = "none"
    CLEAN = "clean"
    DIRTY = "dirty"
    COMMITTED = "committed"
    CONFLICT = "conflict"
    REMOVED = "removed"


class AgentEvent(str, Enum):
    SPAWN = "spawn"
    START = "start"
    KILL = "kill"
    REJECT = "reject"
    COMPLETE = "complete"
    FAIL = "fail"
    MERGE = "merge"
    MERGE_OK = "merge_ok"
    MERGE_CONFLICT = "merge_conflict"
    RESOLVE = "resolve"
    ABORT = "abort"
    CLEANUP = "cleanup"


TERMINAL_STATES: frozenset[AgentState] = frozenset({AgentState.MERGED, AgentState.REJECTED, AgentState.ERROR})

# Human-readable state names, used in the generated state diagram
STATE_LABELS: Mapping[AgentState, str] = MappingProxyType(
    {
        AgentState.IDLE: "Idle",
        AgentState.DISPATCHED: "Dispatched",
        AgentState.RUNNING: "Running",
        AgentState.COMPLETED: "Completed",
        AgentState.FAILED: "Failed",
        AgentState.KILLED: "Killed",
        AgentState.MERGING: "Merging",
        AgentState.CONFLICT: "Merge conflict",
        AgentState.MERGED: "Merged",
        AgentState.REJECTED: "Rejected",
        AgentState.ERROR: "Error",
    }
)


def is_terminal(state: AgentState) -> bool:
    return state in TERMINAL_STATES


def parse_agent_state(value: str) -> AgentState:
    """Parse a stored status string. Raises ValueError for unknown values."""
    try:
        return AgentState(value)
    except ValueError as exc:
        raise ValueError(f"Unknown agent state: {value}") from exc


def parse_worktree_state(value: str) -> WorktreeState:
    try:
        return WorktreeState(value)
    except ValueError as exc:
        raise ValueError(f"Unknown worktree state: {value}") from exc
