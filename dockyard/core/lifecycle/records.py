"""Declared agent state and the collaborators that persist and run it."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping, Protocol

from dockyard.core.lifecycle.states import (
    AgentEvent,
    AgentState,
    WorktreeState,
    parse_agent_state,
    parse_worktree_state,
)
from dockyard.utils import utc_now_iso


@dataclass(frozen=True)
class WorktreeRef:
    path: Path
    branch: str
    base_branch: str | None = None


@dataclass(frozen=True)
class HistoryEntry:
    """One applied transition."""

    from_state: AgentState
    event: AgentEvent
    to_state: AgentState
    timestamp: str

    def to_dict(self) -> dict[str, str]:
        return {
            "from": self.from_state.value,
            "event": self.event.value,
            "to": self.to_state.value,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> HistoryEntry:
        return cls(
            from_state=parse_agent_state(str(data["from"])),
            event=AgentEvent(str(data["event"])),
            to_state=parse_agent_state(str(data["to"])),
            timestamp=str(data.get("timestamp", "")),
        )


@dataclass(frozen=True)
class AgentRecord:
    """Declared lifecycle state of one task's agent."""

    task_id: str
    status: AgentState = AgentState.IDLE
    worktree_state: WorktreeState = WorktreeState.NONE
    worktree: WorktreeRef | None = None
    pid: int | None = None
    # Branch to check out in the project root once a conflicted merge ends
    return_ref: str | None = None
    history: tuple[HistoryEntry, ...] = ()
    updated_at: str = field(default_factory=utc_now_iso)

    def advance(
        self,
        event: AgentEvent,
        next_state: AgentState,
        *,
        worktree_state: WorktreeState | None = None,
        timestamp: str | None = None,
    ) -> AgentRecord:
        """Return a copy moved to `next_state` with the transition appended to history."""
        now = timestamp or utc_now_iso()
        entry = HistoryEntry(from_state=self.status, event=event, to_state=next_state, timestamp=now)
        return replace(
            self,
            status=next_state,
            worktree_state=worktree_state or self.worktree_state,
            history=(*self.history, entry),
            updated_at=now,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "task_id": self.task_id,
            "status": self.status.value,
            "worktree_state": self.worktree_state.value,
            "worktree": None,
            "pid": self.pid,
            "return_ref": self.return_ref,
            "history": [entry.to_dict() for entry in self.history],
            "updated_at": self.updated_at,
        }
        if self.worktree:
            data["worktree"] = {
                "path": str(self.worktree.path),
                "branch": self.worktree.branch,
                "base_branch": self.worktree.base_branch,
            }
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AgentRecord:
        worktree_data = data.get("worktree")
        worktree = None
        if isinstance(worktree_data, Mapping) and worktree_data.get("path"):
            worktree = WorktreeRef(
                path=Path(str(worktree_data["path"])),
                branch=str(worktree_data.get("branch", "")),
                base_branch=worktree_data.get("base_branch"),
            )
        pid = data.get("pid")
        return cls(
            task_id=str(data["task_id"]),
            status=parse_agent_state(str(data.get("status", AgentState.IDLE.value))),
            worktree_state=parse_worktree_state(str(data.get("worktree_state", WorktreeState.NONE.value))),
            worktree=worktree,
            pid=int(pid) if pid is not None else None,
            return_ref=data.get("return_ref"),
            history=tuple(HistoryEntry.from_dict(item) for item in data.get("history") or ()),
            updated_at=str(data.get("updated_at") or utc_now_iso()),
        )


class AgentStateStore(Protocol):
    """Persistence for declared agent state (file format and locking are the store's concern)."""

    def get(self, task_id: str) -> AgentRecord | None: ...

    def save(self, record: AgentRecord) -> None: ...


class ProcessSupervisor(Protocol):
    """Starts and stops the external agent process for a task."""

    def start(self, task_id: str, worktree_path: Path) -> int: ...

    def kill(self, pid: int) -> None: ...
