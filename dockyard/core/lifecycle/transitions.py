"""Declarative transition table for the agent lifecycle.

`TRANSITIONS[state][event]` is the only source of legal moves. A (state,
event) pair that is not listed is illegal; terminal states list nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from dockyard.core.lifecycle.actions import ActionId
from dockyard.core.lifecycle.guards import GuardId
from dockyard.core.lifecycle.states import STATE_LABELS, AgentEvent, AgentState, WorktreeState


class _Any(Enum):
    ANY = "*"

    def __repr__(self) -> str:
        return "ANY"


ANY = _Any.ANY
"""Wildcard for `WorktreeTransition.from_state`: matches every worktree state."""


@dataclass(frozen=True)
class WorktreeTransition:
    from_state: WorktreeState | _Any
    to_state: WorktreeState

    def matches(self, current: WorktreeState | None) -> bool:
        """True when the declared source state accepts `current` (unknown always matches)."""
        return current is None or self.from_state is ANY or self.from_state == current


@dataclass(frozen=True)
class TransitionSpec:
    next_state: AgentState
    guards: tuple[GuardId, ...] = ()
    actions: tuple[ActionId, ...] = ()
    worktree: WorktreeTransition | None = None


_S = AgentState
_E = AgentEvent
_G = GuardId
_A = ActionId
_W = WorktreeState

_REMOVED = WorktreeTransition(ANY, _W.REMOVED)
_TEARDOWN = (_A.REMOVE_WORKTREE, _A.DELETE_BRANCH, _A.UPDATE_STATE)

TRANSITIONS: Mapping[AgentState, Mapping[AgentEvent, TransitionSpec]] = MappingProxyType(
    {
        _S.IDLE: MappingProxyType(
            {
                _E.SPAWN: TransitionSpec(
                    next_state=_S.DISPATCHED,
                    guards=(_G.HAS_GIT, _G.HAS_GIT_REPO, _G.NO_EXISTING_WORKTREE, _G.BRANCH_AVAILABLE),
                    actions=(_A.CREATE_WORKTREE, _A.INIT_STATE),
                    worktree=WorktreeTransition(_W.NONE, _W.CLEAN),
                ),
            }
        ),
        _S.DISPATCHED: MappingProxyType(
            {
                _E.START: TransitionSpec(
                    next_state=_S.RUNNING,
                    guards=(_G.WORKTREE_EXISTS,),
                    actions=(_A.SPAWN_PROCESS, _A.UPDATE_STATE),
                ),
                _E.KILL: TransitionSpec(next_state=_S.KILLED, actions=(_A.UPDATE_STATE,)),
                _E.REJECT: TransitionSpec(
                    next_state=_S.REJECTED,
                    actions=(_A.REMOVE_WORKTREE, _A.UPDATE_STATE),
                    worktree=_REMOVED,
                ),
            }
        ),
        _S.RUNNING: MappingProxyType(
            {
                _E.COMPLETE: TransitionSpec(
                    next_state=_S.COMPLETED,
                    actions=(_A.UPDATE_STATE,),
                    worktree=WorktreeTransition(_W.CLEAN, _W.COMMITTED),
                ),
                _E.FAIL: TransitionSpec(next_state=_S.FAILED, actions=(_A.UPDATE_STATE,)),
                _E.KILL: TransitionSpec(next_state=_S.KILLED, actions=(_A.KILL_PROCESS, _A.UPDATE_STATE)),
            }
        ),
        _S.COMPLETED: MappingProxyType(
            {
                _E.MERGE: TransitionSpec(
                    next_state=_S.MERGING,
                    guards=(_G.WORKTREE_EXISTS, _G.HAS_COMMITS, _G.WORKTREE_CLEAN),
                    actions=(_A.START_MERGE, _A.UPDATE_STATE),
                ),
                _E.REJECT: TransitionSpec(next_state=_S.REJECTED, actions=_TEARDOWN, worktree=_REMOVED),
            }
        ),
        _S.FAILED: MappingProxyType(
            {
                _E.REJECT: TransitionSpec(next_state=_S.REJECTED, actions=_TEARDOWN, worktree=_REMOVED),
                _E.MERGE: TransitionSpec(
                    next_state=_S.MERGING,
                    guards=(_G.WORKTREE_EXISTS, _G.HAS_COMMITS),
                    actions=(_A.START_MERGE, _A.UPDATE_STATE),
                ),
            }
        ),
        _S.KILLED: MappingProxyType(
            {
                _E.CLEANUP: TransitionSpec(next_state=_S.REJECTED, actions=_TEARDOWN, worktree=_REMOVED),
            }
        ),
        _S.MERGING: MappingProxyType(
            {
                _E.MERGE_OK: TransitionSpec(next_state=_S.MERGED, actions=_TEARDOWN, worktree=_REMOVED),
                _E.MERGE_CONFLICT: TransitionSpec(
                    next_state=_S.CONFLICT,
                    actions=(_A.UPDATE_STATE,),
                    worktree=WorktreeTransition(ANY, _W.CONFLICT),
                ),
            }
        ),
        _S.CONFLICT: MappingProxyType(
            {
                _E.RESOLVE: TransitionSpec(
                    next_state=_S.MERGING,
                    guards=(_G.CONFLICT_RESOLVED,),
                    actions=(_A.COMMIT_RESOLUTION, _A.CONTINUE_MERGE, _A.UPDATE_STATE),
                ),
                _E.ABORT: TransitionSpec(
                    next_state=_S.COMPLETED,
                    actions=(_A.ABORT_MERGE, _A.UPDATE_STATE),
                    worktree=WorktreeTransition(_W.CONFLICT, _W.COMMITTED),
                ),
                _E.REJECT: TransitionSpec(
                    next_state=_S.REJECTED,
                    actions=(_A.ABORT_MERGE, *_TEARDOWN),
                    worktree=_REMOVED,
                ),
            }
        ),
        _S.MERGED: MappingProxyType({}),
        _S.REJECTED: MappingProxyType({}),
        _S.ERROR: MappingProxyType({}),
    }
)


def get_transition(
    state: AgentState,
    event: AgentEvent,
    table: Mapping[AgentState, Mapping[AgentEvent, TransitionSpec]] = TRANSITIONS,
) -> TransitionSpec | None:
    return table.get(state, {}).get(event)


def get_valid_events(
    state: AgentState,
    table: Mapping[AgentState, Mapping[AgentEvent, TransitionSpec]] = TRANSITIONS,
) -> list[AgentEvent]:
    return list(table.get(state, {}))


def render_state_diagram(table: Mapping[AgentState, Mapping[AgentEvent, TransitionSpec]] = TRANSITIONS) -> str:
    """Render the table as a Mermaid `stateDiagram-v2`, naming states by their labels."""
    lines = ["stateDiagram-v2"]
    for state in table:
        lines.append(f'    state "{STATE_LABELS.get(state, state.value)}" as {state.value}')
    lines.append(f"    [*] --> {AgentState.IDLE.value}")
    for state, events in table.items():
        for event, spec in events.items():
            label = event.value
            if spec.guards:
                label += f" [{', '.join(guard.value for guard in spec.guards)}]"
            lines.append(f"    {state.value} --> {spec.next_state.value}: {label}")
    for state, events in table.items():
        if not events:
            lines.append(f"    {state.value} --> [*]")
    return "\n".join(lines) + "\n"


STATE_DIAGRAM = render_state_diagram()
