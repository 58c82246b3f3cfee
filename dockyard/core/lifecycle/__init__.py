"""Agent lifecycle state machine package."""

from dockyard.core.lifecycle.actions import ActionId, ActionScope, build_action_registry
from dockyard.core.lifecycle.context import TransitionContext
from dockyard.core.lifecycle.diagnosis import (
    Diagnosis,
    DiagnosisPaths,
    WorktreeDetails,
    WorktreeDiagnosis,
    diagnose_agent_state,
    diagnose_worktree_state,
    diagnosis_to_dict,
    get_recommended_actions,
)
from dockyard.core.lifecycle.guards import GuardId, GuardResult, build_guard_registry
from dockyard.core.lifecycle.machine import AgentStateMachine, TransitionResult, build_state_machine
from dockyard.core.lifecycle.records import (
    AgentRecord,
    AgentStateStore,
    HistoryEntry,
    ProcessSupervisor,
    WorktreeRef,
)
from dockyard.core.lifecycle.states import (
    STATE_LABELS,
    TERMINAL_STATES,
    AgentEvent,
    AgentState,
    WorktreeState,
    is_terminal,
)
from dockyard.core.lifecycle.transitions import (
    ANY,
    STATE_DIAGRAM,
    TRANSITIONS,
    TransitionSpec,
    WorktreeTransition,
    get_transition,
    get_valid_events,
    render_state_diagram,
)

__all__ = [
    "ANY",
    "ActionId",
    "ActionScope",
    "AgentEvent",
    "AgentRecord",
    "AgentState",
    "AgentStateMachine",
    "AgentStateStore",
    "Diagnosis",
    "DiagnosisPaths",
    "GuardId",
    "GuardResult",
    "HistoryEntry",
    "ProcessSupervisor",
    "STATE_DIAGRAM",
    "STATE_LABELS",
    "TERMINAL_STATES",
    "TRANSITIONS",
    "TransitionContext",
    "TransitionResult",
    "TransitionSpec",
    "WorktreeDetails",
    "WorktreeDiagnosis",
    "WorktreeRef",
    "WorktreeState",
    "WorktreeTransition",
    "build_action_registry",
    "build_guard_registry",
    "build_state_machine",
    "diagnose_agent_state",
    "diagnose_worktree_state",
    "diagnosis_to_dict",
    "get_recommended_actions",
    "get_transition",
    "get_valid_events",
    "is_terminal",
    "render_state_diagram",
]
