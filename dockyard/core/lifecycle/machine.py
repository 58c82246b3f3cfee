"""Agent lifecycle state machine.

`AgentStateMachine.apply()` is the only way declared state moves. It looks the
(state, event) pair up in the transition table, evaluates guards in order
(stopping at the first failure), then runs actions in order (stopping at the
first failure, without rolling back earlier ones). It never inspects git to
reconcile declared state with reality; that is what diagnosis is for.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from dockyard.config.schema import DockyardConfig
from dockyard.core.errors import (
    ActionFailed,
    DockyardError,
    GuardFailed,
    InvalidTransition,
    LockConflict,
    UnknownRegistryEntry,
)
from dockyard.core.lifecycle.actions import Action, ActionId, ActionScope, build_action_registry
from dockyard.core.lifecycle.context import TransitionContext
from dockyard.core.lifecycle.guards import Guard, GuardId, build_guard_registry
from dockyard.core.lifecycle.records import AgentStateStore, ProcessSupervisor
from dockyard.core.lifecycle.states import AgentEvent, AgentState, is_terminal
from dockyard.core.lifecycle.transitions import (
    TRANSITIONS,
    TransitionSpec,
    WorktreeTransition,
    get_transition,
    get_valid_events,
)
from dockyard.core.recovery import render_commands
from dockyard.core.worktree.ops import WorktreeOps
from dockyard.logging_config import get_logger

logger = get_logger(__name__)

TransitionTable = Mapping[AgentState, Mapping[AgentEvent, TransitionSpec]]

# Error category a failed guard corresponds to, for remediation lookup
_GUARD_CATEGORIES: Mapping[GuardId, str] = {
    GuardId.HAS_GIT: "no_git",
    GuardId.HAS_GIT_REPO: "not_git_repo",
    GuardId.NO_EXISTING_WORKTREE: "worktree_exists",
    GuardId.BRANCH_AVAILABLE: "branch_exists",
    GuardId.WORKTREE_EXISTS: "worktree_missing",
    GuardId.WORKTREE_CLEAN: "dirty_worktree",
    GuardId.CONFLICT_RESOLVED: "merge_conflict",
}


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of one `apply()` call.

    On failure `next_state` is the unchanged current state, or None when the
    state given to `apply()` is not a known agent state.
    """

    success: bool
    next_state: AgentState | None
    worktree_transition: WorktreeTransition | None = None
    error: DockyardError | None = None
    remediation: tuple[str, ...] = ()
    outputs: Mapping[str, object] = field(default_factory=dict)


class AgentStateMachine:
    """Applies lifecycle events using a transition table and guard/action registries."""

    def __init__(
        self,
        guards: Mapping[GuardId, Guard],
        actions: Mapping[ActionId, Action],
        table: TransitionTable = TRANSITIONS,
    ) -> None:
        for events in table.values():
            for spec in events.values():
                for guard_id in spec.guards:
                    if guard_id not in guards:
                        raise UnknownRegistryEntry("guard", str(getattr(guard_id, "value", guard_id)))
                for action_id in spec.actions:
                    if action_id not in actions:
                        raise UnknownRegistryEntry("action", str(getattr(action_id, "value", action_id)))
        self._guards = dict(guards)
        self._actions = dict(actions)
        self._table = table

    def valid_events(self, state: AgentState) -> list[AgentEvent]:
        return get_valid_events(state, self._table)

    def is_terminal(self, state: AgentState) -> bool:
        return is_terminal(state) or not self._table.get(state)

    def can_apply(self, state: AgentState, event: AgentEvent, context: TransitionContext) -> TransitionResult:
        """Check lookup and guards without running any action."""
        spec = get_transition(state, event, self._table)
        if spec is None:
            return self._failure(state, InvalidTransition(state.value, event.value, self._event_names(state)), context)
        failed = self._check_guards(spec, context)
        if failed is not None:
            return self._failure(state, failed, context)
        return TransitionResult(success=True, next_state=spec.next_state, worktree_transition=spec.worktree)

    def apply(
        self, state: AgentState | str, event: AgentEvent | str, context: TransitionContext
    ) -> TransitionResult:
        """Apply `event` to `state`, running guards then actions."""
        try:
            state = AgentState(state)
            event = AgentEvent(event)
        except ValueError:
            error = InvalidTransition(
                str(getattr(state, "value", state)), str(getattr(event, "value", event)), self._event_names(state)
            )
            return TransitionResult(success=False, next_state=_known_state(state), error=error)

        spec = get_transition(state, event, self._table)
        if spec is None:
            error = InvalidTransition(state.value, event.value, self._event_names(state))
            logger.info("Rejected %s for %s: %s", event.value, context.task_id, error)
            return self._failure(state, error, context)

        failed = self._check_guards(spec, context)
        if failed is not None:
            logger.info("Guard %s blocked %s for %s: %s", failed.name, event.value, context.task_id, failed.reason)
            return self._failure(state, failed, context)

        if spec.worktree and not spec.worktree.matches(context.worktree_state):
            logger.warning(
                "Worktree of %s is %s, transition %s expects %s",
                context.task_id,
                getattr(context.worktree_state, "value", context.worktree_state),
                event.value,
                spec.worktree.from_state.value,
            )

        scope = ActionScope(
            context=context,
            event=event,
            from_state=state,
            next_state=spec.next_state,
            worktree_state=spec.worktree.to_state if spec.worktree else None,
        )
        completed: list[str] = []
        for action_id in spec.actions:
            try:
                self._actions[action_id](scope)
            except Exception as exc:
                error = ActionFailed(action_id.value, exc, completed)
                logger.warning(
                    "Action %s failed during %s for %s (completed: %s): %s",
                    action_id.value,
                    event.value,
                    context.task_id,
                    ", ".join(completed) or "none",
                    exc,
                )
                return self._failure(state, error, context, outputs=scope.outputs)
            completed.append(action_id.value)

        logger.info("%s: %s --%s--> %s", context.task_id, state.value, event.value, spec.next_state.value)
        return TransitionResult(
            success=True,
            next_state=spec.next_state,
            worktree_transition=spec.worktree,
            outputs=dict(scope.outputs),
        )

    def _event_names(self, state: object) -> list[str]:
        if not isinstance(state, AgentState):
            return []
        return [event.value for event in self.valid_events(state)]

    def _check_guards(self, spec: TransitionSpec, context: TransitionContext) -> GuardFailed | None:
        for guard_id in spec.guards:
            result = self._guards[guard_id](context)
            if not result.ok:
                failed = GuardFailed(guard_id.value, result.reason)
                failed.category = _GUARD_CATEGORIES.get(guard_id)
                return failed
        return None

    def _failure(
        self,
        state: AgentState,
        error: DockyardError,
        context: TransitionContext,
        outputs: Mapping[str, object] | None = None,
    ) -> TransitionResult:
        return TransitionResult(
            success=False,
            next_state=state,
            error=error,
            remediation=tuple(_remediation(error, context)),
            outputs=dict(outputs or {}),
        )


def _known_state(value: object) -> AgentState | None:
    try:
        return AgentState(value)
    except ValueError:
        return None


def _remediation(error: DockyardError, context: TransitionContext) -> list[str]:
    if not error.category:
        return []
    cause = error.cause if isinstance(error, ActionFailed) else error
    params = {
        "path": str(context.worktree_path),
        "branch": context.branch,
        "git_dir": str(context.project_root / ".git"),
    }
    if isinstance(cause, LockConflict) and cause.lock_path:
        params["lock_file"] = cause.lock_path
    return render_commands(error.category, **params)


def build_state_machine(
    ops: WorktreeOps,
    store: AgentStateStore,
    supervisor: ProcessSupervisor,
    config: DockyardConfig | None = None,
) -> AgentStateMachine:
    """Wire the default transition table to guards and actions bound to `ops`."""
    return AgentStateMachine(
        build_guard_registry(ops),
        build_action_registry(ops, store, supervisor, config),
    )
