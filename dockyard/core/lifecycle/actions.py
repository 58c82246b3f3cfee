"""Transition side effects.

Every action tolerates re-entry: when a transition fails part-way the caller
fixes the cause and applies the same event again, so an action that finds its
work already done returns without doing it twice. Failures are raised as
DockyardError subclasses; the state machine reports them, and any other
exception an action lets through, as ActionFailed.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Callable, Mapping, NoReturn

import psutil

from dockyard.config.schema import DockyardConfig
from dockyard.core.errors import DockyardError, StaleReference
from dockyard.core.lifecycle.context import TransitionContext
from dockyard.core.lifecycle.records import AgentRecord, AgentStateStore, ProcessSupervisor, WorktreeRef
from dockyard.core.lifecycle.states import AgentEvent, AgentState, WorktreeState
from dockyard.core.recovery import classify_git_error
from dockyard.core.worktree.models import MergeResult
from dockyard.core.worktree.ops import WorktreeOps
from dockyard.logging_config import get_logger

logger = get_logger(__name__)


class ActionId(str, Enum):
    CREATE_WORKTREE = "create_worktree"
    INIT_STATE = "init_state"
    SPAWN_PROCESS = "spawn_process"
    KILL_PROCESS = "kill_process"
    REMOVE_WORKTREE = "remove_worktree"
    DELETE_BRANCH = "delete_branch"
    UPDATE_STATE = "update_state"
    START_MERGE = "start_merge"
    ABORT_MERGE = "abort_merge"
    COMMIT_RESOLUTION = "commit_resolution"
    CONTINUE_MERGE = "continue_merge"


@dataclass
class ActionScope:
    """Per-apply state shared by the actions of one transition.

    Actions publish values for later actions and for the caller in `outputs`
    (`worktree`, `pid`, `merge`, `record`, `aborted`, `return_ref`).
    """

    context: TransitionContext
    event: AgentEvent
    from_state: AgentState
    next_state: AgentState
    worktree_state: WorktreeState | None
    outputs: dict[str, object] = field(default_factory=dict)


Action = Callable[[ActionScope], None]


def _fail(message: str, category: str | None = None) -> NoReturn:
    error = DockyardError(message)
    error.category = category or classify_git_error(message)
    raise error


def build_action_registry(
    ops: WorktreeOps,
    store: AgentStateStore,
    supervisor: ProcessSupervisor,
    config: DockyardConfig | None = None,
) -> Mapping[ActionId, Action]:
    """Bind every action to its collaborators."""
    config = config or DockyardConfig()

    def _record(scope: ActionScope) -> AgentRecord:
        ctx = scope.context
        return ctx.record or store.get(ctx.task_id) or AgentRecord(task_id=ctx.task_id)

    def _worktree_ref(scope: ActionScope) -> WorktreeRef:
        ref = scope.outputs.get("worktree")
        if isinstance(ref, WorktreeRef):
            return ref
        ctx = scope.context
        return WorktreeRef(path=ctx.worktree_path, branch=ctx.branch, base_branch=ctx.base_branch)

    def _merge_strategy(ctx: TransitionContext) -> str:
        return ctx.strategy or config.merge_strategy_for(ctx.base_branch)

    def _merge(scope: ActionScope) -> MergeResult:
        ctx = scope.context
        result = ops.merge_branch(
            ctx.branch,
            ctx.base_branch,
            strategy=_merge_strategy(ctx),
            message=ctx.message or f"Merge {ctx.task_id} ({ctx.branch})",
            source_worktree=ctx.worktree_path,
        )
        if not result.success and not result.conflict:
            _fail(result.error or f"Merge of {ctx.branch} into {ctx.base_branch} failed")
        scope.outputs["merge"] = result
        return result

    def _return_to_original(scope: ActionScope) -> None:
        ctx = scope.context
        ref = ctx.record.return_ref if ctx.record else None
        if not ref:
            return
        if ops.current_branch() != ref:
            error = ops.checkout_ref(ref)
            if error:
                _fail(error)
            logger.info("Returned project root to %s after merge of %s", ref, ctx.task_id)
        scope.outputs["return_ref"] = None

    def _operation_dirs(ctx: TransitionContext) -> list[Path]:
        dirs = [ctx.project_root]
        if ctx.worktree_path.exists():
            dirs.append(ctx.worktree_path)
        return dirs

    def create_worktree(scope: ActionScope) -> None:
        ctx = scope.context
        if ctx.worktree_path.exists():
            info = ops.registered_worktree(ctx.worktree_path)
            if info is not None and info.branch == ctx.branch:
                logger.info("Worktree for %s already in place at %s", ctx.task_id, ctx.worktree_path)
                scope.outputs["worktree"] = _worktree_ref(scope)
                return
            _fail(f"Worktree already exists: {ctx.worktree_path}", "worktree_exists")

        if ctx.branching is not None:
            hierarchy = ops.ensure_branch_hierarchy(ctx.branching)
            if hierarchy.errors:
                _fail(f"Failed to prepare branch hierarchy: {'; '.join(hierarchy.errors)}")
            synced = ops.sync_parent_branch(ctx.branching)
            if not synced.success:
                logger.warning("Parent branch sync failed for %s: %s", ctx.task_id, synced.error)

        result = ops.create_worktree(ctx.task_id, ctx.base_branch)
        if not result.success:
            message = result.error or f"Failed to create worktree for {ctx.task_id}"
            category = "branch_exists" if message.startswith("Branch ") else None
            _fail(message, category)
        scope.outputs["worktree"] = WorktreeRef(path=result.path, branch=result.branch, base_branch=result.base_branch)

    def init_state(scope: ActionScope) -> None:
        ctx = scope.context
        existing = store.get(ctx.task_id)
        if existing is not None and existing.status == scope.next_state:
            scope.outputs["record"] = existing
            return
        base = existing or AgentRecord(task_id=ctx.task_id)
        record = replace(base, worktree=_worktree_ref(scope)).advance(
            scope.event, scope.next_state, worktree_state=scope.worktree_state or WorktreeState.CLEAN
        )
        store.save(record)
        scope.outputs["record"] = record

    def spawn_process(scope: ActionScope) -> None:
        ctx = scope.context
        current = ctx.record.pid if ctx.record else None
        if current is not None and psutil.pid_exists(current):
            logger.info("Agent for %s already running (pid %d)", ctx.task_id, current)
            scope.outputs["pid"] = current
            return
        pid = supervisor.start(ctx.task_id, ctx.worktree_path)
        logger.info("Started agent for %s (pid %d)", ctx.task_id, pid)
        scope.outputs["pid"] = pid

    def kill_process(scope: ActionScope) -> None:
        ctx = scope.context
        pid = ctx.record.pid if ctx.record else None
        if pid is None:
            return
        if psutil.pid_exists(pid):
            supervisor.kill(pid)
            logger.info("Killed agent for %s (pid %d)", ctx.task_id, pid)
        scope.outputs["pid"] = None

    def remove_worktree(scope: ActionScope) -> None:
        ctx = scope.context
        if not ctx.worktree_path.exists():
            ops.prune_worktrees()
            return
        result = ops.remove_worktree(ctx.task_id, force=True)
        if not result.success:
            _fail(result.error or f"Failed to remove worktree {ctx.worktree_path}")

    def delete_branch(scope: ActionScope) -> None:
        ctx = scope.context
        if not ops.branch_exists(ctx.branch):
            return
        if not ops.delete_branch(ctx.branch, force=True):
            _fail(f"Failed to delete branch {ctx.branch}", "branch_exists")

    def update_state(scope: ActionScope) -> None:
        record = _record(scope)
        if "pid" in scope.outputs:
            pid = scope.outputs["pid"]
            record = replace(record, pid=pid if isinstance(pid, int) else None)
        if "worktree" in scope.outputs:
            record = replace(record, worktree=_worktree_ref(scope))
        if "return_ref" in scope.outputs:
            ref = scope.outputs["return_ref"]
            record = replace(record, return_ref=ref if isinstance(ref, str) else None)
        record = record.advance(scope.event, scope.next_state, worktree_state=scope.worktree_state)
        store.save(record)
        scope.outputs["record"] = record

    def start_merge(scope: ActionScope) -> None:
        ctx = scope.context
        in_progress = any(
            ops.merge_in_progress(cwd) or ops.rebase_in_progress(cwd) or ops.squash_pending(cwd)
            for cwd in _operation_dirs(ctx)
        )
        if in_progress:
            files = [path for cwd in _operation_dirs(ctx) for path in ops.unmerged_files(cwd)]
            logger.info("Merge for %s already in progress", ctx.task_id)
            scope.outputs["merge"] = MergeResult(
                success=False,
                source=ctx.branch,
                target=ctx.base_branch,
                strategy=_merge_strategy(ctx),
                conflict=True,
                conflict_files=tuple(files),
            )
            return
        if not ops.branch_exists(ctx.branch):
            raise StaleReference("branch", ctx.branch)
        if ctx.branching is not None and not ops.branch_exists(ctx.base_branch):
            ops.ensure_branch_hierarchy(ctx.branching)
        result = _merge(scope)
        if result.conflict and result.original_ref:
            scope.outputs["return_ref"] = result.original_ref

    def abort_merge(scope: ActionScope) -> None:
        aborted = [kind for kind in (ops.abort_operation(cwd) for cwd in _operation_dirs(scope.context)) if kind]
        scope.outputs["aborted"] = tuple(aborted)
        _return_to_original(scope)

    def commit_resolution(scope: ActionScope) -> None:
        ctx = scope.context
        for cwd in _operation_dirs(ctx):
            ops.commit_resolution(cwd, ctx.message)

    def continue_merge(scope: ActionScope) -> None:
        ctx = scope.context
        continued = [ops.continue_operation(cwd, ctx.message) for cwd in _operation_dirs(ctx)]
        if "rebase" in continued:
            # The rebase only linearised the branch; the fast-forward is still pending.
            if not _merge(scope).conflict:
                _return_to_original(scope)
            return
        scope.outputs["merge"] = MergeResult(
            success=True,
            source=ctx.branch,
            target=ctx.base_branch,
            strategy=_merge_strategy(ctx),
            merged=any(continued) or ops.is_ancestor(ctx.branch, ctx.base_branch),
        )
        _return_to_original(scope)

    return {
        ActionId.CREATE_WORKTREE: create_worktree,
        ActionId.INIT_STATE: init_state,
        ActionId.SPAWN_PROCESS: spawn_process,
        ActionId.KILL_PROCESS: kill_process,
        ActionId.REMOVE_WORKTREE: remove_worktree,
        ActionId.DELETE_BRANCH: delete_branch,
        ActionId.UPDATE_STATE: update_state,
        ActionId.START_MERGE: start_merge,
        ActionId.ABORT_MERGE: abort_merge,
        ActionId.COMMIT_RESOLUTION: commit_resolution,
        ActionId.CONTINUE_MERGE: continue_merge,
    }
