"""End-to-end lifecycle tests: state machine wired to real git worktrees."""

from pathlib import Path

import pytest

from dockyard.core.errors import ActionFailed, GuardFailed, InvalidTransition
from dockyard.core.lifecycle.context import TransitionContext
from dockyard.core.lifecycle.machine import AgentStateMachine, TransitionResult, build_state_machine
from dockyard.core.lifecycle.records import AgentRecord
from dockyard.core.lifecycle.states import AgentEvent, AgentState, WorktreeState
from dockyard.core.worktree.naming import BranchingContext
from dockyard.core.worktree.ops import WorktreeOps


class MemoryStore:
    def __init__(self) -> None:
        self.records: dict[str, AgentRecord] = {}

    def get(self, task_id: str) -> AgentRecord | None:
        return self.records.get(task_id)

    def save(self, record: AgentRecord) -> None:
        self.records[record.task_id] = record


class FlakyStore(MemoryStore):
    """Fails the first `failures` saves."""

    def __init__(self, failures: int = 1) -> None:
        super().__init__()
        self.failures = failures

    def save(self, record: AgentRecord) -> None:
        if self.failures:
            self.failures -= 1
            raise OSError("disk full")
        super().save(record)


class FakeSupervisor:
    def __init__(self) -> None:
        self.started: list[str] = []
        self.killed: list[int] = []

    def start(self, task_id: str, worktree_path: Path) -> int:
        self.started.append(task_id)
        return 4_000_000 + len(self.started)

    def kill(self, pid: int) -> None:
        self.killed.append(pid)


class BrokenSupervisor(FakeSupervisor):
    def start(self, task_id: str, worktree_path: Path) -> int:
        raise RuntimeError("agent binary refused to start")


class Harness:
    def __init__(self, repo, ops: WorktreeOps, store: MemoryStore | None = None, supervisor=None) -> None:
        self.repo = repo
        self.ops = ops
        self.store = store or MemoryStore()
        self.supervisor = supervisor or FakeSupervisor()
        self.machine: AgentStateMachine = build_state_machine(ops, self.store, self.supervisor)

    @property
    def record(self) -> AgentRecord:
        return self.store.records["T001"]

    def apply(self, event: AgentEvent, **overrides) -> TransitionResult:
        record = self.store.get("T001")
        state = record.status if record else AgentState.IDLE
        context = TransitionContext.for_task(self.ops, "T001", record=record, **overrides)
        return self.machine.apply(state, event, context)

    def run_to_completed(self, content: str = "feature\n", name: str = "feature.txt") -> Path:
        assert self.apply(AgentEvent.SPAWN).success
        assert self.apply(AgentEvent.START).success
        path = self.record.worktree.path
        self.repo.commit_file(name, content, "T001 work", cwd=path)
        assert self.apply(AgentEvent.COMPLETE).success
        return path


@pytest.fixture
def harness(repo, ops: WorktreeOps) -> Harness:
    return Harness(repo, ops)


def test_spawn_creates_worktree_and_record(harness: Harness) -> None:
    result = harness.apply(AgentEvent.SPAWN)

    assert result.success
    assert result.next_state == AgentState.DISPATCHED
    record = harness.record
    assert record.status == AgentState.DISPATCHED
    assert record.worktree_state == WorktreeState.CLEAN
    assert record.worktree.branch == "task/T001"
    assert record.worktree.path.is_dir()
    assert harness.ops.branch_exists("task/T001")


def test_spawn_into_occupied_path_is_blocked_by_guard(harness: Harness) -> None:
    harness.ops.get_worktree_path("T001").mkdir(parents=True)

    result = harness.apply(AgentEvent.SPAWN)

    assert not result.success
    assert result.next_state == AgentState.IDLE
    assert isinstance(result.error, GuardFailed)
    assert result.error.name == "no_existing_worktree"
    assert "git worktree prune" in result.remediation
    assert harness.store.records == {}


def test_spawn_can_be_retried_after_state_write_fails(repo, ops: WorktreeOps) -> None:
    harness = Harness(repo, ops, store=FlakyStore())

    first = harness.apply(AgentEvent.SPAWN)
    assert not first.success
    assert isinstance(first.error, ActionFailed)
    assert first.error.name == "init_state"
    assert first.error.completed == ("create_worktree",)
    assert harness.store.records == {}

    second = harness.apply(AgentEvent.SPAWN)

    assert second.success
    assert harness.record.status == AgentState.DISPATCHED
    assert harness.record.worktree.branch == "task/T001"
    assert [info.branch for info in ops.list_agent_worktrees()] == ["task/T001"]


def test_supervisor_error_is_reported_as_action_failure(repo, ops: WorktreeOps) -> None:
    harness = Harness(repo, ops, supervisor=BrokenSupervisor())
    assert harness.apply(AgentEvent.SPAWN).success

    result = harness.apply(AgentEvent.START)

    assert not result.success
    assert isinstance(result.error, ActionFailed)
    assert result.error.name == "spawn_process"
    assert isinstance(result.error.cause, RuntimeError)
    assert harness.record.status == AgentState.DISPATCHED
    assert harness.record.pid is None


def test_invalid_event_leaves_state_unchanged(harness: Harness) -> None:
    result = harness.apply(AgentEvent.MERGE)

    assert not result.success
    assert result.next_state == AgentState.IDLE
    assert isinstance(result.error, InvalidTransition)
    assert harness.store.records == {}


def test_spawn_in_epic_mode_builds_hierarchy(harness: Harness) -> None:
    branching = BranchingContext(prd_id="PRD-001", epic_id="E001", branching="epic")

    result = harness.apply(AgentEvent.SPAWN, branching=branching)

    assert result.success
    assert harness.record.worktree.base_branch == "epic/E001"
    assert harness.ops.branch_exists("prd/PRD-001")
    assert harness.ops.branch_exists("epic/E001")


def test_full_lifecycle_squash_merge(harness: Harness) -> None:
    path = harness.run_to_completed()
    assert harness.record.worktree_state == WorktreeState.COMMITTED
    assert harness.record.pid == 4_000_001

    merge = harness.apply(AgentEvent.MERGE)
    assert merge.success
    assert merge.outputs["merge"].merged
    assert harness.record.status == AgentState.MERGING

    done = harness.apply(AgentEvent.MERGE_OK)
    assert done.success
    assert harness.record.status == AgentState.MERGED
    assert harness.record.worktree_state == WorktreeState.REMOVED
    assert not path.exists()
    assert not harness.ops.branch_exists("task/T001")
    assert (harness.repo.root / "feature.txt").read_text(encoding="utf-8") == "feature\n"
    assert harness.machine.valid_events(AgentState.MERGED) == []
    assert [entry.event for entry in harness.record.history] == [
        AgentEvent.SPAWN,
        AgentEvent.START,
        AgentEvent.COMPLETE,
        AgentEvent.MERGE,
        AgentEvent.MERGE_OK,
    ]


def test_merge_without_commits_is_blocked(harness: Harness) -> None:
    harness.apply(AgentEvent.SPAWN)
    harness.apply(AgentEvent.START)
    harness.apply(AgentEvent.COMPLETE)

    result = harness.apply(AgentEvent.MERGE)

    assert not result.success
    assert result.error.name == "has_commits"
    assert harness.record.status == AgentState.COMPLETED


def test_merge_with_dirty_worktree_is_blocked(harness: Harness) -> None:
    path = harness.run_to_completed()
    (path / "stray.txt").write_text("x\n", encoding="utf-8")

    result = harness.apply(AgentEvent.MERGE)

    assert not result.success
    assert result.error.name == "worktree_clean"
    assert result.error.category == "dirty_worktree"


def test_conflict_resolve_and_merge(harness: Harness) -> None:
    path = harness.run_to_completed(content="task version\n", name="README.md")
    harness.repo.commit_file("README.md", "main version\n", "main edit")

    merge = harness.apply(AgentEvent.MERGE)
    assert merge.success
    assert merge.outputs["merge"].conflict
    assert harness.apply(AgentEvent.MERGE_CONFLICT).success
    assert harness.record.status == AgentState.CONFLICT
    assert harness.record.worktree_state == WorktreeState.CONFLICT

    blocked = harness.apply(AgentEvent.RESOLVE)
    assert not blocked.success
    assert blocked.error.name == "conflict_resolved"

    (harness.repo.root / "README.md").write_text("both versions\n", encoding="utf-8")
    harness.repo.git("add", "README.md")

    resolved = harness.apply(AgentEvent.RESOLVE, message="T001: resolved")
    assert resolved.success
    assert resolved.outputs["merge"].merged
    assert harness.record.status == AgentState.MERGING
    assert harness.repo.git("log", "-1", "--format=%s", "main") == "T001: resolved"

    assert harness.apply(AgentEvent.MERGE_OK).success
    assert not path.exists()
    assert harness.record.status == AgentState.MERGED


def test_conflict_abort_returns_to_completed(harness: Harness) -> None:
    harness.run_to_completed(content="task version\n", name="README.md")
    harness.repo.commit_file("README.md", "main version\n", "main edit")
    harness.apply(AgentEvent.MERGE)
    harness.apply(AgentEvent.MERGE_CONFLICT)

    result = harness.apply(AgentEvent.ABORT)

    assert result.success
    assert result.outputs["aborted"] == ("squash",)
    assert harness.record.status == AgentState.COMPLETED
    assert harness.record.worktree_state == WorktreeState.COMMITTED
    assert harness.ops.is_clean() is True
    assert (harness.repo.root / "README.md").read_text(encoding="utf-8") == "main version\n"


def test_reject_from_dispatched_removes_worktree(harness: Harness) -> None:
    harness.apply(AgentEvent.SPAWN)
    path = harness.record.worktree.path

    result = harness.apply(AgentEvent.REJECT)

    assert result.success
    assert harness.record.status == AgentState.REJECTED
    assert harness.record.worktree_state == WorktreeState.REMOVED
    assert not path.exists()
    assert not harness.ops.branch_exists("task/T001")


def test_kill_then_cleanup(harness: Harness) -> None:
    harness.apply(AgentEvent.SPAWN)
    harness.apply(AgentEvent.START)

    killed = harness.apply(AgentEvent.KILL)
    assert killed.success
    assert harness.record.status == AgentState.KILLED
    assert harness.record.pid is None

    cleaned = harness.apply(AgentEvent.CLEANUP)
    assert cleaned.success
    assert harness.record.status == AgentState.REJECTED
    assert harness.ops.list_agent_worktrees() == []


def test_reject_after_completion_discards_work(harness: Harness) -> None:
    path = harness.run_to_completed()

    result = harness.apply(AgentEvent.REJECT)

    assert result.success
    assert harness.record.status == AgentState.REJECTED
    assert harness.record.worktree_state == WorktreeState.REMOVED
    assert not path.exists()
    assert not harness.ops.branch_exists("task/T001")
    assert harness.ops.list_agent_worktrees() == []
    assert not (harness.repo.root / "feature.txt").exists()


def test_failed_task_can_still_be_merged(harness: Harness) -> None:
    assert harness.apply(AgentEvent.SPAWN).success
    assert harness.apply(AgentEvent.START).success
    path = harness.record.worktree.path
    harness.repo.commit_file("partial.txt", "partial\n", "T001 partial work", cwd=path)
    assert harness.apply(AgentEvent.FAIL).success
    assert harness.record.status == AgentState.FAILED

    merge = harness.apply(AgentEvent.MERGE)
    assert merge.success
    assert merge.outputs["merge"].merged
    assert harness.record.status == AgentState.MERGING

    assert harness.apply(AgentEvent.MERGE_OK).success
    assert harness.record.status == AgentState.MERGED
    assert not path.exists()
    assert (harness.repo.root / "partial.txt").read_text(encoding="utf-8") == "partial\n"


def test_conflict_abort_returns_root_to_original_branch(harness: Harness) -> None:
    branching = BranchingContext(prd_id="P1", branching="prd")
    assert harness.apply(AgentEvent.SPAWN, branching=branching).success
    assert harness.apply(AgentEvent.START).success
    harness.repo.commit_file("README.md", "task version\n", "T001 work", cwd=harness.record.worktree.path)
    assert harness.apply(AgentEvent.COMPLETE).success
    harness.repo.git("checkout", "-q", "prd/P1")
    harness.repo.commit_file("README.md", "prd version\n", "prd edit")
    harness.repo.git("checkout", "-q", "main")

    merge = harness.apply(AgentEvent.MERGE)
    assert merge.outputs["merge"].conflict
    assert harness.repo.current_branch() == "prd/P1"
    assert harness.record.return_ref == "main"
    assert harness.apply(AgentEvent.MERGE_CONFLICT).success

    result = harness.apply(AgentEvent.ABORT)

    assert result.success
    assert harness.record.status == AgentState.COMPLETED
    assert harness.record.return_ref is None
    assert harness.repo.current_branch() == "main"
    assert harness.ops.is_clean() is True
