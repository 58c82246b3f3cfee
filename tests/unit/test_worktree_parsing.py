"""Unit tests for git porcelain parsers."""

from pathlib import Path

from dockyard.core.worktree.models import Divergence
from dockyard.core.worktree.ops import _parse_left_right, parse_worktree_list
from dockyard.core.worktree.status import parse_porcelain

WORKTREE_LIST = """worktree /repo
HEAD 1111111111111111111111111111111111111111
branch refs/heads/main

worktree /wt/T001
HEAD 2222222222222222222222222222222222222222
branch refs/heads/task/T001

worktree /wt/scratch
HEAD 3333333333333333333333333333333333333333
detached

worktree /wt/feature
HEAD 4444444444444444444444444444444444444444
branch refs/heads/task/feature
locked
"""


def test_parse_worktree_list() -> None:
    worktrees = parse_worktree_list(WORKTREE_LIST)

    assert [w.path for w in worktrees] == [Path("/repo"), Path("/wt/T001"), Path("/wt/scratch"), Path("/wt/feature")]
    assert worktrees[0].branch == "main"
    assert worktrees[0].task_id is None
    assert worktrees[1].branch == "task/T001"
    assert worktrees[1].task_id == "T001"
    assert worktrees[1].head == "2" * 40
    assert worktrees[2].detached
    assert worktrees[2].branch is None
    assert worktrees[3].task_id is None


def test_parse_worktree_list_bare_repository() -> None:
    worktrees = parse_worktree_list("worktree /srv/repo.git\nbare\n")

    assert len(worktrees) == 1
    assert worktrees[0].bare


def test_parse_porcelain_classification() -> None:
    output = "\n".join(
        [
            "UU conflict.py",
            "AA both_added.py",
            "DD both_deleted.py",
            "M  staged.py",
            " M modified.py",
            "MM staged_and_modified.py",
            "?? untracked.py",
            "R  old.py -> renamed.py",
        ]
    )

    entries = {entry.path: entry for entry in parse_porcelain(output)}

    assert {p for p, e in entries.items() if e.is_conflict} == {"conflict.py", "both_added.py", "both_deleted.py"}
    assert {p for p, e in entries.items() if e.is_staged} == {"staged.py", "staged_and_modified.py", "renamed.py"}
    assert {p for p, e in entries.items() if e.is_uncommitted} == {
        "conflict.py",
        "both_added.py",
        "both_deleted.py",
        "modified.py",
        "staged_and_modified.py",
        "untracked.py",
    }


def test_parse_porcelain_empty() -> None:
    assert parse_porcelain("") == []


def test_parse_left_right_counts() -> None:
    assert _parse_left_right("3\t5") == Divergence(ahead=5, behind=3)
    assert _parse_left_right("0\t0") == Divergence()
    assert _parse_left_right(None) == Divergence()
    assert _parse_left_right("garbage") == Divergence()
