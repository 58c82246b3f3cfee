"""Shared fixtures for integration tests: real git repositories in tmp_path."""

import subprocess
from pathlib import Path

import pytest

from dockyard.core.worktree.ops import WorktreeOps


class GitRepo:
    """Throwaway repository with `main` checked out and one initial commit."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def git(self, *args: str, cwd: Path | None = None, check: bool = True) -> str:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd or self.root,
            check=check,
            capture_output=True,
            text=True,
        )
        return result.stdout.strip()

    def commit_file(self, name: str, content: str, message: str | None = None, cwd: Path | None = None) -> str:
        target = (cwd or self.root) / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        self.git("add", name, cwd=cwd)
        self.git("commit", "-q", "-m", message or f"Update {name}", cwd=cwd)
        return self.git("rev-parse", "HEAD", cwd=cwd)

    def current_branch(self, cwd: Path | None = None) -> str:
        return self.git("rev-parse", "--abbrev-ref", "HEAD", cwd=cwd)

    def git_dir(self, cwd: Path | None = None) -> Path:
        path = Path(self.git("rev-parse", "--git-dir", cwd=cwd))
        return path if path.is_absolute() else (cwd or self.root) / path


def _init_repo(root: Path) -> GitRepo:
    root.mkdir(parents=True, exist_ok=True)
    repo = GitRepo(root)
    repo.git("init", "-q")
    repo.git("symbolic-ref", "HEAD", "refs/heads/main")
    repo.git("config", "user.email", "tests@example.com")
    repo.git("config", "user.name", "Tests")
    repo.git("config", "commit.gpgsign", "false")
    repo.commit_file("README.md", "# project\n", "init")
    return repo


@pytest.fixture
def repo(tmp_path: Path) -> GitRepo:
    return _init_repo(tmp_path / "project")


@pytest.fixture
def ops(repo: GitRepo, tmp_path: Path) -> WorktreeOps:
    return WorktreeOps(repo.root, tmp_path / "worktrees")
