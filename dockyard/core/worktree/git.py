"""Git command execution for worktree orchestration.

All git access goes through `GitRunner.run()`, which passes an argument array
to GitPython's command executor (no shell, no string interpolation) and
converts `GitCommandError` into dockyard's own error types.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Mapping, Sequence, cast

from git.cmd import Git
from git.exc import GitCommandError, GitCommandNotFound

from dockyard.core.errors import GitCommandFailed, LockConflict
from dockyard.logging_config import get_logger

logger = get_logger(__name__)

_STREAM_PREFIX = re.compile(r"^\s*std(?:out|err): '(.*)'\s*$", re.DOTALL)
_LOCK_FILE = re.compile(r"Unable to create '([^']+\.lock)'|'([^']+\.lock)': File exists")


def _clean_stream(value: object) -> str:
    """Return captured git output without GitPython's `stderr: '...'` decoration."""
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    text = str(value or "")
    match = _STREAM_PREFIX.match(text)
    if match:
        text = match.group(1)
    return text.strip()


def _lock_path(stderr: str) -> str | None:
    match = _LOCK_FILE.search(stderr)
    if not match:
        return None
    return match.group(1) or match.group(2)


class GitRunner:
    """Run git subcommands with fixed argument templates."""

    def __init__(self, *, env: Mapping[str, str] | None = None) -> None:
        self._env = dict(env or {})

    def run(self, args: Sequence[str], *, cwd: Path, env: Mapping[str, str] | None = None) -> str:
        """Run `git <args>` in `cwd` and return stdout.

        Raises:
            GitCommandFailed: git exited non-zero, could not be started, or `cwd` is missing.
            LockConflict: git refused to run because a `.lock` file exists.
        """
        argv = list(args)
        if not Path(cwd).is_dir():
            raise GitCommandFailed(argv, None, stderr=f"No such directory: {cwd}")

        merged_env = {**self._env, **(env or {})}
        try:
            output = Git(str(cwd)).execute(["git", *argv], env=merged_env or None)
        except GitCommandNotFound as exc:
            error = GitCommandFailed(argv, None, stderr=_clean_stream(exc.stderr) or "git executable not found")
            error.category = "no_git"
            raise error from exc
        except GitCommandError as exc:
            stderr = _clean_stream(exc.stderr)
            stdout = _clean_stream(exc.stdout)
            status = exc.status if isinstance(exc.status, int) else None
            lock_path = _lock_path(stderr)
            if lock_path:
                raise LockConflict(argv, status, stderr, stdout, lock_path=lock_path) from exc
            raise GitCommandFailed(argv, status, stderr, stdout) from exc
        return cast(str, output)

    def try_run(self, args: Sequence[str], *, cwd: Path) -> str | None:
        """Run a read-only query; return None instead of raising on failure."""
        try:
            return self.run(args, cwd=cwd)
        except GitCommandFailed as exc:
            logger.debug("git query failed in %s: %s", cwd, exc)
            return None

    def succeeds(self, args: Sequence[str], *, cwd: Path) -> bool:
        """Return True when `git <args>` exits zero."""
        return self.try_run(args, cwd=cwd) is not None

    def available(self) -> bool:
        """Return True when a git executable can be started."""
        try:
            Git().execute(["git", "--version"])
        except (GitCommandNotFound, GitCommandError) as exc:
            logger.debug("git unavailable: %s", exc)
            return False
        return True
