"""Error taxonomy for lifecycle transitions and git orchestration.

Mutating operations report these as values (inside result objects) so the
caller can decide whether to escalate to a human; they are exceptions so that
callers who prefer to fail fast can simply raise them.
"""

from __future__ import annotations

from typing import Sequence


class DockyardError(RuntimeError):
    """Base class for all dockyard errors."""

    category: str | None = None


class InvalidTransition(DockyardError):
    """Raised when an event is not declared for the current state."""

    def __init__(self, state: str, event: str, valid_events: Sequence[str]) -> None:
        self.state = state
        self.event = event
        self.valid_events = tuple(valid_events)
        if self.valid_events:
            hint = f"Valid events: {', '.join(self.valid_events)}"
        else:
            hint = "No transitions available from this state"
        super().__init__(f"Invalid event '{event}' in state '{state}'. {hint}")


class GuardFailed(DockyardError):
    """Raised when a transition precondition does not hold."""

    def __init__(self, name: str, reason: str | None = None) -> None:
        self.name = name
        self.reason = reason or f"Guard failed: {name}"
        super().__init__(f"{name}: {self.reason}")


class ActionFailed(DockyardError):
    """Raised when a transition side effect fails part-way.

    Actions that completed before the failing one are listed in `completed`;
    they are not rolled back.
    """

    def __init__(self, name: str, cause: BaseException, completed: Sequence[str] = ()) -> None:
        self.name = name
        self.cause = cause
        self.completed = tuple(completed)
        self.category = getattr(cause, "category", None)
        super().__init__(f"{name}: {cause}")


class GitCommandFailed(DockyardError):
    """Raised when a git invocation exits non-zero."""

    def __init__(self, args: Sequence[str], status: int | None, stderr: str = "", stdout: str = "") -> None:
        self.command = tuple(args)
        self.status = status
        self.stderr = stderr.strip()
        self.stdout = stdout.strip()
        detail = self.stderr or self.stdout or f"exit status {status}"
        super().__init__(f"git {' '.join(self.command)} failed: {detail}")


class ConflictDetected(DockyardError):
    """Raised when a merge or rebase stops on conflicting files."""

    category = "merge_conflict"

    def __init__(self, message: str, files: Sequence[str] = ()) -> None:
        self.files = tuple(files)
        super().__init__(message)


class LockConflict(GitCommandFailed):
    """Raised when git refuses to run because another process holds a lock file."""

    category = "lock_conflict"

    def __init__(
        self, args: Sequence[str], status: int | None, stderr: str = "", stdout: str = "", lock_path: str | None = None
    ) -> None:
        super().__init__(args, status, stderr, stdout)
        self.lock_path = lock_path


class StaleReference(DockyardError):
    """Raised when a declared worktree or branch no longer exists on disk."""

    def __init__(self, kind: str, ref: str) -> None:
        self.kind = kind
        self.ref = ref
        self.category = "worktree_missing" if kind == "worktree" else "branch_missing"
        super().__init__(f"{kind.capitalize()} not found: {ref}")


class UnknownRegistryEntry(DockyardError, ValueError):
    """Raised at construction when a transition names an unregistered guard or action."""

    def __init__(self, kind: str, name: str) -> None:
        self.kind = kind
        self.name = name
        super().__init__(f"Unknown {kind}: {name}")
