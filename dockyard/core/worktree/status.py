"""Parsing for `git status --porcelain` output."""

from __future__ import annotations

from dataclasses import dataclass

from dockyard.constants import UNMERGED_STATUS_CODES


@dataclass(frozen=True)
class StatusEntry:
    """One porcelain line: index column, worktree column, path."""

    index: str
    worktree: str
    path: str

    @property
    def code(self) -> str:
        return f"{self.index}{self.worktree}"

    @property
    def is_conflict(self) -> bool:
        return self.index == "U" or self.worktree == "U" or self.code in UNMERGED_STATUS_CODES

    @property
    def is_staged(self) -> bool:
        return not self.is_conflict and self.index not in (" ", "?")

    @property
    def is_uncommitted(self) -> bool:
        return self.worktree != " " or self.index == "?"


def parse_porcelain(output: str) -> list[StatusEntry]:
    entries: list[StatusEntry] = []
    for line in output.splitlines():
        if len(line) < 4:
            continue
        path = line[3:]
        if " -> " in path:
            path = path.split(" -> ", 1)[1]
        entries.append(StatusEntry(index=line[0], worktree=line[1], path=path))
    return entries
