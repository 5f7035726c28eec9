"""
Data models shared by the commit-gen pipeline.

A single run produces one :class:`ChangeSet` made of immutable
:class:`FileChange` entries, narrows it down to :class:`SelectedFiles`,
turns the model's answer into a :class:`CommitDraft` and finally a
:class:`FinalCommit` whose ``message`` is handed to git.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterator, Optional, Tuple


class ValidationError(Exception):
    """Raised when a headline or a file selection violates its bounds."""

    pass


class ChangeKind(str, enum.Enum):
    """Kind of change recorded for a file."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class FileChange:
    """A single changed file and its diff.

    Attributes
    ----------
    path : str
        Path relative to the repository root (the new path for renames).
    kind : ChangeKind
        What happened to the file.
    added : int
        Number of added lines in ``diff``.
    removed : int
        Number of removed lines in ``diff``.
    diff : str
        Diff text with the per-file headers stripped.
    staged : bool
        True if ``diff`` describes the index rather than the worktree.
    old_path : str, optional
        Previous path of a renamed file.
    """

    path: str
    kind: ChangeKind
    added: int = 0
    removed: int = 0
    diff: str = ""
    staged: bool = False
    old_path: Optional[str] = None

    @property
    def changed_lines(self) -> int:
        return self.added + self.removed

    @property
    def line_count(self) -> int:
        return len(self.diff.splitlines())


@dataclass(frozen=True)
class ChangeSet:
    """Ordered collection of file changes for one invocation."""

    files: Tuple[FileChange, ...] = ()
    staged_paths: Tuple[str, ...] = ()
    unstaged_paths: Tuple[str, ...] = ()
    _by_path: Dict[str, FileChange] = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_by_path", {change.path: change for change in self.files})

    def __iter__(self) -> Iterator[FileChange]:
        return iter(self.files)

    def __len__(self) -> int:
        return len(self.files)

    @property
    def is_empty(self) -> bool:
        return not self.files

    @property
    def paths(self) -> Tuple[str, ...]:
        return tuple(change.path for change in self.files)

    @property
    def total_files(self) -> int:
        return len(self.files)

    @property
    def total_added(self) -> int:
        return sum(change.added for change in self.files)

    @property
    def total_removed(self) -> int:
        return sum(change.removed for change in self.files)

    def get(self, path: str) -> Optional[FileChange]:
        return self._by_path.get(path)


@dataclass(frozen=True)
class SelectedFiles:
    """Ordered selection of paths and where it came from.

    ``source`` is ``"model"`` when the language model's answer was
    usable and ``"fallback"`` when the deterministic ranking was used.
    """

    paths: Tuple[str, ...]
    source: str = "fallback"

    def __iter__(self) -> Iterator[str]:
        return iter(self.paths)

    def __len__(self) -> int:
        return len(self.paths)

    def __contains__(self, path: object) -> bool:
        return path in self.paths


@dataclass(frozen=True)
class CommitDraft:
    """Headline and bullet points parsed from the commit response."""

    headline: str
    bullets: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CommitDates:
    """Author and committer timestamps; ``None`` means "now"."""

    author: Optional[datetime] = None
    committer: Optional[datetime] = None


@dataclass(frozen=True)
class FinalCommit:
    """The commit as it will be written.

    ``selected_files`` is informational only and never part of
    :attr:`message`.
    """

    headline: str
    bullets: Tuple[str, ...] = ()
    references: Tuple[str, ...] = ()
    dates: CommitDates = field(default_factory=CommitDates)
    selected_files: Tuple[str, ...] = ()

    @property
    def body(self) -> str:
        return "\n".join(f"- {bullet}" for bullet in self.bullets)

    @property
    def message(self) -> str:
        parts = [self.headline]
        if self.bullets:
            parts.append(self.body)
        if self.references:
            parts.append("\n".join(self.references))
        return "\n\n".join(parts)
