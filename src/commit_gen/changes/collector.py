"""
Collection of pending changes from the working tree.

:func:`collect_changes` asks the :class:`~commit_gen.vcs.git_client.GitClient`
for the porcelain status, drops files matching the exclude patterns,
reads one diff per remaining file and counts its added and removed
lines. The result is an immutable :class:`~commit_gen.models.ChangeSet`.
"""

from __future__ import annotations

import fnmatch
import logging
from pathlib import PurePosixPath
from typing import Iterable, List, Tuple

from commit_gen.models import ChangeKind, ChangeSet, FileChange
from commit_gen.vcs.git_client import GitClient, GitError, StatusEntry


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


class CollectionError(Exception):
    """Raised when the repository cannot be queried for changes."""

    pass


class EmptyChangeSetError(CollectionError):
    """Raised when there is nothing to analyze."""

    pass


_KIND_BY_LETTER = {
    "A": ChangeKind.ADDED,
    "C": ChangeKind.ADDED,
    "?": ChangeKind.ADDED,
    "M": ChangeKind.MODIFIED,
    "T": ChangeKind.MODIFIED,
    "D": ChangeKind.DELETED,
    "R": ChangeKind.RENAMED,
}


def matches_exclude(path: str, patterns: Iterable[str]) -> bool:
    """Return True if ``path`` matches any exclude pattern.

    Patterns are globs matched against the full path and against the
    file name. A pattern ending in ``/`` names a directory and matches
    every path below any directory of that name.
    """
    pure = PurePosixPath(path)
    for pattern in patterns:
        if pattern.endswith("/"):
            directory = pattern.rstrip("/")
            if not directory:
                continue
            if "/" in directory:
                if path == directory or path.startswith(directory + "/"):
                    return True
            elif any(fnmatch.fnmatch(part, directory) for part in pure.parts[:-1]):
                return True
            continue
        if path == pattern or fnmatch.fnmatch(path, pattern) or fnmatch.fnmatch(pure.name, pattern):
            return True
    return False


def strip_diff_headers(diff: str) -> str:
    """Drop the per-file header lines (``diff --git``, ``index``, ``---``,
    ``+++``) and keep the hunks.

    Diffs without hunks (binary files, mode changes) keep only their
    ``Binary files ...`` line, if any.
    """
    lines = diff.splitlines()
    for i, line in enumerate(lines):
        if line.startswith("@@"):
            return "\n".join(lines[i:])
    return "\n".join(line for line in lines if line.startswith("Binary files"))


def count_changed_lines(diff: str) -> Tuple[int, int]:
    """Return ``(added, removed)`` for a header-less diff."""
    added = removed = 0
    for line in diff.splitlines():
        if line.startswith("+"):
            added += 1
        elif line.startswith("-"):
            removed += 1
    return added, removed


def _build_change(client: GitClient, entry: StatusEntry, staged: bool) -> FileChange:
    letter = entry.index if staged else entry.worktree
    kind = _KIND_BY_LETTER.get(letter, ChangeKind.MODIFIED)
    untracked = not staged and entry.is_untracked
    old_path = entry.old_path if kind is ChangeKind.RENAMED else None
    raw = client.get_diff(entry.path, staged=staged, untracked=untracked, old_path=old_path)
    diff = strip_diff_headers(raw)
    added, removed = count_changed_lines(diff)
    return FileChange(
        path=entry.path,
        kind=kind,
        added=added,
        removed=removed,
        diff=diff,
        staged=staged,
        old_path=old_path,
    )


def collect_changes(
    client: GitClient,
    exclude_patterns: Iterable[str] = (),
    include_staged: bool = True,
    include_unstaged: bool = True,
) -> ChangeSet:
    """Collect the pending changes of the repository.

    Parameters
    ----------
    client : GitClient
        Client bound to the repository root.
    exclude_patterns : Iterable[str], optional
        Glob patterns of files to ignore.
    include_staged, include_unstaged : bool, optional
        Which side of the index to look at. A file with both staged and
        unstaged modifications is described by its staged diff.

    Returns
    -------
    ChangeSet
        Every changed file not matching an exclude pattern, in status
        order.

    Raises
    ------
    EmptyChangeSetError
        If both include flags are off, or no changed file remains.
    CollectionError
        If git cannot be queried.
    """
    if not include_staged and not include_unstaged:
        raise EmptyChangeSetError(
            "Nothing to analyze: both staged and unstaged changes are disabled "
            "(git.include_staged and git.include_unstaged are false)"
        )
    patterns: Tuple[str, ...] = tuple(exclude_patterns)

    try:
        entries = client.status_entries()
    except GitError as exc:
        raise CollectionError(f"Failed to read repository status: {exc}") from exc

    files: List[FileChange] = []
    staged_paths: List[str] = []
    unstaged_paths: List[str] = []
    skipped = 0
    for entry in entries:
        use_staged = include_staged and entry.has_staged
        use_unstaged = include_unstaged and entry.has_unstaged
        if not (use_staged or use_unstaged):
            continue
        if matches_exclude(entry.path, patterns):
            skipped += 1
            continue
        try:
            change = _build_change(client, entry, staged=use_staged)
        except GitError as exc:
            raise CollectionError(f"Failed to read diff for '{entry.path}': {exc}") from exc
        files.append(change)
        if use_staged:
            staged_paths.append(entry.path)
        if use_unstaged:
            unstaged_paths.append(entry.path)

    logger.debug(
        "Collected %d changed file(s), %d excluded by pattern", len(files), skipped
    )
    if not files:
        raise EmptyChangeSetError("No changes to commit")
    return ChangeSet(
        files=tuple(files),
        staged_paths=tuple(staged_paths),
        unstaged_paths=tuple(unstaged_paths),
    )
