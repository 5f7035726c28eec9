"""
Significance scoring and file selection.

The scorer ranks changed files by a small set of path heuristics and
their changed-line count. The ranked, bounded list is offered to the
language model as the candidate set and doubles as the deterministic
selection used when the model's answer cannot be used.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Iterable, List, Tuple

from commit_gen.changes.collector import matches_exclude
from commit_gen.config.settings import SelectionCriteria
from commit_gen.models import ChangeSet, FileChange, SelectedFiles, ValidationError


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


SOURCE_DIRECTORIES = frozenset({"src", "lib", "app", "pkg", "source"})
TEST_DIRECTORIES = frozenset({"test", "tests", "__tests__", "spec", "specs"})


def is_source_path(path: str) -> bool:
    """Return True for files under a conventional source directory."""
    return any(part in SOURCE_DIRECTORIES for part in PurePosixPath(path).parts[:-1])


def is_test_path(path: str) -> bool:
    """Return True for files that look like tests."""
    pure = PurePosixPath(path)
    if any(part.lower() in TEST_DIRECTORIES for part in pure.parts[:-1]):
        return True
    name = pure.name.lower()
    stem = name.split(".", 1)[0]
    if name.startswith("test_") or stem.endswith("_test"):
        return True
    return ".test." in name or ".spec." in name


@dataclass(frozen=True)
class ScoredFile:
    """A candidate file with its computed priority."""

    change: FileChange
    priority: int

    @property
    def path(self) -> str:
        return self.change.path

    @property
    def changed_lines(self) -> int:
        return self.change.changed_lines

    def sort_key(self) -> Tuple[int, int, str]:
        return (-self.priority, -self.changed_lines, self.path)


def candidate_pool(changeset: ChangeSet, criteria: SelectionCriteria) -> List[FileChange]:
    """Return the files eligible for selection at all.

    Files matching an exclude pattern never qualify; test files are
    removed only when ``exclude_tests`` is set.
    """
    pool = []
    for change in changeset:
        if matches_exclude(change.path, criteria.exclude_patterns):
            continue
        if criteria.exclude_tests and is_test_path(change.path):
            continue
        pool.append(change)
    return pool


def score(change: FileChange, criteria: SelectionCriteria) -> ScoredFile:
    priority = 0
    if criteria.prioritize_src and is_source_path(change.path):
        priority += 1
    if is_test_path(change.path):
        priority -= 1
    return ScoredFile(change=change, priority=priority)


def rank_candidates(changeset: ChangeSet, criteria: SelectionCriteria) -> List[ScoredFile]:
    """Rank the pool and bound it to ``[min_files, max_files]``.

    Files below ``min_changes`` are only used to reach ``min_files``,
    in rank order. If the pool is smaller than ``min_files``, the whole
    pool is returned.
    """
    ranked = sorted(
        (score(change, criteria) for change in candidate_pool(changeset, criteria)),
        key=ScoredFile.sort_key,
    )
    eligible = [item for item in ranked if item.changed_lines >= criteria.min_changes]
    below = [item for item in ranked if item.changed_lines < criteria.min_changes]

    selected = eligible[: criteria.max_files]
    if len(selected) < criteria.min_files:
        needed = min(criteria.min_files, criteria.max_files) - len(selected)
        if below[:needed]:
            logger.debug(
                "Relaxing min_changes=%d to reach min_files=%d",
                criteria.min_changes,
                criteria.min_files,
            )
        selected.extend(below[:needed])
    return selected


def select_fallback(changeset: ChangeSet, criteria: SelectionCriteria) -> SelectedFiles:
    """Deterministic selection used when the model's choice is unusable."""
    return SelectedFiles(
        paths=tuple(item.path for item in rank_candidates(changeset, criteria)),
        source="fallback",
    )


def _normalize_path(raw: str) -> str:
    path = raw.strip().strip("`'\"").strip()
    if path.startswith("./"):
        path = path[2:]
    return path


def validate_selection(
    paths: Iterable[str],
    changeset: ChangeSet,
    criteria: SelectionCriteria,
) -> SelectedFiles:
    """Check a model-proposed selection against the change set.

    Paths are trimmed and de-duplicated in order; paths outside the
    candidate pool are dropped and the list is cut to ``max_files``.

    Raises
    ------
    ValidationError
        If fewer than ``min(min_files, pool size)`` usable paths remain.
    """
    pool = {change.path for change in candidate_pool(changeset, criteria)}
    chosen: List[str] = []
    for raw in paths:
        path = _normalize_path(raw)
        if path in chosen:
            continue
        if path not in pool:
            logger.debug("Ignoring selected path outside the change set: %r", raw)
            continue
        chosen.append(path)

    if len(chosen) > criteria.max_files:
        logger.debug("Model selected %d files; keeping the first %d", len(chosen), criteria.max_files)
        chosen = chosen[: criteria.max_files]

    required = min(criteria.min_files, len(pool))
    if len(chosen) < required:
        raise ValidationError(
            f"Selection has {len(chosen)} usable file(s); at least {required} required"
        )
    return SelectedFiles(paths=tuple(chosen), source="model")
