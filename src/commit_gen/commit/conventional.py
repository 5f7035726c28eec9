"""
Heuristics for Conventional Commit types and their emoji.

The commit type is inferred from keywords in the generated headline.
When the headline gives no hint, the selected file paths are classified
instead (documentation-only or test-only changes). The rules are simple
and deterministic so they can be unit tested without a language model.
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import Iterable, Optional

from commit_gen.selection.scorer import is_test_path


COMMIT_TYPES = ("feat", "fix", "docs", "style", "refactor", "perf", "test", "build", "ci", "chore")

EMOJI = {
    "feat": "✨",
    "fix": "🐛",
    "docs": "📚",
    "style": "💄",
    "refactor": "♻️",
    "perf": "⚡",
    "test": "✅",
    "build": "📦",
    "ci": "👷",
    "chore": "🔨",
}

DEFAULT_TYPE = "chore"

_PREFIX_PATTERN = re.compile(
    r"^(?P<type>" + "|".join(COMMIT_TYPES) + r")(?:\([^)]*\))?!?:\s*",
    re.IGNORECASE,
)

# Checked in order; the first match wins.
_KEYWORD_RULES = (
    ("fix", re.compile(r"\b(fix(e[ds])?|bug|hotfix|patch|resolve[ds]?)\b", re.IGNORECASE)),
    ("feat", re.compile(r"\b(add(s|ed)?|new|feat(ure)?|introduce[ds]?|implement(s|ed)?|support)\b", re.IGNORECASE)),
    ("docs", re.compile(r"\b(docs?|documentation|readme)\b", re.IGNORECASE)),
    ("style", re.compile(r"\b(style|format(ting)?|whitespace|lint)\b", re.IGNORECASE)),
    ("refactor", re.compile(r"\b(refactor(s|ed)?|restructure[ds]?|clean ?up|simplif(y|ies|ied))\b", re.IGNORECASE)),
    ("perf", re.compile(r"\b(perf(ormance)?|speed ?up|optimi[sz]e[ds]?)\b", re.IGNORECASE)),
    ("test", re.compile(r"\btests?\b", re.IGNORECASE)),
)

_DOC_EXTENSIONS = {".md", ".rst", ".txt", ".adoc"}


def existing_type(headline: str) -> Optional[str]:
    """Return the Conventional Commit type already present in ``headline``."""
    match = _PREFIX_PATTERN.match(headline)
    return match.group("type").lower() if match else None


def classify_paths(paths: Iterable[str]) -> Optional[str]:
    """Classify a set of changed paths, if they agree on a type.

    Returns ``docs`` when every path is documentation, ``test`` when
    every path is a test, ``ci`` for workflow files, and ``None``
    otherwise.
    """
    pure_paths = [PurePosixPath(p) for p in paths]
    if not pure_paths:
        return None
    if all(p.suffix.lower() in _DOC_EXTENSIONS for p in pure_paths):
        return "docs"
    if all(is_test_path(str(p)) for p in pure_paths):
        return "test"
    if all(".github" in p.parts or p.name in {".gitlab-ci.yml", "Jenkinsfile"} for p in pure_paths):
        return "ci"
    return None


def infer_type(headline: str, paths: Iterable[str] = ()) -> str:
    """Infer the Conventional Commit type for a headline."""
    for commit_type, pattern in _KEYWORD_RULES:
        if pattern.search(headline):
            return commit_type
    return classify_paths(paths) or DEFAULT_TYPE


def apply_conventional_prefix(headline: str, paths: Iterable[str] = ()) -> str:
    """Prefix ``headline`` with ``<type>: `` unless it already has one."""
    if existing_type(headline):
        return headline
    return f"{infer_type(headline, paths)}: {headline}"


def apply_emoji(headline: str) -> str:
    """Prefix ``headline`` with the emoji of its commit type."""
    if any(headline.startswith(emoji) for emoji in EMOJI.values()):
        return headline
    commit_type = existing_type(headline) or DEFAULT_TYPE
    return f"{EMOJI.get(commit_type, EMOJI[DEFAULT_TYPE])} {headline}"
