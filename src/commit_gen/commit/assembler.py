"""
Assembly of the final commit message.

:func:`assemble_commit` is a pure function: it decorates the headline
(Conventional Commit prefix, emoji), enforces the configured headline
length, renders the description as ``- `` bullets and appends issue and
pull request references.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from commit_gen.commit.conventional import apply_conventional_prefix, apply_emoji
from commit_gen.config.settings import CommitConfig
from commit_gen.models import CommitDates, CommitDraft, FinalCommit, ValidationError


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


TRUNCATION_MARKER = "..."


def _single_line(text: str) -> str:
    return " ".join(text.split())


def clean_headline(headline: str) -> str:
    """Collapse the headline onto one line and drop wrapping quotes."""
    text = _single_line(headline)
    while len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'`":
        text = text[1:-1].strip()
    return text


def truncate_headline(headline: str, max_length: int) -> str:
    """Cut ``headline`` to ``max_length`` characters, ending in a marker."""
    if len(headline) <= max_length:
        return headline
    keep = max(max_length - len(TRUNCATION_MARKER), 0)
    return headline[:keep].rstrip() + TRUNCATION_MARKER


def build_references(issue: Optional[int] = None, pr: Optional[int] = None) -> List[str]:
    references = []
    if issue is not None:
        references.append(f"Fixes issue #{issue}")
    if pr is not None:
        references.append(f"Related to PR #{pr}")
    return references


def assemble_commit(
    draft: CommitDraft,
    config: CommitConfig,
    selected_files: Iterable[str] = (),
    dates: Optional[CommitDates] = None,
    issue: Optional[int] = None,
    pr: Optional[int] = None,
) -> FinalCommit:
    """Combine a draft and its metadata into a :class:`FinalCommit`.

    Raises
    ------
    ValidationError
        If the headline is empty.
    """
    selected = tuple(selected_files)
    headline = clean_headline(draft.headline)
    if not headline:
        raise ValidationError("Commit headline is empty")

    if config.conventional:
        headline = apply_conventional_prefix(headline, selected)
    if config.emoji:
        headline = apply_emoji(headline)

    if len(headline) > config.max_message_length:
        logger.warning(
            "Headline is %d characters, truncating to %d",
            len(headline),
            config.max_message_length,
        )
        headline = truncate_headline(headline, config.max_message_length)

    bullets = tuple(b for b in (_single_line(bullet) for bullet in draft.bullets) if b)

    return FinalCommit(
        headline=headline,
        bullets=bullets,
        references=tuple(build_references(issue, pr)),
        dates=dates or CommitDates(),
        selected_files=selected,
    )
