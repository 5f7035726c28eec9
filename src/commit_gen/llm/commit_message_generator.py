"""
Commit message generation using an LLM.

This module provides the :class:`CommitMessageGenerator` class, which
drives the two sequential model calls of a run:

1. File selection: the ranked candidate files are described to the
   model, which answers with a ``<files>`` document. If the answer is
   malformed or names unusable files, the deterministic ranking from
   :mod:`commit_gen.selection.scorer` is used instead.
2. Commit message: the selected files' diffs (full or truncated) and a
   summary of the remaining files are sent, and the ``<commit>``
   answer is parsed into a :class:`~commit_gen.models.CommitDraft`.
   There is no safe substitute for free text, so a malformed answer
   raises :class:`~commit_gen.llm.response_parser.MalformedResponseError`.

Transport failures (:class:`~commit_gen.llm.ollama_client.LLMError`)
propagate to the caller in both steps; no retries are attempted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from commit_gen.config.settings import Config, SamplingParams
from commit_gen.formatting.diff_formatter import build_changes_summary, build_changes_text
from commit_gen.llm.ollama_client import OllamaClient
from commit_gen.llm.prompt_builder import Prompt, PromptBuilder
from commit_gen.llm.response_parser import (
    COMMIT_SCHEMA,
    FILE_SELECTION_SCHEMA,
    ParseResult,
    parse_or_raise,
    parse_response,
)
from commit_gen.models import ChangeSet, CommitDraft, SelectedFiles, ValidationError
from commit_gen.selection.scorer import rank_candidates, validate_selection


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


@dataclass(frozen=True)
class SelectionOutcome:
    """Result of the file-selection step.

    ``fallback_reason`` is set when ``selected`` came from the
    deterministic ranking instead of the model.
    """

    selected: SelectedFiles
    candidates: Tuple[str, ...]
    raw_response: str = ""
    parse_result: Optional[ParseResult] = None
    fallback_reason: Optional[str] = None


@dataclass(frozen=True)
class DraftOutcome:
    draft: CommitDraft
    raw_response: str
    parse_result: ParseResult


@dataclass(frozen=True)
class GenerationResult:
    selection: SelectionOutcome
    draft: DraftOutcome


def restore_stop_sequence(raw: str, stop: Sequence[str]) -> str:
    """Re-append a closing tag that the server consumed as stop sequence."""
    text = raw.rstrip()
    for tag in stop:
        opening = "<" + tag[2:].rstrip(">")
        lowered = text.lower()
        if opening.lower() in lowered and tag.lower() not in lowered:
            text = f"{text}\n{tag}"
    return text


class CommitMessageGenerator:
    """Select files and draft a commit message with the language model."""

    def __init__(self, ollama_client: OllamaClient, config: Config) -> None:
        self.ollama_client = ollama_client
        self.config = config
        self.prompt_builder = PromptBuilder(config)

    def _ask(self, prompt: Prompt, params: SamplingParams) -> str:
        logger.debug("Prompt sent to LLM:\n%s", prompt.text)
        raw = self.ollama_client.generate(
            prompt.text,
            params,
            system=prompt.system,
            stop=list(prompt.stop),
        )
        logger.debug("Raw LLM response:\n%s", raw)
        return restore_stop_sequence(raw, prompt.stop)

    def select_files(self, changeset: ChangeSet) -> SelectionOutcome:
        """Ask the model which files matter, falling back to the ranking."""
        criteria = self.config.selection
        ranked = rank_candidates(changeset, criteria)
        candidates = tuple(item.path for item in ranked)
        fallback = SelectedFiles(paths=candidates, source="fallback")
        if not ranked:
            return SelectionOutcome(
                selected=fallback,
                candidates=candidates,
                fallback_reason="no candidate files",
            )

        summary = build_changes_summary(
            changeset,
            self.config.formatting,
            candidates=[item.change for item in ranked],
        )
        prompt = self.prompt_builder.file_selection(summary)
        raw = self._ask(prompt, self.config.model.file_selection_params)

        result = parse_response(raw, FILE_SELECTION_SCHEMA)
        if not result.ok:
            reason = f"unparseable file selection: {result.detail} ({result.reason.value})"
            logger.warning("Using fallback file selection, %s", reason)
            return SelectionOutcome(fallback, candidates, raw, result, reason)
        try:
            selected = validate_selection(result.values("file"), changeset, criteria)
        except ValidationError as exc:
            reason = f"invalid file selection: {exc}"
            logger.warning("Using fallback file selection, %s", reason)
            return SelectionOutcome(fallback, candidates, raw, result, reason)

        logger.debug("Model selected files: %s", ", ".join(selected.paths))
        return SelectionOutcome(selected, candidates, raw, result)

    def generate_draft(self, changeset: ChangeSet, selected: SelectedFiles) -> DraftOutcome:
        """Ask the model for a commit message describing ``selected``.

        Raises
        ------
        MalformedResponseError
            If the response cannot be parsed into a message and a
            bulleted description.
        """
        formatting = self.config.formatting
        prompt = self.prompt_builder.commit(
            build_changes_summary(changeset, formatting),
            build_changes_text(changeset, selected, formatting),
        )
        raw = self._ask(prompt, self.config.model.commit_params)
        result = parse_or_raise(raw, COMMIT_SCHEMA)
        draft = CommitDraft(
            headline=result.first("message") or "",
            bullets=tuple(result.values("description")),
        )
        return DraftOutcome(draft=draft, raw_response=raw, parse_result=result)

    def generate(self, changeset: ChangeSet) -> GenerationResult:
        """Run both model calls in order."""
        selection = self.select_files(changeset)
        draft = self.generate_draft(changeset, selection.selected)
        return GenerationResult(selection=selection, draft=draft)
