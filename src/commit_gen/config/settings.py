"""
Immutable configuration snapshots.

These dataclasses are built once by :func:`commit_gen.config.loader.load_config`
after validation and are passed to the pipeline stages as-is.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class SamplingParams:
    """Sampling parameters for a single generation request."""

    model: str
    temperature: float
    top_p: float
    max_tokens: int


@dataclass(frozen=True)
class ModelConfig:
    name: str
    base_url: str
    port: int
    request_timeout: float
    top_p: float
    max_tokens: int
    file_selection_temperature: float
    commit_temperature: float

    @property
    def file_selection_params(self) -> SamplingParams:
        return SamplingParams(
            model=self.name,
            temperature=self.file_selection_temperature,
            top_p=self.top_p,
            max_tokens=self.max_tokens,
        )

    @property
    def commit_params(self) -> SamplingParams:
        return SamplingParams(
            model=self.name,
            temperature=self.commit_temperature,
            top_p=self.top_p,
            max_tokens=self.max_tokens,
        )


@dataclass(frozen=True)
class CommitConfig:
    conventional: bool
    emoji: bool
    max_message_length: int


@dataclass(frozen=True)
class GitConfig:
    include_staged: bool
    include_unstaged: bool
    exclude_patterns: Tuple[str, ...]


@dataclass(frozen=True)
class SelectionCriteria:
    """Heuristics used to rank and bound the file selection."""

    min_files: int
    max_files: int
    prioritize_src: bool
    exclude_tests: bool
    min_changes: int
    exclude_patterns: Tuple[str, ...] = ()


@dataclass(frozen=True)
class FormattingPolicy:
    """Line budgets for rendering diffs into prompts."""

    max_diff_lines: int
    preview_lines: int
    summary_lines: int
    indent_size: int
    show_file_stats: bool

    @property
    def indent(self) -> str:
        return " " * self.indent_size


@dataclass(frozen=True)
class PromptsConfig:
    file_selection_system: str
    file_selection_context: str
    commit_system: str
    commit_context: str


@dataclass(frozen=True)
class Config:
    """Complete, validated configuration for one run."""

    model: ModelConfig
    commit: CommitConfig
    git: GitConfig
    selection: SelectionCriteria
    formatting: FormattingPolicy
    prompts: PromptsConfig
