"""
Rendering of diffs into bounded prompt text.

Each file is rendered independently:

* a diff of at most ``max_diff_lines`` lines is emitted verbatim;
* a longer diff keeps its first ``preview_lines`` lines and its last
  ``max_diff_lines - preview_lines`` lines around a single elision
  marker;
* files outside the selection get a short summary of
  ``summary_lines`` lines.

All output is stripped of control characters so it cannot break the
markup template it is embedded in.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Sequence

from commit_gen.config.settings import FormattingPolicy
from commit_gen.models import ChangeSet, FileChange


_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def sanitize(text: str) -> str:
    """Normalize line endings and drop control characters except tab."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return _CONTROL_CHARS.sub("", text)


def elision_marker(skipped: int) -> str:
    return f"[...{skipped} lines skipped...]"


def format_diff(change: FileChange, policy: FormattingPolicy) -> str:
    """Render a selected file's diff, truncating it if it is too long."""
    text = sanitize(change.diff)
    lines = text.splitlines()
    if len(lines) <= policy.max_diff_lines:
        return text
    head = lines[: policy.preview_lines]
    tail_count = policy.max_diff_lines - policy.preview_lines
    tail = lines[len(lines) - tail_count:] if tail_count else []
    skipped = len(lines) - len(head) - len(tail)
    return "\n".join(head + [elision_marker(skipped)] + tail)


def format_summary(change: FileChange, policy: FormattingPolicy) -> str:
    """Render the first few lines of a file outside the selection."""
    lines = sanitize(change.diff).splitlines()
    shown = lines[: policy.summary_lines]
    hidden = len(lines) - len(shown)
    if hidden > 0 and policy.show_file_stats:
        shown.append(f"[...{hidden} additional lines not shown...]")
    return "\n".join(shown)


def describe_path(change: FileChange) -> str:
    if change.old_path:
        return f"{change.old_path} -> {change.path}"
    return change.path


def file_header(change: FileChange, policy: FormattingPolicy) -> str:
    header = f"In {sanitize(describe_path(change))} ({change.kind})"
    if policy.show_file_stats:
        header += f" - {change.changed_lines} lines changed"
    return header + ":"


def _fenced(body: str) -> List[str]:
    return ["```diff", body, "```"]


def build_changes_summary(
    changeset: ChangeSet,
    policy: FormattingPolicy,
    candidates: Optional[Sequence[FileChange]] = None,
) -> str:
    """Render the staged/unstaged listing used by both prompts.

    When ``candidates`` is given, a per-file statistics block listing
    them in order is appended; this is the candidate list shown to the
    model for file selection.
    """
    indent = policy.indent
    sections: List[str] = []
    for title, paths in (
        ("Staged changes:", changeset.staged_paths),
        ("Unstaged changes:", changeset.unstaged_paths),
    ):
        entries = [changeset.get(path) for path in paths]
        rows = [f"{indent}{sanitize(describe_path(c))} ({c.kind})" for c in entries if c is not None]
        if rows:
            sections.append("\n".join([title] + rows))

    if candidates is not None:
        rows = [
            f"{indent}{sanitize(describe_path(c))} ({c.kind}) - {c.changed_lines} lines changed"
            f" (+{c.added}/-{c.removed})"
            for c in candidates
        ]
        if rows:
            sections.append("\n".join(["Detailed file statistics:"] + rows))

    return "\n\n".join(sections)


def build_changes_text(
    changeset: ChangeSet,
    selected: Iterable[str],
    policy: FormattingPolicy,
) -> str:
    """Render the detailed diffs of the selection and a summary of the rest."""
    selected_paths = list(selected)
    out: List[str] = []

    detailed = [changeset.get(path) for path in selected_paths]
    detailed = [change for change in detailed if change is not None]
    if detailed:
        out.append("Detailed changes in selected files:")
        for change in detailed:
            out.append("")
            out.append(file_header(change, policy))
            body = format_diff(change, policy) if change.diff else "(no diff available)"
            out.extend(_fenced(body))

    others = [
        change
        for change in changeset
        if change.path not in selected_paths and change.diff
    ]
    if others:
        if out:
            out.append("")
        out.append("Other changes (summarized):")
        for change in others:
            out.append("")
            out.append(file_header(change, policy))
            out.extend(_fenced(format_summary(change, policy)))

    return "\n".join(out)
