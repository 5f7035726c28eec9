"""
Diff formatting for prompts.

See :mod:`commit_gen.formatting.diff_formatter`.
"""

from .diff_formatter import (  # noqa: F401
    build_changes_summary,
    build_changes_text,
    format_diff,
    format_summary,
)
