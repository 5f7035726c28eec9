"""
File selection heuristics.

See :mod:`commit_gen.selection.scorer` for the ranking rules.
"""

from .scorer import (  # noqa: F401
    ScoredFile,
    rank_candidates,
    select_fallback,
    validate_selection,
)
