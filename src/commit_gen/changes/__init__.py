"""
Change collection for commit_gen.

See :mod:`commit_gen.changes.collector` for how pending changes are read
from the working tree and filtered.
"""

from .collector import (  # noqa: F401
    CollectionError,
    EmptyChangeSetError,
    collect_changes,
    matches_exclude,
)
