"""
Version control integration.

commit_gen only talks to Git; :class:`GitClient` lists local changes,
reads diffs and creates the final commit.
"""

from .git_client import GitClient, GitError, StatusEntry  # noqa: F401
