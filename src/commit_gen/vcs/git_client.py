"""
Git client implementation for commit_gen.

This module wraps the Git operations the commit assistant needs:
reading the porcelain status, reading per-file diffs and creating the
final commit. All subprocess calls go through :meth:`GitClient._run`
so that unit tests can mock them easily.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


@dataclass(frozen=True)
class StatusEntry:
    """One entry of ``git status --porcelain``.

    ``index`` and ``worktree`` are the X and Y status letters; untracked
    files have both set to ``?``.
    """

    path: str
    index: str
    worktree: str
    old_path: Optional[str] = None

    @property
    def is_untracked(self) -> bool:
        return self.index == "?" and self.worktree == "?"

    @property
    def has_staged(self) -> bool:
        return self.index in {"A", "M", "D", "R", "C", "T"}

    @property
    def has_unstaged(self) -> bool:
        return self.is_untracked or self.worktree in {"M", "D", "T", "A"}


class GitError(Exception):
    """Raised when a Git command fails."""

    pass


class GitClient:
    """Client for interacting with a Git repository."""

    def __init__(self, repo_root: Path) -> None:
        self.repo_root = repo_root

    # ------------------------------------------------------------------
    # Static helpers
    # ------------------------------------------------------------------
    @staticmethod
    def is_repo(path: Path) -> bool:
        """Return True if the given path is the root of a Git repository."""
        return (path / ".git").exists()

    @staticmethod
    def find_repo_root(start: Path) -> Optional[Path]:
        """Find the root of the Git repository starting from ``start``.

        Walk upwards until a ``.git`` entry is found or the filesystem
        root is reached.
        """
        current = start.resolve()
        while True:
            if (current / ".git").exists():
                return current
            if current.parent == current:
                return None
            current = current.parent

    # ------------------------------------------------------------------
    # Basic Git commands
    # ------------------------------------------------------------------
    def _run(
        self,
        args: List[str],
        check: bool = True,
        env: Optional[Dict[str, str]] = None,
    ) -> subprocess.CompletedProcess:
        """Run a Git command in the repository root.

        Parameters
        ----------
        args : List[str]
            Arguments after ``git``.
        check : bool, optional
            Raise :class:`GitError` on a non-zero exit status.
        env : Dict[str, str], optional
            Extra environment variables for the command.

        Raises
        ------
        GitError
            If git cannot be started, or exits non-zero when ``check``.
        """
        full_cmd = ["git"] + args
        logger.debug("Executing Git command: %s", " ".join(full_cmd))
        run_env = None
        if env:
            run_env = dict(os.environ)
            run_env.update(env)
        try:
            result = subprocess.run(
                full_cmd,
                cwd=self.repo_root,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                env=run_env,
            )
        except OSError as exc:
            logger.error("Failed to execute git: %s", exc)
            raise GitError(f"Failed to execute git: {exc}") from exc

        if check and result.returncode != 0:
            logger.error(
                "Git command failed: %s\nSTDOUT: %s\nSTDERR: %s",
                " ".join(full_cmd),
                result.stdout,
                result.stderr,
            )
            raise GitError(result.stderr.strip() or result.stdout.strip())
        return result

    # ------------------------------------------------------------------
    # Status and diffs
    # ------------------------------------------------------------------
    def status_entries(self) -> List[StatusEntry]:
        """Return the porcelain status of the working tree.

        Untracked files are listed individually. Rename and copy entries
        carry the original path in ``old_path``.
        """
        result = self._run(
            ["status", "--porcelain=v1", "-z", "--untracked-files=all"], check=True
        )
        tokens = result.stdout.split("\0")
        entries: List[StatusEntry] = []
        i = 0
        while i < len(tokens):
            token = tokens[i]
            i += 1
            # Each token is "XY path"; anything shorter is padding.
            if len(token) < 4:
                continue
            index, worktree, path = token[0], token[1], token[3:]
            old_path = None
            if index in {"R", "C"} or worktree in {"R", "C"}:
                if i < len(tokens):
                    old_path = tokens[i]
                    i += 1
            if index == "!":
                continue
            entries.append(StatusEntry(path=path, index=index, worktree=worktree, old_path=old_path))
        return entries

    def get_diff(
        self,
        path: str,
        staged: bool = False,
        untracked: bool = False,
        old_path: Optional[str] = None,
    ) -> str:
        """Return the unified diff for a single file.

        Parameters
        ----------
        path : str
            File path relative to the repository root.
        staged : bool, optional
            Diff the index against HEAD instead of the worktree against
            the index.
        untracked : bool, optional
            The file is not tracked yet; diff it against an empty file.
        old_path : str, optional
            Previous path for renames, so that the diff is computed as a
            rename rather than as an addition.
        """
        if untracked:
            # --no-index exits with 1 when the files differ.
            result = self._run(["diff", "--no-index", "--", os.devnull, path], check=False)
            if result.returncode not in (0, 1):
                raise GitError(result.stderr.strip() or f"Failed to diff {path}")
            return result.stdout
        args = ["diff"]
        if staged:
            args.append("--cached")
        args.extend(["-M", "--"])
        if old_path:
            args.append(old_path)
        args.append(path)
        return self._run(args, check=True).stdout

    # ------------------------------------------------------------------
    # Staging and committing
    # ------------------------------------------------------------------
    def stage_all(self) -> None:
        """Stage every change in the working tree, including deletions."""
        self._run(["add", "--all"], check=True)

    def commit(
        self,
        message: str,
        author_date: Optional[str] = None,
        committer_date: Optional[str] = None,
        amend: bool = False,
    ) -> None:
        """Create a commit with the given message.

        Parameters
        ----------
        message : str
            Full commit message; multi-line messages are supported.
        author_date, committer_date : str, optional
            Timestamps in a format git accepts. ``None`` lets git use
            the current time.
        amend : bool, optional
            Replace the current HEAD commit instead of adding a new one.

        Raises
        ------
        GitError
            If the commit fails.
        """
        env: Dict[str, str] = {}
        if author_date is not None:
            env["GIT_AUTHOR_DATE"] = author_date
        if committer_date is not None:
            env["GIT_COMMITTER_DATE"] = committer_date
        args = ["commit"]
        if amend:
            args.append("--amend")
        args.extend(["-m", message])
        self._run(args, check=True, env=env or None)
