"""
Command line interface for commit_gen.

This module defines the ``main`` function used as the entry point of
the ``commit-gen`` command. It orchestrates repository detection,
configuration loading, change collection, the two model calls,
confirmation and the final commit. Exit codes are listed below.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional

import click

from commit_gen import __version__
from commit_gen.changes.collector import CollectionError, EmptyChangeSetError, collect_changes
from commit_gen.commit.assembler import assemble_commit
from commit_gen.config.loader import ConfigError, load_config
from commit_gen.dates import InvalidDateError, format_git_date, resolve_commit_dates
from commit_gen.llm.commit_message_generator import CommitMessageGenerator
from commit_gen.llm.ollama_client import LLMError, OllamaClient
from commit_gen.llm.prompt_builder import TemplateError
from commit_gen.llm.response_parser import MalformedResponseError
from commit_gen.models import ChangeSet, ValidationError
from commit_gen.vcs.git_client import GitClient, GitError

logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------
EXIT_SUCCESS = 0
EXIT_GENERIC_ERROR = 1
EXIT_INVALID_USAGE = 2
EXIT_NO_REPO = 3
EXIT_NO_CHANGES = 4
EXIT_CONFIG_ERROR = 5
EXIT_VCS_FAILURE = 6
EXIT_LLM_FAILURE = 7
EXIT_DECLINED = 8
EXIT_INVALID_DATE = 9
EXIT_INTERRUPTED = 130


# ---------------------------------------------------------------------------
# Progress and status display utilities
# ---------------------------------------------------------------------------

class ProgressIndicator:
    """Simple progress indicator for user feedback."""

    def __init__(self, message: str):
        self.message = message
        self.start_time = None

    def __enter__(self):
        self.start_time = time.time()
        click.echo(f"⠋ {self.message}...", nl=False)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        elapsed = time.time() - self.start_time
        if exc_type is None:
            click.echo(f"\r✓ {self.message} (took {elapsed:.1f}s)")
        else:
            click.echo(f"\r✗ {self.message} (failed after {elapsed:.1f}s)")
        return False


def print_step(step_num: int, total_steps: int, message: str):
    """Print a step indicator."""
    click.echo(f"\n{'='*60}")
    click.echo(f"Step {step_num}/{total_steps}: {message}")
    click.echo(f"{'='*60}")


def print_info(message: str, indent: int = 0):
    prefix = "  " * indent
    click.echo(f"{prefix}ℹ {message}")


def print_success(message: str, indent: int = 0):
    prefix = "  " * indent
    click.echo(f"{prefix}✓ {message}")


def print_warning(message: str, indent: int = 0):
    prefix = "  " * indent
    click.echo(f"{prefix}⚠ {message}")


def print_error(message: str, indent: int = 0):
    prefix = "  " * indent
    click.echo(f"{prefix}✗ {message}", err=True)


def print_changes(changeset: ChangeSet) -> None:
    """Print every collected diff."""
    click.echo(f"\n{click.style('Changes:', fg='green', bold=True)}")
    for change in changeset:
        click.echo(f"\nChanges in {change.path} ({change.kind}):")
        click.echo(change.diff or "(no diff available)")


def print_message_box(message: str) -> None:
    click.echo("   ┌" + "─" * 56 + "┐")
    for line in message.splitlines() or [""]:
        display_line = line[:54]
        click.echo(f"   │ {display_line.ljust(54)} │")
    click.echo("   └" + "─" * 56 + "┘")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

@click.command()
@click.option("-c", "--config", "config_path", type=click.Path(path_type=Path, dir_okay=False),
              help="Path to a JSON configuration file.")
@click.option("-y", "--yes", is_flag=True, help="Commit without asking for confirmation.")
@click.option("-d", "--diff", "show_diff", is_flag=True, help="Show the collected changes.")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose (debug) output.")
@click.option("-x", "--xml", "show_xml", is_flag=True, help="Show the raw model responses.")
@click.option("-i", "--issue", type=click.IntRange(min=1), help="Issue number this commit fixes.")
@click.option("-p", "--pr", type=click.IntRange(min=1), help="Related pull request number.")
@click.option("--date", help="Author and committer date, e.g. '2 days ago'.")
@click.option("--author-date", help="Author date; overrides --date.")
@click.option("--committer-date", help="Committer date; overrides --date.")
@click.option("--amend", is_flag=True, help="Amend the previous commit instead of creating one.")
@click.version_option(version=__version__, prog_name="commit-gen")
def main(
    config_path: Optional[Path],
    yes: bool,
    show_diff: bool,
    verbose: bool,
    show_xml: bool,
    issue: Optional[int],
    pr: Optional[int],
    date: Optional[str],
    author_date: Optional[str],
    committer_date: Optional[str],
    amend: bool,
) -> None:
    """Generate a commit message for your pending changes with a local LLM.

    The tool picks the most relevant changed files, asks an Ollama model
    to describe them and commits the result after confirmation.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        force=True,
    )

    total_steps = 5
    try:
        # Step 1: repository and configuration
        print_step(1, total_steps, "Loading Repository and Configuration")
        repo_root = GitClient.find_repo_root(Path.cwd())
        if repo_root is None:
            print_error("Current directory is not inside a Git repository.")
            raise click.exceptions.Exit(EXIT_NO_REPO)
        print_success(f"Found Git repository at: {repo_root}")
        logger.debug("Repository root: %s", repo_root)

        try:
            config = load_config(config_path, repo_root=repo_root)
        except ConfigError as exc:
            print_error(f"Configuration error: {exc}")
            raise click.exceptions.Exit(EXIT_CONFIG_ERROR)
        print_info(f"Model: {config.model.name} at {config.model.base_url}:{config.model.port}", indent=1)

        try:
            dates = resolve_commit_dates(date, author_date, committer_date)
            logger.debug("Commit dates: %s", dates)
        except InvalidDateError as exc:
            print_error(str(exc))
            raise click.exceptions.Exit(EXIT_INVALID_DATE)

        # Step 2: collect changes
        print_step(2, total_steps, "Analyzing Changes")
        client = GitClient(repo_root)
        try:
            with ProgressIndicator("Scanning for changed files"):
                changeset = collect_changes(
                    client,
                    config.git.exclude_patterns,
                    include_staged=config.git.include_staged,
                    include_unstaged=config.git.include_unstaged,
                )
        except EmptyChangeSetError as exc:
            print_warning(f"No changes to commit! {exc}")
            raise click.exceptions.Exit(EXIT_NO_CHANGES)
        except CollectionError as exc:
            print_error(f"VCS error: {exc}")
            raise click.exceptions.Exit(EXIT_VCS_FAILURE)

        print_success(
            f"Found {changeset.total_files} changed file{'s' if changeset.total_files != 1 else ''} "
            f"(+{changeset.total_added}/-{changeset.total_removed})"
        )
        if show_diff:
            print_changes(changeset)

        # Step 3: model calls
        print_step(3, total_steps, "Generating Commit Message")
        generator = CommitMessageGenerator(
            OllamaClient(
                base_url=config.model.base_url,
                port=config.model.port,
                request_timeout=config.model.request_timeout,
            ),
            config,
        )
        try:
            with ProgressIndicator("Selecting files to examine"):
                selection = generator.select_files(changeset)
            if selection.fallback_reason:
                print_warning(f"Using heuristic file selection ({selection.fallback_reason})", indent=1)
            for path in selection.selected:
                print_info(path, indent=1)

            with ProgressIndicator("Drafting commit message (this may take a moment)"):
                outcome = generator.generate_draft(changeset, selection.selected)
        except TemplateError as exc:
            print_error(f"Configuration error: {exc}")
            raise click.exceptions.Exit(EXIT_CONFIG_ERROR)
        except MalformedResponseError as exc:
            print_error(f"The model returned an unusable commit message: {exc}")
            if show_xml or verbose:
                click.echo(exc.raw, err=True)
            raise click.exceptions.Exit(EXIT_LLM_FAILURE)
        except LLMError as exc:
            print_error(f"LLM error: {exc}")
            print_info("Make sure Ollama is running and accessible", indent=1)
            raise click.exceptions.Exit(EXIT_LLM_FAILURE)

        if show_xml:
            click.echo(f"\n{click.style('Raw XML Response:', fg='blue', bold=True)}")
            if selection.raw_response:
                click.echo(selection.raw_response)
            click.echo(outcome.raw_response)

        # Step 4: review
        print_step(4, total_steps, "Review")
        try:
            final = assemble_commit(
                outcome.draft,
                config.commit,
                selected_files=selection.selected,
                dates=dates,
                issue=issue,
                pr=pr,
            )
        except ValidationError as exc:
            print_error(f"Invalid commit message: {exc}")
            raise click.exceptions.Exit(EXIT_LLM_FAILURE)

        click.echo(f"\n{click.style('Generated Commit Message:', fg='green', bold=True)}")
        print_message_box(final.message)
        if final.dates.author is not None:
            print_info(f"Author date: {format_git_date(final.dates.author)}", indent=1)
        if final.dates.committer is not None:
            print_info(f"Committer date: {format_git_date(final.dates.committer)}", indent=1)

        if not yes and not click.confirm("\n   Do you want to commit with this message?", default=True):
            print_warning("Commit aborted.")
            raise click.exceptions.Exit(EXIT_DECLINED)

        # Step 5: commit
        print_step(5, total_steps, "Committing")
        try:
            with ProgressIndicator("Amending commit" if amend else "Creating commit"):
                if config.git.include_unstaged:
                    client.stage_all()
                client.commit(
                    final.message,
                    author_date=format_git_date(final.dates.author) if final.dates.author else None,
                    committer_date=format_git_date(final.dates.committer) if final.dates.committer else None,
                    amend=amend,
                )
        except GitError as exc:
            print_error(f"Failed to commit changes: {exc}")
            raise click.exceptions.Exit(EXIT_VCS_FAILURE)

        print_success(final.headline)
        raise click.exceptions.Exit(EXIT_SUCCESS)

    except click.exceptions.Exit:
        raise
    except (KeyboardInterrupt, click.exceptions.Abort):
        print_warning("Interrupted; nothing was committed.")
        raise click.exceptions.Exit(EXIT_INTERRUPTED)
    except Exception as exc:
        logging.exception("Unhandled error: %s", exc)
        print_error(f"Unexpected error: {exc}")
        raise click.exceptions.Exit(EXIT_GENERIC_ERROR)
