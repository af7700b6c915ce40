"""Command-line interface for lfs-watchdog."""

import json
import sys

import click
from dotenv import load_dotenv

from . import __version__
from .classifier import Classifier
from .content_store import GitHubContentStore
from .exceptions import TransportError
from .github_client import GITHUB_API_URL, GitHubClient
from .logging_config import configure_logging
from .models import CommitOutcome, PushEvent
from .reporter import GitHubReporter, LogReporter
from .watchdog import DEFAULT_MAX_WORKERS, Watchdog


def echo_success(message, quiet=False):
    """Echo success message in green."""
    if not quiet:
        click.secho(f"✅ {message}", fg="green")


def echo_error(message):
    """Echo error message in red."""
    click.secho(f"❌ {message}", fg="red", err=True)


def echo_warning(message, quiet=False):
    """Echo warning message in yellow."""
    if not quiet:
        click.secho(f"⚠️  {message}", fg="yellow")


def echo_outcome(outcome: CommitOutcome, quiet=False):
    """Print the findings of one commit."""
    if not outcome.has_findings:
        echo_success(f"{outcome.sha[:7]}: no LFS problems", quiet)
        return
    echo_warning(f"{outcome.sha[:7]}:", quiet)
    if quiet:
        return
    for path in outcome.size_candidates:
        click.echo(f"   LFS candidate: {path}")
    for path in outcome.invalid_pointers:
        click.echo(f"   invalid pointer: {path}")


def build_watchdog(client, full_name, dry_run, set_status, workers):
    """Wire the classifier and reporter for one repository."""
    repository = client.get_repository(full_name)
    store = GitHubContentStore(repository)
    reporter = LogReporter() if dry_run else GitHubReporter(repository)
    watchdog = Watchdog(
        Classifier(store),
        reporter,
        max_workers=workers,
        set_status=set_status,
        repository=full_name,
    )
    return repository, watchdog


def common_options(func):
    """Options shared by the commands that talk to GitHub."""
    options = [
        click.option(
            "--github-token",
            envvar="GITHUB_TOKEN",
            help="GitHub token (or set GITHUB_TOKEN env var)",
        ),
        click.option(
            "--api-url",
            envvar="GITHUB_API_URL",
            default=None,
            help="GitHub API URL (default: derived from the repository URL)",
        ),
        click.option(
            "--workers",
            envvar="WATCHDOG_WORKERS",
            type=click.IntRange(min=1),
            default=DEFAULT_MAX_WORKERS,
            show_default=True,
            help="Commits classified concurrently per push",
        ),
        click.option(
            "--dry-run",
            envvar="WATCHDOG_DRY_RUN",
            is_flag=True,
            help="Log findings instead of commenting on commits",
        ),
        click.option(
            "--set-status",
            envvar="WATCHDOG_SET_STATUS",
            is_flag=True,
            help="Maintain a pending/success/failure commit status",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.version_option(version=__version__)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json-logs", is_flag=True, help="Emit JSON-formatted structured logs")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Log level",
)
@click.pass_context
def main(ctx, quiet, json_logs, log_level):
    """Git LFS watchdog.

    Checks commits pushed to GitHub for files that should be tracked
    with Git LFS and for LFS files committed without a pointer.
    """
    load_dotenv()

    ctx.ensure_object(dict)
    ctx.obj["QUIET"] = quiet
    configure_logging(level=log_level, json_format=json_logs)


@main.command()
@click.argument("payload", type=click.File("r"))
@common_options
@click.pass_context
def check(ctx, payload, github_token, api_url, workers, dry_run, set_status):
    """Check every distinct commit of a push webhook PAYLOAD (JSON file, or - for stdin)."""
    quiet = ctx.obj.get("QUIET", False)

    try:
        push = PushEvent.from_payload(json.load(payload))
    except (ValueError, KeyError, TypeError) as e:
        echo_error(f"Invalid push payload: {e}")
        sys.exit(1)

    try:
        client = GitHubClient(
            token=github_token,
            base_url=api_url or GitHubClient.api_url_for(push.repository_url),
        )
        _, watchdog = build_watchdog(
            client, push.repository_full_name, dry_run, set_status, workers
        )
    except (ValueError, TransportError) as e:
        echo_error(str(e))
        sys.exit(1)

    outcomes = watchdog.check(push)
    skipped = len(push.commits) - len(push.distinct_commits)
    if skipped:
        echo_warning(f"Skipped {skipped} non-distinct commit(s)", quiet)
    for outcome in outcomes:
        echo_outcome(outcome, quiet)


@main.command(name="check-commit")
@click.option("--repo", "full_name", required=True, help="Repository full name (owner/repo)")
@click.option("--sha", required=True, help="Commit SHA to check")
@common_options
@click.pass_context
def check_commit(ctx, full_name, sha, github_token, api_url, workers, dry_run, set_status):
    """Check a single commit fetched from the GitHub API."""
    quiet = ctx.obj.get("QUIET", False)

    try:
        client = GitHubClient(token=github_token, base_url=api_url or GITHUB_API_URL)
        repository, watchdog = build_watchdog(client, full_name, dry_run, set_status, workers)
        commit = client.commit_changes(repository, sha)
    except TransportError as e:
        echo_error(str(e))
        sys.exit(1)

    outcome = watchdog.check_commit(commit)
    if outcome is not None:
        echo_outcome(outcome, quiet)


@main.command()
def version():
    """Show version information."""
    click.echo(f"lfs-watchdog version {__version__}")


if __name__ == "__main__":
    main()
