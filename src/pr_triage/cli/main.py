"""Main Click CLI entry point for the ``pr-triage`` command.

Entry point registered in pyproject.toml::

    [project.scripts]
    pr-triage = "pr_triage.cli.main:cli"

Usage examples::

    pr-triage --version
    git diff --name-only main | pr-triage owners --manifest .github/CODEOWNERS
    pr-triage labels lib/fs.js doc/api/fs.md --body "fs: fix stat" --base-branch v20.x
    pr-triage run --dry-run --json-output      # inside GitHub Actions
"""

from __future__ import annotations

import json
import sys
from typing import Optional

import click

from pr_triage import __version__
from pr_triage.comment import render_owner_comment
from pr_triage.config import TriageConfig
from pr_triage.github.client import GitHubAPIError
from pr_triage.owners.codeowners import OwnerResolver

# Reported as a one-line message instead of a traceback.  ManifestFormatError,
# RuleFileError and EventPayloadError are ValueErrors.
_USER_ERRORS = (GitHubAPIError, ValueError)


@click.group()
@click.version_option(version=__version__, prog_name="pr-triage")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    envvar="PR_TRIAGE_CONFIG",
    help="Path to a pr-triage.json config file. Auto-detected if not set.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str]) -> None:
    """PR Triage -- Code owners and labels for pull requests."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


# ---------------------------------------------------------------------------
# owners
# ---------------------------------------------------------------------------


@cli.command()
@click.option(
    "--manifest",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="Path to the CODEOWNERS file.",
)
@click.option(
    "--comment",
    "render_comment",
    is_flag=True,
    default=False,
    help="Print the pull request comment instead of the owner list.",
)
@click.option(
    "--json-output",
    "output_json",
    is_flag=True,
    default=False,
    help="Output as JSON instead of human-readable text.",
)
@click.argument("paths", nargs=-1)
def owners(
    manifest: str,
    render_comment: bool,
    output_json: bool,
    paths: tuple[str, ...],
) -> None:
    """Show the code owners of PATHS.

    Paths are read from standard input, one per line, when none are given.
    """
    changed = _collect_paths(paths)

    try:
        with open(manifest, "r", encoding="utf-8") as fp:
            resolver = OwnerResolver.parse(fp.read())
    except _USER_ERRORS as exc:
        _fail(exc)

    unique = resolver.resolve(changed)

    if output_json:
        click.echo(json.dumps({
            "owners": unique,
            "paths": {path: resolver.get_owners(path) for path in changed},
            "comment": render_owner_comment(unique),
        }, indent=2))
    elif render_comment:
        click.echo(render_owner_comment(unique))
    elif unique:
        for owner in unique:
            click.echo(owner)
    else:
        click.secho("No code owners for the given paths.", fg="yellow")


# ---------------------------------------------------------------------------
# labels
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--body", default=None, help="Pull request description.")
@click.option("--base-branch", default=None, help="Branch the pull request targets.")
@click.option(
    "--json-output",
    "output_json",
    is_flag=True,
    default=False,
    help="Output as JSON instead of human-readable text.",
)
@click.argument("paths", nargs=-1)
@click.pass_context
def labels(
    ctx: click.Context,
    body: Optional[str],
    base_branch: Optional[str],
    output_json: bool,
    paths: tuple[str, ...],
) -> None:
    """Show the labels PATHS would receive.

    Paths are read from standard input, one per line, when none are given.
    """
    changed = _collect_paths(paths)
    config = _load_config(ctx)

    try:
        classifier = config.build_classifier()
    except _USER_ERRORS as exc:
        _fail(exc)

    result = classifier.classify(changed, body, base_branch)

    if output_json:
        click.echo(json.dumps({"labels": result, "apply": result is not None}, indent=2))
    elif result is None:
        click.secho("No labels to apply.", fg="yellow")
    else:
        for label in result:
            click.echo(label)


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


@cli.command()
@click.option(
    "--token",
    envvar="GITHUB_TOKEN",
    required=True,
    help="GitHub token. Defaults to $GITHUB_TOKEN.",
)
@click.option(
    "--repo",
    envvar="GITHUB_REPOSITORY",
    required=True,
    help="Repository as owner/name. Defaults to $GITHUB_REPOSITORY.",
)
@click.option(
    "--event-path",
    envvar="GITHUB_EVENT_PATH",
    type=click.Path(dir_okay=False),
    required=True,
    help="pull_request event payload. Defaults to $GITHUB_EVENT_PATH.",
)
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="Compute owners and labels without posting anything.",
)
@click.option(
    "--json-output",
    "output_json",
    is_flag=True,
    default=False,
    help="Output the triage result as JSON.",
)
@click.pass_context
def run(
    ctx: click.Context,
    token: str,
    repo: str,
    event_path: str,
    dry_run: bool,
    output_json: bool,
) -> None:
    """Triage the pull request of a GitHub Actions event.

    Posts the code owner comment and attaches labels.
    """
    from pr_triage.github.client import GitHubClient
    from pr_triage.github.event import load_event
    from pr_triage.pipeline import run_triage

    config = _load_config(ctx)
    config.configure_logging()

    try:
        context = load_event(event_path)
        client = GitHubClient(token=token, repo=repo, api_url=config.api_url)
        result = run_triage(client, context, config=config, dry_run=dry_run)
    except _USER_ERRORS as exc:
        _fail(exc)

    if output_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    click.secho(f"Pull request #{result.pr_number}", fg="cyan", bold=True)
    click.echo(f"  Changed files: {len(result.changed_paths)}")
    click.echo(f"  Owners:        {', '.join(result.owners) or '(none)'}")
    click.echo(f"  Labels:        {', '.join(result.labels or []) or '(none)'}")
    if dry_run:
        click.secho("Dry run: nothing was posted.", fg="yellow")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _collect_paths(paths: tuple[str, ...]) -> list[str]:
    """Return *paths*, or non-empty stdin lines when none were given."""
    if paths:
        return list(paths)
    stdin = click.get_text_stream("stdin")
    return [line.strip() for line in stdin if line.strip()]


def _load_config(ctx: click.Context) -> TriageConfig:
    try:
        return TriageConfig.load(config_path=ctx.obj.get("config_path"))
    except ValueError as exc:
        _fail(exc)


def _fail(exc: Exception) -> None:
    click.secho(f"ERROR: {exc}", fg="red", err=True)
    sys.exit(1)


if __name__ == "__main__":
    cli()
