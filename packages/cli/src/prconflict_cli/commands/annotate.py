"""annotate command — write unresolved review threads into the working copy."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from prconflict_core.annotator import run_annotation
from prconflict_core.gh.pull_request import get_pull_requests, get_repo
from prconflict_core.models import AnnotationSummary
from prconflict_core.sources import SourceError

console = Console()

# Exit status when the run finished but at least one file could not be written.
EXIT_PARTIAL_FAILURE = 2


def _print_report(summary: AnnotationSummary) -> None:
    verb = "would be inserted" if summary.dry_run else "inserted"
    title = f"{summary.repo}#{summary.pr_number} — {summary.total_markers} marker(s) {verb}"
    if not summary.files:
        console.print(f"[green]No unresolved review threads on {summary.repo}#{summary.pr_number}.[/green]")
        return

    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("File")
    table.add_column("Markers", justify="right", width=8)
    table.add_column("Lines")
    table.add_column("Status")

    for r in summary.files:
        if r.excluded:
            status = "[dim]excluded[/dim]"
        elif r.error:
            status = f"[red]{escape(r.error)}[/red]"
        elif r.skipped_lines:
            status = f"[yellow]out of range: {', '.join(map(str, r.skipped_lines))}[/yellow]"
        elif not r.markers and r.changed:
            status = "[green]old markers removed[/green]"
        else:
            status = "[green]ok[/green]"
        table.add_row(escape(r.path), str(r.markers), ", ".join(map(str, r.lines)), status)

    console.print(table)


@click.command("annotate")
@click.option("--repo", required=True, help="GitHub repository in owner/name format.")
@click.option(
    "--pr",
    "pr_number",
    type=int,
    default=None,
    help="Pull request number. Omit to list open PRs interactively.",
)
@click.option(
    "--workdir",
    default=None,
    type=click.Path(exists=True, file_okay=False),
    help="Root of the working copy to annotate. Overrides config file.",
)
@click.option(
    "--dry-run",
    "dry_run",
    is_flag=True,
    help="Print the markers that would be inserted without modifying any file.",
)
@click.pass_context
def annotate_cmd(ctx, repo: str, pr_number: int | None, workdir: str | None, dry_run: bool):
    """Insert unresolved review threads of a pull request as conflict-style markers.

    Each unresolved thread becomes a block directly above the line it
    comments on. Resolved threads are left out. Markers from a previous run
    are replaced, so the command can be re-run after new review activity.

    \b
    Required environment variables:
      GITHUB_TOKEN         GitHub personal access token (or use gh CLI)
    """
    from prconflict_cli.auth import require_github_token

    config = dict(ctx.obj["config"])
    if workdir is not None:
        config["workdir"] = workdir
    if dry_run:
        config["dry_run"] = True

    token = require_github_token(config)

    if pr_number is None:
        prs = list(get_pull_requests(get_repo(repo, token=token)))
        if not prs:
            console.print("[yellow]No open pull requests found.[/yellow]")
            return
        console.print("\nOpen pull requests:")
        for pr in prs:
            console.print(f"  [bold]#{pr.number}[/bold]  {pr.title}")
        pr_number = click.prompt("\nEnter the pull request number", type=int)

    try:
        summary = run_annotation(repo=repo, pr_number=pr_number, config=config)
    except SourceError as e:
        raise click.ClickException(str(e))
    except ValueError as e:
        raise click.UsageError(str(e))

    _print_report(summary)

    if summary.failed_files:
        console.print(f"[red]{len(summary.failed_files)} file(s) could not be annotated.[/red]")
        ctx.exit(EXIT_PARTIAL_FAILURE)
