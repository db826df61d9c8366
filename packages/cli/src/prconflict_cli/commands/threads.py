"""resolve / unresolve commands — toggle the review thread that owns a comment."""

from __future__ import annotations

import click
from github import GithubException
from rich.console import Console

from prconflict_core.gh.pull_request import (
    ThreadNotFoundError,
    get_client,
    get_thread_id_for_comment,
    resolve_thread,
    split_repo,
    unresolve_thread,
)

console = Console()


def _toggle(ctx, repo: str, pr_number: int, comment_id: int, resolved: bool) -> None:
    from prconflict_cli.auth import require_github_token

    token = require_github_token(dict(ctx.obj["config"]))
    try:
        owner, name = split_repo(repo)
    except ValueError as e:
        raise click.UsageError(str(e))

    requester = get_client(token).requester
    try:
        thread_id = get_thread_id_for_comment(requester, owner, name, pr_number, comment_id)
        toggle = resolve_thread if resolved else unresolve_thread
        now_resolved = toggle(requester, thread_id)
    except ThreadNotFoundError as e:
        raise click.ClickException(str(e))
    except GithubException as e:
        raise click.ClickException(f"GitHub API error for {repo}#{pr_number}: {e}")

    state = "resolved" if now_resolved else "unresolved"
    console.print(f"Thread [bold]{thread_id}[/bold] (comment {comment_id}) is now [cyan]{state}[/cyan].")


_repo_option = click.option("--repo", required=True, help="GitHub repository in owner/name format.")
_pr_option = click.option("--pr", "pr_number", type=int, required=True, help="Pull request number.")
_comment_option = click.option(
    "--comment-id", type=int, required=True, help="REST id of any comment in the thread."
)


@click.command("resolve")
@_repo_option
@_pr_option
@_comment_option
@click.pass_context
def resolve_cmd(ctx, repo: str, pr_number: int, comment_id: int):
    """Resolve the review thread containing COMMENT_ID."""
    _toggle(ctx, repo, pr_number, comment_id, resolved=True)


@click.command("unresolve")
@_repo_option
@_pr_option
@_comment_option
@click.pass_context
def unresolve_cmd(ctx, repo: str, pr_number: int, comment_id: int):
    """Reopen the review thread containing COMMENT_ID."""
    _toggle(ctx, repo, pr_number, comment_id, resolved=False)
