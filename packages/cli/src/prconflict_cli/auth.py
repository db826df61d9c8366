"""GitHub token lookup for the CLI.

Lookup order, first hit wins:
  1. GITHUB_TOKEN environment variable (CI, or an explicit override)
  2. `gh auth token`, the session stored by the GitHub CLI after `gh auth login`
"""

from __future__ import annotations

import logging
import os
import subprocess

logger = logging.getLogger(__name__)


def resolve_github_token() -> str | None:
    """Return a GitHub token, or None when neither source has one.

    Never raises; commands that need a token turn None into a UsageError.
    """
    token = os.environ.get("GITHUB_TOKEN")
    if token:
        return token

    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        logger.debug("gh CLI token lookup unavailable: %s", e)
        return None

    if result.returncode != 0:
        logger.debug("`gh auth token` exited with %d", result.returncode)
        return None
    gh_token = result.stdout.strip()
    if gh_token:
        logger.debug("Resolved GitHub token via gh CLI session.")
        return gh_token
    return None


def require_github_token(config: dict) -> str:
    """Return the token for commands that talk to GitHub, or raise click.UsageError."""
    import click

    token = config.get("github_token") or resolve_github_token()
    if not token:
        raise click.UsageError(
            "No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first.\n"
            "Create a token at https://github.com/settings/tokens"
        )
    config["github_token"] = token
    return token
