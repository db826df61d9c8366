"""CLI entry point for prconflict.

Commands:
  annotate   — write unresolved PR review threads into the working copy as markers
  clean      — remove marker blocks from files
  resolve    — mark the review thread owning a comment as resolved
  unresolve  — reopen the review thread owning a comment
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler

from prconflict_cli.commands.annotate import annotate_cmd
from prconflict_cli.commands.clean import clean_cmd
from prconflict_cli.commands.threads import resolve_cmd, unresolve_cmd


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    # PyGithub logs every request at DEBUG.
    logging.getLogger("github").setLevel(logging.INFO if verbose else logging.WARNING)


@click.group()
@click.version_option(
    version=importlib.metadata.version("prconflict"),
    prog_name="prconflict",
)
@click.option(
    "--config",
    "config_path",
    default=".prconflict.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="PRCONFLICT_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Surface unresolved GitHub PR review threads as conflict-style markers in your editor."""
    from prconflict_core.config import load_config

    _configure_logging(verbose)
    ctx.ensure_object(dict)

    try:
        config = load_config(config_path)
    except (ValueError, OSError, yaml.YAMLError) as e:
        raise click.UsageError(str(e))

    ctx.obj["config"] = config
    ctx.obj["config_path"] = config_path


main.add_command(annotate_cmd)
main.add_command(clean_cmd)
main.add_command(resolve_cmd)
main.add_command(unresolve_cmd)
