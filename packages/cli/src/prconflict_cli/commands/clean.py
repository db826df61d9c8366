"""clean command — strip marker blocks from files."""

from __future__ import annotations

import logging

import click
from rich.console import Console
from rich.markup import escape

from prconflict_core.markers import has_markers, strip_markers
from prconflict_core.sources import FileStoreError, LocalFileStore

console = Console()
logger = logging.getLogger(__name__)


@click.command("clean")
@click.argument("paths", nargs=-1, required=True)
@click.option(
    "--workdir",
    default=None,
    type=click.Path(exists=True, file_okay=False),
    help="Root of the working copy. Overrides config file.",
)
@click.pass_context
def clean_cmd(ctx, paths: tuple[str, ...], workdir: str | None):
    """Remove review markers from PATHS, restoring the original content.

    PATHS are relative to the working directory. Files without markers are
    left untouched.
    """
    config = ctx.obj["config"]
    store = LocalFileStore(workdir or config.get("workdir", "."))

    cleaned = 0
    failed = 0
    for path in paths:
        try:
            text = store.read_file(path).decode("utf-8", "surrogateescape")
            if not has_markers(text):
                continue
            store.write_file(path, strip_markers(text).encode("utf-8", "surrogateescape"))
        except (OSError, FileStoreError) as e:
            logger.warning("Could not clean %s: %s", path, e)
            console.print(f"  [red]{escape(path)}: {escape(str(e))}[/red]")
            failed += 1
            continue
        console.print(f"  Cleaned: {escape(path)}")
        cleaned += 1

    console.print(f"[green]{cleaned} file(s) cleaned.[/green]")
    if failed:
        ctx.exit(1)
