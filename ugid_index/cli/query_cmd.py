"""Query subcommand for ugid-index CLI.

This module provides the query interface for the unified ugid-index CLI.
Results go to stdout as raw bytes; diagnostics go to stderr.
"""

import shlex
from pathlib import Path

import click
from rich.markup import escape

from ..core.config import get_index_path
from ..core.database import load
from ..core.errors import UgidIndexError
from ..queries.commands import parse_commands
from ..queries.engine import QueryEngine
from .common import (
    configure_logging,
    err_console,
    index_option,
    make_dynamic_help_command,
    verbose_option,
)

# Create DynamicHelpCommand for this tool
DynamicHelpCommand = make_dynamic_help_command("ugid-index query")


def _fail(message: str) -> None:
    err_console.print(f"[red]Error: {escape(message)}[/red]", highlight=False)
    raise SystemExit(1)


@click.command(cls=DynamicHelpCommand, context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("commands", nargs=-1, required=True)
@index_option()
@click.option(
    "--ll-command",
    type=str,
    help="Command reading NUL-terminated paths for 'll' (or set UGID_LL_COMMAND)",
)
@verbose_option()
def query_cmd(
    commands: tuple[str, ...],
    index_path: Path | None,
    ll_command: str | None,
    verbose: bool,
):
    """Query the uid/gid directory index.

    COMMANDS are run left to right over a stack of path lists.

    \b
    Selection (push a list):
      uiddir=RANGE       directories indexed for uids in RANGE
      giddir=RANGE       directories indexed for gids in RANGE
      uid=UIDS[:GIDS]    live objects, searching the uid directories
      gid=[UIDS:]GIDS    live objects, searching the gid directories
    Filters (replace the top list):
      dirnames           containing directories, sorted and unique
      prefixes           drop paths below an earlier path
    Output (read every list, bottom first):
      print, print0, ll, count
    Information:
      uids, gids, info

    RANGE is a comma-separated list of N, A-B, A-, -B, ^N or ^A-B.
    The index is not real-time: uid/gid searches re-check live ownership,
    but files created since the scan in unindexed directories are missed.

    \b
    Examples:
      ugid-index query uid=12345 print
      ugid-index query uid=1000-1999:500 count
      ugid-index query gid=500 dirnames prefixes print0 | xargs -0 du -sh
      ugid-index query uiddir=^0-999 count
    """
    configure_logging(verbose)

    # Validate the whole query before touching the index or writing output
    try:
        parsed = parse_commands(commands)
    except UgidIndexError as e:
        _fail(str(e))

    try:
        index = load(get_index_path(index_path))
    except UgidIndexError as e:
        _fail(str(e))

    engine = QueryEngine(
        index,
        click.get_binary_stream("stdout"),
        long_list_command=shlex.split(ll_command) if ll_command else None,
    )
    try:
        engine.run(parsed)
    except UgidIndexError as e:
        _fail(str(e))
