"""Convert subcommand: turn a legacy text list into an index file."""

import sys
from datetime import datetime
from pathlib import Path

import click
from rich.markup import escape
from sqlalchemy.exc import SQLAlchemyError

from ..core.config import get_index_path
from ..core.database import persist
from ..core.errors import UgidIndexError
from ..core.index import IndexDB
from ..scanner.provenance import collect_scan_info
from .common import configure_logging, console, index_option, make_dynamic_help_command, verbose_option

DynamicHelpCommand = make_dynamic_help_command("ugid-index convert")


@click.command(cls=DynamicHelpCommand, context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("text_list", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@index_option()
@verbose_option()
def convert_cmd(text_list: Path, index_path: Path | None, verbose: bool):
    """Build an index from a NUL-framed text list.

    TEXT_LIST holds records of the form 'u <uid>: <count>:<dir>' or
    'g <gid>: <count>:<dir>', each terminated by NUL and newline, as written
    by 'ugid-index scan --text-list'.
    """
    configure_logging(verbose)
    resolved_index = get_index_path(index_path)

    info = collect_scan_info(sys.argv, [], include_snapshots=False)
    try:
        index = IndexDB.from_text_list(text_list, info)
    except UgidIndexError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise SystemExit(1)
    info.scan_end = datetime.now()

    try:
        persist(index, resolved_index)
    except (OSError, SQLAlchemyError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise SystemExit(1)
    uid_dirs, gid_dirs = index.count_entries()
    console.print(
        f"[green]Wrote {resolved_index}: {len(index.uids):,} uids ({uid_dirs:,} directory entries), "
        f"{len(index.gids):,} gids ({gid_dirs:,} directory entries)[/green]"
    )
