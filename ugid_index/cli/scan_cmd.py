"""Scan subcommand for ugid-index CLI."""

import os
import sys
from contextlib import ExitStack
from datetime import datetime
from pathlib import Path

import click
from rich.markup import escape
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError

from ..core.config import UgidIndexConfig, get_index_path
from ..core.database import persist
from ..core.range_filter import RangeFilter
from ..scanner.progress import ProgressReporter
from ..scanner.provenance import collect_scan_info
from ..scanner.walker import Walker, WalkStats
from .common import (
    configure_logging,
    console,
    err_console,
    format_duration,
    index_option,
    make_dynamic_help_command,
    parse_range_arg,
    parse_rewrite_arg,
    verbose_option,
)

# Use dynamic help command to adapt help text for wrapper scripts
DynamicHelpCommand = make_dynamic_help_command("ugid-index scan")


def _progress_writer(log_file):
    if log_file is None:
        return lambda line: err_console.print(line, markup=False, highlight=False)

    def write(line: str) -> None:
        log_file.write(line + "\n")
        log_file.flush()

    return write


def print_summary(stats: WalkStats, uid_count: int, gid_count: int, entries: tuple[int, int]) -> None:
    """Print the end-of-scan summary table."""
    table = Table(title="Scan Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Objects scanned", f"{stats.objects:,}")
    table.add_row("Directories read", f"{stats.directories:,}")
    table.add_row("Distinct uids", f"{uid_count:,}")
    table.add_row("Distinct gids", f"{gid_count:,}")
    table.add_row("Uid directory entries", f"{entries[0]:,}")
    table.add_row("Gid directory entries", f"{entries[1]:,}")
    table.add_row("Snapshot dirs pruned", f"{stats.snapshots_pruned:,}")
    table.add_row("NFS placeholders skipped", f"{stats.transient_skipped:,}")
    if stats.unusual_names:
        table.add_row("Unusual file names", f"{stats.unusual_names:,}")
    table.add_row("Elapsed", format_duration(stats.elapsed))
    console.print(table)

    if stats.stat_failures or stats.unreadable_dirs:
        console.print(
            f"[yellow]Skipped {stats.stat_failures:,} objects that could not be stat'ed "
            f"and {stats.unreadable_dirs:,} unreadable directories.[/yellow]"
        )


@click.command(cls=DynamicHelpCommand, context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("roots", nargs=-1, required=True, type=click.Path(file_okay=False, path_type=Path))
@index_option()
@click.option(
    "--exclude-uids",
    "-U",
    type=str,
    default=UgidIndexConfig.EXCLUDE_UIDS,
    callback=parse_range_arg,
    help="Uid range not to index, e.g. '0-999,65534' (or set UGID_EXCLUDE_UIDS)",
)
@click.option(
    "--exclude-gids",
    "-G",
    type=str,
    default=UgidIndexConfig.EXCLUDE_GIDS,
    callback=parse_range_arg,
    help="Gid range not to index (or set UGID_EXCLUDE_GIDS)",
)
@click.option(
    "--rewrite",
    type=str,
    callback=parse_rewrite_arg,
    help="Rewrite first OLD in each directory path to NEW, as OLD=NEW",
)
@click.option(
    "--snapshot-name",
    type=str,
    default=UgidIndexConfig.SNAPSHOT_NAME,
    show_default=True,
    help="Directory name that is never indexed or descended",
)
@click.option(
    "--unusual-names",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write NUL-terminated paths with non-printable names to this file",
)
@click.option(
    "--text-list",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Also write the legacy NUL-framed text list with per-directory counts",
)
@click.option(
    "--progress-interval",
    "-p",
    type=float,
    default=UgidIndexConfig.PROGRESS_INTERVAL,
    show_default=True,
    help="Seconds between progress lines (0 to disable)",
)
@click.option(
    "--log",
    "log_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Append progress lines to this file instead of stderr",
)
@click.option(
    "--no-provenance",
    is_flag=True,
    help="Don't record the mount table and process list",
)
@verbose_option()
def scan_cmd(
    roots: tuple[Path, ...],
    index_path: Path | None,
    exclude_uids: str | None,
    exclude_gids: str | None,
    rewrite,
    snapshot_name: str,
    unusual_names: Path | None,
    text_list: Path | None,
    progress_interval: float,
    log_path: Path | None,
    no_provenance: bool,
    verbose: bool,
):
    """Scan directory trees and write the uid/gid directory index.

    Every object below ROOTS is attributed to its containing directory under
    its uid and its gid. Symbolic links are not followed, snapshot
    directories are skipped, and objects that vanish during the scan are
    counted rather than treated as errors.

    \b
    Examples:
      ugid-index scan /gpfs/fs1 /gpfs/fs2
      ugid-index scan /gpfs/fs1 -U 0-999 -G 0-99 --log scan.log
      ugid-index scan /fs/.snapshots/daily --rewrite /fs/.snapshots/daily=/fs

    \b
    Index location precedence:
      1. --index option (explicit file path)
      2. UGID_INDEX_DB environment variable
      3. UGID_INDEX_DATA_DIR (or default data dir) + ugid_index.db
    """
    configure_logging(verbose)
    resolved_index = get_index_path(index_path)
    root_paths = [os.path.abspath(root) for root in roots]

    console.print("[bold]uid/gid directory scan[/bold]")
    console.print(f"Roots: {', '.join(root_paths)}")
    console.print(f"Index: {resolved_index}")
    if exclude_uids:
        console.print(f"Excluding uids: {exclude_uids}")
    if exclude_gids:
        console.print(f"Excluding gids: {exclude_gids}")

    info = collect_scan_info(
        sys.argv,
        root_paths,
        excluded_uids=exclude_uids,
        excluded_gids=exclude_gids,
        include_snapshots=not no_provenance,
    )

    def announce(kind: str, ident: int, directory: str) -> None:
        err_console.print(f"{kind} {ident}: {directory}", markup=False, highlight=False)

    with ExitStack() as stack:
        log_file = stack.enter_context(open(log_path, "a")) if log_path else None
        unusual_sink = stack.enter_context(open(unusual_names, "wb")) if unusual_names else None

        walker = Walker(
            exclude_uids=RangeFilter(exclude_uids),
            exclude_gids=RangeFilter(exclude_gids),
            rewrite=rewrite,
            snapshot_name=snapshot_name,
            unusual_sink=unusual_sink,
            on_new_pair=announce if verbose else None,
            progress=ProgressReporter(_progress_writer(log_file), interval=progress_interval),
        )
        stats = walker.walk(root_paths)

    if len(stats.missing_roots) == len(root_paths):
        console.print("[red]Error: none of the scan roots could be read; index not written.[/red]")
        raise SystemExit(1)

    info.scan_end = datetime.now()
    info.objects_scanned = stats.objects
    info.stat_failures = stats.stat_failures
    info.unreadable_dirs = stats.unreadable_dirs

    builder = walker.builder
    index = builder.finalize(info)

    try:
        if text_list:
            with open(text_list, "wb") as f:
                records = builder.write_text_list(f)
            console.print(f"Wrote {records:,} text list records to {text_list}")
        persist(index, resolved_index)
    except (OSError, SQLAlchemyError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise SystemExit(1)

    print_summary(stats, builder.id_count("uid"), builder.id_count("gid"), index.count_entries())
    console.print(f"[green]Index written to {resolved_index}[/green]")
