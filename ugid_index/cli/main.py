"""Unified CLI entry point for the ugid-index command."""

import click

from .convert_cmd import convert_cmd
from .query_cmd import query_cmd
from .scan_cmd import scan_cmd


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="ugid-index")
def ugid_index_cli():
    """Directory-level uid/gid index for large filesystems.

    Scan directory trees into a compact index of which directories hold
    objects owned by each uid and gid, then query it with live searches.

    \b
    Examples:
      ugid-index scan /gpfs/fs1 --exclude-uids 0-999   # Build the index
      ugid-index query uid=12345 print                  # Files owned by uid
      ugid-index query gid=500 dirnames prefixes print  # Top dirs for a group
      ugid-index query info                             # Scan provenance

    \b
    For help on a specific command:
      ugid-index scan --help
      ugid-index query --help
    """
    pass


# Register subcommands
ugid_index_cli.add_command(scan_cmd, name="scan")
ugid_index_cli.add_command(query_cmd, name="query")
ugid_index_cli.add_command(convert_cmd, name="convert")


if __name__ == "__main__":
    ugid_index_cli()
