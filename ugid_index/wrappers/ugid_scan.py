#!/usr/bin/env python3
"""Convenience wrapper: ugid-scan → ugid-index scan

This wrapper allows selective deployment of the scan command.
For example, you can install ugid-scan for administrators only
while exposing ugid-query to all users.
"""

import sys


def main():
    """Inject 'scan' subcommand and call main CLI."""
    from ugid_index.cli.main import ugid_index_cli

    # Set program name for help text
    sys.argv[0] = "ugid-scan"
    sys.argv.insert(1, "scan")
    ugid_index_cli()


if __name__ == "__main__":
    main()
