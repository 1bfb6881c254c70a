#!/usr/bin/env python3
"""Convenience wrapper: ugid-query → ugid-index query

Query results are read-only and safe to expose to every user.
"""

import sys


def main():
    """Inject 'query' subcommand and call main CLI."""
    from ugid_index.cli.main import ugid_index_cli

    # Set program name for help text
    sys.argv[0] = "ugid-query"
    sys.argv.insert(1, "query")
    ugid_index_cli()


if __name__ == "__main__":
    main()
