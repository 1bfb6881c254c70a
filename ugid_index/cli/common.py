"""
Shared CLI utilities for ugid-index commands.

Provides common functionality used by the scan, query and convert commands:
- Console output
- Logging setup
- Range-expression and rewrite parameter parsing
- Common CLI option decorators
"""

import logging
from datetime import timedelta
from pathlib import Path

import click
from rich.console import Console

from ..core.errors import InvalidExpressionError
from ..core.range_filter import RangeFilter
from ..scanner.walker import PathRewrite

# Shared console instances for all CLI output; query results bypass them
console = Console()
err_console = Console(stderr=True)

LOG_FORMAT = "%(levelname)s: %(message)s"


def configure_logging(verbose: bool = False) -> None:
    """Send library log records to stderr.

    Warnings (incomplete results, unreadable directories) are always shown;
    ``verbose`` adds progress and debug detail.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        force=True,
    )


def format_duration(seconds: float) -> str:
    """Format elapsed seconds as H:MM:SS."""
    return str(timedelta(seconds=int(seconds)))


def parse_range_arg(ctx, param, value: str | None) -> str | None:
    """Click callback validating a uid/gid range expression."""
    if value is None:
        return None
    try:
        RangeFilter(value)
    except InvalidExpressionError as e:
        raise click.BadParameter(str(e)) from e
    return value


def parse_rewrite_arg(ctx, param, value: str | None) -> PathRewrite | None:
    """Click callback parsing OLD=NEW."""
    if value is None:
        return None
    try:
        return PathRewrite.parse(value)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e


def make_dynamic_help_command(default_command_name: str):
    """Factory function to create a DynamicHelpCommand for a specific tool.

    Args:
        default_command_name: The default command name to replace in help text
                            (e.g., 'ugid-index query')

    Returns:
        A Click Command class that replaces the default command name with
        the actual invoked name (useful for the ugid-scan/ugid-query wrappers)
    """

    class DynamicHelpCommand(click.Command):
        """Custom Command class that replaces the command name in help text."""

        def get_help(self, ctx):
            help_text = super().get_help(ctx)
            # Build full command path by walking up the context hierarchy
            command_path = []
            context = ctx
            while context:
                if context.info_name:
                    command_path.insert(0, context.info_name)
                context = context.parent

            prog_name = " ".join(command_path) if command_path else None

            if prog_name and prog_name != default_command_name:
                help_text = help_text.replace(default_command_name, prog_name)
            return help_text

    return DynamicHelpCommand


# Common CLI option decorators
def index_option():
    """Decorator for --index option."""
    return click.option(
        "--index",
        "-i",
        "index_path",
        type=click.Path(dir_okay=False, path_type=Path),
        help="Index file (overrides UGID_INDEX_DB and UGID_INDEX_DATA_DIR)",
    )


def verbose_option():
    """Decorator for --verbose option."""
    return click.option(
        "-v",
        "--verbose",
        is_flag=True,
        help="Show debug logging on stderr",
    )
