"""Query engine: directory lookups, live search and the command stack."""

from .commands import Command, command_names, parse_command, parse_commands
from .engine import QueryEngine, containing_directories, covering_prefixes
from .search import SearchResult, search

__all__ = [
    "Command",
    "QueryEngine",
    "SearchResult",
    "command_names",
    "containing_directories",
    "covering_prefixes",
    "parse_command",
    "parse_commands",
    "search",
]
