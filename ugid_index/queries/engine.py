"""Stack-based interpreter for parsed query commands.

Selections push a list of paths, filters replace the top list, and output
commands read the whole stack from bottom to top without changing it.
"""

import logging
import os
from collections.abc import Callable, Iterable
from typing import BinaryIO

from ..core.config import UgidIndexConfig
from ..core.errors import EmptyStackError
from ..core.index import IndexDB, sorted_paths
from ..scanner.base import FilesystemSource, LocalFilesystem
from . import output
from .commands import (
    Command,
    Count,
    DirectoryLookup,
    Dirnames,
    Info,
    ListIds,
    LongList,
    OwnerSearch,
    Prefixes,
    Print,
    Print0,
    parse_commands,
)
from .search import SearchResult, search

logger = logging.getLogger(__name__)


def containing_directories(paths: Iterable[str], source: FilesystemSource) -> list[str]:
    """Map paths to their directories; de-duplicated and sorted.

    Directories map to themselves. Anything else, including symbolic links
    and paths that have vanished, maps to its parent.
    """
    dirs = []
    for path in paths:
        if source.is_directory(path):
            dirs.append(path)
        else:
            dirs.append(os.path.dirname(path.rstrip("/")) or ".")
    return sorted_paths(dirs)


def _normalize(path: str) -> str:
    return path.rstrip("/") or "/"


def _proper_ancestors(path: str):
    """Yield the directory prefixes of a normalized path, shortest first."""
    if path == "/":
        return
    if path.startswith("/"):
        yield "/"
    start = 1 if path.startswith("/") else 0
    while (i := path.find("/", start)) != -1:
        if i > 0:
            yield path[:i]
        start = i + 1


def covering_prefixes(paths: Iterable[str]) -> list[str]:
    """Keep paths not strictly below an earlier kept path, in input order.

    Only a proper directory prefix hides a path, so repeated paths are kept.

    ``/a/b`` covers ``/a/b/c`` but not ``/a/bc``.
    """
    kept = []
    roots: set[str] = set()
    for path in paths:
        normalized = _normalize(path)
        if any(ancestor in roots for ancestor in _proper_ancestors(normalized)):
            continue
        kept.append(path)
        roots.add(normalized)
    return kept


class QueryEngine:
    """Run commands against one index, writing results to ``out``.

    Args:
        index: Loaded directory index
        out: Binary stream receiving all command output
        source: Filesystem used for live searches and ``dirnames``
        long_list_command: argv for ``ll`` (defaults to UGID_LL_COMMAND)
    """

    def __init__(
        self,
        index: IndexDB,
        out: BinaryIO,
        source: FilesystemSource | None = None,
        long_list_command: list[str] | None = None,
    ):
        self.index = index
        self.out = out
        self.source = source if source is not None else LocalFilesystem()
        self.long_list_command = long_list_command or UgidIndexConfig.ll_command()
        self.stack: list[list[str]] = []
        self.errors = SearchResult()
        self._handlers: dict[type, Callable[[Command], None]] = {
            DirectoryLookup: self._directory_lookup,
            OwnerSearch: self._owner_search,
            Dirnames: self._dirnames,
            Prefixes: self._prefixes,
            Print: lambda _: output.write_lines(self.stack, self.out),
            Print0: lambda _: output.write_nul(self.stack, self.out),
            LongList: self._long_list,
            Count: lambda _: output.write_counts(self.stack, self.out),
            ListIds: lambda command: output.write_ids(self.index, command.kind, self.out),
            Info: lambda _: output.write_info(self.index, self.out),
        }

    def execute(self, tokens: Iterable[str]) -> list[list[str]]:
        """Parse every token, then run them. Returns the final stack."""
        return self.run(parse_commands(tokens))

    def run(self, commands: Iterable[Command]) -> list[list[str]]:
        """Run already-parsed commands in order. Returns the final stack.

        Live-search errors are summarised once, after the last command or
        when a command fails.
        """
        try:
            for command in commands:
                logger.debug("Running %s", command.token)
                self._handlers[type(command)](command)
        finally:
            self.out.flush()
            self.errors.report(logger)
        return self.stack

    def _pop(self, command: Command) -> list[str]:
        if not self.stack:
            raise EmptyStackError(f"'{command.token}' needs a preceding uid, gid, uiddir or giddir")
        return self.stack.pop()

    def _directory_lookup(self, command: DirectoryLookup) -> None:
        self.stack.append(self.index.directories_for_range(command.kind, command.ids))

    def _owner_search(self, command: OwnerSearch) -> None:
        candidates = self.index.directories_for_range(command.via, command.candidates)
        result = search(command.uids, command.gids, candidates, source=self.source)
        self.errors.stat_errors.update(result.stat_errors)
        self.errors.unreadable.extend(result.unreadable)
        logger.debug(
            "%s: %d candidate directories, %d matches", command.token, len(candidates), len(result.paths)
        )
        self.stack.append(result.paths)

    def _dirnames(self, command: Dirnames) -> None:
        self.stack.append(containing_directories(self._pop(command), self.source))

    def _prefixes(self, command: Prefixes) -> None:
        self.stack.append(covering_prefixes(self._pop(command)))

    def _long_list(self, command: LongList) -> None:
        self.out.flush()
        output.long_list(self.stack, self.out, self.long_list_command)
