"""Query command language.

A query is a sequence of command-line words, each one command:

    uiddir=RANGE        push directories indexed under uids in RANGE
    giddir=RANGE        push directories indexed under gids in RANGE
    uid=UIDS[:GIDS]     push live objects, searching the uid directories
    gid=[UIDS:]GIDS     push live objects, searching the gid directories
    dirnames            replace the top list with its containing directories
    prefixes            drop entries below an earlier entry (proper prefix)
    print | print0      write every list, newline or NUL terminated
    ll                  long-list every path with an external command
    count               write the length of every list
    uids | gids         list indexed ids with their directory counts
    info                show scan provenance

All words are parsed up front, so a typo at the end of a query fails before
any output is produced.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass

from ..core.errors import (
    CommandSyntaxError,
    EmptyStackError,
    UnknownCommandError,
)
from ..core.range_filter import RangeFilter

SELECTION = "selection"
FILTER = "filter"
OUTPUT = "output"
INFORMATION = "information"


@dataclass(frozen=True)
class Command:
    """Base class; ``token`` is the word the command was parsed from."""

    token: str

    category = OUTPUT


@dataclass(frozen=True)
class DirectoryLookup(Command):
    """``uiddir=`` / ``giddir=``: directories straight from the index."""

    kind: str
    ids: RangeFilter

    category = SELECTION


@dataclass(frozen=True)
class OwnerSearch(Command):
    """``uid=`` / ``gid=``: live search of the ``via`` side's directories."""

    via: str
    uids: RangeFilter
    gids: RangeFilter

    category = SELECTION

    @property
    def candidates(self) -> RangeFilter:
        return self.uids if self.via == "uid" else self.gids


@dataclass(frozen=True)
class Dirnames(Command):
    category = FILTER


@dataclass(frozen=True)
class Prefixes(Command):
    category = FILTER


@dataclass(frozen=True)
class Print(Command):
    pass


@dataclass(frozen=True)
class Print0(Command):
    pass


@dataclass(frozen=True)
class LongList(Command):
    pass


@dataclass(frozen=True)
class Count(Command):
    pass


@dataclass(frozen=True)
class ListIds(Command):
    kind: str

    category = INFORMATION


@dataclass(frozen=True)
class Info(Command):
    category = INFORMATION


def _directory_lookup(kind: str) -> Callable[[str, str | None], Command]:
    def build(token: str, arg: str | None) -> Command:
        if arg is None:
            raise CommandSyntaxError(token, f"expected {kind}dir=RANGE")
        if ":" in arg:
            raise CommandSyntaxError(token, f"{kind}dir takes a single range")
        return DirectoryLookup(token, kind, RangeFilter(arg))

    return build


def _owner_search(via: str) -> Callable[[str, str | None], Command]:
    def build(token: str, arg: str | None) -> Command:
        if arg is None:
            usage = "uid=UIDS[:GIDS]" if via == "uid" else "gid=[UIDS:]GIDS"
            raise CommandSyntaxError(token, f"expected {usage}")
        parts = arg.split(":")
        if len(parts) > 2:
            raise CommandSyntaxError(token, "at most two ranges separated by ':'")
        if len(parts) == 1:
            # A lone range constrains the side being searched
            uids, gids = (parts[0], "") if via == "uid" else ("", parts[0])
        else:
            uids, gids = parts
        return OwnerSearch(token, via, RangeFilter(uids), RangeFilter(gids))

    return build


def _no_argument(factory: Callable[[str], Command]) -> Callable[[str, str | None], Command]:
    def build(token: str, arg: str | None) -> Command:
        if arg is not None:
            raise CommandSyntaxError(token, "takes no argument")
        return factory(token)

    return build


_COMMANDS: dict[str, Callable[[str, str | None], Command]] = {
    "uiddir": _directory_lookup("uid"),
    "giddir": _directory_lookup("gid"),
    "uid": _owner_search("uid"),
    "gid": _owner_search("gid"),
    "dirnames": _no_argument(Dirnames),
    "prefixes": _no_argument(Prefixes),
    "print": _no_argument(Print),
    "print0": _no_argument(Print0),
    "ll": _no_argument(LongList),
    "count": _no_argument(Count),
    "uids": _no_argument(lambda token: ListIds(token, "uid")),
    "gids": _no_argument(lambda token: ListIds(token, "gid")),
    "info": _no_argument(Info),
}


def command_names() -> list[str]:
    return sorted(_COMMANDS)


def parse_command(token: str) -> Command:
    """Parse one word into a typed command.

    Raises:
        UnknownCommandError: If the word names no command
        CommandSyntaxError: If the command's arguments are malformed
    """
    name, sep, arg = token.partition("=")
    build = _COMMANDS.get(name)
    if build is None:
        raise UnknownCommandError(token)
    return build(token, arg if sep else None)


def parse_commands(tokens: Iterable[str]) -> list[Command]:
    """Parse and validate a whole query before anything runs.

    Raises:
        UnknownCommandError: If any word names no command
        CommandSyntaxError: If any command's arguments are malformed
        InvalidExpressionError: If any range expression is malformed
        EmptyStackError: If a filter would run with nothing on the stack
    """
    commands = []
    depth = 0
    for token in tokens:
        command = parse_command(token)
        if command.category == SELECTION:
            depth += 1
        elif command.category == FILTER and depth == 0:
            raise EmptyStackError(f"'{token}' needs a preceding uid, gid, uiddir or giddir")
        commands.append(command)
    return commands
