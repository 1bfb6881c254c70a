"""Writers for query output.

Paths are written as raw bytes (``os.fsencode``) so names that aren't valid
UTF-8 come out exactly as they are on disk.
"""

import logging
import os
import subprocess
from collections.abc import Sequence
from typing import BinaryIO

from ..core.errors import EmbeddedNewlineError, UgidIndexError
from ..core.index import IndexDB

logger = logging.getLogger(__name__)


def write_lines(stack: Sequence[Sequence[str]], out: BinaryIO) -> int:
    """Write every path, one per line, bottom of the stack first.

    Paths already written stay written when a later path is rejected.

    Raises:
        EmbeddedNewlineError: On the first path containing a line feed
    """
    written = 0
    for paths in stack:
        for path in paths:
            raw = os.fsencode(path)
            if b"\n" in raw:
                raise EmbeddedNewlineError(path)
            out.write(raw + b"\n")
            written += 1
    return written


def write_nul(stack: Sequence[Sequence[str]], out: BinaryIO) -> int:
    """Write every path NUL terminated."""
    written = 0
    for paths in stack:
        for path in paths:
            out.write(os.fsencode(path) + b"\0")
            written += 1
    return written


def write_counts(stack: Sequence[Sequence[str]], out: BinaryIO) -> None:
    """Write the number of paths in each stack entry, one per line."""
    for paths in stack:
        out.write(b"%d\n" % len(paths))


def long_list(stack: Sequence[Sequence[str]], out: BinaryIO, command: Sequence[str]) -> None:
    """Pipe the NUL-terminated path stream through ``command``.

    The command's standard output is copied to ``out``; its standard error
    is left attached to ours.
    """
    data = b"".join(os.fsencode(path) + b"\0" for paths in stack for path in paths)
    if not data:
        return
    try:
        result = subprocess.run(list(command), input=data, stdout=subprocess.PIPE)
    except OSError as e:
        raise UgidIndexError(f"Can't run long-listing command {command[0]!r}: {e}") from e
    out.write(result.stdout)
    if result.returncode != 0:
        # ls exits non-zero when a listed path vanished since the search
        logger.warning("%s exited with status %d", command[0], result.returncode)


def write_ids(index: IndexDB, kind: str, out: BinaryIO) -> None:
    """Write each indexed id of ``kind`` with its number of directories."""
    for ident in index.ids(kind):
        out.write(b"%d\t%d\n" % (ident, len(index.directories(kind, ident))))


def _field(value) -> bytes:
    if value is None:
        return b"-"
    if isinstance(value, bytes):
        return value
    return os.fsencode(str(value))


def write_info(index: IndexDB, out: BinaryIO) -> None:
    """Write the scan provenance verbatim, one ``name: value`` per line.

    Multi-line snapshots (mount table, process list) follow their header
    line unchanged.
    """
    info = index.info
    uid_dirs, gid_dirs = index.count_entries()
    duration = None
    if info.scan_start is not None and info.scan_end is not None:
        duration = info.scan_end - info.scan_start

    fields = [
        ("roots", " ".join(info.roots) if info.roots else None),
        ("command", info.command),
        ("hostname", info.hostname),
        ("euid", info.euid),
        ("egid", info.egid),
        ("scan start", info.scan_start),
        ("scan end", info.scan_end),
        ("scan duration", duration),
        ("excluded uids", info.excluded_uids),
        ("excluded gids", info.excluded_gids),
        ("objects scanned", info.objects_scanned),
        ("stat failures", info.stat_failures),
        ("unreadable directories", info.unreadable_dirs),
        ("uids", len(index.uids)),
        ("gids", len(index.gids)),
        ("uid directory entries", uid_dirs),
        ("gid directory entries", gid_dirs),
    ]
    for name, value in fields:
        out.write(name.encode() + b": " + _field(value) + b"\n")

    for name, text in (("mounts", info.mounts), ("processes", info.processes)):
        if text:
            out.write(name.encode() + b":\n" + os.fsencode(text))
            if not text.endswith("\n"):
                out.write(b"\n")
