"""Accumulate (id, directory) pairs during a walk and finalize an IndexDB."""

import os
from collections import defaultdict
from typing import BinaryIO

from ..core.index import TEXT_RECORD_END, IndexDB, ScanInfo


class IndexBuilder:
    """Owns the ``id -> directory -> count`` structure for one scan run.

    Counts record how many qualifying objects each directory held; they feed
    build statistics and the legacy text list but are not part of the index.
    """

    def __init__(self):
        self._counts: dict[str, dict[int, dict[str, int]]] = {
            "uid": defaultdict(dict),
            "gid": defaultdict(dict),
        }
        self.object_count = 0  # add() calls, one per recorded id

    def add(self, kind: str, ident: int, directory: str) -> bool:
        """Record one object of ``kind`` id ``ident`` in ``directory``.

        Returns:
            True if this (id, directory) pair was seen for the first time
        """
        dirs = self._counts[kind][ident]
        self.object_count += 1
        if directory in dirs:
            dirs[directory] += 1
            return False
        dirs[directory] = 1
        return True

    def pair_count(self, kind: str) -> int:
        """Number of distinct (id, directory) pairs recorded for ``kind``."""
        return sum(len(dirs) for dirs in self._counts[kind].values())

    def id_count(self, kind: str) -> int:
        return len(self._counts[kind])

    def finalize(self, info: ScanInfo | None = None) -> IndexDB:
        """Produce the immutable index; counts are dropped."""
        return IndexDB.from_counts(self._counts["uid"], self._counts["gid"], info)

    def write_text_list(self, stream: BinaryIO) -> int:
        """Write the legacy NUL-framed text list (``u <id>: <count>:<path>``).

        Returns:
            Number of records written
        """
        written = 0
        for kind, code in (("uid", b"u"), ("gid", b"g")):
            table = self._counts[kind]
            for ident in sorted(table):
                for directory, count in sorted(table[ident].items(), key=lambda kv: os.fsencode(kv[0])):
                    stream.write(b"%s %d: %d:%s%s" % (
                        code, ident, count, os.fsencode(directory), TEXT_RECORD_END,
                    ))
                    written += 1
        return written
