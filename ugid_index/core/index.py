"""In-memory directory-level uid/gid index.

The index maps every uid and gid seen during a scan to the directories that
directly contained at least one object with that id. Per-file detail is
deliberately not kept; it is recovered at query time by a live search of
the listed directories (see ``ugid_index.queries.search``).
"""

import logging
import os
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from .errors import CorruptIndexError
from .range_filter import RangeFilter

logger = logging.getLogger(__name__)

ID_KINDS = ("uid", "gid")

# Legacy text list record: "u <id>: <count>:<path>\0\n"
_TEXT_RECORD = re.compile(rb"([ug])\s*([0-9]+):\s*([0-9]+):(.*)", re.DOTALL)
TEXT_RECORD_END = b"\0\n"


def sorted_paths(paths: Iterable[str]) -> list[str]:
    """De-duplicate paths and sort them by their byte value."""
    return sorted(set(paths), key=os.fsencode)


@dataclass
class ScanInfo:
    """Provenance recorded alongside an index.

    All fields are passed through verbatim from the scan to the ``info``
    query command; none of them affect lookups except the two exclusion
    expressions, which drive the incomplete-result warning.
    """

    roots: list[str] = field(default_factory=list)
    excluded_uids: str | None = None
    excluded_gids: str | None = None
    scan_start: datetime | None = None
    scan_end: datetime | None = None
    command: str | None = None
    hostname: str | None = None
    euid: int | None = None
    egid: int | None = None
    mounts: str | None = None
    processes: str | None = None
    objects_scanned: int | None = None
    stat_failures: int | None = None
    unreadable_dirs: int | None = None

    def excluded(self, kind: str) -> str | None:
        """Return the exclusion expression for ``kind`` ('uid' or 'gid')."""
        return self.excluded_uids if kind == "uid" else self.excluded_gids


class IndexDB:
    """Queryable mapping from uid/gid to the directories that contain them."""

    def __init__(
        self,
        uid_index: Mapping[int, Iterable[str]] | None = None,
        gid_index: Mapping[int, Iterable[str]] | None = None,
        info: ScanInfo | None = None,
    ):
        self.uid_index: dict[int, tuple[str, ...]] = {
            int(k): tuple(sorted_paths(v)) for k, v in (uid_index or {}).items()
        }
        self.gid_index: dict[int, tuple[str, ...]] = {
            int(k): tuple(sorted_paths(v)) for k, v in (gid_index or {}).items()
        }
        self.uids: list[int] = sorted(self.uid_index)
        self.gids: list[int] = sorted(self.gid_index)
        self.info = info if info is not None else ScanInfo()

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_counts(
        cls,
        uid_counts: Mapping[int, Mapping[str, int]],
        gid_counts: Mapping[int, Mapping[str, int]],
        info: ScanInfo | None = None,
    ) -> "IndexDB":
        """Build an index from ``id -> directory -> count`` accumulations.

        Counts are only used for build statistics and are dropped here.
        """
        return cls(
            {uid: dirs.keys() for uid, dirs in uid_counts.items()},
            {gid: dirs.keys() for gid, dirs in gid_counts.items()},
            info,
        )

    @classmethod
    def from_text_list(cls, path: Path, info: ScanInfo | None = None) -> "IndexDB":
        """Read a legacy NUL-framed text list produced by ``scan --text-list``.

        Raises:
            CorruptIndexError: If the file cannot be read or a record is malformed
        """
        try:
            data = Path(path).read_bytes()
        except OSError as e:
            raise CorruptIndexError(f"Can't read '{path}': {e.strerror}") from e

        records = data.split(TEXT_RECORD_END)
        if records[-1]:
            raise CorruptIndexError(f"Unterminated record at end of '{path}'")

        uid_index: dict[int, list[str]] = {}
        gid_index: dict[int, list[str]] = {}
        for record in records[:-1]:
            match = _TEXT_RECORD.fullmatch(record)
            if not match:
                raise CorruptIndexError(
                    f"Unexpected record in '{path}': {record[:80]!r}"
                )
            kind, ident, _count, dirpath = match.groups()
            target = uid_index if kind == b"u" else gid_index
            target.setdefault(int(ident), []).append(os.fsdecode(dirpath))

        index = cls(uid_index, gid_index, info)
        logger.info(
            "Read text list '%s' (%d uids, %d gids)", path, len(index.uids), len(index.gids)
        )
        return index

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def ids(self, kind: str) -> list[int]:
        return self.uids if kind == "uid" else self.gids

    def directories(self, kind: str, ident: int) -> tuple[str, ...]:
        table = self.uid_index if kind == "uid" else self.gid_index
        return table.get(ident, ())

    def directories_for_range(self, kind: str, range_expr: str | RangeFilter | None) -> list[str]:
        """List directories holding objects whose ``kind`` id is in the range.

        An empty range selects every indexed id. If the scan excluded some
        ids of this kind and the query reaches into them, a warning is
        logged; the result is not altered.
        """
        if kind not in ID_KINDS:
            raise ValueError(f"Unknown id kind: {kind}")
        query = range_expr if isinstance(range_expr, RangeFilter) else RangeFilter(range_expr)
        self._warn_if_excluded(kind, query)

        table = self.uid_index if kind == "uid" else self.gid_index
        selected = [ident for ident in self.ids(kind) if query.matches_or_unrestricted(ident)]
        return sorted_paths(d for ident in selected for d in table[ident])

    def directories_for_uid_range(self, range_expr: str | RangeFilter | None) -> list[str]:
        return self.directories_for_range("uid", range_expr)

    def directories_for_gid_range(self, range_expr: str | RangeFilter | None) -> list[str]:
        return self.directories_for_range("gid", range_expr)

    def count_entries(self) -> tuple[int, int]:
        """Return the number of (id, directory) entries for uids and gids."""
        uid_dirs = sum(len(dirs) for dirs in self.uid_index.values())
        gid_dirs = sum(len(dirs) for dirs in self.gid_index.values())
        return uid_dirs, gid_dirs

    def _warn_if_excluded(self, kind: str, query: RangeFilter) -> None:
        excluded_expr = self.info.excluded(kind)
        if excluded_expr is None:
            return
        excluded = RangeFilter(excluded_expr)
        not_in_index = [v for v in query.boundary_values() if excluded.matches(v)]
        if not_in_index:
            logger.warning(
                "%ss %s were excluded during scan, which includes %s; "
                "results may be incomplete",
                kind,
                excluded_expr,
                ", ".join(str(v) for v in not_in_index),
            )

    def __eq__(self, other) -> bool:
        if not isinstance(other, IndexDB):
            return NotImplemented
        return (
            self.uid_index == other.uid_index
            and self.gid_index == other.gid_index
            and self.info == other.info
        )

    def __repr__(self):
        uid_dirs, gid_dirs = self.count_entries()
        return (
            f"<IndexDB(uids={len(self.uids)}, gids={len(self.gids)}, "
            f"uid_dirs={uid_dirs}, gid_dirs={gid_dirs})>"
        )
