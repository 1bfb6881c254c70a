"""Live, non-recursive re-check of candidate directories.

The index only says which directories held matching objects at scan time.
The secondary search lists each candidate's immediate children and keeps
those whose current uid/gid satisfy both filters. Because a matching
object's directory is listed under both its uid and its gid, searching the
uid candidates or the gid candidates gives the same answer; the choice is
purely about which candidate list is shorter.
"""

import logging
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field

from ..core.index import sorted_paths
from ..core.range_filter import RangeFilter
from ..scanner.base import FilesystemSource, LocalFilesystem, join_path

logger = logging.getLogger(__name__)


@dataclass
class SearchResult:
    """Matching paths plus aggregated, non-fatal errors."""

    paths: list[str] = field(default_factory=list)
    stat_errors: Counter = field(default_factory=Counter)
    """Per-directory count of children that could not be stat'ed."""

    unreadable: list[str] = field(default_factory=list)
    """Candidate directories that could not be listed."""

    @property
    def error_count(self) -> int:
        return sum(self.stat_errors.values()) + len(self.unreadable)

    def report(self, log: logging.Logger = logger) -> None:
        """Log one summary of everything that went wrong."""
        if self.unreadable:
            log.warning(
                "%d candidate director%s could not be read (e.g. %s)",
                len(self.unreadable),
                "y" if len(self.unreadable) == 1 else "ies",
                self.unreadable[0],
            )
        if self.stat_errors:
            total = sum(self.stat_errors.values())
            worst, worst_count = self.stat_errors.most_common(1)[0]
            log.warning(
                "%d entr%s in %d director%s could not be stat'ed (most in %s: %d)",
                total,
                "y" if total == 1 else "ies",
                len(self.stat_errors),
                "y" if len(self.stat_errors) == 1 else "ies",
                worst,
                worst_count,
            )


def _as_filter(value: str | RangeFilter | None) -> RangeFilter:
    return value if isinstance(value, RangeFilter) else RangeFilter(value)


def search(
    uid_filter: str | RangeFilter | None,
    gid_filter: str | RangeFilter | None,
    directories: Iterable[str],
    source: FilesystemSource | None = None,
) -> SearchResult:
    """Find children of ``directories`` whose live uid and gid both match.

    An empty filter accepts every id.

    Args:
        uid_filter: Range expression or filter for the owner id
        gid_filter: Range expression or filter for the group id
        directories: Candidate directories, typically from the index
        source: Filesystem access (defaults to the local filesystem)

    Returns:
        SearchResult with paths sorted by byte value
    """
    uids = _as_filter(uid_filter)
    gids = _as_filter(gid_filter)
    if source is None:
        source = LocalFilesystem()

    result = SearchResult()
    found = []
    for directory in directories:
        try:
            names = source.list_children(directory)
        except OSError as e:
            logger.debug("Can't read '%s': %s", directory, e)
            result.unreadable.append(directory)
            continue

        for name in names:
            if name in (".", ".."):
                continue
            path = join_path(directory, name)
            try:
                info = source.stat(path)
            except OSError:
                result.stat_errors[directory] += 1
                continue
            if uids.matches_or_unrestricted(info.uid) and gids.matches_or_unrestricted(info.gid):
                found.append(path)

    result.paths = sorted_paths(found)
    return result
