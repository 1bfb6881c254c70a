"""Walk directory trees and accumulate the directory-level uid/gid index.

For every object found below the scan roots, the walker records the pair
(uid, containing directory) and (gid, containing directory), unless the id
is excluded. Snapshot directories are pruned, NFS silly-rename placeholders
are ignored and symbolic links are never followed.

Per-object failures (vanished files, permission denied) and unreadable
directories are counted in WalkStats, never raised: a scan can run for
hours over a live filesystem and races are expected.
"""

import logging
import os
import re
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import BinaryIO

from ..core.range_filter import RangeFilter
from .base import FilesystemSource, LocalFilesystem, join_path
from .builder import IndexBuilder
from .progress import ProgressReporter

logger = logging.getLogger(__name__)

# Stale NFS file handles left behind by the client's silly-rename
TRANSIENT_NAME_PATTERN = re.compile(r"\.nfs[0-9A-Fa-f]{8,}")

DEFAULT_SNAPSHOT_NAME = ".snapshot"

_UNUSUAL_BYTES = re.compile(rb"[^\x20-\x7e]")


@dataclass(frozen=True)
class PathRewrite:
    """Replace the first occurrence of ``old`` with ``new`` in a path.

    Used to fold snapshot-relative paths back to their live location, e.g.
    ``/fs/.snapshots/daily/`` -> ``/fs/``.
    """

    old: str
    new: str

    @classmethod
    def parse(cls, text: str) -> "PathRewrite":
        """Parse ``OLD=NEW``."""
        old, sep, new = text.partition("=")
        if not sep or not old:
            raise ValueError(f"Invalid rewrite '{text}', expected OLD=NEW")
        return cls(old, new)

    def __call__(self, path: str) -> str:
        return path.replace(self.old, self.new, 1)


@dataclass
class WalkStats:
    """Counters for one walk; summarised once at the end of a scan."""

    objects: int = 0
    directories: int = 0
    stat_failures: int = 0
    unreadable_dirs: int = 0
    transient_skipped: int = 0
    snapshots_pruned: int = 0
    unusual_names: int = 0
    missing_roots: list[str] = field(default_factory=list)
    elapsed: float = 0.0


class Walker:
    """Depth-first traversal feeding an :class:`IndexBuilder`.

    Args:
        source: Filesystem access (defaults to the local filesystem)
        exclude_uids: Objects whose uid matches are not recorded by uid
        exclude_gids: Objects whose gid matches are not recorded by gid
        rewrite: Optional one-shot rewrite applied to containing directories
        snapshot_name: Directory name that is never recorded or descended
        unusual_sink: Binary stream receiving NUL-terminated paths whose
            names contain bytes outside printable ASCII
        on_new_pair: Called as ``(kind, id, directory)`` the first time a
            pair is recorded
        progress: Reporter consulted between object visits
    """

    def __init__(
        self,
        source: FilesystemSource | None = None,
        exclude_uids: RangeFilter | None = None,
        exclude_gids: RangeFilter | None = None,
        rewrite: PathRewrite | None = None,
        snapshot_name: str | None = DEFAULT_SNAPSHOT_NAME,
        transient_pattern: re.Pattern | None = TRANSIENT_NAME_PATTERN,
        unusual_sink: BinaryIO | None = None,
        on_new_pair: Callable[[str, int, str], None] | None = None,
        progress: ProgressReporter | None = None,
    ):
        self.source = source if source is not None else LocalFilesystem()
        self.exclude_uids = exclude_uids if exclude_uids is not None else RangeFilter()
        self.exclude_gids = exclude_gids if exclude_gids is not None else RangeFilter()
        self.rewrite = rewrite
        self.snapshot_name = snapshot_name
        self.transient_pattern = transient_pattern
        self.unusual_sink = unusual_sink
        self.on_new_pair = on_new_pair
        self.progress = progress
        self.builder = IndexBuilder()
        self.stats = WalkStats()
        self._current = ""

    def walk(self, roots: Iterable[str]) -> WalkStats:
        """Scan every root, accumulating into ``self.builder``."""
        start = time.monotonic()
        for root in roots:
            root = root.rstrip("/") or "/"
            if not self.source.is_directory(root):
                logger.warning("Skipping '%s': not a readable directory", root)
                self.stats.missing_roots.append(root)
                continue
            logger.info("Scanning '%s'", root)
            self._walk_tree(root)
        self.stats.elapsed = time.monotonic() - start
        return self.stats

    def _walk_tree(self, root: str) -> None:
        pending = [root]
        while pending:
            directory = pending.pop()
            self._current = directory
            try:
                names = self.source.list_children(directory)
            except OSError as e:
                logger.debug("Can't read directory '%s': %s", directory, e)
                self.stats.unreadable_dirs += 1
                continue
            self.stats.directories += 1
            indexed_dir = self.rewrite(directory) if self.rewrite else directory

            for name in names:
                if self.progress is not None:
                    self.progress.tick(self.describe)
                child = self._visit(directory, indexed_dir, name)
                if child is not None:
                    pending.append(child)

    def _visit(self, directory: str, indexed_dir: str, name: str) -> str | None:
        """Record one object; return its path if it should be descended."""
        if name in (".", ".."):
            return None
        if self.transient_pattern is not None and self.transient_pattern.match(name):
            self.stats.transient_skipped += 1
            return None

        path = join_path(directory, name)
        try:
            info = self.source.stat(path)
        except OSError:
            self.stats.stat_failures += 1
            return None
        self.stats.objects += 1

        if info.is_dir and name == self.snapshot_name:
            self.stats.snapshots_pruned += 1
            return None

        if not self.exclude_uids.matches(info.uid):
            self._record("uid", info.uid, indexed_dir)
        if not self.exclude_gids.matches(info.gid):
            self._record("gid", info.gid, indexed_dir)

        if self.unusual_sink is not None:
            if _UNUSUAL_BYTES.search(os.fsencode(name)):
                self.unusual_sink.write(os.fsencode(path) + b"\0")
                self.stats.unusual_names += 1

        return path if info.is_dir else None

    def _record(self, kind: str, ident: int, directory: str) -> None:
        if self.builder.add(kind, ident, directory) and self.on_new_pair is not None:
            self.on_new_pair(kind, ident, directory)

    def describe(self) -> str:
        """One-line progress summary."""
        return (
            f"{self.stats.objects:,} objects in {self.stats.directories:,} directories, "
            f"{self.builder.pair_count('uid'):,} uid / {self.builder.pair_count('gid'):,} gid "
            f"entries; at {self._current}"
        )
