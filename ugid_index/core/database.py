"""Persist and load the directory-level index as a SQLite database.

Writers build the database under a temporary name in the destination
directory and rename it into place, so concurrent readers only ever see a
complete index. Readers open the file read-only.
"""

import logging
import os
import sqlite3
from pathlib import Path

from sqlalchemy import Engine, create_engine, insert, inspect, select, text
from sqlalchemy.exc import DatabaseError, StatementError
from sqlalchemy.orm import sessionmaker

from .errors import CorruptIndexError
from .index import IndexDB, ScanInfo
from .models import FORMAT_VERSION, Base, IndexEntry, ScanMetadata

logger = logging.getLogger(__name__)

BATCH_SIZE = 10000

_KIND_CODES = {"uid": "u", "gid": "g"}


def get_engine(index_path: Path, echo: bool = False, read_only: bool = False) -> Engine:
    """Create a SQLAlchemy engine for an index file.

    Args:
        index_path: Path to the SQLite index file
        echo: If True, log all SQL statements
        read_only: Open with SQLite's ``mode=ro`` so the file is never modified

    Returns:
        SQLAlchemy Engine instance
    """
    if read_only:
        uri = f"{Path(index_path).resolve().as_uri()}?mode=ro"
        return create_engine(
            "sqlite://",
            echo=echo,
            creator=lambda: sqlite3.connect(uri, uri=True),
        )
    return create_engine(f"sqlite:///{index_path}", echo=echo)


def configure_sqlite_pragmas(session):
    """
    Configure SQLite for fast bulk insertion into a private temporary file.
    Durability is restored by fsync() before the file is renamed into place.
    """
    session.execute(text("PRAGMA synchronous = OFF"))
    session.execute(text("PRAGMA journal_mode = MEMORY"))
    session.execute(text("PRAGMA temp_store = MEMORY"))
    session.execute(text("PRAGMA cache_size = -64000"))  # 64MB cache


def _temporary_path(index_path: Path) -> Path:
    return index_path.with_name(f".{index_path.name}.tmp-{os.getpid()}")


def _metadata_row(info: ScanInfo) -> ScanMetadata:
    return ScanMetadata(
        format_version=FORMAT_VERSION,
        roots=b"\0".join(os.fsencode(r) for r in info.roots),
        excluded_uids=info.excluded_uids,
        excluded_gids=info.excluded_gids,
        scan_start=info.scan_start,
        scan_end=info.scan_end,
        command=info.command,
        hostname=info.hostname,
        euid=info.euid,
        egid=info.egid,
        mounts=info.mounts,
        processes=info.processes,
        objects_scanned=info.objects_scanned,
        stat_failures=info.stat_failures,
        unreadable_dirs=info.unreadable_dirs,
    )


def _scan_info(row: ScanMetadata) -> ScanInfo:
    return ScanInfo(
        roots=[os.fsdecode(r) for r in row.roots.split(b"\0")] if row.roots else [],
        excluded_uids=row.excluded_uids,
        excluded_gids=row.excluded_gids,
        scan_start=row.scan_start,
        scan_end=row.scan_end,
        command=row.command,
        hostname=row.hostname,
        euid=row.euid,
        egid=row.egid,
        mounts=row.mounts,
        processes=row.processes,
        objects_scanned=row.objects_scanned,
        stat_failures=row.stat_failures,
        unreadable_dirs=row.unreadable_dirs,
    )


def _entry_batches(index: IndexDB):
    batch: list[dict] = []
    for kind in ("uid", "gid"):
        code = _KIND_CODES[kind]
        for ident in index.ids(kind):
            for path in index.directories(kind, ident):
                batch.append({"kind": code, "ident": ident, "path": os.fsencode(path)})
                if len(batch) >= BATCH_SIZE:
                    yield batch
                    batch = []
    if batch:
        yield batch


def persist(index: IndexDB, index_path: Path, echo: bool = False) -> Path:
    """Write ``index`` to ``index_path``, replacing any existing file atomically.

    Returns:
        The final index path
    """
    index_path = Path(index_path)
    index_path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = _temporary_path(index_path)
    tmp_path.unlink(missing_ok=True)

    engine = get_engine(tmp_path, echo=echo)
    try:
        Base.metadata.create_all(engine)
        Session = sessionmaker(bind=engine)
        with Session() as session:
            configure_sqlite_pragmas(session)
            for batch in _entry_batches(index):
                session.execute(insert(IndexEntry), batch)
            session.add(_metadata_row(index.info))
            session.commit()
        engine.dispose()

        with open(tmp_path, "rb") as f:
            os.fsync(f.fileno())
        os.replace(tmp_path, index_path)
    except BaseException:
        engine.dispose()
        tmp_path.unlink(missing_ok=True)
        raise

    uid_dirs, gid_dirs = index.count_entries()
    logger.info(
        "Wrote index '%s' (%d uids, %d gids, %d + %d directory entries)",
        index_path, len(index.uids), len(index.gids), uid_dirs, gid_dirs,
    )
    return index_path


def load(index_path: Path, echo: bool = False) -> IndexDB:
    """Load an index written by :func:`persist`.

    Raises:
        CorruptIndexError: If the file is missing, not an index, or malformed
    """
    index_path = Path(index_path)
    if not index_path.is_file():
        raise CorruptIndexError(f"Index not found: {index_path}")

    engine = get_engine(index_path, echo=echo, read_only=True)
    try:
        tables = set(inspect(engine).get_table_names())
        missing = {IndexEntry.__tablename__, ScanMetadata.__tablename__} - tables
        if missing:
            raise CorruptIndexError(
                f"'{index_path}' is not a ugid index (missing tables: {', '.join(sorted(missing))})"
            )

        Session = sessionmaker(bind=engine)
        with Session() as session:
            rows = session.scalars(select(ScanMetadata)).all()
            if len(rows) != 1:
                raise CorruptIndexError(
                    f"'{index_path}' has {len(rows)} scan metadata rows, expected 1"
                )
            if rows[0].format_version != FORMAT_VERSION:
                raise CorruptIndexError(
                    f"'{index_path}' has format version {rows[0].format_version}, "
                    f"expected {FORMAT_VERSION}"
                )
            info = _scan_info(rows[0])

            uid_index: dict[int, list[str]] = {}
            gid_index: dict[int, list[str]] = {}
            result = session.execute(
                select(IndexEntry.kind, IndexEntry.ident, IndexEntry.path)
            )
            for kind, ident, path in result:
                if kind == "u":
                    target = uid_index
                elif kind == "g":
                    target = gid_index
                else:
                    raise CorruptIndexError(f"'{index_path}' has an entry of unknown kind {kind!r}")
                if not isinstance(ident, int) or ident < 0:
                    raise CorruptIndexError(f"'{index_path}' has an invalid id {ident!r}")
                if not isinstance(path, bytes) or not path:
                    raise CorruptIndexError(f"'{index_path}' has an invalid path for id {ident}")
                target.setdefault(ident, []).append(os.fsdecode(path))
    except (DatabaseError, StatementError) as e:
        raise CorruptIndexError(f"Can't read index '{index_path}': {e.orig or e}") from e
    finally:
        engine.dispose()

    index = IndexDB(uid_index, gid_index, info)
    logger.debug("Loaded %r from '%s'", index, index_path)
    return index
