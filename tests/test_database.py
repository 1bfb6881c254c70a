"""Tests for persisting and loading the SQLite index."""

import sqlite3
from datetime import datetime

import pytest
from sqlalchemy import text, update
from sqlalchemy.orm import Session

from ugid_index.core.database import get_engine, load, persist
from ugid_index.core.errors import CorruptIndexError
from ugid_index.core.index import IndexDB, ScanInfo
from ugid_index.core.models import FORMAT_VERSION, ScanMetadata


@pytest.fixture
def full_info():
    """ScanInfo with every field populated."""
    return ScanInfo(
        roots=["/gpfs/fs1", "/gpfs/fs2"],
        excluded_uids="0-999",
        excluded_gids="0",
        scan_start=datetime(2024, 3, 1, 2, 0, 0),
        scan_end=datetime(2024, 3, 1, 5, 30, 15),
        command="ugid-index scan /gpfs/fs1 /gpfs/fs2 -U 0-999 -G 0",
        hostname="scanhost",
        euid=0,
        egid=0,
        mounts="fs1 /gpfs/fs1 gpfs rw 0 0\nfs2 /gpfs/fs2 gpfs rw 0 0\n",
        processes="  PID USER     ELAPSED COMMAND\n    1 root  10-00:00:00 init\n",
        objects_scanned=123456,
        stat_failures=3,
        unreadable_dirs=1,
    )


@pytest.fixture
def written_index(tmp_path, sample_index):
    """Persist the sample index and return its path."""
    return persist(sample_index, tmp_path / "idx.db")


# ============================================================================
# Round trip
# ============================================================================


class TestRoundTrip:
    """Tests that persist() followed by load() preserves everything."""

    def test_sample_index(self, written_index, sample_index):
        assert load(written_index) == sample_index

    def test_full_provenance(self, tmp_path, sample_index, full_info):
        index = IndexDB(
            {u: sample_index.directories("uid", u) for u in sample_index.uids},
            {g: sample_index.directories("gid", g) for g in sample_index.gids},
            full_info,
        )
        loaded = load(persist(index, tmp_path / "idx.db"))
        assert loaded.info == full_info
        assert loaded == index

    def test_empty_index(self, tmp_path):
        loaded = load(persist(IndexDB(), tmp_path / "idx.db"))
        assert loaded == IndexDB()

    def test_unusual_paths(self, tmp_path):
        """Non-UTF-8 bytes, newlines and spaces survive exactly."""
        odd = ["/d/\udcff\udcfe", "/d/with\nnewline", "/d/with space"]
        index = IndexDB(uid_index={1: odd}, gid_index={2: odd})
        loaded = load(persist(index, tmp_path / "idx.db"))
        assert set(loaded.directories("uid", 1)) == set(odd)
        assert loaded == index

    def test_large_ids(self, tmp_path):
        index = IndexDB(uid_index={4294967294: ["/n"]})
        assert load(persist(index, tmp_path / "idx.db")).uids == [4294967294]

    def test_many_entries_span_batches(self, tmp_path, monkeypatch):
        monkeypatch.setattr("ugid_index.core.database.BATCH_SIZE", 7)
        index = IndexDB(uid_index={u: [f"/p/{u}/{i}" for i in range(3)] for u in range(20)})
        assert load(persist(index, tmp_path / "idx.db")) == index


# ============================================================================
# Atomic replacement
# ============================================================================


class TestPersist:
    """Tests for how persist() writes the file."""

    def test_creates_parent_directories(self, tmp_path, sample_index):
        path = persist(sample_index, tmp_path / "nested" / "dir" / "idx.db")
        assert path.is_file()

    def test_no_temporary_left_behind(self, tmp_path, written_index):
        assert sorted(p.name for p in tmp_path.iterdir()) == ["idx.db"]

    def test_replaces_existing(self, tmp_path, written_index):
        replacement = IndexDB(uid_index={42: ["/new"]})
        persist(replacement, written_index)
        assert load(written_index) == replacement

    def test_failed_write_keeps_old_index(self, tmp_path, written_index, sample_index, monkeypatch):
        def broken_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr("ugid_index.core.database.os.replace", broken_replace)
        with pytest.raises(OSError, match="disk full"):
            persist(IndexDB(uid_index={1: ["/x"]}), written_index)

        monkeypatch.undo()
        assert load(written_index) == sample_index
        assert sorted(p.name for p in tmp_path.iterdir()) == ["idx.db"]

    def test_format_version_recorded(self, written_index):
        with sqlite3.connect(written_index) as conn:
            (version,) = conn.execute("SELECT format_version FROM scan_metadata").fetchone()
        assert version == FORMAT_VERSION


# ============================================================================
# Loading damaged or foreign files
# ============================================================================


class TestLoadErrors:
    """Tests that load() reports every kind of bad file as CorruptIndexError."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(CorruptIndexError, match="not found"):
            load(tmp_path / "absent.db")

    def test_not_sqlite(self, tmp_path):
        path = tmp_path / "junk.db"
        path.write_bytes(b"this is not a database" * 100)
        with pytest.raises(CorruptIndexError):
            load(path)

    def test_foreign_sqlite_database(self, tmp_path):
        path = tmp_path / "other.db"
        with sqlite3.connect(path) as conn:
            conn.execute("CREATE TABLE something (x INTEGER)")
        with pytest.raises(CorruptIndexError, match="missing tables"):
            load(path)

    def test_wrong_format_version(self, written_index):
        engine = get_engine(written_index)
        with Session(engine) as session:
            session.execute(update(ScanMetadata).values(format_version=FORMAT_VERSION + 1))
            session.commit()
        engine.dispose()
        with pytest.raises(CorruptIndexError, match="format version"):
            load(written_index)

    def test_duplicate_metadata(self, written_index):
        with sqlite3.connect(written_index) as conn:
            conn.execute(
                "INSERT INTO scan_metadata (format_version, roots) VALUES (?, ?)",
                (FORMAT_VERSION, b""),
            )
        with pytest.raises(CorruptIndexError, match="2 scan metadata rows"):
            load(written_index)

    def test_bad_kind(self, written_index):
        with sqlite3.connect(written_index) as conn:
            conn.execute("PRAGMA ignore_check_constraints = ON")
            conn.execute(
                "INSERT INTO index_entries (kind, ident, path) VALUES ('x', 1, ?)", (b"/p",)
            )
        with pytest.raises(CorruptIndexError, match="unknown kind"):
            load(written_index)

    def test_load_is_read_only(self, written_index):
        """Loading never modifies the file."""
        before = written_index.read_bytes()
        load(written_index)
        assert written_index.read_bytes() == before

    def test_read_only_engine_rejects_writes(self, written_index):
        engine = get_engine(written_index, read_only=True)
        try:
            with engine.connect() as conn:
                with pytest.raises(Exception, match="readonly"):
                    conn.execute(text("DELETE FROM index_entries"))
        finally:
            engine.dispose()
