"""SQLAlchemy ORM models for the persisted uid/gid directory index."""

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Column,
    DateTime,
    Index,
    Integer,
    LargeBinary,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Bumped whenever the table layout changes incompatibly
FORMAT_VERSION = 1


class IndexEntry(Base):
    """One (id, directory) pair of the directory-level index.

    Example data:
        kind | ident | path
        u    | 500   | /gpfs/csfs1/asp/userA
        u    | 500   | /gpfs/csfs1/asp/userA/run1
        g    | 100   | /gpfs/csfs1/asp/userA
    """

    __tablename__ = "index_entries"

    kind = Column(String(1), primary_key=True)  # 'u' or 'g'
    ident = Column(BigInteger, primary_key=True)
    path = Column(LargeBinary, primary_key=True)  # os.fsencode(path)

    __table_args__ = (
        CheckConstraint("kind IN ('u', 'g')", name="ck_entry_kind"),
        CheckConstraint("ident >= 0", name="ck_entry_ident"),
        Index("ix_entries_kind_ident", "kind", "ident"),
    )

    def __repr__(self):
        return f"<IndexEntry(kind='{self.kind}', ident={self.ident}, path='{self.path}')>"


class ScanMetadata(Base):
    """Scan provenance stored with the index (one row per index file).

    Everything except ``format_version`` is passed through verbatim to the
    ``info`` query command.
    """

    __tablename__ = "scan_metadata"

    scan_id = Column(Integer, primary_key=True, autoincrement=True)
    format_version = Column(Integer, nullable=False, default=FORMAT_VERSION)
    roots = Column(LargeBinary)  # NUL-separated, os.fsencode()d
    excluded_uids = Column(Text)
    excluded_gids = Column(Text)
    scan_start = Column(DateTime)
    scan_end = Column(DateTime)
    command = Column(Text)
    hostname = Column(Text)
    euid = Column(Integer)
    egid = Column(Integer)
    mounts = Column(Text)
    processes = Column(Text)

    # Walk statistics
    objects_scanned = Column(BigInteger)
    stat_failures = Column(BigInteger)
    unreadable_dirs = Column(BigInteger)

    def __repr__(self):
        return (
            f"<ScanMetadata(scan_id={self.scan_id}, "
            f"hostname='{self.hostname}', scan_end={self.scan_end})>"
        )
