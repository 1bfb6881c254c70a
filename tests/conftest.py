"""Shared fixtures for ugid_index tests."""

import logging
import os
from collections import defaultdict

import pytest

from ugid_index.core.index import IndexDB, ScanInfo
from ugid_index.scanner.base import FilesystemSource, ObjectInfo, join_path


class MemoryFilesystem(FilesystemSource):
    """In-memory filesystem with arbitrary ownership.

    Parent directories are created on demand, owned by 0:0. Paths listed in
    ``unreadable`` fail list_children(); paths in ``unstatable`` fail stat().
    """

    def __init__(self):
        self.objects: dict[str, ObjectInfo] = {"/": ObjectInfo(0, 0, is_dir=True)}
        self.children: dict[str, set[str]] = defaultdict(set)
        self.unreadable: set[str] = set()
        self.unstatable: set[str] = set()

    def add(self, path: str, uid: int, gid: int, is_dir: bool = False):
        parent, name = os.path.split(path)
        if parent not in self.objects:
            self.add(parent, 0, 0, is_dir=True)
        self.objects[path] = ObjectInfo(uid, gid, is_dir=is_dir)
        self.children[parent].add(name)
        return self

    def mkdir(self, path: str, uid: int = 0, gid: int = 0):
        return self.add(path, uid, gid, is_dir=True)

    def remove(self, path: str):
        parent, name = os.path.split(path)
        del self.objects[path]
        self.children[parent].discard(name)

    def list_children(self, path: str) -> list[str]:
        if path in self.unreadable:
            raise PermissionError(13, "Permission denied", path)
        info = self.objects.get(path)
        if info is None:
            raise FileNotFoundError(2, "No such file or directory", path)
        if not info.is_dir:
            raise NotADirectoryError(20, "Not a directory", path)
        return sorted(self.children[path])

    def stat(self, path: str) -> ObjectInfo:
        if path in self.unstatable or path not in self.objects:
            raise FileNotFoundError(2, "No such file or directory", path)
        return self.objects[path]

    def all_paths_in(self, directory: str) -> list[str]:
        return [join_path(directory, name) for name in sorted(self.children[directory])]


@pytest.fixture
def memfs():
    """Empty in-memory filesystem (just '/')."""
    return MemoryFilesystem()


@pytest.fixture
def simple_fs(memfs):
    """The three-file tree used throughout the docs.

        /a/f1  uid 500 gid 100
        /a/f2  uid 500 gid 100
        /b/f3  uid 600 gid 200
    """
    memfs.mkdir("/a", 1000, 1000)
    memfs.mkdir("/b", 1000, 1000)
    memfs.add("/a/f1", 500, 100)
    memfs.add("/a/f2", 500, 100)
    memfs.add("/b/f3", 600, 200)
    return memfs


@pytest.fixture
def project_fs(memfs):
    """A richer tree under /data.

    Creates:
        /data/proj            dir  1000:1000
        /data/proj/x.dat      file  500:100
        /data/proj/y.dat      file  501:100
        /data/proj/run        dir   500:300
        /data/proj/run/out    file  500:300
        /data/proj/link       link  500:100
        /data/home            dir  1000:1000
        /data/home/notes      file  600:200
        /data/home/.snapshot  dir     0:0  (with a file owned by 500)
    """
    memfs.mkdir("/data/proj", 1000, 1000)
    memfs.add("/data/proj/x.dat", 500, 100)
    memfs.add("/data/proj/y.dat", 501, 100)
    memfs.mkdir("/data/proj/run", 500, 300)
    memfs.add("/data/proj/run/out", 500, 300)
    memfs.add("/data/proj/link", 500, 100)  # symlink: never a directory
    memfs.mkdir("/data/home", 1000, 1000)
    memfs.add("/data/home/notes", 600, 200)
    memfs.mkdir("/data/home/.snapshot", 0, 0)
    memfs.add("/data/home/.snapshot/notes", 500, 100)
    return memfs


@pytest.fixture
def sample_index():
    """Hand-built index with exclusions recorded in its metadata."""
    return IndexDB(
        uid_index={
            500: ["/a", "/c"],
            501: ["/c", "/d"],
            1000: ["/b"],
        },
        gid_index={
            100: ["/a", "/c", "/d"],
            200: ["/b"],
        },
        info=ScanInfo(roots=["/"], excluded_uids="0-99", excluded_gids="0"),
    )


@pytest.fixture(autouse=True)
def _propagate_logs():
    """Let caplog see ugid_index records even after configure_logging()."""
    logging.getLogger("ugid_index").propagate = True
    yield
