"""Filesystem access used by the walker and the live search."""

import os
import stat
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ObjectInfo:
    """Ownership and type of a single filesystem object (never followed)."""

    uid: int
    """Numeric owner id."""

    gid: int
    """Numeric group id."""

    is_dir: bool
    """True for real directories; False for symbolic links to directories."""


class FilesystemSource(ABC):
    """Abstract interface to the filesystem being indexed or searched.

    Implementations must never follow symbolic links. Both methods signal
    failure with ``OSError`` (vanished object, permission denied, ...);
    callers treat those as transient and count them.

    To implement a new source:
    1. Subclass FilesystemSource
    2. Implement list_children() and stat()
    3. Pass an instance to Walker or search()
    """

    @abstractmethod
    def list_children(self, path: str) -> list[str]:
        """Return the names of the immediate children of ``path``.

        ``.`` and ``..`` are never included.

        Raises:
            OSError: If the directory can't be read
        """
        pass

    @abstractmethod
    def stat(self, path: str) -> ObjectInfo:
        """Return ownership information for ``path`` without following links.

        Raises:
            OSError: If the object can't be stat'ed
        """
        pass

    def is_directory(self, path: str) -> bool:
        """True if ``path`` is a real directory; False when missing or a link."""
        try:
            return self.stat(path).is_dir
        except OSError:
            return False


class LocalFilesystem(FilesystemSource):
    """The local POSIX filesystem, via ``os.listdir`` and ``os.lstat``."""

    def list_children(self, path: str) -> list[str]:
        return os.listdir(path)

    def stat(self, path: str) -> ObjectInfo:
        st = os.lstat(path)
        return ObjectInfo(
            uid=st.st_uid,
            gid=st.st_gid,
            is_dir=stat.S_ISDIR(st.st_mode),
        )


def join_path(directory: str, name: str) -> str:
    """Join a directory and a child name with exactly one separator."""
    if directory.endswith("/"):
        return directory + name
    return f"{directory}/{name}"
