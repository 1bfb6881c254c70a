"""Filesystem walker that builds the directory-level index."""

from .base import FilesystemSource, LocalFilesystem, ObjectInfo
from .builder import IndexBuilder
from .progress import ProgressReporter
from .walker import PathRewrite, Walker, WalkStats

__all__ = [
    "FilesystemSource",
    "IndexBuilder",
    "LocalFilesystem",
    "ObjectInfo",
    "PathRewrite",
    "ProgressReporter",
    "WalkStats",
    "Walker",
]
