"""Core data model: range filters, the directory index and its persistence."""

from .errors import (
    CommandSyntaxError,
    CorruptIndexError,
    EmbeddedNewlineError,
    EmptyStackError,
    InvalidExpressionError,
    UgidIndexError,
    UnknownCommandError,
)
from .index import IndexDB, ScanInfo, sorted_paths
from .range_filter import RangeFilter

__all__ = [
    "CommandSyntaxError",
    "CorruptIndexError",
    "EmbeddedNewlineError",
    "EmptyStackError",
    "IndexDB",
    "InvalidExpressionError",
    "RangeFilter",
    "ScanInfo",
    "UgidIndexError",
    "UnknownCommandError",
    "sorted_paths",
]
