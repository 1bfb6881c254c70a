"""Directory-level uid/gid index for large filesystems.

Build a compact map of numeric owner/group id to the directories that hold
matching objects, then answer per-file questions with a live, non-recursive
search scoped to those directories.
"""

__version__ = "0.3.0"
