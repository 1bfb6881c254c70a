"""Collect scan provenance stored verbatim in the index metadata."""

import logging
import os
import shlex
import socket
import subprocess
from datetime import datetime

from ..core.index import ScanInfo

logger = logging.getLogger(__name__)

MOUNT_TABLE = "/proc/mounts"
PROCESS_COMMAND = ["ps", "-eo", "pid,user,etime,args"]


def read_mount_table(path: str = MOUNT_TABLE) -> str | None:
    """Return the mount table text, or None where it isn't available."""
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            return f.read()
    except OSError as e:
        logger.debug("Can't read mount table '%s': %s", path, e)
        return None


def process_snapshot(command: list[str] = PROCESS_COMMAND) -> str | None:
    """Return a process listing, or None if ``ps`` can't be run."""
    try:
        result = subprocess.run(command, capture_output=True, text=True, errors="replace", timeout=60)
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug("Can't run %s: %s", command[0], e)
        return None
    if result.returncode != 0:
        logger.debug("%s exited with status %d", command[0], result.returncode)
        return None
    return result.stdout


def collect_scan_info(
    argv: list[str],
    roots: list[str],
    excluded_uids: str | None = None,
    excluded_gids: str | None = None,
    include_snapshots: bool = True,
) -> ScanInfo:
    """Start a ScanInfo for a scan about to run.

    ``scan_end`` and the walk statistics are filled in by the caller when
    the walk finishes.
    """
    return ScanInfo(
        roots=list(roots),
        excluded_uids=excluded_uids,
        excluded_gids=excluded_gids,
        scan_start=datetime.now(),
        command=shlex.join(argv),
        hostname=socket.gethostname(),
        euid=os.geteuid(),
        egid=os.getegid(),
        mounts=read_mount_table() if include_snapshots else None,
        processes=process_snapshot() if include_snapshots else None,
    )
