"""Configuration for ugid_index.

All env-var reading is centralised here.  Call load_dotenv() at import time
so the class attrs below pick up values from a .env file if present.

Index location precedence (see get_index_path()):
  1. Explicit path (CLI --index)
  2. UGID_INDEX_DB environment variable
  3. UGID_INDEX_DATA_DIR / ugid_index.db (default data dir: <project>/data)
"""

import logging
import os
import shlex
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

# Load .env on import.  Calling this multiple times is harmless.
load_dotenv(find_dotenv(usecwd=True))

_DEFAULT_DATA_DIR = Path(__file__).parent.parent.parent / "data"
DEFAULT_INDEX_NAME = "ugid_index.db"

logger = logging.getLogger(__name__)


def _float_env(name: str, default: float) -> float:
    """Read a float from the environment; malformed values fall back to default."""
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning("Ignoring %s=%r: not a number, using %s", name, value, default)
        return default


class UgidIndexConfig:
    # ------------------------------------------------------------ Storage
    DATA_DIR = Path(os.getenv("UGID_INDEX_DATA_DIR", _DEFAULT_DATA_DIR))

    # ------------------------------------------------------------ Scanning
    EXCLUDE_UIDS = os.getenv("UGID_EXCLUDE_UIDS")
    EXCLUDE_GIDS = os.getenv("UGID_EXCLUDE_GIDS")
    SNAPSHOT_NAME = os.getenv("UGID_SNAPSHOT_NAME", ".snapshot")
    PROGRESS_INTERVAL = _float_env("UGID_PROGRESS_INTERVAL", 600.0)

    # ------------------------------------------------------------ Querying
    LL_COMMAND = os.getenv("UGID_LL_COMMAND", "xargs -0 -r ls -ld --")

    @classmethod
    def ll_command(cls) -> list[str]:
        """Return the long-listing command as an argv list."""
        return shlex.split(cls.LL_COMMAND)


def get_index_path(index_path: Path | None = None) -> Path:
    """Resolve the index file location.

    Args:
        index_path: Explicit path override (typically from CLI --index)

    Returns:
        Path to the index database file
    """
    if index_path is not None:
        return Path(index_path)

    # Re-read the environment so tests and wrappers can override at runtime
    if env_db := os.environ.get("UGID_INDEX_DB"):
        return Path(env_db)
    if env_dir := os.environ.get("UGID_INDEX_DATA_DIR"):
        return Path(env_dir) / DEFAULT_INDEX_NAME

    return UgidIndexConfig.DATA_DIR / DEFAULT_INDEX_NAME
