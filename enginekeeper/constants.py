"""
Centralized constants for enginekeeper.

This module defines immutable configuration values used across enginekeeper,
including manifest file names, recognized engine keys, range limits and
logging formats. All values are intended to be treated as read-only.
"""

from typing import Final, Sequence

# ---------------------------------------------------------------------------
# Manifest files
# ---------------------------------------------------------------------------

#: Project manifest holding the project's own ``engines`` constraints.
PACKAGE_FILENAME: Final[str] = "package.json"

#: Lock file holding every installed package and its declared ``engines``.
PACKAGE_LOCK_FILENAME: Final[str] = "package-lock.json"

#: Indentation used when writing ``package.json`` back to disk.
JSON_INDENT: Final[int] = 2

# ---------------------------------------------------------------------------
# Engines
# ---------------------------------------------------------------------------

#: Engine names whose constraints can be computed.
ENGINE_CONSTRAINT_KEYS: Final[Sequence[str]] = ("node", "npm", "yarn")

# ---------------------------------------------------------------------------
# Range arithmetic
# ---------------------------------------------------------------------------

#: Default ceiling on comparator groups per declared range. Ranges with more
#: OR-branches are skipped by the aggregator.
DEFAULT_MAX_RANGE_GROUPS: Final[int] = 64

#: Whether ``package.json`` is backed up before it is rewritten.
DEFAULT_BACKUP: Final[bool] = False

# ---------------------------------------------------------------------------
# Security constraints
# ---------------------------------------------------------------------------

#: Maximum allowed file size (in bytes) when reading manifest files.
MAX_FILE_SIZE: Final[int] = 50 * 1024 * 1024  # 50 MB, lock files get large

# ---------------------------------------------------------------------------
# Logging configuration
# ---------------------------------------------------------------------------

#: Timestamp format for verbose logging.
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

#: Default log format (non-verbose).
LOG_DEFAULT_FORMAT: Final[str] = "%(levelname)s: %(message)s"

#: Verbose log format including timestamp and logger name.
LOG_VERBOSE_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
