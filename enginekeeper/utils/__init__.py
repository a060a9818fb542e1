"""
Utility helpers for enginekeeper.

This package provides reusable utilities used across enginekeeper, including:

- Console output helpers (Rich-based)
- Logging configuration and retrieval
- Filesystem safety helpers
- Version construction helpers (python-semver based)

Only symbols listed in ``__all__`` are considered part of the public API.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Filesystem utilities
# ---------------------------------------------------------------------------

from enginekeeper.utils.filesystem import (
    create_backup,
    safe_read_file,
    safe_write_file,
    validate_directory,
)

# ---------------------------------------------------------------------------
# Logging utilities
# ---------------------------------------------------------------------------

from enginekeeper.utils.logger import (
    disable_logging,
    get_logger,
    is_logging_configured,
    level_for_verbosity,
    setup_logging,
)

# ---------------------------------------------------------------------------
# Console utilities
# ---------------------------------------------------------------------------

from enginekeeper.utils.console import (
    get_raw_console,
    print_error,
    print_message,
    print_success,
    print_table,
    print_warning,
    reconfigure_console,
)

# ---------------------------------------------------------------------------
# Version utilities
# ---------------------------------------------------------------------------

from enginekeeper.utils.version_utils import (
    format_version,
    make_version,
    next_version,
    parse_version,
)

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

__all__ = [
    # Console
    "print_error",
    "print_message",
    "print_table",
    "print_success",
    "print_warning",
    "get_raw_console",
    "reconfigure_console",
    # Logging
    "get_logger",
    "setup_logging",
    "disable_logging",
    "is_logging_configured",
    "level_for_verbosity",
    # Filesystem
    "safe_read_file",
    "safe_write_file",
    "create_backup",
    "validate_directory",
    # Version utilities
    "make_version",
    "parse_version",
    "next_version",
    "format_version",
]
