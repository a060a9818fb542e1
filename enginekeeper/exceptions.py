"""
Custom exception hierarchy for enginekeeper.

This module defines structured exception types used across enginekeeper.
All exceptions inherit from :class:`EngineKeeperError` and support optional
structured metadata via the ``details`` attribute to improve diagnostics
and logging.
"""

from __future__ import annotations

from typing import Any, Mapping, MutableMapping, Optional, Sequence


class EngineKeeperError(Exception):
    """Base exception for all enginekeeper errors.

    All enginekeeper-specific exceptions should inherit from this class.
    It supports structured metadata via ``details`` for richer error
    reporting and debugging.

    Args:
        message: Human-readable error message.
        details: Optional structured metadata describing the error.
    """

    __slots__ = ("message", "details")

    def __init__(
        self,
        message: str,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.message: str = message
        # Internally normalize to a mutable dict
        self.details: MutableMapping[str, Any] = dict(details) if details else {}
        super().__init__(message)

    def __str__(self) -> str:
        if not self.details:
            return self.message
        formatted = ", ".join(f"{k}={v}" for k, v in self.details.items())
        return f"{self.message} ({formatted})"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, details={dict(self.details)!r})"
        )


def _add_if(details: MutableMapping[str, Any], key: str, value: Any) -> None:
    """Add a key to ``details`` only if ``value`` is not ``None``."""
    if value is not None:
        details[key] = value


class InvalidRangeError(EngineKeeperError):
    """Raised when a semver range string cannot be parsed.

    Args:
        message: Error description.
        range_text: The offending range text.
        comparator: The comparator token that failed, if known.
    """

    __slots__ = ("range_text", "comparator")

    def __init__(
        self,
        message: str,
        *,
        range_text: Optional[str] = None,
        comparator: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "range", range_text)
        _add_if(details, "comparator", comparator)

        super().__init__(message, details)

        self.range_text = range_text
        self.comparator = comparator


class RangeReductionError(EngineKeeperError):
    """Raised when two ranges cannot be reduced to a most restrictive range.

    This covers input shapes the reducer does not support: ranges that share
    no version at all, or comparator groups that cannot be ordered against
    each other.

    Args:
        message: Error description.
        left: Raw text of the first range.
        right: Raw text of the second range.
    """

    __slots__ = ("left", "right")

    def __init__(
        self,
        message: str,
        *,
        left: Optional[str] = None,
        right: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "left", left)
        _add_if(details, "right", right)

        super().__init__(message, details)

        self.left = left
        self.right = right


class EngineSelectionError(EngineKeeperError):
    """Raised when none of the requested engine names is recognized.

    Args:
        message: Error description.
        requested: Engine names requested by the caller.
        known: Engine names enginekeeper knows about.
    """

    __slots__ = ("requested", "known")

    def __init__(
        self,
        message: str,
        *,
        requested: Optional[Sequence[str]] = None,
        known: Optional[Sequence[str]] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        if requested is not None:
            details["requested"] = ", ".join(requested)
        if known is not None:
            details["known"] = ", ".join(known)

        super().__init__(message, details)

        self.requested = list(requested) if requested is not None else None
        self.known = list(known) if known is not None else None


class ManifestError(EngineKeeperError):
    """Raised when ``package.json`` or ``package-lock.json`` is unusable.

    Args:
        message: Error description.
        file_path: Path to the manifest involved.
    """

    __slots__ = ("file_path",)

    def __init__(
        self,
        message: str,
        *,
        file_path: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "file", file_path)

        super().__init__(message, details)

        self.file_path = file_path


class FileOperationError(EngineKeeperError):
    """Raised when file system operations fail.

    Args:
        message: Error description.
        file_path: Path to the file involved.
        operation: Operation being performed (read/write/backup).
        original_error: Original exception that triggered this error.
    """

    __slots__ = ("file_path", "operation", "original_error")

    def __init__(
        self,
        message: str,
        *,
        file_path: Optional[str] = None,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "path", file_path)
        _add_if(details, "operation", operation)
        _add_if(
            details,
            "original_error",
            str(original_error) if original_error else None,
        )

        super().__init__(message, details)

        self.file_path = file_path
        self.operation = operation
        self.original_error = original_error


class ConfigError(EngineKeeperError):
    """Raised when configuration is invalid or cannot be loaded.

    Args:
        message: Error description.
        config_path: Path to the configuration file.
        option: Specific configuration option that failed validation.
    """

    __slots__ = ("config_path", "option")

    def __init__(
        self,
        message: str,
        *,
        config_path: Optional[str] = None,
        option: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "config_path", config_path)
        _add_if(details, "option", option)

        super().__init__(message, details)

        self.config_path = config_path
        self.option = option
