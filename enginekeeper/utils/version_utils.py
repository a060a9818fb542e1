"""
Version helpers for enginekeeper.

This module wraps ``semver.Version`` (python-semver) with the few helpers
range arithmetic needs: building versions from parsed parts, the lowest
possible version, and the smallest version strictly above another one.
"""

from __future__ import annotations

from typing import Optional

from semver import Version

#: The lowest version in semver precedence order. Nothing sorts below it.
LOWEST_VERSION: Version = Version(0, 0, 0, prerelease="0")

#: The lowest non-prerelease version.
ZERO_VERSION: Version = Version(0, 0, 0)


def make_version(
    major: int,
    minor: int,
    patch: int,
    prerelease: Optional[str] = None,
) -> Version:
    """Build a version from its parts.

    Build metadata never takes part in range arithmetic and is dropped.

    Examples:
        >>> str(make_version(15, 0, 0, "0"))
        '15.0.0-0'
    """
    return Version(int(major), int(minor), int(patch), prerelease=prerelease or None)


def parse_version(value: str) -> Optional[Version]:
    """Parse a strict ``MAJOR.MINOR.PATCH[-PRE][+BUILD]`` string.

    A leading ``v`` or ``=`` is tolerated, as npm does.

    Returns:
        The parsed version with build metadata removed, or ``None`` if
        ``value`` is not a valid version.
    """
    text = value.strip().lstrip("=v").strip()
    try:
        parsed = Version.parse(text)
    except (ValueError, TypeError):
        return None
    return parsed.replace(build=None)


def next_version(version: Version) -> Version:
    """Return the smallest version npm considers strictly above ``version``.

    A release bumps its patch; a prerelease gets a trailing ``0``
    identifier appended (``1.2.3-beta`` becomes ``1.2.3-beta.0``).
    """
    if version.prerelease:
        return version.replace(prerelease=f"{version.prerelease}.0")
    return make_version(version.major, version.minor, version.patch + 1)


def format_version(version: Version) -> str:
    """Render a version without build metadata."""
    return str(version.replace(build=None))
