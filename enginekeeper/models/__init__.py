"""
Unified data model exports for enginekeeper.

Example:
    >>> from enginekeeper.models import EnginesAsMap, LockPackage
"""

from __future__ import annotations

from enginekeeper.models.engines import (
    Engines,
    EnginesAsList,
    EnginesAsMap,
    LockPackage,
    ingest_engines,
)

__all__ = [
    "Engines",
    "EnginesAsMap",
    "EnginesAsList",
    "LockPackage",
    "ingest_engines",
]
