"""
Core functionality exports for enginekeeper.

This module provides convenient access to the range arithmetic and manifest
handling of enginekeeper:

    from enginekeeper.core import compute_engine_constraints, parse_range
"""

from __future__ import annotations

from enginekeeper.core.ranges import (
    Comparator,
    Interval,
    Range,
    intersects,
    is_subset,
    min_version,
    parse_range,
    satisfies,
    valid_range,
)
from enginekeeper.core.reducer import (
    align_to_minimum,
    most_restrictive,
    sort_comparator_sets,
    to_range,
)
from enginekeeper.core.humanize import humanize_range
from enginekeeper.core.aggregator import (
    EngineConstraintChange,
    aggregate,
    compute_engine_constraints,
)
from enginekeeper.core.manifest import (
    load_lock_file,
    load_package_file,
    lock_packages,
    write_engines,
)

__all__ = [
    # Ranges
    "Comparator",
    "Interval",
    "Range",
    "parse_range",
    "valid_range",
    "satisfies",
    "is_subset",
    "intersects",
    "min_version",
    # Reduction
    "sort_comparator_sets",
    "to_range",
    "align_to_minimum",
    "most_restrictive",
    "humanize_range",
    # Aggregation
    "EngineConstraintChange",
    "aggregate",
    "compute_engine_constraints",
    # Manifests
    "load_package_file",
    "load_lock_file",
    "lock_packages",
    "write_engines",
]
