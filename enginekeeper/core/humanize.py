"""
Range humanization.

Turns a canonical range such as ``>=14.17.0 <15.0.0-0||>=16.10.0`` back into
the notation people write in ``package.json``: ``^14.17.0 || >=16.10.0``.

Only same-major caret spans and lone ``>=`` bounds are folded; tilde spans,
exact pins and other shapes are rendered as their literal comparators.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from enginekeeper.core.ranges import Comparator, Range
from enginekeeper.core.reducer import sort_comparator_sets
from enginekeeper.utils.version_utils import format_version


def humanize_range(range_: Optional[Range]) -> str:
    """Render ``range_`` in its shortest conventional form.

    Args:
        range_: The range to render, or ``None``.

    Returns:
        ``"*"`` for ``None`` or the universal range, otherwise each group
        rendered by :func:`humanize_group` and joined with ``" || "``.

    Examples:
        >>> humanize_range(parse_range(">=14.17.0 <15.0.0-0||>=16.10.0 <17.0.0-0"))
        '^14.17.0 || ^16.10.0'
    """
    if range_ is None or range_.raw == "*":
        return "*"

    parts: List[str] = [
        humanize_group(group) for group in sort_comparator_sets(range_.comparator_sets)
    ]
    return " || ".join(parts) if parts else range_.raw


def humanize_group(group: Sequence[Comparator]) -> str:
    """Render one comparator group, folding ``>=x <x+1`` majors into ``^x``."""
    if len(group) == 2:
        lower, upper = group
        if (
            lower.operator == ">="
            and upper.operator == "<"
            and lower.version.major + 1 == upper.version.major
        ):
            return f"^{format_version(lower.version)}"

    if len(group) == 1 and group[0].operator == ">=":
        return group[0].value

    return " ".join(comparator.value for comparator in group).strip()
