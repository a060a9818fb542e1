"""
Most-restrictive range reduction.

Given two independently declared engine ranges, :func:`most_restrictive`
returns the range describing the versions both accept. It works on the
ranges' comparator groups rather than on raw intervals so that the result
keeps the caret-shaped groups dependencies declare, which
:func:`enginekeeper.core.humanize.humanize_range` can then fold back into
``^x.y.z`` notation.

The reduction, in order of precedence:

1. **Subset short-circuit**: if one range is wholly contained in the other,
   it is the answer; the wider range's text is recorded in
   ``ignored_ranges`` so an aggregation can skip it when seen again.
2. **Minimum-version alignment**: if the ranges start at different
   versions, both are clipped at the higher start and the reduction starts
   over.
3. **Group-by-group merge**: with equal minimums, the common part of the
   lowest group of each range is kept, and the rest of both ranges is
   reduced recursively.

Typical usage::

    ignored: List[str] = []
    result = most_restrictive(
        parse_range("^14.13.0 || ^16.10.0"),
        parse_range("^14.17.0 || ^16.0.0"),
        ignored,
    )
    result.raw  # '>=14.17.0 <15.0.0-0||>=16.10.0 <17.0.0-0'
"""

from __future__ import annotations

import logging
from typing import List, MutableSequence, Optional, Sequence, Tuple

from semver import Version

from enginekeeper.core.ranges import (
    Comparator,
    ComparatorGroup,
    Interval,
    Range,
    group_interval,
    intersects,
    is_subset,
    merge_intervals,
    min_version,
)
from enginekeeper.exceptions import RangeReductionError
from enginekeeper.utils.logger import get_logger
from enginekeeper.utils.version_utils import LOWEST_VERSION, format_version

logger = get_logger("core.reducer")

#: A lower bound as ``(version, inclusive)``.
LowerBound = Tuple[Version, bool]


# ---------------------------------------------------------------------------
# Comparator-set normalization
# ---------------------------------------------------------------------------


def _lower_key(interval: Interval) -> Tuple[Version, bool]:
    # ">=v" starts before ">v"
    return interval.lower, not interval.lower_inclusive


def sort_comparator_sets(
    groups: Sequence[Sequence[Comparator]],
) -> List[ComparatorGroup]:
    """Order comparator groups by ascending lower bound.

    Groups without a lower-bound comparator sort first. Groups sharing a
    lower bound keep their input order.

    Args:
        groups: Comparator groups in any order.

    Returns:
        A new list of group tuples; callers may pop from it freely.
    """
    return sorted(
        (tuple(group) for group in groups),
        key=lambda group: _lower_key(group_interval(group)),
    )


def to_range(groups: Sequence[Sequence[Comparator]]) -> Range:
    """Rebuild a :class:`Range` from a list of comparator groups.

    An empty list gives the empty range (``<0.0.0-0``), not ``*``.
    """
    return Range(tuple(tuple(group) for group in groups))


# ---------------------------------------------------------------------------
# Minimum-version alignment
# ---------------------------------------------------------------------------


def align_to_minimum(
    groups: Sequence[Sequence[Comparator]],
    minimum: Version,
    *,
    inclusive: bool = True,
) -> List[ComparatorGroup]:
    """Clip comparator groups so that no version below ``minimum`` remains.

    - Groups lying entirely below ``minimum`` are dropped.
    - Groups starting below ``minimum`` but reaching it get ``>=minimum``
      (``>minimum`` when ``inclusive`` is false) as their lower bound.
    - Groups starting at or above ``minimum`` are kept unchanged.

    Args:
        groups: Comparator groups, usually sorted.
        minimum: The floor version.
        inclusive: Whether ``minimum`` itself is allowed.

    Returns:
        A new list of groups whose union is the input's union clipped at
        ``minimum``.
    """
    aligned: List[ComparatorGroup] = []

    for group in groups:
        interval = group_interval(group)
        # Dropping and clipping go by the group's actual bounds, not by
        # comparing lower-bound majors with the floor's major; the two agree
        # on caret groups and only the former is exact for any other shape.
        if interval.is_empty or not _reaches(interval, minimum, inclusive):
            continue

        if _starts_below(interval, minimum, inclusive):
            operator = ">=" if inclusive else ">"
            upper_bounds = tuple(c for c in group if c.is_upper_bound)
            aligned.append((Comparator(operator, minimum),) + upper_bounds)
        else:
            aligned.append(tuple(group))

    return aligned


def _reaches(interval: Interval, minimum: Version, inclusive: bool) -> bool:
    if interval.upper is None:
        return True
    if interval.upper != minimum:
        return interval.upper > minimum
    return interval.upper_inclusive and inclusive


def _starts_below(interval: Interval, minimum: Version, inclusive: bool) -> bool:
    if interval.lower != minimum:
        return interval.lower < minimum
    return interval.lower_inclusive and not inclusive


def _lower_bound(range_: Range) -> Optional[LowerBound]:
    """Return the exact lower bound of ``range_``, ``None`` when empty."""
    merged = merge_intervals(range_.intervals())
    if not merged:
        return None
    return merged[0].lower, merged[0].lower_inclusive


# ---------------------------------------------------------------------------
# Reduction
# ---------------------------------------------------------------------------


def most_restrictive(
    r1: Range,
    r2: Range,
    ignored_ranges: MutableSequence[str],
    log: Optional[logging.Logger] = None,
) -> Range:
    """Return the most restrictive range accepted by both ``r1`` and ``r2``.

    Args:
        r1: Current most restrictive range. Wins ties.
        r2: Range to combine with ``r1``.
        ignored_ranges: Accumulator of raw range texts proven to be
            supersets of the result. Appended to in place; one list per
            aggregation run.
        log: Logger for the reduction trace. Defaults to this module's.

    Returns:
        The reduced range.

    Raises:
        RangeReductionError: The ranges share no version, or the reduction
            lost every version they share.
    """
    log = log or logger

    if r1.is_empty or r2.is_empty:
        return _reduce(r1, r2, ignored_ranges, log)

    if not intersects(r1, r2):
        raise RangeReductionError(
            f"Ranges {r1.raw} and {r2.raw} have no version in common",
            left=r1.raw,
            right=r2.raw,
        )

    result = _reduce(r1, r2, ignored_ranges, log)
    if result.is_empty:
        raise RangeReductionError(
            f"Reducing {r1.raw} and {r2.raw} left no version although they overlap",
            left=r1.raw,
            right=r2.raw,
        )
    return result


def _reduce(
    r1: Range,
    r2: Range,
    ignored_ranges: MutableSequence[str],
    log: logging.Logger,
) -> Range:
    # An exhausted side contributes nothing more to the intersection.
    if r1.is_empty or r2.is_empty:
        return Range.empty()

    log.debug("Compare: %s and %s", r1.raw, r2.raw)

    if is_subset(r1, r2):
        log.debug("Range %s is a subset of %s", r1.raw, r2.raw)
        ignored_ranges.append(r2.raw)
        return r1
    if is_subset(r2, r1):
        log.debug("Range %s is a subset of %s", r2.raw, r1.raw)
        ignored_ranges.append(r1.raw)
        return r2

    if not intersects(r1, r2):
        return Range.empty()

    min1 = min_version(r1) or LOWEST_VERSION
    min2 = min_version(r2) or LOWEST_VERSION
    sorted1 = sort_comparator_sets(r1.comparator_sets)
    sorted2 = sort_comparator_sets(r2.comparator_sets)

    if min1 != min2:
        # Clip at the later range's own lower bound so that ">v" stays
        # ">v"; its minimum version would skip v's successor prereleases.
        later = r1 if min1 > min2 else r2
        floor, inclusive = _lower_bound(later) or (LOWEST_VERSION, True)
        log.debug(
            "Applying minimal version %s%s to both ranges.",
            ">=" if inclusive else ">",
            format_version(floor),
        )
        aligned1 = to_range(align_to_minimum(sorted1, floor, inclusive=inclusive))
        aligned2 = to_range(align_to_minimum(sorted2, floor, inclusive=inclusive))
        if aligned1 != r1 or aligned2 != r2:
            return _reduce(aligned1, aligned2, ignored_ranges, log)

    head, rest1, rest2 = _take_head(sorted1, sorted2, r1, r2)
    rest = _reduce(to_range(rest1), to_range(rest2), ignored_ranges, log)
    if head is None:
        return rest
    return to_range([head] + sort_comparator_sets(rest.comparator_sets))


def _take_head(
    sorted1: List[ComparatorGroup],
    sorted2: List[ComparatorGroup],
    r1: Range,
    r2: Range,
) -> Tuple[Optional[ComparatorGroup], List[ComparatorGroup], List[ComparatorGroup]]:
    """Pick the lowest group of the result and what is left of each side.

    When one lowest group contains the other, the narrower one is kept
    (``r1``'s on ties). Otherwise their intersection is kept. The part of
    either group above the kept one goes back into its side's remainder so
    that the recursion still sees it. A lowest group ending before the
    other side's lowest group starts shares nothing with that side and is
    dropped, giving no head.
    """
    if not sorted1 and not sorted2:
        raise RangeReductionError(
            "Both ranges were exhausted without a result",
            left=r1.raw,
            right=r2.raw,
        )
    if not sorted2:
        return sorted1[0], sorted1[1:], []
    if not sorted1:
        return sorted2[0], [], sorted2[1:]

    head1, head2 = sorted1[0], sorted2[0]
    rest1, rest2 = sorted1[1:], sorted2[1:]
    interval1, interval2 = group_interval(head1), group_interval(head2)

    if interval2.contains_interval(interval1):
        return head1, rest1, _push_leftover(head2, head1, rest2)

    if interval1.contains_interval(interval2):
        return head2, _push_leftover(head1, head2, rest1), rest2

    common = interval1.intersection(interval2)
    if common.is_empty:
        if interval1.ends_at_or_after(interval2):
            return None, sorted1, rest2
        return None, rest1, sorted2

    head = _interval_group(common)
    return head, _push_leftover(head1, head, rest1), _push_leftover(head2, head, rest2)


def _push_leftover(
    wider: ComparatorGroup,
    kept: ComparatorGroup,
    rest: List[ComparatorGroup],
) -> List[ComparatorGroup]:
    leftover = _leftover(wider, kept)
    if leftover is None:
        return rest
    return sort_comparator_sets([leftover] + rest)


def _leftover(
    wider: ComparatorGroup,
    narrower: ComparatorGroup,
) -> Optional[ComparatorGroup]:
    """Return the part of ``wider`` above ``narrower``, or ``None``."""
    inner = group_interval(narrower)
    if inner.upper is None:
        return None

    operator = ">" if inner.upper_inclusive else ">="
    remainder = (Comparator(operator, inner.upper),) + tuple(
        c for c in wider if c.is_upper_bound
    )
    if group_interval(remainder).is_empty:
        return None
    return remainder


def _interval_group(interval: Interval) -> ComparatorGroup:
    """Express a non-empty interval as ``>=``/``>`` and ``<``/``<=`` comparators."""
    if interval.upper is not None and interval.upper == interval.lower:
        return (Comparator("=", interval.lower),)

    comparators: List[Comparator] = []
    if not (interval.lower == LOWEST_VERSION and interval.lower_inclusive):
        operator = ">=" if interval.lower_inclusive else ">"
        comparators.append(Comparator(operator, interval.lower))
    if interval.upper is not None:
        operator = "<=" if interval.upper_inclusive else "<"
        comparators.append(Comparator(operator, interval.upper))
    return tuple(comparators)
