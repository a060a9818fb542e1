"""
npm semver range primitives for enginekeeper.

This module parses npm range expressions (``^14.17.0 || >=16.10.0``,
``~1.2``, ``1.x``, ``1.2.3 - 2.0.0`` ...) into canonical :class:`Range`
values and answers the set questions range arithmetic needs: does a version
satisfy a range, is one range a subset of another, do two ranges overlap,
and what is the lowest version a range accepts.

Desugaring follows npm's conventions, including the ``<X.Y.Z-0`` form for
exclusive upper bounds::

    ^14.17.0  ->  >=14.17.0 <15.0.0-0
    ~1.2.3    ->  >=1.2.3 <1.3.0-0
    1.x       ->  >=1.0.0 <2.0.0-0

Ranges are treated as plain unions of version intervals. npm's rule that a
prerelease only satisfies comparators sharing its ``major.minor.patch`` is
not applied.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from semver import Version

from enginekeeper.exceptions import InvalidRangeError
from enginekeeper.utils.version_utils import (
    LOWEST_VERSION,
    ZERO_VERSION,
    format_version,
    make_version,
    next_version,
    parse_version,
)

# ---------------------------------------------------------------------------
# Grammar
# ---------------------------------------------------------------------------

_NUMERIC = r"0|[1-9]\d*"
_X_IDENTIFIER = rf"{_NUMERIC}|x|X|\*"
_PRERELEASE_ID = r"(?:0|[1-9]\d*|\d*[a-zA-Z-][a-zA-Z0-9-]*)"
_PRERELEASE = rf"{_PRERELEASE_ID}(?:\.{_PRERELEASE_ID})*"
_BUILD = r"[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*"

# Partial version: "1", "1.2", "1.x", "1.2.3-beta.1+build"
_X_PLAIN = (
    rf"[v=\s]*({_X_IDENTIFIER})"
    rf"(?:\.({_X_IDENTIFIER})"
    rf"(?:\.({_X_IDENTIFIER})"
    rf"(?:-({_PRERELEASE}))?"
    rf"(?:\+{_BUILD})?)?)?"
)

_X_RANGE_RE = re.compile(rf"^(<=|>=|<|>|=)?\s*{_X_PLAIN}$")
_CARET_RE = re.compile(rf"^\^\s*{_X_PLAIN}$")
_TILDE_RE = re.compile(rf"^~>?\s*{_X_PLAIN}$")
_HYPHEN_RE = re.compile(rf"^\s*{_X_PLAIN}\s+-\s+{_X_PLAIN}\s*$")

_OPERATOR_GAP_RE = re.compile(r"(<=|>=|<|>|=|\^|~>|~)\s+")
_BRANCH_SPLIT_RE = re.compile(r"\s*\|\|\s*")

OPERATORS: Tuple[str, ...] = ("<", "<=", ">", ">=", "=")

_LOWER_OPERATORS = (">", ">=")
_UPPER_OPERATORS = ("<", "<=")

PartialVersion = Tuple[Optional[int], Optional[int], Optional[int], Optional[str]]


# ---------------------------------------------------------------------------
# Comparators and intervals
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Comparator:
    """A single ``<operator><version>`` test.

    Args:
        operator: One of ``<``, ``<=``, ``>``, ``>=``, ``=``.
        version: The version the operator compares against.
    """

    operator: str
    version: Version

    def __post_init__(self) -> None:
        if self.operator not in OPERATORS:
            raise InvalidRangeError(
                f"Unknown comparator operator: {self.operator!r}",
                comparator=f"{self.operator}{self.version}",
            )

    @property
    def value(self) -> str:
        """Canonical text; exact matches are rendered without ``=``."""
        if self.operator == "=":
            return format_version(self.version)
        return f"{self.operator}{format_version(self.version)}"

    @property
    def is_lower_bound(self) -> bool:
        return self.operator in _LOWER_OPERATORS

    @property
    def is_upper_bound(self) -> bool:
        return self.operator in _UPPER_OPERATORS

    def test(self, version: Version) -> bool:
        """Return True if ``version`` satisfies this comparator."""
        if self.operator == "<":
            return version < self.version
        if self.operator == "<=":
            return version <= self.version
        if self.operator == ">":
            return version > self.version
        if self.operator == ">=":
            return version >= self.version
        return version == self.version

    def __str__(self) -> str:
        return self.value


ComparatorGroup = Tuple[Comparator, ...]


@dataclass(frozen=True)
class Interval:
    """Set of versions between two bounds.

    ``upper`` is ``None`` for an interval without an upper bound. The lower
    bound always exists; ``0.0.0-0`` is the lowest version there is.
    """

    lower: Version = LOWEST_VERSION
    lower_inclusive: bool = True
    upper: Optional[Version] = None
    upper_inclusive: bool = False

    @property
    def is_empty(self) -> bool:
        if self.upper is None:
            return False
        if self.upper < self.lower:
            return True
        if self.upper == self.lower:
            return not (self.lower_inclusive and self.upper_inclusive)
        return False

    def contains(self, version: Version) -> bool:
        if version < self.lower or (version == self.lower and not self.lower_inclusive):
            return False
        if self.upper is None:
            return True
        if version > self.upper or (version == self.upper and not self.upper_inclusive):
            return False
        return True

    def starts_at_or_before(self, other: "Interval") -> bool:
        """True if this interval's lower bound does not exclude anything of ``other``'s."""
        if self.lower != other.lower:
            return self.lower < other.lower
        return self.lower_inclusive or not other.lower_inclusive

    def ends_at_or_after(self, other: "Interval") -> bool:
        """True if this interval's upper bound does not exclude anything of ``other``'s."""
        if self.upper is None:
            return True
        if other.upper is None:
            return False
        if self.upper != other.upper:
            return self.upper > other.upper
        return self.upper_inclusive or not other.upper_inclusive

    def contains_interval(self, other: "Interval") -> bool:
        if other.is_empty:
            return True
        return self.starts_at_or_before(other) and self.ends_at_or_after(other)

    def intersection(self, other: "Interval") -> "Interval":
        # Tighter lower bound comes from whichever starts later, tighter
        # upper bound from whichever ends earlier.
        starts_later = other if self.starts_at_or_before(other) else self
        ends_earlier = other if self.ends_at_or_after(other) else self
        return Interval(
            lower=starts_later.lower,
            lower_inclusive=starts_later.lower_inclusive,
            upper=ends_earlier.upper,
            upper_inclusive=ends_earlier.upper_inclusive,
        )

    def overlaps(self, other: "Interval") -> bool:
        if self.is_empty or other.is_empty:
            return False
        return not self.intersection(other).is_empty


def group_interval(group: Sequence[Comparator]) -> Interval:
    """Collapse an AND-joined comparator group into a single interval."""
    lower, lower_inclusive = LOWEST_VERSION, True
    upper: Optional[Version] = None
    upper_inclusive = False

    for comparator in group:
        version = comparator.version
        if comparator.operator in (">", ">=", "="):
            inclusive = comparator.operator != ">"
            if version > lower or (version == lower and lower_inclusive and not inclusive):
                lower, lower_inclusive = version, inclusive
        if comparator.operator in ("<", "<=", "="):
            inclusive = comparator.operator != "<"
            if (
                upper is None
                or version < upper
                or (version == upper and upper_inclusive and not inclusive)
            ):
                upper, upper_inclusive = version, inclusive

    return Interval(lower, lower_inclusive, upper, upper_inclusive)


def group_value(group: Sequence[Comparator]) -> str:
    """Render a comparator group as its space-joined comparator values."""
    return " ".join(comparator.value for comparator in group)


# ---------------------------------------------------------------------------
# Range
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class Range:
    """A union (OR) of comparator groups.

    Two ranges are equal when their canonical ``raw`` text is equal; two
    ranges denoting the same versions with different groups are not.

    Args:
        comparator_sets: The OR-joined comparator groups. A single empty
            group is the universal range ``*``; no groups at all is the
            empty range.
    """

    comparator_sets: Tuple[ComparatorGroup, ...]
    raw: str = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "comparator_sets",
            tuple(tuple(group) for group in self.comparator_sets),
        )
        object.__setattr__(self, "raw", _format_sets(self.comparator_sets))

    @classmethod
    def from_sets(cls, groups: Iterable[Sequence[Comparator]]) -> "Range":
        """Build a range the way npm canonicalizes one.

        Duplicate comparators in a group are removed. When there is more
        than one group, null groups (``<0.0.0-0``) are dropped, and any
        universal group turns the whole range universal.
        """
        deduped: List[ComparatorGroup] = []
        for group in groups:
            seen: List[Comparator] = []
            for comparator in group:
                if comparator not in seen:
                    seen.append(comparator)
            deduped.append(tuple(seen))

        if len(deduped) > 1:
            kept = [group for group in deduped if not _is_null_group(group)]
            deduped = kept or deduped[:1]
            if any(len(group) == 0 for group in deduped):
                deduped = [()]

        return cls(tuple(deduped))

    @classmethod
    def universal(cls) -> "Range":
        return cls(((),))

    @classmethod
    def empty(cls) -> "Range":
        return cls(())

    @property
    def is_universal(self) -> bool:
        return any(len(group) == 0 for group in self.comparator_sets)

    @property
    def is_empty(self) -> bool:
        return all(interval.is_empty for interval in self.intervals())

    def intervals(self) -> List[Interval]:
        return [group_interval(group) for group in self.comparator_sets]

    def test(self, version: Union[str, Version]) -> bool:
        """Return True if ``version`` satisfies at least one group."""
        if isinstance(version, str):
            parsed = parse_version(version)
            if parsed is None:
                return False
            version = parsed
        return any(interval.contains(version) for interval in self.intervals())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Range):
            return NotImplemented
        return self.raw == other.raw

    def __hash__(self) -> int:
        return hash(self.raw)

    def __str__(self) -> str:
        return self.raw

    def __repr__(self) -> str:
        return f"Range({self.raw!r})"


_NULL_COMPARATOR = Comparator("<", LOWEST_VERSION)


def _is_null_group(group: Sequence[Comparator]) -> bool:
    return len(group) == 1 and group[0] == _NULL_COMPARATOR


def _format_sets(groups: Sequence[Sequence[Comparator]]) -> str:
    if not groups:
        return _NULL_COMPARATOR.value
    if any(len(group) == 0 for group in groups):
        return "*"
    return "||".join(group_value(group) for group in groups)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _is_x(part: Optional[str]) -> bool:
    return part is None or part in ("x", "X", "*")


def _partial(match: "re.Match[str]", offset: int = 1) -> PartialVersion:
    """Extract ``(major, minor, patch, prerelease)`` with ``None`` for wildcards."""
    raw_major, raw_minor, raw_patch, prerelease = match.group(
        offset, offset + 1, offset + 2, offset + 3
    )
    major = None if _is_x(raw_major) else int(raw_major)
    minor = None if major is None or _is_x(raw_minor) else int(raw_minor)
    patch = None if minor is None or _is_x(raw_patch) else int(raw_patch)
    return major, minor, patch, prerelease if patch is not None else None


def _ge(major: int, minor: int, patch: int, prerelease: Optional[str] = None) -> Comparator:
    return Comparator(">=", make_version(major, minor, patch, prerelease))


def _lt_zero(major: int, minor: int, patch: int) -> Comparator:
    return Comparator("<", make_version(major, minor, patch, "0"))


def _caret(parts: PartialVersion) -> List[Comparator]:
    major, minor, patch, prerelease = parts
    if major is None:
        return []
    if minor is None:
        return [_ge(major, 0, 0), _lt_zero(major + 1, 0, 0)]
    if patch is None:
        if major == 0:
            return [_ge(major, minor, 0), _lt_zero(major, minor + 1, 0)]
        return [_ge(major, minor, 0), _lt_zero(major + 1, 0, 0)]

    lower = _ge(major, minor, patch, prerelease)
    if major == 0:
        if minor == 0:
            return [lower, _lt_zero(major, minor, patch + 1)]
        return [lower, _lt_zero(major, minor + 1, 0)]
    return [lower, _lt_zero(major + 1, 0, 0)]


def _tilde(parts: PartialVersion) -> List[Comparator]:
    major, minor, patch, prerelease = parts
    if major is None:
        return []
    if minor is None:
        return [_ge(major, 0, 0), _lt_zero(major + 1, 0, 0)]
    if patch is None:
        return [_ge(major, minor, 0), _lt_zero(major, minor + 1, 0)]
    return [_ge(major, minor, patch, prerelease), _lt_zero(major, minor + 1, 0)]


def _x_range(operator: str, parts: PartialVersion) -> List[Comparator]:
    major, minor, patch, prerelease = parts

    if major is not None and minor is not None and patch is not None:
        return [Comparator(operator or "=", make_version(major, minor, patch, prerelease))]

    if operator == "=":
        operator = ""

    if major is None:
        if operator in (">", "<"):
            # Nothing is below 0.0.0-0, nothing is above every version.
            return [_NULL_COMPARATOR]
        return []

    if not operator:
        if minor is None:
            return [_ge(major, 0, 0), _lt_zero(major + 1, 0, 0)]
        return [_ge(major, minor, 0), _lt_zero(major, minor + 1, 0)]

    minor_is_x = minor is None
    minor = 0 if minor is None else minor
    patch = 0

    if operator == ">":
        operator = ">="
        if minor_is_x:
            major, minor = major + 1, 0
        else:
            minor += 1
    elif operator == "<=":
        operator = "<"
        if minor_is_x:
            major += 1
        else:
            minor += 1

    prerelease = "0" if operator == "<" else None
    return [Comparator(operator, make_version(major, minor, patch, prerelease))]


def _hyphen(match: "re.Match[str]") -> List[Comparator]:
    from_major, from_minor, from_patch, from_pre = _partial(match, 1)
    to_major, to_minor, to_patch, to_pre = _partial(match, 5)

    comparators: List[Comparator] = []
    if from_major is not None:
        comparators.append(
            _ge(from_major, from_minor or 0, from_patch or 0, from_pre)
        )

    if to_major is None:
        return comparators
    if to_minor is None:
        comparators.append(_lt_zero(to_major + 1, 0, 0))
    elif to_patch is None:
        comparators.append(_lt_zero(to_major, to_minor + 1, 0))
    else:
        comparators.append(
            Comparator("<=", make_version(to_major, to_minor, to_patch, to_pre))
        )
    return comparators


def _parse_token(token: str, range_text: str) -> List[Comparator]:
    """Desugar one whitespace-separated token into primitive comparators."""
    if token.startswith("^"):
        match = _CARET_RE.match(token)
        if match:
            return _caret(_partial(match))
    elif token.startswith("~"):
        match = _TILDE_RE.match(token)
        if match:
            return _tilde(_partial(match))
    else:
        match = _X_RANGE_RE.match(token)
        if match:
            return _x_range(match.group(1) or "", _partial(match, 2))

    raise InvalidRangeError(
        f"Invalid comparator: {token}",
        range_text=range_text,
        comparator=token,
    )


def _parse_branch(branch: str, range_text: str) -> ComparatorGroup:
    hyphen = _HYPHEN_RE.match(branch)
    if hyphen:
        return tuple(_hyphen(hyphen))

    comparators: List[Comparator] = []
    for token in _OPERATOR_GAP_RE.sub(r"\1", branch).split():
        comparators.extend(_parse_token(token, range_text))
    return tuple(comparators)


def parse_range(text: str) -> Range:
    """Parse an npm range expression into a canonical :class:`Range`.

    Args:
        text: Range text such as ``"^14.17.0 || >=16.10.0"``.

    Returns:
        The parsed range.

    Raises:
        InvalidRangeError: ``text`` is not a valid range.

    Examples:
        >>> parse_range("^14.17.0 || ^16.10.0").raw
        '>=14.17.0 <15.0.0-0||>=16.10.0 <17.0.0-0'
        >>> parse_range("").raw
        '*'
    """
    if not isinstance(text, str):
        raise InvalidRangeError(
            f"Range must be a string, got {type(text).__name__}",
            range_text=repr(text),
        )

    branches = _BRANCH_SPLIT_RE.split(text.strip())
    return Range.from_sets(_parse_branch(branch, text) for branch in branches)


def valid_range(text: str) -> Optional[str]:
    """Return the canonical text of ``text``, or ``None`` if it is invalid."""
    try:
        return parse_range(text).raw
    except InvalidRangeError:
        return None


# ---------------------------------------------------------------------------
# Set operations
# ---------------------------------------------------------------------------


def _non_empty(intervals: Iterable[Interval]) -> List[Interval]:
    return [interval for interval in intervals if not interval.is_empty]


def merge_intervals(intervals: Iterable[Interval]) -> List[Interval]:
    """Merge overlapping or touching intervals into a sorted disjoint list."""
    pending = sorted(
        _non_empty(intervals),
        key=lambda interval: (interval.lower, not interval.lower_inclusive),
    )
    merged: List[Interval] = []

    for interval in pending:
        if not merged:
            merged.append(interval)
            continue

        current = merged[-1]
        touches = current.upper is None or interval.lower < current.upper or (
            interval.lower == current.upper
            and (current.upper_inclusive or interval.lower_inclusive)
        )
        if not touches:
            merged.append(interval)
            continue

        if current.ends_at_or_after(interval):
            continue
        merged[-1] = Interval(
            current.lower,
            current.lower_inclusive,
            interval.upper,
            interval.upper_inclusive,
        )

    return merged


def is_subset(sub: Range, sup: Range) -> bool:
    """Return True if every version of ``sub`` is also in ``sup``."""
    covering = merge_intervals(sup.intervals())
    return all(
        any(outer.contains_interval(inner) for outer in covering)
        for inner in _non_empty(sub.intervals())
    )


def intersects(first: Range, second: Range) -> bool:
    """Return True if at least one version satisfies both ranges."""
    return any(
        left.overlaps(right)
        for left in first.intervals()
        for right in second.intervals()
    )


def min_version(range_: Range) -> Optional[Version]:
    """Return the lowest version satisfying ``range_``.

    ``0.0.0`` is preferred over ``0.0.0-0`` when both satisfy the range.
    An exclusive lower bound ``>v`` yields the next version above ``v``.

    Returns:
        The minimum version, or ``None`` if nothing satisfies the range.
    """
    if range_.test(ZERO_VERSION):
        return ZERO_VERSION
    if range_.test(LOWEST_VERSION):
        return LOWEST_VERSION

    best: Optional[Version] = None
    for interval in _non_empty(range_.intervals()):
        candidate = (
            interval.lower if interval.lower_inclusive else next_version(interval.lower)
        )
        if not interval.contains(candidate):
            continue
        if best is None or candidate < best:
            best = candidate
    return best


def satisfies(version: Union[str, Version], range_: Union[str, Range]) -> bool:
    """Return True if ``version`` satisfies ``range_``.

    Invalid versions or ranges never satisfy anything.
    """
    if isinstance(range_, str):
        try:
            range_ = parse_range(range_)
        except InvalidRangeError:
            return False
    return range_.test(version)
