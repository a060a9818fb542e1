from __future__ import annotations

import pytest

from enginekeeper.core.humanize import humanize_group, humanize_range
from enginekeeper.core.ranges import Range, parse_range


@pytest.mark.unit
class TestHumanizeRange:
    """Tests for humanize_range."""

    def test_none_is_wildcard(self) -> None:
        """Test a missing range renders as '*'."""
        assert humanize_range(None) == "*"

    def test_universal_is_wildcard(self) -> None:
        """Test the universal range renders as '*'."""
        assert humanize_range(Range.universal()) == "*"

    @pytest.mark.parametrize(
        "raw,expected",
        [
            (">=14.17.0 <15.0.0-0||>=16.10.0 <17.0.0-0", "^14.17.0 || ^16.10.0"),
            (">=14.17.0 <15.0.0-0||>=16.0.0", "^14.17.0 || >=16.0.0"),
            (">=16.10.0", ">=16.10.0"),
            (">14.17.0", ">14.17.0"),
            (">=14.17.0 <15.0.0-0||>=16.10.0", "^14.17.0 || >=16.10.0"),
            (">=1.2.3 <1.3.0-0", ">=1.2.3 <1.3.0-0"),
            (">=14.17.0 <14.20.0||>=16.5.0 <17.0.0-0", ">=14.17.0 <14.20.0 || ^16.5.0"),
            ("1.2.3", "1.2.3"),
            ("<16.0.0", "<16.0.0"),
            (">=1.2.3-beta <2.0.0-0", "^1.2.3-beta"),
        ],
    )
    def test_renders_conventional_notation(self, raw: str, expected: str) -> None:
        """Test caret spans fold and other shapes render literally."""
        assert humanize_range(parse_range(raw)) == expected

    def test_groups_are_sorted(self) -> None:
        """Test groups render in ascending lower-bound order."""
        assert humanize_range(parse_range("^16.0.0 || ^14.17.0")) == "^14.17.0 || ^16.0.0"

    def test_empty_range_renders_raw(self) -> None:
        """Test the empty range falls back to its raw text."""
        assert humanize_range(Range.empty()) == "<0.0.0-0"

    def test_humanized_text_parses_back_to_same_range(self) -> None:
        """Test humanizing then parsing gives back the same canonical text."""
        original = parse_range(">=14.17.0 <15.0.0-0||>=16.10.0 <17.0.0-0")

        assert parse_range(humanize_range(original)) == original


@pytest.mark.unit
class TestHumanizeGroup:
    """Tests for humanize_group."""

    def test_next_major_upper_bound_folds(self) -> None:
        """Test '>=x.y.z <(x+1).0.0-0' folds to '^x.y.z'."""
        group = parse_range(">=14.17.0 <15.0.0-0").comparator_sets[0]

        assert humanize_group(group) == "^14.17.0"

    def test_two_majors_apart_does_not_fold(self) -> None:
        """Test an upper bound two majors away stays literal."""
        group = parse_range(">=14.17.0 <16.0.0-0").comparator_sets[0]

        assert humanize_group(group) == ">=14.17.0 <16.0.0-0"
