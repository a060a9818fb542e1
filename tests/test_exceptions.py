from __future__ import annotations

import pytest

from enginekeeper.exceptions import (
    ConfigError,
    EngineKeeperError,
    EngineSelectionError,
    FileOperationError,
    InvalidRangeError,
    ManifestError,
    RangeReductionError,
)


@pytest.mark.unit
class TestEngineKeeperError:
    """Tests for the base exception."""

    def test_str_without_details(self) -> None:
        """Test the message is returned as is."""
        assert str(EngineKeeperError("boom")) == "boom"

    def test_str_with_details(self) -> None:
        """Test details are appended in insertion order."""
        error = EngineKeeperError("boom", {"a": 1, "b": "x"})

        assert str(error) == "boom (a=1, b=x)"

    def test_details_are_copied(self) -> None:
        """Test the caller's mapping is not shared."""
        source = {"a": 1}
        error = EngineKeeperError("boom", source)
        error.details["b"] = 2

        assert source == {"a": 1}


@pytest.mark.unit
class TestSubclasses:
    """Tests for the structured subclasses."""

    @pytest.mark.parametrize(
        "error",
        [
            InvalidRangeError("bad", range_text=">=x"),
            RangeReductionError("bad", left="^14", right="^16"),
            EngineSelectionError("bad", requested=["deno"]),
            ManifestError("bad", file_path="package.json"),
            FileOperationError("bad", file_path="a", operation="read"),
            ConfigError("bad", option="backup"),
        ],
    )
    def test_inherit_from_base(self, error: EngineKeeperError) -> None:
        """Test every error can be caught as EngineKeeperError."""
        assert isinstance(error, EngineKeeperError)

    def test_none_values_are_left_out(self) -> None:
        """Test unset fields do not appear in details."""
        error = InvalidRangeError("bad", range_text=">=x")

        assert error.details == {"range": ">=x"}
        assert error.comparator is None

    def test_reduction_details(self) -> None:
        """Test both operands are kept."""
        error = RangeReductionError("disjoint", left="^14", right="^16")

        assert str(error) == "disjoint (left=^14, right=^16)"

    def test_selection_joins_names(self) -> None:
        """Test engine names are joined for display but kept as lists."""
        error = EngineSelectionError(
            "No valid constraint key(s).",
            requested=["deno", "bun"],
            known=["node", "npm", "yarn"],
        )

        assert error.details == {"requested": "deno, bun", "known": "node, npm, yarn"}
        assert error.known == ["node", "npm", "yarn"]

    def test_file_operation_keeps_original_error(self) -> None:
        """Test the wrapped error is stored and stringified in details."""
        original = OSError("denied")
        error = FileOperationError("cannot read", file_path="a", original_error=original)

        assert error.original_error is original
        assert error.details["original_error"] == "denied"
