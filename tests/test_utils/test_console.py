from __future__ import annotations

import sys
from typing import Generator
from unittest.mock import patch

import pytest
from rich.console import Console

from enginekeeper.utils.console import (
    ENGINEKEEPER_THEME,
    _should_use_color,
    get_raw_console,
    print_error,
    print_message,
    print_success,
    print_table,
    print_warning,
    reconfigure_console,
)


@pytest.fixture(autouse=True)
def reset_console() -> Generator[None, None, None]:
    """Reset the console singleton before and after each test."""
    reconfigure_console()
    yield
    reconfigure_console()


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.delenv("CI", raising=False)


@pytest.mark.unit
class TestTheme:
    """Tests for the console theme."""

    @pytest.mark.parametrize(
        "style", ["success", "error", "warning", "info", "range.from", "range.to"]
    )
    def test_theme_defines_style(self, style: str) -> None:
        """Test every style used by the CLI is defined."""
        assert style in ENGINEKEEPER_THEME.styles


@pytest.mark.unit
class TestShouldUseColor:
    """Tests for _should_use_color."""

    def test_tty_enables_color(self, clean_env: None) -> None:
        """Test a TTY stdout enables color."""
        with patch.object(sys.stdout, "isatty", return_value=True):
            assert _should_use_color() is True

    def test_non_tty_disables_color(self, clean_env: None) -> None:
        """Test piped stdout disables color."""
        with patch.object(sys.stdout, "isatty", return_value=False):
            assert _should_use_color() is False

    @pytest.mark.parametrize("env_var", ["NO_COLOR", "CI"])
    def test_env_disables_color(
        self, monkeypatch: pytest.MonkeyPatch, env_var: str
    ) -> None:
        """Test NO_COLOR and CI win over a TTY."""
        monkeypatch.setenv(env_var, "1")

        with patch.object(sys.stdout, "isatty", return_value=True):
            assert _should_use_color() is False


@pytest.mark.unit
class TestConsoleLifecycle:
    """Tests for the console singleton."""

    def test_singleton(self) -> None:
        """Test the same console is returned until reconfigured."""
        first = get_raw_console()

        assert get_raw_console() is first
        assert isinstance(first, Console)

        reconfigure_console()

        assert get_raw_console() is not first


@pytest.mark.unit
class TestPrintHelpers:
    """Tests for the print_* helpers."""

    def test_status_messages(self, capsys: pytest.CaptureFixture) -> None:
        """Test status helpers print their message to stdout."""
        print_success("written")
        print_error("broken")
        print_warning("careful")

        out = capsys.readouterr().out
        assert "written" in out
        assert "broken" in out
        assert "careful" in out

    def test_print_message_ignores_markup(self, capsys: pytest.CaptureFixture) -> None:
        """Test brackets in plain messages are printed literally."""
        print_message("[node] >=14")

        assert "[node] >=14" in capsys.readouterr().out


@pytest.mark.unit
class TestPrintTable:
    """Tests for print_table."""

    def test_empty_data_prints_nothing(self, capsys: pytest.CaptureFixture) -> None:
        """Test no rows means no output."""
        print_table([])

        assert capsys.readouterr().out == ""

    def test_renders_rows_in_header_order(self, capsys: pytest.CaptureFixture) -> None:
        """Test rows are rendered in the given column order."""
        print_table(
            [{"to": "^14.17.0", "engine": "node", "from": ">=12.0.0"}],
            headers=["engine", "from", "to"],
        )

        out = capsys.readouterr().out
        assert "engine" in out
        assert out.index("node") < out.index(">=12.0.0") < out.index("^14.17.0")

    def test_borderless_without_header(self, capsys: pytest.CaptureFixture) -> None:
        """Test the borderless layout prints only the cell values."""
        print_table(
            [{"engine": "node", "arrow": "→", "to": ">=16.0.0"}],
            show_header=False,
            borderless=True,
        )

        out = capsys.readouterr().out
        assert "engine" not in out
        assert "node" in out
        assert "→" in out
        assert "┃" not in out
