from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, Iterator, List

import pytest
from click.testing import CliRunner

from enginekeeper.cli import cli, main
from enginekeeper.commands.check import generate_update_command, simplify_changes
from enginekeeper.core.aggregator import EngineConstraintChange
from enginekeeper.core.ranges import Range, parse_range
from enginekeeper.utils.console import reconfigure_console
from enginekeeper.utils.logger import disable_logging


def write_json(path: Path, data: Any) -> None:
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


def lock_file(packages: Dict[str, Any]) -> Dict[str, Any]:
    return {"name": "demo", "lockfileVersion": 3, "packages": packages}


@pytest.fixture(autouse=True)
def clean_cli_state(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Reset environment, logging and console state around each test."""
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.delenv("ENGINEKEEPER_CONFIG", raising=False)
    monkeypatch.delenv("ENGINEKEEPER_COLOR", raising=False)
    yield
    os.environ.pop("NO_COLOR", None)
    disable_logging()
    reconfigure_console()


@pytest.fixture
def project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """An npm project whose node constraint is wider than its dependencies allow."""
    write_json(
        tmp_path / "package.json",
        {"name": "demo", "version": "1.0.0", "engines": {"node": ">=12"}},
    )
    write_json(
        tmp_path / "package-lock.json",
        lock_file(
            {
                "": {"name": "demo", "engines": {"node": ">=12"}},
                "node_modules/a": {"version": "1.0.0", "engines": {"node": "^14.17.0"}},
                "node_modules/b": {"version": "1.0.0", "engines": ["node >=14"]},
                "node_modules/c": {"version": "1.0.0"},
            }
        ),
    )
    monkeypatch.chdir(tmp_path)
    return tmp_path


def read_engines(directory: Path) -> Dict[str, str]:
    data = json.loads((directory / "package.json").read_text(encoding="utf-8"))
    return data.get("engines", {})


@pytest.mark.integration
class TestCheckCommand:
    """Tests for the check command through the CLI group."""

    def test_reports_outdated_constraints(self, project: Path) -> None:
        """Test outdated engines are listed with the upgrade hint and exit 1."""
        result = CliRunner().invoke(cli, ["check"])

        assert result.exit_code == 1
        assert "Computed engines range constraints:" in result.output
        assert ">=12.0.0" in result.output
        assert "^14.17.0" in result.output
        assert "Run enginekeeper check -u to upgrade package.json." in result.output
        assert read_engines(project) == {"node": ">=12"}

    def test_update_writes_package_json(self, project: Path) -> None:
        """Test -u merges the computed ranges and exits 0."""
        result = CliRunner().invoke(cli, ["check", "-u"])

        assert result.exit_code == 0
        assert "[OK] Updated package.json" in result.output
        assert read_engines(project) == {"node": "^14.17.0"}
        content = (project / "package.json").read_text(encoding="utf-8")
        assert content.endswith("}\n")
        assert list(json.loads(content)) == ["name", "version", "engines"]

    def test_up_to_date_after_update(self, project: Path) -> None:
        """Test a second run finds nothing to change."""
        runner = CliRunner()
        runner.invoke(cli, ["check", "-u"])

        result = runner.invoke(cli, ["check"])

        assert result.exit_code == 0
        assert "All computed engines range constraints are up-to-date :)" in result.output

    def test_quiet_prints_nothing(self, project: Path) -> None:
        """Test -q relies on the exit code alone."""
        result = CliRunner().invoke(cli, ["check", "-q"])

        assert result.exit_code == 1
        assert result.output.strip() == ""

    def test_engine_filter_in_hint(self, project: Path) -> None:
        """Test the selected engines are repeated in the upgrade hint."""
        result = CliRunner().invoke(cli, ["check", "-e", "node"])

        assert result.exit_code == 1
        assert "Run enginekeeper check -e node -u to upgrade package.json." in result.output

    def test_engine_without_changes(self, project: Path) -> None:
        """Test an engine nothing constrains is up-to-date."""
        result = CliRunner().invoke(cli, ["check", "-e", "npm"])

        assert result.exit_code == 0
        assert "up-to-date" in result.output

    def test_hint_repeats_verbosity_only(self, project: Path) -> None:
        """Test the upgrade hint carries -v but never -q."""
        result = CliRunner().invoke(cli, ["-v", "check"])

        assert result.exit_code == 1
        assert "Run enginekeeper -v check -u to upgrade package.json." in result.output
        assert " -q" not in result.output

    def test_unknown_engine_fails(self, project: Path) -> None:
        """Test only unknown engines give an error and exit 1."""
        result = CliRunner().invoke(cli, ["check", "-e", "deno"])

        assert result.exit_code == 1
        assert "No valid constraint key(s)." in result.output

    def test_path_argument(self, project: Path) -> None:
        """Test another directory can be checked and is named in the hint."""
        nested = project / "app"
        nested.mkdir()
        write_json(nested / "package.json", {"name": "app"})
        write_json(
            nested / "package-lock.json",
            lock_file({"node_modules/a": {"engines": {"npm": ">=8"}}}),
        )

        result = CliRunner().invoke(cli, ["check", "app"])

        assert result.exit_code == 1
        assert "Run enginekeeper check app -u to upgrade package.json." in result.output

    def test_missing_lock_file_fails(self, project: Path) -> None:
        """Test a project without package-lock.json exits 1 with an error."""
        (project / "package-lock.json").unlink()

        result = CliRunner().invoke(cli, ["check"])

        assert result.exit_code == 1
        assert "[ERROR]" in result.output

    def test_lock_file_without_packages_fails(self, project: Path) -> None:
        """Test a lock file lacking 'packages' is rejected."""
        write_json(project / "package-lock.json", {"lockfileVersion": 1})

        result = CliRunner().invoke(cli, ["check"])

        assert result.exit_code == 1
        assert "package-lock.json does not contain packages property." in result.output

    def test_disjoint_dependencies_fail(self, project: Path) -> None:
        """Test dependencies that share no node version are reported."""
        write_json(
            project / "package-lock.json",
            lock_file(
                {
                    "node_modules/a": {"engines": {"node": "^14.0.0"}},
                    "node_modules/b": {"engines": {"node": "^16.0.0"}},
                }
            ),
        )

        result = CliRunner().invoke(cli, ["check"])

        assert result.exit_code == 1
        assert "[ERROR]" in result.output
        assert read_engines(project) == {"node": ">=12"}

    def test_config_file_backup(self, project: Path) -> None:
        """Test 'backup = true' in enginekeeper.toml keeps the old package.json."""
        (project / "enginekeeper.toml").write_text(
            "[enginekeeper]\nbackup = true\n", encoding="utf-8"
        )

        result = CliRunner().invoke(cli, ["check", "-u"])

        assert result.exit_code == 0
        backups = list(project.glob("package.json.*.backup"))
        assert len(backups) == 1
        assert json.loads(backups[0].read_text(encoding="utf-8"))["engines"] == {
            "node": ">=12"
        }

    def test_config_file_engines(self, project: Path) -> None:
        """Test configured engines apply when -e is not given."""
        config = project / "custom.toml"
        config.write_text('[enginekeeper]\nengines = ["npm"]\n', encoding="utf-8")

        result = CliRunner().invoke(cli, ["--config", str(config), "check"])

        assert result.exit_code == 0
        assert "up-to-date" in result.output

    def test_invalid_config_fails(self, project: Path) -> None:
        """Test a configuration error stops the CLI with exit 1."""
        (project / "enginekeeper.toml").write_text(
            "[enginekeeper]\nmax_range_groups = 0\n", encoding="utf-8"
        )

        result = CliRunner().invoke(cli, ["check"])

        assert result.exit_code == 1
        assert "max_range_groups" in result.output

    def test_no_color_sets_environment(self, project: Path) -> None:
        """Test --no-color exports NO_COLOR for the run."""
        CliRunner().invoke(cli, ["--no-color", "check", "-q"])

        assert os.environ.get("NO_COLOR") == "1"


@pytest.mark.integration
class TestCliMain:
    """Tests for the cli.main exit code mapping."""

    def test_outdated_exit_code(
        self, project: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test main returns the command's exit code."""
        monkeypatch.setattr(sys, "argv", ["enginekeeper", "check", "-q"])

        assert main() == 1

    def test_success_exit_code(
        self, project: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test main returns 0 once constraints are written."""
        monkeypatch.setattr(sys, "argv", ["enginekeeper", "check", "-q", "-u"])

        assert main() == 0

    def test_usage_error_exit_code(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test Click usage errors map to exit code 2."""
        monkeypatch.setattr(sys, "argv", ["enginekeeper", "--bogus"])

        assert main() == 2


@pytest.mark.unit
class TestGenerateUpdateCommand:
    """Tests for generate_update_command."""

    def test_current_directory_is_omitted(self, tmp_path: Path) -> None:
        """Test PATH is left out when it is the working directory."""
        assert generate_update_command(tmp_path, [], cwd=tmp_path) == "enginekeeper check -u"

    def test_relative_path(self, tmp_path: Path) -> None:
        """Test PATH is rendered relative to the working directory."""
        command = generate_update_command(tmp_path / "app", [], cwd=tmp_path)

        assert command == "enginekeeper check app -u"

    def test_all_options(self, tmp_path: Path) -> None:
        """Test verbosity and engines are carried over."""
        command = generate_update_command(
            tmp_path, ["node", "npm"], verbose=2, cwd=tmp_path
        )

        assert command == "enginekeeper -vv check -e node -e npm -u"


@pytest.mark.unit
class TestSimplifyChanges:
    """Tests for simplify_changes."""

    def test_keeps_changed_engines_only(self) -> None:
        """Test unchanged engines are left out and ranges are humanized."""
        changes: Dict[str, EngineConstraintChange] = {
            "node": EngineConstraintChange(
                "node", parse_range(">=12"), parse_range(">=14.17.0 <15.0.0-0")
            ),
            "npm": EngineConstraintChange("npm", Range.universal(), Range.universal()),
        }

        assert simplify_changes(changes) == {"node": "^14.17.0"}

    def test_no_changes(self) -> None:
        """Test an empty mapping gives an empty result."""
        empty: Dict[str, EngineConstraintChange] = {}
        result: List[str] = list(simplify_changes(empty))

        assert result == []
