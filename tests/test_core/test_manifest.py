from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

import pytest

from enginekeeper.core.manifest import (
    load_lock_file,
    load_package_file,
    lock_packages,
    merge_engines,
    write_engines,
)
from enginekeeper.exceptions import FileOperationError, ManifestError
from enginekeeper.models.engines import EnginesAsList, EnginesAsMap


def write_json(path: Path, data: Any) -> None:
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


@pytest.fixture
def lock_data() -> Dict[str, Any]:
    return {
        "name": "demo",
        "lockfileVersion": 3,
        "packages": {
            "": {"name": "demo", "engines": {"node": ">=12"}},
            "node_modules/a": {"version": "1.0.0", "engines": {"node": "^14.17.0"}},
            "node_modules/b": {"version": "2.0.0", "engines": ["node >=14"]},
            "node_modules/c": {"version": "3.0.0"},
        },
    }


@pytest.mark.unit
class TestLoadPackageFile:
    """Tests for load_package_file."""

    def test_loads_json_object(self, tmp_path: Path) -> None:
        """Test package.json is read into a dict."""
        write_json(tmp_path / "package.json", {"name": "demo", "engines": {"node": ">=12"}})

        data = load_package_file(tmp_path)

        assert data["engines"] == {"node": ">=12"}

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        """Test a missing package.json raises FileOperationError."""
        with pytest.raises(FileOperationError):
            load_package_file(tmp_path)

    def test_invalid_json_raises(self, tmp_path: Path) -> None:
        """Test malformed JSON raises ManifestError."""
        (tmp_path / "package.json").write_text("{not json", encoding="utf-8")

        with pytest.raises(ManifestError) as exc_info:
            load_package_file(tmp_path)

        assert "not valid JSON" in exc_info.value.message

    def test_non_object_raises(self, tmp_path: Path) -> None:
        """Test a top-level JSON array raises ManifestError."""
        write_json(tmp_path / "package.json", ["demo"])

        with pytest.raises(ManifestError):
            load_package_file(tmp_path)


@pytest.mark.unit
class TestLoadLockFile:
    """Tests for load_lock_file and lock_packages."""

    def test_loads_lock_file(self, tmp_path: Path, lock_data: Dict[str, Any]) -> None:
        """Test a v3 lock file is loaded."""
        write_json(tmp_path / "package-lock.json", lock_data)

        assert load_lock_file(tmp_path)["lockfileVersion"] == 3

    def test_missing_packages_property_raises(self, tmp_path: Path) -> None:
        """Test a v1 lock file without 'packages' is rejected."""
        write_json(tmp_path / "package-lock.json", {"lockfileVersion": 1, "dependencies": {}})

        with pytest.raises(ManifestError) as exc_info:
            load_lock_file(tmp_path)

        assert exc_info.value.message == "package-lock.json does not contain packages property."

    def test_lock_packages_in_file_order(self, lock_data: Dict[str, Any]) -> None:
        """Test every entry, root included, is returned in order."""
        packages = lock_packages(lock_data)

        assert [pkg.name for pkg in packages] == [
            "",
            "node_modules/a",
            "node_modules/b",
            "node_modules/c",
        ]
        assert isinstance(packages[1].engines, EnginesAsMap)
        assert isinstance(packages[2].engines, EnginesAsList)
        assert packages[2].constraint_for("node") == ">=14"
        assert packages[3].constraint_for("node") is None

    def test_lock_packages_skips_malformed_entries(self) -> None:
        """Test entries that are not objects are skipped."""
        packages = lock_packages({"packages": {"node_modules/a": "oops"}})

        assert packages == []


@pytest.mark.unit
class TestWriteEngines:
    """Tests for merge_engines and write_engines."""

    def test_merge_keeps_other_keys(self) -> None:
        """Test engines not being updated keep their value and position."""
        merged = merge_engines({"npm": ">=8", "node": ">=12"}, {"node": "^14.17.0"})

        assert merged == {"npm": ">=8", "node": "^14.17.0"}
        assert list(merged) == ["npm", "node"]

    def test_merge_converts_list_form(self) -> None:
        """Test a list-shaped declaration becomes an object."""
        merged = merge_engines(["npm >=8"], {"node": ">=16"})

        assert merged == {"npm": ">=8", "node": ">=16"}

    def test_merge_without_existing_engines(self) -> None:
        """Test a missing engines field is created."""
        assert merge_engines(None, {"node": ">=16"}) == {"node": ">=16"}

    def test_write_engines(self, tmp_path: Path) -> None:
        """Test package.json is rewritten with 2-space JSON and a newline."""
        package = {"name": "demo", "version": "1.0.0", "engines": {"node": ">=12"}}
        write_json(tmp_path / "package.json", package)

        backup = write_engines(tmp_path, package, {"node": "^14.17.0 || >=16.0.0"})

        content = (tmp_path / "package.json").read_text(encoding="utf-8")
        assert backup is None
        assert content.endswith("}\n")
        assert '\n  "name": "demo",' in content
        assert json.loads(content)["engines"] == {"node": "^14.17.0 || >=16.0.0"}
        assert list(json.loads(content)) == ["name", "version", "engines"]

    def test_write_engines_does_not_mutate_input(self, tmp_path: Path) -> None:
        """Test the loaded package data is left untouched."""
        package = {"name": "demo", "engines": {"node": ">=12"}}
        write_json(tmp_path / "package.json", package)

        write_engines(tmp_path, package, {"node": ">=16"})

        assert package["engines"] == {"node": ">=12"}

    def test_write_engines_with_backup(self, tmp_path: Path) -> None:
        """Test the previous file is kept when a backup is requested."""
        package = {"name": "demo"}
        write_json(tmp_path / "package.json", package)

        backup = write_engines(tmp_path, package, {"node": ">=16"}, backup=True)

        assert backup is not None
        assert backup.exists()
        assert json.loads(backup.read_text(encoding="utf-8")) == {"name": "demo"}
