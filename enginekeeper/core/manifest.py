"""
Reading and writing npm manifests.

``package.json`` supplies the project's own ``engines`` declaration (the
range being checked) and ``package-lock.json`` supplies every installed
package's declaration (the ranges being reduced). Only ``package.json`` is
ever written back.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from enginekeeper.constants import JSON_INDENT, PACKAGE_FILENAME, PACKAGE_LOCK_FILENAME
from enginekeeper.exceptions import ManifestError
from enginekeeper.models.engines import EnginesAsList, LockPackage, ingest_engines
from enginekeeper.utils.filesystem import PathLike, safe_read_file, safe_write_file
from enginekeeper.utils.logger import get_logger

logger = get_logger("core.manifest")


def _load_json_object(path: Path) -> Dict[str, Any]:
    content = safe_read_file(path)

    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ManifestError(
            f"{path.name} is not valid JSON: {exc.msg} (line {exc.lineno})",
            file_path=str(path),
        ) from exc

    if not isinstance(data, dict):
        raise ManifestError(
            f"{path.name} must contain a JSON object",
            file_path=str(path),
        )

    logger.debug("Loaded %s", path)
    return data


def load_package_file(directory: PathLike) -> Dict[str, Any]:
    """Load ``package.json`` from ``directory``.

    Raises:
        FileOperationError: The file is missing or unreadable.
        ManifestError: The file is not a JSON object.
    """
    return _load_json_object(Path(directory) / PACKAGE_FILENAME)


def load_lock_file(directory: PathLike) -> Dict[str, Any]:
    """Load ``package-lock.json`` from ``directory``.

    Only lock files with a ``packages`` map (lockfileVersion 2 and later)
    are supported.

    Raises:
        FileOperationError: The file is missing or unreadable.
        ManifestError: The file is not a JSON object or has no
            ``packages`` property.
    """
    path = Path(directory) / PACKAGE_LOCK_FILENAME
    data = _load_json_object(path)

    if not isinstance(data.get("packages"), dict):
        raise ManifestError(
            f"{PACKAGE_LOCK_FILENAME} does not contain packages property.",
            file_path=str(path),
        )

    return data


def lock_packages(lock_data: Mapping[str, Any]) -> List[LockPackage]:
    """Return every package of a loaded lock file, in file order.

    The root project (key ``""``) is included like any other package.
    Entries that are not JSON objects are skipped.
    """
    packages: List[LockPackage] = []

    for name, entry in lock_data.get("packages", {}).items():
        if not isinstance(entry, dict):
            logger.debug("Skipping malformed lock entry %r", name)
            continue
        packages.append(LockPackage(name, ingest_engines(entry.get("engines"))))

    return packages


def merge_engines(existing: Any, simplified: Mapping[str, str]) -> Dict[str, Any]:
    """Merge computed constraints over an existing ``engines`` value.

    Keys not being updated keep their value and position. A list-shaped
    declaration is converted to the object form first.
    """
    if isinstance(existing, dict):
        merged: Dict[str, Any] = dict(existing)
    else:
        engines = ingest_engines(existing)
        merged = dict(engines.entries) if isinstance(engines, EnginesAsList) else {}
        if existing:
            logger.info("Converting engines declaration to object form")

    merged.update(simplified)
    return merged


def write_engines(
    directory: PathLike,
    package_data: Mapping[str, Any],
    simplified: Mapping[str, str],
    *,
    backup: bool = False,
) -> Optional[Path]:
    """Write ``simplified`` into the ``engines`` of ``package.json``.

    Args:
        directory: Directory holding ``package.json``.
        package_data: The loaded ``package.json`` contents.
        simplified: Engine name to humanized range, for changed engines.
        backup: Keep a timestamped copy of the previous file.

    Returns:
        Path of the backup copy, if one was made.
    """
    path = Path(directory) / PACKAGE_FILENAME
    data = dict(package_data)
    data["engines"] = merge_engines(package_data.get("engines"), simplified)

    content = json.dumps(data, indent=JSON_INDENT, ensure_ascii=False) + "\n"
    logger.debug("Write JSON to %s", path)
    return safe_write_file(path, content, backup=backup)
