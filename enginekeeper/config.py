"""Configuration file loader for enginekeeper.

Handles discovery, loading, parsing, and validation of configuration files.
Supports two formats:

- ``enginekeeper.toml``: settings under the ``[enginekeeper]`` table
- ``pyproject.toml``: settings under the ``[tool.enginekeeper]`` table

Discovery order:

1. Explicit path from ``--config`` or ``ENGINEKEEPER_CONFIG``
2. ``enginekeeper.toml`` in current directory
3. ``pyproject.toml`` with ``[tool.enginekeeper]`` section

Configuration precedence: defaults < config file < CLI args.

Typical usage::

    config = load_config()  # Auto-discover
    config = load_config(Path("custom.toml"))  # Explicit path

Example (``enginekeeper.toml``)::

    [enginekeeper]
    engines = ["node", "npm"]
    max_range_groups = 64
    backup = true
"""

from __future__ import annotations


import tomli as tomllib
from pathlib import Path
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field

from enginekeeper.exceptions import ConfigError
from enginekeeper.utils.logger import get_logger
from enginekeeper.constants import (
    DEFAULT_BACKUP,
    DEFAULT_MAX_RANGE_GROUPS,
    ENGINE_CONSTRAINT_KEYS,
)

logger = get_logger("config")

CONFIG_FILENAME = "enginekeeper.toml"
CONFIG_SECTION = "enginekeeper"


@dataclass
class EngineKeeperConfig:
    """Parsed and validated enginekeeper configuration.

    All fields have defaults, so empty config files are valid.

    Attributes:
        engines: Engines checked when ``-e`` is not given on the command
            line. Empty means every known engine.
        max_range_groups: Declared ranges with more OR-branches than this
            are skipped during aggregation.
        backup: Keep a timestamped copy of ``package.json`` before
            ``--update`` rewrites it.
        source_path: Path to loaded config file, or ``None`` if using defaults.
    """

    engines: List[str] = field(default_factory=list)
    max_range_groups: int = DEFAULT_MAX_RANGE_GROUPS
    backup: bool = DEFAULT_BACKUP

    # Metadata (not a user-facing option)
    source_path: Optional[Path] = field(default=None, repr=False)

    def to_log_dict(self) -> Dict[str, Any]:
        """Return configuration as dictionary for debug logging.

        Excludes ``source_path`` metadata.
        """
        return {
            "engines": list(self.engines),
            "max_range_groups": self.max_range_groups,
            "backup": self.backup,
        }


def discover_config_file(explicit_path: Optional[Path] = None) -> Optional[Path]:
    """Find the configuration file to load.

    Search order:

    1. ``explicit_path`` (from ``--config`` or ``ENGINEKEEPER_CONFIG``)
    2. ``enginekeeper.toml`` in current directory
    3. ``pyproject.toml`` with ``[tool.enginekeeper]`` section in current directory

    Args:
        explicit_path: Explicit config path. If provided, must exist.

    Returns:
        Resolved path to config file, or ``None`` if not found.

    Raises:
        ConfigError: Explicit path provided but does not exist.
    """
    if explicit_path is not None:
        resolved = explicit_path.resolve()
        if not resolved.is_file():
            raise ConfigError(
                f"Configuration file not found: {explicit_path}",
                config_path=str(explicit_path),
            )
        logger.debug("Using explicit config: %s", resolved)
        return resolved

    cwd = Path.cwd()

    own_toml = cwd / CONFIG_FILENAME
    if own_toml.is_file():
        logger.debug("Found %s: %s", CONFIG_FILENAME, own_toml)
        return own_toml

    pyproject_toml = cwd / "pyproject.toml"
    if pyproject_toml.is_file() and _pyproject_has_section(pyproject_toml):
        logger.debug("Found [tool.%s] in pyproject.toml: %s", CONFIG_SECTION, pyproject_toml)
        return pyproject_toml

    logger.debug("No configuration file found")
    return None


def _pyproject_has_section(path: Path) -> bool:
    """Check if pyproject.toml contains a ``[tool.enginekeeper]`` section.

    An unparsable pyproject.toml is treated as having no section; it
    belongs to another tool.
    """
    try:
        raw = _read_toml(path)
    except ConfigError as exc:
        logger.debug("Ignoring unreadable pyproject.toml: %s", exc)
        return False
    tool = raw.get("tool", {})
    return isinstance(tool, dict) and CONFIG_SECTION in tool


def load_config(config_path: Optional[Path] = None) -> EngineKeeperConfig:
    """Load and validate enginekeeper configuration.

    Args:
        config_path: Explicit path to config file. If ``None``, uses
            auto-discovery (see :func:`discover_config_file`).

    Returns:
        Validated :class:`EngineKeeperConfig` with values from file or defaults.

    Raises:
        ConfigError: File cannot be parsed, has unknown keys, or invalid values.
    """
    resolved = discover_config_file(config_path)

    if resolved is None:
        logger.debug("No config file found, using defaults")
        return EngineKeeperConfig()

    logger.info("Loading configuration from %s", resolved)
    raw = _read_toml(resolved)

    if resolved.name == "pyproject.toml":
        section = raw.get("tool", {}).get(CONFIG_SECTION, {})
    else:
        section = raw.get(CONFIG_SECTION, {})

    if not section:
        logger.debug("Config file found but has no %s section, using defaults", CONFIG_SECTION)
        return EngineKeeperConfig(source_path=resolved)

    if not isinstance(section, dict):
        raise ConfigError(
            f"[{CONFIG_SECTION}] must be a table",
            config_path=str(resolved),
        )

    config = _parse_section(section, config_path=str(resolved))
    config.source_path = resolved

    logger.debug("Loaded configuration: %s", config.to_log_dict())
    return config


def _read_toml(path: Path) -> Dict[str, Any]:
    """Read and parse a TOML file.

    Raises:
        ConfigError: File cannot be read or is not valid TOML.
    """
    try:
        with open(path, "rb") as fh:
            return tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(
            f"Invalid TOML in {path.name}: {exc}",
            config_path=str(path),
        ) from exc
    except OSError as exc:
        raise ConfigError(
            f"Cannot read configuration file {path}: {exc}",
            config_path=str(path),
        ) from exc


def _parse_section(
    section: Dict[str, Any],
    *,
    config_path: str,
) -> EngineKeeperConfig:
    """Parse and validate the ``[enginekeeper]`` table.

    Rejects unknown keys, unknown engine names and type mismatches.

    Raises:
        ConfigError: Unknown keys or incorrect types (e.g., string for boolean).
    """
    config = EngineKeeperConfig()

    known_top = {"engines", "max_range_groups", "backup"}

    unknown_top = set(section.keys()) - known_top
    if unknown_top:
        raise ConfigError(
            f"Unknown configuration keys: {', '.join(sorted(unknown_top))}",
            config_path=config_path,
        )

    if "engines" in section:
        val = section["engines"]
        if not isinstance(val, list) or not all(isinstance(v, str) for v in val):
            raise ConfigError(
                "engines must be a list of strings",
                config_path=config_path,
                option="engines",
            )
        unknown_engines = [v for v in val if v not in ENGINE_CONSTRAINT_KEYS]
        if unknown_engines:
            raise ConfigError(
                f"Unknown engines: {', '.join(unknown_engines)} "
                f"(expected any of {', '.join(ENGINE_CONSTRAINT_KEYS)})",
                config_path=config_path,
                option="engines",
            )
        config.engines = list(val)

    if "max_range_groups" in section:
        val = section["max_range_groups"]
        # bool is an int subclass; reject it explicitly
        if isinstance(val, bool) or not isinstance(val, int) or val < 1:
            raise ConfigError(
                f"max_range_groups must be a positive integer, got {val!r}",
                config_path=config_path,
                option="max_range_groups",
            )
        config.max_range_groups = val

    if "backup" in section:
        val = section["backup"]
        if not isinstance(val, bool):
            raise ConfigError(
                f"backup must be a boolean, got {type(val).__name__}",
                config_path=config_path,
                option="backup",
            )
        config.backup = val

    return config
