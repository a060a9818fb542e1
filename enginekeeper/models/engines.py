"""
Engine declaration data models for enginekeeper.

npm lets a package declare its ``engines`` either as an object::

    "engines": {"node": ">=14.17.0", "npm": ">=8"}

or, in older packages, as an array of ``"<engine> <range>"`` strings::

    "engines": ["node >=14.17.0"]

Both shapes are resolved once, at ingestion, into :class:`EnginesAsMap` or
:class:`EnginesAsList`; lookups then go through :meth:`constraint_for`
without re-inspecting the raw JSON.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Tuple, Union

from enginekeeper.utils.logger import get_logger

logger = get_logger("models.engines")


@dataclass(frozen=True)
class EnginesAsMap:
    """Engines declared as an ``{engine: range}`` object.

    Args:
        constraints: Mapping of engine name to declared range text.
    """

    constraints: Mapping[str, str] = field(default_factory=dict)

    def constraint_for(self, engine: str) -> Optional[str]:
        """Return the declared range text for ``engine``, if any."""
        value = self.constraints.get(engine)
        return value if isinstance(value, str) and value else None


@dataclass(frozen=True)
class EnginesAsList:
    """Engines declared as a list of ``"<engine> <range>"`` tokens.

    Args:
        entries: ``(engine, range)`` pairs in declaration order.
    """

    entries: Tuple[Tuple[str, str], ...] = ()

    @classmethod
    def from_tokens(cls, tokens: Any) -> "EnginesAsList":
        """Split raw tokens into ``(engine, range)`` pairs.

        Tokens that are not strings or carry no range are skipped.
        """
        entries = []
        for token in tokens:
            if not isinstance(token, str):
                logger.debug("Skipping non-string engines entry: %r", token)
                continue
            name, _, constraint = token.strip().partition(" ")
            if name and constraint.strip():
                entries.append((name, constraint.strip()))
        return cls(tuple(entries))

    def constraint_for(self, engine: str) -> Optional[str]:
        """Return the first declared range text for ``engine``, if any."""
        for name, constraint in self.entries:
            if name == engine:
                return constraint
        return None


Engines = Union[EnginesAsMap, EnginesAsList]


def ingest_engines(raw: Any) -> Engines:
    """Resolve a raw ``engines`` JSON value into a tagged variant.

    Args:
        raw: The value of an ``engines`` field: an object, an array of
            strings, or anything else (including ``None``).

    Returns:
        :class:`EnginesAsMap` for objects, :class:`EnginesAsList` for
        arrays, and an empty :class:`EnginesAsMap` for any other shape.
    """
    if isinstance(raw, Mapping):
        return EnginesAsMap(
            {str(k): v for k, v in raw.items() if isinstance(v, str)}
        )
    if isinstance(raw, (list, tuple)):
        return EnginesAsList.from_tokens(raw)
    if raw is not None:
        logger.debug("Unsupported engines shape %s, treating as empty", type(raw).__name__)
    return EnginesAsMap()


@dataclass(frozen=True)
class LockPackage:
    """A package entry from ``package-lock.json``.

    Args:
        name: Key of the entry in the lock file's ``packages`` map
            (``""`` for the root project, ``node_modules/<name>`` otherwise).
        engines: The package's resolved engines declaration.
    """

    name: str
    engines: Engines = field(default_factory=EnginesAsMap)

    def constraint_for(self, engine: str) -> Optional[str]:
        return self.engines.constraint_for(engine)
