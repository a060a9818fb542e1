"""
Engine constraint aggregation.

Folds :func:`~enginekeeper.core.reducer.most_restrictive` over every
dependency's declared range for one engine, producing the single range all
of them accept. Invalid ranges are skipped with a warning, never fatal.

:func:`compute_engine_constraints` runs the aggregation twice per engine:
once over the project's own ``package.json`` engines (the ``from`` range)
and once over every package of the lock file (the ``to`` range).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import (
    Dict,
    Iterable,
    List,
    MutableSequence,
    Optional,
    Sequence,
    Tuple,
)

from enginekeeper.constants import ENGINE_CONSTRAINT_KEYS
from enginekeeper.core.humanize import humanize_range
from enginekeeper.core.ranges import Range, parse_range
from enginekeeper.core.reducer import most_restrictive
from enginekeeper.exceptions import EngineSelectionError, InvalidRangeError
from enginekeeper.models.engines import Engines, LockPackage
from enginekeeper.utils.logger import get_logger

logger = get_logger("core.aggregator")

DependencyConstraint = Tuple[str, Optional[str]]


@dataclass(frozen=True)
class EngineConstraintChange:
    """Declared versus computed range for one engine.

    Args:
        engine: Engine name (``node``, ``npm`` ...).
        from_range: Range declared in the project's own ``package.json``.
        to_range: Most restrictive range computed from the lock file.
    """

    engine: str
    from_range: Range
    to_range: Range

    @property
    def humanized_from(self) -> str:
        return humanize_range(self.from_range)

    @property
    def humanized_to(self) -> str:
        return humanize_range(self.to_range)

    @property
    def has_changed(self) -> bool:
        """True if the humanized ranges differ."""
        return self.humanized_from != self.humanized_to


def aggregate(
    dependency_constraints: Iterable[DependencyConstraint],
    *,
    ignored_ranges: Optional[MutableSequence[str]] = None,
    log: Optional[logging.Logger] = None,
    max_groups: Optional[int] = None,
) -> Range:
    """Reduce every declared range to the most restrictive one.

    Args:
        dependency_constraints: ``(name, range_text)`` pairs in order;
            ``range_text`` is ``None`` when the dependency declares nothing
            for this engine.
        ignored_ranges: Accumulator of range texts known to be supersets of
            the result. A fresh list is used when omitted; never share one
            between engines.
        log: Logger for the aggregation trace.
        max_groups: Skip ranges with more OR-branches than this.

    Returns:
        The most restrictive range, or the universal range ``*`` when no
        dependency declares a usable range.

    Raises:
        RangeReductionError: Two declared ranges cannot be reduced.
    """
    log = log or logger
    ignored: MutableSequence[str] = ignored_ranges if ignored_ranges is not None else []
    result: Optional[Range] = None

    for name, constraint in dependency_constraints:
        if not constraint:
            log.debug("Package %s has no constraints for current engine", name or "<root>")
            continue

        try:
            candidate = parse_range(constraint)
        except InvalidRangeError:
            log.warning("%s is not a valid semver range (package %s)", constraint, name or "<root>")
            continue

        if max_groups is not None and len(candidate.comparator_sets) > max_groups:
            log.warning(
                "Skipping range %s of package %s: %d groups exceeds the limit of %d",
                candidate.raw,
                name or "<root>",
                len(candidate.comparator_sets),
                max_groups,
            )
            continue

        if candidate.raw in ignored:
            log.debug("Ignored range: %s", candidate.raw)
            continue

        if result is None:
            result = candidate
        else:
            reduced = most_restrictive(result, candidate, ignored, log)
            if reduced.raw == result.raw:
                continue
            result = reduced

        # The result only ever narrows, so anything equal to it now is
        # a superset of every later result.
        ignored.append(result.raw)
        log.debug("New most restrictive range: %s", result.raw)

    if result is None:
        log.debug("No computed engine range constraint")
        return Range.universal()

    log.debug("Final computed engine range constraint: %s", result.raw)
    return result


def select_engines(requested: Optional[Sequence[str]] = None) -> List[str]:
    """Return the engine names to compute, validated against known keys.

    Args:
        requested: Engine names asked for; ``None`` or empty means all.

    Raises:
        EngineSelectionError: None of ``requested`` is a known engine.
    """
    if not requested:
        return list(ENGINE_CONSTRAINT_KEYS)

    selected = [engine for engine in requested if engine in ENGINE_CONSTRAINT_KEYS]
    unknown = [engine for engine in requested if engine not in ENGINE_CONSTRAINT_KEYS]
    if unknown:
        logger.warning("Ignoring unknown engine(s): %s", ", ".join(unknown))

    if not selected:
        raise EngineSelectionError(
            "No valid constraint key(s).",
            requested=list(requested),
            known=list(ENGINE_CONSTRAINT_KEYS),
        )

    # Keep order, drop duplicates
    return list(dict.fromkeys(selected))


def compute_engine_constraints(
    project_engines: Engines,
    packages: Sequence[LockPackage],
    engines: Optional[Sequence[str]] = None,
    *,
    max_groups: Optional[int] = None,
) -> Dict[str, EngineConstraintChange]:
    """Compute declared and required ranges for each selected engine.

    Args:
        project_engines: The project's own ``package.json`` engines.
        packages: Every lock file package, in file order.
        engines: Engine names to compute; all known engines by default.
        max_groups: Group ceiling forwarded to :func:`aggregate`.

    Returns:
        Mapping of engine name to :class:`EngineConstraintChange`, in
        selection order.

    Raises:
        EngineSelectionError: No usable engine name was requested.
        RangeReductionError: Declared ranges cannot be reduced.
    """
    selected = select_engines(engines)
    changes: Dict[str, EngineConstraintChange] = {}

    for engine in selected:
        engine_log = logger.getChild(engine)

        from_range = aggregate(
            [("", project_engines.constraint_for(engine))],
            log=engine_log,
            max_groups=max_groups,
        )
        to_range = aggregate(
            ((pkg.name, pkg.constraint_for(engine)) for pkg in packages),
            log=engine_log,
            max_groups=max_groups,
        )

        changes[engine] = EngineConstraintChange(engine, from_range, to_range)
        engine_log.info(
            "%s: %s -> %s",
            engine,
            changes[engine].humanized_from,
            changes[engine].humanized_to,
        )

    return changes
