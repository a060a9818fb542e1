"""Check command implementation for enginekeeper.

Computes, for each engine (``node``, ``npm``, ``yarn``), the most
restrictive version range accepted by every package of
``package-lock.json`` and compares it with the range the project declares
in its own ``package.json``.

The command chains four steps:

1. **Load**: read ``package.json`` and ``package-lock.json`` from ``PATH``.
2. **Compute**: aggregate every package's declared range per engine with
   :func:`~enginekeeper.core.aggregator.compute_engine_constraints`.
3. **Output**: print the engines whose humanized range changed.
4. **Update** (``-u`` only): merge the new ranges into ``package.json``.

Typical usage::

    # Show what would change
    $ enginekeeper check

    # Only node, in another directory, and write the result
    $ enginekeeper check path/to/project -e node -u
"""

from __future__ import annotations

import os
import sys
import click
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from enginekeeper.constants import PACKAGE_FILENAME, PACKAGE_LOCK_FILENAME
from enginekeeper.context import pass_context, EngineKeeperContext
from enginekeeper.exceptions import EngineKeeperError
from enginekeeper.core import (
    EngineConstraintChange,
    compute_engine_constraints,
    load_lock_file,
    load_package_file,
    lock_packages,
    write_engines,
)
from enginekeeper.models import ingest_engines
from enginekeeper.utils import (
    get_logger,
    get_raw_console,
    print_error,
    print_message,
    print_success,
    print_table,
    validate_directory,
)

logger = get_logger("commands.check")

ARROW_SEPARATOR = "→"


@click.command()
@click.argument(
    "path",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
)
@click.option(
    "--engine",
    "-e",
    "engines",
    multiple=True,
    help="Engine to check (node, npm, yarn). Repeatable; defaults to all.",
)
@click.option(
    "--update",
    "-u",
    is_flag=True,
    help=f"Write the computed constraints to {PACKAGE_FILENAME}.",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Print nothing but errors; the exit code reports the result.",
)
@pass_context
def check(
    ctx: EngineKeeperContext,
    path: Path,
    engines: Sequence[str],
    update: bool,
    quiet: bool,
) -> None:
    """Check engines range constraints against package-lock.json.

    Reads every package's ``engines`` field from ``PATH/package-lock.json``,
    reduces them per engine to the most restrictive range, and reports
    engines whose declared range in ``PATH/package.json`` differs.

    Exits:
        0 if every constraint is up-to-date or ``--update`` wrote them, 1 if
        constraints are outdated or an error occurred.

    Example::

        $ enginekeeper check -e node
    """
    selected = list(engines) or list(ctx.config.engines)

    try:
        pending = _run_check(ctx, path, selected, update=update, quiet=quiet)
    except EngineKeeperError as e:
        print_error(f"{e}")
        logger.debug("Error details: %s", e.details or "<none>")
        sys.exit(1)
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        logger.exception("Error in check command")
        sys.exit(1)

    sys.exit(1 if pending else 0)


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------


def _run_check(
    ctx: EngineKeeperContext,
    path: Path,
    engines: List[str],
    *,
    update: bool,
    quiet: bool,
) -> bool:
    """Run the load, compute, output and update steps.

    Returns:
        ``True`` if some constraint is outdated and was not written.
    """
    directory = validate_directory(path)
    logger.info(
        "Checking npm package engines range constraints in %s",
        directory / PACKAGE_LOCK_FILENAME,
    )

    package_data = load_package_file(directory)
    lock_data = load_lock_file(directory)

    changes = compute_engine_constraints(
        ingest_engines(package_data.get("engines")),
        lock_packages(lock_data),
        engines or None,
        max_groups=ctx.config.max_range_groups,
    )
    simplified = simplify_changes(changes)

    if not quiet:
        _display_changes(changes)

    if not simplified:
        return False

    if not update:
        if not quiet:
            command = generate_update_command(path, engines, verbose=ctx.verbose)
            print_message(f"\nRun {command} to upgrade {PACKAGE_FILENAME}.")
        return True

    backup = write_engines(directory, package_data, simplified, backup=ctx.config.backup)
    if backup is not None:
        logger.info("Backed up %s to %s", PACKAGE_FILENAME, backup)
    if not quiet:
        print_success(f"Updated {path / PACKAGE_FILENAME}")
    return False


def simplify_changes(changes: Dict[str, EngineConstraintChange]) -> Dict[str, str]:
    """Return engine name to humanized ``to`` range, for changed engines only."""
    simplified: Dict[str, str] = {}
    for engine, change in changes.items():
        if not change.has_changed:
            continue
        logger.getChild(engine).debug(
            "Simplified computed engine range constraint: %s", change.humanized_to
        )
        simplified[engine] = change.humanized_to
    return simplified


# ---------------------------------------------------------------------------
# Display
# ---------------------------------------------------------------------------


def _display_changes(changes: Dict[str, EngineConstraintChange]) -> None:
    """Print the changed engines as ``engine  from  →  to`` rows.

    Example::

        Computed engines range constraints:

         node  >=12  →  ^14.17.0 || >=16.10.0
    """
    rows = [
        {
            "engine": change.engine,
            "from": change.humanized_from,
            "arrow": ARROW_SEPARATOR,
            "to": change.humanized_to,
        }
        for change in changes.values()
        if change.has_changed
    ]

    if not rows:
        print_message("All computed engines range constraints are up-to-date :)", style="success")
        return

    get_raw_console().print("Computed engines range constraints:\n", markup=False)
    print_table(
        rows,
        headers=["engine", "from", "arrow", "to"],
        column_styles={
            "from": {"style": "range.from"},
            "to": {"style": "range.to"},
        },
        show_header=False,
        borderless=True,
    )


def generate_update_command(
    path: Path,
    engines: Sequence[str],
    *,
    verbose: int = 0,
    cwd: Optional[Path] = None,
) -> str:
    """Build the command line that applies the reported changes.

    ``path`` is rendered relative to ``cwd`` and omitted when it is ``cwd``
    itself. The hint is only shown without ``-q``, so ``-q`` is never part
    of it.

    Example::

        >>> generate_update_command(Path("."), ["node"])
        'enginekeeper check -e node -u'
    """
    argv: List[str] = ["enginekeeper"]
    if verbose > 0:
        argv.append("-" + "v" * verbose)
    argv.append("check")

    base = (cwd or Path.cwd()).resolve()
    relative = os.path.relpath(Path(path).resolve(), base)
    if relative != os.curdir:
        argv.append(relative)

    for engine in engines:
        argv.extend(["-e", engine])

    argv.append("-u")
    return " ".join(argv)
