"""
enginekeeper command line.

Defines the ``enginekeeper`` click group: global options (configuration
file, verbosity, color), the per-invocation :class:`EngineKeeperContext`,
and the mapping from outcomes to process exit codes.
"""

from __future__ import annotations

import os
import sys
import logging
from pathlib import Path
from typing import Optional

import click

from enginekeeper.config import load_config
from enginekeeper.__version__ import __version__
from enginekeeper.context import EngineKeeperContext
from enginekeeper.exceptions import ConfigError, EngineKeeperError
from enginekeeper.utils.logger import get_logger, level_for_verbosity, setup_logging
from enginekeeper.utils.console import print_error, print_warning, reconfigure_console

logger = get_logger("cli")

#: Exit code for an interrupted run (128 + SIGINT).
EXIT_INTERRUPTED = 130


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    envvar="ENGINEKEEPER_CONFIG",
    help="TOML file with an [enginekeeper] table (default: discovered in cwd).",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Log progress (-v) or the full reduction trace (-vv) to stderr.",
)
@click.option(
    "--color/--no-color",
    default=True,
    envvar="ENGINEKEEPER_COLOR",
    help="Colorize console and log output.",
)
@click.version_option(
    version=__version__,
    prog_name="enginekeeper",
    message="%(prog)s %(version)s",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[Path],
    verbose: int,
    color: bool,
) -> None:
    """enginekeeper: keep package.json engines in line with package-lock.json.

    \b
    Commands:
      check    Compute engines ranges and optionally write them

    \b
    Examples:
      enginekeeper check
      enginekeeper check -e node -u
      enginekeeper -vv check path/to/project
    """
    _apply_color(color)
    _configure_logging(verbose)
    ctx.obj = _build_context(config, verbose, color)


def _apply_color(color: bool) -> None:
    """Export the color choice as ``NO_COLOR`` and rebuild the console."""
    if color:
        os.environ.pop("NO_COLOR", None)
    else:
        os.environ["NO_COLOR"] = "1"
    reconfigure_console()


def _configure_logging(verbose: int) -> None:
    level = level_for_verbosity(verbose)
    setup_logging(level=level, verbose=verbose > 1)
    logger.debug("Log level set to %s", logging.getLevelName(level))


def _build_context(
    config: Optional[Path],
    verbose: int,
    color: bool,
) -> EngineKeeperContext:
    """Load the configuration and bundle it with the global options.

    A configuration error ends the run with exit code 1.
    """
    try:
        loaded = load_config(config)
    except ConfigError as exc:
        print_error(str(exc))
        raise SystemExit(1) from exc

    context = EngineKeeperContext()
    context.config_path = config or loaded.source_path
    context.verbose = verbose
    context.color = color
    context.config = loaded

    logger.debug(
        "enginekeeper %s (config: %s, verbose: %d, color: %s)",
        __version__,
        context.config_path or "<defaults>",
        verbose,
        color,
    )
    return context


from enginekeeper.commands.check import check  # noqa: E402

cli.add_command(check)


def main() -> int:
    """Run the CLI and translate the outcome into an exit code.

    Returns:
        0 when constraints are up-to-date or were written, 1 when changes
        are pending or an error occurred, 2 on a usage error and 130 when
        interrupted.
    """
    try:
        cli(standalone_mode=False)
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else 1
    except (click.exceptions.Abort, KeyboardInterrupt):
        print_warning("\nInterrupted")
        return EXIT_INTERRUPTED
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except EngineKeeperError as exc:
        print_error(str(exc))
        logger.debug("Error details: %s", exc.details or "<none>", exc_info=True)
        return 1
    except Exception as exc:
        print_error(f"Unexpected error: {exc}")
        logger.exception("Unhandled exception in CLI")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
