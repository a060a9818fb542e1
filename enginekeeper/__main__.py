"""
Executable module for enginekeeper.

Running:
    python -m enginekeeper

is equivalent to:
    enginekeeper

This module simply forwards execution to the CLI entrypoint defined in
`enginekeeper.cli`.
"""

from __future__ import annotations

import sys


def _print_startup_error(exc: ImportError) -> None:
    """Explain a failed CLI import on stderr."""
    try:
        from enginekeeper.__version__ import __version__
    except ImportError:
        __version__ = "<unknown>"

    sys.stderr.write("enginekeeper could not start: a dependency failed to import.\n")
    sys.stderr.write(f"Python version      : {sys.version}\n")
    sys.stderr.write(f"enginekeeper version: {__version__}\n")
    sys.stderr.write("\n")
    sys.stderr.write(f"ImportError: {exc}\n")


def main() -> int:
    """
    Main entrypoint when executing `python -m enginekeeper`.

    Returns:
        Exit code returned by the CLI, or 1 if it cannot be imported.
    """
    try:
        # Import lazily so dependencies are only loaded during CLI use
        from enginekeeper.cli import main as cli_main
    except ImportError as exc:
        _print_startup_error(exc)
        return 1

    return cli_main()


if __name__ == "__main__":
    sys.exit(main())
