"""
enginekeeper version information.

Single source of truth for the package version, read by the CLI's
``--version`` option and by the startup error report.
"""

__version__ = "0.1.0.dev0"
