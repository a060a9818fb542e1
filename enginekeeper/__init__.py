"""
enginekeeper: npm engines range constraints, computed from the lock file.

enginekeeper reads every package's ``engines`` declaration from
``package-lock.json``, reduces them per engine (``node``, ``npm``,
``yarn``) to the most restrictive range all of them accept, and compares the
result with the project's own ``package.json``.

Typical library usage::

    from enginekeeper.core import aggregate

    aggregate([("a", "^14.13.0 || ^16.10.0"), ("b", "^14.17.0 || ^16.0.0")]).raw
    # '>=14.17.0 <15.0.0-0||>=16.10.0 <17.0.0-0'
"""

from __future__ import annotations

from enginekeeper.__version__ import __version__

# ---------------------------------------------------------------------------
# Package Metadata
# ---------------------------------------------------------------------------

__author__ = "enginekeeper Contributors"
__license__ = "Apache-2.0"
__description__ = "Compute the most restrictive npm engines ranges from package-lock.json."

__all__ = [
    "__version__",
]
