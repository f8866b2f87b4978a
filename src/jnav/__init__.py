"""jnav - frecency-ranked directory jumping for interactive shells.

This package provides the engine behind the ``j`` shell function: a
persistent visit store, frecency ranking, multi-keyword matching, a fallback
resolution chain and the post-cd tracking hook.

Exports:
    __version__: Package version string.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
