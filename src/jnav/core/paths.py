"""Path helpers shared by the store, tracker, selector and navigator."""

from __future__ import annotations

import os
import time
from collections.abc import Iterable
from pathlib import Path


def now_hours() -> int:
    """Current time as whole hours since the Unix epoch."""
    return int(time.time()) // 3600


def canonicalize(path: str | os.PathLike[str]) -> Path:
    """Return the absolute, symlink-free form of ``path``.

    Non-existent paths are still made absolute; ``strict`` resolution is not
    required so removal of deleted directories keeps working.
    """
    return Path(path).expanduser().resolve()


def is_under(path: Path, root: Path) -> bool:
    """True when ``path`` equals ``root`` or lies beneath it (component-wise)."""
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True


def is_excluded(path: Path, roots: Iterable[Path]) -> bool:
    return any(is_under(path, root) for root in roots)


def display_path(path: str | Path, home: Path) -> str:
    """Abbreviate ``home`` to ``~`` for display."""
    text = str(path)
    home_text = str(home)
    if text == home_text:
        return "~"
    if text.startswith(home_text.rstrip(os.sep) + os.sep):
        return "~" + text[len(home_text.rstrip(os.sep)) :]
    return text


def expand_display_path(text: str, home: Path) -> Path:
    """Inverse of :func:`display_path`."""
    if text == "~":
        return home
    if text.startswith("~" + os.sep):
        return Path(str(home).rstrip(os.sep) + text[1:])
    return Path(text)


def printable(text: str) -> str:
    """Replace undecodable filename bytes so ``text`` can be written to a console."""
    return text.encode("utf-8", "surrogateescape").decode("utf-8", "replace")
