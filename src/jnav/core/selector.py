"""Interactive directory selection.

Two backends behind one protocol, chosen once by probing for the fuzzy
finder:
    - ExternalFuzzyFinder: pipes home-abbreviated paths through fzf
    - NumberedListFallback: prints a numbered list and reads an index
"""

from __future__ import annotations

import os
import shutil
import subprocess
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from rich.console import Console
from rich.markup import escape

from jnav.core.console import get_logger, stderr_console
from jnav.core.paths import display_path, expand_display_path, printable
from jnav.core.ranker import Candidate
from jnav.core.result import InvalidSelectionError

if TYPE_CHECKING:
    from jnav.core.config import AppConfig

logger = get_logger(__name__)

DEFAULT_LIMIT = 10
FZF_ARGS = ("--height=40%", "--reverse", "--no-sort")


class SelectorBackend(Protocol):
    def select(self, candidates: Sequence[Candidate]) -> Path | None:
        """Return the chosen directory, or None if the user cancelled.

        Raises:
            InvalidSelectionError: when the user's input does not name a candidate.
        """
        ...


class ExternalFuzzyFinder:
    """Runs an external fuzzy finder over the candidate paths."""

    def __init__(self, executable: str, home: Path, prompt: str = "j> ") -> None:
        self._executable = executable
        self._home = home
        self._prompt = prompt

    def select(self, candidates: Sequence[Candidate]) -> Path | None:
        if not candidates:
            return None

        lines = [display_path(candidate.path, self._home) for candidate in candidates]
        # Paths are piped as raw filename bytes so undecodable names survive.
        payload = b"".join(os.fsencode(line) + b"\n" for line in lines)
        cmd = [self._executable, *FZF_ARGS, f"--prompt={self._prompt}"]

        try:
            # fzf draws on /dev/tty; only the chosen line comes back on stdout.
            proc = subprocess.run(
                cmd,
                input=payload,
                stdout=subprocess.PIPE,
                check=False,
            )
        except KeyboardInterrupt:
            return None
        except OSError as exc:
            logger.warning("Failed to run %s: %s", self._executable, exc)
            return None

        # 1 = no match, 130 = interrupted (Esc/Ctrl-C).
        if proc.returncode != 0:
            return None

        chosen = os.fsdecode(proc.stdout).strip("\n")
        if not chosen:
            return None
        return expand_display_path(chosen, self._home)


class NumberedListFallback:
    """Numbered list on stderr; one line of numeric input on stdin."""

    def __init__(
        self,
        home: Path,
        *,
        limit: int = DEFAULT_LIMIT,
        input_fn: Callable[[], str] = input,
        console: Console | None = None,
    ) -> None:
        self._home = home
        self._limit = limit
        self._input = input_fn
        self._console = console

    def select(self, candidates: Sequence[Candidate]) -> Path | None:
        shown = list(candidates[: self._limit])
        if not shown:
            return None

        out = self._console or stderr_console
        out.print("[dim]Select directory:[/dim]")
        for index, candidate in enumerate(shown, start=1):
            label = escape(printable(display_path(candidate.path, self._home)))
            out.print(f"[magenta]\\[{index}][/magenta] [cyan]{label}[/cyan]")
        out.print(f"[dim]Enter number (1-{len(shown)}):[/dim] ", end="")

        try:
            raw = self._input()
        except (EOFError, KeyboardInterrupt):
            out.print()
            return None

        choice = raw.strip()
        if not choice:
            return None
        if not choice.isdecimal():
            raise InvalidSelectionError("Selection is not a number", context={"input": choice})

        index = int(choice)
        if not 1 <= index <= len(shown):
            raise InvalidSelectionError(
                f"Selection must be between 1 and {len(shown)}", context={"input": choice}
            )
        return Path(shown[index - 1].path)


def choose_backend(
    config: AppConfig,
    home: Path | None = None,
    *,
    which: Callable[[str], str | None] = shutil.which,
    input_fn: Callable[[], str] = input,
) -> SelectorBackend:
    """Probe once for the fuzzy finder and build the matching backend."""
    home = home or Path.home()
    if config.use_fuzzy_finder:
        executable = which(config.fuzzy_finder)
        if executable:
            logger.debug("Using fuzzy finder %s", executable)
            return ExternalFuzzyFinder(executable, home)
    logger.debug("Fuzzy finder unavailable; using numbered list")
    return NumberedListFallback(home, limit=config.interactive_limit, input_fn=input_fn)


__all__ = [
    "DEFAULT_LIMIT",
    "ExternalFuzzyFinder",
    "NumberedListFallback",
    "SelectorBackend",
    "choose_backend",
]
