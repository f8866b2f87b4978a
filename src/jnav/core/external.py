"""External collaborators: the project registry and the editor launcher."""

from __future__ import annotations

import os
import shlex
import shutil
import subprocess
from collections.abc import Callable, Sequence
from pathlib import Path

from jnav.core.console import get_logger
from jnav.core.paths import expand_display_path
from jnav.core.result import Err, Ok, Result, ToolExecutionError

logger = get_logger(__name__)

REGISTRY_TIMEOUT = 5.0

# Probed before PATH, in this order.
CODE_PATHS = (
    Path("/opt/homebrew/bin/code"),
    Path("/usr/local/bin/code"),
    Path("/usr/bin/code"),
)

Which = Callable[[str], str | None]


def _split(command: Sequence[str] | str) -> list[str]:
    return shlex.split(command) if isinstance(command, str) else list(command)


class ProjectRegistry:
    """Looks up project directories through an external registry tool.

    ``command`` receives one name argument and prints an absolute path, or
    nothing. ``list_command`` prints a table whose rows start with a
    ``~/``-relative project path after two header lines. Any failure is
    treated as "not found" or an empty listing.
    """

    def __init__(
        self,
        command: Sequence[str] | str = ("gitx", "path"),
        *,
        list_command: Sequence[str] | str = ("gitx", "list"),
        which: Which = shutil.which,
        timeout: float = REGISTRY_TIMEOUT,
        home: Path | None = None,
    ) -> None:
        self._command = _split(command)
        self._list_command = _split(list_command)
        self._which = which
        self._timeout = timeout
        self._home = home or Path.home()

    @property
    def available(self) -> bool:
        return bool(self._command) and self._which(self._command[0]) is not None

    def _run(self, argv: list[str]) -> str | None:
        """stdout of ``argv``, or None when it is missing, fails or times out."""
        if not argv or self._which(argv[0]) is None:
            logger.debug("Project registry %s not installed", argv[:1])
            return None

        try:
            proc = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                errors="surrogateescape",
                timeout=self._timeout,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            logger.debug("Project registry command %s failed: %s", argv, exc)
            return None

        if proc.returncode != 0:
            logger.debug("Project registry exited %d for %s", proc.returncode, argv)
            return None
        return proc.stdout

    def lookup(self, name: str) -> Path | None:
        output = self._run([*self._command, name])
        if output is None:
            return None

        first_line = next((line.strip() for line in output.splitlines() if line.strip()), "")
        if not first_line:
            return None

        candidate = Path(first_line).expanduser()
        if not candidate.is_dir():
            logger.debug("Project registry returned non-directory %s", candidate)
            return None
        return candidate.resolve()

    def list_projects(self) -> list[Path]:
        """Existing project directories from the registry listing, in listing order."""
        output = self._run(list(self._list_command))
        if output is None:
            return []

        projects: list[Path] = []
        for line in output.splitlines()[2:]:
            if not line.startswith("~"):
                continue
            column = line.split()[0]
            candidate = expand_display_path(column, self._home)
            if candidate.is_dir():
                projects.append(candidate)
        return projects


class Launcher:
    """Opens a directory in an external editor (VS Code by default)."""

    def __init__(
        self,
        command: str | None = None,
        *,
        which: Which = shutil.which,
        home: Path | None = None,
    ) -> None:
        self._command = command
        self._which = which
        self._home = home or Path.home()
        self._resolved: list[str] | None = None

    def find_command(self) -> list[str] | None:
        """Resolve the launcher command once and cache it."""
        if self._resolved is not None:
            return self._resolved

        if self._command:
            self._resolved = shlex.split(self._command)
            return self._resolved

        for candidate in CODE_PATHS:
            if candidate.is_file() and os.access(candidate, os.X_OK):
                self._resolved = [str(candidate)]
                return self._resolved

        on_path = self._which("code")
        if on_path:
            self._resolved = [on_path]
            return self._resolved

        # Remote SSH sessions ship their own code binary per server build.
        server_dir = self._home / ".vscode-server" / "bin"
        if server_dir.is_dir():
            builds = sorted(
                (entry / "bin" / "code" for entry in server_dir.iterdir()),
                key=lambda p: p.stat().st_mtime if p.exists() else 0.0,
            )
            for binary in reversed(builds):
                if binary.is_file() and os.access(binary, os.X_OK):
                    self._resolved = [str(binary)]
                    return self._resolved

        return None

    def open(self, path: Path) -> Result[None, ToolExecutionError]:
        command = self.find_command()
        if not command:
            return Err(ToolExecutionError("VS Code command not found", context={"path": str(path)}))

        try:
            subprocess.Popen(
                [*command, str(path)],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as exc:
            return Err(
                ToolExecutionError(
                    "Failed to start launcher",
                    context={"command": command[0], "error": str(exc)},
                )
            )
        return Ok(None)


__all__ = ["CODE_PATHS", "Launcher", "ProjectRegistry"]
