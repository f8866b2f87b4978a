from __future__ import annotations

import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from rich.console import Console
from typer.testing import CliRunner

ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

# Fixed "now" for store and ranker tests, in hours since the epoch.
NOW = 480_000


class FakeClock:
    """Settable hour clock."""

    def __init__(self, now: int = NOW) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, hours: int) -> None:
        self.now += hours


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def data_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "j.db"


@pytest.fixture
def make_dirs(tmp_path: Path) -> Callable[..., list[Path]]:
    """Create directories under a tree root and return their canonical paths."""

    def _make(*names: str) -> list[Path]:
        created = []
        for name in names:
            target = tmp_path / "tree" / name
            target.mkdir(parents=True, exist_ok=True)
            created.append(target.resolve())
        return created

    return _make


@pytest.fixture(autouse=True)
def isolate_config(tmp_path: Path, monkeypatch: Any) -> Path:
    """Point config, store and bookmarks at temp paths so tests don't touch user state."""
    cfg_path = tmp_path / "config.toml"
    monkeypatch.setenv("JNAV_CONFIG", str(cfg_path))
    monkeypatch.setenv("JNAV_DATA_PATH", str(tmp_path / "data" / "j.db"))
    monkeypatch.setenv("JNAV_LEGACY_MARKS_PATH", str(tmp_path / "marks"))
    monkeypatch.setenv("JNAV_USE_FUZZY_FINDER", "false")
    monkeypatch.setenv("JNAV_REGISTRY_COMMAND", "jnav-test-missing-registry")
    monkeypatch.setenv("JNAV_REGISTRY_LIST_COMMAND", "jnav-test-missing-registry list")
    for name in ("JNAV_PREV_DIR", "JNAV_EXCLUDE_ROOTS", "JNAV_DISABLE_HOOK", "JSH_DIR"):
        monkeypatch.delenv(name, raising=False)
    return cfg_path


@pytest.fixture(autouse=True)
def capture_console(monkeypatch: Any) -> Console:
    """Use in-memory Rich consoles during tests."""
    test_console = Console(record=True, width=200)
    test_stderr = Console(record=True, width=200, stderr=True)
    import jnav.commands.init as init_cmd
    import jnav.commands.nav as nav_cmd
    import jnav.core.console as core_console
    import jnav.main as jnav_main

    monkeypatch.setattr(core_console, "console", test_console)
    monkeypatch.setattr(core_console, "stderr_console", test_stderr)
    monkeypatch.setattr(jnav_main, "console", test_console)
    monkeypatch.setattr(jnav_main, "stderr_console", test_stderr)
    monkeypatch.setattr(nav_cmd, "console", test_console)
    monkeypatch.setattr(nav_cmd, "stderr_console", test_stderr)
    monkeypatch.setattr(init_cmd, "stderr_console", test_stderr)
    return test_console


@pytest.fixture
def stderr_capture(capture_console: Console) -> Console:
    import jnav.commands.nav as nav_cmd

    return nav_cmd.stderr_console
