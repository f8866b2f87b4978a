"""CLI tests for jump, track, init and the housekeeping commands."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any

import pytest
from rich.console import Console
from typer.testing import CliRunner

import jnav.core.tracker as tracker_mod
from jnav.core.paths import now_hours
from jnav.core.store import Record, iter_records, write_records
from jnav.main import app


@pytest.fixture(autouse=True)
def fake_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return home


@pytest.fixture(autouse=True)
def inline_upserts(monkeypatch: pytest.MonkeyPatch) -> None:
    """Run tracker writes synchronously so assertions see them."""
    monkeypatch.setattr(tracker_mod, "spawn_detached", tracker_mod.spawn_inline)


@pytest.fixture
def workdir(make_dirs: Any, monkeypatch: pytest.MonkeyPatch) -> Path:
    (cwd,) = make_dirs("work")
    monkeypatch.chdir(cwd)
    return cwd


def _seed(data_path: Path, *entries: tuple[Path | str, int]) -> None:
    write_records(data_path, [Record(str(path), count, now_hours()) for path, count in entries])


def _paths(data_path: Path) -> list[str]:
    return [record.path for record in iter_records(data_path)]


class TestJump:
    """Tests for `jnav jump`."""

    def test_prints_best_match(
        self, runner: CliRunner, data_path: Path, make_dirs: Any, workdir: Path
    ) -> None:
        """stdout carries only the target directory."""
        low, high = make_dirs("proj/low", "proj/high")
        _seed(data_path, (low, 1), (high, 4))

        result = runner.invoke(app, ["jump", "proj"])

        assert result.exit_code == 0
        assert result.stdout.strip() == str(high)

    def test_jump_reinforces_target(
        self, runner: CliRunner, data_path: Path, make_dirs: Any, workdir: Path
    ) -> None:
        (target,) = make_dirs("target")
        _seed(data_path, (target, 1))

        runner.invoke(app, ["jump", "target"])

        (record,) = list(iter_records(data_path))
        assert record.visit_count == 2

    def test_no_match_exits_nonzero(
        self, runner: CliRunner, workdir: Path, stderr_capture: Console
    ) -> None:
        result = runner.invoke(app, ["jump", "nothing", "here"])

        assert result.exit_code == 1
        assert "No matching directory: nothing here" in stderr_capture.export_text()

    @pytest.mark.skipif(sys.platform == "darwin", reason="APFS rejects non-UTF-8 file names")
    def test_undecodable_target_is_printed_as_bytes(
        self, runner: CliRunner, data_path: Path, make_dirs: Any, workdir: Path
    ) -> None:
        """A directory whose name is not valid UTF-8 reaches stdout byte-for-byte."""
        (parent,) = make_dirs("latin1")
        os.mkdir(os.fsencode(parent) + b"/caf\xe9")
        target = parent / os.fsdecode(b"caf\xe9")
        _seed(data_path, (target, 2))

        result = runner.invoke(app, ["jump", "latin1"])

        assert result.exit_code == 0
        assert result.stdout_bytes.strip() == os.fsencode(target)

    def test_previous_dir_from_env(
        self, runner: CliRunner, make_dirs: Any, workdir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (before,) = make_dirs("before")
        monkeypatch.setenv("JNAV_PREV_DIR", str(before))

        result = runner.invoke(app, ["jump", "-"])

        assert result.exit_code == 0
        assert result.stdout.strip() == str(before)

    def test_interactive_numbered_list(
        self, runner: CliRunner, data_path: Path, make_dirs: Any, workdir: Path
    ) -> None:
        first, second = make_dirs("first", "second")
        _seed(data_path, (first, 5), (second, 1))

        result = runner.invoke(app, ["jump"], input="2\n")

        assert result.exit_code == 0
        assert result.stdout.strip().endswith(str(second))

    def test_verbose_goes_to_stderr(
        self, runner: CliRunner, data_path: Path, make_dirs: Any, workdir: Path, stderr_capture: Console
    ) -> None:
        (target,) = make_dirs("target")
        _seed(data_path, (target, 1))

        result = runner.invoke(app, ["jump", "-v", "target"])

        assert result.exit_code == 0
        assert "[j] Searching frecency database" in stderr_capture.export_text()


class TestDatabaseFlags:
    """Tests for --add, --remove, --list and --clean."""

    def test_add_current(self, runner: CliRunner, data_path: Path, workdir: Path) -> None:
        result = runner.invoke(app, ["jump", "--add"])

        assert result.exit_code == 0
        assert _paths(data_path) == [str(workdir)]

    def test_remove_absent_fails(self, runner: CliRunner, workdir: Path) -> None:
        result = runner.invoke(app, ["jump", "--remove"])
        assert result.exit_code == 1

    def test_remove_current(self, runner: CliRunner, data_path: Path, workdir: Path) -> None:
        _seed(data_path, (workdir, 3), ("/srv/other", 1))

        result = runner.invoke(app, ["jump", "--remove"])

        assert result.exit_code == 0
        assert _paths(data_path) == ["/srv/other"]

    def test_list(
        self, runner: CliRunner, data_path: Path, make_dirs: Any, workdir: Path, capture_console: Console
    ) -> None:
        (alive,) = make_dirs("alive")
        _seed(data_path, (alive, 2))

        result = runner.invoke(app, ["jump", "--list"])

        assert result.exit_code == 0
        text = capture_console.export_text()
        assert "Score" in text
        assert str(alive) in text

    def test_short_list_flag_is_rejected(self, runner: CliRunner, workdir: Path) -> None:
        """Only --list and --db show the database."""
        result = runner.invoke(app, ["jump", "-l"])
        assert result.exit_code == 2

    def test_list_empty(self, runner: CliRunner, workdir: Path, capture_console: Console) -> None:
        runner.invoke(app, ["jump", "--db"])
        assert "No directories tracked yet." in capture_console.export_text()

    def test_clean(
        self, runner: CliRunner, data_path: Path, make_dirs: Any, workdir: Path, capture_console: Console
    ) -> None:
        (alive,) = make_dirs("alive")
        _seed(data_path, (alive, 2), ("/gone/away", 1))

        result = runner.invoke(app, ["jump", "--clean"])

        assert result.exit_code == 0
        assert "Removed 1 non-existent directories (kept 1)" in capture_console.export_text()
        assert _paths(data_path) == [str(alive)]

    def test_clean_empty(self, runner: CliRunner, workdir: Path, capture_console: Console) -> None:
        runner.invoke(app, ["jump", "--clean"])
        assert "Database is empty" in capture_console.export_text()


class TestMigrationOnStartup:
    def test_marks_imported_once(
        self,
        runner: CliRunner,
        data_path: Path,
        make_dirs: Any,
        workdir: Path,
        tmp_path: Path,
        stderr_capture: Console,
    ) -> None:
        (site,) = make_dirs("site")
        (tmp_path / "marks").write_text(f"site:{site}\n", encoding="utf-8")

        runner.invoke(app, ["jump", "--list"])

        assert "Migrated 1 bookmarks" in stderr_capture.export_text()
        (record,) = list(iter_records(data_path))
        assert record.visit_count == 10


class TestTrack:
    """Tests for `jnav track`."""

    def test_records_path(self, runner: CliRunner, data_path: Path, make_dirs: Any) -> None:
        (target,) = make_dirs("visited")

        result = runner.invoke(app, ["track", "--", str(target)])

        assert result.exit_code == 0
        assert _paths(data_path) == [str(target)]

    def test_disabled_hook(
        self, runner: CliRunner, data_path: Path, make_dirs: Any, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("JNAV_DISABLE_HOOK", "1")
        (target,) = make_dirs("visited")

        runner.invoke(app, ["track", str(target)])

        assert not data_path.exists()


class TestInit:
    def test_zsh(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["init", "zsh"])

        assert result.exit_code == 0
        assert "add-zsh-hook chpwd" in result.stdout

    def test_unsupported(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["init", "fish"])
        assert result.exit_code == 1


def test_config_command(runner: CliRunner, capture_console: Console) -> None:
    result = runner.invoke(app, ["config"])

    assert result.exit_code == 0
    assert "data_path" in capture_console.export_text()


def test_safe_mode_banner(runner: CliRunner, isolate_config: Path, stderr_capture: Console) -> None:
    isolate_config.write_text("decay = [", encoding="utf-8")

    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert "Safe Mode Active" in stderr_capture.export_text()
