"""Directory-change tracking.

The host shell calls :meth:`ChangeTracker.on_directory_change` after every
``cd``. The cheap exclusion checks run inline; the store write runs on a
separate thread whose outcome is never reported back to the shell.
"""

from __future__ import annotations

import os
import threading
from collections.abc import Callable

from jnav.core.console import get_logger
from jnav.core.result import Err
from jnav.core.store import FrecencyStore

logger = get_logger(__name__)

Spawner = Callable[[Callable[[], None]], None]


def spawn_detached(fn: Callable[[], None]) -> None:
    """Run ``fn`` on a fire-and-forget thread.

    The thread is non-daemon so a short-lived CLI process still finishes the
    write before the interpreter exits.
    """
    thread = threading.Thread(target=fn, name="jnav-upsert", daemon=False)
    thread.start()


def spawn_inline(fn: Callable[[], None]) -> None:
    fn()


class ChangeTracker:
    """Best-effort reinforcement of visited directories."""

    def __init__(
        self,
        store: FrecencyStore,
        *,
        enabled: bool = True,
        spawn: Spawner | None = None,
    ) -> None:
        self._store = store
        self._enabled = enabled
        self._spawn = spawn

    def on_directory_change(self, path: str | os.PathLike[str]) -> bool:
        """Dispatch an upsert for ``path``. Returns whether one was dispatched.

        Used by the post-cd hook and by jumps alike; a disabled tracker
        records nothing from either.
        """
        if not self._enabled or not self._store.should_track(path):
            return False

        target = os.fspath(path)
        try:
            (self._spawn or spawn_detached)(lambda: self._upsert(target))
        except RuntimeError as exc:
            # Thread creation can fail during interpreter shutdown.
            logger.debug("Could not dispatch upsert for %s: %s", target, exc)
            return False
        return True

    def _upsert(self, path: str) -> None:
        try:
            result = self._store.upsert(path)
        except Exception as exc:  # noqa: BLE001 - never surface into the shell
            logger.debug("Background upsert for %s raised: %s", path, exc)
            return
        if isinstance(result, Err):
            logger.debug("Background upsert for %s failed: %s", path, result.error)


__all__ = ["ChangeTracker", "Spawner", "spawn_detached", "spawn_inline"]
