"""One-time import of legacy ``~/.marks`` bookmarks (``name:path`` lines)."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

from jnav.core.console import get_logger
from jnav.core.paths import canonicalize
from jnav.core.result import Err, Ok, Result
from jnav.core.store import FrecencyStore, Record, StoreError

logger = get_logger(__name__)

# Bookmarks were chosen deliberately, so they start ahead of a single visit.
BOOKMARK_VISIT_COUNT = 10


def iter_bookmarks(marks_file: Path) -> Iterator[tuple[str, Path]]:
    """Yield ``(name, path)`` pairs, skipping blank and malformed lines."""
    with marks_file.open("r", encoding="utf-8", errors="replace") as fh:
        for line in fh:
            name, sep, raw_path = line.rstrip("\n").partition(":")
            if not sep or not raw_path.strip():
                continue
            yield name, Path(raw_path.strip()).expanduser()


def migrate_legacy_marks(
    store: FrecencyStore,
    marks_file: Path,
    *,
    visit_count: int = BOOKMARK_VISIT_COUNT,
) -> Result[int, StoreError]:
    """Import bookmarks into an empty store; the legacy file is left untouched.

    Runs only when ``marks_file`` exists and the store file does not.
    """
    if not marks_file.is_file() or store.exists():
        return Ok(0)

    now = store.now()
    records: list[Record] = []
    try:
        for name, path in iter_bookmarks(marks_file):
            if not path.is_dir():
                logger.debug("Skipping bookmark %s -> %s (missing)", name, path)
                continue
            records.append(Record(path=str(canonicalize(path)), visit_count=visit_count, last_access=now))
    except OSError as exc:
        logger.warning("Could not read legacy bookmarks %s: %s", marks_file, exc)
        return Ok(0)

    match store.import_records(records):
        case Ok(count):
            logger.info("Migrated %d bookmark(s) from %s", count, marks_file)
            return Ok(count)
        case Err(err):
            return Err(err)
