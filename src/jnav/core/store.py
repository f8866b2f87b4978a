"""Persistent frecency store.

One record per line: ``path|visit_count|last_access_hours``.

Every mutation reads the whole file, computes the new record set, writes it to
a temporary file in the same directory and renames it over the original. A
reader therefore sees either the old or the new file, never a partial write.
There is no cross-process lock: two concurrent upserts may lose one
increment, which later visits make up for.
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass, replace
from pathlib import Path
from typing import TYPE_CHECKING

from jnav.core.console import get_logger
from jnav.core.paths import canonicalize, is_excluded, now_hours
from jnav.core.result import (
    Err,
    Ok,
    Result,
    StoreCorruptError,
    StoreReadError,
    WriteFailedError,
)

if TYPE_CHECKING:
    from jnav.core.config import AppConfig

logger = get_logger(__name__)

SEPARATOR = "|"

StoreError = StoreReadError | WriteFailedError


@dataclass(frozen=True, slots=True)
class Record:
    path: str
    visit_count: int
    last_access: int


@dataclass(frozen=True, slots=True)
class PruneReport:
    removed: int
    total: int

    @property
    def kept(self) -> int:
        return self.total - self.removed


def format_record(record: Record) -> str:
    return f"{record.path}{SEPARATOR}{record.visit_count}{SEPARATOR}{record.last_access}\n"


def parse_record(line: str) -> Record:
    """Parse one store line.

    Splits from the right, so a separator inside the path survives.

    Raises:
        StoreCorruptError: when the line is not ``path|count|hours``.
    """
    parts = line.rstrip("\n").rsplit(SEPARATOR, 2)
    if len(parts) != 3:
        raise StoreCorruptError("Expected path|count|hours", context={"line": line.strip()})

    path, raw_count, raw_hours = parts
    if not path or not os.path.isabs(path):
        raise StoreCorruptError("Path is not absolute", context={"line": line.strip()})

    try:
        visit_count = int(raw_count)
        last_access = int(raw_hours)
    except ValueError as exc:
        raise StoreCorruptError(
            "Count or timestamp is not an integer", context={"line": line.strip()}
        ) from exc

    if visit_count <= 0:
        raise StoreCorruptError("Visit count must be positive", context={"line": line.strip()})

    return Record(path=path, visit_count=visit_count, last_access=last_access)


def iter_records(path: Path) -> Iterator[Record]:
    """Yield records from ``path``, skipping (and logging) malformed lines."""
    if not path.exists():
        return

    with path.open("r", encoding="utf-8", errors="surrogateescape") as fh:
        for lineno, line in enumerate(fh, start=1):
            if not line.strip():
                continue
            try:
                yield parse_record(line)
            except StoreCorruptError as exc:
                logger.warning("Skipping corrupt store line %s:%d: %s", path, lineno, exc)


def write_records(path: Path, records: Iterable[Record]) -> None:
    """Atomically rewrite the store file with ``records``.

    Raises:
        OSError: when the temporary file cannot be written or renamed. The
            temporary file is removed and ``path`` is left untouched.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", errors="surrogateescape") as fh:
            for record in records:
                fh.write(format_record(record))
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(temp_name, path)
    except BaseException:
        try:
            os.unlink(temp_name)
        except OSError:
            pass
        raise


def _merge(records: Iterable[Record]) -> list[Record]:
    """Collapse duplicate paths left behind by hand edits or old writers."""
    merged: dict[str, Record] = {}
    for record in records:
        existing = merged.get(record.path)
        if existing is None:
            merged[record.path] = record
            continue
        merged[record.path] = Record(
            path=record.path,
            visit_count=existing.visit_count + record.visit_count,
            last_access=max(existing.last_access, record.last_access),
        )
    return list(merged.values())


class FrecencyStore:
    """File-backed set of visit records keyed by absolute path."""

    def __init__(
        self,
        path: Path,
        *,
        exclude_roots: Sequence[Path] = (),
        exclude_home: bool = True,
        min_path_length: int = 4,
        home: Path | None = None,
        clock: Callable[[], int] = now_hours,
    ) -> None:
        self._path = Path(path).expanduser()
        self._exclude_roots = [canonicalize(root) for root in exclude_roots]
        self._exclude_home = exclude_home
        self._min_path_length = min_path_length
        self._home = canonicalize(home or Path.home())
        self._clock = clock

    @classmethod
    def from_config(cls, config: AppConfig, *, clock: Callable[[], int] = now_hours) -> FrecencyStore:
        return cls(
            config.data_path,
            exclude_roots=config.exclude_roots,
            exclude_home=config.exclude_home,
            min_path_length=config.min_path_length,
            clock=clock,
        )

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.exists()

    def now(self) -> int:
        return self._clock()

    # ------------------------------------------------------------------
    # Tracking policy
    # ------------------------------------------------------------------

    def should_track(self, path: str | os.PathLike[str]) -> bool:
        """Exclusion and length checks applied before any write."""
        try:
            resolved = canonicalize(path)
        except (OSError, RuntimeError, ValueError):
            return False
        return self._trackable(resolved)

    def _trackable(self, resolved: Path) -> bool:
        text = str(resolved)
        if "\n" in text:
            return False
        if len(text) < self._min_path_length:
            return False
        if self._exclude_home and resolved == self._home:
            return False
        return not is_excluded(resolved, self._exclude_roots)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _load(self) -> Result[list[Record], StoreReadError]:
        try:
            return Ok(_merge(iter_records(self._path)))
        except OSError as exc:
            return Err(
                StoreReadError(
                    "Failed to read store", context={"path": str(self._path), "error": str(exc)}
                )
            )

    def get_all(self) -> list[Record]:
        """All records in file order. Unreadable stores read as empty."""
        match self._load():
            case Ok(records):
                return records
            case Err(err):
                logger.warning("%s", err)
                return []

    def get(self, path: str | os.PathLike[str]) -> Record | None:
        target = str(canonicalize(path))
        return next((record for record in self.get_all() if record.path == target), None)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _write(self, records: Sequence[Record]) -> Result[None, WriteFailedError]:
        try:
            write_records(self._path, records)
        except OSError as exc:
            return Err(
                WriteFailedError(
                    "Failed to write store", context={"path": str(self._path), "error": str(exc)}
                )
            )
        return Ok(None)

    def upsert(self, path: str | os.PathLike[str]) -> Result[Record | None, StoreError]:
        """Record one visit to ``path``.

        Returns ``Ok(None)`` when the path is excluded or too short (nothing
        is written), otherwise ``Ok`` with the updated record.
        """
        try:
            resolved = canonicalize(path)
        except (OSError, RuntimeError, ValueError):
            logger.debug("Cannot resolve %s; not tracking", path)
            return Ok(None)

        if not self._trackable(resolved):
            logger.debug("Skipping excluded path %s", resolved)
            return Ok(None)

        match self._load():
            case Err(err):
                return Err(err)
            case Ok(records):
                pass

        now = self._clock()
        key = str(resolved)
        updated: Record | None = None
        for index, record in enumerate(records):
            if record.path == key:
                updated = replace(
                    record,
                    visit_count=record.visit_count + 1,
                    last_access=max(record.last_access, now),
                )
                records[index] = updated
                break

        if updated is None:
            updated = Record(path=key, visit_count=1, last_access=now)
            records.append(updated)

        return self._write(records).map(lambda _: updated)

    def remove(self, path: str | os.PathLike[str]) -> Result[bool, StoreError]:
        """Delete the record for ``path``; ``Ok(False)`` if it was not tracked."""
        try:
            key = str(canonicalize(path))
        except (OSError, RuntimeError, ValueError):
            key = os.path.abspath(os.fspath(path))

        match self._load():
            case Err(err):
                return Err(err)
            case Ok(records):
                pass

        kept = [record for record in records if record.path != key]
        if len(kept) == len(records):
            return Ok(False)
        return self._write(kept).map(lambda _: True)

    def prune(
        self, is_dir: Callable[[str], bool] = os.path.isdir
    ) -> Result[PruneReport, StoreError]:
        """Drop every record whose directory no longer exists."""
        match self._load():
            case Err(err):
                return Err(err)
            case Ok(records):
                pass

        kept: list[Record] = []
        for record in records:
            if is_dir(record.path):
                kept.append(record)
            else:
                logger.debug("Pruning missing directory %s", record.path)
        report = PruneReport(removed=len(records) - len(kept), total=len(records))

        if not self.exists() or report.removed == 0:
            return Ok(report)
        return self._write(kept).map(lambda _: report)

    def import_records(self, incoming: Iterable[Record]) -> Result[int, StoreError]:
        """Append records whose paths are not tracked yet; returns how many."""
        match self._load():
            case Err(err):
                return Err(err)
            case Ok(records):
                pass

        known = {record.path for record in records}
        added = 0
        for record in incoming:
            if record.path in known:
                continue
            records.append(record)
            known.add(record.path)
            added += 1

        if added == 0:
            return Ok(0)
        return self._write(records).map(lambda _: added)


__all__ = [
    "SEPARATOR",
    "FrecencyStore",
    "PruneReport",
    "Record",
    "format_record",
    "iter_records",
    "parse_record",
    "write_records",
]
