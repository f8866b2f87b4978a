"""Ranked query engine over the frecency store."""

from __future__ import annotations

import os
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path

from jnav.core.console import get_logger
from jnav.core.matching import matches
from jnav.core.scoring import DECAY, MIN_SCORE, is_visible, score
from jnav.core.store import FrecencyStore

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class Candidate:
    score: float
    path: str
    last_access: int

    def __iter__(self) -> Iterator[object]:
        # Unpacks as (score, path).
        yield self.score
        yield self.path


def _rank_key(candidate: Candidate) -> tuple[float, int]:
    # Highest score first; ties go to the most recently visited.
    return (-candidate.score, -candidate.last_access)


class Ranker:
    """Combines the store, the scorer and the matcher into sorted candidates.

    A full scan per query: stores hold hundreds of entries, not millions.
    """

    def __init__(
        self,
        store: FrecencyStore,
        *,
        decay: float = DECAY,
        min_score: float = MIN_SCORE,
        clock: Callable[[], int] | None = None,
        is_dir: Callable[[str], bool] = os.path.isdir,
    ) -> None:
        self._store = store
        self._decay = decay
        self._min_score = min_score
        self._clock = clock or store.now
        self._is_dir = is_dir

    @property
    def store(self) -> FrecencyStore:
        return self._store

    def query(self, terms: Sequence[str], cwd: Path | str | None = None) -> list[Candidate]:
        """Existing, visible, matching directories other than ``cwd``, best first."""
        now = self._clock()
        current = str(cwd) if cwd is not None else None
        candidates: list[Candidate] = []

        for record in self._store.get_all():
            if current is not None and record.path == current:
                continue
            if not self._is_dir(record.path):
                continue
            value = score(record, now, self._decay)
            if not is_visible(value, self._min_score):
                continue
            if not matches(record.path, terms):
                continue
            candidates.append(Candidate(score=value, path=record.path, last_access=record.last_access))

        candidates.sort(key=_rank_key)
        logger.debug("Query %s matched %d candidate(s)", list(terms), len(candidates))
        return candidates

    def scored(self) -> list[Candidate]:
        """Every stored record with its current score, best first, unfiltered."""
        now = self._clock()
        candidates = [
            Candidate(score=score(record, now, self._decay), path=record.path, last_access=record.last_access)
            for record in self._store.get_all()
        ]
        candidates.sort(key=_rank_key)
        return candidates


__all__ = ["Candidate", "Ranker"]
