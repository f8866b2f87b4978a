"""Frecency scoring.

Score = visit_count * decay ^ hours_since_last_access
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from jnav.core.store import Record

# 0.99 means score decays by 1% per hour
DECAY = 0.99

# Entries below this are hidden from results; the store keeps them.
MIN_SCORE = 0.01


def score(record: Record, now_hours: int, decay: float = DECAY) -> float:
    """Frecency of ``record`` at ``now_hours``.

    Clock skew (a ``last_access`` in the future) counts as zero elapsed hours.
    """
    elapsed = max(0, now_hours - record.last_access)
    return record.visit_count * (decay**elapsed)


def is_visible(value: float, min_score: float = MIN_SCORE) -> bool:
    return value >= min_score
