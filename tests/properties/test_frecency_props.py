"""Property-based tests for the frecency engine using Hypothesis.

These tests verify core invariants of scoring, matching and storage:
- Scores never increase as time passes
- Matching is an AND over case-insensitive substrings
- Every storable record survives a write/read cycle
- Each upsert adds exactly one visit
"""

from __future__ import annotations

import tempfile
from pathlib import Path

from hypothesis import assume, given, settings
from hypothesis import strategies as st

from jnav.core.matching import matches
from jnav.core.scoring import score
from jnav.core.store import FrecencyStore, Record, iter_records, write_records

# === Strategies ===

hours_strategy = st.integers(min_value=0, max_value=2_000_000)
count_strategy = st.integers(min_value=1, max_value=100_000)

# Path components may contain the separator; newlines are never stored.
path_component_strategy = st.text(
    alphabet=st.characters(
        whitelist_categories=("L", "N"),
        whitelist_characters="_-.| ",
    ),
    min_size=1,
    max_size=30,
).filter(lambda s: s.strip() not in ("", ".", ".."))

absolute_path_strategy = st.lists(path_component_strategy, min_size=1, max_size=5).map(
    lambda parts: "/" + "/".join(parts)
)

term_strategy = st.text(
    alphabet=st.characters(whitelist_categories=("L", "N")), min_size=1, max_size=5
)


# === Property Tests ===


@given(count=count_strategy, last=hours_strategy, now=hours_strategy, later=st.integers(0, 10_000))
@settings(max_examples=200)
def test_score_is_monotonic_in_time(count: int, last: int, now: int, later: int) -> None:
    """Score at a later time is never higher than at an earlier time."""
    record = Record("/a/b/c", count, last)
    assert score(record, now + later) <= score(record, now)


@given(count=count_strategy, last=hours_strategy, now=hours_strategy)
@settings(max_examples=200)
def test_score_bounded_by_count(count: int, last: int, now: int) -> None:
    """Decay can only shrink the visit count."""
    value = score(Record("/a/b/c", count, last), now)
    assert 0.0 <= value <= count


@given(path=absolute_path_strategy)
def test_empty_terms_match_every_path(path: str) -> None:
    assert matches(path, [])


@given(path=absolute_path_strategy, terms=st.lists(term_strategy, max_size=4))
@settings(max_examples=200)
def test_match_is_and_of_substrings(path: str, terms: list[str]) -> None:
    """matches() agrees with an explicit per-term check."""
    expected = all(term.casefold() in path.casefold() for term in terms)
    assert matches(path, terms) is expected


@given(path=absolute_path_strategy, terms=st.lists(term_strategy, min_size=1, max_size=3))
def test_adding_a_term_never_widens(path: str, terms: list[str]) -> None:
    """A path matching more terms also matches any prefix of them."""
    if matches(path, terms):
        assert matches(path, terms[:-1])


@given(
    records=st.lists(
        st.builds(Record, absolute_path_strategy, count_strategy, hours_strategy),
        max_size=20,
        unique_by=lambda r: r.path,
    )
)
@settings(max_examples=100)
def test_store_file_round_trip(records: list[Record]) -> None:
    """Records written to disk read back identically, '|' in paths included."""
    with tempfile.TemporaryDirectory() as tmpdir:
        target = Path(tmpdir) / "j.db"
        write_records(target, records)
        assert list(iter_records(target)) == records


@given(visits=st.integers(min_value=1, max_value=20), path=absolute_path_strategy)
@settings(max_examples=50, deadline=None)
def test_upsert_adds_exactly_one_visit(visits: int, path: str) -> None:
    """N upserts of one path leave one record with count N."""
    assume(len(path) >= 4)
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        store = FrecencyStore(root / "j.db", home=root / "home", clock=lambda: 1000)
        for _ in range(visits):
            store.upsert(path)

        records = store.get_all()
        assert len(records) == 1
        assert records[0].visit_count == visits
