"""Multi-keyword path matching."""

from __future__ import annotations

from collections.abc import Sequence


def matches(path: str, terms: Sequence[str]) -> bool:
    """True iff every term is a case-insensitive substring of ``path``.

    An empty ``terms`` matches everything. Terms are independent: order and
    overlap between them are not considered.
    """
    folded = path.casefold()
    return all(term.casefold() in folded for term in terms)
