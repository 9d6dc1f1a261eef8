"""Portable free-text matching and ranking over plain string columns."""
from typing import Optional

from sqlalchemy import and_, case, func, or_, true
from sqlalchemy.sql.elements import ColumnElement

EXACT_SCORE = 3
PREFIX_SCORE = 2
SUBSTRING_SCORE = 1


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def search_terms(query: str | None) -> list[str]:
    return [term.lower() for term in (query or "").split()]


def text_search(query: str | None, *columns) -> tuple[ColumnElement, Optional[ColumnElement]]:
    """Return ``(condition, rank)`` for ``query`` against ``columns``.

    Every whitespace-separated term must appear (case-insensitively) in at least
    one column. The rank adds up, per term and column, 3 for an exact match,
    2 for a prefix match and 1 for a substring match. A blank query matches
    everything and has no rank (None).
    """
    terms = search_terms(query)
    if not terms:
        return true(), None

    conditions = []
    scores = []
    for term in terms:
        escaped = _escape_like(term)
        per_column = []
        for column in columns:
            lowered = func.lower(column)
            contains = lowered.like(f"%{escaped}%", escape="\\")
            per_column.append(contains)
            scores.append(
                case(
                    (lowered == term, EXACT_SCORE),
                    (lowered.like(f"{escaped}%", escape="\\"), PREFIX_SCORE),
                    (contains, SUBSTRING_SCORE),
                    else_=0,
                )
            )
        conditions.append(or_(*per_column))

    rank = scores[0]
    for score in scores[1:]:
        rank = rank + score
    return and_(*conditions), rank
