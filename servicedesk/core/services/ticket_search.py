"""Keyword search over ticket titles and descriptions.

Queries combine terms with ``AND`` and ``OR`` (case-insensitive keywords).
``AND`` binds tighter than ``OR``: ``printer AND jam OR scanner`` means
``(printer AND jam) OR scanner``. Each term matches when it appears,
case-insensitively, in either the title or the description.
"""

from __future__ import annotations

import re
from typing import List

from sqlalchemy import and_, false, or_
from sqlalchemy.sql.elements import ColumnElement

from servicedesk.core.repositories.models import Ticket

_WHITESPACE = re.compile(r"\s+")
# Operators only count when they stand alone between whitespace.
_AND = re.compile(r"(?<!\S)and(?!\S)", re.IGNORECASE)
_OR = re.compile(r"(?<!\S)or(?!\S)", re.IGNORECASE)
_SPLIT_AND = re.compile(r"(?<!\S)AND(?!\S)")
_SPLIT_OR = re.compile(r"(?<!\S)OR(?!\S)")


def normalize_query(query: str | None) -> str:
    """Collapse whitespace and upper-case the AND/OR keywords."""
    text = _WHITESPACE.sub(" ", query or "").strip()
    text = _AND.sub("AND", text)
    return _OR.sub("OR", text)


def parse_query(query: str | None) -> List[List[str]]:
    """Split a query into OR-groups of AND-terms; empty terms are dropped."""
    groups: List[List[str]] = []
    for group in _SPLIT_OR.split(normalize_query(query)):
        terms = [t.strip() for t in _SPLIT_AND.split(group) if t.strip()]
        if terms:
            groups.append(terms)
    return groups


def _escape_like_pattern(value: str) -> str:
    """Escape LIKE wildcard characters in a search term."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _term_clause(term: str) -> ColumnElement[bool]:
    like = f"%{_escape_like_pattern(term)}%"
    return or_(
        Ticket.Title.ilike(like, escape="\\"),
        Ticket.Description.ilike(like, escape="\\"),
    )


def build_search_clause(query: str | None) -> ColumnElement[bool]:
    """Return a where-clause for *query*; a query without terms matches nothing."""
    groups = parse_query(query)
    if not groups:
        return false()
    return or_(*(and_(*(_term_clause(t) for t in terms)) for terms in groups))


def matches_query(query: str | None, title: str | None, description: str | None) -> bool:
    """In-memory counterpart of :func:`build_search_clause`."""
    haystacks = ((title or "").lower(), (description or "").lower())
    for terms in parse_query(query):
        if all(any(t.lower() in h for h in haystacks) for t in terms):
            return True
    return False


__all__ = ["normalize_query", "parse_query", "build_search_clause", "matches_query"]
