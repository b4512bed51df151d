from __future__ import annotations

"""
Free-text column declarations -> ordered Column tuples.

Two grammars are supported and the caller picks one; the parser never
guesses:

    Grammar.LINES    one column per line        "id (pk)\\nname\\nemail VARCHAR"
    Grammar.COMMAS   comma separated entries    "id (pk), name, created_at"

Parsing never raises. Malformed entries degrade to odd column names;
rejecting an empty result is up to the caller.
"""

import re
from enum import Enum
from typing import Iterable, Sequence

from ..log import getLogger
from .model import Column

logger = getLogger(__name__)


class Grammar(str, Enum):
    LINES = "lines"
    COMMAS = "commas"


PK_MARKERS: tuple[str, ...] = ("(pk)", "(key)")

TYPE_KEYWORDS: tuple[str, ...] = (
    "VARCHAR",
    "STRING",
    "INT",
    "TIMESTAMP",
    "DATE",
    "NUMBER",
    "DECIMAL",
    "FLOAT",
    "BOOLEAN",
    "BIGINT",
)

_PK_RE = re.compile("|".join(re.escape(m) for m in PK_MARKERS), re.IGNORECASE)
# A type keyword is only stripped when it follows the name after whitespace;
# whatever comes after it (length, NOT NULL, ...) goes with it.
_TYPE_RE = re.compile(
    r"\s+(?:" + "|".join(TYPE_KEYWORDS) + r")\b.*$",
    re.IGNORECASE | re.DOTALL,
)
_SEPARATORS_RE = re.compile(r"[,;]")


def _split(text: str, grammar: Grammar) -> list[str]:
    if grammar is Grammar.COMMAS:
        return re.split(r"[,\n]", text)
    return text.split("\n")


def parse_entry(entry: str) -> Column | None:
    """Parse a single declaration; None for entries that carry nothing."""
    entry = entry.strip()
    if not entry:
        return None

    is_pk = _PK_RE.search(entry) is not None
    name = _PK_RE.sub("", entry)
    name = _SEPARATORS_RE.sub("", name)
    name = _TYPE_RE.sub("", name).strip()
    if not name and not is_pk:
        # Only separators, e.g. a stray ";" line.
        return None
    return Column(name=name, is_pk=is_pk)


def dedupe(columns: Iterable[Column]) -> tuple[Column, ...]:
    """
    Collapse repeated names into one column.

    The first occurrence keeps its position; the last occurrence decides
    the primary-key flag.
    """
    order: list[str] = []
    flags: dict[str, bool] = {}
    for col in columns:
        if col.name not in flags:
            order.append(col.name)
        flags[col.name] = col.is_pk
    return tuple(Column(name=n, is_pk=flags[n]) for n in order)


def parse(text: str | None, grammar: Grammar | str = Grammar.LINES) -> tuple[Column, ...]:
    """
    Turn schema text into columns in declaration order.

    >>> parse("id (pk)\\nname\\nemail VARCHAR")
    (Column(name='id', is_pk=True), Column(name='name', is_pk=False), Column(name='email', is_pk=False))
    """
    if not text:
        return ()
    grammar = Grammar(grammar)

    parsed = [parse_entry(e) for e in _split(text, grammar)]
    columns = [c for c in parsed if c is not None]
    result = dedupe(columns)

    if len(result) != len(columns):
        logger.debug(
            "Collapsed %d duplicate column declaration(s)",
            len(columns) - len(result),
        )
    return result


def render(columns: Sequence[Column], grammar: Grammar | str = Grammar.LINES) -> str:
    """Render columns as clean schema text (no types, `(pk)` markers only)."""
    grammar = Grammar(grammar)
    entries = [f"{c.name}{' (pk)' if c.is_pk else ''}" for c in columns]
    joiner = ", " if grammar is Grammar.COMMAS else "\n"
    return joiner.join(entries)


__all__ = ["Grammar", "PK_MARKERS", "TYPE_KEYWORDS", "parse", "parse_entry", "render", "dedupe"]
