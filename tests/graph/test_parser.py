from __future__ import annotations

import pytest

from lineagepro.graph.model import Column
from lineagepro.graph.parser import Grammar, parse, parse_entry, render


def test_line_grammar_example() -> None:
    columns = parse("id (pk)\nname\nemail VARCHAR", Grammar.LINES)

    assert columns == (
        Column("id", True),
        Column("name", False),
        Column("email", False),
    )


def test_comma_grammar_example() -> None:
    columns = parse("id (pk), name, created_at", Grammar.COMMAS)

    assert columns == (
        Column("id", True),
        Column("name", False),
        Column("created_at", False),
    )


def test_grammars_are_not_auto_detected() -> None:
    # Under the line grammar the comma text is one entry; commas are stripped
    # as separator punctuation and the pk marker still applies.
    columns = parse("id (pk), name", Grammar.LINES)

    assert len(columns) == 1
    assert columns[0].is_pk is True
    assert columns[0].name == "id  name"


@pytest.mark.parametrize(
    "entry, expected",
    [
        ("ID (PK)", Column("ID", True)),
        ("customer_id (Key)", Column("customer_id", True)),
        ("amount DECIMAL(10,2) NOT NULL", Column("amount", False)),
        ("created_at timestamp", Column("created_at", False)),
        ("flag BOOLEAN;", Column("flag", False)),
        ("  padded  ", Column("padded", False)),
        ("date", Column("date", False)),
        ("interval_int", Column("interval_int", False)),
        ("order_id (pk) BIGINT,", Column("order_id", True)),
    ],
)
def test_parse_entry_strips_markers_types_and_separators(entry: str, expected: Column) -> None:
    assert parse_entry(entry) == expected


def test_blank_entries_are_dropped() -> None:
    assert parse("\n\n  \nid\n\n", Grammar.LINES) == (Column("id"),)
    assert parse(" , ,id,, ", Grammar.COMMAS) == (Column("id"),)
    assert parse("", Grammar.LINES) == ()
    assert parse(None) == ()


def test_malformed_input_never_raises() -> None:
    columns = parse("(pk)\nx (key) INT", Grammar.LINES)

    # Every non-blank entry yields a column, even with an empty name.
    assert columns == (Column("", True), Column("x", True))


def test_duplicates_collapse_to_first_position_and_last_flag() -> None:
    columns = parse("id\nname\nid (pk)", Grammar.LINES)

    assert columns == (Column("id", True), Column("name", False))


def test_order_follows_declaration() -> None:
    text = "z\ny\nx\nw"
    assert [c.name for c in parse(text)] == ["z", "y", "x", "w"]


def test_grammar_accepts_plain_strings() -> None:
    assert parse("a, b", "commas") == (Column("a"), Column("b"))


@pytest.mark.parametrize(
    "text, grammar",
    [
        ("id (pk)\nname\nemail VARCHAR", Grammar.LINES),
        ("ID (KEY)\n total DECIMAL(10,2),\nnote STRING;", Grammar.LINES),
        ("id (pk), name, created_at", Grammar.COMMAS),
        ("a (key), b INT, c, a", Grammar.COMMAS),
    ],
)
def test_parse_render_parse_is_idempotent(text: str, grammar: Grammar) -> None:
    first = parse(text, grammar)
    again = parse(render(first, grammar), grammar)

    assert again == first


def test_render_produces_clean_text() -> None:
    columns = (Column("id", True), Column("name"))

    assert render(columns, Grammar.LINES) == "id (pk)\nname"
    assert render(columns, Grammar.COMMAS) == "id (pk), name"


@pytest.mark.parametrize("text", ["id\n;\nname", "id\n,;\nname", "id\n ; \n"])
def test_separator_only_lines_are_dropped(text: str) -> None:
    columns = parse(text, Grammar.LINES)

    assert Column("", False) not in columns
    assert parse(render(columns)) == columns
