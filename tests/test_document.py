"""Tests for the plain-text document snapshot."""

from __future__ import annotations

import re

from ghosttext.core.document import TextDocument, WordAtPosition
from ghosttext.core.positions import Position, Range


def test_from_text_splits_lines_and_normalizes_newlines() -> None:
    document = TextDocument.from_text("alpha\r\nbeta\rgamma")

    assert document.lines == ("alpha", "beta", "gamma")
    assert document.text == "alpha\nbeta\ngamma"
    assert document.line_count == 3


def test_empty_text_has_no_lines() -> None:
    document = TextDocument.from_text("")

    assert document.lines == ()
    assert document.line_at(1) is None
    assert document.validate_position(Position(4, 4)) == Position(1, 1)


def test_line_at_uses_one_based_numbers() -> None:
    document = TextDocument(lines=("first", "second"))

    assert document.line_at(1) == "first"
    assert document.line_at(2) == "second"
    assert document.line_at(3) is None


def test_validate_position_clamps_into_bounds() -> None:
    document = TextDocument(lines=("abc", "de"))

    assert document.validate_position(Position(9, 9)) == Position(2, 3)
    assert document.validate_position(Position(1, 20)) == Position(1, 4)


def test_offset_at_counts_newlines() -> None:
    document = TextDocument(lines=("abc", "de", "f"))

    assert document.offset_at(Position(1, 1)) == 0
    assert document.offset_at(Position(2, 1)) == 4
    assert document.offset_at(Position(3, 2)) == 8


def test_value_in_range_spans_lines() -> None:
    document = TextDocument(lines=("hello", "world"))

    assert document.value_in_range(Range(Position(1, 4), Position(2, 3))) == "lo\nwo"
    assert document.value_in_range(Range(Position(2, 1), Position(2, 1))) == ""


def test_word_until_position_returns_identifier_prefix() -> None:
    document = TextDocument(lines=("    foo.ba",))

    assert document.word_until_position(Position(1, 11)) == WordAtPosition("ba", 9, 11)
    assert document.word_until_position(Position(1, 7)) == WordAtPosition("fo", 5, 7)


def test_word_until_position_outside_word_is_empty() -> None:
    document = TextDocument(lines=("foo bar",))

    assert document.word_until_position(Position(1, 5)) == WordAtPosition("", 5, 5)
    assert document.word_until_position(Position(1, 1)) == WordAtPosition("", 1, 1)
    assert document.word_until_position(Position(7, 3)) == WordAtPosition("", 3, 3)


def test_custom_word_pattern_controls_word_boundaries() -> None:
    document = TextDocument.from_text("my-var", word_pattern=re.compile(r"[a-z-]+"))

    assert document.word_until_position(Position(1, 7)).word == "my-var"


def test_content_hash_tracks_text() -> None:
    first = TextDocument.from_text("one")
    second = TextDocument.from_text("two")

    assert first.content_hash == TextDocument.from_text("one").content_hash
    assert first.content_hash != second.content_hash
