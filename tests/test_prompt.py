"""Tests for prompt payload construction."""

from __future__ import annotations

import pytest

from ghosttext.completion.prompt import (
    PROMPT_FILE_NAME,
    PromptFragment,
    TextLimits,
    build_prompt_payload,
    session_prompt_path,
)
from ghosttext.core.positions import Position

LINES = ["line 1", "line 2", "line 3"]


def test_payload_splits_document_at_cursor() -> None:
    payload = build_prompt_payload(LINES, Position(2, 3))

    assert payload is not None
    assert payload.path == PROMPT_FILE_NAME
    assert payload.cursor == Position(2, 3)
    assert payload.fragments == (
        PromptFragment(text="line 1\nli", start=Position(1, 1), end=Position(2, 3)),
        PromptFragment(text="ne 2\nline 3", start=Position(2, 3), end=Position(3, 6)),
    )
    assert payload.before_text == "line 1\nli"
    assert payload.after_text == "ne 2\nline 3"


def test_payload_keeps_tail_before_and_head_after_cursor() -> None:
    limits = TextLimits(before_cursor=4, after_cursor=3)

    payload = build_prompt_payload(LINES, Position(2, 3), limits)

    assert payload is not None
    before, after = payload.fragments
    assert before.text == "1\nli"
    assert after.text == "ne "


def test_cursor_at_document_start_sends_only_after_fragment() -> None:
    payload = build_prompt_payload(LINES, Position(1, 1))

    assert payload is not None
    assert len(payload.fragments) == 1
    assert payload.fragments[0].start == Position(1, 1)
    assert payload.before_text == ""


def test_cursor_at_document_end_sends_only_before_fragment() -> None:
    payload = build_prompt_payload(LINES, Position(3, 7))

    assert payload is not None
    assert len(payload.fragments) == 1
    assert payload.fragments[0].text == "line 1\nline 2\nline 3"
    assert payload.after_text == ""


def test_empty_document_yields_no_payload() -> None:
    assert build_prompt_payload([], Position(1, 1)) is None
    assert build_prompt_payload([""], Position(1, 1)) is None


def test_cursor_line_outside_document_yields_no_payload() -> None:
    assert build_prompt_payload(LINES, Position(4, 1)) is None


def test_blank_lines_still_produce_context() -> None:
    payload = build_prompt_payload(["", "", ""], Position(2, 1))

    assert payload is not None
    assert payload.before_text == "\n"


def test_payload_wire_shape_and_session_path() -> None:
    path = session_prompt_path("session-1")
    payload = build_prompt_payload(["ab"], Position(1, 2), session_path=path)

    assert payload is not None
    assert path == "session-1/query.yql"
    assert payload.to_wire() == {
        "Path": "session-1/query.yql",
        "Fragments": [
            {"Text": "a", "Start": {"Ln": 1, "Col": 1}, "End": {"Ln": 1, "Col": 2}},
            {"Text": "b", "Start": {"Ln": 1, "Col": 2}, "End": {"Ln": 1, "Col": 2}},
        ],
        "Cursor": {"Ln": 1, "Col": 2},
    }


@pytest.mark.parametrize("before, after", [(0, 10), (10, 0), (-1, 5)])
def test_text_limits_must_be_positive(before: int, after: int) -> None:
    with pytest.raises(ValueError):
        TextLimits(before_cursor=before, after_cursor=after)
