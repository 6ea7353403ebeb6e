"""Tests for the accept/decline editor commands."""

from __future__ import annotations

from typing import Any

import pytest

from ghosttext.completion.coalescer import RequestCoalescer
from ghosttext.completion.commands import CompletionCommands, register_completion_commands
from ghosttext.completion.events import AcceptEvent, CompletionEventEmitter, DeclineEvent
from ghosttext.completion.service import CompletionService
from ghosttext.completion.types import ACCEPT_COMMAND_ID, DECLINE_COMMAND_ID
from ghosttext.core.document import TextDocument
from ghosttext.core.positions import Position

from tests.helpers import EventRecorder, FakeBackend, FakeEditor


@pytest.fixture
def service(backend: FakeBackend, emitter: CompletionEventEmitter) -> CompletionService:
    coalescer = RequestCoalescer(backend, events=emitter, debounce_ms=0)
    return CompletionService(coalescer, events=emitter)


def test_register_hands_both_commands_to_host(service: CompletionService, editor: FakeEditor) -> None:
    registered: dict[str, Any] = {}

    commands = register_completion_commands(service, editor, registered.__setitem__)

    assert set(registered) == {ACCEPT_COMMAND_ID, DECLINE_COMMAND_ID}
    assert set(commands.handlers()) == set(registered)


def test_accept_command_reports_accepted_suggestion(
    service: CompletionService, editor: FakeEditor, recorder: EventRecorder
) -> None:
    commands = CompletionCommands(service, editor)

    commands.execute(
        ACCEPT_COMMAND_ID,
        {"request_id": "req-1", "suggestion_text": "r()", "prev_word_length": 2},
    )
    commands.execute(ACCEPT_COMMAND_ID, {"requestId": "req-2", "suggestionText": "x"})

    assert recorder.events == [
        AcceptEvent(request_id="req-1", accepted_text="r()"),
        AcceptEvent(request_id="req-2", accepted_text="x"),
    ]


@pytest.mark.parametrize("args", [(), (None,), ({"request_id": "req-1"},), ("text",)])
def test_accept_command_ignores_malformed_arguments(
    service: CompletionService, editor: FakeEditor, recorder: EventRecorder, args: tuple[Any, ...]
) -> None:
    commands = CompletionCommands(service, editor)

    commands.accept(*args)

    assert recorder.events == []


def test_unknown_command_raises(service: CompletionService, editor: FakeEditor) -> None:
    commands = CompletionCommands(service, editor)

    with pytest.raises(KeyError):
        commands.execute("someOtherCommand")


def test_escape_without_suggestions_is_not_handled(
    service: CompletionService, editor: FakeEditor, recorder: EventRecorder
) -> None:
    commands = CompletionCommands(service, editor)

    assert commands.handle_escape() is False
    assert editor.hidden == 0
    assert recorder.events == []


@pytest.mark.asyncio
async def test_escape_declines_visible_suggestions(
    service: CompletionService,
    editor: FakeEditor,
    recorder: EventRecorder,
    member_document: TextDocument,
) -> None:
    commands = register_completion_commands(service, editor)
    completions = await service.provide_inline_completions(member_document, Position(2, 11))
    service.handle_item_did_show(completions.items[0])

    handled = commands.handle_escape()

    assert handled is True
    assert editor.hidden == 1
    declines = recorder.of_type(DeclineEvent)
    assert len(declines) == 1
    assert declines[0].reason == "OnCancel"  # type: ignore[attr-defined]
    assert commands.handle_escape() is False
