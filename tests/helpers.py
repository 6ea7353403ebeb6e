"""Shared test helpers and stub classes.

Import from here instead of duplicating these stubs in individual test files.
"""

from __future__ import annotations

import asyncio
from typing import Any, Sequence

from ghosttext.ai.backend import SuggestionResponse
from ghosttext.completion.events import EVENT_TYPES, CompletionEvent, CompletionEventEmitter


class FakeBackend:
    """Suggestion backend stub that records every call.

    Each call returns the next queued response; once the queue is empty the
    same ``items`` are returned with an incrementing request id. Setting
    ``gate`` makes calls block until the event is set.
    """

    def __init__(self, items: Sequence[str] = ("bar()",), *, responses: Sequence[Any] | None = None) -> None:
        self.items = list(items)
        self.responses = list(responses or [])
        self.calls: list[Sequence[Any]] = []
        self.gate: asyncio.Event | None = None
        self.error: BaseException | None = None
        self.active = 0
        self.max_active = 0

    async def fetch_suggestions(self, payloads: Sequence[Any]) -> Any:
        self.calls.append(payloads)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.error is not None:
                raise self.error
            if self.responses:
                return self.responses.pop(0)
            return SuggestionResponse(items=list(self.items), request_id=f"req-{len(self.calls)}")
        finally:
            self.active -= 1


class FakeEditor:
    """Records ``hide_ghost_text`` calls."""

    def __init__(self) -> None:
        self.hidden = 0

    def hide_ghost_text(self) -> None:
        self.hidden += 1


class EventRecorder:
    """Subscribes to every completion event and keeps them in order."""

    def __init__(self, emitter: CompletionEventEmitter) -> None:
        self.events: list[CompletionEvent] = []
        for event_type in EVENT_TYPES.values():
            emitter.on(event_type, self.record)

    def record(self, event: CompletionEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: type[CompletionEvent]) -> list[CompletionEvent]:
        return [event for event in self.events if isinstance(event, event_type)]


async def wait_for(predicate, *, timeout: float = 1.0) -> None:
    """Yield to the loop until ``predicate()`` holds."""

    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.001)

    await asyncio.wait_for(_poll(), timeout=timeout)
