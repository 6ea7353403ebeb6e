"""Debounced, single-flight suggestion fetching."""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Any, Callable

from ..ai.backend import FetchSuggestions, SuggestionBackend, normalize_response, resolve_fetch
from ..core.document import DocumentAccessor
from ..core.positions import Position, Range
from .events import CompletionEventEmitter, ErrorEvent
from .prompt import PROMPT_FILE_NAME, TextLimits, build_prompt_payload
from .types import (
    ACCEPT_COMMAND_ID,
    DEFAULT_SORT_TEXT,
    AcceptCommandArgs,
    CompletionCommand,
    CompletionItem,
    SuggestionResult,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_MS = 200


class CoalescerState(enum.Enum):
    IDLE = "idle"
    TIMER_PENDING = "timer_pending"
    FETCHING = "fetching"


@dataclass(slots=True)
class _Cycle:
    """One debounce cycle: the shared future plus the latest request arguments."""

    generation: int
    future: asyncio.Future[SuggestionResult]
    document: DocumentAccessor | None = None
    cursor: Position | None = None


class RequestCoalescer:
    """Turns bursts of completion requests into one backend call.

    Every call restarts a trailing timer. Callers that arrive while the timer
    is pending share one future, so they all receive the result of the single
    fetch that runs once the timer survives ``debounce_ms``. A call that
    arrives after the timer fired opens a fresh cycle; that cycle waits for
    the in-flight fetch to finish before dispatching its own, so at most one
    backend call runs at a time.
    """

    def __init__(
        self,
        backend: SuggestionBackend | FetchSuggestions,
        *,
        events: CompletionEventEmitter,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        limits: TextLimits | None = None,
        session_path: str = PROMPT_FILE_NAME,
        sleep: Callable[[float], Any] | None = None,
    ) -> None:
        self._fetch = resolve_fetch(backend)
        self._events = events
        self._debounce_seconds = max(0, int(debounce_ms)) / 1000.0
        self._limits = limits or TextLimits()
        self._session_path = session_path
        self._sleep = sleep or asyncio.sleep
        self._cycle: _Cycle | None = None
        self._timer: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._flight_lock = asyncio.Lock()
        self._generation = 0
        self._latest_fired = 0
        self._fetching = False

    @property
    def state(self) -> CoalescerState:
        if self._cycle is not None:
            return CoalescerState.TIMER_PENDING
        if self._fetching:
            return CoalescerState.FETCHING
        return CoalescerState.IDLE

    @property
    def debounce_seconds(self) -> float:
        return self._debounce_seconds

    async def request(self, document: DocumentAccessor, cursor: Position) -> SuggestionResult:
        """Schedule a fetch for ``cursor`` and wait for the coalesced result."""

        if self._timer is not None:
            self._timer.cancel()
            LOGGER.debug("Debounce timer restarted")

        cycle = self._cycle
        if cycle is None:
            self._generation += 1
            loop = asyncio.get_running_loop()
            cycle = _Cycle(generation=self._generation, future=loop.create_future())
            self._cycle = cycle
        cycle.document = document
        cycle.cursor = cursor
        timer = asyncio.create_task(self._run_timer(cycle))
        self._tasks.add(timer)
        timer.add_done_callback(self._tasks.discard)
        self._timer = timer
        return await asyncio.shield(cycle.future)

    def cancel(self) -> None:
        """Drop the pending timer; its waiters resolve with an empty result."""

        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        cycle, self._cycle = self._cycle, None
        if cycle is not None and not cycle.future.done():
            cycle.future.set_result(SuggestionResult.empty())

    async def _run_timer(self, cycle: _Cycle) -> None:
        try:
            await self._sleep(self._debounce_seconds)
        except asyncio.CancelledError:
            return
        if self._cycle is not cycle:
            return
        # The timer survived: detach the cycle so later calls start a new one.
        self._cycle = None
        self._timer = None
        self._latest_fired = cycle.generation
        await self._dispatch(cycle)

    async def _dispatch(self, cycle: _Cycle) -> None:
        async with self._flight_lock:
            if cycle.generation != self._latest_fired:
                LOGGER.debug("Dropping superseded request cycle %d", cycle.generation)
                self._resolve(cycle, SuggestionResult.empty())
                return
            self._fetching = True
            try:
                result = await self._fetch_result(cycle)
            finally:
                self._fetching = False
            self._resolve(cycle, result)

    async def _fetch_result(self, cycle: _Cycle) -> SuggestionResult:
        document, cursor = cycle.document, cycle.cursor
        if document is None or cursor is None:
            return SuggestionResult.empty()

        payload = build_prompt_payload(document.lines, cursor, self._limits, self._session_path)
        if payload is None:
            LOGGER.debug("No prompt text around %s; skipping backend call", cursor)
            return SuggestionResult.empty()

        try:
            raw_response = await self._fetch([payload])
        except Exception as exc:
            LOGGER.exception("Suggestion backend failed")
            self._events.emit(ErrorEvent(error=exc))
            return SuggestionResult.empty()

        response = normalize_response(raw_response)
        if response is None:
            LOGGER.debug("Suggestion backend returned no usable response")
            return SuggestionResult.empty()
        return SuggestionResult(
            suggestions=tuple(build_completion_items(document, cursor, response.items, response.request_id)),
            request_id=response.request_id,
        )

    @staticmethod
    def _resolve(cycle: _Cycle, result: SuggestionResult) -> None:
        if not cycle.future.done():
            cycle.future.set_result(result)


def build_completion_items(
    document: DocumentAccessor,
    cursor: Position,
    raw_suggestions: list[str],
    request_id: str,
) -> list[CompletionItem]:
    """Prefix each raw suggestion with the word typed so far at ``cursor``."""

    word = document.word_until_position(cursor)
    replace_range = Range(Position(cursor.line, word.start_column), cursor)
    items: list[CompletionItem] = []
    for suggestion_text in raw_suggestions:
        label = word.word + suggestion_text
        args = AcceptCommandArgs(
            request_id=request_id,
            suggestion_text=suggestion_text,
            prev_word_length=len(word.word),
        )
        items.append(
            CompletionItem(
                insert_text=label,
                pristine=suggestion_text,
                range=replace_range,
                command=CompletionCommand(id=ACCEPT_COMMAND_ID, arguments=(args.to_dict(),)),
                label=label,
                sort_text=DEFAULT_SORT_TEXT,
            )
        )
    return items


__all__ = ["CoalescerState", "DEFAULT_DEBOUNCE_MS", "RequestCoalescer", "build_completion_items"]
