"""Inline completion service tying the cache, coalescer, and lifecycle events together."""

from __future__ import annotations

import logging
from typing import Protocol

from ..core.document import DocumentAccessor
from ..core.positions import Position
from .cache import SuggestionCache
from .coalescer import RequestCoalescer
from .events import AcceptEvent, CompletionEventEmitter, DeclineEvent, IgnoreEvent
from .types import DEFAULT_DISCARD_REASON, CompletionItem, InlineCompletions, SuggestionBatch

LOGGER = logging.getLogger(__name__)


class EditorSurface(Protocol):
    """Editor capabilities the service drives directly."""

    def hide_ghost_text(self) -> None:
        ...


class CompletionService:
    """Lifecycle coordinator for inline suggestions.

    Each batch moves from pending (fetched) to shown and ends accepted,
    declined, or ignored. The service is the only writer of the cache and
    emits exactly one event per terminal transition.
    """

    def __init__(
        self,
        coalescer: RequestCoalescer,
        *,
        events: CompletionEventEmitter,
        cache: SuggestionCache | None = None,
        cache_enabled: bool = True,
        editor: EditorSurface | None = None,
    ) -> None:
        self._coalescer = coalescer
        self._cache = cache or SuggestionCache()
        self._cache_enabled = cache_enabled
        self._editor = editor
        self.events = events

    @property
    def cache(self) -> SuggestionCache:
        return self._cache

    @property
    def cache_enabled(self) -> bool:
        return self._cache_enabled

    def attach_editor(self, editor: EditorSurface | None) -> None:
        self._editor = editor

    async def provide_inline_completions(
        self, document: DocumentAccessor, cursor: Position
    ) -> InlineCompletions:
        """Answer a completion request from the cache or through the coalescer."""

        if self._cache_enabled:
            cached = self._cache.match(document, cursor)
            if cached:
                return InlineCompletions(items=cached)

        self._dismiss_current()
        result = await self._coalescer.request(document, cursor)
        items = list(result.suggestions)
        if items:
            current = self._cache.get_batch()
            # Coalesced callers resume with the same result; install it once.
            if current is None or current.request_id != result.request_id:
                # A batch installed while this request waited may already be on screen.
                if current is not None:
                    self._dismiss_current()
                self._cache.set_batch(SuggestionBatch(items=items, request_id=result.request_id))
        return InlineCompletions(items=items)

    def handle_item_did_show(self, item: CompletionItem) -> None:
        if not self._cache_enabled:
            return
        self._cache.increment_shown_count(item.pristine)

    def handle_partial_accept(self, item: CompletionItem, accepted_letters: int) -> None:
        """Report the slice of ``item`` accepted word-by-word or line-by-line."""

        args = item.command.accept_args if item.command is not None else None
        if args is None:
            return
        accepted_text = item.insert_text[args.prev_word_length : max(0, accepted_letters)]
        if not accepted_text:
            return
        self._cache.mark_accepted(args.suggestion_text)
        self.events.emit(AcceptEvent(request_id=args.request_id, accepted_text=accepted_text))

    def handle_accept(self, request_id: str, suggestion_text: str) -> None:
        self._cache.clear()
        self.events.emit(AcceptEvent(request_id=request_id, accepted_text=suggestion_text))

    def command_discard(
        self, reason: str = DEFAULT_DISCARD_REASON, editor: EditorSurface | None = None
    ) -> None:
        """Decline the current batch and hide any visible ghost text."""

        batch = self._cache.get_batch()
        if batch is not None and batch.request_id and batch.items:
            self.events.emit(
                DeclineEvent(
                    request_id=batch.request_id,
                    suggestion_text=self._active_text(batch),
                    reason=reason,
                    hit_count=batch.shown_count,
                    all_suggestions=batch.suggestion_texts,
                )
            )
        self._cache.clear()
        surface = editor or self._editor
        if surface is not None:
            surface.hide_ghost_text()

    def has_active_suggestions(self) -> bool:
        batch = self._cache.get_batch()
        return batch is not None and bool(batch.items)

    def empty_cache(self) -> None:
        self._cache.clear()

    def _dismiss_current(self) -> None:
        batch = self._cache.get_batch()
        if batch is None:
            return
        if batch.request_id and batch.items and batch.shown_count > 0 and not batch.was_accepted:
            self.events.emit(
                IgnoreEvent(
                    request_id=batch.request_id,
                    suggestion_text=self._active_text(batch),
                    all_suggestions=batch.suggestion_texts,
                )
            )
        else:
            LOGGER.debug("Dropping batch %s without ignore event", batch.request_id)
        self._cache.clear()

    def _active_text(self, batch: SuggestionBatch) -> str:
        return self._cache.active_suggestion or batch.items[0].pristine


__all__ = ["CompletionService", "EditorSurface"]
