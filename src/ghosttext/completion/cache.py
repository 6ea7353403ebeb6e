"""Single-slot cache holding the most recent suggestion batch."""

from __future__ import annotations

import logging

from ..core.document import DocumentAccessor
from ..core.positions import Position, Range
from .types import CompletionItem, SuggestionBatch

LOGGER = logging.getLogger(__name__)


class SuggestionCache:
    """Owns the current :class:`SuggestionBatch` and answers prefix-match queries.

    Only one batch is live at a time. ``match`` lets the ghost text follow the
    user while they keep typing exactly what was suggested, and stops matching
    as soon as the typed text diverges or the caret moves before the
    suggestion's start.
    """

    __slots__ = ("_batch", "_active_suggestion")

    def __init__(self) -> None:
        self._batch: SuggestionBatch | None = None
        self._active_suggestion: str | None = None

    @property
    def active_suggestion(self) -> str | None:
        """Pristine text of the suggestion most recently reported as shown."""

        return self._active_suggestion

    def set_batch(self, batch: SuggestionBatch) -> None:
        self._batch = batch
        self._active_suggestion = None
        LOGGER.debug("Cached batch %s with %d item(s)", batch.request_id, len(batch.items))

    def get_batch(self) -> SuggestionBatch | None:
        return self._batch

    def clear(self) -> None:
        self._batch = None
        self._active_suggestion = None

    def increment_shown_count(self, pristine_text: str) -> None:
        batch = self._batch
        if batch is None:
            return
        for item in batch.items:
            if item.pristine == pristine_text:
                batch.shown_count += 1
                self._active_suggestion = pristine_text
                return

    def mark_accepted(self, pristine_text: str) -> None:
        batch = self._batch
        if batch is None:
            return
        if any(item.pristine == pristine_text for item in batch.items):
            batch.was_accepted = True

    def match(self, document: DocumentAccessor, cursor: Position) -> list[CompletionItem]:
        """Return cached items still consistent with the text typed up to ``cursor``."""

        batch = self._batch
        if batch is None:
            return []

        matches: list[CompletionItem] = []
        cursor_offset = document.offset_at(cursor)
        for item in batch.items:
            if item.range is None:
                continue
            start = item.range.start
            if cursor.line < start.line or cursor.column < start.column:
                continue

            start_offset = document.offset_at(start)
            if cursor_offset > start_offset + len(item.insert_text):
                continue

            typed_length = cursor_offset - start_offset
            live_range = Range(start, cursor)
            live_text = document.value_in_range(live_range)
            expected_text = item.insert_text[:typed_length]
            if live_text.lower() != expected_text.lower():
                continue

            matches.append(
                CompletionItem(
                    insert_text=live_text + item.insert_text[typed_length:],
                    pristine=item.pristine,
                    range=live_range,
                    command=item.command,
                    label=item.label,
                    sort_text=item.sort_text,
                )
            )

        if matches:
            LOGGER.debug("Cache hit for batch %s: %d item(s)", batch.request_id, len(matches))
        return matches


__all__ = ["SuggestionCache"]
