"""Dataclasses describing completion items, batches, and request results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from ..core.positions import Range

ACCEPT_COMMAND_ID = "acceptCodeAssistCompletion"
DECLINE_COMMAND_ID = "declineCodeAssistCompletion"
DEFAULT_DISCARD_REASON = "OnCancel"
# Constant so the editor keeps backend rank order instead of re-sorting.
DEFAULT_SORT_TEXT = "a"


@dataclass(slots=True, frozen=True)
class AcceptCommandArgs:
    """Arguments attached to an item's accept command."""

    request_id: str
    suggestion_text: str
    prev_word_length: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "request_id": self.request_id,
            "suggestion_text": self.suggestion_text,
            "prev_word_length": self.prev_word_length,
        }

    @classmethod
    def from_value(cls, value: Any) -> AcceptCommandArgs | None:
        """Coerce command arguments; returns ``None`` when required keys are missing."""

        if isinstance(value, AcceptCommandArgs):
            return value
        if not isinstance(value, Mapping):
            return None
        request_id = value.get("request_id", value.get("requestId"))
        suggestion_text = value.get("suggestion_text", value.get("suggestionText"))
        if not request_id or not suggestion_text:
            return None
        prev_word_length = value.get("prev_word_length", value.get("prevWordLength", 0))
        try:
            prev_word_length = int(prev_word_length or 0)
        except (TypeError, ValueError):
            prev_word_length = 0
        return cls(str(request_id), str(suggestion_text), max(0, prev_word_length))


@dataclass(slots=True, frozen=True)
class CompletionCommand:
    """Opaque command descriptor the editor runs when an item is accepted."""

    id: str = ACCEPT_COMMAND_ID
    title: str = ""
    arguments: tuple[Any, ...] = ()

    @property
    def accept_args(self) -> AcceptCommandArgs | None:
        if not self.arguments:
            return None
        return AcceptCommandArgs.from_value(self.arguments[0])


@dataclass(slots=True, frozen=True)
class CompletionItem:
    """Inline completion offered to the editor.

    ``pristine`` is the backend's raw suggestion; ``insert_text`` additionally
    carries the word the user had already typed when the request was made.
    """

    insert_text: str
    pristine: str
    range: Range | None = None
    command: CompletionCommand | None = None
    label: str = ""
    sort_text: str = DEFAULT_SORT_TEXT


@dataclass(slots=True)
class SuggestionBatch:
    """All suggestions produced by one backend request."""

    items: list[CompletionItem]
    request_id: str
    shown_count: int = 0
    was_accepted: bool = False

    @property
    def suggestion_texts(self) -> list[str]:
        return [item.pristine for item in self.items]


@dataclass(slots=True, frozen=True)
class SuggestionResult:
    """Value every coalesced caller receives."""

    suggestions: tuple[CompletionItem, ...] = ()
    request_id: str = ""

    @classmethod
    def empty(cls) -> SuggestionResult:
        return cls()


@dataclass(slots=True)
class InlineCompletions:
    """Result handed back to the editor for one completion request."""

    items: list[CompletionItem] = field(default_factory=list)


__all__ = [
    "ACCEPT_COMMAND_ID",
    "DECLINE_COMMAND_ID",
    "DEFAULT_DISCARD_REASON",
    "DEFAULT_SORT_TEXT",
    "AcceptCommandArgs",
    "CompletionCommand",
    "CompletionItem",
    "InlineCompletions",
    "SuggestionBatch",
    "SuggestionResult",
]
