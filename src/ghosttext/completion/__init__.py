"""Inline completion engine: prompt windows, request coalescing, caching, lifecycle."""

from .cache import SuggestionCache
from .coalescer import CoalescerState, RequestCoalescer
from .commands import CompletionCommands, register_completion_commands
from .events import (
    AcceptEvent,
    CompletionEventEmitter,
    DeclineEvent,
    ErrorEvent,
    IgnoreEvent,
)
from .factory import create_completion_service
from .prompt import PromptFragment, PromptPayload, TextLimits, build_prompt_payload
from .service import CompletionService, EditorSurface
from .types import (
    CompletionCommand,
    CompletionItem,
    InlineCompletions,
    SuggestionBatch,
    SuggestionResult,
)

__all__ = [
    "AcceptEvent",
    "CoalescerState",
    "CompletionCommand",
    "CompletionCommands",
    "CompletionEventEmitter",
    "CompletionItem",
    "CompletionService",
    "DeclineEvent",
    "EditorSurface",
    "ErrorEvent",
    "IgnoreEvent",
    "InlineCompletions",
    "PromptFragment",
    "PromptPayload",
    "RequestCoalescer",
    "SuggestionBatch",
    "SuggestionCache",
    "SuggestionResult",
    "TextLimits",
    "build_prompt_payload",
    "create_completion_service",
    "register_completion_commands",
]
