"""Suggestion backends and the contracts they share with the completion engine."""

from .backend import (
    BackendError,
    BackendTimeoutError,
    SuggestionBackend,
    SuggestionResponse,
    normalize_response,
    with_timeout,
)

__all__ = [
    "BackendError",
    "BackendTimeoutError",
    "SuggestionBackend",
    "SuggestionResponse",
    "normalize_response",
    "with_timeout",
]
