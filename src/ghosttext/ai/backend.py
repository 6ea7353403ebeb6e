"""Contracts shared by suggestion backends and the request coalescer."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping, Protocol, Sequence

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from ..completion.prompt import PromptPayload

LOGGER = logging.getLogger(__name__)


class BackendError(RuntimeError):
    """Raised by backends when a suggestion request cannot be completed."""


class BackendTimeoutError(BackendError):
    """Raised when a backend call exceeds its time budget."""


@dataclass(slots=True)
class SuggestionResponse:
    """Raw suggestions returned by a backend, in rank order."""

    items: list[str] = field(default_factory=list)
    request_id: str = ""


FetchSuggestions = Callable[[Sequence["PromptPayload"]], Awaitable[Any]]


class SuggestionBackend(Protocol):
    """Anything that turns prompt payloads into raw suggestion text."""

    async def fetch_suggestions(self, payloads: Sequence[PromptPayload]) -> SuggestionResponse | None:
        ...


def normalize_response(response: Any) -> SuggestionResponse | None:
    """Coerce a backend result into :class:`SuggestionResponse`.

    Accepts a :class:`SuggestionResponse`, any object exposing ``items`` and
    ``request_id``, or a mapping in either the ``{items, request_id}`` or the
    code-assist ``{Suggests: [{Text}], RequestId}`` shape. Returns ``None``
    when the response is absent or has no usable item list.
    """

    if response is None:
        return None
    if isinstance(response, SuggestionResponse):
        return response
    if isinstance(response, Mapping):
        raw_items = response.get("items")
        request_id = response.get("request_id", response.get("requestId"))
        if raw_items is None and "Suggests" in response:
            raw_items = response.get("Suggests")
            request_id = response.get("RequestId")
    else:
        raw_items = getattr(response, "items", None)
        request_id = getattr(response, "request_id", None)
    if not isinstance(raw_items, Sequence) or isinstance(raw_items, (str, bytes)):
        return None

    items: list[str] = []
    for entry in raw_items:
        text = entry.get("Text", entry.get("text")) if isinstance(entry, Mapping) else entry
        if isinstance(text, str):
            items.append(text)
    return SuggestionResponse(items=items, request_id=str(request_id or ""))


def resolve_fetch(backend: SuggestionBackend | FetchSuggestions) -> FetchSuggestions:
    """Return the coroutine function to call for ``backend``."""

    fetch = getattr(backend, "fetch_suggestions", None)
    if callable(fetch):
        return fetch
    if callable(backend):
        return backend
    raise TypeError("backend must define fetch_suggestions() or be callable")


def with_timeout(backend: SuggestionBackend | FetchSuggestions, seconds: float) -> FetchSuggestions:
    """Wrap ``backend`` so calls fail with :class:`BackendTimeoutError` after ``seconds``."""

    fetch = resolve_fetch(backend)
    limit = float(seconds)

    async def _fetch_with_timeout(payloads: Sequence[PromptPayload]) -> Any:
        try:
            return await asyncio.wait_for(fetch(payloads), timeout=limit)
        except asyncio.TimeoutError as exc:
            LOGGER.warning("Suggestion backend timed out after %.2fs", limit)
            raise BackendTimeoutError(f"Suggestion request exceeded {limit:.2f}s") from exc

    return _fetch_with_timeout


__all__ = [
    "BackendError",
    "BackendTimeoutError",
    "FetchSuggestions",
    "SuggestionBackend",
    "SuggestionResponse",
    "normalize_response",
    "resolve_fetch",
    "with_timeout",
]
