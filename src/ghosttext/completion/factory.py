"""Wiring helpers that assemble a ready-to-use completion service."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Mapping

from ..ai.backend import FetchSuggestions, SuggestionBackend, with_timeout
from .cache import SuggestionCache
from .coalescer import RequestCoalescer
from .events import CompletionEventEmitter
from .prompt import session_prompt_path
from .service import CompletionService, EditorSurface

LOGGER = logging.getLogger(__name__)


def create_completion_service(
    backend: SuggestionBackend | FetchSuggestions,
    config: Any = None,
    *,
    editor: EditorSurface | None = None,
    events: CompletionEventEmitter | None = None,
    session_id: str | None = None,
    timeout_seconds: float | None = None,
) -> CompletionService:
    """Build a :class:`CompletionService` from ``backend`` and user configuration.

    ``config`` may be a :class:`~ghosttext.services.settings.CompletionSettings`
    or a mapping using either camelCase (``debounceTime``, ``textLimits``,
    ``suggestionCache``) or snake_case keys; missing values fall back to the
    defaults. ``timeout_seconds`` bounds every backend call.
    """

    from ..services.settings import CompletionSettings

    if isinstance(config, CompletionSettings):
        settings = config
    elif config is None or isinstance(config, Mapping):
        settings = CompletionSettings.from_mapping(config)
    else:
        raise TypeError("config must be CompletionSettings or a mapping")

    emitter = events or CompletionEventEmitter()
    session_path = session_prompt_path(session_id or str(uuid.uuid4()))
    fetch: SuggestionBackend | FetchSuggestions = backend
    if timeout_seconds is not None:
        fetch = with_timeout(backend, timeout_seconds)

    coalescer = RequestCoalescer(
        fetch,
        events=emitter,
        debounce_ms=settings.debounce_ms,
        limits=settings.text_limits.to_limits(),
        session_path=session_path,
    )
    LOGGER.debug(
        "Created completion service (debounce=%sms, cache=%s, session=%s)",
        settings.debounce_ms,
        settings.suggestion_cache.enabled,
        session_path,
    )
    return CompletionService(
        coalescer,
        events=emitter,
        cache=SuggestionCache(),
        cache_enabled=settings.suggestion_cache.enabled,
        editor=editor,
    )


__all__ = ["create_completion_service"]
