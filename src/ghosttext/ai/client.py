"""Suggestion backend built around OpenAI-compatible chat endpoints."""

from __future__ import annotations

import inspect
import json
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Sequence

import httpx
from openai import AsyncOpenAI, APIConnectionError, APIError, APIStatusError, RateLimitError
from openai.lib.streaming.chat import ChatCompletionStreamEvent
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..completion.prompt import PromptPayload
from .backend import SuggestionResponse

LOGGER = logging.getLogger(__name__)

CURSOR_MARKER = "<|cursor|>"
_SYSTEM_PROMPT = (
    "You are an inline code completion engine. The user message contains a file with the "
    f"caret marked as {CURSOR_MARKER}. Reply with a JSON array of up to {{max_suggestions}} "
    "strings, each being the exact text to insert at the caret. Do not repeat text that "
    "already precedes the caret and do not add explanations."
)


@dataclass(slots=True)
class ClientSettings:
    """Subset of settings required to configure the suggestion client."""

    base_url: str
    api_key: str
    model: str
    organization: str | None = None
    request_timeout: float | None = 10.0
    max_retries: int = 2
    retry_min_seconds: float = 0.25
    retry_max_seconds: float = 2.0
    max_suggestions: int = 3
    temperature: float | None = 0.2
    max_tokens: int | None = 256
    default_headers: Mapping[str, str] | None = None
    debug_logging: bool = False

    @classmethod
    def from_backend_settings(cls, settings: Any, *, debug_logging: bool = False) -> ClientSettings:
        return cls(
            base_url=settings.base_url,
            api_key=settings.api_key,
            model=settings.model,
            organization=settings.organization,
            request_timeout=settings.request_timeout,
            max_retries=settings.max_retries,
            retry_min_seconds=settings.retry_min_seconds,
            retry_max_seconds=settings.retry_max_seconds,
            max_suggestions=settings.max_suggestions,
            temperature=settings.temperature,
            default_headers=dict(settings.default_headers or {}) or None,
            debug_logging=debug_logging,
        )


class SuggestionClient:
    """Async backend that asks a chat model for inline suggestions, with retries."""

    def __init__(self, settings: ClientSettings, *, client: AsyncOpenAI | None = None) -> None:
        self._settings = settings
        self._client = client or self._build_client(settings)

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    async def fetch_suggestions(self, payloads: Sequence[PromptPayload]) -> SuggestionResponse:
        """Return up to ``max_suggestions`` insertions for the first payload."""

        if not payloads:
            return SuggestionResponse()
        messages = build_messages(payloads[0], self._settings.max_suggestions)
        request_id = uuid.uuid4().hex
        LOGGER.debug("Requesting suggestions %s via %s", request_id, self._settings.model)
        if self._settings.debug_logging:
            self._log_prompt_payload(messages)

        text = await self._complete_chat(messages)
        items = parse_suggestions(text, self._settings.max_suggestions)
        LOGGER.debug("Suggestion request %s produced %d item(s)", request_id, len(items))
        return SuggestionResponse(items=items, request_id=request_id)

    async def _complete_chat(self, messages: List[Dict[str, str]]) -> str:
        payload: Dict[str, Any] = {"model": self._settings.model, "messages": messages}
        if self._settings.temperature is not None:
            payload["temperature"] = self._settings.temperature
        if self._settings.max_tokens is not None:
            payload["max_tokens"] = self._settings.max_tokens

        chunks: list[str] = []
        final_chunk: str | None = None
        async for attempt in self._retrying():
            with attempt:
                chunks.clear()
                final_chunk = None
                async with self._client.chat.completions.stream(**payload) as stream:
                    async for event in stream:
                        delta, done = self._normalize_stream_event(event)
                        if delta:
                            chunks.append(delta)
                        if done:
                            final_chunk = done
        response = "".join(chunks)
        if final_chunk and final_chunk != response:
            response = final_chunk
        return response.strip()

    @staticmethod
    def _normalize_stream_event(event: ChatCompletionStreamEvent[Any]) -> tuple[str | None, str | None]:
        event_type = getattr(event, "type", None)
        if event_type == "content.delta":
            delta_text = getattr(event, "delta", None)
            return (str(delta_text) if delta_text else None, None)
        if event_type == "content.done":
            content = getattr(event, "content", None)
            return (None, str(content) if content else None)
        return (None, None)

    def _build_client(self, settings: ClientSettings) -> AsyncOpenAI:
        headers = dict(settings.default_headers) if settings.default_headers else None
        return AsyncOpenAI(
            api_key=settings.api_key,
            base_url=settings.base_url,
            organization=settings.organization,
            timeout=settings.request_timeout,
            max_retries=0,
            default_headers=headers,
        )

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(max(1, self._settings.max_retries)),
            wait=wait_exponential(
                multiplier=self._settings.retry_min_seconds,
                max=self._settings.retry_max_seconds,
            ),
            retry=retry_if_exception_type(
                (
                    APIError,
                    APIStatusError,
                    APIConnectionError,
                    RateLimitError,
                    httpx.TimeoutException,
                )
            ),
        )

    def _log_prompt_payload(self, messages: Sequence[Mapping[str, str]]) -> None:
        try:
            serialized = json.dumps(list(messages), ensure_ascii=False, indent=2)
        except (TypeError, ValueError):
            LOGGER.debug("Suggestion prompt (unserializable): %s", messages)
        else:
            LOGGER.debug("Suggestion prompt:\n%s", serialized)

    async def aclose(self) -> None:
        """Close the underlying OpenAI client to release network resources."""

        close = getattr(self._client, "close", None)
        if close is None:
            return
        result = close()
        if inspect.isawaitable(result):
            await result


def build_messages(payload: PromptPayload, max_suggestions: int) -> List[Dict[str, str]]:
    """Render ``payload`` as a system + user message pair."""

    document = f"{payload.before_text}{CURSOR_MARKER}{payload.after_text}"
    user_prompt = (
        f"File: {payload.path}\n"
        f"Caret at line {payload.cursor.line}, column {payload.cursor.column}.\n\n"
        f"{document}"
    )
    return [
        {"role": "system", "content": _SYSTEM_PROMPT.format(max_suggestions=max(1, max_suggestions))},
        {"role": "user", "content": user_prompt},
    ]


def parse_suggestions(text: str, max_suggestions: int) -> list[str]:
    """Parse a model reply as a JSON array, falling back to one suggestion per line."""

    if not text:
        return []
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        parsed = None
    if isinstance(parsed, dict):
        parsed = parsed.get("suggestions")
    if isinstance(parsed, list):
        return sanitize_suggestions(parsed, max_suggestions)
    if isinstance(parsed, str):
        return sanitize_suggestions([parsed], max_suggestions)

    lines = [line for line in text.splitlines() if line.strip() and not line.strip().startswith("```")]
    return sanitize_suggestions(lines, max_suggestions)


def sanitize_suggestions(raw_items: Iterable[Any], max_suggestions: int) -> list[str]:
    """Drop empty and duplicate suggestions and cap the list, keeping model order."""

    sanitized: list[str] = []
    seen: set[str] = set()
    limit = max(1, max_suggestions)
    for item in raw_items:
        if not isinstance(item, str):
            continue
        text = item.rstrip()
        if not text.strip() or text in seen:
            continue
        sanitized.append(text)
        seen.add(text)
        if len(sanitized) >= limit:
            break
    return sanitized


__all__ = [
    "CURSOR_MARKER",
    "ClientSettings",
    "SuggestionClient",
    "build_messages",
    "parse_suggestions",
    "sanitize_suggestions",
]
