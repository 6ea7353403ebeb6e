"""HTTP backend speaking the code-assist suggestion wire format."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

import httpx

from ..completion.prompt import PromptPayload
from .backend import BackendError, BackendTimeoutError, SuggestionResponse, normalize_response

LOGGER = logging.getLogger(__name__)

# Prompt context built from the open document only.
CONTEXT_CREATE_TYPE = 1


@dataclass(slots=True)
class IdeInfo:
    """Client identification sent with every request."""

    ide: str = "ghosttext"
    ide_version: str = ""
    plugin_family: str = "ghosttext"
    plugin_version: str = ""

    def to_wire(self) -> dict[str, str]:
        return {
            "Ide": self.ide,
            "IdeVersion": self.ide_version,
            "PluginFamily": self.plugin_family,
            "PluginVersion": self.plugin_version,
        }


@dataclass(slots=True)
class CodeAssistSettings:
    endpoint: str
    api_key: str | None = None
    request_timeout: float = 10.0
    force_suggest: bool = False
    ide_info: IdeInfo = field(default_factory=IdeInfo)
    default_headers: Mapping[str, str] | None = None


class CodeAssistClient:
    """Posts prompt files to a code-assist endpoint and reads back ``Suggests``."""

    def __init__(self, settings: CodeAssistSettings, *, client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._client = client or httpx.AsyncClient(timeout=settings.request_timeout)
        self._owns_client = client is None

    def build_request_body(self, payloads: Sequence[PromptPayload]) -> dict[str, Any]:
        body: dict[str, Any] = {
            "Files": [payload.to_wire() for payload in payloads],
            "ContextCreateType": CONTEXT_CREATE_TYPE,
            "IdeInfo": self._settings.ide_info.to_wire(),
        }
        if self._settings.force_suggest:
            body["ForceSuggest"] = True
        return body

    async def fetch_suggestions(self, payloads: Sequence[PromptPayload]) -> SuggestionResponse | None:
        headers = dict(self._settings.default_headers or {})
        if self._settings.api_key:
            headers["Authorization"] = f"Bearer {self._settings.api_key}"
        try:
            response = await self._client.post(
                self._settings.endpoint,
                json=self.build_request_body(payloads),
                headers=headers,
            )
        except httpx.TimeoutException as exc:
            raise BackendTimeoutError(f"Code assist request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise BackendError(f"Code assist request failed: {exc}") from exc

        if response.status_code >= 400:
            raise BackendError(f"Code assist endpoint returned HTTP {response.status_code}")
        try:
            data = response.json()
        except ValueError:
            LOGGER.warning("Code assist endpoint returned a non-JSON body")
            return None
        return normalize_response(data)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


__all__ = ["CONTEXT_CREATE_TYPE", "CodeAssistClient", "CodeAssistSettings", "IdeInfo"]
