"""Tests for the code-assist HTTP backend."""

from __future__ import annotations

import json

import httpx
import pytest

from ghosttext.ai.backend import BackendError, BackendTimeoutError, SuggestionResponse
from ghosttext.ai.code_assist import CodeAssistClient, CodeAssistSettings, IdeInfo
from ghosttext.completion.prompt import build_prompt_payload, session_prompt_path
from ghosttext.core.positions import Position

ENDPOINT = "https://assist.example.test/v1/suggest"


def _payloads():
    payload = build_prompt_payload(
        ["select *", "from t"], Position(1, 8), session_path=session_prompt_path("s1")
    )
    assert payload is not None
    return [payload]


def _client(handler, **overrides) -> CodeAssistClient:
    settings = CodeAssistSettings(endpoint=ENDPOINT, **overrides)
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return CodeAssistClient(settings, client=http)


@pytest.mark.asyncio
async def test_fetch_posts_files_and_reads_suggests() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"Suggests": [{"Text": "*"}, {"Text": " 1"}], "RequestId": "abc"})

    client = _client(handler, api_key="token-1", ide_info=IdeInfo(ide="vim", ide_version="9.1"))

    response = await client.fetch_suggestions(_payloads())

    assert response == SuggestionResponse(items=["*", " 1"], request_id="abc")
    request = seen[0]
    assert request.headers["Authorization"] == "Bearer token-1"
    body = json.loads(request.content)
    assert body["ContextCreateType"] == 1
    assert body["IdeInfo"]["Ide"] == "vim"
    assert body["IdeInfo"]["IdeVersion"] == "9.1"
    assert "ForceSuggest" not in body
    file_entry = body["Files"][0]
    assert file_entry["Path"] == "s1/query.yql"
    assert file_entry["Cursor"] == {"Ln": 1, "Col": 8}
    assert [fragment["Text"] for fragment in file_entry["Fragments"]] == ["select ", "*\nfrom t"]


def test_force_suggest_flag_is_sent_when_enabled() -> None:
    client = CodeAssistClient(CodeAssistSettings(endpoint=ENDPOINT, force_suggest=True))

    body = client.build_request_body(_payloads())

    assert body["ForceSuggest"] is True


@pytest.mark.asyncio
async def test_http_errors_raise_backend_error() -> None:
    client = _client(lambda request: httpx.Response(503, text="unavailable"))

    with pytest.raises(BackendError):
        await client.fetch_suggestions(_payloads())


@pytest.mark.asyncio
async def test_timeouts_raise_backend_timeout() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    client = _client(handler)

    with pytest.raises(BackendTimeoutError):
        await client.fetch_suggestions(_payloads())


@pytest.mark.asyncio
async def test_transport_errors_raise_backend_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = _client(handler)

    with pytest.raises(BackendError) as excinfo:
        await client.fetch_suggestions(_payloads())
    assert not isinstance(excinfo.value, BackendTimeoutError)


@pytest.mark.asyncio
async def test_non_json_or_malformed_body_yields_none() -> None:
    plain = _client(lambda request: httpx.Response(200, text="<html>"))
    malformed = _client(lambda request: httpx.Response(200, json={"Suggests": "nope"}))

    assert await plain.fetch_suggestions(_payloads()) is None
    assert await malformed.fetch_suggestions(_payloads()) is None


@pytest.mark.asyncio
async def test_aclose_leaves_injected_client_open() -> None:
    http = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})))
    client = CodeAssistClient(CodeAssistSettings(endpoint=ENDPOINT), client=http)

    await client.aclose()

    assert not http.is_closed
    await http.aclose()
