"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from ghosttext.completion.events import CompletionEventEmitter
from ghosttext.core.document import TextDocument

from tests.helpers import EventRecorder, FakeBackend, FakeEditor


@pytest.fixture
def emitter() -> CompletionEventEmitter:
    return CompletionEventEmitter()


@pytest.fixture
def recorder(emitter: CompletionEventEmitter) -> EventRecorder:
    return EventRecorder(emitter)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def editor() -> FakeEditor:
    return FakeEditor()


@pytest.fixture
def member_document() -> TextDocument:
    return TextDocument.from_text("def main():\n    foo.ba\n")


@pytest.fixture(autouse=True)
def _clear_ghosttext_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "GHOSTTEXT_API_KEY",
        "GHOSTTEXT_BASE_URL",
        "GHOSTTEXT_MODEL",
        "GHOSTTEXT_SUGGESTION_CACHE",
        "GHOSTTEXT_DEBUG_LOGGING",
        "GHOSTTEXT_TELEMETRY",
        "GHOSTTEXT_DEBOUNCE_MS",
        "GHOSTTEXT_BEFORE_CURSOR",
        "GHOSTTEXT_AFTER_CURSOR",
        "GHOSTTEXT_REQUEST_TIMEOUT",
        "GHOSTTEXT_TELEMETRY_DIR",
        "GHOSTTEXT_LOG_DIR",
    ):
        monkeypatch.delenv(name, raising=False)
