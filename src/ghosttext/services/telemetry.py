"""Telemetry recorder fed by completion lifecycle events."""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Protocol

from ..completion.events import (
    EVENT_TYPES,
    AcceptEvent,
    CompletionEvent,
    CompletionEventEmitter,
    DeclineEvent,
    ErrorEvent,
    IgnoreEvent,
)
from ..utils.telemetry import TelemetryClient

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class CompletionTelemetryRecord:
    """Flattened lifecycle event stored by telemetry sinks."""

    name: str
    request_id: str | None
    payload: dict[str, Any]
    timestamp: float = field(default_factory=time.time)


class TelemetrySink(Protocol):
    """Sink interface used to collect telemetry records."""

    def record(self, record: CompletionTelemetryRecord) -> None:  # pragma: no cover - protocol stub
        ...


class InMemoryTelemetrySink:
    """Simple ring-buffer telemetry sink for local inspection and tests."""

    def __init__(self, capacity: int = 200) -> None:
        self._capacity = max(10, capacity)
        self._buffer: deque[CompletionTelemetryRecord] = deque(maxlen=self._capacity)
        self._lock = Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def record(self, record: CompletionTelemetryRecord) -> None:
        with self._lock:
            self._buffer.append(record)

    def tail(self, limit: int | None = None) -> list[CompletionTelemetryRecord]:
        with self._lock:
            records = list(self._buffer)
        if limit is None or limit >= len(records):
            return records
        return records[-limit:]

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffer)


@dataclass(slots=True)
class CompletionStats:
    """Running counters over lifecycle events."""

    accepted: int = 0
    accepted_chars: int = 0
    declined: int = 0
    ignored: int = 0
    errors: int = 0

    @property
    def decided(self) -> int:
        return self.accepted + self.declined + self.ignored

    @property
    def acceptance_rate(self) -> float:
        if not self.decided:
            return 0.0
        return self.accepted / self.decided

    def as_status_text(self) -> str:
        parts = [
            f"Accepted {self.accepted}",
            f"Declined {self.declined}",
            f"Ignored {self.ignored}",
        ]
        if self.errors:
            parts.append(f"Errors {self.errors}")
        return " · ".join(parts)


class CompletionTelemetry:
    """Subscribes to a :class:`CompletionEventEmitter` and records every event."""

    def __init__(
        self,
        *,
        sink: TelemetrySink | None = None,
        client: TelemetryClient | None = None,
    ) -> None:
        self._sink = sink or InMemoryTelemetrySink()
        self._client = client
        self._stats = CompletionStats()
        self._emitters: list[CompletionEventEmitter] = []

    @property
    def sink(self) -> TelemetrySink:
        return self._sink

    @property
    def stats(self) -> CompletionStats:
        return self._stats

    def attach(self, emitter: CompletionEventEmitter) -> None:
        for event_type in EVENT_TYPES.values():
            emitter.on(event_type, self.handle_event)
        self._emitters.append(emitter)

    def detach(self) -> None:
        for emitter in self._emitters:
            for event_type in EVENT_TYPES.values():
                emitter.off(event_type, self.handle_event)
        self._emitters.clear()

    def handle_event(self, event: CompletionEvent) -> None:
        self._count(event)
        record = CompletionTelemetryRecord(
            name=event.name,
            request_id=getattr(event, "request_id", None),
            payload=event.to_payload(),
        )
        self._sink.record(record)
        if self._client is not None:
            self._client.record(record)

    def _count(self, event: CompletionEvent) -> None:
        stats = self._stats
        if isinstance(event, AcceptEvent):
            stats.accepted += 1
            stats.accepted_chars += len(event.accepted_text)
        elif isinstance(event, DeclineEvent):
            stats.declined += 1
        elif isinstance(event, IgnoreEvent):
            stats.ignored += 1
        elif isinstance(event, ErrorEvent):
            stats.errors += 1
            LOGGER.debug("Recorded completion error: %r", event.error)


__all__ = [
    "CompletionStats",
    "CompletionTelemetry",
    "CompletionTelemetryRecord",
    "InMemoryTelemetrySink",
    "TelemetrySink",
]
