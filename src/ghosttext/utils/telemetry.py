"""Opt-in JSONL persistence for completion lifecycle records.

Each line in ``completions.jsonl`` summarizes one accept, decline, ignore or
error record. Suggestion text is reduced to character counts unless the
client is built with ``include_text=True``.
"""

from __future__ import annotations

import json
import os
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Protocol

__all__ = ["CompletionLogEntry", "TelemetryClient", "summarize_record", "telemetry_enabled"]

_DEFAULT_TELEMETRY_DIR = Path.home() / ".ghosttext" / "telemetry"
_LOG_FILE_NAME = "completions.jsonl"
_TRUE_VALUES = {"1", "true", "yes", "on"}
_TEXT_FIELDS = ("accepted_text", "suggestion_text", "all_suggestions")


class LifecycleRecord(Protocol):
    """Shape of ``CompletionTelemetryRecord`` as seen by this module."""

    name: str
    request_id: str | None
    payload: Mapping[str, Any]
    timestamp: float


@dataclass(slots=True, frozen=True)
class CompletionLogEntry:
    """One persisted line of completion telemetry."""

    event: str
    request_id: str | None
    timestamp: float
    metrics: dict[str, Any] = field(default_factory=dict)

    def to_json(self, session_id: str) -> str:
        payload = {
            "session_id": session_id,
            "event": self.event,
            "request_id": self.request_id,
            "timestamp": datetime.fromtimestamp(self.timestamp, tz=timezone.utc).isoformat(),
            **self.metrics,
        }
        return json.dumps(payload, ensure_ascii=False)


def summarize_record(record: LifecycleRecord, *, include_text: bool = False) -> CompletionLogEntry:
    """Reduce a lifecycle record to counts, keeping raw text only on request."""

    payload = record.payload
    event = record.name.split(":", 1)[-1]
    metrics: dict[str, Any] = {}
    if "accepted_text" in payload:
        metrics["accepted_chars"] = len(payload["accepted_text"])
    if "suggestion_text" in payload:
        metrics["shown_chars"] = len(payload["suggestion_text"])
    if "all_suggestions" in payload:
        metrics["suggestion_count"] = len(payload["all_suggestions"])
    for key in ("reason", "hit_count", "error_type"):
        if key in payload:
            metrics[key] = payload[key]
    if include_text:
        for key in _TEXT_FIELDS:
            if key in payload:
                value = payload[key]
                metrics[key] = list(value) if isinstance(value, (list, tuple)) else value
    return CompletionLogEntry(
        event=event,
        request_id=record.request_id,
        timestamp=record.timestamp,
        metrics=metrics,
    )


@dataclass(slots=True)
class TelemetryClient:
    """Telemetry sink that buffers summarized records and appends them to disk.

    Implements ``record`` so it can be handed to ``CompletionTelemetry``
    alongside or instead of the in-memory sink.
    """

    enabled: bool = False
    storage_dir: Path | str | None = None
    max_buffer: int = 32
    include_text: bool = False
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    _buffer: list[CompletionLogEntry] = field(default_factory=list, init=False, repr=False)

    def record(self, record: LifecycleRecord) -> None:
        if not self.enabled:
            return
        self._buffer.append(summarize_record(record, include_text=self.include_text))
        if len(self._buffer) >= self.max_buffer:
            self.flush()

    def flush(self) -> Path | None:
        if not self.enabled or not self._buffer:
            return None
        target_dir = _resolve_storage_dir(self.storage_dir)
        target_dir.mkdir(parents=True, exist_ok=True)
        log_path = target_dir / _LOG_FILE_NAME
        with log_path.open("a", encoding="utf-8") as handle:
            for entry in self._buffer:
                handle.write(entry.to_json(self.session_id))
                handle.write("\n")
        self._buffer.clear()
        return log_path

    def pending_events(self) -> int:
        return len(self._buffer)


def telemetry_enabled(settings: Any | None = None) -> bool:
    """``GHOSTTEXT_TELEMETRY`` wins over the ``telemetry_opt_in`` setting."""

    env_value = os.environ.get("GHOSTTEXT_TELEMETRY")
    if env_value is not None:
        return env_value.strip().lower() in _TRUE_VALUES
    if settings is None:
        return False
    return bool(getattr(settings, "telemetry_opt_in", False))


def _resolve_storage_dir(storage_dir: Path | str | None) -> Path:
    env_override = os.environ.get("GHOSTTEXT_TELEMETRY_DIR")
    return Path(storage_dir or env_override or _DEFAULT_TELEMETRY_DIR).expanduser()
