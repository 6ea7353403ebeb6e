"""Typed publish/subscribe channel for completion lifecycle events.

The set of events is closed: only the four event classes defined here can be
subscribed to or emitted. Listeners are isolated from each other, so an
exception raised by one is logged and never reaches the emitting call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, TypeVar, Union
from weakref import WeakMethod

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class CompletionEvent:
    """Base class for lifecycle events; ``name`` is the wire-level event name."""

    name: ClassVar[str] = ""

    def to_payload(self) -> dict[str, Any]:
        raise NotImplementedError


@dataclass(slots=True)
class AcceptEvent(CompletionEvent):
    """Emitted when a suggestion is accepted fully or partially.

    Attributes:
        request_id: Backend request the suggestion came from.
        accepted_text: Text that was actually inserted.
    """

    name: ClassVar[str] = "completion:accept"

    request_id: str
    accepted_text: str

    def to_payload(self) -> dict[str, Any]:
        return {"request_id": self.request_id, "accepted_text": self.accepted_text}


@dataclass(slots=True)
class DeclineEvent(CompletionEvent):
    """Emitted once when the user explicitly discards a shown batch.

    Attributes:
        request_id: Backend request of the discarded batch.
        suggestion_text: The active (most recently shown) suggestion.
        reason: Why the batch was discarded, ``"OnCancel"`` by default.
        hit_count: How many times the batch was shown.
        all_suggestions: Every suggestion text in the batch, in rank order.
    """

    name: ClassVar[str] = "completion:decline"

    request_id: str
    suggestion_text: str
    reason: str
    hit_count: int
    all_suggestions: list[str] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {
            "request_id": self.request_id,
            "suggestion_text": self.suggestion_text,
            "reason": self.reason,
            "hit_count": self.hit_count,
            "all_suggestions": list(self.all_suggestions),
        }


@dataclass(slots=True)
class IgnoreEvent(CompletionEvent):
    """Emitted when a shown, unaccepted batch is superseded by a new request."""

    name: ClassVar[str] = "completion:ignore"

    request_id: str
    suggestion_text: str
    all_suggestions: list[str] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {
            "request_id": self.request_id,
            "suggestion_text": self.suggestion_text,
            "all_suggestions": list(self.all_suggestions),
        }


@dataclass(slots=True)
class ErrorEvent(CompletionEvent):
    """Emitted when fetching suggestions raised."""

    name: ClassVar[str] = "completion:error"

    error: BaseException

    def to_payload(self) -> dict[str, Any]:
        return {"error": repr(self.error), "error_type": type(self.error).__name__}


EVENT_TYPES: dict[str, type[CompletionEvent]] = {
    event_type.name: event_type for event_type in (AcceptEvent, DeclineEvent, IgnoreEvent, ErrorEvent)
}

E = TypeVar("E", bound=CompletionEvent)
Listener = Callable[[E], None]
EventKey = Union[str, type[CompletionEvent]]


class CompletionEventEmitter:
    """Observer registry restricted to the completion event set.

    Bound-method listeners are held weakly so widgets that go away stop
    receiving events without having to unsubscribe.
    """

    __slots__ = ("_listeners",)

    def __init__(self) -> None:
        self._listeners: dict[type[CompletionEvent], list[_ListenerRef]] = {
            event_type: [] for event_type in EVENT_TYPES.values()
        }

    def on(self, event: EventKey, listener: Listener[Any]) -> None:
        """Register ``listener`` for ``event`` (a class or its ``completion:*`` name)."""

        event_type = resolve_event_type(event)
        refs = self._listeners[event_type]
        if any(ref.matches(listener) for ref in refs):
            return
        refs.append(_ListenerRef.create(listener))
        LOGGER.debug("Subscribed %s to %s", _listener_name(listener), event_type.name)

    def off(self, event: EventKey, listener: Listener[Any]) -> None:
        """Remove ``listener``; unknown listeners are ignored."""

        refs = self._listeners[resolve_event_type(event)]
        for index, ref in enumerate(refs):
            if ref.matches(listener):
                refs.pop(index)
                return

    def emit(self, event: CompletionEvent) -> None:
        """Deliver ``event`` to every listener registered for its type."""

        event_type = type(event)
        refs = self._listeners.get(event_type)
        if refs is None:
            raise TypeError(f"Unsupported completion event: {event_type.__name__}")
        LOGGER.debug("Emitting %s to %d listener(s)", event_type.name, len(refs))

        dead: list[_ListenerRef] = []
        for ref in list(refs):
            listener = ref.resolve()
            if listener is None:
                dead.append(ref)
                continue
            try:
                listener(event)
            except Exception:
                LOGGER.exception(
                    "Error in event listener %s for %s", _listener_name(listener), event_type.name
                )
        for ref in dead:
            if ref in refs:
                refs.remove(ref)

    def listener_count(self, event: EventKey | None = None) -> int:
        if event is not None:
            return len(self._listeners[resolve_event_type(event)])
        return sum(len(refs) for refs in self._listeners.values())

    def clear(self) -> None:
        for refs in self._listeners.values():
            refs.clear()


def resolve_event_type(event: EventKey) -> type[CompletionEvent]:
    """Map an event name or class onto one of the supported event classes."""

    if isinstance(event, str):
        try:
            return EVENT_TYPES[event]
        except KeyError:
            raise ValueError(f"Unknown completion event name: {event!r}") from None
    if isinstance(event, type) and event in EVENT_TYPES.values():
        return event
    raise TypeError(f"Unsupported completion event: {event!r}")


class _ListenerRef:
    __slots__ = ("_ref", "_is_weak")

    def __init__(self, ref: Any, is_weak: bool) -> None:
        self._ref = ref
        self._is_weak = is_weak

    @classmethod
    def create(cls, listener: Listener[Any]) -> _ListenerRef:
        if hasattr(listener, "__self__") and hasattr(listener, "__func__"):
            try:
                return cls(WeakMethod(listener), is_weak=True)
            except TypeError:
                pass
        return cls(listener, is_weak=False)

    def resolve(self) -> Listener[Any] | None:
        if not self._is_weak:
            return self._ref
        return self._ref()

    def matches(self, listener: Listener[Any]) -> bool:
        resolved = self.resolve()
        return resolved is not None and resolved == listener


def _listener_name(listener: Listener[Any]) -> str:
    if hasattr(listener, "__self__") and hasattr(listener, "__func__"):
        return f"{type(listener.__self__).__name__}.{listener.__func__.__name__}"
    return getattr(listener, "__name__", repr(listener))


__all__ = [
    "AcceptEvent",
    "CompletionEvent",
    "CompletionEventEmitter",
    "DeclineEvent",
    "ErrorEvent",
    "EVENT_TYPES",
    "IgnoreEvent",
    "Listener",
    "resolve_event_type",
]
