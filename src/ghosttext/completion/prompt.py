"""Builds the bounded, cursor-relative prompt payload sent to suggestion backends."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from ..core.positions import Position

DEFAULT_BEFORE_CURSOR = 8_000
DEFAULT_AFTER_CURSOR = 1_000
PROMPT_FILE_NAME = "query.yql"


@dataclass(slots=True, frozen=True)
class TextLimits:
    """Maximum characters kept on each side of the cursor."""

    before_cursor: int = DEFAULT_BEFORE_CURSOR
    after_cursor: int = DEFAULT_AFTER_CURSOR

    def __post_init__(self) -> None:
        for label in ("before_cursor", "after_cursor"):
            value = getattr(self, label)
            if int(value) <= 0:
                raise ValueError(f"TextLimits {label} must be positive")
            object.__setattr__(self, label, int(value))


@dataclass(slots=True, frozen=True)
class PromptFragment:
    """Contiguous slice of the document tagged with its window coordinates."""

    text: str
    start: Position
    end: Position

    def to_wire(self) -> dict[str, Any]:
        return {"Text": self.text, "Start": self.start.to_wire(), "End": self.end.to_wire()}


@dataclass(slots=True, frozen=True)
class PromptPayload:
    """Everything a backend needs to suggest text at ``cursor``."""

    path: str
    fragments: tuple[PromptFragment, ...]
    cursor: Position

    def to_wire(self) -> dict[str, Any]:
        return {
            "Path": self.path,
            "Fragments": [fragment.to_wire() for fragment in self.fragments],
            "Cursor": self.cursor.to_wire(),
        }

    @property
    def before_text(self) -> str:
        for fragment in self.fragments:
            if fragment.end == self.cursor and fragment.start != self.cursor:
                return fragment.text
        return ""

    @property
    def after_text(self) -> str:
        for fragment in self.fragments:
            if fragment.start == self.cursor:
                return fragment.text
        return ""


def session_prompt_path(session_id: str) -> str:
    """Return the virtual document path used for every prompt in a session."""

    return f"{session_id}/{PROMPT_FILE_NAME}"


def build_prompt_payload(
    lines: Sequence[str],
    cursor: Position,
    limits: TextLimits | None = None,
    session_path: str = PROMPT_FILE_NAME,
) -> PromptPayload | None:
    """Slice ``lines`` around ``cursor`` into at most two bounded fragments.

    Returns ``None`` when the cursor line does not exist or when there is no
    text on either side of the cursor.
    """

    limits = limits or TextLimits()
    if cursor.line < 1 or cursor.line > len(lines):
        return None
    current_line = lines[cursor.line - 1]
    # Only a missing line aborts; an empty cursor line still yields the surrounding context.
    if current_line is None:
        return None

    split_at = max(0, cursor.column - 1)
    before_text = "\n".join([*lines[: cursor.line - 1], current_line[:split_at]])
    after_text = "\n".join([current_line[split_at:], *lines[cursor.line :]])

    fragments: list[PromptFragment] = []
    if before_text:
        fragments.append(
            PromptFragment(
                text=before_text[-limits.before_cursor :],
                start=Position(1, 1),
                end=cursor,
            )
        )
    if after_text:
        last_line = lines[-1]
        if last_line is None:
            return None
        fragments.append(
            PromptFragment(
                text=after_text[: limits.after_cursor],
                start=cursor,
                end=Position(len(lines), len(last_line)),
            )
        )

    if not fragments:
        return None
    return PromptPayload(path=session_path, fragments=tuple(fragments), cursor=cursor)


__all__ = [
    "DEFAULT_AFTER_CURSOR",
    "DEFAULT_BEFORE_CURSOR",
    "PromptFragment",
    "PromptPayload",
    "TextLimits",
    "build_prompt_payload",
    "session_prompt_path",
]
