"""Plain-text document snapshot consumed by the completion engine."""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass, field
from typing import Protocol, Sequence

from .positions import Position, Range

# Identifier-like run of characters, the same notion editors use for "current word".
DEFAULT_WORD_PATTERN = re.compile(r"[A-Za-z0-9_$]+")


def _hash_text(text: str) -> str:
    return hashlib.sha1(text.encode("utf-8")).hexdigest()


@dataclass(slots=True, frozen=True)
class WordAtPosition:
    """Word fragment ending at a cursor and the column where it starts."""

    word: str
    start_column: int
    end_column: int


class DocumentAccessor(Protocol):
    """Minimal read interface the completion engine needs from an editor model."""

    @property
    def lines(self) -> Sequence[str]:
        ...

    def offset_at(self, position: Position) -> int:
        ...

    def value_in_range(self, span: Range) -> str:
        ...

    def word_until_position(self, position: Position) -> WordAtPosition:
        ...


@dataclass(slots=True)
class TextDocument:
    """Immutable-by-convention snapshot of an editor buffer split into lines."""

    lines: tuple[str, ...] = ()
    word_pattern: re.Pattern[str] = field(default=DEFAULT_WORD_PATTERN, repr=False)

    def __post_init__(self) -> None:
        self.lines = tuple(self.lines)

    @classmethod
    def from_text(cls, text: str, *, word_pattern: re.Pattern[str] | None = None) -> TextDocument:
        """Split ``text`` on newlines; an empty string yields a zero-line document."""

        normalized = text.replace("\r\n", "\n").replace("\r", "\n")
        lines = tuple(normalized.split("\n")) if normalized else ()
        return cls(lines=lines, word_pattern=word_pattern or DEFAULT_WORD_PATTERN)

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    @property
    def line_count(self) -> int:
        return len(self.lines)

    @property
    def content_hash(self) -> str:
        return _hash_text(self.text)

    def line_at(self, line_number: int) -> str | None:
        """Return the 1-based line or ``None`` when out of range."""

        if line_number < 1 or line_number > len(self.lines):
            return None
        return self.lines[line_number - 1]

    def validate_position(self, position: Position) -> Position:
        """Clamp ``position`` into the document bounds."""

        if not self.lines:
            return Position(1, 1)
        line = min(max(1, position.line), len(self.lines))
        max_column = len(self.lines[line - 1]) + 1
        column = min(max(1, position.column), max_column)
        return Position(line, column)

    def offset_at(self, position: Position) -> int:
        """Return the absolute character offset of ``position``."""

        clamped = self.validate_position(position)
        offset = sum(len(line) + 1 for line in self.lines[: clamped.line - 1])
        return offset + clamped.column - 1

    def value_in_range(self, span: Range) -> str:
        """Return the document text covered by ``span``."""

        start = self.offset_at(span.start)
        end = self.offset_at(span.end)
        return self.text[start:end]

    def word_until_position(self, position: Position) -> WordAtPosition:
        """Return the identifier fragment that ends at ``position``.

        When the caret is not touching a word the result is an empty word
        anchored at the caret column.
        """

        line = self.line_at(position.line)
        if line is None:
            return WordAtPosition("", position.column, position.column)
        caret = min(max(0, position.column - 1), len(line))
        for match in self.word_pattern.finditer(line):
            if match.start() <= caret <= match.end() and match.start() < caret:
                return WordAtPosition(
                    word=line[match.start() : caret],
                    start_column=match.start() + 1,
                    end_column=caret + 1,
                )
            if match.start() > caret:
                break
        return WordAtPosition("", caret + 1, caret + 1)


__all__ = ["DEFAULT_WORD_PATTERN", "DocumentAccessor", "TextDocument", "WordAtPosition"]
