"""Editor-agnostic cursor positions and spans."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any


@dataclass(slots=True, frozen=True, order=True)
class Position:
    """1-based line/column coordinate; ``column`` counts characters before the caret."""

    line: int
    column: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "line", self._coerce_index(self.line, "line"))
        object.__setattr__(self, "column", self._coerce_index(self.column, "column"))

    @staticmethod
    def _coerce_index(value: Any, label: str) -> int:
        try:
            number = int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Position {label} must be an integer") from exc
        if number < 1:
            return 1
        return number

    def to_dict(self) -> dict[str, int]:
        """Return the position as a JSON-friendly object."""

        return {"line": self.line, "column": self.column}

    def to_wire(self) -> dict[str, int]:
        """Return the position in the code-assist ``{Ln, Col}`` shape."""

        return {"Ln": self.line, "Col": self.column}

    @classmethod
    def from_value(cls, value: Any) -> Position:
        """Coerce ``value`` into a :class:`Position`."""

        if isinstance(value, Position):
            return value
        if isinstance(value, Mapping):
            line = value.get("line", value.get("lineNumber", value.get("Ln")))
            column = value.get("column", value.get("Col"))
            if line is None or column is None:
                raise ValueError("Position mappings require line and column keys")
            return cls(line, column)
        if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
            seq = list(value)
            if len(seq) != 2:
                raise ValueError("Position sequences must have exactly two entries")
            return cls(seq[0], seq[1])
        line = getattr(value, "line", getattr(value, "lineNumber", None))
        column = getattr(value, "column", None)
        if line is not None and column is not None:
            return cls(line, column)
        raise TypeError("Unsupported Position input")


@dataclass(slots=True, frozen=True)
class Range:
    """Span between two positions, normalized so ``start <= end``."""

    start: Position
    end: Position

    def __post_init__(self) -> None:
        start = Position.from_value(self.start)
        end = Position.from_value(self.end)
        if end < start:
            start, end = end, start
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @property
    def is_empty(self) -> bool:
        """Return ``True`` when the range collapses to a caret."""

        return self.start == self.end

    def to_dict(self) -> dict[str, dict[str, int]]:
        return {"start": self.start.to_dict(), "end": self.end.to_dict()}

    @classmethod
    def from_positions(cls, start_line: int, start_column: int, end_line: int, end_column: int) -> Range:
        return cls(Position(start_line, start_column), Position(end_line, end_column))


__all__ = ["Position", "Range"]
