"""Core domain types shared by the completion engine and editor adapters."""

from .document import DocumentAccessor, TextDocument, WordAtPosition
from .positions import Position, Range

__all__ = ["DocumentAccessor", "Position", "Range", "TextDocument", "WordAtPosition"]
