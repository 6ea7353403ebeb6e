"""Editor command handlers for accepting and declining inline suggestions."""

from __future__ import annotations

import logging
from typing import Any, Callable

from .service import CompletionService, EditorSurface
from .types import ACCEPT_COMMAND_ID, DECLINE_COMMAND_ID, DEFAULT_DISCARD_REASON, AcceptCommandArgs

LOGGER = logging.getLogger(__name__)

CommandHandler = Callable[..., None]


class CompletionCommands:
    """Routes editor command invocations to a :class:`CompletionService`.

    Hosts register :meth:`handlers` with their own command system and call
    :meth:`handle_escape` from their Escape key binding.
    """

    def __init__(self, service: CompletionService, editor: EditorSurface) -> None:
        self._service = service
        self._editor = editor
        self._handlers: dict[str, CommandHandler] = {
            ACCEPT_COMMAND_ID: self.accept,
            DECLINE_COMMAND_ID: self.decline,
        }

    def handlers(self) -> dict[str, CommandHandler]:
        return dict(self._handlers)

    def execute(self, command_id: str, *args: Any) -> None:
        handler = self._handlers.get(command_id)
        if handler is None:
            raise KeyError(f"Unknown completion command: {command_id}")
        handler(*args)

    def accept(self, *args: Any) -> None:
        """Handle the accept command attached to every completion item."""

        data = args[0] if args else None
        accept_args = AcceptCommandArgs.from_value(data)
        if accept_args is None:
            LOGGER.debug("Ignoring accept command with malformed arguments: %r", data)
            return
        self._service.handle_accept(accept_args.request_id, accept_args.suggestion_text)

    def decline(self, *_args: Any) -> None:
        self._service.command_discard(DEFAULT_DISCARD_REASON, self._editor)

    def handle_escape(self) -> bool:
        """Decline visible suggestions; returns ``True`` when something was declined."""

        if not self._service.has_active_suggestions():
            return False
        self.execute(DECLINE_COMMAND_ID)
        return True


def register_completion_commands(
    service: CompletionService,
    editor: EditorSurface,
    register: Callable[[str, CommandHandler], Any] | None = None,
) -> CompletionCommands:
    """Create the command handlers and optionally hand them to ``register``."""

    commands = CompletionCommands(service, editor)
    service.attach_editor(editor)
    if register is not None:
        for command_id, handler in commands.handlers().items():
            register(command_id, handler)
    return commands


__all__ = ["CommandHandler", "CompletionCommands", "register_completion_commands"]
