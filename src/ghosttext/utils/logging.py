"""Logging setup for the completion engine's ``ghosttext`` logger tree.

Handlers are attached to the ``ghosttext`` logger rather than the root logger
so an embedding editor keeps control of its own logging configuration.
Records still propagate, so host handlers see engine output as well.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path
from typing import Any

__all__ = [
    "ENGINE_LOGGER",
    "configure_from_settings",
    "get_log_path",
    "get_logger",
    "setup_logging",
    "shutdown_logging",
]

ENGINE_LOGGER = "ghosttext"
_DEFAULT_LOG_DIR = Path.home() / ".ghosttext" / "logs"
_LOG_FILE_NAME = "completion.log"
# Transport chatter from the suggestion backends.
_NOISY_LOGGERS: tuple[str, ...] = ("httpx", "httpcore", "openai")
_HANDLER_ATTR = "_ghosttext_handler"
_LOG_PATH: Path | None = None


def setup_logging(
    level: int = logging.INFO,
    *,
    debug_logging: bool = False,
    log_dir: Path | str | None = None,
    console: bool = False,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    force: bool = False,
) -> Path:
    """Attach a rotating ``completion.log`` handler to the engine logger.

    ``debug_logging`` lowers the engine level to DEBUG, which surfaces cache
    hits, debounce restarts and backend dispatches. Calling again without
    ``force`` returns the existing log path.
    """

    global _LOG_PATH
    engine = logging.getLogger(ENGINE_LOGGER)
    if _LOG_PATH is not None and not force:
        return _LOG_PATH

    _remove_engine_handlers(engine)
    effective_level = logging.DEBUG if debug_logging else level
    target_dir = _resolve_log_dir(log_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    log_path = target_dir / _LOG_FILE_NAME

    formatter = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)-7s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(
            log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
    ]
    if console:
        handlers.append(logging.StreamHandler())
    for handler in handlers:
        handler.setLevel(effective_level)
        handler.setFormatter(formatter)
        setattr(handler, _HANDLER_ATTR, True)
        engine.addHandler(handler)
    engine.setLevel(effective_level)

    quiet_level = max(logging.WARNING, effective_level)
    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(quiet_level)

    _LOG_PATH = log_path
    engine.debug("Completion logging configured at %s", log_path)
    return log_path


def configure_from_settings(settings: Any, **kwargs: Any) -> Path:
    """Apply the ``debug_logging`` flag of a ``CompletionSettings`` instance."""

    return setup_logging(
        debug_logging=bool(getattr(settings, "debug_logging", False)),
        force=True,
        **kwargs,
    )


def shutdown_logging() -> None:
    """Detach and close the handlers installed by :func:`setup_logging`."""

    global _LOG_PATH
    engine = logging.getLogger(ENGINE_LOGGER)
    _remove_engine_handlers(engine)
    engine.setLevel(logging.NOTSET)
    _LOG_PATH = None


def get_logger(name: str) -> logging.Logger:
    if name != ENGINE_LOGGER and not name.startswith(f"{ENGINE_LOGGER}."):
        name = f"{ENGINE_LOGGER}.{name}"
    return logging.getLogger(name)


def get_log_path() -> Path | None:
    return _LOG_PATH


def _remove_engine_handlers(engine: logging.Logger) -> None:
    for handler in list(engine.handlers):
        if getattr(handler, _HANDLER_ATTR, False):
            engine.removeHandler(handler)
            handler.close()


def _resolve_log_dir(log_dir: Path | str | None) -> Path:
    env_override = os.environ.get("GHOSTTEXT_LOG_DIR")
    return Path(log_dir or env_override or _DEFAULT_LOG_DIR).expanduser()
