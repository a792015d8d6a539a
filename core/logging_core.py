"""Core logging bridge.

This module is the only place where stdlib ``logging`` is configured.
Non-core modules should use these helpers instead of importing ``logging``.
"""

from __future__ import annotations

import logging
from typing import Any

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Third-party loggers that flood INFO with per-request lines.
_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "primp")


def _resolve_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper(), logging.INFO)


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the whole application."""
    logging.basicConfig(level=_resolve_level(level), format=_FORMAT)
    for name in _NOISY_LOGGERS:
        set_logger_level(name, logging.WARNING)


def set_logger_level(name: str, level: str | int) -> None:
    """Set level for a named logger."""
    logging.getLogger(name).setLevel(_resolve_level(level))


def _format_message(message: str, args: tuple[Any, ...], meta: dict[str, Any] | None) -> str:
    payload = message
    if args:
        try:
            payload = message % args
        except Exception:
            joined = " ".join(str(arg) for arg in args)
            payload = f"{message} {joined}".strip()
    if meta:
        payload = f"{payload} | meta={meta}"
    return payload


def log_debug(component: str, message: str, *args: Any, meta: dict[str, Any] | None = None) -> None:
    logger = logging.getLogger(component)
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(_format_message(message, args, meta))


def log_info(component: str, message: str, *args: Any, meta: dict[str, Any] | None = None) -> None:
    logging.getLogger(component).info(_format_message(message, args, meta))


def log_warning(component: str, message: str, *args: Any, meta: dict[str, Any] | None = None) -> None:
    logging.getLogger(component).warning(_format_message(message, args, meta))


def log_error(component: str, message: str, *args: Any, meta: dict[str, Any] | None = None) -> None:
    logging.getLogger(component).error(_format_message(message, args, meta))


def log_exception(component: str, message: str, *args: Any, meta: dict[str, Any] | None = None) -> None:
    """Log at ERROR with the active exception's traceback attached."""
    logging.getLogger(component).exception(_format_message(message, args, meta))
