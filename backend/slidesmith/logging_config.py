from __future__ import annotations

import logging

ROOT_LOGGER_NAME = "slidesmith"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def resolve_level(level: str | int | None) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, str(level or "INFO").upper(), logging.INFO)


def configure_logging(level: str | int | None = "INFO") -> logging.Logger:
    """Set the package log level and attach a stream handler once."""
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(resolve_level(level))
    if not any(getattr(handler, "_slidesmith", False) for handler in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._slidesmith = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    return root


def instance_logger(name: str, level: str | int | None = None) -> logging.Logger:
    """Build a logger with its own level that still propagates to the package root.

    The logger is not registered with the logging manager, so setting its level
    never changes ``logging.getLogger(name)`` or other instances.
    """
    logger = logging.Logger(name, resolve_level(level))
    logger.parent = logging.getLogger(ROOT_LOGGER_NAME)
    return logger


def preview_text(text: str | None, limit: int = 180) -> str:
    raw = str(text or "").replace("\r", " ").replace("\n", " ").strip()
    if not raw:
        return ""
    if len(raw) <= limit:
        return raw
    return raw[:limit].rstrip() + " ..."
