# logging.py

import logging
import os
from logging.handlers import RotatingFileHandler

import structlog
from structlog.contextvars import merge_contextvars

from Switchboard.config import Settings

# Settings fields that never reach a log line
SENSITIVE_FIELDS = ("discord_bot_token", "discord_public_key")

# Library loggers whose records are rendered through the root handlers
_ADOPTED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "asyncio", "httpx")


def _level(name: str | None, default: int) -> int:
    return getattr(logging, (name or "").upper(), default)


def _enabled(name: str | None) -> bool:
    return (name or "").upper() != "NONE"


def _formatter() -> structlog.stdlib.ProcessorFormatter:
    # Renders structlog events and foreign stdlib records alike as one JSON line
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.add_log_level,
            merge_contextvars,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        foreign_pre_chain=[
            structlog.processors.add_log_level,
            merge_contextvars,
        ],
    )


def _build_handlers(settings: Settings | None, level: int) -> list[logging.Handler]:
    if settings is not None and not settings.logging_enabled:
        return []

    formatter = _formatter()
    handlers: list[logging.Handler] = []

    console = "INFO" if settings is None else settings.logging_console
    if settings is not None and settings.debug:
        console = "DEBUG"
    if _enabled(console):
        ch = logging.StreamHandler()
        ch.setLevel(_level(console, level))
        ch.setFormatter(formatter)
        handlers.append(ch)

    if settings is not None and _enabled(settings.logging_file):
        path = settings.logging_file_path
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        fh = RotatingFileHandler(
            path,
            maxBytes=settings.logging_max_bytes,
            backupCount=settings.logging_backup_count,
        )
        fh.setLevel(_level(settings.logging_file, level))
        fh.setFormatter(formatter)
        handlers.append(fh)

    return handlers


def setup_logging(settings: Settings | None = None) -> None:
    """Initialize structlog + stdlib logging.

    Console output is on by default; rotating file logs are enabled when the
    [logging] config sets a file level. ``debug=True`` lowers the overall level
    so per-step pipeline events become visible.
    """
    level_name = "INFO" if settings is None else settings.logging_level
    if settings is not None and settings.debug:
        level_name = "DEBUG"
    level = _level(level_name, logging.INFO)

    logging.captureWarnings(True)

    handlers = _build_handlers(settings, level) or [logging.NullHandler()]
    logging.basicConfig(level=level, handlers=handlers, force=True)

    for name in _ADOPTED_LOGGERS:
        lg = logging.getLogger(name)
        lg.handlers = []
        lg.propagate = True

    structlog.configure(
        processors=[
            merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def redact_settings(settings: Settings) -> dict:
    """Return a dict of settings safe for logging, with credentials replaced."""
    data = settings.model_dump()
    for key in SENSITIVE_FIELDS:
        if key in data:
            data[key] = "[REDACTED]"
    return data
