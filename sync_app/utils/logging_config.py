"""
Logging setup for the Flask app, CLI and Celery worker.

Records logged with ``extra={"sync_...": ...}`` keep those fields: the text
formatter appends them as ``key=value`` pairs and the JSON formatter nests them
under ``"context"``.
"""

from __future__ import annotations

import json
import logging
import os
from logging.handlers import RotatingFileHandler

CONTEXT_PREFIX = "sync_"
TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _context_fields(record: logging.LogRecord) -> dict[str, object]:
    return {key: value for key, value in vars(record).items() if key.startswith(CONTEXT_PREFIX)}


class ContextTextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = _context_fields(record)
        if not context:
            return message
        rendered = " ".join(f"{key[len(CONTEXT_PREFIX):]}={value}" for key, value in sorted(context.items()))
        return f"{message} | {rendered}"


class ContextJSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = _context_fields(record)
        if context:
            payload["context"] = {key[len(CONTEXT_PREFIX):]: value for key, value in context.items()}
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _build_formatter(log_format: str) -> logging.Formatter:
    if str(log_format).lower() == "json":
        return ContextJSONFormatter()
    return ContextTextFormatter(TEXT_FORMAT)


def setup_logging(app) -> None:
    """Attach console and rotating file handlers according to the app config."""

    config = app.config
    level = getattr(logging, str(config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    formatter = _build_formatter(config.get("LOG_FORMAT", "text"))

    root = logging.getLogger()
    root.setLevel(level)
    # Re-running setup (tests, app reloads) must not stack handlers.
    for handler in list(root.handlers):
        if getattr(handler, "_activity_sync_handler", False):
            root.removeHandler(handler)
            handler.close()

    handlers: list[logging.Handler] = []
    if config.get("ENABLE_CONSOLE_LOGGING", True):
        handlers.append(logging.StreamHandler())
    if config.get("ENABLE_FILE_LOGGING", False):
        log_file = config.get("LOG_FILE") or os.path.join("logs", "activity_sync.log")
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                log_file,
                maxBytes=int(config.get("LOG_FILE_MAX_BYTES", 10485760)),
                backupCount=int(config.get("LOG_FILE_BACKUP_COUNT", 5)),
            )
        )

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler._activity_sync_handler = True  # type: ignore[attr-defined]
        root.addHandler(handler)

    app.logger.setLevel(level)
    app.logger.debug(
        "Logging configured",
        extra={"sync_log_level": logging.getLevelName(level), "sync_log_handlers": len(handlers)},
    )
