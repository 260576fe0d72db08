"""Logging configuration for the API and the notification worker.

Console output is colored and human readable. When file logging is enabled
(always in production), JSON lines are written to daily-rotated files under
``settings.log_dir``:

- ``error.log``    ERROR and above
- ``combined.log`` everything
- ``http.log``     request/response records from ``HTTP_LOGGER_NAME`` only

Structured fields are attached with ``logger.info(msg, extra={...})`` and are
emitted as top-level keys of the JSON record.
"""
import json
import logging
import os
import sys
from datetime import datetime, timezone
from logging.handlers import TimedRotatingFileHandler

from .config import Settings

HTTP_LOGGER_NAME = "app.http"
RETENTION_DAYS = 14

# LogRecord 기본 속성: extra 필드와 구분하기 위해 사용
_RESERVED_ATTRS = set(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime", "color_message"}


def record_extras(record: logging.LogRecord) -> dict:
    """Return the structured fields passed through ``extra=``."""
    return {k: v for k, v in record.__dict__.items() if k not in _RESERVED_ATTRS}


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(record_extras(record))
        if record.exc_info:
            payload["stack"] = self.formatException(record.exc_info)
        elif record.stack_info:
            payload["stack"] = self.formatStack(record.stack_info)
        return json.dumps(payload, default=str, ensure_ascii=False)


class ColoredFormatter(logging.Formatter):
    COLORS = {
        "DEBUG": "\033[37m",     # White
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        color = self.COLORS.get(record.levelname)
        return f"{color}{line}{self.RESET}" if color else line


class _HttpOnlyFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.name == HTTP_LOGGER_NAME or record.name.startswith(HTTP_LOGGER_NAME + ".")


def _rotating_handler(path: str, level: int) -> TimedRotatingFileHandler:
    handler = TimedRotatingFileHandler(
        path,
        when="midnight",
        backupCount=RETENTION_DAYS,
        encoding="utf-8",
        utc=True,
    )
    handler.setLevel(level)
    handler.setFormatter(JsonFormatter())
    return handler


def setup_logging(settings: Settings) -> logging.Logger:
    """Configure the ``app`` and ``worker`` logger trees. Safe to call twice."""
    level = getattr(logging, settings.effective_log_level, logging.INFO)

    handlers: list[logging.Handler] = []
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(
        ColoredFormatter("%(asctime)s %(levelname)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
    )
    handlers.append(console)

    if settings.log_to_file or settings.is_production:
        os.makedirs(settings.log_dir, exist_ok=True)
        handlers.append(_rotating_handler(os.path.join(settings.log_dir, "error.log"), logging.ERROR))
        handlers.append(_rotating_handler(os.path.join(settings.log_dir, "combined.log"), logging.DEBUG))
        http_handler = _rotating_handler(os.path.join(settings.log_dir, "http.log"), logging.DEBUG)
        http_handler.addFilter(_HttpOnlyFilter())
        handlers.append(http_handler)

    for name in ("app", "worker"):
        logger = logging.getLogger(name)
        logger.setLevel(level)
        for old in list(logger.handlers):
            logger.removeHandler(old)
            old.close()
        for handler in handlers:
            logger.addHandler(handler)

    return logging.getLogger("app")
