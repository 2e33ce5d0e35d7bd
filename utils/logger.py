import logging
import json
from datetime import datetime, timezone
from typing import Any, Dict

from config.settings import settings
from utils.correlation_id import correlation_id_context


class JsonFormatter(logging.Formatter):

    RESERVED_ATTRS = {
        'name', 'msg', 'args', 'created', 'filename', 'funcName', 'levelname',
        'levelno', 'lineno', 'module', 'msecs', 'message', 'pathname', 'process',
        'processName', 'relativeCreated', 'thread', 'threadName', 'exc_info',
        'exc_text', 'stack_info', 'taskName'
    }

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        correlation_id = correlation_id_context.get()
        if correlation_id is not None:
            log_data["correlation_id"] = correlation_id

        for key, value in record.__dict__.items():
            if key not in self.RESERVED_ATTRS and not key.startswith('_'):
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    logger.setLevel(_resolve_level(settings.LOG_LEVEL))

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)

    logger.propagate = False

    return logger


def _resolve_level(level_name: str) -> int:
    return getattr(logging, str(level_name).upper(), logging.INFO)


def set_log_level(level_name: str) -> None:
    """Apply a level to every logger created through setup_logger."""
    level = _resolve_level(level_name)
    for logger in logging.Logger.manager.loggerDict.values():
        if not isinstance(logger, logging.Logger):
            continue
        if any(isinstance(handler.formatter, JsonFormatter) for handler in logger.handlers):
            logger.setLevel(level)
