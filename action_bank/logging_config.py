"""
Structured Logging Configuration Module

One JSON object per log line. Modules log through get_logger(__name__), so
every logger lives under the "action_bank" package logger that
setup_logging configures.
"""

import logging
import json
from datetime import datetime, timezone
from typing import Optional


ROOT_LOGGER = "action_bank"

# Record attributes copied into the JSON entry when set
STRUCTURED_FIELDS = ("correlation_id", "user_id", "action", "resource", "extra")


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in STRUCTURED_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_entry[name] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Send everything under the action_bank logger to stderr as JSON.

    Safe to call more than once; earlier handlers are replaced.
    """
    logger = logging.getLogger(ROOT_LOGGER)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())

    logger.addHandler(handler)
    logger.setLevel(level.upper())
    logger.propagate = False

    return logger


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    return logging.getLogger(name)


def log_action(logger: logging.Logger, level: str, message: str,
               user_id: Optional[str] = None, action: Optional[str] = None,
               resource: Optional[str] = None, correlation_id: Optional[str] = None,
               extra: Optional[dict] = None, exc_info: bool = False):
    """
    Log a message carrying who did what to which record.

    Args:
        logger: Logger instance
        level: Level name ("info", "warning", "error", ...)
        message: Log message
        user_id: Caller performing the action
        action: Operation name
        resource: Id of the record acted upon
        correlation_id: Request correlation id
        extra: Additional structured data
        exc_info: Attach the exception currently being handled
    """
    fields = {
        'user_id': user_id,
        'action': action,
        'resource': resource,
        'correlation_id': correlation_id,
        'extra': extra,
    }
    fields = {k: v for k, v in fields.items() if v is not None}

    logger.log(logging.getLevelName(level.upper()), message, extra=fields, exc_info=exc_info)
