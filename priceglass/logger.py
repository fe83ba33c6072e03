"""
Structured logging setup.
"""
import logging
import sys
import json
from datetime import datetime, timezone

from priceglass.config import config


class StructuredFormatter(logging.Formatter):
    """JSON structured log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Fields passed through logger.x(..., extra={"extra": {...}})
        if hasattr(record, "extra") and isinstance(record.extra, dict):
            log_data.update(record.extra)

        return json.dumps(log_data, ensure_ascii=False)


def setup_logger():
    """Configure structured logging on the package logger."""
    logger = logging.getLogger("priceglass")
    logger.setLevel(logging.DEBUG if config.DEBUG else config.LOG_LEVEL.upper())

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(StructuredFormatter())

    logger.handlers.clear()
    logger.addHandler(console_handler)
    logger.propagate = False

    return logger


# Global logger instance
logger = setup_logger()
