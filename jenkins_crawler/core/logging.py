"""
Logging configuration for the crawler.

Supports two modes:
- text: Human-readable format for terminals
- json: One JSON object per line, for log shippers

The mode comes from the LOG_FORMAT setting (or the ``log_format`` argument).
"""

import json
import logging
import sys
from typing import Any, Dict, Optional

from jenkins_crawler.config import settings

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Attributes passed through ``extra=`` that are copied into JSON records
CONTEXT_FIELDS = ("build_id", "url", "status", "file")


class JSONFormatter(logging.Formatter):
    """Formatter that outputs one JSON string per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_record: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "module": record.module,
            "line": record.lineno,
        }

        for field in CONTEXT_FIELDS:
            if hasattr(record, field):
                log_record[field] = getattr(record, field)

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_record)


def setup_logging(
    log_format: Optional[str] = None, level: Optional[str] = None
) -> None:
    """
    Setup logging for the crawler process.

    Does nothing when the root logger already has handlers, so embedding
    applications keep their own configuration.
    """
    root_logger = logging.getLogger()

    # Avoid adding multiple handlers
    if root_logger.handlers:
        return

    root_logger.setLevel((level or settings.LOG_LEVEL).upper())

    handler = logging.StreamHandler(sys.stdout)

    if (log_format or settings.LOG_FORMAT).lower() == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    root_logger.addHandler(handler)

    # Set lower level for noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
