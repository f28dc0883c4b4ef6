"""Structured logging configuration.

Text output for interactive CLI runs, one JSON object per line when
``PAEC_LOG_JSON`` is set. Both go to stderr so that command output on stdout
stays machine-readable.

Security Impact:
    - Only allow-listed context attributes are copied into JSON lines
    - Cell values are never part of that allow-list
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

logger = logging.getLogger(__name__)

# Attributes callers may pass via ``extra=`` that end up in JSON lines
CONTEXT_FIELDS = ("run_id", "row", "natural_key", "action", "layout", "actor")

TEXT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
TEXT_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

QUIET_LIBRARIES = ("openpyxl",)


class StructuredFormatter(logging.Formatter):
    """Renders each record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        payload.update(
            (name, getattr(record, name)) for name in CONTEXT_FIELDS if hasattr(record, name)
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def setup_logging(use_json: bool = False, log_level: str = "INFO", stream: Optional[TextIO] = None):
    """Replace the root handlers with a single stream handler.

    Parameters:
        use_json: Emit JSON lines instead of text
        log_level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL); unknown names fall back to INFO
        stream: Target stream (stderr when None)
    """
    level = logging.getLevelName(str(log_level).upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(StructuredFormatter() if use_json else logging.Formatter(TEXT_FORMAT, TEXT_DATE_FORMAT))

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
