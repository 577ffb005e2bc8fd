"""Centralized logging configuration.

This module provides:
- JSONFormatter for structured logging (one JSON object per line)
- PlainFormatter for local debugging
- setup_logging() to wire either one onto a stderr handler
"""

import json
import logging
import re
import sys


TAG_PATTERN = re.compile(r'\[([A-Z_]+)\]\s*(.*)', re.DOTALL)


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def __init__(self, service: str = "spotify-oauth-relay"):
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        # Extract tag from message if present: [TAG] message
        tag = None
        message = record.getMessage()
        tag_match = TAG_PATTERN.match(message)
        if tag_match:
            tag = tag_match.group(1)
            message = tag_match.group(2)

        log_entry = {
            "service": self.service,
            "level": record.levelname,
            "tag": tag,
            "message": message,
            "module": record.module,
            "extra": {
                "function": record.funcName,
                "line": record.lineno,
            }
        }

        if record.exc_info:
            log_entry["extra"]["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry)


class PlainFormatter(logging.Formatter):
    """Plain text formatter for stderr output (local debugging)."""

    def __init__(self):
        super().__init__(
            fmt='%(asctime)s [%(levelname)s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )


def mask_token(token: str) -> str:
    """Shorten a token for log output."""
    if not token:
        return "<none>"
    if len(token) <= 8:
        return "***"
    return f"{token[:4]}...{token[-4:]}"


def setup_logging(level: str = "INFO", fmt: str = "plain") -> logging.Logger:
    """Configure the root logger.

    Args:
        level: Log level name (DEBUG, INFO, ...).
        fmt: "plain" for human-readable lines, "json" for structured output.

    Returns:
        Configured root logger.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(numeric_level)
    if fmt == "json":
        stderr_handler.setFormatter(JSONFormatter())
    else:
        stderr_handler.setFormatter(PlainFormatter())
    root_logger.addHandler(stderr_handler)

    # Suppress noisy HTTP client logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"[STARTUP] Logging configured (level={level.upper()}, format={fmt})")

    return root_logger
