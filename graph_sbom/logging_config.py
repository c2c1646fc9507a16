"""Logging configuration for graph-sbom."""

import json
import logging
import sys
from datetime import datetime
from typing import Any, Dict

LOGGER_NAME = "graph_sbom"


def setup_logging(level: str = "INFO", structured: bool = False) -> logging.Logger:
    """
    Set up the package logger.

    Calling this again reconfigures the level and formatter of the existing
    handler instead of stacking a second one.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        structured: Whether to use structured JSON logging

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(LOGGER_NAME)
    log_level = getattr(logging, level.upper())
    logger.setLevel(log_level)

    if logger.handlers:
        handler = logger.handlers[0]
    else:
        # Compiler diagnostics go to stderr so stdout stays usable for the summary
        handler = logging.StreamHandler(sys.stderr)
        logger.addHandler(handler)

    handler.setLevel(log_level)
    if structured:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("[%(asctime)s] %(levelname)s - %(name)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
        )

    return logger


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry)


# Global logger instance
logger = setup_logging()
