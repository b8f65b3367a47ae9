"""
Sahayak — Logging Configuration
Structured logging for the conversation core and its adapters.
"""

import logging
import os
import sys


def setup_logger(name: str = "sahayak", level: str | None = None) -> logging.Logger:
    """Create a configured logger with console output."""
    logger = logging.getLogger(name)

    if not logger.handlers:
        resolved = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
        logger.setLevel(resolved)

        # Console handler with format
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(resolved)

        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


# Global logger instance
logger = setup_logger()
