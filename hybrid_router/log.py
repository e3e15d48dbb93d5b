"""Logging setup."""

import os
import sys

from loguru import logger

DEFAULT_LEVEL = "INFO"


def configure_logging(level: str | None = None) -> None:
    """Send logs to stderr at ``level`` (or ``$LOG_LEVEL``).

    stdout is left to command output.
    """
    logger.remove()
    logger.add(
        # Resolve sys.stderr per message so redirected streams are honoured.
        lambda message: sys.stderr.write(message),
        level=(level or os.getenv("LOG_LEVEL") or DEFAULT_LEVEL).upper(),
        format="{time:HH:mm:ss} | {level: <8} | {name}:{line} - {message}",
    )
