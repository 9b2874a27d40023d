"""Logging configuration using loguru"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <level>{message}</level>"
)
# Feed refreshes repeat every few seconds, so watch mode keeps only the message
COMPACT_FORMAT = "<level>{message}</level>"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}"


def setup_logging(
    verbose: bool = False, log_file: Optional[Path] = None, compact: bool = False
) -> None:
    """
    Route status chat logs to stderr, and optionally a file.

    Feed lines and JSON envelopes go to stdout, so console logs stay on
    stderr and never mix into piped output.

    Args:
        verbose: Show every attempt, retry and callback registration
        log_file: Also keep a full debug log here
        compact: Drop timestamps and levels from the console (watch mode)
    """
    logger.remove()

    logger.add(
        sys.stderr,
        format=COMPACT_FORMAT if compact else CONSOLE_FORMAT,
        level="DEBUG" if verbose else "INFO",
        colorize=True,
    )

    if log_file is None:
        return

    log_file.parent.mkdir(parents=True, exist_ok=True)
    logger.add(log_file, format=FILE_FORMAT, level="DEBUG", rotation="10 MB", retention="7 days")
    logger.debug(f"Logging to file: {log_file}")
