"""Logging setup for ftt.

Library modules only call `logging.getLogger(__name__)`; the CLI calls
`configure_logging` once to attach a stderr handler to the package logger.
"""

from __future__ import annotations

import logging
import sys

from .env import is_debug_mode


LOGGER_NAME = "ftt"
LOG_FORMAT = "[ftt] %(levelname)s %(message)s"


def configure_logging(debug: bool | None = None) -> logging.Logger:
    """Attach a stderr handler to the `ftt` logger.

    Args:
        debug: Force debug output; defaults to the FTT_DEBUG environment flag

    Returns:
        The configured package logger
    """
    if debug is None:
        debug = is_debug_mode()

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if debug else logging.WARNING)

    # Re-running main() in one process must not stack handlers
    for handler in list(logger.handlers):
        if getattr(handler, "_ftt_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._ftt_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.propagate = False
    return logger
