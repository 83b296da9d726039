"""Logging configuration for the todo-store shell."""

import logging
import sys
from typing import Optional, TextIO

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "WARNING", stream: Optional[TextIO] = None) -> None:
    """Send log records at or above level to stderr (or the given stream).

    Call this once, before the first command runs. Existing root handlers
    are removed so repeated calls don't duplicate output.
    """
    root = logging.getLogger()
    root.setLevel(level)

    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(handler)

    logging.captureWarnings(True)
