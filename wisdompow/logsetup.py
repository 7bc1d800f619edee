"""Process-wide logging configuration."""

from __future__ import annotations

import logging
import sys
from typing import Callable

_HANDLER_NAME = "wisdompow"
_FORMAT = "%(asctime)s\t%(levelname)s\t%(name)s\t%(message)s"


def init_logging(level: int = logging.DEBUG) -> Callable[[], None]:
    """Send log records to stderr at the given level; returns a function that flushes them."""
    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == _HANDLER_NAME:
            root.removeHandler(existing)
    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(_FORMAT))
    root.addHandler(handler)
    root.setLevel(level)
    return handler.flush