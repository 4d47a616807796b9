"""Logging setup — one stream handler for the whole process."""

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class ConsoleHandler(logging.StreamHandler):
    """Stdout handler installed by setup_logging()."""

    def __init__(self):
        super().__init__(sys.stdout)
        self.setFormatter(logging.Formatter(LOG_FORMAT))


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger. Safe to call more than once."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not any(isinstance(handler, ConsoleHandler) for handler in root.handlers):
        root.addHandler(ConsoleHandler())

    # uvicorn's access log already covers requests
    logging.getLogger("httpx").setLevel(logging.WARNING)
