"""Logging setup for the jdeep editor."""

from __future__ import annotations

import logging
import os

from textual.logging import TextualHandler

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-16s | %(message)s"


def setup_logging(log_level: str | None = None) -> None:
    """Route log records to the Textual devtools console.

    A plain stream handler would draw over the terminal UI, so everything goes
    through ``TextualHandler`` (visible with ``textual console``).
    """
    if log_level is None:
        log_level = os.getenv("LOG_LEVEL", "WARNING")

    handler = TextualHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
    logging.basicConfig(level=getattr(logging, log_level.upper()), handlers=[handler], force=True)

    logging.getLogger("jdeep").setLevel(getattr(logging, log_level.upper()))
    # 외부 라이브러리는 경고 이상만
    for name in ("asyncio", "markdown_it"):
        logging.getLogger(name).setLevel(logging.WARNING)
