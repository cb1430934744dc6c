# src/app/logging_config.py
"""
Central logging configuration for the miner runtime.

Call configure_logging() from your main entrypoint once, for example:

    from app.logging_config import configure_logging
    configure_logging()

After that, feature and macro logs ("[BlockMiner] Enabled") are visible on
stdout. With rich_console=True a rich handler renders them instead.
"""

from __future__ import annotations

import logging
import sys

from rich.logging import RichHandler

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: int = logging.INFO, rich_console: bool = False) -> None:
    """
    Configure root logging if no handlers are attached yet.

    Args:
        level: default logging level (e.g., logging.INFO, logging.DEBUG)
        rich_console: use rich.logging.RichHandler instead of a plain stream
    """
    root = logging.getLogger()

    # Don't duplicate handlers if someone already configured logging.
    if root.handlers:
        return

    handler: logging.Handler
    if rich_console:
        handler = RichHandler(rich_tracebacks=True, show_path=False)
        handler.setFormatter(logging.Formatter(fmt="%(name)s: %(message)s"))
    else:
        handler = logging.StreamHandler(stream=sys.stdout)
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(level)
