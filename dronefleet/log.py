"""Logging setup for ``dronefleet``.

Library modules only call ``logging.getLogger(__name__)``; an application that
wants readable console diagnostics calls ``configure_logging`` once.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "dronefleet"


def configure_logging(level: int | str = logging.INFO, console: Console | None = None) -> logging.Logger:
    """Attach a ``RichHandler`` to the package logger.

    Calling it again replaces the previously installed handler instead of
    stacking a second one.

    Args:
        level: Logging level for the package logger.
        console: Console to render to. Defaults to a stderr console.

    Returns:
        logging.Logger: The configured ``dronefleet`` logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger
