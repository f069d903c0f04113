"""
Logging configuration.

Library modules only create loggers; applications call configure_logging
once at startup to decide where records go.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER = "ai_cost_router"


def configure_logging(level: str = "info", console: Optional[Console] = None) -> logging.Logger:
    """Attach a Rich handler to the package logger.

    Calling it again replaces the previous handler and level rather than
    stacking handlers.

    Args:
        level: Level name (debug, info, warning, error)
        console: Console to log to, stderr when omitted

    Returns:
        The configured package logger

    Raises:
        ValueError: If the level name is unknown
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(numeric_level)
    return logger
