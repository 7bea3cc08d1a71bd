"""Logging setup.

Modules log through ``logging.getLogger(__name__)``; the CLI calls
``configure_logging`` once so records render through Rich.
"""

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

LOG_LEVEL_ENV = "MATHFLUENT_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"


def configure_logging(level: str | None = None, console: Console | None = None) -> None:
    """Install a RichHandler on the ``mathfluent`` logger.

    Args:
        level: Level name (debug, info, warning, error). Falls back to
            ``MATHFLUENT_LOG_LEVEL`` and then WARNING.
        console: Console to render to (defaults to stderr)
    """
    level_name = (level or os.getenv(LOG_LEVEL_ENV) or DEFAULT_LOG_LEVEL).upper()
    numeric = logging.getLevelName(level_name)
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level_name}")

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))

    logger = logging.getLogger("mathfluent")
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(numeric)
    logger.propagate = False
