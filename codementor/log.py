#!/usr/bin/env python3
"""
Logging setup for the codementor package.
Modules log through ``logging.getLogger(__name__)``; this wires the package
logger to a rich handler so records share the REPL's console.
"""

import logging
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER = 'codementor'
DEFAULT_LEVEL = 'WARNING'


def configure_logging(
    level: Union[str, int, None] = None,
    console: Optional[Console] = None,
) -> logging.Logger:
    """Attach a RichHandler to the package logger (idempotent)"""
    package_logger = logging.getLogger(PACKAGE_LOGGER)

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.getLevelName(DEFAULT_LEVEL)
    package_logger.setLevel(level if level is not None else DEFAULT_LEVEL)

    for handler in list(package_logger.handlers):
        if isinstance(handler, RichHandler):
            package_logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    package_logger.addHandler(handler)
    package_logger.propagate = False
    return package_logger
