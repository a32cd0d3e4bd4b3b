"""Centralized logging configuration for the command-line tool."""

from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(verbose: bool = False, console: Optional[Console] = None) -> None:
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=verbose,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)

    root_logger.addHandler(handler)

    # aiohttp's own debug chatter drowns out the probe's
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
