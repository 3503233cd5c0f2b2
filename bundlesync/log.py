"""Logging setup — stdlib logging rendered through rich."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(verbose: bool = False) -> None:
    """Route the ``bundlesync`` loggers to stderr via ``RichHandler``.

    Verbose mode drops the level to DEBUG, which includes every git
    command the backend runs.
    """
    level = logging.DEBUG if verbose else logging.INFO
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=verbose,
        show_time=verbose,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    root = logging.getLogger("bundlesync")
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
    root.propagate = False
