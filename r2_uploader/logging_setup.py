"""Logging setup: all records go through a rich handler on the CLI console."""

import logging

from rich.console import Console
from rich.logging import RichHandler

_NOISY_LOGGERS = ("botocore", "boto3", "urllib3", "s3transfer")


def configure_logging(console: Console, verbose: bool = False, debug: bool = False) -> None:
    """Route log records through rich on the given console."""
    level = logging.DEBUG if debug else logging.INFO if verbose else logging.WARNING
    handler = RichHandler(console=console, show_path=debug, rich_tracebacks=debug, markup=False)
    root = logging.getLogger()
    for existing in list(root.handlers):
        if isinstance(existing, RichHandler):
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    library_level = logging.DEBUG if debug else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)
