"""Logging setup."""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(verbosity: int = 0, console: Optional[Console] = None) -> None:
    """Configure logging for the application.

    Args:
        verbosity: 0 shows warnings, 1 adds s3cli debug output (including
            the string to sign), 2 and above also enables botocore debug logs.
        console: Console the handler writes to (stderr by default).
    """
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        markup=False,
        rich_tracebacks=False,
    )
    logging.basicConfig(
        level=logging.WARNING,
        format="%(name)s: %(message)s",
        handlers=[handler],
        force=True,
    )

    if verbosity >= 1:
        logging.getLogger("s3cli").setLevel(logging.DEBUG)
    else:
        logging.getLogger("s3cli").setLevel(logging.INFO)
    if verbosity >= 2:
        logging.getLogger("botocore").setLevel(logging.DEBUG)
