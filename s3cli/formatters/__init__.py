"""Output formatters for command results."""

from .base import Formatter
from .console import ConsoleFormatter
from .json_formatter import JsonFormatter

OUTPUT_MODES = ("simple", "line", "verbose", "json")


def create_formatter(mode: str) -> Formatter:
    """Create the formatter for an output mode name."""
    if mode == "json":
        return JsonFormatter()
    if mode not in OUTPUT_MODES:
        raise ValueError(f"Unknown output mode: {mode}")
    return ConsoleFormatter(mode=mode)


__all__ = ["Formatter", "ConsoleFormatter", "JsonFormatter", "OUTPUT_MODES", "create_formatter"]
