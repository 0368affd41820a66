"""JSON formatter for structured, machine-readable output."""

import json
import sys
from datetime import datetime
from typing import Any, Optional, TextIO

from s3cli.formatters.base import Formatter, strip_metadata


def _default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


class JsonFormatter(Formatter):
    """Write every result as an indented JSON document.

    Args:
        stream: Where to write (stdout by default)
    """

    mode = "json"

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream

    def _dump(self, data: Any) -> None:
        stream = self.stream or sys.stdout
        stream.write(json.dumps(data, indent=2, default=_default))
        stream.write("\n")

    def show_value(self, value: Any) -> None:
        self._dump(value)

    def show_response(self, response: dict[str, Any]) -> None:
        self._dump(strip_metadata(response))

    def show_buckets(self, response: dict[str, Any]) -> None:
        self._dump(strip_metadata(response))

    def show_objects(
        self,
        objects: list[dict[str, Any]],
        prefixes: list[str],
        index: bool = False,
    ) -> None:
        self._dump({"CommonPrefixes": prefixes, "Contents": objects})
