"""Console formatter using Rich library for CLI output.

Output modes:
- simple: one item per line with its most useful attributes
- line: terse, script-friendly lines
- verbose: full responses, pretty-printed, and tables for listings
"""

from datetime import datetime
from typing import Any, Optional

from rich import box
from rich.console import Console
from rich.pretty import Pretty
from rich.table import Table

from s3cli.formatters.base import Formatter, strip_metadata


def _timestamp(value: Any) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    return "" if value is None else str(value)


class ConsoleFormatter(Formatter):
    """Rich-based console formatter.

    Args:
        mode: One of ``simple``, ``line`` or ``verbose``
        console: Console to print to (a new one by default)
    """

    def __init__(self, mode: str = "simple", console: Optional[Console] = None):
        self.mode = mode
        # Use legacy_windows=True for ASCII-safe output on Windows consoles
        self.console = console or Console(legacy_windows=True)
        self._index = 0

    def _line(self, *fields: Any) -> None:
        self.console.print(
            " ".join(str(f) for f in fields),
            markup=False,
            highlight=False,
            soft_wrap=True,
        )

    def show_value(self, value: Any) -> None:
        self._line(value)

    def show_response(self, response: dict[str, Any]) -> None:
        data = strip_metadata(response)
        if self.mode == "line":
            self._line("ok")
        elif not data:
            self._line("ok")
        else:
            self.console.print(Pretty(data))

    def show_buckets(self, response: dict[str, Any]) -> None:
        buckets = response.get("Buckets", [])
        owner = response.get("Owner", {}).get("DisplayName", "")

        if self.mode == "verbose":
            table = Table(show_header=True, header_style="bold magenta", box=box.ASCII)
            table.add_column("Name", style="cyan", no_wrap=True)
            table.add_column("Created", no_wrap=True)
            table.add_column("Owner")
            for bucket in buckets:
                table.add_row(bucket["Name"], _timestamp(bucket.get("CreationDate")), owner)
            self.console.print(table)
            return

        for bucket in buckets:
            if self.mode == "line":
                self._line(_timestamp(bucket.get("CreationDate")), owner, bucket["Name"])
            else:
                self._line(bucket["Name"])

    def show_objects(
        self,
        objects: list[dict[str, Any]],
        prefixes: list[str],
        index: bool = False,
    ) -> None:
        if self.mode == "verbose":
            table = Table(show_header=True, header_style="bold magenta", box=box.ASCII)
            for column in ("Key", "Size", "Last Modified", "ETag", "Storage Class"):
                table.add_column(column, no_wrap=True)
            for prefix in prefixes:
                table.add_row(prefix, "-", "", "", "")
            for obj in objects:
                table.add_row(
                    obj["Key"],
                    str(obj.get("Size", 0)),
                    _timestamp(obj.get("LastModified")),
                    obj.get("ETag", ""),
                    obj.get("StorageClass", ""),
                )
            self.console.print(table)
            return

        if self.mode != "line":
            for prefix in prefixes:
                self._line(prefix)

        for obj in objects:
            if self.mode == "line":
                self._line(
                    obj.get("StorageClass", ""),
                    _timestamp(obj.get("LastModified")),
                    obj.get("ETag", ""),
                    obj.get("Size", 0),
                    obj.get("Owner", {}).get("DisplayName", ""),
                    obj["Key"],
                )
            elif index:
                self._index += 1
                self._line(f"{self._index}\t{obj['Key']}")
            else:
                self._line(obj["Key"])
