"""Base formatter interface."""

from abc import ABC, abstractmethod
from typing import Any


def strip_metadata(response: dict[str, Any]) -> dict[str, Any]:
    """Drop the SDK bookkeeping that is never shown to the user."""
    return {k: v for k, v in response.items() if k != "ResponseMetadata"}


class Formatter(ABC):
    """Abstract base class for command output formatters."""

    @abstractmethod
    def show_value(self, value: Any) -> None:
        """Print a single scalar result such as a URL or an upload ID."""
        pass

    @abstractmethod
    def show_response(self, response: dict[str, Any]) -> None:
        """Print a whole API response."""
        pass

    @abstractmethod
    def show_buckets(self, response: dict[str, Any]) -> None:
        """Print a ListBuckets response."""
        pass

    @abstractmethod
    def show_objects(
        self,
        objects: list[dict[str, Any]],
        prefixes: list[str],
        index: bool = False,
    ) -> None:
        """Print one page of object listings."""
        pass
