"""Data models for the S3 command-line client."""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional
from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit

import httpx

DEFAULT_REGION = "cn-north-1"
DEFAULT_PRESIGN_EXPIRY = timedelta(hours=24)


@dataclass(frozen=True)
class Credentials:
    """Access key pair used to sign requests."""

    access_key_id: str
    secret_access_key: str = field(repr=False)
    session_token: Optional[str] = field(default=None, repr=False)


@dataclass
class PendingRequest:
    """An outbound HTTP request that has not been dispatched yet.

    The signers mutate ``headers`` and ``query`` in place. ``path`` is kept
    exactly as it appears on the wire (already percent-encoded). ``bucket``
    is only set for virtual-hosted requests, where the bucket travels in the
    host name but still leads the signed resource.
    """

    method: str
    scheme: str
    host: str
    path: str = "/"
    query: dict[str, list[str]] = field(default_factory=dict)
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    bucket: Optional[str] = None

    @classmethod
    def from_url(
        cls,
        method: str,
        url: str,
        headers=None,
    ) -> "PendingRequest":
        """Build a request from a fully qualified URL.

        Args:
            method: HTTP method.
            url: URL including scheme, host, path and query string.
            headers: Optional mapping or list of (name, value) pairs.

        Returns:
            A new PendingRequest.
        """
        parts = urlsplit(url)
        return cls(
            method=method.upper(),
            scheme=parts.scheme,
            host=parts.netloc,
            path=parts.path,
            query=parse_qs(parts.query, keep_blank_values=True),
            headers=httpx.Headers(headers),
        )

    @property
    def resource_path(self) -> str:
        """The path as it appears in the signed resource."""
        path = self.path or "/"
        if self.bucket:
            return f"/{self.bucket}{path}"
        return path

    @property
    def query_string(self) -> str:
        """Form-encoded query with keys sorted and values in insertion order."""
        return urlencode(sorted(self.query.items()), doseq=True)

    @property
    def url(self) -> str:
        """The fully qualified URL including the current query string."""
        return urlunsplit(
            (self.scheme, self.host, self.path, self.query_string, "")
        )

    def set_query(self, name: str, value: str) -> None:
        """Replace every value of a query parameter with a single value."""
        self.query[name] = [value]

    def add_query(self, name: str, value: str) -> None:
        """Append a value to a query parameter."""
        self.query.setdefault(name, []).append(value)


@dataclass
class ClientConfig:
    """Resolved settings for talking to an S3-compatible endpoint."""

    endpoint_url: str
    credentials: Optional[Credentials] = None
    region_name: str = DEFAULT_REGION
    addressing_style: str = "path"
    signature_version: str = "s3v4"
    profile: Optional[str] = None
    connect_timeout: int = 10
    read_timeout: int = 20
    max_retries: int = 0
    verify_ssl: bool = True
    headers: list[tuple[str, str]] = field(default_factory=list)
    query: list[tuple[str, str]] = field(default_factory=list)
    presign_expiry: timedelta = DEFAULT_PRESIGN_EXPIRY

    @property
    def use_v2_signing(self) -> bool:
        """Whether requests are signed with Signature Version 2."""
        return self.signature_version == "v2"
