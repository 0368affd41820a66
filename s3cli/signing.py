"""AWS Signature Version 2 request signing.

Two signing modes share one canonicalization:

- ``sign_header`` puts ``Authorization: AWS <key>:<signature>`` on a request
  that is about to be sent.
- ``presign_url`` moves the signature and an expiry timestamp into the query
  string, producing a URL that can be shared without any extra headers.

The string to sign is::

    HTTP-Verb + "\\n" +
    Content-MD5 + "\\n" +
    Content-Type + "\\n" +
    Date (or Expires) + "\\n" +
    CanonicalizedAmzHeaders +
    CanonicalizedResource

See https://docs.aws.amazon.com/AmazonS3/latest/userguide/RESTAuthentication.html
"""

import base64
import hashlib
import hmac
import logging
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime
from typing import Callable, Generator, Mapping, Sequence

import httpx

from s3cli.models import Credentials, PendingRequest

logger = logging.getLogger(__name__)

AMZ_HEADER_PREFIX = "x-amz-"
SECURITY_TOKEN_HEADER = "x-amz-security-token"

# Query parameters that name a sub-resource and therefore take part in the
# canonicalized resource. Everything else in the query string is unsigned.
SUBRESOURCES_TO_SIGN = frozenset(
    {
        "acl",
        "delete",
        "location",
        "logging",
        "notification",
        "partNumber",
        "policy",
        "requestPayment",
        "torrent",
        "uploadId",
        "uploads",
        "versionId",
        "versioning",
        "versions",
        "response-content-type",
        "response-content-language",
        "response-expires",
        "response-cache-control",
        "response-content-disposition",
        "response-content-encoding",
    }
)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def canonical_amz_headers(headers: httpx.Headers) -> str:
    """Render the ``x-amz-*`` headers as sorted ``name:value`` lines.

    Repeated headers are folded into one comma-separated line. The result
    ends with a newline when it is non-empty and is ``""`` otherwise.
    """
    amz_headers: dict[str, list[str]] = {}
    for name, value in headers.multi_items():
        name = name.lower()
        if name.startswith(AMZ_HEADER_PREFIX):
            amz_headers.setdefault(name, []).append(value)

    if not amz_headers:
        return ""

    lines = [f"{name}:{','.join(amz_headers[name])}" for name in sorted(amz_headers)]
    return "\n".join(lines) + "\n"


def canonical_resource(path: str, query: Mapping[str, Sequence[str]]) -> str:
    """Append the signed sub-resources of ``query`` to ``path``."""
    resource = path or "/"

    tokens = []
    for name, values in query.items():
        if name not in SUBRESOURCES_TO_SIGN:
            continue
        for value in values:
            tokens.append(f"{name}={value}" if value else name)

    if tokens:
        resource += "?" + "&".join(sorted(tokens))
    return resource


def string_to_sign(
    method: str,
    headers: httpx.Headers,
    path: str,
    query: Mapping[str, Sequence[str]],
    date: str,
) -> str:
    """Build the exact string that is fed to HMAC.

    Args:
        method: HTTP method.
        headers: Request headers. Only Content-MD5, Content-Type and the
            ``x-amz-*`` headers are read.
        path: Escaped resource path, ``/bucket/key`` or ``/``.
        query: Request query parameters.
        date: The Date header value, or the expiry timestamp when presigning.

    Returns:
        The string to sign.
    """
    return (
        f"{method}\n"
        f"{headers.get('content-md5', '')}\n"
        f"{headers.get('content-type', '')}\n"
        f"{date}\n"
        f"{canonical_amz_headers(headers)}"
        f"{canonical_resource(path, query)}"
    )


def signature(data: str, secret_key: str) -> str:
    """Return base64(HMAC-SHA1(secret_key, data))."""
    digest = hmac.new(
        secret_key.encode("utf-8"), data.encode("utf-8"), hashlib.sha1
    ).digest()
    return base64.b64encode(digest).decode("ascii")


def _log_string_to_sign(request: PendingRequest, credentials: Credentials, payload: str) -> None:
    logger.debug(
        "Signing %s %s%s with key %s\n"
        "---[ STRING TO SIGN ]--------------------------------\n"
        "%s\n"
        "-----------------------------------------------------",
        request.method,
        request.host,
        request.resource_path,
        credentials.access_key_id,
        payload,
    )


def sign_header(
    request: PendingRequest,
    credentials: Credentials,
    *,
    clock: Clock = utcnow,
) -> None:
    """Sign a request in place by setting its ``Authorization`` header.

    A ``Date`` header is added from ``clock`` unless the caller already set
    one; the signature always covers the Date value that is sent. Clocks
    may return any timezone; the header is always rendered in GMT.
    """
    if "date" not in request.headers:
        # usegmt requires an aware UTC datetime; naive clocks are local time
        now = clock().astimezone(timezone.utc)
        request.headers["Date"] = format_datetime(now, usegmt=True)
    if credentials.session_token:
        request.headers[SECURITY_TOKEN_HEADER] = credentials.session_token

    payload = string_to_sign(
        request.method,
        request.headers,
        request.resource_path,
        request.query,
        request.headers["date"],
    )
    _log_string_to_sign(request, credentials, payload)

    request.headers["Authorization"] = (
        f"AWS {credentials.access_key_id}:"
        f"{signature(payload, credentials.secret_access_key)}"
    )


def presign_url(
    request: PendingRequest,
    credentials: Credentials,
    expires_in: timedelta,
    *,
    clock: Clock = utcnow,
) -> str:
    """Sign a request into its query string and return the shareable URL.

    Args:
        request: The request to presign. Its query is updated in place.
        credentials: Key pair to sign with.
        expires_in: How long the URL stays valid.
        clock: Source of the current time.

    Returns:
        The fully qualified URL carrying AWSAccessKeyId, Expires and Signature.

    Raises:
        ValueError: If ``expires_in`` is negative.
    """
    if expires_in < timedelta(0):
        raise ValueError(f"Presign expiration must not be negative: {expires_in}")

    expires = str(int(clock().timestamp()) + int(expires_in.total_seconds()))

    if credentials.session_token:
        request.set_query(SECURITY_TOKEN_HEADER, credentials.session_token)

    payload = string_to_sign(
        request.method,
        request.headers,
        request.resource_path,
        request.query,
        expires,
    )
    _log_string_to_sign(request, credentials, payload)

    request.set_query("AWSAccessKeyId", credentials.access_key_id)
    request.set_query("Expires", expires)
    request.set_query("Signature", signature(payload, credentials.secret_access_key))
    return request.url


class SignatureV2Auth(httpx.Auth):
    """httpx authentication flow that signs requests with Signature V2."""

    def __init__(self, credentials: Credentials, clock: Clock = utcnow):
        self.credentials = credentials
        self.clock = clock

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        pending = PendingRequest(
            method=request.method,
            scheme=request.url.scheme,
            host=request.url.netloc.decode("ascii"),
            path=request.url.raw_path.decode("ascii").split("?", 1)[0],
            query=_query_lists(request.url),
            headers=request.headers,
        )
        sign_header(pending, self.credentials, clock=self.clock)
        yield request


def _query_lists(url: httpx.URL) -> dict[str, list[str]]:
    query: dict[str, list[str]] = {}
    for name, value in url.params.multi_items():
        query.setdefault(name, []).append(value)
    return query
