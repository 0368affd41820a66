"""S3 client factory.

Creates a boto3 S3 client for the configured endpoint, credentials, region
and addressing style.

With signature version ``v2`` the SDK signer is switched off and requests
are signed by ``s3cli.signing.sign_header`` from a ``before-sign`` hook,
so the Authorization header is computed over the final request.
"""

import logging
from typing import Optional
from urllib.parse import urlencode, urlsplit, urlunsplit

import boto3
from botocore import UNSIGNED
from botocore.client import Config

from s3cli.models import ClientConfig, Credentials, PendingRequest
from s3cli.signing import sign_header

logger = logging.getLogger(__name__)

BUCKET_CONTEXT_KEY = "s3cli_bucket"


def resolve_credentials(config: ClientConfig) -> Optional[Credentials]:
    """Find the key pair to sign with.

    Explicit keys win. Otherwise the boto3 credential chain is consulted for
    the configured profile. None means requests are sent anonymously.
    """
    if config.credentials is not None:
        return config.credentials

    session = boto3.Session(profile_name=config.profile)
    found = session.get_credentials()
    if found is None:
        return None

    frozen = found.get_frozen_credentials()
    return Credentials(
        access_key_id=frozen.access_key,
        secret_access_key=frozen.secret_key,
        session_token=frozen.token,
    )


def add_custom_parameters(config: ClientConfig):
    """Build a before-sign handler that injects the custom headers and query."""

    def handler(request, **kwargs):
        for name, value in config.headers:
            request.headers.add_header(name, value)

        if config.query:
            parts = urlsplit(request.url)
            extra = urlencode(config.query)
            query = f"{parts.query}&{extra}" if parts.query else extra
            request.url = urlunsplit(
                (parts.scheme, parts.netloc, parts.path, query, parts.fragment)
            )

    return handler


def remember_bucket(params, context, **kwargs):
    """Keep the bucket name so virtual-hosted requests can be signed."""
    if "Bucket" in params:
        context[BUCKET_CONTEXT_KEY] = params["Bucket"]


def sign_v2(credentials: Optional[Credentials], addressing_style: str = "path"):
    """Build a before-sign handler that signs requests with Signature V2."""

    def handler(request, **kwargs):
        if credentials is None:
            return

        pending = PendingRequest.from_url(
            request.method, request.url, list(request.headers.items())
        )
        if addressing_style == "virtual":
            pending.bucket = request.context.get(BUCKET_CONTEXT_KEY)
        sign_header(pending, credentials)

        for name in ("Date", "Authorization", "x-amz-security-token"):
            if name in pending.headers:
                del request.headers[name]
                request.headers[name] = pending.headers[name]

    return handler


def build_s3_client(config: ClientConfig):
    """Build a boto3 S3 client for the given configuration.

    Args:
        config: Resolved client configuration.

    Returns:
        A boto3 S3 client with the custom-parameter and (for V2) signing
        hooks registered.
    """
    credentials = resolve_credentials(config)

    options = {
        "s3": {"addressing_style": config.addressing_style},
        "connect_timeout": config.connect_timeout,
        "read_timeout": config.read_timeout,
        "retries": {"total_max_attempts": config.max_retries + 1},
    }
    if config.use_v2_signing:
        options["signature_version"] = UNSIGNED
        # Trailing checksums would be sent as aws-chunked bodies, which
        # Signature V2 cannot cover.
        options["request_checksum_calculation"] = "when_required"
        options["response_checksum_validation"] = "when_required"
    elif credentials is None:
        options["signature_version"] = UNSIGNED
    else:
        options["signature_version"] = "s3v4"

    client_kwargs = {
        "endpoint_url": config.endpoint_url,
        "region_name": config.region_name,
        "verify": config.verify_ssl,
        "config": Config(**options),
    }
    if credentials is not None:
        client_kwargs["aws_access_key_id"] = credentials.access_key_id
        client_kwargs["aws_secret_access_key"] = credentials.secret_access_key
        client_kwargs["aws_session_token"] = credentials.session_token

    client = boto3.client("s3", **client_kwargs)

    client.meta.events.register("before-sign.s3", add_custom_parameters(config))
    if config.use_v2_signing:
        client.meta.events.register("before-parameter-build.s3", remember_bucket)
        client.meta.events.register(
            "before-sign.s3", sign_v2(credentials, config.addressing_style)
        )

    logger.debug(
        "Built S3 client for %s (signature=%s, addressing=%s)",
        config.endpoint_url,
        config.signature_version,
        config.addressing_style,
    )
    return client
