"""Configuration loading for the S3 command-line client.

Settings are merged from three sources, highest priority first:
1. Command-line flags
2. Environment variables
3. A named profile in a JSON config file (for local development)

Environment Variables:
    S3_ENDPOINT=http://host:port
    AWS_PROFILE=profile
    AWS_ACCESS_KEY_ID=ak          (AWS_ACCESS_KEY is read if unset)
    AWS_SECRET_ACCESS_KEY=sk      (AWS_SECRET_KEY is read if unset)
    AWS_SESSION_TOKEN=token

Config File Format:
    {
        "default": {
            "endpoint_url": "http://127.0.0.1:9000",
            "aws_access_key_id": "xxx",
            "aws_secret_access_key": "xxx",
            "region_name": "us-east-1",
            "addressing_style": "path",
            "signature_version": "v2"
        }
    }
"""

import json
import os
from pathlib import Path
from typing import Any, Optional

from s3cli.models import ClientConfig, Credentials, DEFAULT_REGION

ENDPOINT_ENV_VAR = "S3_ENDPOINT"
DEFAULT_PROFILE = "default"


class ConfigError(Exception):
    """Raised when configuration loading fails."""

    pass


# Keys accepted in a config file profile
PROFILE_FIELDS = (
    "endpoint_url",
    "aws_access_key_id",
    "aws_secret_access_key",
    "aws_session_token",
    "region_name",
    "addressing_style",
    "signature_version",
)

ADDRESSING_STYLES = ("path", "virtual")
SIGNATURE_VERSIONS = ("s3v4", "v2")


def load_from_json(config_path: str) -> dict[str, dict[str, Any]]:
    """Load named profiles from a JSON file.

    Args:
        config_path: Path to the config file.

    Returns:
        Dictionary mapping profile names to their settings.

    Raises:
        ConfigError: If the file doesn't exist, contains invalid JSON,
                    or a profile has unknown fields.
    """
    path = Path(config_path)

    if not path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in config file: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError("Config file must contain a JSON object of profiles")

    profiles: dict[str, dict[str, Any]] = {}
    for name, settings in data.items():
        if not isinstance(settings, dict):
            raise ConfigError(f"Profile '{name}' must be a JSON object")
        unknown = set(settings) - set(PROFILE_FIELDS)
        if unknown:
            raise ConfigError(
                f"Unknown field(s) {', '.join(sorted(unknown))} in profile '{name}'"
            )
        profiles[name] = dict(settings)

    return profiles


def load_from_env() -> dict[str, Any]:
    """Read connection settings from environment variables.

    Returns:
        Dictionary with only the settings that are present in the environment.
    """
    settings: dict[str, Any] = {}

    endpoint = os.environ.get(ENDPOINT_ENV_VAR)
    if endpoint:
        settings["endpoint_url"] = endpoint

    profile = os.environ.get("AWS_PROFILE")
    if profile:
        settings["profile"] = profile

    access_key = os.environ.get("AWS_ACCESS_KEY_ID") or os.environ.get("AWS_ACCESS_KEY")
    if access_key:
        settings["aws_access_key_id"] = access_key

    secret_key = os.environ.get("AWS_SECRET_ACCESS_KEY") or os.environ.get("AWS_SECRET_KEY")
    if secret_key:
        settings["aws_secret_access_key"] = secret_key

    token = os.environ.get("AWS_SESSION_TOKEN")
    if token:
        settings["aws_session_token"] = token

    return settings


def normalize_endpoint(endpoint: str) -> str:
    """Prefix ``http://`` when the endpoint has no scheme."""
    if not endpoint.startswith(("http://", "https://")):
        return "http://" + endpoint
    return endpoint


def _merge(*sources: dict[str, Any]) -> dict[str, Any]:
    """Merge settings dicts; earlier sources win, None values are skipped."""
    merged: dict[str, Any] = {}
    for source in reversed(sources):
        merged.update({k: v for k, v in source.items() if v is not None})
    return merged


def resolve_config(
    overrides: Optional[dict[str, Any]] = None,
    config_path: Optional[str] = None,
) -> ClientConfig:
    """Resolve the effective client configuration.

    Args:
        overrides: Settings from command-line flags. Keys match the config
            file fields plus ``profile`` and any ClientConfig field name.
        config_path: Optional JSON config file. A missing default file is
            ignored; the profile is only looked up when the file exists.

    Returns:
        The resolved ClientConfig.

    Raises:
        ConfigError: If no endpoint is configured, only half of the key pair
                    is given, or a value is out of range.
    """
    overrides = dict(overrides or {})
    env = load_from_env()

    profile = overrides.get("profile") or env.get("profile")
    file_settings: dict[str, Any] = {}
    if config_path and Path(config_path).exists():
        profiles = load_from_json(config_path)
        file_settings = profiles.get(profile or DEFAULT_PROFILE, {})

    settings = _merge(overrides, env, file_settings)

    endpoint = settings.get("endpoint_url")
    if not endpoint:
        raise ConfigError(
            f"Unknown endpoint. Pass --endpoint or set {ENDPOINT_ENV_VAR}."
        )

    access_key = settings.get("aws_access_key_id")
    secret_key = settings.get("aws_secret_access_key")
    if access_key and not secret_key:
        raise ConfigError("Unknown secret key for access key " + access_key)
    if secret_key and not access_key:
        raise ConfigError("Unknown access key")

    credentials = None
    if access_key and secret_key:
        credentials = Credentials(
            access_key_id=access_key,
            secret_access_key=secret_key,
            session_token=settings.get("aws_session_token"),
        )

    addressing_style = settings.get("addressing_style", "path")
    if addressing_style not in ADDRESSING_STYLES:
        raise ConfigError(f"Invalid addressing style: {addressing_style}")

    signature_version = settings.get("signature_version", "s3v4")
    if signature_version not in SIGNATURE_VERSIONS:
        raise ConfigError(f"Invalid signature version: {signature_version}")

    config = ClientConfig(
        endpoint_url=normalize_endpoint(endpoint),
        credentials=credentials,
        region_name=settings.get("region_name", DEFAULT_REGION),
        addressing_style=addressing_style,
        signature_version=signature_version,
        profile=profile,
    )

    for name in (
        "connect_timeout",
        "read_timeout",
        "max_retries",
        "verify_ssl",
        "headers",
        "query",
        "presign_expiry",
    ):
        if name in settings:
            setattr(config, name, settings[name])

    return config
