"""Command-line interface for the S3 client.

Provides argument parsing, sub-command dispatch and the main entry point.

Environment Variables:
    S3_ENDPOINT=http://host:port (only read if --endpoint is not set)
    AWS_PROFILE=profile          (only read if --profile is not set)
    AWS_ACCESS_KEY_ID=ak         (only read if --ak is not set)
    AWS_ACCESS_KEY=ak            (only read if AWS_ACCESS_KEY_ID is not set)
    AWS_SECRET_ACCESS_KEY=sk     (only read if --sk is not set)
    AWS_SECRET_KEY=sk            (only read if AWS_SECRET_ACCESS_KEY is not set)
    AWS_SESSION_TOKEN=token      (only read if --tk is not set)
"""

import argparse
import re
import sys
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from botocore.exceptions import BotoCoreError, ClientError

from s3cli import __version__
from s3cli.commands import (
    DEFAULT_RESTORE_DAYS,
    DEFAULT_RETENTION_DAYS,
    DEFAULT_RETENTION_MODE,
    CommandError,
    S3Commands,
    parse_metadata,
    split_bucket_key,
    split_key_value,
)
from s3cli.config import ConfigError, resolve_config
from s3cli.formatters import OUTPUT_MODES, create_formatter
from s3cli.log import setup_logging
from s3cli.models import DEFAULT_PRESIGN_EXPIRY
from s3cli.multipart import MIN_PART_SIZE
from s3cli.s3_client import build_s3_client, resolve_credentials

DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1,
    "m": 60,
    "h": 3600,
}
DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: str) -> timedelta:
    """Parse a duration such as ``24h``, ``1h30m`` or ``90s``.

    Raises:
        argparse.ArgumentTypeError: If the value is not a valid duration.
    """
    if value == "0":
        return timedelta(0)

    seconds = 0.0
    position = 0
    for match in DURATION_PART.finditer(value):
        if match.start() != position:
            break
        seconds += float(match.group(1)) * DURATION_UNITS[match.group(2)]
        position = match.end()

    if position == 0 or position != len(value):
        raise argparse.ArgumentTypeError(f"invalid duration: {value}")
    return timedelta(seconds=seconds)


def parse_time(value: str) -> datetime:
    """Parse an ISO 8601 time, treating naive values as UTC."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid time: {value}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _add_list_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("path", nargs="?", default="", metavar="bucket[/prefix]")
    parser.add_argument("-m", "--marker", default="", help="marker (start after key)")
    parser.add_argument("--maxkeys", type=int, default=0, help="max keys per list")
    parser.add_argument("-d", "--delimiter", default="", help="Object delimiter")
    parser.add_argument("-i", "--index", action="store_true", help="show Object index")
    parser.add_argument("--all", action="store_true", help="list all Objects")
    parser.add_argument(
        "--start-time", type=parse_time,
        help="show Objects modified after start-time (UTC)",
    )
    parser.add_argument(
        "--end-time", type=parse_time,
        help="show Objects modified before end-time (UTC)",
    )


def _add_object_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--content-type", help="Object content-type (auto detect if not specified)")
    parser.add_argument(
        "--md", action="append", metavar="KEY:VALUE",
        help="Object user metadata (repeatable)",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all sub-commands."""
    parser = argparse.ArgumentParser(
        prog="s3cli",
        description="Command-line client for S3-compatible object stores",
        epilog=__doc__.split("\n\n", 1)[1],
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    parser.add_argument("-e", "--endpoint", help="S3 endpoint (http://host:port)")
    parser.add_argument("-p", "--profile", help="profile in config or credentials file")
    parser.add_argument(
        "-c", "--config",
        default="s3cli.json",
        help="Path to configuration file (default: s3cli.json)",
    )
    parser.add_argument("-R", "--region", help="S3 region (default: cn-north-1)")
    parser.add_argument("-a", "--ak", help="S3 access key")
    parser.add_argument("-s", "--sk", help="S3 secret key")
    parser.add_argument("--tk", help="S3 session token")
    parser.add_argument(
        "--vhost-style", action="store_true",
        help="enable virtual host style (disable path-style)",
    )
    parser.add_argument("--v2sign", action="store_true", help="use S3 signature v2")
    parser.add_argument("--presign", action="store_true", help="presign request and exit")
    parser.add_argument(
        "--presign-exp", type=parse_duration, default=DEFAULT_PRESIGN_EXPIRY,
        metavar="DURATION",
        help="presign expiration, e.g. 1h30m (default: 24h)",
    )
    parser.add_argument(
        "-H", "--header", action="append", default=[], metavar="KEY:VALUE",
        help="pass custom header(s) to server",
    )
    parser.add_argument(
        "-Q", "--query", action="append", default=[], metavar="KEY=VALUE",
        help="pass custom query parameter(s) to server",
    )
    parser.add_argument(
        "-o", "--output", choices=OUTPUT_MODES, default="simple",
        help="output format (default: simple)",
    )
    parser.add_argument("--dial-timeout", type=int, default=10, help="connect timeout in seconds")
    parser.add_argument(
        "--response-header-timeout", type=int, default=20,
        help="read timeout in seconds",
    )
    parser.add_argument("--retry", type=int, default=0, help="retry number")
    parser.add_argument("--insecure", action="store_true", help="skip TLS certificate verification")
    parser.add_argument(
        "-d", "--debug", action="count", default=0,
        help="debug log (-dd also shows SDK logs)",
    )

    sub = parser.add_subparsers(dest="command", metavar="command", required=True)

    p = sub.add_parser("presign", help="presign (V2, raw key) a request")
    p.add_argument("path", metavar="bucket/key")
    p.add_argument("-X", "--method", default="GET", help="http request method")
    p.add_argument("--content-type", default="", help="http request content-type")
    p.set_defaults(handler=_cmd_presign)

    p = sub.add_parser("create-bucket", aliases=["cb"], help="create Bucket(s)")
    p.add_argument("buckets", nargs="+", metavar="bucket")
    p.set_defaults(handler=lambda c, a: c.create_bucket(a.buckets))

    p = sub.add_parser("list", aliases=["ls"], help="list Buckets or Objects")
    _add_list_arguments(p)
    p.set_defaults(handler=_cmd_list, v2=False, owner=False)

    p = sub.add_parser("list-v2", aliases=["ls2"], help="list Objects (ListObjectsV2)")
    _add_list_arguments(p)
    p.add_argument("--owner", action="store_true", help="fetch owner")
    p.set_defaults(handler=_cmd_list, v2=True)

    p = sub.add_parser("head", help="head Bucket or Object")
    p.add_argument("path", metavar="bucket[/key]")
    p.add_argument("--mtime", action="store_true", help="show Object mtime")
    p.add_argument("--mtimestamp", action="store_true", help="show Object mtimestamp")
    p.set_defaults(handler=_cmd_head)

    p = sub.add_parser("acl", help="get/set Bucket or Object ACL")
    p.add_argument("path", metavar="bucket[/key]")
    p.add_argument("acl", nargs="?", help="canned ACL, e.g. public-read")
    p.set_defaults(handler=_cmd_acl)

    p = sub.add_parser("policy", help="get/set Bucket Policy")
    p.add_argument("bucket")
    p.add_argument("policy", nargs="?", help="policy JSON document")
    p.set_defaults(handler=lambda c, a: c.policy(a.bucket, a.policy))

    p = sub.add_parser("version", aliases=["v"], help="Bucket versioning / Object versions")
    p.add_argument("path", metavar="bucket[/prefix]")
    p.add_argument("status", nargs="?", help="Enabled or Suspended")
    p.set_defaults(handler=_cmd_version)

    p = sub.add_parser("get-bucket-encryption", aliases=["gbe"], help="get Bucket encryption")
    p.add_argument("bucket")
    p.set_defaults(handler=lambda c, a: c.bucket_encryption(a.bucket))

    p = sub.add_parser("put-bucket-encryption", aliases=["pbe"], help="put Bucket encryption")
    p.add_argument("bucket")
    p.add_argument("algorithm", help="SSE algorithm, e.g. AES256 or aws:kms")
    p.set_defaults(handler=lambda c, a: c.put_bucket_encryption(a.bucket, a.algorithm))

    p = sub.add_parser(
        "delete-bucket-encryption", aliases=["dbe"], help="delete Bucket encryption"
    )
    p.add_argument("bucket")
    p.set_defaults(handler=lambda c, a: c.delete_bucket_encryption(a.bucket))

    p = sub.add_parser("cors", help="get/set/delete Bucket CORS")
    p.add_argument("bucket")
    p.add_argument("file", nargs="?", metavar="cors.json", help="CORS configuration JSON file")
    p.add_argument("--delete", action="store_true", help="delete Bucket CORS")
    p.set_defaults(handler=lambda c, a: c.cors(a.bucket, a.file, delete=a.delete))

    p = sub.add_parser(
        "get-object-lock-configuration", aliases=["golc"],
        help="get Bucket object lock configuration",
    )
    p.add_argument("bucket")
    p.set_defaults(handler=lambda c, a: c.object_lock_configuration(a.bucket))

    p = sub.add_parser(
        "put-object-lock-configuration", aliases=["polc"],
        help="put Bucket object lock configuration",
    )
    p.add_argument("bucket")
    p.add_argument("status", help="ObjectLockEnabled value, e.g. Enabled")
    p.add_argument(
        "--days", type=int, default=DEFAULT_RETENTION_DAYS,
        help="default retention days (default: 2)",
    )
    p.add_argument(
        "--mode", default=DEFAULT_RETENTION_MODE,
        help="default retention mode (default: COMPLIANCE)",
    )
    p.set_defaults(handler=_cmd_put_object_lock)

    p = sub.add_parser("restore", help="restore an archived Object")
    p.add_argument("path", metavar="bucket/key")
    p.add_argument("version_id", nargs="?", default="", metavar="versionID")
    p.add_argument(
        "--days", type=int, default=DEFAULT_RESTORE_DAYS,
        help="days the restored copy is kept (default: 1)",
    )
    p.set_defaults(handler=_cmd_restore)

    p = sub.add_parser("rename", aliases=["ren", "mv"], help="rename (move) an Object")
    p.add_argument("source", metavar="bucket/key")
    p.add_argument("destination", metavar="bucket[/key]")
    p.set_defaults(handler=_cmd_rename)

    p = sub.add_parser(
        "delete-version", aliases=["dv"],
        help="delete an Object version, or all versions under a prefix",
    )
    p.add_argument("path", metavar="bucket[/prefix]")
    p.add_argument("--id", dest="version_id", default="", help="Object versionID to delete")
    p.set_defaults(handler=_cmd_delete_version)

    p = sub.add_parser("upload", aliases=["put"], help="upload Object(s)")
    p.add_argument("path", metavar="bucket[/key]")
    p.add_argument("files", nargs="*", metavar="file")
    p.add_argument("--data", help="Object content")
    _add_object_arguments(p)
    p.set_defaults(handler=_cmd_upload)

    p = sub.add_parser("download", aliases=["get"], help="download an Object")
    p.add_argument("path", metavar="bucket/key")
    p.add_argument("destination", nargs="?", help="local file (default: key base name)")
    p.add_argument("-r", "--range", default="", help="byte range, 0-64 means [0, 64]")
    p.add_argument("--version", dest="version_id", default="", help="Object version")
    p.add_argument("-w", "--overwrite", action="store_true", help="overwrite local file")
    p.set_defaults(handler=_cmd_download)

    p = sub.add_parser("cat", help="print Object content")
    p.add_argument("path", metavar="bucket/key")
    p.add_argument("-r", "--range", default="", help="byte range, 0-64 means [0, 64]")
    p.add_argument("--version", dest="version_id", default="", help="Object version")
    p.set_defaults(handler=_cmd_cat)

    p = sub.add_parser("copy", aliases=["cp"], help="copy an Object")
    p.add_argument("source", metavar="bucket/key")
    p.add_argument("destination", metavar="bucket[/key]")
    p.add_argument("--replace-md", action="store_true", help="replace metadata")
    _add_object_arguments(p)
    p.set_defaults(handler=_cmd_copy)

    p = sub.add_parser("delete", aliases=["rm"], help="delete Bucket or Object(s)")
    p.add_argument("path", metavar="bucket[/key]")
    p.add_argument("keys", nargs="*", metavar="key", help="more keys in the same Bucket")
    p.add_argument("--force", action="store_true", help="delete Bucket and all Objects")
    p.add_argument("--prefix", action="store_true", help="delete all Objects with the prefix")
    p.add_argument("--id", dest="version_id", default="", help="Object versionID to delete")
    p.set_defaults(handler=_cmd_delete)

    p = sub.add_parser("mpu-init", help="initiate a multipart upload")
    p.add_argument("path", metavar="bucket/key")
    _add_object_arguments(p)
    p.set_defaults(handler=_cmd_mpu_init)

    p = sub.add_parser("mpu-upload", help="upload multipart upload part(s)")
    p.add_argument("path", metavar="bucket/key")
    p.add_argument("upload_id", metavar="UploadId")
    p.add_argument("parts", nargs="+", metavar="part-num:file")
    p.set_defaults(handler=_cmd_mpu_upload)

    p = sub.add_parser("mpu-abort", help="abort a multipart upload")
    p.add_argument("path", metavar="bucket/key")
    p.add_argument("upload_id", metavar="UploadId")
    p.set_defaults(handler=_cmd_mpu_abort)

    p = sub.add_parser("mpu-list", help="list multipart uploads")
    p.add_argument("path", metavar="bucket[/prefix]")
    p.set_defaults(handler=_cmd_mpu_list)

    p = sub.add_parser("mpu-complete", help="complete a multipart upload")
    p.add_argument("path", metavar="bucket/key")
    p.add_argument("upload_id", metavar="UploadId")
    p.add_argument("etags", nargs="+", metavar="part-etag")
    p.set_defaults(handler=_cmd_mpu_complete)

    p = sub.add_parser("mpu", help="upload a file with a multipart upload")
    p.add_argument("path", metavar="bucket[/key]")
    p.add_argument("file")
    p.add_argument(
        "--part-size", type=int, default=MIN_PART_SIZE >> 20,
        help="part size in MB (default: 5)",
    )
    _add_object_arguments(p)
    p.set_defaults(handler=_cmd_mpu)

    return parser


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Parsed arguments namespace
    """
    return build_parser().parse_args(argv)


def build_overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Translate global flags into configuration overrides."""
    overrides: dict[str, Any] = {
        "endpoint_url": args.endpoint,
        "profile": args.profile,
        "region_name": args.region,
        "aws_access_key_id": args.ak,
        "aws_secret_access_key": args.sk,
        "aws_session_token": args.tk,
        "addressing_style": "virtual" if args.vhost_style else None,
        "signature_version": "v2" if args.v2sign else None,
        "connect_timeout": args.dial_timeout,
        "read_timeout": args.response_header_timeout,
        "max_retries": args.retry,
        "verify_ssl": not args.insecure,
        "headers": [split_key_value(h, ":") for h in args.header],
        "query": [split_key_value(q, "=") for q in args.query],
        "presign_expiry": args.presign_exp,
    }
    return overrides


def _cmd_presign(commands: S3Commands, args: argparse.Namespace) -> None:
    commands.presign(args.method, args.path, args.content_type)


def _cmd_list(commands: S3Commands, args: argparse.Namespace) -> None:
    bucket, prefix = split_bucket_key(args.path)
    if not bucket:
        commands.list_buckets()
        return
    commands.list_objects(
        bucket,
        prefix=prefix,
        delimiter=args.delimiter,
        marker=args.marker,
        max_keys=args.maxkeys,
        all_pages=args.all,
        index=args.index,
        start_time=args.start_time,
        end_time=args.end_time,
        v2=args.v2,
        fetch_owner=args.owner,
    )


def _cmd_head(commands: S3Commands, args: argparse.Namespace) -> None:
    bucket, key = split_bucket_key(args.path)
    if not key:
        commands.head_bucket(bucket)
    else:
        commands.head_object(bucket, key, mtime=args.mtime, mtimestamp=args.mtimestamp)


def _cmd_acl(commands: S3Commands, args: argparse.Namespace) -> None:
    bucket, key = split_bucket_key(args.path)
    commands.acl(bucket, key, args.acl)


def _cmd_version(commands: S3Commands, args: argparse.Namespace) -> None:
    bucket, prefix = split_bucket_key(args.path)
    if args.status is None and prefix:
        commands.list_object_versions(bucket, prefix)
    else:
        commands.versioning(bucket, args.status)


def _cmd_put_object_lock(commands: S3Commands, args: argparse.Namespace) -> None:
    commands.put_object_lock_configuration(
        args.bucket, args.status, days=args.days, mode=args.mode
    )


def _cmd_restore(commands: S3Commands, args: argparse.Namespace) -> None:
    bucket, key = split_bucket_key(args.path)
    commands.restore_object(bucket, key, version=args.version_id, days=args.days)


def _cmd_rename(commands: S3Commands, args: argparse.Namespace) -> None:
    bucket, key = split_bucket_key(args.destination)
    commands.rename_object(args.source, bucket, key)


def _cmd_delete_version(commands: S3Commands, args: argparse.Namespace) -> None:
    bucket, key = split_bucket_key(args.path)
    if args.version_id:
        commands.delete_object_version(bucket, key, args.version_id)
    else:
        commands.delete_versions(bucket, key)


def _cmd_upload(commands: S3Commands, args: argparse.Namespace) -> None:
    bucket, key = split_bucket_key(args.path)
    metadata = parse_metadata(args.md)

    if not args.files:
        commands.put_object(
            bucket, key, data=args.data,
            content_type=args.content_type, metadata=metadata,
        )
    elif len(args.files) == 1:
        commands.put_object(
            bucket, key, file_path=args.files[0],
            content_type=args.content_type, metadata=metadata,
        )
    else:
        # Several files always go under the key as a prefix
        prefix = key if not key or key.endswith("/") else key + "/"
        for file_path in args.files:
            commands.put_object(
                bucket, prefix, file_path=file_path,
                content_type=args.content_type, metadata=metadata,
            )


def _cmd_download(commands: S3Commands, args: argparse.Namespace) -> None:
    bucket, key = split_bucket_key(args.path)
    commands.get_object(
        bucket, key,
        destination=args.destination,
        byte_range=args.range,
        version=args.version_id,
        overwrite=args.overwrite,
    )


def _cmd_cat(commands: S3Commands, args: argparse.Namespace) -> None:
    bucket, key = split_bucket_key(args.path)
    commands.cat_object(bucket, key, byte_range=args.range, version=args.version_id)


def _cmd_copy(commands: S3Commands, args: argparse.Namespace) -> None:
    bucket, key = split_bucket_key(args.destination)
    commands.copy_object(
        args.source, bucket, key,
        content_type=args.content_type,
        metadata=parse_metadata(args.md),
        replace_metadata=args.replace_md,
    )


def _cmd_delete(commands: S3Commands, args: argparse.Namespace) -> None:
    bucket, key = split_bucket_key(args.path)
    if args.prefix:
        commands.delete_prefix(bucket, key)
    elif not key:
        commands.delete_bucket_and_objects(bucket, force=args.force)
    elif args.version_id:
        commands.delete_object_version(bucket, key, args.version_id)
    else:
        commands.delete_objects(bucket, [key, *args.keys])


def _cmd_mpu_init(commands: S3Commands, args: argparse.Namespace) -> None:
    bucket, key = split_bucket_key(args.path)
    commands.mpu_init(bucket, key, content_type=args.content_type, metadata=parse_metadata(args.md))


def _cmd_mpu_upload(commands: S3Commands, args: argparse.Namespace) -> None:
    bucket, key = split_bucket_key(args.path)
    parts = {}
    for item in args.parts:
        number, file_path = split_key_value(item, ":")
        if not number.isdigit() or not file_path:
            raise CommandError(f"Invalid part (expected part-num:file): {item}")
        parts[int(number)] = file_path
    commands.mpu_upload(bucket, key, args.upload_id, parts)


def _cmd_mpu_abort(commands: S3Commands, args: argparse.Namespace) -> None:
    bucket, key = split_bucket_key(args.path)
    commands.mpu_abort(bucket, key, args.upload_id)


def _cmd_mpu_list(commands: S3Commands, args: argparse.Namespace) -> None:
    bucket, prefix = split_bucket_key(args.path)
    commands.mpu_list(bucket, prefix)


def _cmd_mpu_complete(commands: S3Commands, args: argparse.Namespace) -> None:
    bucket, key = split_bucket_key(args.path)
    commands.mpu_complete(bucket, key, args.upload_id, args.etags)


def _cmd_mpu(commands: S3Commands, args: argparse.Namespace) -> None:
    bucket, key = split_bucket_key(args.path)
    commands.mpu(
        bucket, key, args.file,
        part_size=args.part_size << 20,
        content_type=args.content_type,
        metadata=parse_metadata(args.md),
    )


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code: 0 for success, 1 for command failures, 2 for configuration errors
    """
    args = parse_args(argv)
    setup_logging(args.debug)

    # Load configuration
    try:
        config = resolve_config(build_overrides(args), args.config)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    try:
        credentials = resolve_credentials(config)
        if config.credentials is None:
            config.credentials = credentials

        commands = S3Commands(
            build_s3_client(config),
            config,
            create_formatter(args.output),
            credentials=credentials,
            presign=args.presign,
        )
        args.handler(commands, args)
    except (ClientError, BotoCoreError, CommandError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
