"""Command handlers for bucket and object operations.

Each handler issues one or a few S3 API calls through a boto3 client and
hands the result to a formatter. When presign mode is on, single-request
handlers print a presigned URL instead of sending the request, and handlers
that need several requests refuse to run.
"""

import json
import logging
import mimetypes
import os
import sys
from datetime import datetime
from typing import Any, BinaryIO, Optional
from urllib.parse import quote

from s3cli.formatters import Formatter
from s3cli.models import ClientConfig, Credentials, PendingRequest
from s3cli.multipart import DEFAULT_PART_SIZE, MultipartUpload
from s3cli.signing import presign_url

logger = logging.getLogger(__name__)

PRESIGN_METHODS = ("GET", "HEAD", "PUT", "POST", "DELETE")

VERSIONING_STATUSES = {"enabled": "Enabled", "suspended": "Suspended"}

# Characters left unescaped in object paths, matching what S3 servers
# accept verbatim in a request path.
PATH_SAFE_CHARS = "/~!$&'()*+,;=:@"

# DeleteObjects accepts at most this many keys per request
DELETE_BATCH_SIZE = 1000

DEFAULT_RETENTION_DAYS = 2
DEFAULT_RETENTION_MODE = "COMPLIANCE"
DEFAULT_RESTORE_DAYS = 1


class CommandError(Exception):
    """Raised when a command cannot be carried out."""

    pass


def split_key_value(data: str, sep: str) -> tuple[str, str]:
    """Split ``data`` at the first ``sep``; the value is empty if absent."""
    key, found, value = data.partition(sep)
    if not found:
        return data, ""
    return key, value


def split_bucket_key(path: str) -> tuple[str, str]:
    """Split ``bucket/key`` into its bucket and key parts."""
    return split_key_value(path, "/")


def parse_metadata(pairs: Optional[list[str]]) -> dict[str, str]:
    """Parse ``Key:Value`` strings into user metadata, skipping empty ones."""
    metadata = {}
    for pair in pairs or []:
        key, value = split_key_value(pair, ":")
        if key and value:
            metadata[key] = value
    return metadata


class S3Commands:
    """Handlers for every CLI sub-command.

    Args:
        client: boto3 S3 client
        config: Resolved client configuration
        formatter: Where results are printed
        credentials: Key pair for V2 presigning (None when anonymous)
        presign: Print presigned URLs instead of executing object requests
    """

    def __init__(
        self,
        client: Any,
        config: ClientConfig,
        formatter: Formatter,
        credentials: Optional[Credentials] = None,
        presign: bool = False,
    ):
        self.client = client
        self.config = config
        self.formatter = formatter
        self.credentials = credentials
        self.presign_only = presign

    # Presigning

    def _require_credentials(self) -> Credentials:
        if self.credentials is None:
            raise CommandError("Access key and secret key are required to presign")
        return self.credentials

    def presign(self, method: str, bucket_key: str, content_type: str = "") -> str:
        """Presign a raw ``bucket/key`` with Signature V2.

        The key is used as typed; only characters that cannot appear in a
        URL path are escaped.

        Raises:
            CommandError: For an unsupported method, an invalid bucket/key
                or missing credentials.
        """
        method = method.upper()
        if method not in PRESIGN_METHODS:
            raise CommandError(f"Invalid http method: {method}")
        if not bucket_key or bucket_key.startswith("/"):
            raise CommandError(f"Invalid bucket/key: {bucket_key}")
        credentials = self._require_credentials()

        headers = list(self.config.headers)
        if content_type:
            headers.append(("Content-Type", content_type))

        url = f"{self.config.endpoint_url.rstrip('/')}/{quote(bucket_key, safe=PATH_SAFE_CHARS)}"
        request = PendingRequest.from_url(method, url, headers)
        for name, value in self.config.query:
            request.add_query(name, value)

        signed = presign_url(request, credentials, self.config.presign_expiry)
        self.formatter.show_value(signed)
        return signed

    def _presign_operation(self, operation: str, params: dict[str, Any]) -> str:
        """Presign an API operation, honouring the configured signature version."""
        expires_in = int(self.config.presign_expiry.total_seconds())
        url = self.client.generate_presigned_url(
            operation, Params=params, ExpiresIn=expires_in
        )

        if self.config.use_v2_signing:
            credentials = self._require_credentials()
            method = self.client.meta.service_model.operation_model(operation).http["method"]
            request = PendingRequest.from_url(method, url, _signed_headers(self.config, params))
            if self.config.addressing_style == "virtual":
                request.bucket = params.get("Bucket")
            url = presign_url(request, credentials, self.config.presign_expiry)

        return url

    def _maybe_presign(self, operation: str, params: dict[str, Any]) -> bool:
        if not self.presign_only:
            return False
        self.formatter.show_value(self._presign_operation(operation, params))
        return True

    def _refuse_presign(self, action: str) -> None:
        """Fail commands that a single presigned URL cannot express."""
        if self.presign_only:
            raise CommandError(f"Cannot presign {action}")

    # Buckets

    def create_bucket(self, buckets: list[str]) -> None:
        for bucket in buckets:
            params: dict[str, Any] = {"Bucket": bucket}
            if self.config.region_name and self.config.region_name != "us-east-1":
                params["CreateBucketConfiguration"] = {
                    "LocationConstraint": self.config.region_name
                }
            if self._maybe_presign("create_bucket", params):
                continue
            response = self.client.create_bucket(**params)
            logger.info("Created bucket %s", bucket)
            if getattr(self.formatter, "mode", None) == "verbose":
                self.formatter.show_response(response)

    def list_buckets(self) -> None:
        if self._maybe_presign("list_buckets", {}):
            return
        self.formatter.show_buckets(self.client.list_buckets())

    def head_bucket(self, bucket: str) -> None:
        params = {"Bucket": bucket}
        if self._maybe_presign("head_bucket", params):
            return
        self.formatter.show_response(self.client.head_bucket(**params))

    def delete_bucket(self, bucket: str) -> None:
        params = {"Bucket": bucket}
        if self._maybe_presign("delete_bucket", params):
            return
        self.client.delete_bucket(**params)
        logger.info("Deleted bucket %s", bucket)

    def delete_bucket_and_objects(self, bucket: str, force: bool = False) -> None:
        """Delete a bucket, emptying it first when ``force`` is set."""
        if force:
            self._refuse_presign("a forced bucket delete")
            self.delete_prefix(bucket, "")
        self.delete_bucket(bucket)

    def acl(self, bucket: str, key: str = "", acl: Optional[str] = None) -> None:
        """Get or set the canned ACL of a bucket or an object."""
        params: dict[str, Any] = {"Bucket": bucket}
        if key:
            params["Key"] = key

        if acl is None:
            operation = "get_object_acl" if key else "get_bucket_acl"
            if self._maybe_presign(operation, params):
                return
            self.formatter.show_response(getattr(self.client, operation)(**params))
            return

        params["ACL"] = acl
        operation = "put_object_acl" if key else "put_bucket_acl"
        if self._maybe_presign(operation, params):
            return
        getattr(self.client, operation)(**params)

    def policy(self, bucket: str, policy: Optional[str] = None) -> None:
        """Get or set a bucket policy document."""
        if policy is None:
            if self._maybe_presign("get_bucket_policy", {"Bucket": bucket}):
                return
            response = self.client.get_bucket_policy(Bucket=bucket)
            self.formatter.show_value(response.get("Policy", ""))
            return

        params = {"Bucket": bucket, "Policy": policy}
        if self._maybe_presign("put_bucket_policy", params):
            return
        self.client.put_bucket_policy(**params)

    def versioning(self, bucket: str, status: Optional[str] = None) -> None:
        """Get or set the bucket versioning status.

        Raises:
            CommandError: If ``status`` is neither Enabled nor Suspended.
        """
        if status is None:
            if self._maybe_presign("get_bucket_versioning", {"Bucket": bucket}):
                return
            response = self.client.get_bucket_versioning(Bucket=bucket)
            self.formatter.show_value(response.get("Status", "Unversioned"))
            return

        normalized = VERSIONING_STATUSES.get(status.lower())
        if normalized is None:
            raise CommandError(f"Invalid versioning: {status}")

        params = {"Bucket": bucket, "VersioningConfiguration": {"Status": normalized}}
        if self._maybe_presign("put_bucket_versioning", params):
            return
        self.client.put_bucket_versioning(**params)

    def bucket_encryption(self, bucket: str) -> None:
        params = {"Bucket": bucket}
        if self._maybe_presign("get_bucket_encryption", params):
            return
        self.formatter.show_response(self.client.get_bucket_encryption(**params))

    def put_bucket_encryption(self, bucket: str, algorithm: str) -> None:
        """Set the default server-side encryption algorithm, e.g. AES256."""
        params = {
            "Bucket": bucket,
            "ServerSideEncryptionConfiguration": {
                "Rules": [{"ApplyServerSideEncryptionByDefault": {"SSEAlgorithm": algorithm}}]
            },
        }
        if self._maybe_presign("put_bucket_encryption", params):
            return
        self.client.put_bucket_encryption(**params)

    def delete_bucket_encryption(self, bucket: str) -> None:
        params = {"Bucket": bucket}
        if self._maybe_presign("delete_bucket_encryption", params):
            return
        self.client.delete_bucket_encryption(**params)

    def cors(self, bucket: str, config_file: Optional[str] = None, delete: bool = False) -> None:
        """Get, set or delete the bucket CORS configuration.

        ``config_file`` is a JSON document, either ``{"CORSRules": [...]}``
        or the bare list of rules.
        """
        if delete:
            if self._maybe_presign("delete_bucket_cors", {"Bucket": bucket}):
                return
            self.client.delete_bucket_cors(Bucket=bucket)
            return

        if config_file is None:
            if self._maybe_presign("get_bucket_cors", {"Bucket": bucket}):
                return
            self.formatter.show_response(self.client.get_bucket_cors(Bucket=bucket))
            return

        with open(config_file, encoding="utf-8") as f:
            document = json.load(f)
        if isinstance(document, list):
            document = {"CORSRules": document}

        params = {"Bucket": bucket, "CORSConfiguration": document}
        if self._maybe_presign("put_bucket_cors", params):
            return
        self.client.put_bucket_cors(**params)

    def object_lock_configuration(self, bucket: str) -> None:
        params = {"Bucket": bucket}
        if self._maybe_presign("get_object_lock_configuration", params):
            return
        self.formatter.show_response(self.client.get_object_lock_configuration(**params))

    def put_object_lock_configuration(
        self,
        bucket: str,
        status: str,
        days: int = DEFAULT_RETENTION_DAYS,
        mode: str = DEFAULT_RETENTION_MODE,
    ) -> None:
        """Set object lock with a default retention rule."""
        params = {
            "Bucket": bucket,
            "ObjectLockConfiguration": {
                "ObjectLockEnabled": status,
                "Rule": {"DefaultRetention": {"Days": days, "Mode": mode}},
            },
        }
        if self._maybe_presign("put_object_lock_configuration", params):
            return
        self.client.put_object_lock_configuration(**params)

    # Listing

    def list_objects(
        self,
        bucket: str,
        prefix: str = "",
        delimiter: str = "",
        marker: str = "",
        max_keys: int = 0,
        all_pages: bool = False,
        index: bool = False,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        v2: bool = False,
        fetch_owner: bool = False,
    ) -> None:
        """List objects, optionally following every page.

        Objects modified outside ``[start_time, end_time]`` are skipped.
        """
        params: dict[str, Any] = {"Bucket": bucket}
        if prefix:
            params["Prefix"] = prefix
        if delimiter:
            params["Delimiter"] = delimiter
        if max_keys:
            params["MaxKeys"] = max_keys
        if v2:
            operation = "list_objects_v2"
            if marker:
                params["StartAfter"] = marker
            if fetch_owner:
                params["FetchOwner"] = True
        else:
            operation = "list_objects"
            if marker:
                params["Marker"] = marker

        if self._maybe_presign(operation, params):
            return

        if all_pages:
            params.pop("MaxKeys", None)
            pages = self.client.get_paginator(operation).paginate(**params)
        else:
            pages = [getattr(self.client, operation)(**params)]

        for page in pages:
            objects = [
                obj for obj in page.get("Contents", [])
                if _in_window(obj.get("LastModified"), start_time, end_time)
            ]
            prefixes = [p["Prefix"] for p in page.get("CommonPrefixes", [])]
            self.formatter.show_objects(objects, prefixes, index=index)

    def list_object_versions(self, bucket: str, prefix: str = "") -> None:
        params: dict[str, Any] = {"Bucket": bucket}
        if prefix:
            params["Prefix"] = prefix
        if self._maybe_presign("list_object_versions", params):
            return
        self.formatter.show_response(self.client.list_object_versions(**params))

    # Objects

    def head_object(
        self,
        bucket: str,
        key: str,
        mtime: bool = False,
        mtimestamp: bool = False,
    ) -> None:
        params = {"Bucket": bucket, "Key": key}
        if self._maybe_presign("head_object", params):
            return

        response = self.client.head_object(**params)
        last_modified = response.get("LastModified")
        if mtime:
            self.formatter.show_value(last_modified)
        elif mtimestamp:
            self.formatter.show_value(int(last_modified.timestamp()))
        elif getattr(self.formatter, "mode", None) == "line":
            self.formatter.show_value(f"{response.get('ContentLength', 0)}\t{last_modified}")
        else:
            self.formatter.show_response(response)

    def put_object(
        self,
        bucket: str,
        key: str,
        file_path: Optional[str] = None,
        data: Optional[str] = None,
        content_type: Optional[str] = None,
        metadata: Optional[dict[str, str]] = None,
    ) -> None:
        """Upload a file, inline data, or an empty object.

        The key defaults to the file's base name when it is empty or ends
        with ``/``.
        """
        if file_path and (not key or key.endswith("/")):
            key = key + os.path.basename(file_path)
        if not key:
            raise CommandError("Object key is required")
        if file_path and not content_type:
            content_type = mimetypes.guess_type(file_path)[0]

        params: dict[str, Any] = {"Bucket": bucket, "Key": key}
        if content_type:
            params["ContentType"] = content_type
        if metadata:
            params["Metadata"] = metadata

        if self._maybe_presign("put_object", params):
            return

        if file_path:
            with open(file_path, "rb") as f:
                response = self.client.put_object(Body=f, **params)
        else:
            response = self.client.put_object(Body=(data or "").encode("utf-8"), **params)

        logger.info("Uploaded %s/%s", bucket, key)
        if getattr(self.formatter, "mode", None) in ("verbose", "json"):
            self.formatter.show_response(response)

    def _get_params(self, bucket: str, key: str, byte_range: str, version: str) -> dict[str, Any]:
        params: dict[str, Any] = {"Bucket": bucket, "Key": key}
        if byte_range:
            params["Range"] = f"bytes={byte_range}"
        if version:
            params["VersionId"] = version
        return params

    def get_object(
        self,
        bucket: str,
        key: str,
        destination: Optional[str] = None,
        byte_range: str = "",
        version: str = "",
        overwrite: bool = False,
    ) -> None:
        """Download an object to a local file.

        Raises:
            CommandError: If the destination exists and ``overwrite`` is off.
        """
        params = self._get_params(bucket, key, byte_range, version)
        if self._maybe_presign("get_object", params):
            return

        destination = destination or os.path.basename(key.rstrip("/"))
        if not destination:
            raise CommandError(f"Cannot derive a file name from key: {key}")
        if os.path.exists(destination) and not overwrite:
            raise CommandError(f"File already exists: {destination}")

        response = self.client.get_object(**params)
        with open(destination, "wb") as f:
            for chunk in response["Body"].iter_chunks():
                f.write(chunk)
        logger.info("Downloaded %s/%s to %s", bucket, key, destination)

    def cat_object(
        self,
        bucket: str,
        key: str,
        byte_range: str = "",
        version: str = "",
        out: Optional[BinaryIO] = None,
    ) -> None:
        """Stream an object's content to stdout."""
        params = self._get_params(bucket, key, byte_range, version)
        if self._maybe_presign("get_object", params):
            return

        out = out or sys.stdout.buffer
        response = self.client.get_object(**params)
        for chunk in response["Body"].iter_chunks():
            out.write(chunk)
        out.flush()

    def copy_object(
        self,
        source: str,
        bucket: str,
        key: str,
        content_type: Optional[str] = None,
        metadata: Optional[dict[str, str]] = None,
        replace_metadata: bool = False,
    ) -> None:
        """Server-side copy of ``source`` (``bucket/key``) to bucket/key."""
        src_bucket, src_key = split_bucket_key(source)
        if not src_bucket or not src_key:
            raise CommandError(f"Invalid source bucket/key: {source}")

        params: dict[str, Any] = {
            "Bucket": bucket,
            "Key": key or src_key,
            "CopySource": {"Bucket": src_bucket, "Key": src_key},
        }
        if content_type:
            params["ContentType"] = content_type
        if metadata:
            params["Metadata"] = metadata
        if replace_metadata or content_type or metadata:
            params["MetadataDirective"] = "REPLACE"

        if self._maybe_presign("copy_object", params):
            return
        response = self.client.copy_object(**params)
        if getattr(self.formatter, "mode", None) in ("verbose", "json"):
            self.formatter.show_response(response)

    def delete_objects(self, bucket: str, keys: list[str]) -> None:
        """Delete one or more objects."""
        if len(keys) == 1:
            params = {"Bucket": bucket, "Key": keys[0]}
            if self._maybe_presign("delete_object", params):
                return
            self.client.delete_object(**params)
            return

        self._refuse_presign("a multi-object delete")
        self._delete_batches(bucket, [{"Key": k} for k in keys])

    def _delete_batches(self, bucket: str, objects: list[dict[str, str]]) -> None:
        for start in range(0, len(objects), DELETE_BATCH_SIZE):
            batch = objects[start:start + DELETE_BATCH_SIZE]
            response = self.client.delete_objects(
                Bucket=bucket,
                Delete={"Objects": batch, "Quiet": True},
            )
            for error in response.get("Errors", []):
                logger.error("Failed to delete %s: %s", error.get("Key"), error.get("Message"))

    def delete_prefix(self, bucket: str, prefix: str) -> int:
        """Delete every object whose key starts with ``prefix``.

        Returns:
            Number of keys submitted for deletion.
        """
        self._refuse_presign("a prefix delete")
        paginator = self.client.get_paginator("list_objects")
        keys = []
        for page in paginator.paginate(Bucket=bucket, Prefix=prefix):
            keys.extend(obj["Key"] for obj in page.get("Contents", []))

        if keys:
            self.delete_objects(bucket, keys)
        logger.info("Deleted %d object(s) under %s/%s", len(keys), bucket, prefix)
        return len(keys)

    def delete_object_version(self, bucket: str, key: str, version_id: str) -> None:
        params = {"Bucket": bucket, "Key": key, "VersionId": version_id}
        if self._maybe_presign("delete_object", params):
            return
        self.client.delete_object(**params)

    def delete_versions(self, bucket: str, prefix: str = "") -> int:
        """Delete every version and delete marker under ``prefix``.

        Returns:
            Number of versions and delete markers submitted for deletion.
        """
        self._refuse_presign("a versions delete")
        params: dict[str, Any] = {"Bucket": bucket}
        if prefix:
            params["Prefix"] = prefix

        objects = []
        paginator = self.client.get_paginator("list_object_versions")
        for page in paginator.paginate(**params):
            for kind, entries in (
                ("deleteMarker", page.get("DeleteMarkers", [])),
                ("version", page.get("Versions", [])),
            ):
                for entry in entries:
                    logger.debug("%s %s %s deleted", kind, entry["Key"], entry["VersionId"])
                    objects.append({"Key": entry["Key"], "VersionId": entry["VersionId"]})

        if objects:
            self._delete_batches(bucket, objects)
        logger.info("Deleted %d version(s) under %s/%s", len(objects), bucket, prefix)
        return len(objects)

    def restore_object(
        self,
        bucket: str,
        key: str,
        version: str = "",
        days: int = DEFAULT_RESTORE_DAYS,
    ) -> None:
        """Restore an archived object for ``days`` days."""
        params: dict[str, Any] = {
            "Bucket": bucket,
            "Key": key,
            "RestoreRequest": {"Days": days},
        }
        if version:
            params["VersionId"] = version
        if self._maybe_presign("restore_object", params):
            return
        response = self.client.restore_object(**params)
        if getattr(self.formatter, "mode", None) in ("verbose", "json"):
            self.formatter.show_response(response)

    def rename_object(self, source: str, bucket: str, key: str) -> None:
        """Move ``source`` (``bucket/key``) to bucket/key: copy, then delete.

        Raises:
            CommandError: For an invalid source, a destination equal to the
                source, or presign mode.
        """
        self._refuse_presign("a rename")
        src_bucket, src_key = split_bucket_key(source)
        if not src_bucket or not src_key:
            raise CommandError(f"Invalid source bucket/key: {source}")
        key = key or src_key
        if (src_bucket, src_key) == (bucket, key):
            raise CommandError(f"Source and destination are the same: {source}")

        self.client.copy_object(
            Bucket=bucket,
            Key=key,
            CopySource={"Bucket": src_bucket, "Key": src_key},
            MetadataDirective="COPY",
        )
        self.client.delete_object(Bucket=src_bucket, Key=src_key)
        logger.info("Renamed %s to %s/%s", source, bucket, key)

    # Multipart uploads

    def mpu_init(
        self,
        bucket: str,
        key: str,
        content_type: Optional[str] = None,
        metadata: Optional[dict[str, str]] = None,
    ) -> Optional[str]:
        params: dict[str, Any] = {"Bucket": bucket, "Key": key}
        if content_type:
            params["ContentType"] = content_type
        if metadata:
            params["Metadata"] = metadata
        if self._maybe_presign("create_multipart_upload", params):
            return None

        upload = MultipartUpload(self.client, bucket, key)
        upload_id = upload.initiate(content_type=content_type, metadata=metadata)
        self.formatter.show_value(upload_id)
        return upload_id

    def mpu_upload(self, bucket: str, key: str, upload_id: str, parts: dict[int, str]) -> None:
        """Upload parts given as ``{part_number: file_path}``."""
        if len(parts) == 1:
            params = {
                "Bucket": bucket,
                "Key": key,
                "UploadId": upload_id,
                "PartNumber": next(iter(parts)),
            }
            if self._maybe_presign("upload_part", params):
                return
        self._refuse_presign("several part uploads")

        upload = MultipartUpload(self.client, bucket, key, upload_id=upload_id)
        for part_number in sorted(parts):
            with open(parts[part_number], "rb") as f:
                etag = upload.upload_part(part_number, f.read())
            self.formatter.show_value(f"{part_number} {etag}")

    def mpu_abort(self, bucket: str, key: str, upload_id: str) -> None:
        params = {"Bucket": bucket, "Key": key, "UploadId": upload_id}
        if self._maybe_presign("abort_multipart_upload", params):
            return
        self.client.abort_multipart_upload(**params)

    def mpu_list(self, bucket: str, prefix: str = "") -> None:
        params: dict[str, Any] = {"Bucket": bucket}
        if prefix:
            params["Prefix"] = prefix
        if self._maybe_presign("list_multipart_uploads", params):
            return
        response = self.client.list_multipart_uploads(**params)
        if getattr(self.formatter, "mode", None) in ("verbose", "json"):
            self.formatter.show_response(response)
            return
        for upload in response.get("Uploads", []):
            self.formatter.show_value(f"{upload['Key']} {upload['UploadId']}")

    def mpu_complete(self, bucket: str, key: str, upload_id: str, etags: list[str]) -> None:
        """Complete an upload; ETags are given in part order starting at 1."""
        # The part list travels in the body, which a URL cannot carry
        self._refuse_presign("a multipart completion")
        upload = MultipartUpload(self.client, bucket, key, upload_id=upload_id)
        for part_number, etag in enumerate(etags, start=1):
            upload.add_part(part_number, etag)
        self.formatter.show_response(upload.complete())

    def mpu(
        self,
        bucket: str,
        key: str,
        file_path: str,
        part_size: int = DEFAULT_PART_SIZE,
        content_type: Optional[str] = None,
        metadata: Optional[dict[str, str]] = None,
    ) -> None:
        """Upload a whole file with a multipart upload."""
        self._refuse_presign("a multipart upload")
        if not key or key.endswith("/"):
            key = key + os.path.basename(file_path)
        if not content_type:
            content_type = mimetypes.guess_type(file_path)[0]

        upload = MultipartUpload(self.client, bucket, key)
        response = upload.upload_file(
            file_path,
            part_size=part_size,
            content_type=content_type,
            metadata=metadata,
        )
        if getattr(self.formatter, "mode", None) in ("verbose", "json"):
            self.formatter.show_response(response)
        else:
            self.formatter.show_value(
                f"{response.get('Location', '')} {upload.upload_id} {response.get('ETag', '')}"
            )


def _signed_headers(config: ClientConfig, params: dict[str, Any]) -> list[tuple[str, str]]:
    """Headers the client must send with a presigned operation URL."""
    headers = list(config.headers)
    if params.get("ContentType"):
        headers.append(("Content-Type", params["ContentType"]))
    if params.get("ACL"):
        headers.append(("x-amz-acl", params["ACL"]))
    for name, value in (params.get("Metadata") or {}).items():
        headers.append((f"x-amz-meta-{name}", value))
    return headers


def _in_window(
    value: Optional[datetime],
    start: Optional[datetime],
    end: Optional[datetime],
) -> bool:
    if value is None:
        return True
    if start is not None and value < start:
        return False
    if end is not None and value > end:
        return False
    return True
