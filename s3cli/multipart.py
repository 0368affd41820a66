"""Multipart upload lifecycle management.

Handles the complete lifecycle of S3 multipart uploads:
- Initiate upload
- Upload and track parts
- Complete or abort upload
"""

import logging
from typing import Any, Generator, Optional

from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

# S3 minimum part size (the last part may be smaller)
MIN_PART_SIZE = 5 * 1024 * 1024

DEFAULT_PART_SIZE = MIN_PART_SIZE


def iterate_parts(
    file_path: str,
    part_size: int = DEFAULT_PART_SIZE,
) -> Generator[tuple[int, bytes], None, None]:
    """Iterate over file parts.

    Args:
        file_path: Path to the file to read.
        part_size: Size of each part in bytes.

    Yields:
        Tuples of (part_number, chunk_data), part numbers starting at 1.
    """
    part_number = 1
    with open(file_path, "rb") as f:
        while True:
            chunk = f.read(part_size)
            if not chunk:
                break
            yield part_number, chunk
            part_number += 1


class MultipartUpload:
    """Manages the lifecycle of a multipart upload.

    This class handles:
    - Initiating a multipart upload (or resuming one by upload ID)
    - Uploading parts and tracking their ETags
    - Completing or aborting the upload

    Can be used as a context manager; the upload is aborted on errors.
    """

    def __init__(
        self,
        s3_client: Any,
        bucket: str,
        key: str,
        upload_id: Optional[str] = None,
    ):
        """Initialize the multipart upload manager.

        Args:
            s3_client: boto3 S3 client
            bucket: Target bucket
            key: Target object key
            upload_id: ID of an upload that was initiated earlier
        """
        self.s3_client = s3_client
        self.bucket = bucket
        self.key = key
        self.upload_id = upload_id
        self.uploaded_parts: list[dict] = []

    def initiate(
        self,
        content_type: Optional[str] = None,
        metadata: Optional[dict[str, str]] = None,
    ) -> str:
        """Initiate a new multipart upload.

        Returns:
            The upload ID for the new multipart upload.
        """
        params: dict[str, Any] = {"Bucket": self.bucket, "Key": self.key}
        if content_type:
            params["ContentType"] = content_type
        if metadata:
            params["Metadata"] = metadata

        response = self.s3_client.create_multipart_upload(**params)
        self.upload_id = response["UploadId"]
        logger.debug("Initiated upload %s for %s/%s", self.upload_id, self.bucket, self.key)
        return self.upload_id

    def upload_part(self, part_number: int, data: bytes) -> str:
        """Upload one part and record its ETag.

        Returns:
            The ETag returned by the server.

        Raises:
            RuntimeError: If upload was not initiated.
        """
        if self.upload_id is None:
            raise RuntimeError("Upload not initiated")

        response = self.s3_client.upload_part(
            Bucket=self.bucket,
            Key=self.key,
            UploadId=self.upload_id,
            PartNumber=part_number,
            Body=data,
        )
        etag = response["ETag"]
        self.add_part(part_number, etag)
        return etag

    def add_part(self, part_number: int, etag: str) -> None:
        """Record a successfully uploaded part.

        Args:
            part_number: The 1-indexed part number.
            etag: The ETag returned by the server.
        """
        self.uploaded_parts.append({
            "PartNumber": part_number,
            "ETag": etag,
        })

    def complete(self) -> dict:
        """Complete the multipart upload.

        Returns:
            The API response containing the final ETag.

        Raises:
            RuntimeError: If upload was not initiated.
        """
        if self.upload_id is None:
            raise RuntimeError("Upload not initiated")

        parts = sorted(self.uploaded_parts, key=lambda part: part["PartNumber"])
        return self.s3_client.complete_multipart_upload(
            Bucket=self.bucket,
            Key=self.key,
            UploadId=self.upload_id,
            MultipartUpload={"Parts": parts},
        )

    def abort(self) -> None:
        """Abort the multipart upload.

        Safe to call even if upload was not initiated or already aborted.
        """
        if self.upload_id is None:
            return

        try:
            self.s3_client.abort_multipart_upload(
                Bucket=self.bucket,
                Key=self.key,
                UploadId=self.upload_id,
            )
        except ClientError as e:
            # The upload may already be gone
            logger.warning("Failed to abort upload %s: %s", self.upload_id, e)

    def upload_file(
        self,
        file_path: str,
        part_size: int = DEFAULT_PART_SIZE,
        content_type: Optional[str] = None,
        metadata: Optional[dict[str, str]] = None,
    ) -> dict:
        """Upload a whole file, aborting the upload if any part fails.

        Returns:
            The complete_multipart_upload response.
        """
        if part_size < MIN_PART_SIZE:
            raise ValueError(f"Part size must be at least {MIN_PART_SIZE} bytes")

        self.initiate(content_type=content_type, metadata=metadata)
        with self:
            for part_number, chunk in iterate_parts(file_path, part_size):
                self.upload_part(part_number, chunk)
                logger.info("Uploaded part %d (%d bytes)", part_number, len(chunk))
            return self.complete()

    def __enter__(self) -> "MultipartUpload":
        """Enter context manager - initiates upload unless already started."""
        if self.upload_id is None:
            self.initiate()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        """Exit context manager - aborts on exception."""
        if exc_type is not None:
            self.abort()
        return False  # Don't suppress exceptions
