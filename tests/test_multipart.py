"""Tests for multipart.py module.

Tests the multipart upload lifecycle: initiate, upload parts, complete, abort.
"""

from pathlib import Path
from unittest.mock import Mock

import pytest
from botocore.exceptions import ClientError

from s3cli.multipart import (
    DEFAULT_PART_SIZE,
    MIN_PART_SIZE,
    MultipartUpload,
    iterate_parts,
)


@pytest.fixture
def mock_s3_client():
    client = Mock()
    client.create_multipart_upload.return_value = {"UploadId": "upload-123"}
    client.upload_part.side_effect = lambda **kw: {"ETag": f'"etag-{kw["PartNumber"]}"'}
    client.complete_multipart_upload.return_value = {
        "Location": "http://h/b/k",
        "ETag": '"final-etag"',
    }
    return client


def _client_error(operation: str) -> ClientError:
    return ClientError(
        {"Error": {"Code": "NoSuchUpload", "Message": "gone"}}, operation
    )


class TestConstants:
    """Tests for module constants."""

    def test_min_part_size(self):
        """Minimum part size should be 5 MiB (S3 minimum)."""
        assert MIN_PART_SIZE == 5 * 1024 * 1024

    def test_default_part_size(self):
        assert DEFAULT_PART_SIZE == MIN_PART_SIZE


class TestIterateParts:
    """Tests for iterate_parts function."""

    def test_yields_numbered_chunks(self, tmp_path: Path):
        path = tmp_path / "data.bin"
        path.write_bytes(b"a" * 10 + b"b" * 10 + b"c" * 5)

        parts = list(iterate_parts(str(path), part_size=10))

        assert parts == [(1, b"a" * 10), (2, b"b" * 10), (3, b"c" * 5)]

    def test_exact_division(self, tmp_path: Path):
        path = tmp_path / "data.bin"
        path.write_bytes(b"x" * 20)

        assert [n for n, _ in iterate_parts(str(path), part_size=10)] == [1, 2]

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / "empty.bin"
        path.write_bytes(b"")

        assert list(iterate_parts(str(path), part_size=10)) == []


class TestMultipartUpload:
    """Tests for MultipartUpload lifecycle."""

    def test_initialization(self, mock_s3_client):
        upload = MultipartUpload(mock_s3_client, "b", "k")

        assert upload.upload_id is None
        assert upload.uploaded_parts == []

    def test_initiate_upload(self, mock_s3_client):
        upload = MultipartUpload(mock_s3_client, "b", "k")

        upload_id = upload.initiate(content_type="text/plain", metadata={"a": "1"})

        assert upload_id == "upload-123"
        mock_s3_client.create_multipart_upload.assert_called_once_with(
            Bucket="b", Key="k", ContentType="text/plain", Metadata={"a": "1"}
        )

    def test_initiate_without_options(self, mock_s3_client):
        MultipartUpload(mock_s3_client, "b", "k").initiate()
        mock_s3_client.create_multipart_upload.assert_called_once_with(Bucket="b", Key="k")

    def test_upload_part_records_etag(self, mock_s3_client):
        upload = MultipartUpload(mock_s3_client, "b", "k", upload_id="u1")

        etag = upload.upload_part(1, b"data")

        assert etag == '"etag-1"'
        assert upload.uploaded_parts == [{"PartNumber": 1, "ETag": '"etag-1"'}]
        mock_s3_client.upload_part.assert_called_once_with(
            Bucket="b", Key="k", UploadId="u1", PartNumber=1, Body=b"data"
        )

    def test_upload_part_without_initiate_raises(self, mock_s3_client):
        with pytest.raises(RuntimeError, match="Upload not initiated"):
            MultipartUpload(mock_s3_client, "b", "k").upload_part(1, b"data")

    def test_complete_sorts_parts(self, mock_s3_client):
        upload = MultipartUpload(mock_s3_client, "b", "k", upload_id="u1")
        upload.add_part(2, "e2")
        upload.add_part(1, "e1")

        response = upload.complete()

        assert response["ETag"] == '"final-etag"'
        mock_s3_client.complete_multipart_upload.assert_called_once_with(
            Bucket="b",
            Key="k",
            UploadId="u1",
            MultipartUpload={"Parts": [
                {"PartNumber": 1, "ETag": "e1"},
                {"PartNumber": 2, "ETag": "e2"},
            ]},
        )

    def test_complete_without_initiate_raises(self, mock_s3_client):
        with pytest.raises(RuntimeError, match="Upload not initiated"):
            MultipartUpload(mock_s3_client, "b", "k").complete()

    def test_abort_upload(self, mock_s3_client):
        upload = MultipartUpload(mock_s3_client, "b", "k", upload_id="u1")
        upload.abort()
        mock_s3_client.abort_multipart_upload.assert_called_once_with(
            Bucket="b", Key="k", UploadId="u1"
        )

    def test_abort_without_initiate_is_noop(self, mock_s3_client):
        MultipartUpload(mock_s3_client, "b", "k").abort()
        mock_s3_client.abort_multipart_upload.assert_not_called()

    def test_abort_handles_api_error_gracefully(self, mock_s3_client):
        mock_s3_client.abort_multipart_upload.side_effect = _client_error("AbortMultipartUpload")
        upload = MultipartUpload(mock_s3_client, "b", "k", upload_id="u1")

        upload.abort()

    def test_context_manager_initiates_on_enter(self, mock_s3_client):
        with MultipartUpload(mock_s3_client, "b", "k") as upload:
            assert upload.upload_id == "upload-123"

    def test_context_manager_resumes_existing_upload(self, mock_s3_client):
        with MultipartUpload(mock_s3_client, "b", "k", upload_id="u1"):
            pass
        mock_s3_client.create_multipart_upload.assert_not_called()

    def test_context_manager_aborts_on_exception(self, mock_s3_client):
        with pytest.raises(ValueError):
            with MultipartUpload(mock_s3_client, "b", "k"):
                raise ValueError("boom")
        mock_s3_client.abort_multipart_upload.assert_called_once()

    def test_context_manager_does_not_abort_on_success(self, mock_s3_client):
        with MultipartUpload(mock_s3_client, "b", "k"):
            pass
        mock_s3_client.abort_multipart_upload.assert_not_called()


class TestUploadFile:
    """Tests for MultipartUpload.upload_file."""

    def test_uploads_every_part(self, mock_s3_client, tmp_path: Path):
        path = tmp_path / "big.bin"
        path.write_bytes(b"\0" * (MIN_PART_SIZE + 10))

        upload = MultipartUpload(mock_s3_client, "b", "k")
        response = upload.upload_file(str(path), content_type="application/octet-stream")

        assert response["Location"] == "http://h/b/k"
        assert mock_s3_client.upload_part.call_count == 2
        assert [p["PartNumber"] for p in upload.uploaded_parts] == [1, 2]
        mock_s3_client.create_multipart_upload.assert_called_once_with(
            Bucket="b", Key="k", ContentType="application/octet-stream"
        )
        mock_s3_client.abort_multipart_upload.assert_not_called()

    def test_part_size_below_minimum(self, mock_s3_client, tmp_path: Path):
        path = tmp_path / "f.bin"
        path.write_bytes(b"x")

        with pytest.raises(ValueError, match="Part size must be at least"):
            MultipartUpload(mock_s3_client, "b", "k").upload_file(str(path), part_size=1024)
        mock_s3_client.create_multipart_upload.assert_not_called()

    def test_failed_part_aborts_upload(self, mock_s3_client, tmp_path: Path):
        path = tmp_path / "f.bin"
        path.write_bytes(b"x" * 10)
        mock_s3_client.upload_part.side_effect = _client_error("UploadPart")

        with pytest.raises(ClientError):
            MultipartUpload(mock_s3_client, "b", "k").upload_file(str(path))

        mock_s3_client.abort_multipart_upload.assert_called_once_with(
            Bucket="b", Key="k", UploadId="upload-123"
        )
        mock_s3_client.complete_multipart_upload.assert_not_called()
