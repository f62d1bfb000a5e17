"""Tests for the upload coordinator."""

import pytest
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import ClientError, NoCredentialsError

from errors import LinkFetchFailed, OpenFailed, UploadFailed
from uploader import LINK_EXPIRY_SECONDS, UploadCoordinator, remote_name
from tests.conftest import FakeS3Client


def _client_error(code: str, op: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, op)


@pytest.fixture
def s3() -> FakeS3Client:
    return FakeS3Client()


@pytest.fixture
def coordinator(s3):
    coordinator = UploadCoordinator(bucket="photos", client=s3)
    yield coordinator
    coordinator.shutdown()


def test_remote_name_uses_last_path_segment() -> None:
    assert remote_name("/media/CameraFirebase/2024-05-01-13-45-10-123.jpg") == "2024-05-01-13-45-10-123.jpg"


def test_remote_name_generates_random_name_when_missing() -> None:
    first = remote_name("")
    second = remote_name("")

    assert first.endswith(".jpg")
    assert len(first) == len("00000000-0000-0000-0000-000000000000.jpg")
    assert second.endswith(".jpg")
    assert first != second


def test_upload_pushes_then_fetches_link(coordinator, s3) -> None:
    result = coordinator.upload("/tmp/shot.jpg").result(timeout=5)

    assert s3.call_names == ["upload_file", "head_object", "generate_presigned_url"]
    upload_args = s3.calls[0][1]
    assert upload_args["bucket"] == "photos"
    assert upload_args["key"] == "images/shot.jpg"
    assert upload_args["extra"] == {"ContentType": "image/jpeg"}
    presign_args = s3.calls[2][1]
    assert presign_args["operation"] == "get_object"
    assert presign_args["params"] == {"Bucket": "photos", "Key": "images/shot.jpg"}
    assert presign_args["expires"] == LINK_EXPIRY_SECONDS
    assert result.remote_id == "images/shot.jpg"
    assert result.public_url.startswith("https://photos.s3.amazonaws.com/images/shot.jpg")
    assert result.link_error is None


def test_push_failure_raises_upload_failed_without_link_fetch(coordinator, s3) -> None:
    s3.upload_error = S3UploadFailedError("Failed to upload: connection reset")

    with pytest.raises(UploadFailed, match="connection reset"):
        coordinator.upload("/tmp/shot.jpg").result(timeout=5)

    assert s3.call_names == ["upload_file"]


def test_push_client_error_raises_upload_failed(coordinator, s3) -> None:
    s3.upload_error = _client_error("AccessDenied", "PutObject")

    with pytest.raises(UploadFailed):
        coordinator.upload("/tmp/shot.jpg").result(timeout=5)


def test_link_failure_keeps_push_result(coordinator, s3) -> None:
    s3.head_error = _client_error("404", "HeadObject")

    result = coordinator.upload("/tmp/shot.jpg").result(timeout=5)

    assert result.remote_id == "images/shot.jpg"
    assert result.public_url is None
    assert isinstance(result.link_error, LinkFetchFailed)


def test_presign_failure_is_link_failure(coordinator, s3) -> None:
    s3.presign_error = NoCredentialsError()

    result = coordinator.upload("/tmp/shot.jpg").result(timeout=5)

    assert result.public_url is None
    assert isinstance(result.link_error, LinkFetchFailed)


def test_upload_without_bucket_fails(s3) -> None:
    coordinator = UploadCoordinator(bucket=None, client=s3)
    try:
        with pytest.raises(UploadFailed, match="No storage bucket"):
            coordinator.upload("/tmp/shot.jpg").result(timeout=5)
    finally:
        coordinator.shutdown()
    assert s3.calls == []


def test_open_result_opens_public_url(s3) -> None:
    opened = []
    coordinator = UploadCoordinator(bucket="photos", client=s3, opener=lambda url: opened.append(url) or True)

    target = coordinator.open_result("https://photos.s3.amazonaws.com/images/a.jpg")

    assert opened == ["https://photos.s3.amazonaws.com/images/a.jpg"]
    assert target == opened[0]
    coordinator.shutdown()


def test_open_result_falls_back_to_console(s3) -> None:
    opened = []
    coordinator = UploadCoordinator(bucket="photos", client=s3, opener=lambda url: opened.append(url) or True)

    coordinator.open_result(None)

    assert opened == ["https://s3.console.aws.amazon.com/s3/buckets/photos?prefix=images/"]
    coordinator.shutdown()


def test_open_result_raises_open_failed_when_opener_raises(s3) -> None:
    def opener(url):
        raise RuntimeError("no display")

    coordinator = UploadCoordinator(bucket="photos", client=s3, opener=opener)

    with pytest.raises(OpenFailed, match="no display"):
        coordinator.open_result("https://x")
    coordinator.shutdown()


def test_open_result_raises_open_failed_when_no_handler(s3) -> None:
    coordinator = UploadCoordinator(bucket="photos", client=s3, opener=lambda url: False)

    with pytest.raises(OpenFailed):
        coordinator.open_result(None)
    coordinator.shutdown()
