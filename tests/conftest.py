"""Shared test fixtures."""

from concurrent.futures import Future
from dataclasses import dataclass, field
from datetime import datetime

import pytest

import translations
from capture_state import CaptureController


@dataclass
class FakeCamera:
    """Camera whose captures stay pending until the test resolves them."""

    pending: list[tuple[str, Future]] = field(default_factory=list)

    def take_picture(self, path: str) -> Future:
        future: Future = Future()
        self.pending.append((path, future))
        return future

    def succeed(self, index: int = -1) -> str:
        path, future = self.pending[index]
        future.set_result(path)
        return path

    def fail(self, error: Exception, index: int = -1) -> None:
        _, future = self.pending[index]
        future.set_exception(error)


@dataclass
class FakeUploader:
    """Uploader that records uploads and opened URLs."""

    uploads: list[tuple[str, Future]] = field(default_factory=list)
    opened: list[str | None] = field(default_factory=list)
    open_error: Exception | None = None

    def upload(self, file_ref: str) -> Future:
        future: Future = Future()
        self.uploads.append((file_ref, future))
        return future

    def open_result(self, public_url: str | None) -> str:
        self.opened.append(public_url)
        if self.open_error is not None:
            raise self.open_error
        return public_url or "console"


@dataclass
class RecordingView:
    """View that records rendered states and notices."""

    states: list[object] = field(default_factory=list)
    notices: list[str] = field(default_factory=list)

    def render(self, state) -> None:
        self.states.append(state)

    def notify(self, message: str) -> None:
        self.notices.append(message)


@dataclass
class FakeS3Client:
    """S3 client double recording calls in order."""

    calls: list[tuple[str, dict]] = field(default_factory=list)
    upload_error: Exception | None = None
    head_error: Exception | None = None
    presign_error: Exception | None = None

    def upload_file(self, filename, bucket, key, ExtraArgs=None):
        self.calls.append(("upload_file", {"filename": filename, "bucket": bucket, "key": key, "extra": ExtraArgs}))
        if self.upload_error is not None:
            raise self.upload_error

    def head_object(self, Bucket, Key):
        self.calls.append(("head_object", {"bucket": Bucket, "key": Key}))
        if self.head_error is not None:
            raise self.head_error
        return {"ContentLength": 10}

    def generate_presigned_url(self, operation, Params, ExpiresIn):
        self.calls.append(("generate_presigned_url", {"operation": operation, "params": Params, "expires": ExpiresIn}))
        if self.presign_error is not None:
            raise self.presign_error
        return f"https://{Params['Bucket']}.s3.amazonaws.com/{Params['Key']}?X-Amz-Signature=abc"

    @property
    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]


FIXED_NOW = datetime(2024, 5, 1, 13, 45, 10, 123456)


@pytest.fixture
def camera() -> FakeCamera:
    return FakeCamera()


@pytest.fixture
def uploader() -> FakeUploader:
    return FakeUploader()


@pytest.fixture
def view() -> RecordingView:
    return RecordingView()


@pytest.fixture
def controller(camera, uploader, view, tmp_path) -> CaptureController:
    return CaptureController(
        camera=camera,
        uploader=uploader,
        view=view,
        output_dir=str(tmp_path),
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture(autouse=True)
def english_locale():
    translations.set_locale("en")
    yield
    translations.set_locale("en")
