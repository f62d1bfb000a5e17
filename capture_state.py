"""
Capture State Module
The two-state capture workflow (live preview vs. captured photo) and the
upload hand-off that follows each capture.
"""
import logging
import os
from concurrent.futures import Future
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Optional, Union

from errors import CaptureFailed, OpenFailed, UploadFailed
from image_preview import CapturedPhoto, photo_filename
from translations import t
from uploader import UploadResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Previewing:
    """Live camera preview is shown."""


@dataclass(frozen=True)
class Captured:
    """A captured photo is shown; ``upload`` is set once its push succeeded."""
    photo: CapturedPhoto
    upload: Optional[UploadResult] = None


UiState = Union[Previewing, Captured]


def view_action_enabled(state: UiState) -> bool:
    """The "view uploaded" action needs a captured photo with a public URL."""
    return (
        isinstance(state, Captured)
        and state.upload is not None
        and bool(state.upload.public_url)
    )


class CaptureController:
    """
    Drives the capture/upload workflow for a single view.

    The view must provide ``render(state)`` and ``notify(message)``. Camera
    and uploader completions arrive on worker threads and are handed to
    ``dispatch`` so that every state change happens on the UI thread.
    """

    def __init__(self, camera, uploader, view, output_dir: str,
                 dispatch: Optional[Callable] = None,
                 clock: Callable[[], datetime] = datetime.now):
        self.camera = camera
        self.uploader = uploader
        self.view = view
        self.output_dir = output_dir
        self._dispatch = dispatch or (lambda fn, *args: fn(*args))
        self._clock = clock
        self.state: UiState = Previewing()
        self._capture_in_flight = False

    def _set_state(self, state: UiState) -> None:
        self.state = state
        self.view.render(state)

    # --- Capture ---

    def on_capture_requested(self) -> bool:
        """Start a capture. Returns False when ignored in the current state."""
        if not isinstance(self.state, Previewing):
            logger.debug("Capture ignored: not in preview mode")
            return False
        if self._capture_in_flight:
            logger.debug("Capture ignored: a capture is already running")
            return False

        created_at = self._clock()
        path = os.path.join(self.output_dir, photo_filename(created_at))
        self._capture_in_flight = True
        future = self.camera.take_picture(path)
        future.add_done_callback(
            lambda f: self._dispatch(self._on_capture_done, f, path, created_at)
        )
        return True

    def _on_capture_done(self, future: Future, path: str, created_at: datetime) -> None:
        self._capture_in_flight = False
        error = future.exception()
        if error is not None:
            msg = str(error) if isinstance(error, CaptureFailed) else repr(error)
            logger.error("Image capture failed: %s", msg)
            self.view.notify(t('notice_capture_failed', msg=msg))
            return

        photo = CapturedPhoto(local_path=path, created_at=created_at)
        self._set_state(Captured(photo=photo))
        self.view.notify(t('notice_captured'))
        logger.debug("Showing captured image: %s", path)
        self._start_upload(photo)

    def on_capture_another(self) -> bool:
        """Capture button while a photo is shown: back to preview, then capture."""
        if isinstance(self.state, Captured):
            self.on_return_to_preview()
        return self.on_capture_requested()

    # --- Upload ---

    def _start_upload(self, photo: CapturedPhoto) -> None:
        self.view.notify(t('notice_uploading'))
        future = self.uploader.upload(photo.local_path)
        future.add_done_callback(
            lambda f: self._dispatch(self._on_upload_done, f, photo)
        )

    def _is_current(self, photo: CapturedPhoto) -> bool:
        return isinstance(self.state, Captured) and self.state.photo is photo

    def _on_upload_done(self, future: Future, photo: CapturedPhoto) -> None:
        if not self._is_current(photo):
            logger.info("Discarding upload result for superseded capture %s", photo.filename)
            return

        error = future.exception()
        if error is not None:
            msg = str(error) if isinstance(error, UploadFailed) else repr(error)
            logger.error("Upload failed: %s", msg)
            self.view.notify(t('notice_upload_failed', msg=msg))
            return

        result: UploadResult = future.result()
        self._set_state(replace(self.state, upload=result))
        if result.public_url:
            logger.debug("Upload successful: %s", result.remote_id)
            self.view.notify(t('notice_uploaded'))
        else:
            self.view.notify(t('notice_link_failed', msg=str(result.link_error or '')))

    # --- Navigation ---

    def on_return_to_preview(self) -> bool:
        """Drop the captured photo and any upload result; show the live preview."""
        if not isinstance(self.state, Captured):
            logger.debug("Return to preview ignored: already previewing")
            return False
        self._set_state(Previewing())
        logger.debug("Showing camera preview")
        return True

    def on_back_navigation(self) -> bool:
        """Returns True when back was consumed; False means the host should navigate away."""
        if isinstance(self.state, Captured):
            return self.on_return_to_preview()
        return False

    def on_view_uploaded(self) -> None:
        """Open the uploaded photo, or the storage console if no link is known."""
        url = None
        if isinstance(self.state, Captured) and self.state.upload is not None:
            url = self.state.upload.public_url
        try:
            self.uploader.open_result(url)
        except OpenFailed as e:
            logger.error("Failed to open image: %s", e)
            self.view.notify(t('notice_open_failed'))
