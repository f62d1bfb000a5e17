"""
Camera Handler Module
Manages the camera device, live preview frames, and single-shot photo capture.
"""
import base64
import os
import threading
import time
import logging
from concurrent.futures import Future, ThreadPoolExecutor

import cv2
import numpy as np

from errors import CaptureFailed

logger = logging.getLogger(__name__)


class CameraHandler:
    """Manages camera connection and frame capture with error handling."""

    JPEG_QUALITY = 95
    PREVIEW_JPEG_QUALITY = 80

    def __init__(self, device_index: int = 0):
        """
        Initialize camera handler.

        Args:
            device_index: OpenCV device index of the camera to open
        """
        self.device_index = device_index
        self.capture = None
        self.lost_device = False

        # Thread safety: preview reads and photo captures share the device
        self.camera_lock = threading.Lock()

        # Consecutive failed reads before the device is considered lost
        self._read_error_counter = 0
        self._read_error_threshold = 5
        # Throttle reads to avoid hammering the device
        self._min_frame_interval = 0.03  # seconds between preview grabs
        self._last_capture_ts = 0.0

        # Captures run one at a time off the UI thread
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="capture")

    @property
    def is_open(self) -> bool:
        return self.capture is not None and self.capture.isOpened()

    def connect(self):
        """
        Open the camera device.

        Returns:
            tuple: (success: bool, message: str)
        """
        with self.camera_lock:
            if self.is_open:
                return True, f"Connected: camera {self.device_index}"
            capture = cv2.VideoCapture(self.device_index)
            if not capture.isOpened():
                capture.release()
                self.lost_device = True
                return False, f"Could not open camera {self.device_index}"
            self.capture = capture
            self.lost_device = False
            self._read_error_counter = 0
        width = int(capture.get(cv2.CAP_PROP_FRAME_WIDTH))
        height = int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT))
        logger.info("Camera %d opened (%dx%d)", self.device_index, width, height)
        return True, f"Connected: camera {self.device_index} ({width}x{height})"

    def _read_frame(self):
        """Read one frame. Must be called with camera_lock held."""
        if not self.is_open:
            return None
        ok, frame = self.capture.read()
        if not ok or frame is None:
            self._read_error_counter += 1
            if self._read_error_counter >= self._read_error_threshold:
                logger.warning("Too many failed reads; marking device lost")
                self.lost_device = True
            return None
        self._read_error_counter = 0
        return frame

    def get_frame_base64(self):
        """
        Grab a preview frame and return it as a base64-encoded JPEG data URI.

        Returns:
            str: data URI for a Flet Image control, or None on error
        """
        now = time.time()
        elapsed = now - self._last_capture_ts
        if elapsed < self._min_frame_interval:
            time.sleep(self._min_frame_interval - elapsed)

        with self.camera_lock:
            frame = self._read_frame()
        self._last_capture_ts = time.time()
        if frame is None:
            return None

        success, buffer = cv2.imencode('.jpg', frame, [int(cv2.IMWRITE_JPEG_QUALITY), self.PREVIEW_JPEG_QUALITY])
        if not success:
            logger.warning("Failed to encode preview frame to JPEG")
            return None
        b64_str = base64.b64encode(buffer).decode('utf-8')
        return f"data:image/jpeg;base64,{b64_str}"

    def take_picture(self, path: str) -> Future:
        """
        Capture a single photo and write it as JPEG to ``path``.

        The returned future resolves to ``path`` on success or raises
        :class:`CaptureFailed`.
        """
        return self._executor.submit(self._capture_to_file, path)

    def _capture_to_file(self, path: str) -> str:
        with self.camera_lock:
            if not self.is_open:
                raise CaptureFailed("Camera is not started")
            frame = self._read_frame()
        if frame is None:
            raise CaptureFailed("No frame received from camera")
        return self._write_jpeg(frame, path)

    def _write_jpeg(self, frame: np.ndarray, path: str) -> str:
        try:
            os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
            written = cv2.imwrite(path, frame, [int(cv2.IMWRITE_JPEG_QUALITY), self.JPEG_QUALITY])
        except (OSError, cv2.error) as e:
            raise CaptureFailed(str(e)) from e
        if not written:
            raise CaptureFailed(f"Could not write {path}")
        logger.info("Photo written: %s", path)
        return path

    def release(self):
        """Release camera resources and reset state."""
        with self.camera_lock:
            if self.capture is not None:
                try:
                    self.capture.release()
                except cv2.error:
                    logger.debug("Camera release raised; ignoring")
            self.capture = None
            self.lost_device = False
            self._read_error_counter = 0
            self._last_capture_ts = 0.0

    def shutdown(self):
        """Release the device and stop the capture worker."""
        self.release()
        self._executor.shutdown(wait=False)
