"""
Permissions Module
Checks the permissions the camera needs before it starts, and asks for them
when they are missing.
"""
import glob
import logging
import os
import platform
import sys
from concurrent.futures import Future
from typing import Callable, Dict, Iterable, List, Optional

from errors import PermissionDenied

logger = logging.getLogger(__name__)

CAMERA = "CAMERA"
READ_EXTERNAL_STORAGE = "READ_EXTERNAL_STORAGE"

# Android 13 (API 33) no longer needs storage-read for app-specific directories
LEGACY_STORAGE_API_LEVEL = 33


def get_android_api_level() -> Optional[int]:
    """Return the Android API level, or None when not running on Android."""
    getter = getattr(sys, "getandroidapilevel", None)
    if getter is None:
        return None
    return getter()


def required_permissions(api_level: Optional[int]) -> List[str]:
    """Permissions needed before the camera may start on this platform."""
    if api_level is not None and api_level < LEGACY_STORAGE_API_LEVEL:
        return [CAMERA, READ_EXTERNAL_STORAGE]
    return [CAMERA]


class SystemPermissionHost:
    """
    Permission host for the running platform.

    On Android a permission is granted once the user accepted the consent
    prompt. Elsewhere it is granted when the underlying resource is reachable:
    a readable video device for CAMERA (Linux only, other systems prompt on
    their own) and the output directory for READ_EXTERNAL_STORAGE.
    """

    def __init__(self, prompt: Callable[[List[str]], Future], storage_dir: str,
                 api_level: Optional[int] = None):
        """
        Args:
            prompt: Shows the consent dialog; returns a future of {permission: accepted}
            storage_dir: Directory captured photos are read from
            api_level: Android API level, None off Android
        """
        self._prompt = prompt
        self.storage_dir = storage_dir
        self.api_level = api_level
        self._granted = set()

    def is_granted(self, permission: str) -> bool:
        if permission in self._granted:
            return True
        if self.api_level is not None:
            return False
        if permission == CAMERA:
            return self._camera_reachable()
        if permission == READ_EXTERNAL_STORAGE:
            return os.access(self.storage_dir, os.R_OK)
        return False

    @staticmethod
    def _camera_reachable() -> bool:
        if platform.system() != "Linux":
            return True
        devices = glob.glob("/dev/video*")
        return any(os.access(dev, os.R_OK | os.W_OK) for dev in devices)

    def request(self, permissions: List[str]) -> Future:
        """Ask the user; the future resolves to {permission: granted}."""
        answer = self._prompt(list(permissions))
        result: Future = Future()

        def _on_answer(f: Future):
            if f.exception() is not None:
                result.set_exception(f.exception())
                return
            accepted = f.result()
            granted = {}
            for p in permissions:
                if accepted.get(p):
                    self._granted.add(p)
                granted[p] = self.is_granted(p)
            result.set_result(granted)

        answer.add_done_callback(_on_answer)
        return result


class PermissionGate:
    """Starts the camera only once every required permission is granted."""

    def __init__(self, host, start_camera: Callable[[], None],
                 on_denied: Callable[[PermissionDenied], None],
                 api_level: Optional[int] = None,
                 dispatch: Optional[Callable] = None):
        self.host = host
        self._start_camera = start_camera
        self._on_denied = on_denied
        self.api_level = api_level
        self._dispatch = dispatch or (lambda fn, *args: fn(*args))
        self._cycle = 0
        self._denied_cycle = None

    @property
    def required(self) -> List[str]:
        return required_permissions(self.api_level)

    def all_granted(self) -> bool:
        return all(self.host.is_granted(p) for p in self.required)

    def ensure_camera(self) -> None:
        """Start the camera now, or request the missing permissions first."""
        self._cycle += 1
        if self.all_granted():
            logger.debug("All permissions granted, starting camera")
            self._start_camera()
            return
        cycle = self._cycle
        required = self.required
        logger.info("Requesting permissions: %s", required)
        future = self.host.request(required)
        future.add_done_callback(
            lambda f: self._dispatch(self._on_request_done, f, required, cycle)
        )

    def _on_request_done(self, future: Future, required: Iterable[str], cycle: int) -> None:
        if future.exception() is not None:
            logger.error("Permission request failed: %s", future.exception())
            results: Dict[str, bool] = {}
        else:
            results = future.result()
        logger.debug("Permission results: %s", results)

        denied = [p for p in required if not results.get(p)]
        if not denied:
            logger.info("All permissions granted, starting camera")
            self._start_camera()
            return

        if self._denied_cycle == cycle:
            return
        self._denied_cycle = cycle
        logger.warning("Permissions denied: %s", denied)
        self._on_denied(PermissionDenied(denied))
