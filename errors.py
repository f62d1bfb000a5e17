"""
Errors Module
Error kinds surfaced by the capture/upload workflow. None of them are fatal:
each one ends the current operation and becomes a user notice plus a log line.
"""


class CameraCloudError(Exception):
    """Base class for workflow errors."""


class CaptureFailed(CameraCloudError):
    """The camera pipeline could not grab or write the photo."""


class UploadFailed(CameraCloudError):
    """Pushing the photo bytes to the bucket failed."""


class LinkFetchFailed(CameraCloudError):
    """The photo was pushed but its download link could not be fetched."""


class PermissionDenied(CameraCloudError):
    """One or more required permissions were rejected."""

    def __init__(self, denied):
        self.denied = tuple(denied)
        super().__init__(f"Permissions denied: {', '.join(self.denied)}")


class OpenFailed(CameraCloudError):
    """An external URL could not be opened."""
