"""
Uploader Module
Pushes captured photos to the storage bucket and resolves their download links.
"""
import logging
import os
import uuid
import webbrowser
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Optional

import boto3
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError, ClientError

from errors import LinkFetchFailed, OpenFailed, UploadFailed

logger = logging.getLogger(__name__)

REMOTE_PREFIX = "images/"
LINK_EXPIRY_SECONDS = 7 * 24 * 3600
CONSOLE_URL_TEMPLATE = "https://s3.console.aws.amazon.com/s3/buckets/{bucket}?prefix=" + REMOTE_PREFIX

_STORAGE_ERRORS = (S3UploadFailedError, BotoCoreError, ClientError, OSError)


@dataclass(frozen=True)
class UploadResult:
    """Outcome of a successful push. ``public_url`` is None if the link fetch failed."""
    remote_id: str
    public_url: Optional[str] = None
    link_error: Optional[LinkFetchFailed] = None


def remote_name(file_ref: str) -> str:
    """Object name for a local file: its last path segment, or a random one."""
    name = os.path.basename(file_ref.rstrip("/\\")) if file_ref else ""
    if not name:
        name = f"{uuid.uuid4()}.jpg"
    return name


class UploadCoordinator:
    """Two-phase upload (push, then link fetch) on a single background worker."""

    def __init__(self, bucket: Optional[str], client=None, region: Optional[str] = None,
                 opener: Callable[[str], bool] = webbrowser.open):
        """
        Args:
            bucket: Target bucket name; uploads fail with UploadFailed when unset
            client: S3 client; created with boto3 defaults when None
            region: Region for the default client
            opener: Callable that opens a URL in the host's default handler
        """
        self.bucket = bucket
        self._client = client
        self._region = region
        self._opener = opener
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="upload")

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client("s3", region_name=self._region)
        return self._client

    @property
    def console_url(self) -> str:
        return CONSOLE_URL_TEMPLATE.format(bucket=self.bucket or "")

    def upload(self, file_ref: str) -> Future:
        """Start uploading ``file_ref``. The future resolves to an UploadResult or raises UploadFailed."""
        return self._executor.submit(self._upload, file_ref)

    def _upload(self, file_ref: str) -> UploadResult:
        key = REMOTE_PREFIX + remote_name(file_ref)
        if not self.bucket:
            raise UploadFailed("No storage bucket configured")

        try:
            self.client.upload_file(file_ref, self.bucket, key, ExtraArgs={"ContentType": "image/jpeg"})
        except _STORAGE_ERRORS as e:
            logger.error("Upload failed for %s: %s", file_ref, e)
            raise UploadFailed(str(e)) from e
        logger.info("Uploaded %s -> s3://%s/%s", file_ref, self.bucket, key)

        try:
            url = self._fetch_link(key)
        except LinkFetchFailed as e:
            logger.error("Failed to get download URL for %s: %s", key, e)
            return UploadResult(remote_id=key, link_error=e)
        logger.info("Download URL ready for %s", key)
        return UploadResult(remote_id=key, public_url=url)

    def _fetch_link(self, key: str) -> str:
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
            return self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=LINK_EXPIRY_SECONDS,
            )
        except (BotoCoreError, ClientError) as e:
            raise LinkFetchFailed(str(e)) from e

    def open_result(self, public_url: Optional[str]) -> str:
        """
        Open the uploaded photo, or the bucket console when no URL is known.

        Returns:
            str: the URL that was opened

        Raises:
            OpenFailed: if the opener raised or reported failure
        """
        target = public_url or self.console_url
        try:
            opened = self._opener(target)
        except Exception as e:
            raise OpenFailed(str(e)) from e
        if opened is False:
            raise OpenFailed(f"No handler available for {target}")
        if public_url:
            logger.info("Opening uploaded image URL")
        else:
            logger.info("Opening storage console: %s", target)
        return target

    def shutdown(self):
        """Stop accepting uploads; in-flight work runs to completion."""
        self._executor.shutdown(wait=False)
