"""
Image Preview Module
Local media handling for captured photos: output directory resolution,
timestamped file names, and the metadata shown next to the captured image.
"""
import os
import logging
import platform
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from PIL import Image, ExifTags

logger = logging.getLogger(__name__)

# Subdirectory created under the media directory for captured photos
MEDIA_SUBDIR = "CameraFirebase"
PHOTO_EXTENSION = ".jpg"

# EXIF orientations that swap width and height when displayed
_TRANSPOSED_ORIENTATIONS = {5, 6, 7, 8}

_XDG_PICTURES_RE = re.compile(r'^XDG_PICTURES_DIR=(?P<val>.+)$', flags=re.MULTILINE)


def get_default_media_dir(home: Optional[Path] = None) -> str:
    """Shared media directory that the capture subdirectory is created under.

    Linux desktops may relocate it through ``XDG_PICTURES_DIR`` in
    ``~/.config/user-dirs.dirs``; everywhere else it is ``~/Pictures``.
    """
    home = home or Path.home()
    fallback = str(home / "Pictures")
    if platform.system() != "Linux":
        return fallback

    cfg = home / ".config" / "user-dirs.dirs"
    try:
        txt = cfg.read_text()
    except OSError:
        return fallback
    m = _XDG_PICTURES_RE.search(txt)
    if not m:
        return fallback
    val = m.group('val').strip().strip('"').replace('$HOME', str(home))
    return str(Path(val).expanduser())


def get_output_directory(media_dir: Optional[str], files_dir: str) -> str:
    """Return the directory captured photos are written to.

    Uses ``<media_dir>/CameraFirebase`` when the media directory is set and the
    subdirectory can be created; otherwise falls back to ``files_dir``.
    """
    if media_dir:
        target = os.path.join(media_dir, MEDIA_SUBDIR)
        try:
            os.makedirs(target, exist_ok=True)
        except OSError as e:
            logger.warning("Could not create media dir %s: %s", target, e)
        if os.path.isdir(target):
            return os.path.abspath(target)

    os.makedirs(files_dir, exist_ok=True)
    logger.info("Using internal files dir for captures: %s", files_dir)
    return os.path.abspath(files_dir)


def photo_filename(when: datetime) -> str:
    """Sortable file name with millisecond precision, e.g. 2024-05-01-13-45-10-123.jpg"""
    millis = when.microsecond // 1000
    return when.strftime("%Y-%m-%d-%H-%M-%S-") + f"{millis:03d}" + PHOTO_EXTENSION


@dataclass(frozen=True)
class CapturedPhoto:
    """A photo written by the camera pipeline during the current capture cycle."""
    local_path: str
    created_at: datetime

    @property
    def filename(self) -> str:
        return os.path.basename(self.local_path)


@dataclass(frozen=True)
class PreviewInfo:
    """What the HUD shows next to the captured image."""
    filename: str
    width: int
    height: int
    size_bytes: int


def _exif_orientation(img: Image.Image) -> Optional[int]:
    exif = img.getexif()
    if not exif:
        return None
    orientation_tag = None
    for tag_id, tag_name in ExifTags.TAGS.items():
        if tag_name == 'Orientation':
            orientation_tag = tag_id
            break
    if orientation_tag is None:
        return None
    return exif.get(orientation_tag)


def describe_photo(photo: CapturedPhoto) -> Optional[PreviewInfo]:
    """
    Read display dimensions for a captured photo.

    Width and height are reported as displayed, i.e. swapped when the EXIF
    orientation rotates the image by 90 degrees.

    Returns:
        PreviewInfo, or None if the file cannot be read as an image
    """
    try:
        with Image.open(photo.local_path) as img:
            width, height = img.size
            if _exif_orientation(img) in _TRANSPOSED_ORIENTATIONS:
                width, height = height, width
        size_bytes = os.path.getsize(photo.local_path)
    except (OSError, ValueError) as e:
        logger.warning("Failed to read captured photo %s: %s", photo.local_path, e)
        return None
    return PreviewInfo(
        filename=photo.filename,
        width=width,
        height=height,
        size_bytes=size_bytes,
    )
