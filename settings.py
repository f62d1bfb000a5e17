"""
Settings Module
Runtime configuration read from CAMCLOUD_* environment variables.
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from image_preview import get_default_media_dir

ENV_PREFIX = "CAMCLOUD_"


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


@dataclass
class Settings:
    """Configuration for the capture/upload app."""

    bucket: Optional[str] = None
    region: Optional[str] = None
    camera_index: int = 0
    media_dir: Optional[str] = None
    files_dir: Optional[str] = None
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from the environment.

        Raises:
            ValueError: if an integer variable cannot be parsed.
        """
        if environ is None:
            environ = os.environ
        region = environ.get(ENV_PREFIX + "REGION") or environ.get("AWS_REGION")
        return cls(
            bucket=environ.get(ENV_PREFIX + "BUCKET") or None,
            region=region or None,
            camera_index=_env_int(environ, ENV_PREFIX + "CAMERA_INDEX", 0),
            media_dir=environ.get(ENV_PREFIX + "MEDIA_DIR") or get_default_media_dir(),
            files_dir=environ.get(ENV_PREFIX + "FILES_DIR") or str(Path.home() / ".camera_cloud"),
            log_level=environ.get(ENV_PREFIX + "LOG_LEVEL", "INFO").upper(),
            log_file=environ.get(ENV_PREFIX + "LOG_FILE") or None,
        )
