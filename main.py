"""
Camera Cloud
Main application entry point.
"""
import logging
import re

import flet as ft

from camera_handler import CameraHandler
from gui import CameraUploadGUI
from settings import Settings

settings = Settings.from_env()

# Configure logging early; allow runtime override via CAMCLOUD_LOG_LEVEL (e.g., DEBUG)
level = getattr(logging, settings.log_level, logging.INFO)
log_format = '%(asctime)s %(levelname)s:%(name)s: %(message)s'
logging.basicConfig(level=level, format=log_format)
if settings.log_file:
    fh = logging.FileHandler(settings.log_file)
    fh.setFormatter(logging.Formatter(log_format))
    logging.getLogger().addHandler(fh)

# Scrub preview frames (base64 data URIs) and presigned URL credentials from log output
_base64_datauri_re = re.compile(r"(data:image\/[^\s;]+;base64,)[A-Za-z0-9+/=\s]+", re.IGNORECASE)
_presign_re = re.compile(r"(X-Amz-(?:Signature|Credential|Security-Token)=)[^&\s]+", re.IGNORECASE)


def scrub(msg: str) -> str:
    msg = _base64_datauri_re.sub(r"\1<BASE64_SNIPPED>", msg)
    return _presign_re.sub(r"\1<REDACTED>", msg)


class ScrubFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        msg = record.getMessage()
        new_msg = scrub(msg)
        if new_msg != msg:
            # Replace the record message with sanitized version and clear args
            record.msg = new_msg
            record.args = ()
        return True


for h in logging.getLogger().handlers:
    h.addFilter(ScrubFilter())

logger = logging.getLogger(__name__)


async def main(page: ft.Page):
    """
    Main application function.

    Args:
        page: Flet page object
    """
    camera = CameraHandler(device_index=settings.camera_index)
    gui = CameraUploadGUI(camera, settings)
    gui.build(page)


def run():
    logger.info("Starting application")
    ft.run(main, view=ft.AppView.FLET_APP)


if __name__ == "__main__":
    run()
