"""
Translations Module
User-visible strings with a small locale switch.
"""
import locale
import logging
import os

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = 'en'

_STRINGS = {
    'en': {
        'app_title': 'Camera Cloud',
        'status_not_connected': 'Camera not started',
        'status_streaming': 'Live preview',
        'status_error': 'Camera error: {msg}',
        'status_disconnected': 'Camera disconnected',
        'status_permission_denied': 'Camera permission required',
        'preview_mode': 'Captured photo',
        'preview_info': '{filename}  {width}x{height}',
        'button_capture': 'Capture',
        'button_capture_another': 'Capture Another',
        'button_back_to_camera': 'Back to Camera',
        'button_view_uploaded': 'View Uploaded',
        'snackbar_failed_connect': 'Camera initialization failed: {msg}',
        'notice_captured': 'Photo captured successfully',
        'notice_capture_failed': 'Capture failed: {msg}',
        'notice_uploading': 'Uploading...',
        'notice_uploaded': 'Uploaded successfully!',
        'notice_upload_failed': 'Upload failed: {msg}',
        'notice_link_failed': 'Failed to get download URL: {msg}',
        'notice_permission_denied': 'Camera permission is required to use this app',
        'notice_open_failed': 'Could not open image',
        'permission_title': 'Allow access',
        'permission_body': 'This app needs access to: {permissions}',
        'permission_CAMERA': 'camera',
        'permission_READ_EXTERNAL_STORAGE': 'photo storage',
        'permission_allow': 'Allow',
        'permission_deny': 'Deny',
    },
    'de': {
        'app_title': 'Camera Cloud',
        'status_not_connected': 'Kamera nicht gestartet',
        'status_streaming': 'Live-Vorschau',
        'status_error': 'Kamerafehler: {msg}',
        'status_disconnected': 'Kamera getrennt',
        'status_permission_denied': 'Kameraberechtigung erforderlich',
        'preview_mode': 'Aufgenommenes Foto',
        'preview_info': '{filename}  {width}x{height}',
        'button_capture': 'Aufnehmen',
        'button_capture_another': 'Weiteres Foto',
        'button_back_to_camera': 'Zur Kamera',
        'button_view_uploaded': 'Hochgeladenes ansehen',
        'snackbar_failed_connect': 'Kamera konnte nicht gestartet werden: {msg}',
        'notice_captured': 'Foto aufgenommen',
        'notice_capture_failed': 'Aufnahme fehlgeschlagen: {msg}',
        'notice_uploading': 'Wird hochgeladen...',
        'notice_uploaded': 'Erfolgreich hochgeladen!',
        'notice_upload_failed': 'Hochladen fehlgeschlagen: {msg}',
        'notice_link_failed': 'Download-Link nicht verfügbar: {msg}',
        'notice_permission_denied': 'Für diese App wird die Kameraberechtigung benötigt',
        'notice_open_failed': 'Bild konnte nicht geöffnet werden',
        'permission_title': 'Zugriff erlauben',
        'permission_body': 'Diese App benötigt Zugriff auf: {permissions}',
        'permission_CAMERA': 'Kamera',
        'permission_READ_EXTERNAL_STORAGE': 'Fotospeicher',
        'permission_allow': 'Erlauben',
        'permission_deny': 'Ablehnen',
    },
}

_current_locale = DEFAULT_LOCALE


def is_supported(code) -> bool:
    return bool(code) and code in _STRINGS


def set_locale(code: str) -> None:
    """Switch the active locale; unsupported codes are ignored."""
    global _current_locale
    if is_supported(code):
        _current_locale = code
    else:
        logger.debug("Unsupported locale %r; keeping %s", code, _current_locale)


def get_locale() -> str:
    return _current_locale


def get_system_locale() -> str:
    """Two-letter language code of the OS locale (LANG etc. take precedence)."""
    for var in ('LC_ALL', 'LC_MESSAGES', 'LANG'):
        val = os.environ.get(var)
        if val and val not in ('C', 'POSIX'):
            return val.split('.')[0].split('_')[0].lower()
    lang, _ = locale.getlocale()
    if lang:
        return lang.split('_')[0].lower()
    return DEFAULT_LOCALE


def t(key: str, **kwargs) -> str:
    """Look up ``key`` in the active locale, falling back to English, then to the key."""
    template = _STRINGS[_current_locale].get(key)
    if template is None:
        template = _STRINGS[DEFAULT_LOCALE].get(key, key)
    if kwargs:
        try:
            return template.format(**kwargs)
        except (KeyError, IndexError):
            logger.warning("Bad format arguments for %s: %s", key, kwargs)
    return template
