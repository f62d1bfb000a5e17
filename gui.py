"""
GUI Module
Flet-based user interface: live camera preview, captured photo review, and
the upload/view actions.
"""
import asyncio
import base64
import logging
import threading
import time
import webbrowser
from concurrent.futures import Future

import cv2
import flet as ft
import numpy as np

from capture_state import Captured, CaptureController, Previewing, view_action_enabled
from errors import PermissionDenied
from image_preview import describe_photo, get_output_directory
from permissions import PermissionGate, SystemPermissionHost, get_android_api_level
from translations import t, set_locale, get_system_locale, is_supported
from uploader import UploadCoordinator

logger = logging.getLogger(__name__)

OVERLAY_BG = "rgba(0,0,0,0.70)"


class CameraUploadGUI:
    """Main GUI controller for the capture/upload application."""

    def __init__(self, camera_handler, settings):
        """
        Initialize GUI with camera handler and settings.

        Args:
            camera_handler: Instance of CameraHandler
            settings: Instance of Settings
        """
        self.camera = camera_handler
        self.settings = settings
        self.output_dir = get_output_directory(settings.media_dir, settings.files_dir)

        self.streaming_event = threading.Event()
        self.frame_thread = None

        # Execution loop (captured in build) for scheduling UI updates from background threads
        self._loop = None
        # Display throttling to avoid flicker and overload (seconds)
        self._display_min_interval = 1.0 / 15.0  # 15 FPS
        self._last_display_ts = 0.0
        self._previewing = True

        self.uploader = UploadCoordinator(
            bucket=settings.bucket,
            region=settings.region,
            opener=self._open_url,
        )
        self.controller = CaptureController(
            camera=self.camera,
            uploader=self.uploader,
            view=self,
            output_dir=self.output_dir,
            dispatch=self._dispatch,
        )
        self.api_level = get_android_api_level()
        self.permission_gate = PermissionGate(
            host=SystemPermissionHost(
                prompt=self._prompt_permissions,
                storage_dir=self.output_dir,
                api_level=self.api_level,
            ),
            start_camera=self._start_stream,
            on_denied=self._on_permission_denied,
            api_level=self.api_level,
            dispatch=self._dispatch,
        )

        # UI elements (initialized in build())
        self.page = None
        self.img_control = None
        self.captured_image = None
        self.status_text = None
        self.status_icon = None
        self._main_stack = None

    def build(self, page: ft.Page):
        """
        Build and configure the GUI.

        Args:
            page: Flet page object
        """
        self.page = page
        sys_loc = get_system_locale()
        if is_supported(sys_loc):
            set_locale(sys_loc)

        # Capture the running asyncio loop for scheduling UI updates from threads
        try:
            self._loop = asyncio.get_running_loop()
        except RuntimeError:
            self._loop = None

        self._configure_page()
        self._create_ui_elements()
        self._setup_layout()
        self._setup_event_handlers()
        self.render(self.controller.state)

        logger.info("Captured photos are written to %s", self.output_dir)
        self.permission_gate.ensure_camera()

    def _configure_page(self):
        """Configure `page` properties (title, theme, padding)."""
        self.page.title = t('app_title')
        self.page.theme_mode = ft.ThemeMode.DARK
        self.page.padding = 0

    def _create_ui_elements(self):
        """Create all UI controls."""
        # Live preview with placeholder
        self.img_control = ft.Image(
            src=self._create_placeholder_image(),
            fit=ft.BoxFit.CONTAIN,
            gapless_playback=True,
            expand=True,
        )
        self.video_container = ft.Container(
            content=self.img_control,
            alignment=ft.Alignment.CENTER,
            bgcolor=ft.Colors.BLACK,
            expand=True,
        )

        # Captured photo review; its src is the local file path
        self.captured_image = ft.Image(
            src=self._create_placeholder_image(),
            fit=ft.BoxFit.CONTAIN,
            expand=True,
        )
        self.captured_container = ft.Container(
            content=self.captured_image,
            alignment=ft.Alignment.CENTER,
            bgcolor=ft.Colors.BLACK,
            expand=True,
            visible=False,
        )

        # Status indicator
        self.status_icon = ft.Icon(ft.Icons.VIDEOCAM_OFF, color="red", size=24)
        self.status_text = ft.Text(
            value=t('status_not_connected'),
            size=16,
            weight=ft.FontWeight.W_500,
            color="red",
        )

        # File name and size of the captured photo
        self.preview_info_text = ft.Text(value="", size=14, color="white70")
        self.preview_info_container = ft.Container(
            content=self.preview_info_text,
            right=0,
            top=0,
            padding=ft.Padding.symmetric(horizontal=12, vertical=8),
            bgcolor=OVERLAY_BG,
            border_radius=8,
            visible=False,
        )

        self.capture_button = ft.FilledButton(
            content=ft.Text(t('button_capture')),
            icon=ft.Icons.CAMERA_ALT,
            on_click=lambda e: self._on_capture_click(),
        )
        self.back_button = ft.OutlinedButton(
            content=ft.Text(t('button_back_to_camera')),
            icon=ft.Icons.ARROW_BACK,
            on_click=lambda e: self.controller.on_return_to_preview(),
            visible=False,
        )
        self.view_button = ft.FilledButton(
            content=ft.Text(t('button_view_uploaded')),
            icon=ft.Icons.OPEN_IN_NEW,
            on_click=lambda e: self.controller.on_view_uploaded(),
            visible=False,
        )

    def _setup_layout(self):
        """Setup page layout."""
        # The live preview and the captured photo share the base layer; status,
        # photo info and the action buttons are overlaid on top.
        self._main_stack = ft.Stack(
            [
                self.video_container,
                self.captured_container,

                # Overlay: status at the top-left
                ft.Container(
                    content=ft.Row([self.status_icon, self.status_text], spacing=8),
                    left=0,
                    top=0,
                    padding=ft.Padding.symmetric(horizontal=12, vertical=8),
                    bgcolor=OVERLAY_BG,
                    border_radius=8,
                ),

                self.preview_info_container,

                # Overlay: action buttons along the bottom
                ft.Container(
                    content=ft.Row(
                        [self.back_button, self.capture_button, self.view_button],
                        alignment=ft.MainAxisAlignment.CENTER,
                        spacing=12,
                    ),
                    left=0,
                    right=0,
                    bottom=0,
                    padding=ft.Padding.symmetric(horizontal=12, vertical=16),
                    bgcolor=OVERLAY_BG,
                ),
            ],
            expand=True,
        )
        self.page.add(self._main_stack)

    def _setup_event_handlers(self):
        """Wire up keyboard, back navigation and window events."""
        self.page.on_keyboard_event = self._on_keyboard_event
        self.page.on_view_pop = lambda e: self._handle_back()
        # CLOSE events are only delivered when the window does not close on its own
        self.page.window.prevent_close = True
        self.page.window.on_event = self._on_window_event

    # --- View interface used by CaptureController ---

    def render(self, state):
        """Apply a UiState to the controls. Exactly one of preview/captured is visible."""
        previewing = isinstance(state, Previewing)
        self._previewing = previewing
        self.video_container.visible = previewing
        self.captured_container.visible = not previewing
        self.back_button.visible = not previewing
        self.view_button.visible = view_action_enabled(state)
        self.capture_button.content.value = t('button_capture') if previewing else t('button_capture_another')
        self.preview_info_container.visible = not previewing

        if isinstance(state, Captured):
            self.captured_image.src = state.photo.local_path
            info = describe_photo(state.photo)
            if info is not None:
                self.preview_info_text.value = t(
                    'preview_info', filename=info.filename, width=info.width, height=info.height
                )
            else:
                self.preview_info_text.value = state.photo.filename
            self._set_status(t('preview_mode'), ft.Icons.PHOTO_CAMERA, ft.Colors.GREEN_400)
        else:
            self.captured_image.src = self._create_placeholder_image()
            self.preview_info_text.value = ""
            if self.streaming_event.is_set():
                self._set_status(t('status_streaming'), ft.Icons.VIDEOCAM, ft.Colors.AMBER_400)
        self._sync_views(previewing)
        self.page.update()

    def _sync_views(self, previewing: bool):
        """Keep a pushed view on the stack while a photo is shown.

        The system back button pops that view, which arrives as ``on_view_pop``
        and returns to the preview. With only the root view left, back exits.
        """
        if self._main_stack is None:
            return
        views = self.page.views
        if not previewing and len(views) == 1:
            views[0].controls = []
            views.append(ft.View(route="/captured", controls=[self._main_stack], padding=0))
        elif previewing and len(views) > 1:
            del views[1:]
            views[0].controls = [self._main_stack]

    def notify(self, message: str):
        """Show a transient notice."""
        self.page.show_dialog(ft.SnackBar(ft.Text(message)))

    # --- Event handlers ---

    def _on_capture_click(self):
        if self._previewing:
            self.controller.on_capture_requested()
        else:
            self.controller.on_capture_another()

    def _on_keyboard_event(self, e):
        key = str(getattr(e, 'key', ''))
        if key in (' ', 'Space', 'Enter'):
            self._on_capture_click()
        elif key in ('Escape', 'Backspace'):
            self._handle_back()

    def _handle_back(self):
        """Back navigation: leave the captured photo, or close the window."""
        if self.controller.on_back_navigation():
            return
        logger.info("Back navigation from preview; closing")
        self._shutdown()
        self.page.run_task(self.page.window.destroy)

    def _on_window_event(self, e):
        """Release resources, then let the window close."""
        event_type = getattr(e, 'type', None) or getattr(e, 'data', None)
        if str(event_type).lower().endswith('close'):
            self._shutdown()
            self.page.run_task(self.page.window.destroy)

    def _shutdown(self):
        self.streaming_event.clear()
        self.camera.shutdown()
        self.uploader.shutdown()

    def _open_url(self, url: str) -> bool:
        """Open a URL with the host's default handler."""
        if self.page is not None and self.page.platform in (ft.PagePlatform.ANDROID, ft.PagePlatform.IOS):
            self.page.run_task(self.page.launch_url, url)
            return True
        return webbrowser.open(url)

    # --- Thread hand-off ---

    def _dispatch(self, fn, *args):
        """Run ``fn(*args)`` on the Flet event loop."""
        if self._loop is None or self._loop.is_closed():
            fn(*args)
            return
        asyncio.run_coroutine_threadsafe(self._run_on_loop(fn, *args), self._loop)

    @staticmethod
    async def _run_on_loop(fn, *args):
        try:
            fn(*args)
        except Exception:
            logger.exception("UI callback %s failed", getattr(fn, '__name__', fn))

    # --- Permissions ---

    def _prompt_permissions(self, permissions):
        """Show the consent dialog; the future resolves to {permission: accepted}."""
        answer = Future()
        names = ", ".join(t(f'permission_{p}') for p in permissions)

        def _close(accepted: bool):
            # Pop first: resolving may show a denial notice on top
            self.page.pop_dialog()
            if not answer.done():
                answer.set_result({p: accepted for p in permissions})

        dialog = ft.AlertDialog(
            modal=True,
            title=ft.Text(t('permission_title')),
            content=ft.Text(t('permission_body', permissions=names)),
            actions=[
                ft.TextButton(content=ft.Text(t('permission_deny')), on_click=lambda e: _close(False)),
                ft.TextButton(content=ft.Text(t('permission_allow')), on_click=lambda e: _close(True)),
            ],
        )
        self.page.show_dialog(dialog)
        return answer

    def _on_permission_denied(self, error: PermissionDenied):
        logger.warning("Camera not started: %s", error)
        self._set_status(t('status_permission_denied'), ft.Icons.VIDEOCAM_OFF, "red")
        self.notify(t('notice_permission_denied'))
        self.page.update()

    # --- Live preview ---

    def _set_status(self, text, icon, color):
        self.status_text.value = text
        self.status_text.color = color
        self.status_icon.icon = icon
        self.status_icon.color = color

    def _start_stream(self):
        """Open the camera and start the preview loop."""
        success, msg = self.camera.connect()
        if not success:
            logger.error("Camera initialization failed: %s", msg)
            self._set_status(t('status_error', msg=msg), ft.Icons.VIDEOCAM_OFF, "red")
            self.notify(t('snackbar_failed_connect', msg=msg))
            self.page.update()
            return
        logger.info("Camera started successfully: %s", msg)
        self.streaming_event.set()
        self.frame_thread = threading.Thread(target=self._frame_update_loop, daemon=True)
        self.frame_thread.start()
        if self._previewing:
            self._set_status(t('status_streaming'), ft.Icons.VIDEOCAM, ft.Colors.AMBER_400)
        self.page.update()

    def _frame_update_loop(self):
        """Background loop to fetch frames and schedule UI updates."""
        while self.streaming_event.is_set():
            if not self._previewing:
                # Captured photo is on screen; the viewfinder is hidden
                time.sleep(0.1)
                continue
            frame_b64 = self.camera.get_frame_base64()
            if frame_b64 is None:
                if self.camera.lost_device:
                    self._dispatch(self._handle_camera_lost)
                    break
                time.sleep(0.1)
                continue

            # Throttle display updates to avoid flicker
            now = time.time()
            if now - self._last_display_ts < self._display_min_interval:
                continue
            self._last_display_ts = now
            self._dispatch(self._update_image, frame_b64)

    def _update_image(self, frame_b64):
        """Run on main event loop: apply new frame and update page."""
        if not self.streaming_event.is_set():
            return
        self.img_control.src = frame_b64
        self.page.update()

    def _handle_camera_lost(self):
        """Stop streaming and show the disconnected status."""
        self.streaming_event.clear()
        self.camera.release()
        self._set_status(t('status_disconnected'), ft.Icons.VIDEOCAM_OFF, "red")
        self.page.update()

    @staticmethod
    def _create_placeholder_image():
        """Create a 1x1 black placeholder image as base64 with data URI."""
        placeholder_img = np.zeros((1, 1, 3), dtype=np.uint8)
        _, placeholder_buffer = cv2.imencode('.jpg', placeholder_img)
        b64_str = base64.b64encode(placeholder_buffer).decode('utf-8')
        return f"data:image/jpeg;base64,{b64_str}"
