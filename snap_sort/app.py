"""
Main application controller for SnapSort.

Ties together configuration, the sorting engine and the system tray.
The engine runs on an asyncio loop in a background thread; the tray
owns the main thread.  Cross-thread calls into the engine always go
through ``loop.call_soon_threadsafe`` / ``run_coroutine_threadsafe``.
"""

import asyncio
import logging
import logging.handlers
import sys
import threading

from snap_sort import __app_name__, __version__
from snap_sort.classifier import default_metadata_provider
from snap_sort.config import Config, Settings, SortMode, get_log_path
from snap_sort.locator import ScreenshotLocationResolver
from snap_sort.platform_utils import open_file_in_default_app
from snap_sort.sorter import SorterOrchestrator, watched_path_display
from snap_sort.tray import SysTray

logger = logging.getLogger(__name__)

_STOP_TIMEOUT = 30  # seconds to wait for in-flight files on quit


def setup_logging(config: Config) -> None:
    """Configure rotating file log and stderr handler."""
    log_path = get_log_path()
    level = getattr(logging, config.log_level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    fmt = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    # Rotating file handler
    max_bytes = config.max_log_size_mb * 1024 * 1024
    fh = logging.handlers.RotatingFileHandler(
        str(log_path),
        maxBytes=max_bytes,
        backupCount=config.log_backup_count,
        encoding="utf-8",
    )
    fh.setLevel(level)
    fh.setFormatter(fmt)
    root_logger.addHandler(fh)

    # Stderr handler (for development)
    sh = logging.StreamHandler(sys.stderr)
    sh.setLevel(level)
    sh.setFormatter(fmt)
    root_logger.addHandler(sh)


def build_orchestrator(config: Config, on_status=None) -> SorterOrchestrator:
    """Create a SorterOrchestrator wired to the platform collaborators."""
    return SorterOrchestrator(
        settings=config.settings,
        resolver=ScreenshotLocationResolver(config.screenshot_folder),
        metadata_provider=default_metadata_provider(),
        on_status=on_status,
        resolve_interval=config.location_poll_seconds,
        max_workers=config.max_concurrent_files,
    )


class App:
    """
    Central orchestrator.

    Implements the TrayCallbacks protocol expected by SysTray.
    """

    def __init__(self) -> None:
        self.config = Config()
        self._loop = asyncio.new_event_loop()
        self._loop_thread = threading.Thread(
            target=self._run_loop, daemon=True, name="SnapSortLoop"
        )
        self.sorter = build_orchestrator(self.config, on_status=self._on_status)
        self._tray = SysTray(self)
        self.config.on_change(self._on_settings_changed)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> None:
        """Start the engine, then block in the tray until quit."""
        setup_logging(self.config)
        logger.info("%s %s starting.", __app_name__, __version__)

        self._loop_thread.start()
        future = asyncio.run_coroutine_threadsafe(self.sorter.start(), self._loop)
        try:
            future.result(timeout=_STOP_TIMEOUT)
        except Exception:
            logger.exception("Failed to start the sorter.")

        self._tray.run()

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    # ------------------------------------------------------------------
    # TrayCallbacks implementation
    # ------------------------------------------------------------------

    def on_toggle_sorting(self) -> None:
        self.config.update(sorting_enabled=not self.config.sorting_enabled)

    def on_select_sort_mode(self, mode: SortMode) -> None:
        self.config.update(sort_mode=mode)

    def on_toggle_default_folder_name(self) -> None:
        self.config.update(use_default_folder_name=not self.config.use_default_folder_name)

    def on_open_settings_file(self) -> None:
        open_file_in_default_app(self.config.path)

    def on_reload_settings(self) -> None:
        if not self.config.reload():
            logger.info("Settings file unchanged.")

    def on_quit(self) -> None:
        """Cleanly shut down the application."""
        logger.info("Shutting down…")
        future = asyncio.run_coroutine_threadsafe(self.sorter.stop(), self._loop)
        try:
            future.result(timeout=_STOP_TIMEOUT)
        except Exception:
            logger.exception("Sorter did not stop cleanly.")
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._tray.stop()

    def is_sorting_enabled(self) -> bool:
        return self.config.sorting_enabled

    def current_sort_mode(self) -> SortMode:
        return self.config.sort_mode

    def is_default_folder_name(self) -> bool:
        return self.config.use_default_folder_name

    def get_status_summary(self) -> str:
        return self.sorter.status_message

    def get_watched_display(self) -> str:
        return watched_path_display(self.sorter.watched_directory)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _on_settings_changed(self, settings: Settings) -> None:
        """Hand new settings to the engine on its own loop."""
        self._loop.call_soon_threadsafe(self.sorter.update_settings, settings)
        self._tray.refresh_menu()

    def _on_status(self, message: str) -> None:
        """Called on the engine loop whenever the status changes."""
        self._tray.update_tooltip(f"{__app_name__} — {message} ({self.sorter.stats.summary()})")
        self._tray.refresh_menu()
