"""System tray icon for SnapSort.

Provides the menu-bar presence: the current status and watched folder,
toggles for sorting and the default folder name, the sort-mode choice,
shortcuts to open and reload the settings file, and quit.
"""

import contextlib
import logging
from typing import Any, Protocol

import pystray
from PIL import Image, ImageDraw
from PIL.Image import Image as PILImage

from snap_sort import __app_name__
from snap_sort.config import SortMode

logger = logging.getLogger(__name__)


class TrayCallbacks(Protocol):
    """Expected callback interface for the tray icon owner."""

    def on_toggle_sorting(self) -> None:
        """Turn folder sorting on or off."""
        ...

    def on_select_sort_mode(self, mode: SortMode) -> None:
        """Switch between monthly and daily folders."""
        ...

    def on_toggle_default_folder_name(self) -> None:
        """Switch between "Screenshots" and the custom folder name."""
        ...

    def on_open_settings_file(self) -> None:
        """Open the JSON settings file in the default editor."""
        ...

    def on_reload_settings(self) -> None:
        """Re-read the settings file after it was edited by hand."""
        ...

    def on_quit(self) -> None:
        """Quit the application."""
        ...

    def is_sorting_enabled(self) -> bool:
        ...

    def current_sort_mode(self) -> SortMode:
        ...

    def is_default_folder_name(self) -> bool:
        ...

    def get_status_summary(self) -> str:
        """Return a human-readable status string."""
        ...

    def get_watched_display(self) -> str:
        """Return the watched folder for display."""
        ...


def _create_icon_image(color: str = "#0078D4", size: int = 64) -> PILImage:
    """Draw a simple camera-viewfinder icon: four corner brackets and a dot."""
    img = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)
    edge, arm, width = 4, size // 4, max(3, size // 12)
    far = size - edge
    for x, y, dx, dy in (
        (edge, edge, 1, 1),
        (far, edge, -1, 1),
        (edge, far, 1, -1),
        (far, far, -1, -1),
    ):
        draw.line([(x, y), (x + dx * arm, y)], fill=color, width=width)
        draw.line([(x, y), (x, y + dy * arm)], fill=color, width=width)
    margin = size * 3 // 8
    draw.ellipse([(margin, margin), (size - margin, size - margin)], fill=color)
    return img


class SysTray:
    """Manages the system-tray icon and its menu.

    ``run`` blocks and must be called from the main thread on macOS.
    """

    def __init__(self, callbacks: TrayCallbacks):
        """Create the tray icon bound to *callbacks*."""
        self._callbacks = callbacks
        self._icon: Any | None = None

    def _mode_item(self, mode: SortMode) -> pystray.MenuItem:
        return pystray.MenuItem(
            mode.display_name,
            lambda: self._callbacks.on_select_sort_mode(mode),
            checked=lambda item: self._callbacks.current_sort_mode() is mode,
            radio=True,
        )

    def _build_menu(self) -> pystray.Menu:
        cb = self._callbacks
        return pystray.Menu(
            pystray.MenuItem(lambda item: f"Status: {cb.get_status_summary()}", None, enabled=False),
            pystray.MenuItem(lambda item: f"Watching: {cb.get_watched_display()}", None, enabled=False),
            pystray.Menu.SEPARATOR,
            pystray.MenuItem(
                "Folder sorting",
                lambda: cb.on_toggle_sorting(),
                checked=lambda item: cb.is_sorting_enabled(),
            ),
            pystray.MenuItem(
                "Sort mode",
                pystray.Menu(*(self._mode_item(mode) for mode in SortMode)),
                enabled=lambda item: cb.is_sorting_enabled(),
            ),
            pystray.MenuItem(
                "Use default folder name (Screenshots)",
                lambda: cb.on_toggle_default_folder_name(),
                checked=lambda item: cb.is_default_folder_name(),
                enabled=lambda item: cb.is_sorting_enabled(),
            ),
            pystray.MenuItem("Open Settings File", lambda: cb.on_open_settings_file()),
            pystray.MenuItem("Reload Settings File", lambda: cb.on_reload_settings()),
            pystray.Menu.SEPARATOR,
            pystray.MenuItem(f"Quit {__app_name__}", lambda: cb.on_quit()),
        )

    def run(self) -> None:
        """Show the tray icon and block until ``stop`` is called."""
        self._icon = pystray.Icon(
            name=__app_name__,
            icon=_create_icon_image(),
            title=__app_name__,
            menu=self._build_menu(),
        )
        logger.info("System tray icon started.")
        self._icon.run()

    def stop(self) -> None:
        """Remove the tray icon and end ``run``."""
        if self._icon:
            with contextlib.suppress(Exception):
                self._icon.stop()
            self._icon = None
        logger.info("System tray icon stopped.")

    def update_tooltip(self, text: str) -> None:
        """Update the hover tooltip text."""
        if self._icon:
            self._icon.title = text

    def refresh_menu(self) -> None:
        """Re-evaluate the dynamic menu labels and check marks."""
        if self._icon:
            with contextlib.suppress(Exception):
                self._icon.update_menu()
