"""Locates the folder the operating system saves screenshots to."""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path

from snap_sort.platform_utils import IS_MACOS, get_desktop_dir, get_pictures_dir

logger = logging.getLogger(__name__)

_SCREENCAPTURE_DOMAIN = "com.apple.screencapture"


def read_screencapture_location() -> str:
    """Return the macOS ``com.apple.screencapture location`` preference, or ""."""
    try:
        result = subprocess.run(
            ["defaults", "read", _SCREENCAPTURE_DOMAIN, "location"],
            capture_output=True,
            text=True,
            timeout=5,
            check=False,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        logger.debug("Could not read screencapture location: %s", exc)
        return ""
    if result.returncode != 0:
        # Unset preference — the OS default (Desktop) applies
        return ""
    return result.stdout.strip()


class ScreenshotLocationResolver:
    """Resolves the screenshot folder, falling back to the desktop.

    Order of preference: a manual override, the platform setting (macOS
    ``screencapture`` defaults, or ``~/Pictures/Screenshots`` elsewhere),
    then the user's desktop.  Candidates must be existing directories.
    """

    def __init__(self, override: str = ""):
        self.override = override
        self._warned_override = ""

    def current_screenshot_directory(self) -> Path:
        if self.override:
            candidate = Path(os.path.expanduser(self.override))
            if candidate.is_dir():
                self._warned_override = ""
                return candidate
            # Polled every few seconds; report each bad value once
            if self._warned_override != self.override:
                self._warned_override = self.override
                logger.warning("Screenshot folder override %s is not a folder; ignoring.", candidate)

        platform_dir = self._platform_directory()
        if platform_dir is not None and platform_dir.is_dir():
            return platform_dir
        return get_desktop_dir()

    def _platform_directory(self) -> Path | None:
        if IS_MACOS:
            location = read_screencapture_location()
            return Path(os.path.expanduser(location)) if location else None
        return get_pictures_dir() / "Screenshots"
