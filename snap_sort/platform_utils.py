"""
Cross-platform utilities for SnapSort.

Centralises all OS-detection logic so every other module can import
a single canonical set of helpers rather than scattering ``sys.platform``
checks throughout the codebase.

Supported platforms:
  - macOS 12+ (Monterey and newer) — full screenshot detection via Spotlight
  - Windows 10/11 and Linux — detection via embedded image metadata
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from pathlib import Path

logger = logging.getLogger(__name__)

# ---- platform flags ----------------------------------------------------

IS_WINDOWS: bool = sys.platform == "win32"
IS_MACOS: bool = sys.platform == "darwin"
IS_LINUX: bool = sys.platform.startswith("linux")

# ---- directories -------------------------------------------------------


def get_config_dir() -> Path:
    """
    Return the application config directory, created if needed.

    - Windows : ``%APPDATA%\\SnapSort``
    - macOS   : ``~/Library/Application Support/SnapSort``
    - Linux   : ``$XDG_CONFIG_HOME/SnapSort`` (default ``~/.config``)
    """
    if IS_WINDOWS:
        base = os.environ.get("APPDATA", str(Path.home()))
    elif IS_MACOS:
        base = str(Path.home() / "Library" / "Application Support")
    else:
        base = os.environ.get("XDG_CONFIG_HOME", str(Path.home() / ".config"))

    config_dir = Path(base) / "SnapSort"
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_log_path() -> Path:
    """Return the path to the log file (inside the config directory)."""
    return get_config_dir() / "snap_sort.log"


def get_desktop_dir() -> Path:
    """Return the user's desktop folder (it may not exist on headless Linux)."""
    return Path.home() / "Desktop"


def get_pictures_dir() -> Path:
    """Return the user's pictures folder, honouring ``XDG_PICTURES_DIR``."""
    xdg = os.environ.get("XDG_PICTURES_DIR")
    if xdg and not IS_WINDOWS:
        return Path(os.path.expanduser(xdg))
    return Path.home() / "Pictures"


def normalize_dir(path: str | os.PathLike[str]) -> Path:
    """Expand ``~`` and make *path* absolute without following symlinks."""
    return Path(os.path.normpath(os.path.abspath(os.path.expanduser(os.fspath(path)))))


# ---- desktop integration -----------------------------------------------


def open_file_in_default_app(filepath: str | Path) -> None:
    """Open a file with the OS default application."""
    fp = str(filepath)
    try:
        if IS_WINDOWS:
            os.startfile(fp)  # type: ignore[attr-defined]
        elif IS_MACOS:
            subprocess.Popen(["open", fp])
        else:
            subprocess.Popen(["xdg-open", fp])
    except Exception:
        logger.warning("Could not open file: %s", fp, exc_info=True)
