"""Configuration management for SnapSort.

Stores and retrieves user settings from a JSON config file
in the platform-appropriate application data directory.

The four sorting preferences keep fixed camelCase keys so the file
stays readable by hand (the custom folder name has no tray editor).
"""

from __future__ import annotations

import enum
import json
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from snap_sort.platform_utils import (
    get_config_dir as _platform_config_dir,
)
from snap_sort.platform_utils import (
    get_log_path as _platform_log_path,
)

logger = logging.getLogger(__name__)

DEFAULT_FOLDER_NAME = "Screenshots"

# Characters that would split the folder name into nested paths
_INVALID_FOLDER_CHARS = ("/", ":", "\\")


class SortMode(str, enum.Enum):
    """How screenshots are bucketed below the destination folder."""

    MONTHLY = "monthly"
    DAILY = "daily"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @classmethod
    def parse(cls, value: Any) -> SortMode:
        """Return the mode named by *value*, falling back to monthly."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.MONTHLY


def sanitize_folder_name(name: str) -> str:
    """Replace path-separator characters in *name* with ``-``."""
    for ch in _INVALID_FOLDER_CHARS:
        name = name.replace(ch, "-")
    return name


@dataclass(frozen=True)
class Settings:
    """Immutable snapshot of the sorting preferences."""

    sorting_enabled: bool = True
    sort_mode: SortMode = SortMode.MONTHLY
    use_default_folder_name: bool = True
    custom_folder_name: str = ""

    @property
    def effective_folder_name(self) -> str:
        """Return the sanitised destination root name."""
        if self.use_default_folder_name:
            return DEFAULT_FOLDER_NAME
        sanitized = sanitize_folder_name(self.custom_folder_name.strip())
        return sanitized or DEFAULT_FOLDER_NAME


# Persisted keys for the sorting preferences
KEY_SORTING_ENABLED = "sortingEnabled"
KEY_SORT_MODE = "sortMode"
KEY_USE_DEFAULT_FOLDER_NAME = "useDefaultFolderName"
KEY_CUSTOM_FOLDER_NAME = "customFolderName"

DEFAULT_CONFIG: dict[str, Any] = {
    KEY_SORTING_ENABLED: True,
    KEY_SORT_MODE: SortMode.MONTHLY.value,
    KEY_USE_DEFAULT_FOLDER_NAME: True,
    KEY_CUSTOM_FOLDER_NAME: "",
    # ---- watching ----
    "screenshotFolder": "",  # blank = follow the OS screenshot location
    "locationPollSeconds": 5,
    "maxConcurrentFiles": 4,
    # ---- logging ----
    "logLevel": "INFO",
    "maxLogSizeMb": 10,  # rotate log when it exceeds this size
    "logBackupCount": 3,  # number of rotated log files to keep
}

# Config attribute -> persisted key, for update()
_ATTR_KEYS = {
    "sorting_enabled": KEY_SORTING_ENABLED,
    "sort_mode": KEY_SORT_MODE,
    "use_default_folder_name": KEY_USE_DEFAULT_FOLDER_NAME,
    "custom_folder_name": KEY_CUSTOM_FOLDER_NAME,
    "screenshot_folder": "screenshotFolder",
    "location_poll_seconds": "locationPollSeconds",
    "max_concurrent_files": "maxConcurrentFiles",
    "log_level": "logLevel",
}


def get_config_dir() -> Path:
    """Return the platform-appropriate application config directory."""
    return _platform_config_dir()


def get_config_path() -> Path:
    """Return the path to the configuration file."""
    return get_config_dir() / "config.json"


def get_log_path() -> Path:
    """Return the path to the log file."""
    return _platform_log_path()


class Config:
    """Thread-safe configuration manager backed by a JSON file."""

    def __init__(self, path: Path | None = None):
        """Load config from *path*, falling back to the platform default."""
        self._path = path or get_config_path()
        self._data: dict[str, Any] = dict(DEFAULT_CONFIG)
        self._lock = threading.RLock()
        self._listeners: list[Callable[[Settings], None]] = []
        self.load()

    @property
    def path(self) -> Path:
        return self._path

    # ---- persistence ----

    def load(self) -> None:
        """Load configuration from disk, applying defaults for missing keys."""
        with self._lock:
            if self._path.exists():
                try:
                    with open(self._path, encoding="utf-8") as fh:
                        stored = json.load(fh)
                    if not isinstance(stored, dict):
                        raise ValueError("top-level value is not an object")
                    # Merge stored values over defaults so new keys get defaults
                    self._data = {**DEFAULT_CONFIG, **stored}
                    logger.info("Configuration loaded from %s", self._path)
                except (ValueError, OSError) as exc:
                    logger.warning("Could not read config (%s); using defaults.", exc)
                    self._data = dict(DEFAULT_CONFIG)
            else:
                self._data = dict(DEFAULT_CONFIG)
                self.save()
                logger.info("Created default configuration at %s", self._path)

    def save(self) -> None:
        """Persist the current configuration to disk."""
        with self._lock:
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                with open(self._path, "w", encoding="utf-8") as fh:
                    json.dump(self._data, fh, indent=2)
                logger.info("Configuration saved.")
            except OSError as exc:
                logger.error("Failed to save configuration: %s", exc)

    # ---- change notification ----

    def on_change(self, callback: Callable[[Settings], None]) -> None:
        """Register *callback* to receive the new Settings after each update."""
        self._listeners.append(callback)

    def update(self, **values: Any) -> None:
        """Set one or more options by attribute name, save, and notify listeners."""
        with self._lock:
            for attr, value in values.items():
                if attr not in _ATTR_KEYS:
                    raise AttributeError(f"Unknown setting: {attr}")
                setattr(self, attr, value)
            self.save()
            settings = self.settings
        self._notify(settings)

    def reload(self) -> bool:
        """Re-read the file after a hand edit; notify listeners if the preferences changed."""
        with self._lock:
            before = self.settings
            self.load()
            settings = self.settings
        if settings == before:
            return False
        logger.info("Settings changed on disk; applying.")
        self._notify(settings)
        return True

    def _notify(self, settings: Settings) -> None:
        for callback in list(self._listeners):
            try:
                callback(settings)
            except Exception:
                logger.exception("Error in settings change callback")

    # ---- sorting preferences ----

    @property
    def settings(self) -> Settings:
        """Return the current sorting preferences as an immutable value."""
        return Settings(
            sorting_enabled=self.sorting_enabled,
            sort_mode=self.sort_mode,
            use_default_folder_name=self.use_default_folder_name,
            custom_folder_name=self.custom_folder_name,
        )

    @property
    def sorting_enabled(self) -> bool:
        """Return whether new screenshots are moved."""
        return bool(self._data.get(KEY_SORTING_ENABLED, True))

    @sorting_enabled.setter
    def sorting_enabled(self, value: bool) -> None:
        self._data[KEY_SORTING_ENABLED] = bool(value)

    @property
    def sort_mode(self) -> SortMode:
        """Return the active sort mode."""
        return SortMode.parse(self._data.get(KEY_SORT_MODE))

    @sort_mode.setter
    def sort_mode(self, value: SortMode | str) -> None:
        self._data[KEY_SORT_MODE] = SortMode.parse(value).value

    @property
    def use_default_folder_name(self) -> bool:
        """Return whether the default "Screenshots" folder name is used."""
        return bool(self._data.get(KEY_USE_DEFAULT_FOLDER_NAME, True))

    @use_default_folder_name.setter
    def use_default_folder_name(self, value: bool) -> None:
        self._data[KEY_USE_DEFAULT_FOLDER_NAME] = bool(value)

    @property
    def custom_folder_name(self) -> str:
        """Return the user-supplied destination folder name."""
        return str(self._data.get(KEY_CUSTOM_FOLDER_NAME, ""))

    @custom_folder_name.setter
    def custom_folder_name(self, value: str) -> None:
        self._data[KEY_CUSTOM_FOLDER_NAME] = str(value)

    @property
    def effective_folder_name(self) -> str:
        """Return the sanitised destination folder name."""
        return self.settings.effective_folder_name

    # ---- watching ----

    @property
    def screenshot_folder(self) -> str:
        """Return the manual screenshot folder override ("" = automatic)."""
        return str(self._data.get("screenshotFolder", ""))

    @screenshot_folder.setter
    def screenshot_folder(self, value: str) -> None:
        self._data["screenshotFolder"] = str(value).strip()

    @property
    def location_poll_seconds(self) -> int:
        """Return how often the screenshot location is re-resolved."""
        return max(1, int(self._data.get("locationPollSeconds", 5)))

    @location_poll_seconds.setter
    def location_poll_seconds(self, value: int) -> None:
        """Set the re-resolution interval (minimum 1 s)."""
        self._data["locationPollSeconds"] = max(1, int(value))

    @property
    def max_concurrent_files(self) -> int:
        """Return the cap on files processed at once."""
        return max(1, int(self._data.get("maxConcurrentFiles", 4)))

    @max_concurrent_files.setter
    def max_concurrent_files(self, value: int) -> None:
        self._data["maxConcurrentFiles"] = max(1, int(value))

    # ---- logging ----

    @property
    def log_level(self) -> str:
        """Return the current logging level name."""
        return self._data.get("logLevel", "INFO")

    @log_level.setter
    def log_level(self, value: str) -> None:
        """Set the logging level name."""
        self._data["logLevel"] = value

    @property
    def max_log_size_mb(self) -> int:
        """Return the maximum log file size in MB before rotation."""
        return max(1, int(self._data.get("maxLogSizeMb", 10)))

    @property
    def log_backup_count(self) -> int:
        """Return the number of rotated log backups to keep."""
        return max(0, int(self._data.get("logBackupCount", 3)))
