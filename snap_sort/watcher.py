"""File system watcher for SnapSort.

Uses the watchdog library to subscribe to change notifications for a
single directory.  The watcher does not report *which* file changed:
any write, rename, delete or attribute event simply fires the callback,
and the caller recovers per-file detail by re-listing the directory.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)

# Event kinds that can change the directory listing or a file's content.
# "opened" and "closed_no_write" are access noise and are ignored.
_RELEVANT_EVENTS = frozenset({"created", "modified", "moved", "deleted", "closed"})


class WatchError(OSError):
    """Raised when a directory cannot be opened for monitoring."""


class _ChangeHandler(FileSystemEventHandler):
    """Watchdog handler that forwards every relevant event to one callback."""

    def __init__(self, on_change: Callable[[], None]):
        super().__init__()
        self._on_change = on_change

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type not in _RELEVANT_EVENTS:
            return
        try:
            self._on_change()
        except Exception:
            logger.exception("Error in directory change callback")


class PathWatcher:
    """Event-only monitor for one directory.

    Usage:
        watcher = PathWatcher(on_change)
        watcher.start("/Users/me/Desktop")
        ...
        watcher.stop()
    """

    def __init__(self, on_change: Callable[[], None]):
        """Create a watcher that calls *on_change* on each directory event."""
        self._handler = _ChangeHandler(on_change)
        self._observer: Any | None = None
        self.directory: Path | None = None

    # ---- lifecycle ----

    def start(self, directory: str | os.PathLike[str]) -> None:
        """Start watching *directory* (non-recursively).

        Any running subscription is stopped first.  Raises WatchError when
        the directory is missing, is not a directory, or cannot be read.
        """
        self.stop()

        path = Path(directory)
        if not path.is_dir():
            raise WatchError(f"Folder does not exist: {path}")
        if not os.access(path, os.R_OK | os.X_OK):
            raise WatchError(f"Permission denied: {path}")

        observer = Observer()
        try:
            observer.schedule(self._handler, str(path), recursive=False)
            observer.start()
        except OSError as exc:
            observer.stop()
            raise WatchError(f"Unable to watch {path}: {exc}") from exc

        self._observer = observer
        self.directory = path
        logger.info("Watching '%s'", path)

    def stop(self) -> None:
        """Stop watching and release the OS handle.  Safe to call repeatedly."""
        observer = self._observer
        if observer is None:
            return
        self._observer = None
        observer.stop()
        observer.join(timeout=5)
        logger.info("Watcher stopped for '%s'.", self.directory)

    @property
    def is_running(self) -> bool:
        """Return whether the OS subscription is currently active."""
        return self._observer is not None and self._observer.is_alive()
