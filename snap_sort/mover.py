"""
Move engine for SnapSort.

Moves a confirmed screenshot into its dated destination folder.
Existing files are never overwritten: a clashing name gets a numeric
suffix, ``name (1).ext``, ``name (2).ext`` and so on.  Every move is
counted in a MoveStats tally used for the status summary.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)


class MoveError(OSError):
    """Raised when a screenshot cannot be moved into place."""


@dataclass(frozen=True)
class PendingMove:
    """A screenshot that passed every check and is ready to move."""

    source: Path
    screenshot_date: datetime


@dataclass
class MoveRecord:
    """Record of a single move operation."""
    source: str
    destination: str = ""
    success: bool = False
    error: str = ""


@dataclass
class MoveStats:
    """Aggregated move statistics."""
    total_moved: int = 0
    total_failed: int = 0
    last_moved_file: str = ""
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def record(self, rec: MoveRecord) -> None:
        with self._lock:
            if rec.success:
                self.total_moved += 1
                self.last_moved_file = rec.destination
            else:
                self.total_failed += 1

    def summary(self) -> str:
        """Return e.g. ``"3 moved, 0 failed, last: shot.png"``."""
        with self._lock:
            text = f"{self.total_moved} moved, {self.total_failed} failed"
            if self.last_moved_file:
                text += f", last: {Path(self.last_moved_file).name}"
            return text


def unique_destination(file_name: str, directory: Path) -> Path:
    """Return a path in *directory* for *file_name* that does not exist yet."""
    candidate = directory / file_name
    if not os.path.lexists(candidate):
        return candidate

    stem, ext = os.path.splitext(file_name)
    index = 1
    while True:
        candidate = directory / f"{stem} ({index}){ext}"
        if not os.path.lexists(candidate):
            return candidate
        index += 1


class MoveExecutor:
    """Moves files into destination folders without overwriting anything.

    Safe to call from several worker threads: picking a free name and
    renaming onto it happen under one lock.
    """

    def __init__(self) -> None:
        self.stats = MoveStats()
        self._lock = threading.Lock()

    def move(self, source: Path, destination_folder: Path) -> Path:
        """Move *source* into *destination_folder* and return the new path.

        Missing folders are created.  Raises MoveError on any failure,
        including a move across filesystems.
        """
        rec = MoveRecord(source=str(source))
        try:
            destination_folder.mkdir(parents=True, exist_ok=True)
            with self._lock:
                dest = unique_destination(source.name, destination_folder)
                rec.destination = str(dest)
                os.rename(source, dest)
        except OSError as exc:
            rec.error = exc.strerror or str(exc)
            self.stats.record(rec)
            logger.error("Move failed for %s: %s", source, exc)
            raise MoveError(exc.errno, rec.error, str(source)) from exc

        rec.success = True
        self.stats.record(rec)
        logger.info("Moved %s -> %s", source, dest)
        return dest
