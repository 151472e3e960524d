"""Directory snapshots and new-entry diffs."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path

logger = logging.getLogger(__name__)


def snapshot_entries(directory: str | os.PathLike[str]) -> set[Path]:
    """Return the visible regular files directly inside *directory*.

    Hidden entries, sub-folders and symlinks are skipped.  A listing
    failure yields an empty set: it means "nothing new", not an error.
    """
    entries: set[Path] = set()
    try:
        with os.scandir(directory) as it:
            for entry in it:
                if entry.name.startswith("."):
                    continue
                try:
                    if entry.is_file(follow_symlinks=False):
                        entries.add(Path(entry.path))
                except OSError:
                    continue
    except OSError as exc:
        logger.debug("Could not list %s: %s", directory, exc)
        return set()
    return entries


def diff_entries(previous: Iterable[Path], current: Iterable[Path]) -> list[Path]:
    """Return the paths in *current* but not in *previous*, sorted ascending."""
    return sorted(set(current) - set(previous))
