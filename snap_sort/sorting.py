"""Date-bucketing rules: where a screenshot goes and whether to move it now."""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path

from snap_sort.config import SortMode

logger = logging.getLogger(__name__)


def date_component(date: datetime, mode: SortMode) -> str:
    """Return ``YYYY-MM`` (monthly) or ``YYYY-MM-DD`` (daily) for *date*.

    Formatted by hand so the digits never depend on the host locale.
    """
    if mode is SortMode.DAILY:
        return f"{date.year:04d}-{date.month:02d}-{date.day:02d}"
    return f"{date.year:04d}-{date.month:02d}"


def destination_folder(
    base_directory: Path,
    date: datetime,
    mode: SortMode,
    folder_name: str,
) -> Path:
    """Return ``base_directory / folder_name / <date component>``."""
    return Path(base_directory) / folder_name / date_component(date, mode)


def is_within_current_window(date: datetime, mode: SortMode, now: datetime) -> bool:
    """Return True when *date* falls in the same day (or month) as *now*."""
    if mode is SortMode.DAILY:
        return date.date() == now.date()
    return (date.year, date.month) == (now.year, now.month)


def file_date(path: Path) -> datetime:
    """Return the creation time of *path* in local time.

    Falls back to the modification time where the filesystem does not
    record creation, and to the current time if the file cannot be read.
    """
    try:
        st = os.stat(path)
    except OSError as exc:
        logger.debug("Could not stat %s (%s); using current time", path, exc)
        return datetime.now()
    created = getattr(st, "st_birthtime", None)
    if created:
        return datetime.fromtimestamp(created)
    if st.st_mtime:
        return datetime.fromtimestamp(st.st_mtime)
    return datetime.now()
