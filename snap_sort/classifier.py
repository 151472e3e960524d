"""Screenshot detection for SnapSort.

Two gates decide whether a new file is sorted:

1. ``should_consider`` — a cheap name/extension filter that throws out
   hidden files, editor backups, partial downloads and non-images.
2. ``confirms_screenshot`` — asks a MetadataProvider whether the image
   was really produced by a screen capture.  Metadata indexing can lag
   behind the write, so the question is repeated a few times before the
   file is given up on.  A file is never classified by its name alone.
"""

from __future__ import annotations

import asyncio
import logging
import subprocess
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, Protocol

from PIL import Image, UnidentifiedImageError

from snap_sort.platform_utils import IS_MACOS

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = frozenset({"png", "heic", "jpg", "jpeg", "tiff", "gif"})
TEMPORARY_EXTENSIONS = frozenset({"tmp", "temp", "partial", "download", "crdownload"})

# Spotlight attributes set on captures made by the macOS screenshot tool
SCREENSHOT_METADATA_KEYS = ("kMDItemIsScreenCapture", "kMDItemImageIsScreenshot")

DEFAULT_MAX_ATTEMPTS = 4
DEFAULT_INTERVAL = 0.3  # seconds

_TRUE_STRINGS = frozenset({"1", "true", "yes"})


def metadata_flag_is_true(value: Any) -> bool:
    """Interpret a metadata attribute value as a boolean flag."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="ignore")
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return False


class MetadataProvider(Protocol):
    """Answers whether OS or file metadata marks *path* as a screenshot."""

    def is_screenshot(self, path: Path) -> bool:
        ...


class SpotlightMetadataProvider:
    """Reads the screenshot flags from the Spotlight index via ``mdls``."""

    def __init__(self, keys: tuple[str, ...] = SCREENSHOT_METADATA_KEYS, timeout: float = 5.0):
        self._keys = keys
        self._timeout = timeout

    def _query(self, key: str, path: Path) -> str | None:
        try:
            result = subprocess.run(
                ["mdls", "-raw", "-name", key, str(path)],
                capture_output=True,
                text=True,
                timeout=self._timeout,
                check=False,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            logger.debug("mdls failed for %s: %s", path, exc)
            return None
        value = result.stdout.strip()
        if result.returncode != 0 or not value or value == "(null)":
            return None
        return value

    def is_screenshot(self, path: Path) -> bool:
        for key in self._keys:
            value = self._query(key, path)
            if value is not None and metadata_flag_is_true(value):
                return True
        return False


# Markers written by common capture tools into Software/Comment fields
_CAPTURE_MARKERS = (
    "screenshot",
    "screen shot",
    "screen capture",
    "gnome-screenshot",
    "spectacle",
    "flameshot",
    "greenshot",
    "shutter",
    "ksnip",
    "snipping tool",
)
_FLAG_KEYS = ("IsScreenCapture", "IsScreenshot")
_SKIPPED_INFO_KEYS = frozenset({"icc_profile", "exif", "transparency", "dpi", "gamma"})

_EXIF_IMAGE_DESCRIPTION = 0x010E
_EXIF_SOFTWARE = 0x0131
_EXIF_IFD = 0x8769
_EXIF_USER_COMMENT = 0x9286


def _as_text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="ignore")
    if isinstance(value, str):
        return value
    return ""


class ImageMetadataProvider:
    """Looks for capture markers embedded in the image file itself.

    Used where no Spotlight index exists.  PNG text chunks, GIF comments,
    XMP packets and the EXIF Software/ImageDescription/UserComment tags are
    searched for an explicit screenshot flag or a known capture tool.
    """

    def is_screenshot(self, path: Path) -> bool:
        try:
            with Image.open(path) as img:
                info = dict(img.info)
                exif = img.getexif()
                texts = [
                    _as_text(exif.get(_EXIF_IMAGE_DESCRIPTION)),
                    _as_text(exif.get(_EXIF_SOFTWARE)),
                    _as_text(exif.get_ifd(_EXIF_IFD).get(_EXIF_USER_COMMENT)),
                ]
        except (OSError, UnidentifiedImageError, ValueError) as exc:
            logger.debug("Could not read image metadata for %s: %s", path, exc)
            return False

        for key in _FLAG_KEYS:
            if key in info and metadata_flag_is_true(info[key]):
                return True

        for key, value in info.items():
            if key in _SKIPPED_INFO_KEYS or key in _FLAG_KEYS:
                continue
            texts.append(_as_text(value))

        for text in texts:
            lowered = text.lower()
            if any(marker in lowered for marker in _CAPTURE_MARKERS):
                return True
        return False


def default_metadata_provider() -> MetadataProvider:
    """Return the metadata provider suited to the current platform."""
    if IS_MACOS:
        return SpotlightMetadataProvider()
    return ImageMetadataProvider()


def is_ignored_name(file_name: str) -> bool:
    """Return True for hidden, backup and partial-download file names."""
    lowered = file_name.lower()
    if lowered.startswith(".") or lowered.endswith("~"):
        return True
    ext = Path(lowered).suffix.lstrip(".")
    return ext in TEMPORARY_EXTENSIONS


class ScreenshotClassifier:
    """Decides whether a new file is a screenshot worth sorting."""

    def __init__(
        self,
        metadata_provider: MetadataProvider | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        interval: float = DEFAULT_INTERVAL,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._provider = metadata_provider or default_metadata_provider()
        self.max_attempts = max(1, max_attempts)
        self.interval = interval
        self._sleep = sleep

    def should_consider(self, path: Path) -> bool:
        """Return True for regular image files with an allowed extension."""
        if is_ignored_name(path.name):
            logger.debug("Ignoring %s (hidden, backup or temporary name)", path.name)
            return False
        if path.is_symlink() or not path.is_file():
            return False
        ext = path.suffix.lower().lstrip(".")
        if ext not in SUPPORTED_EXTENSIONS:
            logger.debug("Ignoring %s (unsupported extension)", path.name)
            return False
        return True

    async def confirms_screenshot(self, path: Path) -> bool:
        """Return True once metadata marks *path* as a screen capture."""
        for attempt in range(self.max_attempts):
            try:
                if await asyncio.to_thread(self._provider.is_screenshot, path):
                    return True
            except Exception:
                logger.exception("Metadata lookup failed for %s", path)
            if attempt < self.max_attempts - 1:
                await self._sleep(self.interval)

        logger.info("No screenshot metadata for %s; leaving it in place", path.name)
        return False
