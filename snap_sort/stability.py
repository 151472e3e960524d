"""Write-completion detection for newly appeared files.

A file counts as finished once two consecutive samples report the same
size and modification time and the file is readable.  There is no
locking involved; a writer that pauses longer than the poll interval can
fool the probe, which the caller tolerates by retrying on a later event.
"""

from __future__ import annotations

import asyncio
import logging
import os
import stat
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_INTERVAL = 0.3  # seconds


@dataclass(frozen=True)
class CandidateFile:
    """One sample of a file that may still be being written."""

    path: Path
    size: int
    modified_at: int  # st_mtime_ns
    readable: bool

    def matches(self, other: CandidateFile | None) -> bool:
        return (
            other is not None
            and self.size == other.size
            and self.modified_at == other.modified_at
        )


def sample_file(path: Path) -> CandidateFile | None:
    """Sample *path*, or return None if it is no longer a regular file."""
    try:
        st = os.stat(path, follow_symlinks=False)
    except OSError:
        return None
    if not stat.S_ISREG(st.st_mode):
        return None
    return CandidateFile(
        path=path,
        size=st.st_size,
        modified_at=st.st_mtime_ns,
        readable=os.access(path, os.R_OK),
    )


class StabilityProbe:
    """Polls a file until it stops changing, with a bounded number of samples."""

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        interval: float = DEFAULT_INTERVAL,
        sampler: Callable[[Path], CandidateFile | None] = sample_file,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.max_attempts = max(1, max_attempts)
        self.interval = interval
        self._sampler = sampler
        self._sleep = sleep

    async def is_stable(self, path: Path) -> bool:
        """Return True once two consecutive samples of *path* match."""
        previous: CandidateFile | None = None
        for attempt in range(self.max_attempts):
            current = self._sampler(path)
            if current is None:
                logger.debug("%s vanished or is not a regular file", path)
                return False
            if current.readable and current.matches(previous):
                logger.debug("%s stable after %d samples", path, attempt + 1)
                return True
            previous = current
            if attempt < self.max_attempts - 1:
                await self._sleep(self.interval)

        logger.info("%s still changing after %d samples", path, self.max_attempts)
        return False
