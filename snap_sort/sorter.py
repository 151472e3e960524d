"""
Sorting engine for SnapSort.

Ties together the directory watcher, the snapshot diff, the stability
probe, the screenshot classifier, the date policy and the mover.

Everything runs on one asyncio event loop:

- the watchdog observer thread only posts "directory changed" signals
  onto a one-slot queue (a pending signal absorbs later ones);
- a single consumer task diffs the directory and updates the known
  entries, so that set is only ever touched from the loop;
- each new file is handled by its own task, with a semaphore capping how
  many are probed or moved at once;
- a timer task re-resolves the screenshot folder and swaps the watch
  target when the OS setting changes.
"""

from __future__ import annotations

import asyncio
import contextlib
import enum
import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol

from snap_sort.classifier import MetadataProvider, ScreenshotClassifier
from snap_sort.config import Settings
from snap_sort.mover import MoveError, MoveExecutor, MoveStats, PendingMove
from snap_sort.platform_utils import normalize_dir
from snap_sort.snapshot import diff_entries, snapshot_entries
from snap_sort.sorting import destination_folder, file_date, is_within_current_window
from snap_sort.stability import StabilityProbe
from snap_sort.watcher import PathWatcher, WatchError

logger = logging.getLogger(__name__)

DEFAULT_RESOLVE_INTERVAL = 5.0  # seconds
DEFAULT_MAX_WORKERS = 4


class DirectoryResolver(Protocol):
    """Supplies the folder the OS currently saves screenshots to."""

    def current_screenshot_directory(self) -> Path:
        ...


class SorterState(enum.Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    WATCHING = "watching"
    RE_RESOLVING = "re-resolving"


@dataclass
class WatchTarget:
    """The watched folder and the files already seen in it."""

    directory: Path
    known_entries: set[Path] = field(default_factory=set)


class SorterOrchestrator:
    """
    Watches the screenshot folder and sorts new screenshots.

    Parameters
    ----------
    settings : Settings
        Initial sorting preferences; replace with ``update_settings``.
    resolver : DirectoryResolver
        Source of the folder to watch, polled every *resolve_interval*.
    metadata_provider : MetadataProvider, optional
        Screenshot provenance check; the platform default when omitted.
    on_status : callable, optional
        Called with each new human-readable status message.
    watcher_factory : callable
        Builds the PathWatcher given its change callback.
    """

    def __init__(
        self,
        settings: Settings,
        resolver: DirectoryResolver,
        metadata_provider: MetadataProvider | None = None,
        *,
        on_status: Callable[[str], None] | None = None,
        watcher_factory: Callable[[Callable[[], None]], Any] = PathWatcher,
        probe: StabilityProbe | None = None,
        classifier: ScreenshotClassifier | None = None,
        mover: MoveExecutor | None = None,
        resolve_interval: float = DEFAULT_RESOLVE_INTERVAL,
        max_workers: int = DEFAULT_MAX_WORKERS,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._settings = settings
        self._resolver = resolver
        self._on_status = on_status
        self._watcher_factory = watcher_factory
        self._probe = probe or StabilityProbe()
        self._classifier = classifier or ScreenshotClassifier(metadata_provider)
        self._mover = mover or MoveExecutor()
        self._resolve_interval = resolve_interval
        self._max_workers = max(1, max_workers)
        self._clock = clock

        self._state = SorterState.IDLE
        self._status_message = "Starting"
        self._target: WatchTarget | None = None
        self._watcher: Any | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._signals: asyncio.Queue[Path] | None = None
        self._workers: asyncio.Semaphore | None = None
        self._consumer: asyncio.Task | None = None
        self._poller: asyncio.Task | None = None
        self._refresh_lock: asyncio.Lock | None = None
        self._batches: set[asyncio.Task] = set()

    # ---- read-only state ----

    @property
    def state(self) -> SorterState:
        return self._state

    @property
    def status_message(self) -> str:
        return self._status_message

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def watched_directory(self) -> Path | None:
        return self._target.directory if self._target else None

    @property
    def known_entries(self) -> set[Path]:
        """Return a copy of the entries already seen in the watched folder."""
        return set(self._target.known_entries) if self._target else set()

    @property
    def stats(self) -> MoveStats:
        return self._mover.stats

    @property
    def is_watching(self) -> bool:
        return self._watcher is not None

    # ---- lifecycle ----

    async def start(self) -> None:
        """Resolve the screenshot folder, begin watching, and start the timers."""
        if self._loop is not None:
            return
        self._loop = asyncio.get_running_loop()
        self._signals = asyncio.Queue(maxsize=1)
        self._workers = asyncio.Semaphore(self._max_workers)
        self._refresh_lock = asyncio.Lock()
        await self.refresh_watch_target(force=True)
        self._consumer = asyncio.create_task(self._consume_signals(), name="SnapSortSignals")
        self._poller = asyncio.create_task(self._poll_location(), name="SnapSortLocation")

    async def stop(self) -> None:
        """Stop watching and wait for files already in flight to finish."""
        if self._refresh_lock is None:
            return
        # Never cancel the timer half-way through swapping watchers
        async with self._refresh_lock:
            for task in (self._consumer, self._poller):
                if task is not None:
                    task.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await task
            self._consumer = self._poller = None
            await self._stop_watcher()
        await self.drain()
        self._loop = None
        self._refresh_lock = None
        self._state = SorterState.IDLE
        logger.info("Sorter stopped.")

    async def drain(self) -> None:
        """Wait until every in-flight batch of files has been handled."""
        while self._batches:
            await asyncio.gather(*list(self._batches), return_exceptions=True)

    # ---- settings ----

    def update_settings(self, settings: Settings) -> None:
        """Replace the sorting preferences; batches already running keep theirs."""
        old, self._settings = self._settings, settings
        if settings.sorting_enabled != old.sorting_enabled:
            self._set_status(
                "Folder sorting enabled" if settings.sorting_enabled else "Folder sorting disabled"
            )
        if settings.sort_mode != old.sort_mode:
            self._set_status(f"Sort mode: {settings.sort_mode.display_name}")
        if settings.effective_folder_name != old.effective_folder_name:
            self._set_status(f"Destination folder: {settings.effective_folder_name}")

    # ---- watch target ----

    async def refresh_watch_target(self, force: bool = False) -> None:
        """Re-resolve the screenshot folder and switch to it if it moved.

        An unchanged folder is left alone unless the previous attempt to
        watch it failed, in which case the watch is retried.  Resolving and
        starting or stopping the OS watch run in worker threads; only the
        resulting WatchTarget is applied on the loop.
        """
        assert self._refresh_lock is not None
        async with self._refresh_lock:
            resolved = normalize_dir(
                await asyncio.to_thread(self._resolver.current_screenshot_directory)
            )
            previous = self._target
            current = previous.directory if previous else None
            if not force and resolved == current and self._watcher is not None:
                return

            if current is not None:
                self._state = SorterState.RE_RESOLVING
                if resolved != current:
                    logger.info("Screenshot folder changed: %s -> %s", current, resolved)
            await self._stop_watcher()

            self._state = SorterState.RESOLVING
            same_folder = not force and previous is not None and resolved == current
            if same_folder:
                # Retrying the same folder: files that arrived while unwatched stay "new"
                target = previous
            else:
                # Seed with what is already there so existing files are never "new"
                target = WatchTarget(resolved, await asyncio.to_thread(snapshot_entries, resolved))
            self._target = target

            watcher = self._watcher_factory(lambda: self._post_signal(resolved))
            try:
                await asyncio.to_thread(watcher.start, resolved)
            except WatchError as exc:
                self._set_status(f"Unable to watch folder: {exc}")
                logger.warning("Unable to watch %s: %s", resolved, exc)
            else:
                self._watcher = watcher
                self._set_status(f"Watching {resolved.name or resolved}")
                if same_folder:
                    self.process_directory_change()
            self._state = SorterState.WATCHING

    async def _stop_watcher(self) -> None:
        watcher, self._watcher = self._watcher, None
        if watcher is not None:
            await asyncio.to_thread(watcher.stop)

    # ---- change signals ----

    def _post_signal(self, directory: Path) -> None:
        """Forward a watcher event to the loop (called on the observer thread)."""
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        with contextlib.suppress(RuntimeError):
            loop.call_soon_threadsafe(self._enqueue_signal, directory)

    def _enqueue_signal(self, directory: Path) -> None:
        if self._signals is None:
            return
        # A full queue already holds a pending rescan; this event is covered
        with contextlib.suppress(asyncio.QueueFull):
            self._signals.put_nowait(directory)

    async def _consume_signals(self) -> None:
        assert self._signals is not None
        while True:
            directory = await self._signals.get()
            if self._target is None or directory != self._target.directory:
                logger.debug("Dropping stale change signal for %s", directory)
                continue
            try:
                self.process_directory_change()
            except Exception:
                logger.exception("Error processing change in %s", directory)

    async def _poll_location(self) -> None:
        while True:
            await asyncio.sleep(self._resolve_interval)
            try:
                await self.refresh_watch_target()
            except Exception:
                logger.exception("Error re-resolving the screenshot folder")

    def process_directory_change(self) -> list[Path]:
        """Diff the watched folder and dispatch each new file.

        Must run on the event loop.  Returns the newly seen paths.
        """
        target = self._target
        if target is None:
            return []

        current = snapshot_entries(target.directory)
        new_entries = diff_entries(target.known_entries, current)
        target.known_entries = current
        if not new_entries:
            return []

        settings = self._settings
        if not settings.sorting_enabled:
            self._set_status(f"Detected {len(new_entries)} new file(s); sorting is off")
            return new_entries

        batch = asyncio.create_task(self._sort_batch(new_entries, target, settings))
        self._batches.add(batch)
        batch.add_done_callback(self._batches.discard)
        return new_entries

    # ---- per-file pipeline ----

    async def _sort_batch(self, paths: list[Path], target: WatchTarget, settings: Settings) -> None:
        results = await asyncio.gather(
            *(self._sort_file(path, target, settings) for path in paths)
        )
        moved = sum(1 for ok in results if ok)
        if moved:
            self._set_status(f"Moved {moved} screenshot(s)")

    async def _sort_file(self, path: Path, target: WatchTarget, settings: Settings) -> bool:
        """Run one new file through the pipeline; never raises."""
        try:
            if not self._classifier.should_consider(path):
                return False

            assert self._workers is not None
            async with self._workers:
                if not await self._probe.is_stable(path):
                    # Let a later directory event pick the file up again
                    self._requeue(path, target)
                    return False

                if not await self._classifier.confirms_screenshot(path):
                    return False

                pending = PendingMove(path, file_date(path))
                if not is_within_current_window(pending.screenshot_date, settings.sort_mode, self._clock()):
                    logger.info("Leaving %s in place: dated outside the current window", path.name)
                    return False

                folder = destination_folder(
                    target.directory,
                    pending.screenshot_date,
                    settings.sort_mode,
                    settings.effective_folder_name,
                )
                await asyncio.to_thread(self._mover.move, pending.source, folder)
                return True
        except MoveError as exc:
            self._set_status(f"Failed to move {path.name}: {exc.strerror or exc}")
        except Exception as exc:
            logger.exception("Unexpected error sorting %s", path)
            self._set_status(f"Failed to move {path.name}: {exc}")
        return False

    def _requeue(self, path: Path, target: WatchTarget) -> None:
        if target is self._target:
            target.known_entries.discard(path)

    # ---- status ----

    def _set_status(self, message: str) -> None:
        self._status_message = message
        logger.info("Status: %s", message)
        if self._on_status:
            try:
                self._on_status(message)
            except Exception:
                logger.exception("Error in status callback")


def watched_path_display(path: Path | None) -> str:
    """Return the watched folder for display, with the home directory as ``~``."""
    if path is None:
        return "Resolving screenshot location..."
    home = str(Path.home())
    text = str(path)
    if text == home or text.startswith(home + os.sep):
        return "~" + text[len(home):]
    return text
