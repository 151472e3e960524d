"""
Background service / daemon support for SnapSort.

Allows the sorting engine to run headless (no tray icon — just
watching and moving).

**macOS** — runs via a launchd LaunchAgent:
    python -m snap_sort --service install   (creates ~/Library/LaunchAgents plist)
    python -m snap_sort --service start     (launchctl load)
    python -m snap_sort --service stop      (launchctl unload)
    python -m snap_sort --service remove    (deletes plist)
    python -m snap_sort --service run       (foreground, used by the agent)

**Windows / Linux** — runs as a headless foreground process:
    python -m snap_sort --service start     (blocks until Ctrl-C)
"""

import asyncio
import logging
import signal
import subprocess
import sys
from pathlib import Path

from snap_sort.platform_utils import IS_MACOS

logger = logging.getLogger(__name__)

# ---- macOS launchd constants -------------------------------------------

_LAUNCHD_LABEL = "io.snapsort.agent"
_PLIST_DIR = Path.home() / "Library" / "LaunchAgents"
_PLIST_PATH = _PLIST_DIR / f"{_LAUNCHD_LABEL}.plist"


async def _run_headless() -> None:
    """Run the sorting engine until SIGINT/SIGTERM; SIGHUP reloads settings."""
    from snap_sort.app import build_orchestrator, setup_logging
    from snap_sort.config import Config

    cfg = Config()
    setup_logging(cfg)

    sorter = build_orchestrator(cfg)
    cfg.on_change(sorter.update_settings)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows: fall back to KeyboardInterrupt for Ctrl-C
            pass
    # SIGHUP re-reads the settings file (POSIX only)
    if hasattr(signal, "SIGHUP"):
        loop.add_signal_handler(signal.SIGHUP, cfg.reload)

    await sorter.start()
    try:
        await stop.wait()
    finally:
        await sorter.stop()


def _run_foreground() -> None:
    print("SnapSort running (press Ctrl-C to stop)…")
    try:
        asyncio.run(_run_headless())
    except KeyboardInterrupt:
        pass
    print("SnapSort stopped.")


# ======================================================================
# macOS launchd helpers
# ======================================================================

def _macos_plist_content() -> str:
    """Generate the launchd plist XML for the current Python environment."""
    exe = sys.executable
    log_dir = Path.home() / "Library" / "Logs" / "SnapSort"
    log_dir.mkdir(parents=True, exist_ok=True)
    return f"""\
<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE plist PUBLIC "-//Apple//DTD PLIST 1.0//EN"
  "http://www.apple.com/DTDs/PropertyList-1.0.dtd">
<plist version="1.0">
<dict>
    <key>Label</key>
    <string>{_LAUNCHD_LABEL}</string>
    <key>ProgramArguments</key>
    <array>
        <string>{exe}</string>
        <string>-m</string>
        <string>snap_sort</string>
        <string>--service</string>
        <string>run</string>
    </array>
    <key>RunAtLoad</key>
    <true/>
    <key>KeepAlive</key>
    <true/>
    <key>StandardOutPath</key>
    <string>{log_dir / 'stdout.log'}</string>
    <key>StandardErrorPath</key>
    <string>{log_dir / 'stderr.log'}</string>
</dict>
</plist>
"""


def _macos_install() -> None:
    _PLIST_DIR.mkdir(parents=True, exist_ok=True)
    _PLIST_PATH.write_text(_macos_plist_content(), encoding="utf-8")
    print(f"Installed launchd plist: {_PLIST_PATH}")


def _macos_start() -> None:
    if _PLIST_PATH.exists():
        subprocess.run(["launchctl", "load", str(_PLIST_PATH)], check=True)
        print("SnapSort launchd agent loaded.")
    else:
        print("Plist not found. Run 'install' first.")


def _macos_stop() -> None:
    if _PLIST_PATH.exists():
        subprocess.run(["launchctl", "unload", str(_PLIST_PATH)], check=False)
        print("SnapSort launchd agent unloaded.")
    else:
        print("Plist not found.")


def _macos_remove() -> None:
    _macos_stop()
    if _PLIST_PATH.exists():
        _PLIST_PATH.unlink()
        print("Removed launchd plist.")


# ======================================================================
# CLI entry
# ======================================================================

def main() -> None:
    """Entry point for service/daemon control."""
    cmd = sys.argv[1] if len(sys.argv) > 1 else ""

    if IS_MACOS:
        actions = {
            "install": _macos_install,
            "start": _macos_start,
            "stop": _macos_stop,
            "remove": _macos_remove,
            "run": _run_foreground,
        }
        if cmd in actions:
            actions[cmd]()
        else:
            _show_help()
        return

    if cmd in ("start", "run"):
        _run_foreground()
    else:
        _show_help()


def _show_help() -> None:
    platform = "macOS" if IS_MACOS else sys.platform
    print(f"SnapSort — Background Service  ({platform})")
    print()
    print("Usage:")
    if IS_MACOS:
        print("  python -m snap_sort --service install   Create launchd plist")
        print("  python -m snap_sort --service start     Load the launchd agent")
        print("  python -m snap_sort --service stop      Unload the launchd agent")
        print("  python -m snap_sort --service remove    Remove the plist")
        print("  python -m snap_sort --service run       Run in foreground")
    else:
        print("  python -m snap_sort --service start     Run in foreground (Ctrl-C to stop)")


if __name__ == "__main__":
    main()
