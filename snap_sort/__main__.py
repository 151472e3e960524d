"""Entry point for SnapSort.

Usage:
    python -m snap_sort              Launch the tray application
    python -m snap_sort --service    Run headless / manage the background agent
                                     (launchd on macOS, foreground elsewhere)
"""

import sys


def main() -> None:
    """Launch the tray app or delegate to the service CLI."""
    if len(sys.argv) > 1 and sys.argv[1] in ("--service", "service"):
        from snap_sort.service import main as service_main

        # Shift the sub-command into argv[1] for the service CLI
        sys.argv = [sys.argv[0], *sys.argv[2:]]
        service_main()
    else:
        from snap_sort.app import App

        app = App()
        app.run()


if __name__ == "__main__":
    main()
