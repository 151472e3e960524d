import threading

import pytest

from snap_sort.watcher import PathWatcher, WatchError


def test_missing_directory_is_unopenable(tmp_path):
    watcher = PathWatcher(lambda: None)

    with pytest.raises(WatchError):
        watcher.start(tmp_path / "missing")

    assert watcher.is_running is False


def test_file_is_not_a_watchable_directory(tmp_path):
    plain = tmp_path / "file.txt"
    plain.write_text("x")

    with pytest.raises(WatchError):
        PathWatcher(lambda: None).start(plain)


def test_new_file_fires_callback(tmp_path):
    fired = threading.Event()
    watcher = PathWatcher(fired.set)
    watcher.start(tmp_path)
    try:
        assert watcher.is_running
        (tmp_path / "shot.png").write_bytes(b"x")
        assert fired.wait(timeout=10)
    finally:
        watcher.stop()

    assert watcher.is_running is False


def test_stop_is_idempotent_and_restart_replaces(tmp_path):
    other = tmp_path / "other"
    other.mkdir()
    watcher = PathWatcher(lambda: None)

    watcher.stop()
    watcher.start(tmp_path)
    watcher.start(other)
    try:
        assert watcher.directory == other
        assert watcher.is_running
    finally:
        watcher.stop()
        watcher.stop()
