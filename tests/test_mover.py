import errno
import os
import threading
import time

import pytest

from snap_sort import mover as mover_mod
from snap_sort.mover import MoveError, MoveExecutor, MoveRecord, MoveStats, unique_destination


def test_unique_destination_without_collision(tmp_path):
    assert unique_destination("photo.png", tmp_path) == tmp_path / "photo.png"


def test_unique_destination_counts_up(tmp_path):
    (tmp_path / "photo.png").write_bytes(b"1")
    assert unique_destination("photo.png", tmp_path) == tmp_path / "photo (1).png"

    (tmp_path / "photo (1).png").write_bytes(b"2")
    assert unique_destination("photo.png", tmp_path) == tmp_path / "photo (2).png"


def test_unique_destination_for_extensionless_name(tmp_path):
    (tmp_path / "name").write_bytes(b"1")

    assert unique_destination("name", tmp_path) == tmp_path / "name (1)"


def test_move_creates_missing_folders(tmp_path):
    source = tmp_path / "shot.png"
    source.write_bytes(b"data")
    folder = tmp_path / "Screenshots" / "2024-03"

    dest = MoveExecutor().move(source, folder)

    assert dest == folder / "shot.png"
    assert dest.read_bytes() == b"data"
    assert not source.exists()


def test_move_never_overwrites(tmp_path):
    folder = tmp_path / "out"
    folder.mkdir()
    (folder / "shot.png").write_bytes(b"old")
    source = tmp_path / "shot.png"
    source.write_bytes(b"new")
    mover = MoveExecutor()

    dest = mover.move(source, folder)

    assert dest == folder / "shot (1).png"
    assert (folder / "shot.png").read_bytes() == b"old"
    assert dest.read_bytes() == b"new"
    assert mover.stats.total_moved == 1
    assert mover.stats.last_moved_file == str(dest)


def test_move_of_missing_source_raises_move_error(tmp_path):
    mover = MoveExecutor()

    with pytest.raises(MoveError):
        mover.move(tmp_path / "missing.png", tmp_path / "out")

    assert mover.stats.total_failed == 1
    assert mover.stats.last_moved_file == ""


def test_cross_device_failure_is_reported(tmp_path, monkeypatch):
    source = tmp_path / "shot.png"
    source.write_bytes(b"x")

    def fail(src, dst):
        raise OSError(errno.EXDEV, "Invalid cross-device link")

    monkeypatch.setattr(os, "rename", fail)

    with pytest.raises(MoveError) as info:
        MoveExecutor().move(source, tmp_path / "out")

    assert info.value.errno == errno.EXDEV
    assert "cross-device" in info.value.strerror
    assert source.exists()


def test_concurrent_moves_never_share_a_name(tmp_path, monkeypatch):
    src = tmp_path / "src"
    out = tmp_path / "out"
    src.mkdir()
    out.mkdir()
    (out / "photo.png").write_bytes(b"existing")
    (src / "photo.png").write_bytes(b"A")
    (src / "photo (1).png").write_bytes(b"B")

    real_rename = os.rename

    def slow_rename(source, dest):
        # Widen the gap between picking a name and claiming it
        time.sleep(0.1)
        real_rename(source, dest)

    monkeypatch.setattr(mover_mod.os, "rename", slow_rename)
    mover = MoveExecutor()
    start = threading.Barrier(2)
    results = []

    def worker(name):
        start.wait()
        results.append(mover.move(src / name, out))

    threads = [threading.Thread(target=worker, args=(n,)) for n in ("photo.png", "photo (1).png")]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert len(set(results)) == 2
    contents = sorted(p.read_bytes() for p in out.iterdir())
    assert contents == [b"A", b"B", b"existing"]
    assert mover.stats.total_moved == 2


def test_stats_summary_names_last_move():
    stats = MoveStats()
    assert stats.summary() == "0 moved, 0 failed"

    stats.record(MoveRecord(source="/a/shot.png", destination="/b/2024-03/shot.png", success=True))
    stats.record(MoveRecord(source="/a/x.png", error="denied"))

    assert stats.summary() == "1 moved, 1 failed, last: shot.png"
