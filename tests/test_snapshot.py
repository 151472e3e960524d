import os
from pathlib import Path

from snap_sort.snapshot import diff_entries, snapshot_entries


def test_snapshot_lists_visible_regular_files(tmp_path):
    (tmp_path / "a.png").write_bytes(b"a")
    (tmp_path / "b.txt").write_text("b")
    (tmp_path / ".hidden.png").write_bytes(b"h")
    (tmp_path / "Screenshots").mkdir()

    entries = snapshot_entries(tmp_path)

    assert entries == {tmp_path / "a.png", tmp_path / "b.txt"}


def test_snapshot_skips_symlinks(tmp_path):
    target = tmp_path / "real.png"
    target.write_bytes(b"x")
    try:
        os.symlink(target, tmp_path / "link.png")
    except (OSError, NotImplementedError):
        return  # symlinks unavailable on this platform

    assert snapshot_entries(tmp_path) == {target}


def test_snapshot_of_missing_directory_is_empty(tmp_path):
    assert snapshot_entries(tmp_path / "nope") == set()


def test_diff_returns_new_entries_sorted():
    previous = {Path("/d/b.png"), Path("/d/old.png")}
    current = {Path("/d/old.png"), Path("/d/c.png"), Path("/d/a.png"), Path("/d/b.png")}

    assert diff_entries(previous, current) == [Path("/d/a.png"), Path("/d/c.png")]


def test_diff_ignores_removed_entries():
    assert diff_entries({Path("/d/gone.png")}, set()) == []
