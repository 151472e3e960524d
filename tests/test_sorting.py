import locale
import os
from datetime import datetime
from pathlib import Path

import pytest

from snap_sort.config import SortMode
from snap_sort.sorting import date_component, destination_folder, file_date, is_within_current_window


def test_monthly_destination_folder():
    folder = destination_folder(Path("/base"), datetime(2024, 3, 7, 15, 30), SortMode.MONTHLY, "Screenshots")

    assert folder == Path("/base/Screenshots/2024-03")


def test_daily_destination_folder():
    folder = destination_folder(Path("/base"), datetime(2024, 3, 7), SortMode.DAILY, "Captures")

    assert folder == Path("/base/Captures/2024-03-07")


def test_date_component_ignores_locale():
    previous = locale.setlocale(locale.LC_TIME)
    try:
        for name in ("de_DE.UTF-8", "ar_EG.UTF-8", "C"):
            try:
                locale.setlocale(locale.LC_TIME, name)
            except locale.Error:
                continue
            assert date_component(datetime(2024, 3, 7), SortMode.DAILY) == "2024-03-07"
    finally:
        locale.setlocale(locale.LC_TIME, previous)


@pytest.mark.parametrize(
    "shot, expected",
    [
        (datetime(2024, 3, 7, 0, 1), True),
        (datetime(2024, 3, 6, 23, 59), False),
        (datetime(2024, 3, 8, 0, 0), False),
    ],
)
def test_daily_window(shot, expected):
    now = datetime(2024, 3, 7, 23, 0)

    assert is_within_current_window(shot, SortMode.DAILY, now) is expected


@pytest.mark.parametrize(
    "shot, expected",
    [
        (datetime(2024, 3, 1, 0, 0), True),
        (datetime(2024, 3, 31, 23, 59), True),
        (datetime(2024, 2, 29, 23, 59), False),
        (datetime(2023, 3, 15), False),
    ],
)
def test_monthly_window(shot, expected):
    now = datetime(2024, 3, 7, 23, 0)

    assert is_within_current_window(shot, SortMode.MONTHLY, now) is expected


def test_file_date_uses_file_timestamps(tmp_path):
    shot = tmp_path / "shot.png"
    shot.write_bytes(b"x")
    stamp = datetime(2024, 3, 7, 12, 0).timestamp()
    os.utime(shot, (stamp, stamp))

    result = file_date(shot)

    # Creation time wins where the filesystem records it
    st = os.stat(shot)
    if getattr(st, "st_birthtime", None):
        assert result == datetime.fromtimestamp(st.st_birthtime)
    else:
        assert result == datetime(2024, 3, 7, 12, 0)


def test_file_date_of_missing_file_is_now(tmp_path):
    before = datetime.now()

    result = file_date(tmp_path / "missing.png")

    assert before <= result <= datetime.now()
