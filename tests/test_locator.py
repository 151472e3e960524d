from snap_sort import locator
from snap_sort.locator import ScreenshotLocationResolver


def test_override_wins_when_it_exists(tmp_path):
    resolver = ScreenshotLocationResolver(str(tmp_path))

    assert resolver.current_screenshot_directory() == tmp_path


def test_missing_override_falls_through(tmp_path, monkeypatch):
    monkeypatch.setattr(locator, "IS_MACOS", False)
    monkeypatch.setattr(locator, "get_pictures_dir", lambda: tmp_path / "Pictures")
    monkeypatch.setattr(locator, "get_desktop_dir", lambda: tmp_path / "Desktop")

    resolver = ScreenshotLocationResolver(str(tmp_path / "gone"))

    assert resolver.current_screenshot_directory() == tmp_path / "Desktop"


def test_pictures_screenshots_folder_used_when_present(tmp_path, monkeypatch):
    shots = tmp_path / "Pictures" / "Screenshots"
    shots.mkdir(parents=True)
    monkeypatch.setattr(locator, "IS_MACOS", False)
    monkeypatch.setattr(locator, "get_pictures_dir", lambda: tmp_path / "Pictures")

    assert ScreenshotLocationResolver().current_screenshot_directory() == shots


def test_macos_location_preference(tmp_path, monkeypatch):
    custom = tmp_path / "Captures"
    custom.mkdir()
    monkeypatch.setattr(locator, "IS_MACOS", True)
    monkeypatch.setattr(locator, "read_screencapture_location", lambda: str(custom))

    assert ScreenshotLocationResolver().current_screenshot_directory() == custom


def test_macos_invalid_location_falls_back_to_desktop(tmp_path, monkeypatch):
    monkeypatch.setattr(locator, "IS_MACOS", True)
    monkeypatch.setattr(locator, "read_screencapture_location", lambda: str(tmp_path / "missing"))
    monkeypatch.setattr(locator, "get_desktop_dir", lambda: tmp_path / "Desktop")

    assert ScreenshotLocationResolver().current_screenshot_directory() == tmp_path / "Desktop"


def test_invalid_override_is_reported_once(tmp_path, monkeypatch, caplog):
    monkeypatch.setattr(locator, "IS_MACOS", False)
    monkeypatch.setattr(locator, "get_pictures_dir", lambda: tmp_path / "Pictures")
    monkeypatch.setattr(locator, "get_desktop_dir", lambda: tmp_path / "Desktop")
    resolver = ScreenshotLocationResolver(str(tmp_path / "gone"))

    with caplog.at_level("WARNING", logger="snap_sort.locator"):
        resolver.current_screenshot_directory()
        resolver.current_screenshot_directory()

    assert len([r for r in caplog.records if "override" in r.getMessage()]) == 1
