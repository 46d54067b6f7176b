import pytest

from tymer.core import assets


@pytest.fixture(autouse=True)
def _clear_cache():
    assets.clear_cache()
    yield
    assets.clear_cache()


@pytest.mark.parametrize(
    ("key", "expected"),
    [
        ("elapsed_6", "elapsed/006.webm"),
        ("remaining_24", "remaining/024.webm"),
        ("overtime_60", "overtime/060.webm"),
        ("overtime_break_12", "overtime/break/012.webm"),
        ("timesup_break", "timesup/break.webm"),
        ("timesup_finish", "timesup/finish.webm"),
        ("button", "button.webm"),
        ("notification_3", "notifications/03.ogg"),
        ("unknown", None),
    ],
)
def test_relative_sound_path(key, expected) -> None:
    assert assets.relative_sound_path(key) == expected


def test_sound_key_from_path() -> None:
    assert assets.sound_key_from_path("overtime/break/012.webm") == "overtime_break_12"
    assert assets.sound_key_from_path("elapsed/006.webm") == "elapsed_6"
    assert assets.sound_key_from_path("timesup/work.webm") == "timesup_work"


@pytest.mark.parametrize(
    "key",
    ["button", "timerFinished", "notification_3", "notification_63", "elapsed_108", "overtime_break_6", "timesup_fun"],
)
def test_sound_key_from_path_inverts_relative_path(key) -> None:
    assert assets.sound_key_from_path(assets.relative_sound_path(key)) == key
    assert assets.sound_key_from_path(f"/opt/tymer/sounds/{assets.relative_sound_path(key)}") == key


def test_sound_key_from_path_rejects_unknown_file() -> None:
    with pytest.raises(ValueError):
        assets.sound_key_from_path("jingle.webm")


def test_get_sound_path_checks_disk(tmp_path) -> None:
    (tmp_path / "elapsed").mkdir()
    (tmp_path / "elapsed" / "006.webm").write_bytes(b"")

    assert assets.get_sound_path("elapsed_6", tmp_path) == tmp_path / "elapsed" / "006.webm"
    assert assets.get_sound_path("elapsed_12", tmp_path) is None
    assert assets.sound_exists("unknown", tmp_path) is False
