from tymer.core.models import SESSION_KEYS
from tymer.data.storage import STATE_KEY, Storage
from tymer.notifications.event_log import SoundEvent


def test_init_db_creates_tables(tmp_path) -> None:
    db = tmp_path / "tymer.db"
    storage = Storage(db)
    storage.init_db()
    storage.init_db()
    assert db.exists()


def test_set_get_setting(tmp_path) -> None:
    storage = Storage(tmp_path / "tymer.db")
    storage.init_db()
    storage.set_setting("settings", {"window_size_ms": 3000})
    storage.set_setting("settings", {"window_size_ms": 4000})
    assert storage.get_setting("settings") == {"window_size_ms": 4000}
    assert storage.get_setting("missing", "x") == "x"


def test_save_and_load_state(tmp_path) -> None:
    storage = Storage(tmp_path / "tymer.db")
    storage.init_db()
    snapshot = {key: None for key in SESSION_KEYS}
    snapshot.update(periods=[], types=["work"], running=False)

    storage.save_state(snapshot)

    assert storage.load_state(SESSION_KEYS) == snapshot


def test_load_state_rejects_incomplete_snapshot(tmp_path) -> None:
    storage = Storage(tmp_path / "tymer.db")
    storage.init_db()
    assert storage.load_state(SESSION_KEYS) is None

    storage.save_state({"periods": []})
    assert storage.load_state(SESSION_KEYS) is None

    storage.set_setting(STATE_KEY, [1, 2, 3])
    assert storage.load_state(SESSION_KEYS) is None


def test_clear_state(tmp_path) -> None:
    storage = Storage(tmp_path / "tymer.db")
    storage.init_db()
    storage.save_state({"periods": []})

    storage.clear_state()

    assert storage.get_setting(STATE_KEY) is None


def test_sound_events_are_trimmed_to_newest(tmp_path) -> None:
    storage = Storage(tmp_path / "tymer.db")
    storage.init_db()
    for i in range(5):
        storage.append_sound_event(SoundEvent(i, "played", f"elapsed_{i}", {"elapsed": i}), keep=3)

    events = storage.list_sound_events()

    assert [event.timestamp_ms for event in events] == [2, 3, 4]
    assert events[-1].context == {"elapsed": 4}
    assert [event.sound for event in storage.list_sound_events(limit=1)] == ["elapsed_4"]


def test_trim_and_clear_sound_events(tmp_path) -> None:
    storage = Storage(tmp_path / "tymer.db")
    storage.init_db()
    for i in range(4):
        storage.append_sound_event(SoundEvent(i, "scheduled", "timesup_break"))

    storage.trim_sound_events(2)
    assert len(storage.list_sound_events()) == 2

    storage.clear_sound_events()
    assert storage.list_sound_events() == []
