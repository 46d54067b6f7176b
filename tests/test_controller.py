from tymer.core.config import TimerConfig
from tymer.core.controller import TimerController, load_session
from tymer.core.models import SESSION_KEYS, PeriodType
from tymer.core.timer import TimerState
from tymer.data.storage import STATE_KEY, Storage
from tymer.notifications import event_log

MINUTE = 60_000

SHORT_CONFIG = TimerConfig(
    period_template=(
        (6 * MINUTE, PeriodType.WORK, ""),
        (6 * MINUTE, PeriodType.BREAK, ""),
    )
)


class FixedRandom:
    def __init__(self, value: int) -> None:
        self.value = value
        self.bounds: tuple[int, int] | None = None

    def randint(self, low: int, high: int) -> int:
        self.bounds = (low, high)
        return self.value


class RaisingAudioPlayer:
    def play(self, key: str) -> bool:
        raise RuntimeError("device lost")


def tick_through(controller, clock, until_ms, step_ms=1000):
    fired = []
    while clock.now() < until_ms:
        clock.advance(step_ms)
        window = controller.tick()
        if window is not None:
            fired.append(window.sound_key)
    return fired


def test_tick_plays_one_notification_per_window(clock, audio) -> None:
    rng = FixedRandom(17)
    controller = TimerController(audio=audio, clock=clock, rng=rng)
    emitted = []
    controller.notification_emitted.connect(emitted.append)
    controller.start()

    fired = tick_through(controller, clock, clock.now() + 7 * MINUTE)

    assert fired == emitted == ["elapsed_6"]
    assert audio.played == ["button", "notification_17", "elapsed_6"]
    assert rng.bounds == (1, 63)
    kinds = [(event.event_type, event.sound) for event in controller.event_log.events()]
    assert kinds == [
        (event_log.PLAYED, "button"),
        (event_log.SCHEDULED, "elapsed_6"),
        (event_log.PLAYED, "notification_17"),
        (event_log.PLAYED, "elapsed_6"),
    ]
    scheduled = controller.event_log.events()[1]
    assert scheduled.context["window"] == "elapsed_6"
    assert scheduled.context["chime"] == "notification_17"
    assert scheduled.context["period_type"] == "work"
    assert scheduled.context["remaining"] == 36 * MINUTE - scheduled.context["elapsed"]


def test_failed_playback_is_recorded(clock, failing_audio) -> None:
    controller = TimerController(audio=failing_audio, clock=clock)

    controller.start()

    event = controller.event_log.events()[-1]
    assert event.event_type == event_log.PLAY_FAILED
    assert event.context["retry"] is False
    assert controller.state == TimerState.RUNNING


def test_raising_player_does_not_break_tick(clock) -> None:
    controller = TimerController(audio=RaisingAudioPlayer(), clock=clock, rng=FixedRandom(1))
    controller.start()

    fired = tick_through(controller, clock, clock.now() + 7 * MINUTE)

    assert fired == ["elapsed_6"]
    failed = [e for e in controller.event_log.events() if e.event_type == event_log.PLAY_FAILED]
    assert [e.sound for e in failed] == ["button", "notification_1", "elapsed_6"]
    assert failed[-1].context["error"] == "device lost"


def test_period_end_is_signalled_once_per_extension(clock, audio) -> None:
    controller = TimerController(audio=audio, clock=clock, config=SHORT_CONFIG)
    ended = []
    controller.period_ended.connect(ended.append)
    controller.start()

    fired = tick_through(controller, clock, clock.now() + 6 * MINUTE + 5_000)

    assert ended == ["break"]
    assert fired == ["timesup_break"]
    period_end = [e for e in controller.event_log.events() if e.event_type == event_log.PERIOD_END]
    assert [e.sound for e in period_end] == ["timesup_break"]


def test_pause_clears_scheduler_and_stops_ticking(clock, audio) -> None:
    controller = TimerController(audio=audio, clock=clock)
    controller.start()
    assert controller.is_ticking is True
    clock.advance(6 * MINUTE)
    controller.tick()
    assert controller.scheduler.overlapping_group

    controller.pause()

    assert controller.scheduler.overlapping_group == {}
    assert controller.is_ticking is False
    assert controller.tick() is None

    controller.resume()
    assert controller.is_ticking is True
    assert audio.played == ["button", "button", "button"]


def test_completion_plays_finish_sound(clock, audio) -> None:
    controller = TimerController(audio=audio, clock=clock, config=SHORT_CONFIG)
    finished = []
    controller.timer_finished.connect(lambda: finished.append(True))
    controller.start()
    clock.advance(2 * MINUTE)

    controller.handle_timer_completion()

    assert finished == [True]
    assert audio.played[-1] == "timerFinished"
    assert controller.state == TimerState.FINISHED
    assert controller.is_ticking is False


def test_session_survives_restart(tmp_path, clock, audio) -> None:
    storage = Storage(tmp_path / "tymer.db")
    storage.init_db()
    controller = TimerController(storage=storage, audio=audio, clock=clock)
    controller.start()
    clock.advance(3 * MINUTE)
    controller.tick()

    clock.advance(2 * MINUTE)
    restored = TimerController(storage=storage, audio=audio, clock=clock)
    restored.initialize()

    assert restored.state == TimerState.RUNNING
    assert restored.snapshot().elapsed_ms == 5 * MINUTE
    assert restored.is_ticking is True
    assert len(restored.event_log) == len(controller.event_log)


def test_corrupt_state_falls_back_to_template(tmp_path) -> None:
    storage = Storage(tmp_path / "tymer.db")
    storage.init_db()
    broken = {key: None for key in SESSION_KEYS}
    broken.update(periods="nope", types=["work"], running=True)
    storage.set_setting(STATE_KEY, broken)

    session = load_session(storage)

    assert len(session.periods) == 22
    assert session.current_period_index is None


def test_period_sums_track_changes(clock) -> None:
    controller = TimerController(clock=clock, config=SHORT_CONFIG)
    controller.start()
    controller.adjust_duration(2 * MINUTE)

    sums = controller.period_sums()

    assert sums[PeriodType.WORK]["original"].duration_ms == 6 * MINUTE
    assert sums[PeriodType.WORK]["current"].duration_ms == 8 * MINUTE


class ChimelessAudioPlayer:
    def __init__(self) -> None:
        self.played: list[str] = []

    def play(self, key: str) -> bool:
        self.played.append(key)
        return not key.startswith("notification_")


def test_missing_chime_still_plays_announcement(clock) -> None:
    audio = ChimelessAudioPlayer()
    rng = FixedRandom(3)
    config = TimerConfig(notification_sound_count=5)
    controller = TimerController(audio=audio, clock=clock, config=config, rng=rng)
    controller.start()

    tick_through(controller, clock, clock.now() + 7 * MINUTE)

    assert audio.played == ["button", "notification_3", "elapsed_6"]
    assert rng.bounds == (1, 5)
    outcomes = [(e.event_type, e.sound) for e in controller.event_log.events()[-2:]]
    assert outcomes == [(event_log.PLAY_FAILED, "notification_3"), (event_log.PLAYED, "elapsed_6")]
