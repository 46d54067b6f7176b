from __future__ import annotations

import logging
import random
from typing import Any

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from tymer.audio.player import AudioPlayer, NullAudioPlayer
from tymer.core import stats
from tymer.core.clock import Clock, SystemClock
from tymer.core.config import DEFAULT_CONFIG, TimerConfig
from tymer.core.models import SESSION_KEYS, InvalidStateError, Period, PeriodType, SessionState, default_session
from tymer.core.timer import PeriodTimer, TimerEvent, TimerEventKind, TimerSnapshot, TimerState
from tymer.data.storage import Storage
from tymer.notifications import event_log as events
from tymer.notifications.catalog import NotificationWindow
from tymer.notifications.event_log import SoundEventLog
from tymer.notifications.scheduler import NotificationScheduler


logger = logging.getLogger(__name__)

_CLEARING_EVENTS = {
    TimerEventKind.STARTED,
    TimerEventKind.PAUSED,
    TimerEventKind.RESUMED,
    TimerEventKind.RESET,
    TimerEventKind.PERIOD_CHANGED,
    TimerEventKind.FINISHED,
}
_BUTTON_EVENTS = {TimerEventKind.STARTED, TimerEventKind.PAUSED, TimerEventKind.RESUMED}


def load_session(storage: Storage | None, config: TimerConfig = DEFAULT_CONFIG) -> SessionState:
    """Stored session if it has the expected shape, otherwise the template default."""
    if storage is not None:
        raw = storage.load_state(SESSION_KEYS)
        if raw is not None:
            try:
                return SessionState.from_dict(raw)
            except InvalidStateError as exc:
                logger.warning("Discarding stored timer state: %s", exc)
    return default_session(config.period_template, config.types)


class TimerController(QObject):
    """Owns the timer engine and the notification scheduler, and drives both from one tick."""

    state_changed = pyqtSignal()
    notification_emitted = pyqtSignal(str)
    period_ended = pyqtSignal(str)
    timer_finished = pyqtSignal()

    def __init__(
        self,
        storage: Storage | None = None,
        audio: AudioPlayer | None = None,
        clock: Clock | None = None,
        config: TimerConfig | None = None,
        event_log: SoundEventLog | None = None,
        rng: random.Random | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._rng = rng or random.Random()
        self.config = config or DEFAULT_CONFIG
        self._clock = clock or SystemClock()
        self._storage = storage
        self.audio: AudioPlayer = audio or NullAudioPlayer()
        self.event_log = event_log if event_log is not None else SoundEventLog(storage=storage)
        self.scheduler = NotificationScheduler(self.config.window_size_ms, self.config.catalog)
        self.timer = PeriodTimer(
            clock=self._clock,
            config=self.config,
            state=load_session(storage, self.config),
            on_event=self._on_timer_event,
        )
        self._tick_timer = QTimer(self)
        self._tick_timer.setInterval(self.config.tick_interval_ms)
        self._tick_timer.timeout.connect(self.tick)

    # ---- published values ----

    @property
    def state(self) -> TimerState:
        return self.timer.state

    @property
    def periods(self) -> list[Period]:
        return self.timer.periods

    @property
    def is_ticking(self) -> bool:
        return self._tick_timer.isActive()

    def snapshot(self) -> TimerSnapshot:
        return self.timer.snapshot()

    def period_sums(self) -> dict[PeriodType, dict[str, stats.TypeSums]]:
        initial = default_session(self.config.period_template, self.config.types).periods
        return stats.period_sums(initial, self.timer.periods, self.config.types)

    # ---- operations ----

    def initialize(self) -> None:
        self.timer.initialize()
        self._after_change()

    def start(self) -> None:
        self.timer.start()
        self._after_change()

    def pause(self) -> None:
        self.timer.pause()
        self._after_change()

    def resume(self) -> None:
        self.timer.resume()
        self._after_change()

    def toggle(self) -> None:
        self.timer.toggle()
        self._after_change()

    def reset(self) -> None:
        self.timer.reset()
        self._after_change()

    def adjust_duration(self, delta_ms: int) -> None:
        self.timer.adjust_duration(delta_ms)
        self._after_change()

    def adjust_elapsed(self, delta_ms: int) -> None:
        self.timer.adjust_elapsed(delta_ms)
        self._after_change()

    def move_to_next_period(self) -> None:
        self.timer.move_to_next_period()
        self._after_change()

    def move_to_previous_period(self) -> None:
        self.timer.move_to_previous_period()
        self._after_change()

    def move_elapsed_time_to_previous_period(self) -> None:
        self.timer.move_elapsed_time_to_previous_period()
        self._after_change()

    def change_type(self) -> None:
        self.timer.change_type()
        self._after_change()

    def add_period(self) -> None:
        self.timer.add_period()
        self._after_change()

    def remove_period(self) -> None:
        self.timer.remove_period()
        self._after_change()

    def add_period_at_index(self, after_index: int, period: Period | None = None) -> int | None:
        new_index = self.timer.add_period_at_index(after_index, period)
        self._after_change()
        return new_index

    def remove_period_by_index(self, period_index: int) -> None:
        self.timer.remove_period_by_index(period_index)
        self._after_change()

    def update_period(self, period_index: int, **changes: Any) -> None:
        self.timer.update_period(period_index, **changes)
        self._after_change()

    def handle_timer_completion(self) -> None:
        self.timer.handle_timer_completion()
        self._after_change()

    def tick(self) -> NotificationWindow | None:
        snapshot = self.timer.tick()
        if snapshot is None:
            if self.timer.state is TimerState.PAUSED:
                self.scheduler.check(0, 0, PeriodType.WORK, is_paused=True)
            self._sync_ticking()
            return None

        window = self.scheduler.check(
            snapshot.elapsed_ms,
            snapshot.user_intended_duration_ms,
            snapshot.period_type,
            is_paused=False,
            next_period_type=snapshot.next_period_type,
        )
        if window is not None:
            self._notify(window)
        self._save()
        self.state_changed.emit()
        return window

    # ---- internals ----

    def _after_change(self) -> None:
        self._sync_ticking()
        self._save()
        self.state_changed.emit()

    def _sync_ticking(self) -> None:
        if self.timer.is_ticking and not self._tick_timer.isActive():
            self._tick_timer.start()
        elif not self.timer.is_ticking and self._tick_timer.isActive():
            self._tick_timer.stop()

    def _save(self) -> None:
        if self._storage:
            self._storage.save_state(self.timer.to_dict())

    def _on_timer_event(self, event: TimerEvent) -> None:
        if event.kind in _CLEARING_EVENTS:
            self.scheduler.clear()
        elif event.kind is TimerEventKind.DURATION_CHANGED:
            self.scheduler.on_duration_change()
        elif event.kind is TimerEventKind.ELAPSED_ADJUSTED:
            self.scheduler.on_elapsed_adjustment(event.new_elapsed_ms, event.old_elapsed_ms)
        elif event.kind is TimerEventKind.PERIOD_EXTENDED:
            next_type = event.next_period_type.value if event.next_period_type else "finish"
            self.event_log.record(self._clock.now(), events.PERIOD_END, f"timesup_{next_type}", **self._period_context())
            self.period_ended.emit(next_type)

        if event.kind in _BUTTON_EVENTS:
            self._play("button")
        elif event.kind is TimerEventKind.FINISHED:
            self._play("timerFinished")
            self.timer_finished.emit()

    def _notify(self, window: NotificationWindow) -> None:
        """Plays a random chime, then the announcement queued behind it."""
        context = self._period_context()
        chime = f"notification_{self._rng.randint(1, self.config.notification_sound_count)}"
        self.event_log.record(
            self._clock.now(), events.SCHEDULED, window.sound_key, window=window.key, chime=chime, **context
        )
        logger.info("Notification %s (%s) after %s", window.sound_key, window.key, chime)
        self.notification_emitted.emit(window.sound_key)
        # a missing chime never holds back the announcement
        self._play(chime, context)
        self._play(window.sound_key, context)

    def _play(self, key: str, context: dict[str, Any] | None = None) -> bool:
        """Hands ``key`` to the audio player; failures are recorded, never raised."""
        context = context if context is not None else self._period_context()
        error: str | None = None
        try:
            played = self.audio.play(key)
        except Exception as exc:  # noqa: BLE001 - playback must not break the tick
            logger.warning("Audio player raised for %s", key, exc_info=True)
            played = False
            error = str(exc)
        if played:
            self.event_log.record(self._clock.now(), events.PLAYED, key, **context)
        else:
            logger.warning("Could not play %s", key)
            self.event_log.record(
                self._clock.now(),
                events.PLAY_FAILED,
                key,
                error=error or "playback failed",
                retry=False,
                **context,
            )
        return played

    def _period_context(self) -> dict[str, Any]:
        period = self.timer.current_period
        if period is None:
            return {}
        intended = period.user_intended_duration_ms
        elapsed = period.elapsed_ms
        return {
            "period_type": period.type.value,
            "period_duration": intended,
            "elapsed": elapsed,
            "remaining": max(0, intended - elapsed),
            "overtime": max(0, elapsed - intended),
            "period_index": self.timer.current_period_index,
        }
