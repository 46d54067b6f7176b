from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from tymer.core.clock import Clock, SystemClock
from tymer.core.config import DEFAULT_CONFIG, TimerConfig
from tymer.core.models import Period, PeriodType, SessionState, create_period, default_session


logger = logging.getLogger(__name__)

ONE_MINUTE_MS = 60 * 1000


class TimerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    FINISHED = "finished"


class TimerEventKind(str, Enum):
    STARTED = "started"
    PAUSED = "paused"
    RESUMED = "resumed"
    RESET = "reset"
    PERIOD_CHANGED = "period_changed"
    DURATION_CHANGED = "duration_changed"
    ELAPSED_ADJUSTED = "elapsed_adjusted"
    PERIOD_EXTENDED = "period_extended"
    FINISHED = "finished"


@dataclass(frozen=True)
class TimerEvent:
    kind: TimerEventKind
    old_elapsed_ms: int | None = None
    new_elapsed_ms: int | None = None
    next_period_type: PeriodType | None = None


@dataclass(frozen=True)
class TimerSnapshot:
    state: TimerState
    current_period_index: int | None
    period_type: PeriodType | None
    next_period_type: PeriodType | None
    duration_ms: int
    user_intended_duration_ms: int
    elapsed_ms: int
    remaining_ms: int
    total_duration_ms: int
    total_elapsed_ms: int
    total_remaining_ms: int
    should_go_to_next_period: bool


def calculate_elapsed(now: int, started: int | None, paused: int | None) -> int:
    if started is None:
        return 0
    reference = paused if paused is not None else now
    return max(0, reference - started)


def round_down_to_base_minute(time_ms: int) -> tuple[int, int]:
    """Splits ``time_ms`` into whole minutes and the leftover milliseconds."""
    rounded_down = (time_ms // ONE_MINUTE_MS) * ONE_MINUTE_MS
    return rounded_down, time_ms - rounded_down


class PeriodTimer:
    """Wall-clock period timer, detached from any UI framework.

    Elapsed time is never stored as a counter. It is derived from
    ``timestamp_started`` (and ``timestamp_paused`` while paused), so every
    operation that changes elapsed time moves those timestamps instead.
    Operations whose preconditions do not hold are ignored.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        config: TimerConfig | None = None,
        state: SessionState | None = None,
        on_event: Callable[[TimerEvent], None] | None = None,
    ) -> None:
        self._clock = clock or SystemClock()
        self.config = config or DEFAULT_CONFIG
        self._session = state if state is not None else self._default_session()
        self._on_event = on_event

    # ---- read-only views ----

    @property
    def session(self) -> SessionState:
        return self._session

    @property
    def periods(self) -> list[Period]:
        return self._session.periods

    @property
    def current_period_index(self) -> int | None:
        return self._session.current_period_index

    @property
    def current_period(self) -> Period | None:
        index = self._session.current_period_index
        if index is None or not 0 <= index < len(self.periods):
            return None
        return self.periods[index]

    @property
    def next_period_type(self) -> PeriodType | None:
        index = self._session.current_period_index
        if index is None or index + 1 >= len(self.periods):
            return None
        return self.periods[index + 1].type

    @property
    def has_finished(self) -> bool:
        return self._session.finished or not self.periods

    @property
    def state(self) -> TimerState:
        if self.has_finished:
            return TimerState.FINISHED
        if self._session.current_period_index is None:
            return TimerState.IDLE
        if self._session.timestamp_paused is not None:
            return TimerState.PAUSED
        return TimerState.RUNNING

    @property
    def is_ticking(self) -> bool:
        return self._session.running

    @property
    def on_last_period(self) -> bool:
        index = self._session.current_period_index
        return index is not None and index + 1 >= len(self.periods)

    @property
    def total_duration_ms(self) -> int:
        return sum(period.duration_ms for period in self.periods)

    @property
    def total_elapsed_ms(self) -> int:
        return sum(period.elapsed_ms for period in self.periods)

    @property
    def total_remaining_ms(self) -> int:
        return sum(period.remaining_ms for period in self.periods)

    @property
    def should_go_to_next_period(self) -> bool:
        period = self.current_period
        return period is not None and period.duration_ms != period.user_intended_duration_ms

    @property
    def periods_modified_from_initial(self) -> bool:
        template = self.config.period_template
        if len(self.periods) != len(template):
            return True
        return any(
            period.type != period_type or period.note != note or period.duration_ms != duration
            for period, (duration, period_type, note) in zip(self.periods, template)
        )

    # ---- guards for UI controls ----

    @property
    def can_start_pause(self) -> bool:
        return not self.has_finished and self.total_remaining_ms > 0

    @property
    def can_move_to_next_period(self) -> bool:
        index = self._session.current_period_index
        return index is not None and index + 1 < len(self.periods)

    @property
    def can_move_to_previous_period(self) -> bool:
        index = self._session.current_period_index
        return index is not None and index > 0

    def can_adjust_elapsed(self, delta_ms: int) -> bool:
        period = self.current_period
        if period is None:
            return False
        return delta_ms > 0 or period.elapsed_ms > 0

    def can_adjust_duration(self, delta_ms: int) -> bool:
        period = self.current_period
        if period is None or self.has_finished:
            return False
        return delta_ms > 0 or period.duration_ms > period.elapsed_ms

    @property
    def can_change_type(self) -> bool:
        return self.current_period is not None

    @property
    def can_add_period(self) -> bool:
        return self.current_period is not None

    @property
    def can_remove_period(self) -> bool:
        return self.current_period is not None and len(self.periods) > 1

    @property
    def can_move_elapsed_to_previous(self) -> bool:
        period = self.current_period
        return self.can_move_to_previous_period and period is not None and period.elapsed_ms > 0

    @property
    def can_finish(self) -> bool:
        return self.current_period is not None and not self.has_finished

    def snapshot(self) -> TimerSnapshot:
        period = self.current_period
        return TimerSnapshot(
            state=self.state,
            current_period_index=self._session.current_period_index,
            period_type=period.type if period else None,
            next_period_type=self.next_period_type,
            duration_ms=period.duration_ms if period else 0,
            user_intended_duration_ms=period.user_intended_duration_ms if period else 0,
            elapsed_ms=period.elapsed_ms if period else 0,
            remaining_ms=period.remaining_ms if period else 0,
            total_duration_ms=self.total_duration_ms,
            total_elapsed_ms=self.total_elapsed_ms,
            total_remaining_ms=self.total_remaining_ms,
            should_go_to_next_period=self.should_go_to_next_period,
        )

    def to_dict(self) -> dict:
        return self._session.to_dict()

    # ---- run control ----

    def initialize(self) -> None:
        """Continues a session restored from storage, or prepares a new run."""
        session = self._session
        if self.has_finished or session.timestamp_paused is not None:
            return
        if session.running and self.current_period is not None:
            self._recompute()
            logger.info("Continuing running timer at period %s", session.current_period_index)
            return
        session.current_period_index = None
        session.timestamp_started = None
        session.timestamp_paused = None
        session.running = False
        self._emit(TimerEventKind.RESET)
        logger.info("Timer initialized, periods preserved")

    def start(self) -> None:
        session = self._session
        if self.has_finished or session.current_period_index is not None:
            logger.debug("start ignored in state %s", self.state.value)
            return
        session.current_period_index = 0
        session.timestamp_started = self._now()
        session.timestamp_paused = None
        session.running = True
        self._recompute()
        self._emit(TimerEventKind.STARTED)
        logger.info("Timer started")

    def pause(self) -> None:
        if self.state is not TimerState.RUNNING:
            logger.debug("pause ignored in state %s", self.state.value)
            return
        self._session.timestamp_paused = self._now()
        self._session.running = False
        self._recompute()
        self._emit(TimerEventKind.PAUSED)
        logger.info("Timer paused")

    def resume(self) -> None:
        session = self._session
        if self.state is not TimerState.PAUSED:
            logger.debug("resume ignored in state %s", self.state.value)
            return
        now = self._now()
        session.timestamp_started += now - session.timestamp_paused
        session.timestamp_paused = None
        session.running = True
        self._recompute()
        self._emit(TimerEventKind.RESUMED)
        logger.info("Timer resumed")

    def toggle(self) -> None:
        state = self.state
        if state is TimerState.RUNNING:
            self.pause()
        elif state is TimerState.PAUSED:
            self.resume()
        else:
            self.start()

    def reset(self) -> None:
        self._session = self._default_session()
        self._emit(TimerEventKind.RESET)
        logger.info("Timer reset")

    def tick(self) -> TimerSnapshot | None:
        if self.state is not TimerState.RUNNING:
            return None
        self._recompute()
        return self.snapshot()

    # ---- time adjustments ----

    def adjust_duration(self, delta_ms: int) -> None:
        period = self.current_period
        if period is None or self.has_finished:
            logger.debug("adjust_duration ignored without a current period")
            return
        self._recompute()
        new_duration = max(period.elapsed_ms, period.duration_ms + delta_ms)
        period.duration_ms = new_duration
        period.user_intended_duration_ms = new_duration
        period.refresh_remaining()
        self._recompute()
        self._emit(TimerEventKind.DURATION_CHANGED)
        logger.info("Duration adjusted by %d ms to %d ms", delta_ms, period.duration_ms)

    def adjust_elapsed(self, delta_ms: int) -> None:
        period = self.current_period
        if period is None:
            logger.debug("adjust_elapsed ignored without a current period")
            return
        self._recompute()
        old_elapsed = period.elapsed_ms
        # never shift further back than the elapsed time, so elapsed stays >= 0
        self._session.timestamp_started += min(old_elapsed, -delta_ms)
        self._recompute()
        self._emit(
            TimerEventKind.ELAPSED_ADJUSTED,
            old_elapsed_ms=old_elapsed,
            new_elapsed_ms=period.elapsed_ms,
        )
        logger.info("Elapsed adjusted from %d ms to %d ms", old_elapsed, period.elapsed_ms)

    # ---- navigation ----

    def move_to_next_period(self) -> None:
        session = self._session
        index = session.current_period_index
        if index is None or index + 1 >= len(self.periods):
            logger.debug("move_to_next_period ignored at index %s", index)
            return
        self._recompute()
        outgoing = self.periods[index]
        incoming = self.periods[index + 1]

        rounded_down, remainder = round_down_to_base_minute(outgoing.elapsed_ms)
        self._freeze(outgoing, rounded_down)

        # the seconds cut from the outgoing period are credited to the incoming one
        session.timestamp_started = self._reference_time() - incoming.elapsed_ms - remainder
        session.current_period_index = index + 1
        self._recompute()
        self._emit(TimerEventKind.PERIOD_CHANGED)
        logger.info("Moved to period %d (carried %d ms)", index + 1, remainder)

    def move_to_previous_period(self) -> None:
        session = self._session
        index = session.current_period_index
        if index is None or index == 0:
            logger.debug("move_to_previous_period ignored at index %s", index)
            return
        self._recompute()
        current = self.periods[index]
        previous = self.periods[index - 1]

        previous.duration_ms += self.config.extension_ms
        previous.finished = False
        current.finished = False
        session.timestamp_started = session.timestamp_started - previous.elapsed_ms + current.elapsed_ms
        session.current_period_index = index - 1
        self._recompute()
        self._emit(TimerEventKind.PERIOD_CHANGED)
        logger.info("Moved back to period %d", index - 1)

    def move_elapsed_time_to_previous_period(self) -> None:
        index = self._session.current_period_index
        if index is None or index == 0:
            logger.debug("move_elapsed_time_to_previous_period ignored at index %s", index)
            return
        self._recompute()
        elapsed = self.periods[index].elapsed_ms
        previous = self.periods[index - 1]
        previous.duration_ms += elapsed
        previous.elapsed_ms += elapsed
        previous.refresh_remaining()
        logger.info("Moving %d ms to period %d", elapsed, index - 1)
        self.adjust_elapsed(-elapsed)

    # ---- structural edits ----

    def change_type(self) -> None:
        period = self.current_period
        if period is None:
            return
        period.type = period.type.cycle(self._session.types)
        logger.info("Period %s type changed to %s", self._session.current_period_index, period.type.value)

    def add_period(self) -> None:
        session = self._session
        index = session.current_period_index
        if index is None or self.current_period is None:
            logger.debug("add_period ignored without a current period")
            return
        self._recompute()
        new_period = create_period(self.config.new_period_duration_ms, self.config.new_period_type)
        current = self.periods[index]

        if current.elapsed_ms > self.config.min_progress_ms:
            self.periods.insert(index + 1, new_period)
            logger.info("Added period after %d", index)
            self.move_to_next_period()
            return

        # too little progress to keep: the new period goes first and the
        # current one starts over once it is reached again
        self.periods.insert(index, new_period)
        session.timestamp_started = self._reference_time()
        current.elapsed_ms = 0
        current.finished = False
        current.refresh_remaining()
        self._recompute()
        self._emit(TimerEventKind.PERIOD_CHANGED)
        logger.info("Added period before %d, current period restarted", index)

    def remove_period(self) -> None:
        session = self._session
        index = session.current_period_index
        if index is None or len(self.periods) <= 1:
            logger.debug("remove_period ignored")
            return
        is_last = index == len(self.periods) - 1
        if is_last:
            self.move_to_previous_period()
        else:
            self.move_to_next_period()
        del self.periods[index]
        if not is_last:
            session.current_period_index -= 1
        logger.info("Removed period %d", index)

    def remove_period_by_index(self, period_index: int) -> None:
        session = self._session
        if self.has_finished or len(self.periods) <= 1 or not 0 <= period_index < len(self.periods):
            logger.debug("remove_period_by_index ignored for %d", period_index)
            return
        if session.current_period_index == period_index:
            self.remove_period()
            return
        del self.periods[period_index]
        if session.current_period_index is not None and session.current_period_index > period_index:
            session.current_period_index -= 1
        logger.info("Removed period %d", period_index)

    def add_period_at_index(self, after_index: int, period: Period | None = None) -> int | None:
        """Inserts a period after ``after_index`` and returns its index."""
        session = self._session
        if self.has_finished or not -1 <= after_index < len(self.periods):
            logger.debug("add_period_at_index ignored for %d", after_index)
            return None
        new_index = after_index + 1
        if period is None:
            period = create_period(self.config.new_period_duration_ms, self.config.new_period_type)
        self.periods.insert(new_index, period)
        if session.current_period_index is not None and session.current_period_index > after_index:
            session.current_period_index += 1
        logger.info("Added period at %d", new_index)
        return new_index

    def update_period(
        self,
        period_index: int,
        duration_ms: int | None = None,
        type: PeriodType | str | None = None,
        note: str | None = None,
    ) -> None:
        if self.has_finished or not 0 <= period_index < len(self.periods):
            logger.debug("update_period ignored for %d", period_index)
            return
        period = self.periods[period_index]
        if type is not None:
            period.type = PeriodType(type)
        if note is not None:
            period.note = note
        if duration_ms is None:
            return
        new_duration = max(period.elapsed_ms, int(duration_ms))
        period.duration_ms = new_duration
        period.user_intended_duration_ms = new_duration
        period.refresh_remaining()
        if period_index == self._session.current_period_index:
            self._recompute()
            self._emit(TimerEventKind.DURATION_CHANGED)

    def handle_timer_completion(self) -> None:
        session = self._session
        period = self.current_period
        if period is None or self.has_finished:
            logger.debug("handle_timer_completion ignored")
            return
        self._recompute()
        session.running = False
        rounded_down, _ = round_down_to_base_minute(period.elapsed_ms)
        self._freeze(period, rounded_down)

        session.timestamp_started = None
        session.timestamp_paused = None
        session.current_period_index = None
        session.finished = True
        # periods never meaningfully used are dropped from the record
        session.periods = [p for p in self.periods if p.elapsed_ms >= self.config.extension_ms]
        self._emit(TimerEventKind.FINISHED)
        logger.info("Timer finished with %d periods kept", len(session.periods))

    # ---- internals ----

    def _recompute(self) -> None:
        session = self._session
        period = self.current_period
        if period is None:
            return
        elapsed = calculate_elapsed(self._now(), session.timestamp_started, session.timestamp_paused)

        if elapsed > 0 and elapsed >= period.duration_ms:
            while elapsed >= period.duration_ms:
                period.duration_ms = max(period.elapsed_ms, period.duration_ms + self.config.extension_ms)
            period.elapsed_ms = elapsed
            period.refresh_remaining()
            self._emit(
                TimerEventKind.PERIOD_EXTENDED,
                new_elapsed_ms=elapsed,
                next_period_type=self.next_period_type,
            )
            logger.info("Period %s extended to %d ms", session.current_period_index, period.duration_ms)
            return

        period.elapsed_ms = elapsed
        period.refresh_remaining()

    @staticmethod
    def _freeze(period: Period, elapsed_ms: int) -> None:
        period.duration_ms = elapsed_ms
        period.elapsed_ms = elapsed_ms
        period.user_intended_duration_ms = elapsed_ms
        period.remaining_ms = 0
        period.finished = True

    def _reference_time(self) -> int:
        paused = self._session.timestamp_paused
        return paused if paused is not None else self._now()

    def _now(self) -> int:
        return self._clock.now()

    def _default_session(self) -> SessionState:
        return default_session(self.config.period_template, self.config.types)

    def _emit(self, kind: TimerEventKind, **details) -> None:
        if self._on_event is not None:
            self._on_event(TimerEvent(kind=kind, **details))
