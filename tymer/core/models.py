from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable


class InvalidStateError(ValueError):
    """Persisted data does not have the expected shape."""


class PeriodType(str, Enum):
    WORK = "work"
    BREAK = "break"
    FUN = "fun"

    def cycle(self, types: Iterable[PeriodType]) -> PeriodType:
        order = list(types)
        if self not in order:
            return order[0]
        return order[(order.index(self) + 1) % len(order)]


PERIOD_KEYS = (
    "duration_ms",
    "elapsed_ms",
    "remaining_ms",
    "finished",
    "user_intended_duration_ms",
    "type",
)

SESSION_KEYS = (
    "current_period_index",
    "running",
    "timestamp_paused",
    "timestamp_started",
    "types",
    "periods",
)


@dataclass
class Period:
    duration_ms: int
    elapsed_ms: int = 0
    remaining_ms: int = 0
    finished: bool = False
    user_intended_duration_ms: int = 0
    type: PeriodType = PeriodType.WORK
    note: str = ""

    def refresh_remaining(self) -> None:
        self.remaining_ms = max(0, self.duration_ms - self.elapsed_ms)

    def to_dict(self) -> dict[str, Any]:
        return {
            "duration_ms": self.duration_ms,
            "elapsed_ms": self.elapsed_ms,
            "remaining_ms": self.remaining_ms,
            "finished": self.finished,
            "user_intended_duration_ms": self.user_intended_duration_ms,
            "type": self.type.value,
            "note": self.note,
        }

    @classmethod
    def from_dict(cls, raw: Any) -> Period:
        if not isinstance(raw, dict):
            raise InvalidStateError(f"Period must be a mapping, got {type(raw).__name__}")
        missing = [key for key in PERIOD_KEYS if key not in raw]
        if missing:
            raise InvalidStateError(f"Period is missing keys: {', '.join(missing)}")
        try:
            return cls(
                duration_ms=_as_int(raw["duration_ms"]),
                elapsed_ms=_as_int(raw["elapsed_ms"]),
                remaining_ms=_as_int(raw["remaining_ms"]),
                finished=bool(raw["finished"]),
                user_intended_duration_ms=_as_int(raw["user_intended_duration_ms"]),
                type=PeriodType(raw["type"]),
                note=str(raw.get("note") or ""),
            )
        except ValueError as exc:
            raise InvalidStateError(str(exc)) from exc


def create_period(duration_ms: int, type: PeriodType | str, note: str = "") -> Period:
    return Period(
        duration_ms=duration_ms,
        elapsed_ms=0,
        remaining_ms=duration_ms,
        finished=False,
        user_intended_duration_ms=duration_ms,
        type=PeriodType(type),
        note=note,
    )


@dataclass
class SessionState:
    periods: list[Period] = field(default_factory=list)
    current_period_index: int | None = None
    timestamp_started: int | None = None
    timestamp_paused: int | None = None
    running: bool = False
    types: tuple[PeriodType, ...] = (PeriodType.WORK, PeriodType.BREAK, PeriodType.FUN)
    finished: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_period_index": self.current_period_index,
            "running": self.running,
            "timestamp_paused": self.timestamp_paused,
            "timestamp_started": self.timestamp_started,
            "types": [t.value for t in self.types],
            "periods": [period.to_dict() for period in self.periods],
            "finished": self.finished,
        }

    @classmethod
    def from_dict(cls, raw: Any) -> SessionState:
        if not isinstance(raw, dict):
            raise InvalidStateError("Session must be a mapping")
        missing = [key for key in SESSION_KEYS if key not in raw]
        if missing:
            raise InvalidStateError(f"Session is missing keys: {', '.join(missing)}")
        if not isinstance(raw["periods"], list) or not isinstance(raw["types"], list):
            raise InvalidStateError("Session periods and types must be lists")
        try:
            types = tuple(PeriodType(value) for value in raw["types"])
        except ValueError as exc:
            raise InvalidStateError(str(exc)) from exc
        if not types:
            raise InvalidStateError("Session types must not be empty")
        periods = [Period.from_dict(item) for item in raw["periods"]]
        index = _as_optional_int(raw["current_period_index"])
        if index is not None and not 0 <= index < len(periods):
            raise InvalidStateError(f"Current period index {index} is out of range")
        started = _as_optional_int(raw["timestamp_started"])
        if index is not None and started is None:
            raise InvalidStateError("A current period requires a start timestamp")
        if "finished" in raw:
            finished = bool(raw["finished"])
        else:
            # snapshots without the flag: a completed run has no current period left
            finished = index is None and (not periods or periods[-1].finished)
        if finished and index is not None:
            raise InvalidStateError("A finished session cannot have a current period")
        return cls(
            periods=periods,
            current_period_index=index,
            timestamp_started=started,
            timestamp_paused=_as_optional_int(raw["timestamp_paused"]),
            running=bool(raw["running"]),
            types=types,
            finished=finished,
        )


def default_session(
    template: Iterable[tuple[int, PeriodType, str]],
    types: Iterable[PeriodType] = (PeriodType.WORK, PeriodType.BREAK, PeriodType.FUN),
) -> SessionState:
    """Fresh, idle session built from a ``(duration_ms, type, note)`` template."""
    return SessionState(
        periods=[create_period(duration, period_type, note) for duration, period_type, note in template],
        types=tuple(types),
    )


def _as_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidStateError(f"Expected a number, got {value!r}")
    return int(value)


def _as_optional_int(value: Any) -> int | None:
    if value is None:
        return None
    return _as_int(value)
