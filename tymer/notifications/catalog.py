from __future__ import annotations

"""Static description of the notification windows a period can produce."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from tymer.core.models import PeriodType


logger = logging.getLogger(__name__)

MINUTE_MS = 60_000


class WindowKind(str, Enum):
    ELAPSED = "elapsed"
    REMAINING = "remaining"
    TIMESUP = "timesup"
    OVERTIME = "overtime"

    @property
    def priority(self) -> int:
        return _PRIORITIES[self]


_PRIORITIES = {
    WindowKind.ELAPSED: 1,
    WindowKind.REMAINING: 2,
    WindowKind.TIMESUP: 3,
    WindowKind.OVERTIME: 4,
}


@dataclass(frozen=True)
class NotificationWindow:
    kind: WindowKind
    minutes: int | None
    target_ms: int
    key: str
    sound_key: str

    @property
    def priority(self) -> int:
        return self.kind.priority


@dataclass(frozen=True)
class SoundCatalog:
    """Minute offsets with a recorded announcement, per category."""

    elapsed: tuple[int, ...]
    remaining: tuple[int, ...]
    overtime: tuple[int, ...]
    overtime_break: tuple[int, ...]

    @property
    def max_remaining_minutes(self) -> int:
        return max(self.remaining, default=0)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], fallback: SoundCatalog | None = None) -> SoundCatalog:
        base = fallback or DEFAULT_CATALOG
        values = {}
        for name in ("elapsed", "remaining", "overtime", "overtime_break"):
            minutes = raw.get(name)
            if minutes is None:
                values[name] = getattr(base, name)
                continue
            try:
                values[name] = tuple(sorted(int(m) for m in minutes if int(m) > 0))
            except (TypeError, ValueError):
                logger.warning("Ignoring malformed %s catalog entry: %r", name, minutes)
                values[name] = getattr(base, name)
        return cls(**values)

    def build_windows(
        self,
        intended_duration_ms: int,
        period_type: PeriodType | str,
        next_period_type: PeriodType | str | None = None,
    ) -> list[NotificationWindow]:
        """Every window a period of this intended duration and type can open."""
        period_type = PeriodType(period_type)
        windows = [
            NotificationWindow(
                kind=WindowKind.ELAPSED,
                minutes=minutes,
                target_ms=minutes * MINUTE_MS,
                key=f"elapsed_{minutes}",
                sound_key=f"elapsed_{minutes}",
            )
            for minutes in self.elapsed
        ]

        for minutes in self.remaining:
            target = intended_duration_ms - minutes * MINUTE_MS
            if target < 0:
                continue
            windows.append(
                NotificationWindow(
                    kind=WindowKind.REMAINING,
                    minutes=minutes,
                    target_ms=target,
                    key=f"remaining_{minutes}",
                    sound_key=f"remaining_{minutes}",
                )
            )

        timesup_sound = PeriodType(next_period_type).value if next_period_type else "finish"
        windows.append(
            NotificationWindow(
                kind=WindowKind.TIMESUP,
                minutes=None,
                target_ms=intended_duration_ms,
                key="timesup",
                sound_key=f"timesup_{timesup_sound}",
            )
        )

        is_break = period_type is PeriodType.BREAK
        for minutes in self.overtime_break if is_break else self.overtime:
            windows.append(
                NotificationWindow(
                    kind=WindowKind.OVERTIME,
                    minutes=minutes,
                    target_ms=intended_duration_ms + minutes * MINUTE_MS,
                    key=f"overtime_{minutes}",
                    sound_key=f"overtime_break_{minutes}" if is_break else f"overtime_{minutes}",
                )
            )
        return windows


DEFAULT_CATALOG = SoundCatalog(
    elapsed=(6, 12, 24, 36, 48, 60, 72, 84, 96, 108),
    remaining=(6, 12, 24),
    overtime=(6, 12, 18, 24, 30, 36, 42, 48, 60),
    overtime_break=(6, 12, 18, 24, 30, 36, 42, 48),
)
