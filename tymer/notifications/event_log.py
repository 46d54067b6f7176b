from __future__ import annotations

"""Ring buffer of notification decisions and playback outcomes."""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from tymer.data.storage import Storage


logger = logging.getLogger(__name__)

MAX_EVENTS = 1000

SCHEDULED = "scheduled"
PLAYED = "played"
PLAY_FAILED = "play_failed"
PERIOD_END = "period_end"


@dataclass(frozen=True)
class SoundEvent:
    timestamp_ms: int
    event_type: str
    sound: str
    context: dict[str, Any] = field(default_factory=dict)

    @property
    def time(self) -> str:
        return datetime.fromtimestamp(self.timestamp_ms / 1000).strftime("%H:%M:%S")


class SoundEventLog:
    def __init__(self, max_events: int = MAX_EVENTS, storage: Storage | None = None) -> None:
        self.max_events = max_events
        self._storage = storage
        self._events: deque[SoundEvent] = deque(maxlen=max_events)
        if storage is not None:
            self._events.extend(storage.list_sound_events(limit=max_events))

    def __len__(self) -> int:
        return len(self._events)

    def record(self, timestamp_ms: int, event_type: str, sound: str, **context: Any) -> SoundEvent:
        event = SoundEvent(timestamp_ms=timestamp_ms, event_type=event_type, sound=sound, context=context)
        self._events.append(event)
        if self._storage is not None:
            self._storage.append_sound_event(event, keep=self.max_events)
        logger.info("Sound event: %s/%s %s", event_type, sound, context or "")
        return event

    def events(self) -> list[SoundEvent]:
        return list(self._events)

    def recent(self, limit: int | None = None) -> list[SoundEvent]:
        newest_first = list(reversed(self._events))
        return newest_first if limit is None else newest_first[:limit]

    def clear(self) -> None:
        self._events.clear()
        if self._storage is not None:
            self._storage.clear_sound_events()
