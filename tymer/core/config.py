from __future__ import annotations

"""Timer defaults and the session template."""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Mapping

from tymer.core.models import PeriodType
from tymer.notifications.catalog import DEFAULT_CATALOG, SoundCatalog


logger = logging.getLogger(__name__)

MINUTE_MS = 60 * 1000

UI_UPDATE_INTERVAL_MS = 1000
DURATION_TO_ADD_AUTOMATICALLY_MS = 1 * MINUTE_MS
MIN_PROGRESS_MS = 60 * 1000
WINDOW_SIZE_MS = 2000
NEW_PERIOD_DURATION_MS = 24 * MINUTE_MS
NEW_PERIOD_TYPE = PeriodType.FUN
NOTIFICATION_SOUND_COUNT = 63

PERIOD_TYPES = (PeriodType.WORK, PeriodType.BREAK, PeriodType.FUN)

_WORK = PeriodType.WORK
_BREAK = PeriodType.BREAK

# (duration_ms, type, note)
PERIOD_CONFIG: tuple[tuple[int, PeriodType, str], ...] = (
    (36 * MINUTE_MS, _WORK, "start"),
    (6 * MINUTE_MS, _BREAK, ""),
    (36 * MINUTE_MS, _WORK, "check direction"),
    (6 * MINUTE_MS, _BREAK, ""),
    (36 * MINUTE_MS, _WORK, "finish"),
    (18 * MINUTE_MS, _BREAK, ""),
    (36 * MINUTE_MS, _WORK, "start"),
    (6 * MINUTE_MS, _BREAK, ""),
    (36 * MINUTE_MS, _WORK, "check direction"),
    (6 * MINUTE_MS, _BREAK, ""),
    (36 * MINUTE_MS, _WORK, "finish"),
    (18 * MINUTE_MS, _BREAK, ""),
    (36 * MINUTE_MS, _WORK, ""),
    (6 * MINUTE_MS, _BREAK, ""),
    (36 * MINUTE_MS, _WORK, ""),
    (48 * MINUTE_MS, _BREAK, ""),
    (36 * MINUTE_MS, _WORK, ""),
    (6 * MINUTE_MS, _BREAK, ""),
    (36 * MINUTE_MS, _WORK, ""),
    (6 * MINUTE_MS, _BREAK, ""),
    (36 * MINUTE_MS, _WORK, ""),
    (18 * MINUTE_MS, _BREAK, ""),
)

_INT_SETTINGS = (
    "tick_interval_ms",
    "extension_ms",
    "min_progress_ms",
    "window_size_ms",
    "new_period_duration_ms",
    "notification_sound_count",
)


@dataclass(frozen=True)
class TimerConfig:
    tick_interval_ms: int = UI_UPDATE_INTERVAL_MS
    extension_ms: int = DURATION_TO_ADD_AUTOMATICALLY_MS
    min_progress_ms: int = MIN_PROGRESS_MS
    window_size_ms: int = WINDOW_SIZE_MS
    new_period_duration_ms: int = NEW_PERIOD_DURATION_MS
    new_period_type: PeriodType = NEW_PERIOD_TYPE
    notification_sound_count: int = NOTIFICATION_SOUND_COUNT
    types: tuple[PeriodType, ...] = PERIOD_TYPES
    period_template: tuple[tuple[int, PeriodType, str], ...] = PERIOD_CONFIG
    catalog: SoundCatalog = field(default=DEFAULT_CATALOG)

    @classmethod
    def from_settings(cls, raw: Mapping[str, Any] | None) -> TimerConfig:
        """Defaults overridden by whatever valid values the settings mapping holds."""
        config = cls()
        if not raw:
            return config
        changes: dict[str, Any] = {}
        for name in _INT_SETTINGS:
            if name not in raw:
                continue
            value = raw[name]
            if isinstance(value, int) and not isinstance(value, bool) and value > 0:
                changes[name] = value
            else:
                logger.warning("Ignoring invalid setting %s=%r", name, value)
        if "new_period_type" in raw:
            try:
                changes["new_period_type"] = PeriodType(raw["new_period_type"])
            except ValueError:
                logger.warning("Ignoring invalid setting new_period_type=%r", raw["new_period_type"])
        if isinstance(raw.get("catalog"), Mapping):
            changes["catalog"] = SoundCatalog.from_mapping(raw["catalog"])
        return replace(config, **changes)


DEFAULT_CONFIG = TimerConfig()
