from __future__ import annotations

import logging

from tymer.core.models import PeriodType
from tymer.notifications.catalog import DEFAULT_CATALOG, NotificationWindow, SoundCatalog, WindowKind


logger = logging.getLogger(__name__)


class NotificationScheduler:
    """Picks at most one notification per group of overlapping windows.

    A window opens when the elapsed time comes within ``window_size_ms`` of its
    target. Windows that open while others are still open join the same group,
    and the group is resolved only once every member has closed again: the
    phase threshold drops elapsed markers that belong to the remaining phase
    (and vice versa), then the highest priority survivor wins.
    """

    def __init__(self, window_size_ms: int = 2000, catalog: SoundCatalog | None = None) -> None:
        self.window_size_ms = window_size_ms
        self.catalog = catalog or DEFAULT_CATALOG
        self.overlapping_group: dict[str, NotificationWindow] = {}
        self.active_keys: set[str] = set()

    @property
    def max_remaining_minutes(self) -> int:
        return self.catalog.max_remaining_minutes

    def threshold(self, intended_duration_ms: int) -> float:
        """Elapsed time at which the remaining-phase begins."""
        remaining_reach = intended_duration_ms - self.max_remaining_minutes * 60_000
        return max(intended_duration_ms / 2, remaining_reach)

    def all_windows(
        self,
        intended_duration_ms: int,
        period_type: PeriodType | str,
        next_period_type: PeriodType | str | None = None,
    ) -> list[NotificationWindow]:
        return self.catalog.build_windows(intended_duration_ms, period_type, next_period_type)

    def open_windows(
        self,
        elapsed_ms: int,
        intended_duration_ms: int,
        period_type: PeriodType | str,
        next_period_type: PeriodType | str | None = None,
    ) -> list[NotificationWindow]:
        # no phase filtering here, it happens when a group resolves
        return [
            window
            for window in self.all_windows(intended_duration_ms, period_type, next_period_type)
            if self.is_in_window(window.target_ms, elapsed_ms)
        ]

    def check(
        self,
        elapsed_ms: int,
        intended_duration_ms: int,
        period_type: PeriodType | str,
        is_paused: bool,
        next_period_type: PeriodType | str | None = None,
    ) -> NotificationWindow | None:
        if is_paused:
            self.clear()
            return None

        currently_open = self.open_windows(elapsed_ms, intended_duration_ms, period_type, next_period_type)
        open_keys = {window.key for window in currently_open}

        for window in currently_open:
            if window.key not in self.active_keys:
                self.overlapping_group[window.key] = window
                logger.debug("Window %s entered at %d ms", window.key, elapsed_ms)

        still_open = [key for key in self.overlapping_group if key in open_keys]

        if self.overlapping_group and not still_open:
            threshold = self.threshold(intended_duration_ms)
            candidates = [
                window for window in self.overlapping_group.values() if self._in_phase(window, threshold)
            ]
            winner = self.select_highest_priority(candidates)
            logger.debug(
                "Group %s resolved at %d ms, winner %s",
                sorted(self.overlapping_group),
                elapsed_ms,
                winner.key if winner else None,
            )
            self.overlapping_group.clear()
            self.active_keys = open_keys
            return winner

        self.active_keys = open_keys
        return None

    @staticmethod
    def select_highest_priority(windows: list[NotificationWindow]) -> NotificationWindow | None:
        if not windows:
            return None
        return min(windows, key=lambda window: (-window.priority, window.target_ms))

    def is_in_window(self, target_ms: int, current_ms: int) -> bool:
        return abs(current_ms - target_ms) <= self.window_size_ms

    def on_period_change(self) -> None:
        self.clear()

    def on_duration_change(self) -> None:
        self.clear()

    def on_elapsed_adjustment(self, new_elapsed_ms: int, old_elapsed_ms: int) -> None:
        # moving forward cannot skip past a window that is already being tracked
        if new_elapsed_ms < old_elapsed_ms:
            self.clear()

    def clear(self) -> None:
        self.overlapping_group.clear()
        self.active_keys.clear()

    @staticmethod
    def _in_phase(window: NotificationWindow, threshold: float) -> bool:
        if window.kind is WindowKind.ELAPSED:
            return window.target_ms < threshold
        if window.kind is WindowKind.REMAINING:
            return window.target_ms >= threshold
        return True
