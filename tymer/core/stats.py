from __future__ import annotations

"""Per-type totals and timeline times for a list of periods."""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Sequence

from tymer.core.models import Period, PeriodType


@dataclass(frozen=True)
class TypeSums:
    duration_ms: int
    elapsed_ms: int
    remaining_ms: int


def type_sums(periods: Iterable[Period], period_type: PeriodType) -> TypeSums:
    matching = [period for period in periods if period.type == period_type]
    return TypeSums(
        duration_ms=sum(period.duration_ms for period in matching),
        elapsed_ms=sum(period.elapsed_ms for period in matching),
        remaining_ms=sum(period.remaining_ms for period in matching),
    )


def period_sums(
    initial: Sequence[Period],
    current: Sequence[Period],
    types: Iterable[PeriodType],
) -> dict[PeriodType, dict[str, TypeSums]]:
    """Original (template) versus current totals for every type."""
    return {
        period_type: {
            "original": type_sums(initial, period_type),
            "current": type_sums(current, period_type),
        }
        for period_type in types
    }


def calculate_end_times(periods: Sequence[Period], current_index: int | None, now_ms: int) -> list[int]:
    """Wall-clock end (ms) of every period, assuming the rest run as planned."""
    if not periods:
        return []
    total_elapsed = sum(period.elapsed_ms for period in periods)
    ends: list[int] = []
    previous_end: int | None = None
    past_durations = 0
    for index, period in enumerate(periods):
        if current_index is None or index > current_index:
            end = (previous_end if previous_end is not None else now_ms) + period.duration_ms
        elif index < current_index:
            past_durations += period.duration_ms
            start = now_ms - total_elapsed + past_durations - period.duration_ms
            end = start + period.duration_ms
        else:
            end = now_ms + period.duration_ms - period.elapsed_ms
        previous_end = end
        ends.append(end)
    return ends


def calculate_start_time(periods: Sequence[Period], now_ms: int) -> int | None:
    if not periods:
        return None
    return now_ms - sum(period.elapsed_ms for period in periods)


def format_clock(timestamp_ms: int) -> str:
    moment = datetime.fromtimestamp(timestamp_ms / 1000)
    return f"{moment.hour}:{moment.minute:02d}"
