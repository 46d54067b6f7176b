from __future__ import annotations

import math

MINUTE_MS = 60 * 1000


def format_time(
    ms: int | None,
    mode: str | None = None,
    debug: bool = False,
    compact: bool = False,
) -> str:
    """Formats milliseconds as ``H:MM``.

    Elapsed time rounds down and remaining time rounds up, so a period never
    shows ``0:00`` remaining while time is still left. ``debug`` shows exact
    seconds and the raw value; ``compact`` drops the hours under one hour.
    """
    if ms is None:
        return "––:––"

    if debug:
        total_seconds = ms // 1000
        hours, rest = divmod(total_seconds, 3600)
        minutes, seconds = divmod(rest, 60)
        return f"{hours:02d}:{minutes:02d}:{seconds:02d} {ms:>6} ms"

    if mode == "elapsed":
        total_minutes = ms // MINUTE_MS
    elif mode == "remaining":
        total_minutes = math.ceil(ms / MINUTE_MS)
    else:
        total_minutes = math.floor(ms / MINUTE_MS + 0.5)

    hours, minutes = divmod(total_minutes, 60)
    if compact and hours == 0:
        return f"{minutes}"
    return f"{hours}:{minutes:02d}"


def ms_to_minutes(ms: int) -> int:
    return ms // MINUTE_MS
