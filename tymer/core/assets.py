from __future__ import annotations

"""Resolves notification keys to sound files, with an in-memory lookup cache."""

import re
from pathlib import Path


SOUNDS_DIR = Path(__file__).resolve().parents[2] / "sounds"
_PATH_CACHE: dict[tuple[Path, str], Path | None] = {}

GENERAL_SOUNDS = {
    "button": "button.webm",
    "timerFinished": "timer-end.webm",
}

_MINUTE_KEY_RE = re.compile(r"^(elapsed|remaining|overtime_break|overtime)_(\d+)$")
_TIMESUP_KEY_RE = re.compile(r"^timesup_(work|break|fun|finish)$")
_NOTIFICATION_KEY_RE = re.compile(r"^notification_(\d+)$")


def relative_sound_path(key: str) -> str | None:
    """Maps a sound key such as ``overtime_break_6`` to ``overtime/break/006.webm``."""
    if key in GENERAL_SOUNDS:
        return GENERAL_SOUNDS[key]
    match = _MINUTE_KEY_RE.match(key)
    if match:
        category, minutes = match.groups()
        folder = "overtime/break" if category == "overtime_break" else category
        return f"{folder}/{int(minutes):03d}.webm"
    match = _TIMESUP_KEY_RE.match(key)
    if match:
        return f"timesup/{match.group(1)}.webm"
    match = _NOTIFICATION_KEY_RE.match(key)
    if match:
        return f"notifications/{int(match.group(1)):02d}.ogg"
    return None


def sound_key_from_path(path: str) -> str:
    """Inverse of ``relative_sound_path``; raises ``ValueError`` for unknown paths."""
    parts = path.replace("\\", "/").split("/")
    for key, filename in GENERAL_SOUNDS.items():
        if parts[-1] == filename:
            return key
    if len(parts) < 2:
        raise ValueError(f"Not a sound path: {path!r}")
    stem = parts[-1].rsplit(".", 1)[0]
    folder = parts[-2]
    parent = parts[-3] if len(parts) > 2 else ""
    if folder == "timesup":
        return f"timesup_{stem}"
    if folder == "notifications":
        return f"notification_{int(stem)}"
    if folder == "break" and parent == "overtime":
        return f"overtime_break_{int(stem)}"
    return f"{folder}_{int(stem)}"


def get_sound_path(key: str, sounds_dir: Path | None = None) -> Path | None:
    """Absolute path of the sound for ``key``; ``None`` if unknown or missing on disk."""
    root = sounds_dir or SOUNDS_DIR
    cache_key = (root, key)
    if cache_key in _PATH_CACHE:
        return _PATH_CACHE[cache_key]

    relative = relative_sound_path(key)
    path = root / relative if relative else None
    if path is not None and not path.exists():
        path = None
    _PATH_CACHE[cache_key] = path
    return path


def sound_exists(key: str, sounds_dir: Path | None = None) -> bool:
    return get_sound_path(key, sounds_dir) is not None


def clear_cache() -> None:
    _PATH_CACHE.clear()
