from __future__ import annotations

import logging
from typing import Protocol


logger = logging.getLogger(__name__)


class AudioPlayer(Protocol):
    def play(self, key: str) -> bool:
        """Starts playing the sound for ``key``; returns False if it could not."""


class NullAudioPlayer:
    """Plays nothing. Used for headless runs without an audio device."""

    def play(self, key: str) -> bool:
        logger.info("Would play %s", key)
        return True
