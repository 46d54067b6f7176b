from __future__ import annotations

import logging
from collections import deque
from pathlib import Path

from PyQt6.QtCore import QObject, QUrl
from PyQt6.QtMultimedia import QAudioOutput, QMediaPlayer

from tymer.core.assets import get_sound_path


logger = logging.getLogger(__name__)


class QtAudioPlayer(QObject):
    """Plays sound files through Qt Multimedia, one after another.

    A sound requested while another is still playing is queued and starts when
    the current one ends, so a chime and its announcement never overlap.
    """

    def __init__(self, sounds_dir: Path | None = None, volume: float = 1.0, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._sounds_dir = sounds_dir
        self._output = QAudioOutput(self)
        self._output.setVolume(volume)
        self._player = QMediaPlayer(self)
        self._player.setAudioOutput(self._output)
        self._player.errorOccurred.connect(self._on_error)
        self._player.mediaStatusChanged.connect(self._on_status_changed)
        self._pending: deque[tuple[str, Path]] = deque()
        self._last_key: str | None = None

    def play(self, key: str) -> bool:
        path = get_sound_path(key, self._sounds_dir)
        if path is None:
            logger.warning("Sound not found: %s", key)
            return False
        if self._player.playbackState() == QMediaPlayer.PlaybackState.PlayingState:
            self._pending.append((key, path))
            logger.debug("Queued %s behind %s", key, self._last_key)
            return True
        return self._start(key, path)

    def _start(self, key: str, path: Path) -> bool:
        self._player.setSource(QUrl.fromLocalFile(str(path)))
        self._player.play()
        self._last_key = key
        if self._player.error() != QMediaPlayer.Error.NoError:
            logger.warning("Sound %s failed to start: %s", key, self._player.errorString())
            return False
        return True

    def _play_next(self) -> None:
        while self._pending:
            key, path = self._pending.popleft()
            if self._start(key, path):
                return

    def _on_status_changed(self, status: QMediaPlayer.MediaStatus) -> None:
        if status == QMediaPlayer.MediaStatus.EndOfMedia:
            self._play_next()

    def _on_error(self, error: QMediaPlayer.Error, message: str) -> None:
        logger.warning("Playback error for %s: %s (%s)", self._last_key, message, error)
        self._play_next()
