from __future__ import annotations

"""Entry point for the headless period timer.

Sets up logging, opens the SQLite storage, restores the session and runs the
Qt event loop that drives the once-per-second tick.
"""

import logging
import os
import signal
import sys
from pathlib import Path

from PyQt6.QtCore import QCoreApplication

from tymer.audio.player import AudioPlayer, NullAudioPlayer
from tymer.core.config import TimerConfig
from tymer.core.controller import TimerController
from tymer.core.format import format_time
from tymer.core.timer import TimerState
from tymer.data.storage import Storage


logger = logging.getLogger("tymer")


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def default_db_path() -> Path:
    """SQLite file from ``TYMER_DB_PATH`` or ``tymer.db`` in the working directory."""
    return Path(os.environ.get("TYMER_DB_PATH", Path.cwd() / "tymer.db"))


def build_audio_player() -> AudioPlayer:
    sounds_dir = os.environ.get("TYMER_SOUNDS_DIR")
    if os.environ.get("TYMER_MUTE", "").lower() in {"1", "true", "yes"}:
        return NullAudioPlayer()
    from tymer.audio.qt_player import QtAudioPlayer

    return QtAudioPlayer(Path(sounds_dir) if sounds_dir else None)


def main() -> int:
    """Creates the dependencies and runs the tick loop until interrupted."""
    configure_logging(os.environ.get("TYMER_LOG_LEVEL", "INFO"))
    app = QCoreApplication(sys.argv)

    storage = Storage(default_db_path())
    storage.init_db()
    config = TimerConfig.from_settings(storage.get_setting("settings", {}))

    controller = TimerController(storage=storage, audio=build_audio_player(), config=config)
    controller.initialize()
    if controller.state is TimerState.FINISHED:
        logger.info("Stored session has already finished, reset it to run again")
        return 0
    if controller.state is TimerState.IDLE:
        controller.start()

    def report() -> None:
        snapshot = controller.snapshot()
        if snapshot.current_period_index is None:
            return
        logger.debug(
            "period %d (%s): %s elapsed, %s remaining",
            snapshot.current_period_index,
            snapshot.period_type.value,
            format_time(snapshot.elapsed_ms, mode="elapsed"),
            format_time(snapshot.remaining_ms, mode="remaining"),
        )

    controller.state_changed.connect(report)
    controller.notification_emitted.connect(lambda key: logger.info("Notification: %s", key))
    controller.timer_finished.connect(app.quit)
    signal.signal(signal.SIGINT, lambda *_args: app.quit())

    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
