import pytest
from PyQt6.QtCore import QCoreApplication

from tymer.core.clock import ManualClock


class FakeAudioPlayer:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.played: list[str] = []

    def play(self, key: str) -> bool:
        self.played.append(key)
        return not self.fail


@pytest.fixture(scope="session", autouse=True)
def qapp():
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(1_700_000_000_000)


@pytest.fixture
def audio() -> FakeAudioPlayer:
    return FakeAudioPlayer()


@pytest.fixture
def failing_audio() -> FakeAudioPlayer:
    return FakeAudioPlayer(fail=True)
