import logging
import sys
import pytest


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging to a clean state before each test."""
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter('%(levelname)s - %(name)s - %(message)s'))
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.WARNING)
    yield


class FakeClock:
    """Stands in for the time module inside the poller so waits finish instantly."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps = []

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock(monkeypatch):
    clock = FakeClock()
    monkeypatch.setattr("etcd_snapshot.models.polling.time", clock)
    return clock
