import pytest

from arrakis.core.config import PollingConfig
from arrakis.core.controller import AdaptivePollingController


class FakeClock:
    """Manually advanced clock for driving time-dependent controller logic."""

    def __init__(self, start=0.0):
        self.now = start

    def __call__(self):
        return self.now

    def set(self, value):
        self.now = value


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def controller(clock):
    return AdaptivePollingController(PollingConfig(), clock=clock)
