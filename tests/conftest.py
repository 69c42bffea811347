import pytest

from tilefarm.common.config_manager import ConfigManager
from tilefarm.common.data_manager import DataManager
from tilefarm.events.bus import EventBus
from tilefarm.events.models import EventKind
from tilefarm.farm.logic import FarmLogic


class FakeClock:
    def __init__(self, now: int = 0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now

    def set(self, ms: int) -> int:
        self.now = ms
        return self.now


class EventRecorder:
    """Collects every event published on a bus"""

    def __init__(self, bus: EventBus):
        self.events = []
        for kind in EventKind:
            bus.subscribe(kind, self.events.append)

    def of(self, kind: EventKind):
        return [e for e in self.events if e.kind == kind]

    def clear(self):
        self.events.clear()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def config():
    return ConfigManager()


@pytest.fixture
def recorder(bus):
    return EventRecorder(bus)


@pytest.fixture
def farm(bus, config, clock):
    return FarmLogic(bus, config, clock)


@pytest.fixture
def dm(tmp_path):
    return DataManager(base_path=tmp_path)


def wheat_config(grow_time=5, stages=3, **overrides):
    """Crop table with a single fast wheat crop"""
    crops = {"wheat": {"name": "Wheat", "cost": 12, "reward": 20, "growTime": grow_time, "stages": stages}}
    return ConfigManager({"crops": crops, **overrides})
