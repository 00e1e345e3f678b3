"""Shared pytest fixtures for detection core testing."""

import sys
from pathlib import Path

import fakeredis
import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from performative.core.models import DetectionSettings  # noqa: E402
from performative.storage.settings_store import SettingsManager, SettingsStore  # noqa: E402
from utils import logx  # noqa: E402


class ManualScheduler:
    """Scheduler that only runs ticks when the test asks for it."""

    def __init__(self):
        self.pending = {}
        self._seq = 0
        self.scheduled = 0

    def schedule_next(self, tick):
        self._seq += 1
        self.scheduled += 1
        self.pending[self._seq] = tick
        return self._seq

    def cancel(self, handle):
        self.pending.pop(handle, None)

    def pop(self):
        handle = next(iter(self.pending))
        return self.pending.pop(handle)

    async def run_next(self):
        await self.pop()()

    async def run(self, n):
        for _ in range(n):
            await self.run_next()


class ScriptedDetector:
    """Detector returning one scripted result per call; exceptions are raised."""

    def __init__(self, script=None, default=None):
        self.script = list(script or [])
        self.default = default if default is not None else []
        self.calls = 0

    def push(self, *results):
        self.script.extend(results)

    async def detect(self, image):
        self.calls += 1
        result = self.script.pop(0) if self.script else self.default
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture(autouse=True)
def _quiet_logx():
    logx.set_redis_client(False)
    logx._last_times.clear()
    yield
    logx.set_redis_client(None)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(scope="function")
def redis_client():
    client = fakeredis.FakeRedis(decode_responses=True)
    client.flushall()
    yield client
    client.flushall()


@pytest.fixture
def settings_manager(redis_client):
    return SettingsManager(SettingsStore(redis_client))


@pytest.fixture
def defaults():
    return DetectionSettings()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def detector():
    return ScriptedDetector()
