from __future__ import annotations

import os
from collections.abc import Awaitable, Callable

import fakeredis
import pytest
import redis

from sejarah.api.models import PersistedProgress
from sejarah.engine import GameEngine
from sejarah.progress_store import ProgressStore
from sejarah.settings import EngineSettings

# Short windows so debounce tests stay fast.
FAST_SETTINGS = EngineSettings(save_debounce_s=0.05, save_retry_delays_s=(0.0, 0.0))


@pytest.fixture(scope="session", autouse=True)
def _init_content_from_repo() -> None:
    """Load the repo's question bank and forbid the built-in fallback.

    Keeps tests honest about the shipped content files.
    """

    os.environ["SEJARAH_STRICT_CONTENT"] = "1"

    from sejarah.content.singleton import init_content, reset_content_for_tests

    reset_content_for_tests()
    init_content()


class FakeClock:
    """Wall-clock milliseconds under test control."""

    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self.ms = start_ms

    def __call__(self) -> int:
        return self.ms

    def advance(self, seconds: float) -> None:
        self.ms += int(seconds * 1000)


class FlakyRedis:
    """fakeredis with switchable failures for SET and DELETE."""

    def __init__(self, inner: fakeredis.FakeRedis) -> None:
        self.inner = inner
        self.fail_next_sets = 0
        self.always_fail_sets = False
        self.fail_deletes = False
        self.set_calls = 0

    def get(self, key: str):
        return self.inner.get(key)

    def set(self, key: str, value: str):
        self.set_calls += 1
        if self.always_fail_sets:
            raise redis.ConnectionError("storage offline")
        if self.fail_next_sets > 0:
            self.fail_next_sets -= 1
            raise redis.ConnectionError("transient failure")
        return self.inner.set(key, value)

    def delete(self, key: str):
        if self.fail_deletes:
            raise redis.ConnectionError("delete refused")
        return self.inner.delete(key)


class RecordingStore(ProgressStore):
    """Keeps every snapshot that reached storage, in write order."""

    def __init__(self, **kwargs) -> None:  # type: ignore[no-untyped-def]
        super().__init__(**kwargs)
        self.saved: list[PersistedProgress] = []

    async def save(self, progress: PersistedProgress) -> None:
        await super().save(progress)
        self.saved.append(progress)


@pytest.fixture()
def r() -> fakeredis.FakeRedis:
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture()
def flaky(r: fakeredis.FakeRedis) -> FlakyRedis:
    return FlakyRedis(r)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store(r: fakeredis.FakeRedis) -> RecordingStore:
    return RecordingStore(r=r, retry_delays_s=FAST_SETTINGS.save_retry_delays_s)


@pytest.fixture()
def make_engine(clock: FakeClock) -> Callable[..., Awaitable[GameEngine]]:
    """Build an engine and run its startup load."""

    async def _make(store: ProgressStore, *, settings: EngineSettings = FAST_SETTINGS) -> GameEngine:
        engine = GameEngine(store=store, settings=settings, clock=clock)
        await engine.load()
        return engine

    return _make
