"""Pytest configuration and fixtures."""

import pytest

from sqlkv.backends.sqlite import SQLiteBackend
from sqlkv.store import KV


class Clock:
    """Settable time provider."""

    def __init__(self, now: int = 0) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def clock():
    """Clock starting at t=0."""
    return Clock()


@pytest.fixture
async def backend():
    """In-memory SQLite backend."""
    sqlite = SQLiteBackend(path=":memory:")
    yield sqlite
    await sqlite.close()


@pytest.fixture
def make_kv(backend, clock):
    """Factory for migrated stores sharing the same backend and clock.

    Reaping is off unless a test passes a threshold, so no store in the
    suite depends on random draws.
    """

    async def factory(clear_expired_threshold: float = 0, now: int | None = None) -> KV:
        if now is not None:
            clock.now = now
        kv = KV(
            "kv",
            backend,
            clear_expired_threshold=clear_expired_threshold,
            time_provider=clock,
        )
        await kv.migrate()
        return kv

    return factory


@pytest.fixture
async def kv(make_kv):
    """Migrated store at t=0."""
    return await make_kv()


@pytest.fixture
def sample_config_dict():
    """Sample configuration dictionary for testing."""
    return {
        "table_name": "kv_test",
        "clear_expired_threshold": 0.5,
        "backend": {"backend": "sqlite", "path": ":memory:"},
        "logging": {"level": "DEBUG", "format": "text"},
    }
