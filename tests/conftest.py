from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Make the health_api package importable when running tests from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from health_api.core import config as core_config  # noqa: E402
from health_api.core.rate_limiter import reset_limits  # noqa: E402
from health_api.db import models  # noqa: E402
from health_api.db import session as db_session  # noqa: E402
from health_api.repositories.kv_store import MemoryKVStore  # noqa: E402


class RecordingKV(MemoryKVStore):
    """MemoryKVStore that records every call made against it."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: list[tuple[str, str]] = []

    def get(self, key):
        self.calls.append(("get", key))
        return super().get(key)

    def set(self, key, value, ttl_seconds=None):
        self.calls.append(("set", key))
        super().set(key, value, ttl_seconds)

    def delete(self, key):
        self.calls.append(("delete", key))
        super().delete(key)

    def pop_if_equals(self, key, expected):
        self.calls.append(("pop_if_equals", key))
        return super().pop_if_equals(key, expected)


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def kv():
    return RecordingKV()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def db_env(tmp_path, monkeypatch):
    """Point the app at a temporary SQLite file and reset cached settings/engine."""
    db_file = tmp_path / "test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_file}")
    monkeypatch.delenv("KV_URL", raising=False)
    monkeypatch.delenv("APP_ENV", raising=False)
    core_config.get_settings.cache_clear()
    db_session.get_engine.cache_clear()
    db_session._get_sessionmaker.cache_clear()  # type: ignore[attr-defined]
    reset_limits()

    engine = db_session.get_engine()
    models.Base.metadata.drop_all(bind=engine)
    models.Base.metadata.create_all(bind=engine)

    yield db_file

    models.Base.metadata.drop_all(bind=engine)
    engine.dispose()
    core_config.get_settings.cache_clear()
    db_session.get_engine.cache_clear()
    db_session._get_sessionmaker.cache_clear()  # type: ignore[attr-defined]
