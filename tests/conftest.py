"""Shared pytest fixtures."""

from collections import defaultdict
from datetime import date
from uuid import uuid4

import pytest
import yaml
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from leasesentinel.config import get_settings
from leasesentinel.db.base import Base
from leasesentinel.lib.hooks import hooks
from leasesentinel.lib.records import SentinelRecord


@pytest.fixture
def clean_hooks():
    """Save and restore hooks state around a test."""
    original_filters = {k: list(v) for k, v in hooks._filters.items()}
    original_actions = {k: list(v) for k, v in hooks._actions.items()}
    yield
    hooks._filters = defaultdict(list, original_filters)
    hooks._actions = defaultdict(list, original_actions)


@pytest.fixture
def temp_app_yaml(tmp_path, monkeypatch):
    """Write an app.yaml into a temporary working directory."""
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()

    def _create_config(config: dict):
        config_path = tmp_path / "app.yaml"
        with open(config_path, "w") as f:
            yaml.safe_dump(config, f)
        get_settings.cache_clear()
        return config_path

    yield _create_config
    get_settings.cache_clear()


@pytest.fixture
def make_record():
    """Factory for SentinelRecord instances with sensible defaults."""

    def _make(**overrides) -> SentinelRecord:
        fields = {
            "id": uuid4(),
            "owner": "alice@example.com",
            "event_name": "Renewal notice",
            "trigger_date": date(2025, 6, 15),
            "original_text": "Tenant must give written notice 60 days before expiry.",
            "notification_target": "https://hooks.example.com/alice",
            "notification_method": "custom",
        }
        fields.update(overrides)
        return SentinelRecord(**fields)

    return _make


@pytest.fixture
async def db_engine(tmp_path):
    import leasesentinel.db.models  # noqa: F401

    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_maker):
    async with session_maker() as session:
        yield session
