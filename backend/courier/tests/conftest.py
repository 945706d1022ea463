"""
Global pytest configuration and fixtures for all tests.

Provides:
- A frozen clock shared by domain, application and repository tests
- A started in-memory event bus
- An in-memory SQLite database and session factory
"""

from datetime import UTC, datetime

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from courier.core.clock import FixedClock
from courier.core.database import create_session_factory, init_models
from courier.core.events import InMemoryEventBus

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def now():
    """The instant every test starts at."""
    return NOW


@pytest.fixture
def clock():
    """Clock frozen at NOW; tests move it explicitly."""
    return FixedClock(NOW)


@pytest.fixture
async def event_bus():
    """Started in-memory event bus, stopped after the test."""
    bus = InMemoryEventBus()
    await bus.start()
    yield bus
    await bus.stop()


@pytest.fixture
async def test_engine():
    """Create test database engine with the schema in place."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    await init_models(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    """Session factory bound to the test engine."""
    return create_session_factory(test_engine)
