"""Test configuration and fixtures."""

import os
from datetime import date

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

# Set test environment variables BEFORE importing the app
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"

from activity_dashboard.clock import SiteClock
from activity_dashboard.database.migrations import create_activity_table
from activity_dashboard.services import (
    ActivityQueryService,
    ActivityStore,
    ActivityTracker,
    EventBus,
)

TEST_ASYNC_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_TABLE = "wp_user_activity"

# Mid-month so trailing windows and month pinning are easy to tell apart
TODAY = date(2024, 6, 15)


class FrozenClock(SiteClock):
    """Site clock stuck on a fixed day."""

    def __init__(self, today: date, timezone_name: str = "UTC"):
        super().__init__(timezone_name)
        self._today = today

    def today(self) -> date:
        return self._today


def make_engine():
    return create_async_engine(
        TEST_ASYNC_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )


@pytest_asyncio.fixture
async def engine():
    """In-memory database with the activity table created."""
    engine = make_engine()
    await create_activity_table(TEST_TABLE, engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def store(engine) -> ActivityStore:
    return ActivityStore(engine, TEST_TABLE)


@pytest_asyncio.fixture
async def broken_store(engine) -> ActivityStore:
    """Store pointed at a table that was never created."""
    return ActivityStore(engine, "missing_activity")


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(TODAY)


@pytest.fixture
def make_clock():
    """Factory for clocks frozen on other days."""
    return FrozenClock


@pytest.fixture
def tracker(store, clock) -> ActivityTracker:
    return ActivityTracker(store, clock)


@pytest.fixture
def query_service(store, clock) -> ActivityQueryService:
    return ActivityQueryService(store, clock, default_range_days=30)


@pytest.fixture
def event_bus(tracker) -> EventBus:
    bus = EventBus()
    tracker.register(bus)
    return bus
