"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from pathlib import Path

# Minimal environment for tests
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./earnhub_test.db")
os.environ.setdefault("ENVIRONMENT", "test")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock

from earnhub.config.database import create_engine, create_session_maker
from earnhub.models import Base, Plan
from earnhub.services.provisioning_service import ProvisioningService


class FakeClock:
    """Controllable clock passed to services as ``clock=``."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: int = 0, hours: int = 0) -> None:
        self.now += timedelta(days=days, hours=hours)


@pytest.fixture
def clock():
    """Clock fixed at 2026-03-10 12:00 UTC."""
    return FakeClock(datetime(2026, 3, 10, 12, 0, tzinfo=UTC))


@pytest.fixture
def service_kwargs(clock):
    """
    Common service arguments for integration tests.

    Extra retry attempts let parallel callers queue on the SQLite write
    lock without exhausting the budget.
    """
    return {"clock": clock, "retry_attempts": 15, "retry_base_delay": 0.01}


@pytest.fixture
def mock_session():
    """Mock AsyncSession for tests without a database."""
    session = AsyncMock()
    session.info = {}
    session.execute = AsyncMock(return_value=MagicMock(rowcount=1))
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    return session


@pytest_asyncio.fixture
async def engine(tmp_path):
    """File-backed SQLite engine with every table created."""
    engine = create_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'earnhub_test.db'}", echo=False
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    """Session maker bound to the test engine."""
    return create_session_maker(engine)


@pytest_asyncio.fixture
async def session(session_maker):
    """Database session for a single caller."""
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def plans(session_maker) -> dict[str, Plan]:
    """
    Seed the plan catalog.

    - intern: trial, free, 3 tasks/day, 1.00 per task
    - vip1..vip3: paid plans with growing quota and reward
    """
    rows = [
        Plan(
            code="intern",
            name="Intern",
            price=Decimal("0"),
            daily_task_quota=3,
            reward_per_task=Decimal("1"),
            duration_days=3,
            is_trial=True,
            is_active=True,
        ),
        Plan(
            code="vip1",
            name="VIP 1",
            price=Decimal("2000"),
            daily_task_quota=5,
            reward_per_task=Decimal("20"),
            duration_days=30,
            is_trial=False,
            is_active=True,
        ),
        Plan(
            code="vip2",
            name="VIP 2",
            price=Decimal("5000"),
            daily_task_quota=10,
            reward_per_task=Decimal("25"),
            duration_days=30,
            is_trial=False,
            is_active=True,
        ),
        Plan(
            code="vip3",
            name="VIP 3",
            price=Decimal("10000"),
            daily_task_quota=15,
            reward_per_task=Decimal("30"),
            duration_days=30,
            is_trial=False,
            is_active=True,
        ),
    ]
    async with session_maker() as session:
        session.add_all(rows)
        await session.commit()
    return {plan.code: plan for plan in rows}


@pytest.fixture
def make_account(session_maker, plans, service_kwargs):
    """
    Provision an account in its own session.

    Usage:
        account = await make_account("ext-1", referral_code=parent.referral_code)
    """
    async def _make(external_ref: str, **kwargs):
        async with session_maker() as session:
            service = ProvisioningService(session, **service_kwargs)
            return await service.provision(external_ref, **kwargs)

    return _make
