"""
Pytest configuration and fixtures.
"""

import os
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from salesdesk.config import Settings
from salesdesk.errors import ExternalLookupError, NotificationError
from salesdesk.models import Base, Deduction, Lead, User, UserRole
from salesdesk.services.currency import CurrencyNormalizer


# Test database URL (use SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def db_engine():
    """Create test database engine; StaticPool lets several sessions share the in-memory DB."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Create test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def settings():
    return Settings(
        database_url=TEST_DATABASE_URL,
        base_currency="USD",
        default_commission_rate=Decimal("10"),
        allow_direct_approval=False,
    )


@pytest_asyncio.fixture
async def make_user(db_session):
    counter = {"n": 0}

    async def _make(role: UserRole = UserRole.REP, **kwargs) -> User:
        counter["n"] += 1
        defaults = {
            "email": f"{role.value}{counter['n']}@example.com",
            "full_name": f"{role.value.title()} {counter['n']}",
            "role": role,
            "is_active": True,
            "preferred_currency": "USD",
        }
        defaults.update(kwargs)
        user = User(**defaults)
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make


@pytest_asyncio.fixture
async def users(make_user):
    """One user per role; the rep reports to the manager."""
    admin = await make_user(UserRole.ADMIN)
    director = await make_user(UserRole.DIRECTOR)
    manager = await make_user(UserRole.MANAGER)
    rep = await make_user(UserRole.REP, manager_id=manager.id)
    return {"admin": admin, "director": director, "manager": manager, "rep": rep}


@pytest_asyncio.fixture
async def lead(db_session, users):
    lead = Lead(
        company_name="Acme Corp",
        contact_name="Jane Buyer",
        contact_email="jane@acme.test",
        created_by=users["rep"].id,
    )
    db_session.add(lead)
    await db_session.commit()
    await db_session.refresh(lead)
    return lead


@pytest_asyncio.fixture
async def add_deduction(db_session, users):
    async def _add(label: str, percentage: str, before: bool = True, position: int = 0, **kwargs) -> Deduction:
        deduction = Deduction(
            label=label,
            percentage=Decimal(percentage),
            applies_before_commission=before,
            position=position,
            created_by=users["admin"].id,
            **kwargs,
        )
        db_session.add(deduction)
        await db_session.commit()
        await db_session.refresh(deduction)
        return deduction

    return _add


class StubRateProvider:
    """Fixed rates; pairs listed in ``failing`` raise ExternalLookupError."""

    def __init__(self, rates: Dict[Tuple[str, str], str], failing: Tuple[Tuple[str, str], ...] = ()):
        self.rates = {pair: Decimal(value) for pair, value in rates.items()}
        self.failing = set(failing)
        self.calls: List[Tuple[str, str, Optional[date]]] = []

    async def rate(self, from_currency: str, to_currency: str, as_of: Optional[date] = None) -> Decimal:
        self.calls.append((from_currency, to_currency, as_of))
        if (from_currency, to_currency) in self.failing:
            raise ExternalLookupError(f"No rate for {from_currency}/{to_currency}")
        try:
            return self.rates[(from_currency, to_currency)]
        except KeyError:
            raise ExternalLookupError(f"Unknown pair {from_currency}/{to_currency}")


class RecordingNotifier:
    def __init__(self):
        self.sent: List[Tuple[str, Dict[str, Any]]] = []

    async def send(self, function_name: str, payload: Dict[str, Any]) -> None:
        self.sent.append((function_name, payload))


class FailingNotifier:
    async def send(self, function_name: str, payload: Dict[str, Any]) -> None:
        raise NotificationError(f"{function_name} failed: 500 Internal Server Error")


@pytest.fixture
def rate_provider():
    return StubRateProvider({("EUR", "USD"): "1.10", ("GBP", "USD"): "1.25", ("JPY", "USD"): "0.0067"})


@pytest.fixture
def normalizer(rate_provider):
    return CurrencyNormalizer(rate_provider, "USD")


@pytest.fixture
def recording_notifier():
    return RecordingNotifier()


@pytest.fixture
def failing_notifier():
    return FailingNotifier()
