"""
Shared test fixtures.

Uses a file-backed SQLite database (via aiosqlite) in ``tmp_path`` so tests
run without Docker / PostgreSQL / Redis, and so that separate sessions get
separate connections (needed by the race tests).  SMS/email providers,
Paystack, Google geocoding and Redis are replaced with in-memory doubles.
"""

import itertools
from typing import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from getitdone.domain.enums import UserRole, VehicleType
from getitdone.domain.errors import TransportFailure
from getitdone.domain.spatial import cell_for
from getitdone.infrastructure.database import Base
from getitdone.infrastructure.models import UserModel
from getitdone.infrastructure.security import create_access_token, hash_password
from getitdone.infrastructure.tokens import OneTimeTokenStore
from getitdone.infrastructure.transports import (
    DeliveryResult,
    Message,
    Transport,
)
from getitdone.services.errands import ErrandService
from getitdone.services.notifications import NotificationDispatcher

PASSWORD = "password123"
PASSWORD_HASH = hash_password(PASSWORD)

# Lagos Island
LAGOS = [3.3792, 6.5244]
# Abuja, ~530 km away
ABUJA = [7.4951, 9.0579]


def place(coordinates, address="12 Broad Street"):
    return {
        "address": address,
        "city": "Lagos",
        "state": "Lagos",
        "country": "Nigeria",
        "coordinates": list(coordinates),
    }


# ── Transport / provider doubles ─────────────────────────────────────


class RecordingTransport(Transport):
    """Records every message; raises ``TransportFailure`` when ``fail`` is set."""

    def __init__(self):
        self.sent: list[Message] = []
        self.fail = False

    async def send(self, message: Message) -> DeliveryResult:
        if self.fail:
            raise TransportFailure("provider unavailable", retryable=True)
        self.sent.append(message)
        return DeliveryResult(
            channel=message.channel,
            recipient=message.recipient,
            success=True,
            provider_id=f"fake-{len(self.sent)}",
        )


@pytest.fixture
def sms_transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def email_transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def notifier(sms_transport, email_transport) -> NotificationDispatcher:
    return NotificationDispatcher(sms=sms_transport, email=email_transport)


@pytest.fixture
def payments():
    gateway = AsyncMock()
    gateway.refund = AsyncMock(return_value="rfnd_123")
    return gateway


@pytest.fixture
def geocoder():
    return AsyncMock()


@pytest.fixture
def fake_redis():
    """Dict-backed stand-in for the two Redis commands the token store uses."""
    store: dict[str, str] = {}
    client = AsyncMock()

    async def _set(key, value, ex=None):
        store[key] = value
        return True

    async def _getdel(key):
        return store.pop(key, None)

    client.set.side_effect = _set
    client.getdel.side_effect = _getdel
    client.store = store
    return client


@pytest.fixture
def token_store(fake_redis) -> OneTimeTokenStore:
    return OneTimeTokenStore(fake_redis)


# ── Database ─────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def engine(tmp_path):
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


_counter = itertools.count(1)


@pytest.fixture
def make_user(db_session):
    """Factory: ``await make_user(role=..., location=[lng, lat], ...)``."""

    async def _make(
        role: UserRole = UserRole.CUSTOMER,
        *,
        approved: bool = True,
        verified: bool = True,
        active: bool = True,
        location=None,
        first_name: str = "Test",
        email: str | None = None,
        phone: str | None = None,
    ) -> UserModel:
        n = next(_counter)
        user = UserModel(
            first_name=first_name,
            last_name=f"User{n}",
            email=email or f"user{n}@example.com",
            phone=phone or f"+23480{n:08d}",
            password_hash=PASSWORD_HASH,
            role=role,
            is_verified=verified,
            is_active=active,
            runner_is_approved=approved if role == UserRole.RUNNER else False,
            vehicle_type=VehicleType.MOTORCYCLE if role == UserRole.RUNNER else None,
        )
        if location is not None:
            user.current_lng, user.current_lat = location
            user.h3_cell = cell_for(location[0], location[1], 7)
        db_session.add(user)
        await db_session.flush()
        return user

    return _make


@pytest.fixture
def errand_service(db_session, notifier, payments) -> ErrandService:
    return ErrandService(db_session, notifier, payments=payments)


def auth_header(user: UserModel) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


# ── API client ───────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def client(session_factory, notifier, token_store, payments, geocoder):
    """AsyncClient against the real app with providers swapped for doubles."""
    from getitdone.api import dependencies
    from getitdone.api.app import create_app
    from getitdone.api.middleware import limiter

    async def _test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app = create_app()
    app.dependency_overrides[dependencies.get_db] = _test_db
    app.dependency_overrides[dependencies.get_notifier] = lambda: notifier
    app.dependency_overrides[dependencies.get_token_store] = lambda: token_store
    app.dependency_overrides[dependencies.get_payments] = lambda: payments
    app.dependency_overrides[dependencies.get_geocoder] = lambda: geocoder
    limiter.reset()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
