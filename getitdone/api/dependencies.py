"""FastAPI dependency injection helpers."""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from getitdone.config import settings
from getitdone.domain.entities import Actor
from getitdone.domain.enums import UserRole
from getitdone.domain.errors import PermissionDenied
from getitdone.domain.permissions import ensure, has_role
from getitdone.infrastructure.database import async_session_factory
from getitdone.infrastructure.email import SmtpEmailTransport
from getitdone.infrastructure.geocoding import GoogleGeocoder
from getitdone.infrastructure.models import UserModel
from getitdone.infrastructure.payments import PaystackGateway
from getitdone.infrastructure.redis_client import get_redis
from getitdone.infrastructure.sms import TwilioSmsTransport
from getitdone.infrastructure.tokens import OneTimeTokenStore
from getitdone.services.auth import authenticate
from getitdone.services.errands import ErrandService
from getitdone.services.notifications import NotificationDispatcher

bearer_scheme = HTTPBearer(auto_error=False)


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_notifier() -> NotificationDispatcher:
    """A fresh outbox per request."""
    return NotificationDispatcher(
        sms=TwilioSmsTransport(settings),
        email=SmtpEmailTransport(settings),
    )


async def get_token_store() -> OneTimeTokenStore:
    return OneTimeTokenStore(await get_redis())


def get_payments() -> PaystackGateway:
    return PaystackGateway(settings)


def get_geocoder() -> GoogleGeocoder:
    return GoogleGeocoder(settings)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> UserModel:
    token = credentials.credentials if credentials else None
    return await authenticate(db, token)


def as_actor(user: UserModel) -> Actor:
    return Actor(id=user.id, role=UserRole(user.role))


def require_roles(*roles: UserRole):
    """Dependency factory: the current user must hold one of *roles*."""

    async def checker(user: UserModel = Depends(get_current_user)) -> UserModel:
        ensure(
            has_role(as_actor(user), roles),
            "You do not have permission to perform this action",
        )
        return user

    return checker


require_customer = require_roles(UserRole.CUSTOMER)
require_admin = require_roles(UserRole.ADMIN)
require_runner = require_roles(UserRole.RUNNER)


async def require_approved_runner(
    user: UserModel = Depends(require_runner),
) -> UserModel:
    if not user.runner_is_approved:
        raise PermissionDenied("Your runner account is not yet approved.")
    return user


def get_errand_service(
    db: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
    payments: PaystackGateway = Depends(get_payments),
) -> ErrandService:
    return ErrandService(db, notifier, payments=payments, config=settings)
