"""Password hashing (bcrypt via passlib) and JWT access/refresh tokens."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from passlib.context import CryptContext

from getitdone.config import settings
from getitdone.domain.errors import AuthError

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=12)

ACCESS = "access"
REFRESH = "refresh"


def hash_password(password: str) -> str:
    # bcrypt only looks at the first 72 bytes
    return pwd_context.hash((password or "")[:72])


def verify_password(password: str, hashed: str) -> bool:
    try:
        return pwd_context.verify((password or "")[:72], hashed)
    except ValueError:
        return False


def _encode(user_id: int, kind: str, secret: str, ttl: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "type": kind,
        "iat": now,
        "exp": now + ttl,
    }
    return jwt.encode(payload, secret, algorithm=settings.jwt_algorithm)


def create_access_token(user_id: int) -> str:
    return _encode(
        user_id,
        ACCESS,
        settings.jwt_secret,
        timedelta(minutes=settings.access_token_ttl_minutes),
    )


def create_refresh_token(user_id: int) -> str:
    return _encode(
        user_id,
        REFRESH,
        settings.jwt_refresh_secret,
        timedelta(days=settings.refresh_token_ttl_days),
    )


def _decode(token: str, kind: str, secret: str, message: str) -> dict[str, Any]:
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise AuthError("Your token has expired. Please log in again.") from None
    except jwt.InvalidTokenError:
        raise AuthError(message) from None
    if payload.get("type") != kind or not str(payload.get("sub", "")).isdigit():
        raise AuthError(message)
    return payload


def decode_access_token(token: str) -> dict[str, Any]:
    return _decode(token, ACCESS, settings.jwt_secret, "Invalid token. Please log in again.")


def decode_refresh_token(token: str) -> dict[str, Any]:
    return _decode(token, REFRESH, settings.jwt_refresh_secret, "Invalid refresh token")
