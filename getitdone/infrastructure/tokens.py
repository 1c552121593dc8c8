"""
Redis-backed one-time tokens (email verification, password reset).

A token is a random 256-bit hex string stored as ``token:<purpose>:<token>``
with the user id as value and a TTL.  Consumption uses ``GETDEL`` so a
token can be redeemed at most once, even under concurrent requests.
"""

from __future__ import annotations

import enum
import secrets
from typing import Optional

import redis.asyncio as aioredis


class TokenPurpose(str, enum.Enum):
    VERIFY_EMAIL = "verify-email"
    RESET_PASSWORD = "reset-password"


class OneTimeTokenStore:
    def __init__(self, client: aioredis.Redis):
        self.redis = client

    @staticmethod
    def _key(purpose: TokenPurpose, token: str) -> str:
        return f"token:{purpose.value}:{token}"

    async def issue(self, purpose: TokenPurpose, user_id: int, ttl_seconds: int) -> str:
        token = secrets.token_hex(32)
        await self.redis.set(self._key(purpose, token), str(user_id), ex=ttl_seconds)
        return token

    async def consume(self, purpose: TokenPurpose, token: str) -> Optional[int]:
        """Return the user id the token was issued for, or None."""
        value = await self.redis.getdel(self._key(purpose, token))
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            return None
