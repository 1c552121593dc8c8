"""Shared slowapi rate limiter (per client IP)."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from getitdone.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.rate_limit_storage_uri,
)
