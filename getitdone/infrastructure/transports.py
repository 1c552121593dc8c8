"""
Outbound transport capability and the shared HTTP retry loop.

Every provider integration (SMS, email, payments, geocoding) goes through
here so timeouts and the retryable/fatal split live in one place:

* timeouts, connection errors, 5xx  -> ``TransportFailure(retryable=True)``
* 4xx, missing credentials          -> ``TransportFailure(retryable=False)``
"""

from __future__ import annotations

import asyncio
import enum
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

import httpx
from pydantic import BaseModel, Field

from getitdone.config import settings
from getitdone.domain.errors import TransportFailure

logger = logging.getLogger(__name__)

HTTP_CLIENT_ERROR_START = 400
HTTP_SERVER_ERROR_START = 500


class Channel(str, enum.Enum):
    SMS = "sms"
    EMAIL = "email"


@dataclass(frozen=True)
class Message:
    channel: Channel
    recipient: str
    body: str
    subject: Optional[str] = None


class DeliveryResult(BaseModel):
    """Outcome of one message hand-off to a provider."""

    channel: Channel
    recipient: str
    success: bool = Field(..., description="Whether the provider accepted the message")
    provider_id: str | None = Field(None, description="Provider message id if any")
    error: str | None = Field(None, description="Error message if failed")
    retryable: bool = False


class Transport(ABC):
    """Capability interface: ``send(message) -> DeliveryResult``."""

    channel: Channel

    @abstractmethod
    async def send(self, message: Message) -> DeliveryResult: ...


async def request_with_retry(
    method: str,
    url: str,
    *,
    max_retries: int | None = None,
    retry_delay: float | None = None,
    timeout: float | None = None,
    **kwargs: Any,
) -> httpx.Response:
    """
    Issue an HTTP request, retrying transient failures with exponential
    backoff.  Returns the successful response or raises ``TransportFailure``.
    """
    max_retries = max_retries or settings.transport_max_retries
    retry_delay = (
        settings.transport_retry_delay_seconds if retry_delay is None else retry_delay
    )
    timeout = timeout or settings.transport_timeout_seconds

    last_error = "no attempt made"
    for attempt in range(max_retries):
        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await client.request(method, url, **kwargs)
        except (httpx.TimeoutException, httpx.TransportError) as exc:
            last_error = f"{type(exc).__name__}: {exc}"
        else:
            if response.is_success:
                return response
            if HTTP_CLIENT_ERROR_START <= response.status_code < HTTP_SERVER_ERROR_START:
                raise TransportFailure(
                    f"Client error {response.status_code}: {response.text[:200]}",
                    retryable=False,
                )
            last_error = f"Server error {response.status_code}"

        if attempt < max_retries - 1:
            logger.debug("Retrying %s %s after: %s", method, url, last_error)
            await asyncio.sleep(retry_delay * (2**attempt))

    raise TransportFailure(
        f"Failed after {max_retries} attempts: {last_error}", retryable=True
    )
