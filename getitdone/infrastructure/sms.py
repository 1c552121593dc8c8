"""SMS transport backed by the Twilio SDK, using its aiohttp-based async client."""

from __future__ import annotations

import asyncio
import logging
import re

import aiohttp
from twilio.base.exceptions import TwilioException, TwilioRestException
from twilio.http.async_http_client import AsyncTwilioHttpClient
from twilio.rest import Client

from getitdone.config import Settings, settings as default_settings
from getitdone.domain.errors import TransportFailure

from .transports import Channel, DeliveryResult, Message, Transport

logger = logging.getLogger(__name__)


def to_e164(phone: str) -> str:
    """``'0803 123 4567'`` style input is left to the caller; we only
    strip formatting and ensure the leading ``+``."""
    phone = phone.strip()
    if phone.startswith("+"):
        return "+" + re.sub(r"\D", "", phone[1:])
    return "+" + re.sub(r"\D", "", phone)


class TwilioSmsTransport(Transport):
    channel = Channel.SMS

    def __init__(self, config: Settings = default_settings):
        self.config = config

    async def send(self, message: Message) -> DeliveryResult:
        cfg = self.config
        if not (cfg.twilio_account_sid and cfg.twilio_auth_token and cfg.twilio_phone_number):
            raise TransportFailure("Twilio credentials not configured", retryable=False)

        # 5xx and connection errors are retried inside the http client
        http_client = AsyncTwilioHttpClient(
            timeout=cfg.transport_timeout_seconds,
            max_retries=cfg.transport_max_retries,
        )
        client = Client(cfg.twilio_account_sid, cfg.twilio_auth_token, http_client=http_client)
        try:
            sent = await client.messages.create_async(
                body=message.body,
                from_=cfg.twilio_phone_number,
                to=to_e164(message.recipient),
            )
        except TwilioRestException as exc:
            raise TransportFailure(
                f"Twilio error {exc.status}: {exc.msg}", retryable=exc.status >= 500
            ) from exc
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise TransportFailure(
                f"Twilio unreachable: {type(exc).__name__}", retryable=True
            ) from exc
        except TwilioException as exc:
            raise TransportFailure(f"Twilio error: {exc}", retryable=False) from exc
        finally:
            await http_client.close()

        logger.info("SMS queued sid=%s to=%s", sent.sid, message.recipient)
        return DeliveryResult(
            channel=self.channel,
            recipient=message.recipient,
            success=True,
            provider_id=sent.sid,
        )
