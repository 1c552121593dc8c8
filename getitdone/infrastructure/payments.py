"""Payment gateway client (Paystack) -- used for refunds on cancellation."""

from __future__ import annotations

import logging

from getitdone.config import Settings, settings as default_settings
from getitdone.domain.errors import TransportFailure

from .transports import request_with_retry

logger = logging.getLogger(__name__)


class PaystackGateway:
    def __init__(self, config: Settings = default_settings):
        self.config = config

    async def refund(self, reference: str | None, amount: float) -> str | None:
        """
        Refund *amount* (NGN) of the transaction identified by *reference*.
        Returns the gateway's refund id.
        """
        if not self.config.paystack_secret_key:
            raise TransportFailure("Paystack secret key not configured", retryable=False)
        if not reference:
            raise TransportFailure("Errand has no payment reference", retryable=False)

        response = await request_with_retry(
            "POST",
            f"{self.config.paystack_base_url}/refund",
            json={"transaction": reference, "amount": int(round(amount * 100))},  # kobo
            headers={"Authorization": f"Bearer {self.config.paystack_secret_key}"},
        )
        data = response.json().get("data") or {}
        refund_id = data.get("id")
        logger.info("Refund requested reference=%s refund_id=%s", reference, refund_id)
        return str(refund_id) if refund_id is not None else None
