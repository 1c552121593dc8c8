"""
Notification dispatcher and message templates.

Services *queue* messages while they mutate state; the API layer calls
``dispatch()`` only after the transaction has committed (as a background
task).  A provider failure therefore never rolls back a state change: it is
logged as a warning and reported in the returned ``DeliveryResult`` list.
"""

from __future__ import annotations

import logging

from getitdone.domain.errors import TransportFailure
from getitdone.infrastructure.transports import (
    Channel,
    DeliveryResult,
    Message,
    Transport,
)

logger = logging.getLogger(__name__)


# ── Templates ─────────────────────────────────────────────────────────


def errand_nearby_text(errand_type: str, distance_km: float) -> str:
    return (
        f"New errand available near you! Type: {errand_type}, "
        f"Distance: {distance_km:.2f}km"
    )


def errand_accepted_text(runner_first_name: str) -> str:
    return (
        f"Your errand has been accepted by {runner_first_name}. "
        "They will contact you shortly."
    )


def errand_in_progress_text(eta_minutes: int) -> str:
    return (
        "Your errand is in progress. "
        f"Estimated arrival in {eta_minutes} minute{'s' if eta_minutes != 1 else ''}."
    )


def errand_completed_text() -> str:
    return "Your errand has been completed. Please rate your experience."


def errand_cancelled_text(reason: str | None, *, for_runner: bool = False) -> str:
    prefix = "The errand has been cancelled." if for_runner else "Your errand has been cancelled."
    return f"{prefix} Reason: {reason or 'not given'}"


def verify_email_text(url: str) -> str:
    return f"Please click on the following link to verify your email: {url}"


def reset_password_text(url: str) -> str:
    return f"Click on the following link to reset your password: {url}"


# ── Dispatcher ────────────────────────────────────────────────────────


class NotificationDispatcher:
    """Per-request outbox in front of the SMS and email transports."""

    def __init__(self, sms: Transport, email: Transport):
        self.transports: dict[Channel, Transport] = {
            Channel.SMS: sms,
            Channel.EMAIL: email,
        }
        self.pending: list[Message] = []

    def queue_sms(self, phone: str | None, text: str) -> None:
        if not phone:
            logger.warning("Skipping SMS with no recipient: %r", text[:60])
            return
        self.pending.append(Message(Channel.SMS, phone, text))

    def queue_email(self, address: str | None, subject: str, text: str) -> None:
        if not address:
            logger.warning("Skipping email with no recipient: %r", subject)
            return
        self.pending.append(Message(Channel.EMAIL, address, text, subject=subject))

    def discard(self) -> None:
        self.pending.clear()

    async def _deliver(self, message: Message) -> DeliveryResult:
        transport = self.transports[message.channel]
        try:
            return await transport.send(message)
        except TransportFailure as exc:
            logger.warning(
                "%s to %s failed (retryable=%s): %s",
                message.channel.value,
                message.recipient,
                exc.retryable,
                exc.message,
            )
            return DeliveryResult(
                channel=message.channel,
                recipient=message.recipient,
                success=False,
                error=exc.message,
                retryable=exc.retryable,
            )
        except Exception as exc:
            logger.exception("Unexpected error sending %s", message.channel.value)
            return DeliveryResult(
                channel=message.channel,
                recipient=message.recipient,
                success=False,
                error=f"{type(exc).__name__}: {exc}",
            )

    async def dispatch(self, *, raise_on_failure: bool = False) -> list[DeliveryResult]:
        """
        Send every queued message once, in order.

        With ``raise_on_failure`` (operations whose sole purpose is the
        message, e.g. forgot-password) the first failed delivery is raised
        as ``TransportFailure`` after all messages have been attempted.
        """
        outbox, self.pending = self.pending, []
        results = [await self._deliver(message) for message in outbox]

        failed = [r for r in results if not r.success]
        if results:
            logger.info(
                "Dispatched %d notifications (%d successful, %d failed)",
                len(results),
                len(results) - len(failed),
                len(failed),
            )
        if failed and raise_on_failure:
            raise TransportFailure(
                f"Could not deliver {failed[0].channel.value} to {failed[0].recipient}",
                retryable=failed[0].retryable,
            )
        return results
