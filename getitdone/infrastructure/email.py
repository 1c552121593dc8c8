"""SMTP email transport.

``smtplib`` is blocking, so each send runs in a worker thread to keep the
event loop free.
"""

from __future__ import annotations

import asyncio
import html
import logging
import smtplib
from datetime import datetime, timezone
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from getitdone.config import Settings, settings as default_settings
from getitdone.domain.errors import TransportFailure

from .transports import Channel, DeliveryResult, Message, Transport

logger = logging.getLogger(__name__)

BRAND = "Get It Done"


def render_html(body: str) -> str:
    year = datetime.now(timezone.utc).year
    return f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <div style="background-color: #4CAF50; padding: 20px; text-align: center;">
    <h1 style="color: white; margin: 0;">{BRAND}</h1>
  </div>
  <div style="padding: 20px;">
    <p>{html.escape(body)}</p>
    <p style="margin-top: 20px;">If you did not request this email, please ignore it.</p>
  </div>
  <div style="background-color: #f5f5f5; padding: 20px; text-align: center;">
    <p style="margin: 0; color: #666;">&copy; {year} {BRAND}. All rights reserved.</p>
  </div>
</div>
"""


class SmtpEmailTransport(Transport):
    channel = Channel.EMAIL

    def __init__(self, config: Settings = default_settings):
        self.config = config

    def _build(self, message: Message) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["From"] = self.config.email_from
        msg["To"] = message.recipient
        msg["Subject"] = message.subject or BRAND
        msg.attach(MIMEText(message.body, "plain"))
        msg.attach(MIMEText(render_html(message.body), "html"))
        return msg

    def _send_blocking(self, msg: MIMEMultipart) -> None:
        cfg = self.config
        with smtplib.SMTP(
            cfg.smtp_host, cfg.smtp_port, timeout=cfg.transport_timeout_seconds
        ) as server:
            if cfg.smtp_port != 25:
                server.starttls()
            if cfg.smtp_username and cfg.smtp_password:
                server.login(cfg.smtp_username, cfg.smtp_password)
            server.sendmail(msg["From"], [msg["To"]], msg.as_string())

    async def send(self, message: Message) -> DeliveryResult:
        msg = self._build(message)
        try:
            await asyncio.to_thread(self._send_blocking, msg)
        except smtplib.SMTPResponseException as exc:
            # 4yz replies are transient, 5yz permanent
            raise TransportFailure(
                f"SMTP error {exc.smtp_code}", retryable=400 <= exc.smtp_code < 500
            ) from exc
        except smtplib.SMTPException as exc:
            raise TransportFailure(f"SMTP error: {exc}", retryable=False) from exc
        except OSError as exc:
            raise TransportFailure(f"SMTP connection failed: {exc}", retryable=True) from exc

        logger.info("Email sent to=%s subject=%r", message.recipient, msg["Subject"])
        return DeliveryResult(channel=self.channel, recipient=message.recipient, success=True)
