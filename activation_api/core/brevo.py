"""
Brevo transactional email client.
"""

import logging
from typing import List, Optional

import httpx

from activation_api.config import get_settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    pass


class BrevoMailer:
    """Sends single transactional emails through Brevo's SMTP API."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        sender_email: str,
        sender_name: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_url = api_url
        self.api_key = api_key
        self.sender_email = sender_email
        self.sender_name = sender_name
        self.timeout = timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def send(
        self,
        to: List[str],
        subject: str,
        html_content: str,
        tags: Optional[List[str]] = None,
    ) -> Optional[str]:
        """
        Send an email and return Brevo's message id.

        Raises:
            EmailDeliveryError: if Brevo is not configured or rejects the request.
        """
        if not self.configured:
            raise EmailDeliveryError("BREVO_API_KEY not configured")
        if not to:
            raise EmailDeliveryError("No recipients")

        payload = {
            "sender": {"email": self.sender_email, "name": self.sender_name},
            "to": [{"email": address} for address in to],
            "subject": subject,
            "htmlContent": html_content,
        }
        if tags:
            payload["tags"] = tags

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(
                    self.api_url,
                    json=payload,
                    headers={"api-key": self.api_key, "accept": "application/json"},
                )
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPError as e:
            raise EmailDeliveryError(f"Brevo request failed: {e}") from e
        except ValueError as e:
            raise EmailDeliveryError(f"Brevo returned invalid JSON: {e}") from e

        message_id = data.get("messageId") if isinstance(data, dict) else None
        logger.info("Sent email '%s' to %d recipient(s) (%s)", subject, len(to), message_id)
        return message_id


def get_mailer() -> BrevoMailer:
    settings = get_settings()
    return BrevoMailer(
        api_url=settings.brevo_api_url,
        api_key=settings.brevo_api_key,
        sender_email=settings.default_sender_email,
        sender_name=settings.default_sender_name,
        timeout=settings.http_timeout_seconds,
    )
