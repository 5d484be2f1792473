"""
Email channel — sends HTML mail through the Resend REST API.

POST https://api.resend.com/emails   (Authorization: Bearer <RESEND_API_KEY>)
Body: {"from": "DeadlineMind <from-address>", "to": [...], "subject": ..., "html": ...}
Response: {"id": "<message id>"}
"""

from typing import Optional

import httpx

from app.config import settings
from app.services.outcome import Outcome
from app.utils.errors import ConfigurationError, DispatchError
from app.utils.logger import get_logger

logger = get_logger(__name__)

SENDER_NAME = "DeadlineMind"


class EmailDispatcher:
    channel = "email"

    def __init__(self, api_key: Optional[str], from_address: Optional[str],
                 api_url: str = "https://api.resend.com/emails",
                 timeout: float = 15.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = api_key
        self.from_address = from_address
        self.api_url = api_url
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, transport=None) -> "EmailDispatcher":
        return cls(
            api_key=settings.RESEND_API_KEY,
            from_address=settings.EMAIL_FROM_ADDRESS,
            api_url=settings.RESEND_API_URL,
            timeout=settings.EXTERNAL_CALL_TIMEOUT_SECONDS,
            transport=transport,
        )

    def missing_config(self) -> list:
        missing = []
        if not self.api_key:
            missing.append("RESEND_API_KEY")
        if not self.from_address:
            missing.append("EMAIL_FROM_ADDRESS")
        return missing

    @property
    def is_configured(self) -> bool:
        return not self.missing_config()

    async def send(self, to_email: str, html: str, subject: str, to_name: Optional[str] = None) -> Outcome:
        """Outcome.value is the provider message id on success."""
        missing = self.missing_config()
        if missing:
            raise ConfigurationError("Email service", missing)

        payload = {
            "from": f"{SENDER_NAME} <{self.from_address}>",
            "to": [f"{to_name} <{to_email}>" if to_name else to_email],
            "subject": subject,
            "html": html,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.api_url, json=payload, headers=headers)
        except httpx.TimeoutException:
            error = DispatchError(self.channel, f"timed out after {self.timeout}s sending to {to_email}")
            logger.warning(str(error))
            return Outcome.transient(str(error))
        except httpx.HTTPError as e:
            error = DispatchError(self.channel, f"{type(e).__name__}: {e}")
            logger.warning(str(error))
            return Outcome.transient(str(error))

        if response.status_code >= 400:
            try:
                detail = response.json().get("message") or response.text
            except (ValueError, AttributeError):
                detail = response.text
            error = DispatchError(self.channel, f"HTTP {response.status_code}: {detail}", response.status_code)
            logger.warning(str(error))
            return Outcome.transient(str(error))

        try:
            body = response.json()
        except ValueError:
            body = None
        message_id = body.get("id") if isinstance(body, dict) else None
        if message_id is None:
            logger.warning(f"Email to {to_email} accepted (HTTP {response.status_code}) but no message id was returned")
        logger.info(f"Email sent to {to_email} | subject='{subject}' | id={message_id}")
        return Outcome.success(message_id)
