"""
WhatsApp channel — sends a pre-approved content template through Twilio.

POST {base}/Accounts/{AccountSid}/Messages.json   (HTTP Basic: sid / auth token)
Form fields: From, To, ContentSid, ContentVariables (JSON string)

Template variables:
  {{1}} recipient label   {{2}} "Model (REG)"   {{3}} Tax | Insurance   {{4}} expiry date
"""

import json
import re
from typing import Optional

import httpx

from app.config import settings
from app.services.outcome import Outcome
from app.utils.errors import ConfigurationError, DispatchError
from app.utils.logger import get_logger

logger = get_logger(__name__)

WHATSAPP_PREFIX = "whatsapp:"
_E164_DIGITS = re.compile(r"^[1-9]\d{7,14}$")


def normalize_phone_number(raw: Optional[str]) -> Optional[str]:
    """
    Return "whatsapp:+<digits>" or None if the number can't be used.
    Strips whitespace and punctuation and ensures the leading '+'.
    """
    if not raw:
        return None
    value = raw.strip()
    if value.lower().startswith(WHATSAPP_PREFIX):
        value = value[len(WHATSAPP_PREFIX):]
    digits = re.sub(r"\D", "", value)
    if not _E164_DIGITS.match(digits):
        return None
    return f"{WHATSAPP_PREFIX}+{digits}"


def _sender(number: str) -> str:
    return number if number.startswith(WHATSAPP_PREFIX) else f"{WHATSAPP_PREFIX}{number}"


class WhatsAppDispatcher:
    channel = "whatsapp"

    def __init__(self, account_sid: Optional[str], auth_token: Optional[str],
                 from_number: Optional[str], content_sid: Optional[str],
                 api_base_url: str = "https://api.twilio.com/2010-04-01",
                 timeout: float = 15.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.content_sid = content_sid
        self.api_base_url = api_base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, transport=None) -> "WhatsAppDispatcher":
        return cls(
            account_sid=settings.TWILIO_ACCOUNT_SID,
            auth_token=settings.TWILIO_AUTH_TOKEN,
            from_number=settings.TWILIO_WHATSAPP_FROM_NUMBER,
            content_sid=settings.TWILIO_WHATSAPP_CONTENT_SID,
            api_base_url=settings.TWILIO_API_BASE_URL,
            timeout=settings.EXTERNAL_CALL_TIMEOUT_SECONDS,
            transport=transport,
        )

    def missing_config(self) -> list:
        return [name for name, value in (
            ("TWILIO_ACCOUNT_SID", self.account_sid),
            ("TWILIO_AUTH_TOKEN", self.auth_token),
            ("TWILIO_WHATSAPP_FROM_NUMBER", self.from_number),
            ("TWILIO_WHATSAPP_CONTENT_SID", self.content_sid),
        ) if not value]

    @property
    def is_configured(self) -> bool:
        return not self.missing_config()

    async def send(self, phone_number: str, recipient_label: str, vehicle_label: str,
                   document_type: str, expiry_date_formatted: str) -> Outcome:
        """Outcome.value is the Twilio message SID on success."""
        missing = self.missing_config()
        if missing:
            raise ConfigurationError("WhatsApp service", missing)

        to_number = normalize_phone_number(phone_number)
        if to_number is None:
            logger.warning(f"Unusable WhatsApp number '{phone_number}' — message not sent")
            return Outcome.not_found(f"Phone number '{phone_number}' is not a valid international number")

        form = {
            "From": _sender(self.from_number),
            "To": to_number,
            "ContentSid": self.content_sid,
            "ContentVariables": json.dumps({
                "1": recipient_label,
                "2": vehicle_label,
                "3": document_type,
                "4": expiry_date_formatted,
            }),
        }
        url = f"{self.api_base_url}/Accounts/{self.account_sid}/Messages.json"

        try:
            async with httpx.AsyncClient(auth=(self.account_sid, self.auth_token),
                                         timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, data=form)
        except httpx.TimeoutException:
            error = DispatchError(self.channel, f"timed out after {self.timeout}s sending to {to_number}")
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
        sid = body.get("sid") if isinstance(body, dict) else None
        if sid is None:
            logger.warning(f"WhatsApp reminder to {to_number} accepted (HTTP {response.status_code}) but no sid was returned")
        logger.info(f"WhatsApp reminder sent to {to_number} | {document_type} | sid={sid}")
        return Outcome.success(sid)
