import logging
import re
from dataclasses import dataclass
from typing import Optional

import httpx

from .config import Settings

logger = logging.getLogger(__name__)

SMS_MAX_LENGTH = 1600
TRUNCATION_MARKER = "..."

_NON_DIGITS = re.compile(r"\D")
_US_TEN_DIGITS = re.compile(r"^[2-9]\d{2}[2-9]\d{2}\d{4}$")
_US_ELEVEN_DIGITS = re.compile(r"^1[2-9]\d{2}[2-9]\d{2}\d{4}$")


@dataclass(frozen=True)
class DeliveryReceipt:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


def truncate_sms(body: str, limit: int = SMS_MAX_LENGTH, marker: str = TRUNCATION_MARKER) -> str:
    """Cut ``body`` so that, marker included, it never exceeds ``limit`` characters."""
    if len(body) <= limit:
        return body
    return body[: limit - len(marker)] + marker


def validate_phone_number(phone: str) -> bool:
    cleaned = _NON_DIGITS.sub("", phone or "")
    if len(cleaned) == 10:
        return bool(_US_TEN_DIGITS.match(cleaned))
    if len(cleaned) == 11 and cleaned.startswith("1"):
        return bool(_US_ELEVEN_DIGITS.match(cleaned))
    return False


def format_phone_number(phone: str) -> str:
    cleaned = _NON_DIGITS.sub("", phone)
    if len(cleaned) == 10:
        return f"+1{cleaned}"
    if len(cleaned) == 11 and cleaned.startswith("1"):
        return f"+{cleaned}"
    if phone.startswith("+"):
        return phone
    return f"+{cleaned}"


class TwilioSmsTransport:
    """Sends SMS through the Twilio Messages REST endpoint."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._transport = transport

    def _configuration_error(self) -> Optional[str]:
        if not self.settings.SMS_NOTIFICATIONS_ENABLED:
            return "SMS notifications disabled"
        if not self.settings.TWILIO_ACCOUNT_SID or not self.settings.TWILIO_AUTH_TOKEN:
            return "Twilio client not configured"
        if not self.settings.TWILIO_PHONE_NUMBER:
            return "Twilio phone number not configured"
        return None

    async def send(self, to: str, body: str) -> DeliveryReceipt:
        problem = self._configuration_error()
        if problem:
            logger.warning(f"SMS to {to} not sent: {problem}")
            return DeliveryReceipt(success=False, error=problem)

        account_sid = self.settings.TWILIO_ACCOUNT_SID
        base_url = self.settings.TWILIO_API_BASE_URL.rstrip("/")
        url = f"{base_url}/2010-04-01/Accounts/{account_sid}/Messages.json"
        payload = {"To": to, "From": self.settings.TWILIO_PHONE_NUMBER, "Body": body}

        async with httpx.AsyncClient(
            auth=(account_sid, self.settings.TWILIO_AUTH_TOKEN),
            timeout=self.settings.NOTIFICATION_TIMEOUT_SECONDS,
            transport=self._transport,
        ) as client:
            try:
                response = await client.post(url, data=payload)
            except httpx.RequestError as e:
                logger.error(f"Could not reach Twilio for SMS to {to}: {e}")
                return DeliveryReceipt(success=False, error=str(e))

        if response.status_code < 200 or response.status_code >= 300:
            details = response.text[:300]
            logger.error(f"Twilio rejected SMS to {to}. Status: {response.status_code}, Response: {details}")
            return DeliveryReceipt(success=False, error=f"HTTP {response.status_code}: {details}")

        sid = response.json().get("sid")
        logger.info(f"SMS sent successfully to {to}. SID: {sid}")
        return DeliveryReceipt(success=True, message_id=sid)
