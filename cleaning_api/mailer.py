import logging
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Optional

import aiosmtplib

from .config import Settings
from .sms import DeliveryReceipt

logger = logging.getLogger(__name__)


class SmtpEmailTransport:
    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def sender(self) -> Optional[str]:
        return self.settings.EMAIL_FROM or self.settings.SMTP_USER

    def _configuration_error(self) -> Optional[str]:
        if not self.settings.EMAIL_NOTIFICATIONS_ENABLED:
            return "Email notifications disabled"
        if not self.settings.SMTP_HOST or not self.settings.SMTP_USER:
            return "SMTP transport not configured"
        return None

    def build_message(self, to: str, subject: str, html: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message["Message-ID"] = make_msgid()
        message.set_content("This message requires an HTML capable mail client.")
        message.add_alternative(html, subtype="html")
        return message

    async def send(self, to: str, subject: str, html: str) -> DeliveryReceipt:
        problem = self._configuration_error()
        if problem:
            logger.warning(f"Email to {to} not sent: {problem}")
            return DeliveryReceipt(success=False, error=problem)

        message = self.build_message(to, subject, html)
        try:
            await aiosmtplib.send(
                message,
                hostname=self.settings.SMTP_HOST,
                port=self.settings.SMTP_PORT,
                username=self.settings.SMTP_USER,
                password=self.settings.SMTP_PASS,
                start_tls=True,
                timeout=self.settings.NOTIFICATION_TIMEOUT_SECONDS,
            )
        except aiosmtplib.SMTPException as e:
            logger.error(f"Failed to send email to {to}: {e}")
            return DeliveryReceipt(success=False, error=str(e))

        logger.info(f"Email sent successfully to {to}. Message-ID: {message['Message-ID']}")
        return DeliveryReceipt(success=True, message_id=message["Message-ID"])
