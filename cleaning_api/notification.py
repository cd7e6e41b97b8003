"""
Best-effort fan-out of booking and contact notifications.

A dispatch takes a list of ``ChannelRequest`` values, attempts every one of them
concurrently and folds the per-channel ``ChannelResult`` values into outcome flags
(``smsSent.admin`` and friends) that are written back onto the owning record in one
update. A failing channel never affects its siblings or the calling request.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from fastapi import Depends
from pymongo.errors import PyMongoError

from .config import Settings, get_settings
from .mailer import SmtpEmailTransport
from .models import concern_type_label
from .sms import DeliveryReceipt, TwilioSmsTransport, truncate_sms
from .templates import Template, render

logger = logging.getLogger(__name__)

SMS_ENABLED_SERVICES = {"airbnb", "residential", "commercial"}
STATUS_UPDATE_NOTIFICATIONS = {"confirmed", "completed", "cancelled"}


class Medium(str, Enum):
    SMS = "sms"
    EMAIL = "email"


class Recipient(str, Enum):
    ADMIN = "admin"
    CUSTOMER = "customer"


class Channel(Enum):
    ADMIN_SMS = (Recipient.ADMIN, Medium.SMS)
    CUSTOMER_SMS = (Recipient.CUSTOMER, Medium.SMS)
    ADMIN_EMAIL = (Recipient.ADMIN, Medium.EMAIL)
    CUSTOMER_EMAIL = (Recipient.CUSTOMER, Medium.EMAIL)

    @property
    def recipient(self) -> Recipient:
        return self.value[0]

    @property
    def medium(self) -> Medium:
        return self.value[1]

    @property
    def flag(self) -> str:
        prefix = "smsSent" if self.medium is Medium.SMS else "emailSent"
        return f"{prefix}.{self.recipient.value}"


@dataclass(frozen=True)
class ChannelRequest:
    channel: Channel
    template: Template
    data: dict[str, Any]
    to: Optional[str]


@dataclass(frozen=True)
class ChannelResult:
    channel: Channel
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class DispatchReport:
    results: tuple[ChannelResult, ...] = field(default_factory=tuple)

    def outcome_flags(self) -> dict[str, bool]:
        """Dotted outcome flags for every attempted channel, ready for a ``$set``."""
        return {result.channel.flag: result.success for result in self.results}

    def succeeded(self, channel: Channel) -> bool:
        return any(result.success for result in self.results if result.channel is channel)


class NotificationDispatcher:
    def __init__(self, settings: Settings, sms_transport, email_transport):
        self.settings = settings
        self.sms_transport = sms_transport
        self.email_transport = email_transport

    async def dispatch(self, requests: list[ChannelRequest]) -> DispatchReport:
        results = await asyncio.gather(*(self._attempt(request) for request in requests))
        return DispatchReport(results=tuple(results))

    async def dispatch_and_record(self, store, record_id: str, requests: list[ChannelRequest]) -> DispatchReport:
        report = await self.dispatch(requests)
        if not report.results:
            return report
        try:
            await store.update_outcome_flags(record_id, report.outcome_flags())
        except PyMongoError as e:
            logger.error(f"Could not store notification outcome for {record_id}: {e}")
        return report

    async def send_sms(self, to: str, body: str) -> DeliveryReceipt:
        """Send one SMS outside any dispatch, truncated and bounded by the same timeout."""
        try:
            receipt = await asyncio.wait_for(
                self.sms_transport.send(to, truncate_sms(body, limit=self.settings.SMS_MAX_LENGTH)),
                timeout=self.settings.NOTIFICATION_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError:
            logger.error(f"SMS to {to} timed out")
            return DeliveryReceipt(success=False, error="Timed out")
        except Exception as e:
            logger.error(f"Error sending SMS to {to}: {e}")
            return DeliveryReceipt(success=False, error=str(e))
        if not receipt.success:
            logger.error(f"Failed to send SMS to {to}: {receipt.error}")
        return receipt

    async def _attempt(self, request: ChannelRequest) -> ChannelResult:
        channel = request.channel
        if not request.to:
            logger.error(f"{channel.name} skipped: no {channel.recipient.value} {channel.medium.value} recipient configured")
            return ChannelResult(channel, success=False, error="Recipient not configured")

        try:
            receipt = await asyncio.wait_for(
                self._deliver(request), timeout=self.settings.NOTIFICATION_TIMEOUT_SECONDS
            )
        except asyncio.TimeoutError:
            logger.error(f"{channel.name} to {request.to} timed out")
            return ChannelResult(channel, success=False, error="Timed out")
        except Exception as e:
            logger.error(f"Error sending {channel.name} to {request.to}: {e}")
            return ChannelResult(channel, success=False, error=str(e))

        if receipt.success:
            logger.info(f"{channel.name} sent to {request.to} ({receipt.message_id})")
        else:
            logger.error(f"Failed to send {channel.name} to {request.to}: {receipt.error}")
        return ChannelResult(channel, receipt.success, receipt.message_id, receipt.error)

    async def _deliver(self, request: ChannelRequest) -> DeliveryReceipt:
        message = render(request.template, request.data)
        if request.channel.medium is Medium.SMS:
            body = truncate_sms(message.body, limit=self.settings.SMS_MAX_LENGTH)
            return await self.sms_transport.send(request.to, body)
        return await self.email_transport.send(request.to, message.subject or "", message.body)


def get_dispatcher(settings: Settings = Depends(get_settings)) -> NotificationDispatcher:
    return NotificationDispatcher(
        settings,
        sms_transport=TwilioSmsTransport(settings),
        email_transport=SmtpEmailTransport(settings),
    )


# Dispatch rules

def _display_date(value: Any) -> Optional[str]:
    if isinstance(value, datetime):
        return value.strftime("%m/%d/%Y")
    return value


def _display_timestamp(value: Any) -> Optional[str]:
    if isinstance(value, datetime):
        return value.strftime("%m/%d/%Y, %I:%M:%S %p")
    return value


def booking_template_data(booking: dict, settings: Settings) -> dict[str, Any]:
    return {
        "bookingNumber": booking.get("bookingNumber"),
        "customerName": booking.get("contactName"),
        "customerEmail": booking.get("contactEmail"),
        "customerPhone": booking.get("contactPhone"),
        "serviceType": booking.get("serviceType"),
        "packageType": booking.get("packageType"),
        "preferredDate": _display_date(booking.get("preferredDate")),
        "preferredTime": booking.get("preferredTime"),
        "scheduledDate": _display_date(booking.get("preferredDate")),
        "scheduledTime": booking.get("preferredTime"),
        "address": booking.get("address"),
        "notes": booking.get("notes"),
        "status": booking.get("status"),
        "submittedAt": _display_timestamp(booking.get("submittedAt")),
        "businessPhone": settings.ADMIN_PHONE_NUMBER,
        "businessEmail": settings.ADMIN_EMAIL,
    }


def contact_template_data(contact: dict) -> dict[str, Any]:
    return {
        "contactNumber": contact.get("contactNumber"),
        "name": contact.get("name"),
        "email": contact.get("email"),
        "phone": contact.get("phone"),
        "concernType": contact.get("concernType"),
        "concernTypeLabel": concern_type_label(contact.get("concernType", "")),
        "subject": contact.get("subject"),
        "message": contact.get("message"),
        "preferredContact": contact.get("preferredContact"),
        "serviceDate": _display_date(contact.get("serviceDate")),
        "serviceLocation": contact.get("serviceLocation"),
        "referenceNumber": contact.get("referenceNumber"),
        "priority": contact.get("priority"),
    }


def booking_created_requests(booking: dict, settings: Settings) -> list[ChannelRequest]:
    data = booking_template_data(booking, settings)
    requests = []
    if str(booking.get("serviceType", "")).lower() in SMS_ENABLED_SERVICES:
        requests.append(ChannelRequest(Channel.ADMIN_SMS, Template.NEW_BOOKING_SMS, data, settings.ADMIN_PHONE_NUMBER))
        requests.append(
            ChannelRequest(Channel.CUSTOMER_SMS, Template.BOOKING_CONFIRMED_SMS, data, booking.get("contactPhone"))
        )
    if settings.EMAIL_NOTIFICATIONS_ENABLED:
        requests.append(ChannelRequest(Channel.ADMIN_EMAIL, Template.NEW_BOOKING_EMAIL, data, settings.ADMIN_EMAIL))
        requests.append(
            ChannelRequest(
                Channel.CUSTOMER_EMAIL, Template.BOOKING_CONFIRMATION_EMAIL, data, booking.get("contactEmail")
            )
        )
    return requests


def wants_customer_sms(contact: dict) -> bool:
    return (
        contact.get("preferredContact") == "phone"
        or contact.get("priority") == "urgent"
        or contact.get("concernType") == "complaint"
    )


def contact_submitted_requests(contact: dict, settings: Settings) -> list[ChannelRequest]:
    data = contact_template_data(contact)
    requests = [ChannelRequest(Channel.ADMIN_SMS, Template.CONTACT_FORM_SMS, data, settings.ADMIN_PHONE_NUMBER)]
    if wants_customer_sms(contact):
        requests.append(
            ChannelRequest(Channel.CUSTOMER_SMS, Template.CONTACT_CONFIRMATION_SMS, data, contact.get("phone"))
        )
    if settings.EMAIL_NOTIFICATIONS_ENABLED:
        requests.append(ChannelRequest(Channel.ADMIN_EMAIL, Template.CONTACT_FORM_EMAIL, data, settings.ADMIN_EMAIL))
    return requests


def booking_status_requests(
    previous_status: str, booking: dict, settings: Settings, message: Optional[str] = None
) -> list[ChannelRequest]:
    status = booking.get("status")
    if not settings.EMAIL_NOTIFICATIONS_ENABLED:
        return []
    if status == previous_status or status not in STATUS_UPDATE_NOTIFICATIONS:
        return []
    data = {**booking_template_data(booking, settings), "message": message}
    return [
        ChannelRequest(
            Channel.CUSTOMER_EMAIL, Template.BOOKING_STATUS_UPDATE_EMAIL, data, booking.get("contactEmail")
        )
    ]
