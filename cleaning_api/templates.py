"""
Closed registry of notification templates.

Every ``Template`` member maps to exactly one render function; ``render`` takes the
template and a camelCase data payload and returns the subject (emails only) and body.
"""
from dataclasses import dataclass
from enum import Enum
from html import escape
from typing import Any, Callable, Optional


class Template(str, Enum):
    NEW_BOOKING_SMS = "newBooking"
    BOOKING_CONFIRMED_SMS = "bookingConfirmed"
    BOOKING_REMINDER_SMS = "bookingReminder"
    STAFF_ASSIGNMENT_SMS = "staffAssignment"
    CONTACT_FORM_SMS = "contactForm"
    CONTACT_CONFIRMATION_SMS = "contactConfirmation"
    BOOKING_CONFIRMATION_EMAIL = "bookingConfirmation"
    NEW_BOOKING_EMAIL = "newBookingNotification"
    BOOKING_REMINDER_EMAIL = "bookingReminderEmail"
    BOOKING_STATUS_UPDATE_EMAIL = "bookingStatusUpdate"
    CONTACT_FORM_EMAIL = "contactFormNotification"

    @property
    def is_sms(self) -> bool:
        return self.name.endswith("_SMS")


@dataclass(frozen=True)
class RenderedMessage:
    subject: Optional[str]
    body: str


def _optional_line(label: str, value: Any) -> str:
    return f"{label}: {value}" if value else ""


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _new_booking_sms(data: dict) -> RenderedMessage:
    body = (
        "🧹 NEW BOOKING ALERT!\n\n"
        f"Service: {_text(data.get('serviceType')).upper()}\n"
        f"Customer: {_text(data.get('customerName'))}\n"
        f"Phone: {_text(data.get('customerPhone'))}\n"
        f"Date: {_text(data.get('preferredDate'))}\n"
        f"Time: {_text(data.get('preferredTime'))}\n"
        f"Address: {_text(data.get('address'))}\n"
        f"Booking #: {_text(data.get('bookingNumber'))}\n\n"
        f"{_optional_line('Notes', data.get('notes'))}\n\n"
        "Please check admin panel for full details."
    )
    return RenderedMessage(None, body)


def _booking_confirmed_sms(data: dict) -> RenderedMessage:
    body = (
        "✅ Booking Confirmed!\n\n"
        f"Hi {_text(data.get('customerName'))}, your {_text(data.get('serviceType'))} cleaning service "
        f"has been confirmed for {_text(data.get('preferredTime'))} at {_text(data.get('preferredDate'))}.\n\n"
        f"Booking #: {_text(data.get('bookingNumber'))}\n"
        f"Address: {_text(data.get('address'))}\n\n"
        "We'll contact you if any changes are needed. Thank you!"
    )
    return RenderedMessage(None, body)


def _booking_reminder_sms(data: dict) -> RenderedMessage:
    body = (
        f"⏰ Reminder: Your {_text(data.get('serviceType'))} cleaning service is scheduled for tomorrow "
        f"({_text(data.get('scheduledDate'))}) at {_text(data.get('scheduledTime'))}.\n\n"
        f"Address: {_text(data.get('address'))}\n"
        f"Booking #: {_text(data.get('bookingNumber'))}\n\n"
        "Please ensure someone is available. Contact us if you need to reschedule."
    )
    return RenderedMessage(None, body)


def _staff_assignment_sms(data: dict) -> RenderedMessage:
    body = (
        "📋 NEW JOB ASSIGNMENT\n\n"
        f"Service: {_text(data.get('serviceType'))}\n"
        f"Date: {_text(data.get('scheduledDate'))}\n"
        f"Time: {_text(data.get('scheduledTime'))}\n"
        f"Address: {_text(data.get('address'))}\n"
        f"Customer: {_text(data.get('customerName'))} ({_text(data.get('customerPhone'))})\n"
        f"Booking #: {_text(data.get('bookingNumber'))}\n\n"
        f"{_optional_line('Special Notes', data.get('notes'))}\n\n"
        "Check your schedule and confirm availability."
    )
    return RenderedMessage(None, body)


def _contact_form_sms(data: dict) -> RenderedMessage:
    body = (
        "📞 NEW CONTACT FORM SUBMISSION\n\n"
        f"Type: {_text(data.get('concernTypeLabel'))}\n"
        f"Name: {_text(data.get('name'))}\n"
        f"Phone: {_text(data.get('phone'))}\n"
        f"Email: {_text(data.get('email'))}\n"
        f"Contact #: {_text(data.get('contactNumber'))}\n\n"
        f"Subject: {_text(data.get('subject'))}\n\n"
        f"{_optional_line('Service Date', data.get('serviceDate'))}\n"
        f"{_optional_line('Service Location', data.get('serviceLocation'))}\n"
        f"{_optional_line('Reference #', data.get('referenceNumber'))}\n\n"
        f"Message: {_text(data.get('message'))}\n\n"
        f"Preferred Contact: {_text(data.get('preferredContact'))}\n"
        f"Priority: {_text(data.get('priority')).upper()}\n\n"
        "Please respond promptly."
    )
    return RenderedMessage(None, body)


def _contact_confirmation_sms(data: dict) -> RenderedMessage:
    via = "phone" if data.get("preferredContact") == "phone" else "email"
    body = (
        "✅ Contact Form Received\n\n"
        f"Hi {_text(data.get('name'))}, we've received your "
        f"{_text(data.get('concernTypeLabel')).lower()} and will respond within 24 hours.\n\n"
        f"Contact #: {_text(data.get('contactNumber'))}\n"
        f"Subject: {_text(data.get('subject'))}\n\n"
        f"We'll contact you via {via} as requested.\n\n"
        "Thank you for contacting us!"
    )
    return RenderedMessage(None, body)


# Email bodies

def _html_row(label: str, value: Any, skip_empty: bool = False) -> str:
    if skip_empty and not value:
        return ""
    return f"<p><strong>{escape(label)}:</strong> {escape(_text(value))}</p>"


def _html_box(title: str, rows: list[str], accent: Optional[str] = None) -> str:
    if accent:
        style = (
            "background-color: #fef2f2; padding: 20px; border-radius: 8px; "
            f"margin: 20px 0; border-left: 4px solid {accent};"
        )
        heading = f'<h3 style="margin-top: 0; color: {accent};">{escape(title)}</h3>'
    else:
        style = "background-color: #f3f4f6; padding: 20px; border-radius: 8px; margin: 20px 0;"
        heading = f'<h3 style="margin-top: 0;">{escape(title)}</h3>'
    return f'<div style="{style}">{heading}{"".join(rows)}</div>'


def _html_page(heading: str, color: str, parts: list[str]) -> str:
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f'<h2 style="color: {color};">{escape(heading)}</h2>'
        f'{"".join(parts)}'
        "</div>"
    )


def _contact_us(data: dict) -> str:
    return (
        "<p>If you have any questions or need to make changes, please contact us at:</p>"
        f"<p>📞 Phone: {escape(_text(data.get('businessPhone')))}<br>"
        f"📧 Email: {escape(_text(data.get('businessEmail')))}</p>"
    )


def _booking_confirmation_email(data: dict) -> RenderedMessage:
    details = _html_box(
        "Your Booking Request:",
        [
            _html_row("Booking Number", data.get("bookingNumber")),
            _html_row("Service Type", data.get("serviceType")),
            _html_row("Package", data.get("packageType"), skip_empty=True),
            _html_row("Preferred Date", data.get("preferredDate")),
            _html_row("Preferred Time", data.get("preferredTime")),
            _html_row("Address", data.get("address")),
            _html_row("Notes", data.get("notes"), skip_empty=True),
        ],
    )
    body = _html_page(
        "Booking Request Received",
        "#10b981",
        [
            f"<p>Dear {escape(_text(data.get('customerName')))},</p>",
            "<p>Thank you for your interest in our cleaning services! We have received your booking "
            "request and will contact you soon to confirm the details.</p>",
            details,
            "<p><strong>What happens next?</strong></p>"
            "<ul>"
            "<li>We will review your request within 24 hours</li>"
            "<li>Our team will contact you to confirm the appointment details</li>"
            "<li>We'll provide you with a detailed quote for the service</li>"
            "<li>Once confirmed, we'll send you a final confirmation with all details</li>"
            "</ul>",
            _contact_us(data),
            "<p>Thank you for choosing our cleaning service!</p>",
            "<p>Best regards,<br>Cleaning Service Team</p>",
        ],
    )
    return RenderedMessage("Booking Request Received - Cleaning Service", body)


def _new_booking_email(data: dict) -> RenderedMessage:
    body = _html_page(
        "New Booking Request",
        "#dc2626",
        [
            "<p>A new booking request has been submitted and requires your attention.</p>",
            _html_box(
                "Booking Details:",
                [
                    _html_row("Booking Number", data.get("bookingNumber")),
                    _html_row("Submitted", data.get("submittedAt")),
                ],
                accent="#dc2626",
            ),
            _html_box(
                "Customer Information:",
                [
                    _html_row("Name", data.get("customerName")),
                    _html_row("Email", data.get("customerEmail")),
                    _html_row("Phone", data.get("customerPhone")),
                ],
            ),
            _html_box(
                "Service Details:",
                [
                    _html_row("Service Type", data.get("serviceType")),
                    _html_row("Package", data.get("packageType"), skip_empty=True),
                    _html_row("Preferred Date", data.get("preferredDate")),
                    _html_row("Preferred Time", data.get("preferredTime")),
                    _html_row("Address", data.get("address")),
                    _html_row("Customer Notes", data.get("notes"), skip_empty=True),
                ],
            ),
            '<div style="text-align: center; margin: 30px 0;"><p><strong>Action Required:</strong> '
            "Please contact the customer within 24 hours to confirm the booking details.</p></div>",
            "<p>Best regards,<br>Cleaning Service System</p>",
        ],
    )
    return RenderedMessage(f"New Booking Request - {_text(data.get('bookingNumber'))}", body)


def _booking_reminder_email(data: dict) -> RenderedMessage:
    body = _html_page(
        "Booking Reminder",
        "#10b981",
        [
            f"<p>Dear {escape(_text(data.get('customerName')))},</p>",
            "<p>This is a friendly reminder that you have a cleaning service scheduled for tomorrow.</p>",
            _html_box(
                "Booking Details:",
                [
                    _html_row("Booking Number", data.get("bookingNumber")),
                    _html_row("Service Type", data.get("serviceType")),
                    _html_row("Date", data.get("scheduledDate")),
                    _html_row("Time", data.get("scheduledTime")),
                    _html_row("Address", data.get("address")),
                ],
            ),
            "<p>Please ensure someone is available at the property during the scheduled time.</p>",
            "<p>If you need to reschedule or cancel, please contact us at least 24 hours in advance.</p>",
            "<p>Best regards,<br>Cleaning Service Team</p>",
        ],
    )
    return RenderedMessage("Booking Reminder - Tomorrow", body)


def _booking_status_update_email(data: dict) -> RenderedMessage:
    status = _text(data.get("status"))
    message = data.get("message")
    body = _html_page(
        "Booking Status Update",
        "#10b981",
        [
            f"<p>Dear {escape(_text(data.get('customerName')))},</p>",
            "<p>Your booking status has been updated.</p>",
            _html_box(
                "Booking Details:",
                [
                    _html_row("Booking Number", data.get("bookingNumber")),
                    '<p><strong>New Status:</strong> <span style="color: #10b981; font-weight: bold;">'
                    f"{escape(status)}</span></p>",
                    _html_row("Service Type", data.get("serviceType")),
                    _html_row("Scheduled Date", data.get("scheduledDate")),
                ],
            ),
            _html_row("Message", message, skip_empty=True),
            "<p>If you have any questions, please don't hesitate to contact us.</p>",
            "<p>Best regards,<br>Cleaning Service Team</p>",
        ],
    )
    return RenderedMessage(f"Booking {status} - {_text(data.get('bookingNumber'))}", body)


def _contact_form_email(data: dict) -> RenderedMessage:
    body = _html_page(
        "New Contact Form Submission",
        "#dc2626",
        [
            _html_box(
                f"{_text(data.get('concernTypeLabel'))} - {_text(data.get('contactNumber'))}",
                [
                    _html_row("Priority", _text(data.get("priority")).upper()),
                    _html_row("Preferred Contact", data.get("preferredContact")),
                ],
                accent="#dc2626",
            ),
            _html_box(
                "Customer Information:",
                [
                    _html_row("Name", data.get("name")),
                    _html_row("Email", data.get("email")),
                    _html_row("Phone", data.get("phone")),
                ],
            ),
            _html_box(
                "Message:",
                [
                    _html_row("Subject", data.get("subject")),
                    _html_row("Service Date", data.get("serviceDate"), skip_empty=True),
                    _html_row("Service Location", data.get("serviceLocation"), skip_empty=True),
                    _html_row("Reference #", data.get("referenceNumber"), skip_empty=True),
                    f"<p>{escape(_text(data.get('message')))}</p>",
                ],
            ),
            "<p>Best regards,<br>Cleaning Service System</p>",
        ],
    )
    subject = f"New {_text(data.get('concernTypeLabel'))} - {_text(data.get('contactNumber'))}"
    return RenderedMessage(subject, body)


_RENDERERS: dict[Template, Callable[[dict], RenderedMessage]] = {
    Template.NEW_BOOKING_SMS: _new_booking_sms,
    Template.BOOKING_CONFIRMED_SMS: _booking_confirmed_sms,
    Template.BOOKING_REMINDER_SMS: _booking_reminder_sms,
    Template.STAFF_ASSIGNMENT_SMS: _staff_assignment_sms,
    Template.CONTACT_FORM_SMS: _contact_form_sms,
    Template.CONTACT_CONFIRMATION_SMS: _contact_confirmation_sms,
    Template.BOOKING_CONFIRMATION_EMAIL: _booking_confirmation_email,
    Template.NEW_BOOKING_EMAIL: _new_booking_email,
    Template.BOOKING_REMINDER_EMAIL: _booking_reminder_email,
    Template.BOOKING_STATUS_UPDATE_EMAIL: _booking_status_update_email,
    Template.CONTACT_FORM_EMAIL: _contact_form_email,
}

_missing = set(Template) - set(_RENDERERS)
if _missing:
    raise RuntimeError(f"Templates without a renderer: {sorted(t.name for t in _missing)}")


def render(template: Template, data: dict) -> RenderedMessage:
    return _RENDERERS[Template(template)](data)
