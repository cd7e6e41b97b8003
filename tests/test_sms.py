import httpx
import pytest

from cleaning_api.config import Settings
from cleaning_api.mailer import SmtpEmailTransport
from cleaning_api.sms import TwilioSmsTransport, format_phone_number, truncate_sms, validate_phone_number


def twilio_settings(**overrides):
    values = {
        "_env_file": None,
        "SMS_NOTIFICATIONS_ENABLED": True,
        "TWILIO_ACCOUNT_SID": "AC123",
        "TWILIO_AUTH_TOKEN": "token",
        "TWILIO_PHONE_NUMBER": "+15557654321",
    }
    values.update(overrides)
    return Settings(**values)


def test_long_body_is_truncated_with_marker():
    body = truncate_sms("x" * 4000)
    assert len(body) == 1600
    assert body.endswith("...")


def test_short_body_is_untouched():
    assert truncate_sms("hello") == "hello"
    assert truncate_sms("y" * 1600) == "y" * 1600


@pytest.mark.parametrize(
    "phone, valid",
    [
        ("(555) 234-5678", True),
        ("1-555-234-5678", True),
        ("555-034-5678", False),
        ("155-234-5678", False),
        ("2345678", False),
        ("", False),
    ],
)
def test_validate_phone_number(phone, valid):
    assert validate_phone_number(phone) is valid


def test_format_phone_number():
    assert format_phone_number("(555) 234-5678") == "+15552345678"
    assert format_phone_number("1 555 234 5678") == "+15552345678"


async def test_twilio_transport_posts_message():
    seen = {}

    def handler(request: httpx.Request):
        seen["url"] = str(request.url)
        seen["body"] = request.content.decode()
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(201, json={"sid": "SM42"})

    transport = TwilioSmsTransport(twilio_settings(), transport=httpx.MockTransport(handler))
    receipt = await transport.send("+15552345678", "Hello there")

    assert receipt.success
    assert receipt.message_id == "SM42"
    assert seen["url"] == "https://api.twilio.com/2010-04-01/Accounts/AC123/Messages.json"
    assert "To=%2B15552345678" in seen["body"]
    assert "From=%2B15557654321" in seen["body"]
    assert seen["auth"].startswith("Basic ")


async def test_twilio_rejection_becomes_failed_receipt():
    transport = TwilioSmsTransport(
        twilio_settings(),
        transport=httpx.MockTransport(lambda request: httpx.Response(400, json={"message": "invalid To"})),
    )
    receipt = await transport.send("+15552345678", "Hello")
    assert not receipt.success
    assert receipt.error.startswith("HTTP 400")


async def test_twilio_network_error_becomes_failed_receipt():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    transport = TwilioSmsTransport(twilio_settings(), transport=httpx.MockTransport(handler))
    receipt = await transport.send("+15552345678", "Hello")
    assert not receipt.success
    assert "connection refused" in receipt.error


@pytest.mark.parametrize(
    "overrides, error",
    [
        ({"SMS_NOTIFICATIONS_ENABLED": False}, "SMS notifications disabled"),
        ({"TWILIO_AUTH_TOKEN": None}, "Twilio client not configured"),
        ({"TWILIO_PHONE_NUMBER": None}, "Twilio phone number not configured"),
    ],
)
async def test_unconfigured_twilio_never_calls_the_api(overrides, error):
    def handler(request):
        raise AssertionError("Twilio must not be called")

    transport = TwilioSmsTransport(twilio_settings(**overrides), transport=httpx.MockTransport(handler))
    receipt = await transport.send("+15552345678", "Hello")
    assert not receipt.success
    assert receipt.error == error


async def test_email_transport_requires_configuration():
    transport = SmtpEmailTransport(Settings(_env_file=None, EMAIL_NOTIFICATIONS_ENABLED=True))
    receipt = await transport.send("jane@example.com", "Subject", "<p>Hi</p>")
    assert not receipt.success
    assert receipt.error == "SMTP transport not configured"


def test_email_message_carries_html_part():
    settings = Settings(_env_file=None, SMTP_USER="mailer@cleaning.test")
    message = SmtpEmailTransport(settings).build_message("jane@example.com", "Hi", "<p>Hello</p>")
    assert message["From"] == "mailer@cleaning.test"
    assert message["Message-ID"]
    html = message.get_body(preferencelist=("html",))
    assert "<p>Hello</p>" in html.get_content()
