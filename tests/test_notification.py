from datetime import datetime

from bson import ObjectId
from pymongo.errors import PyMongoError

from cleaning_api import crud
from cleaning_api.notification import (
    Channel,
    ChannelRequest,
    NotificationDispatcher,
    booking_created_requests,
    booking_status_requests,
    contact_submitted_requests,
)
from cleaning_api.templates import Template

from .conftest import ADMIN_EMAIL, ADMIN_PHONE
from .support import FakeDatabase, FakeEmailTransport, FakeSmsTransport

CUSTOMER_PHONE = "+15552345678"


def booking(**overrides):
    doc = {
        "bookingNumber": "BK2603150001",
        "contactName": "Jane Doe",
        "contactEmail": "jane@example.com",
        "contactPhone": CUSTOMER_PHONE,
        "serviceType": "residential",
        "address": "12 Main St",
        "preferredDate": datetime(2026, 3, 20),
        "preferredTime": "morning",
        "status": "pending",
    }
    doc.update(overrides)
    return doc


def contact(**overrides):
    doc = {
        "contactNumber": "CT-20260315-001",
        "name": "Sam",
        "email": "sam@example.com",
        "phone": CUSTOMER_PHONE,
        "concernType": "general",
        "subject": "Question",
        "message": "Do you clean ovens?",
        "preferredContact": "email",
        "priority": "medium",
    }
    doc.update(overrides)
    return doc


def channels(requests):
    return [request.channel for request in requests]


def test_residential_booking_notifies_admin_and_customer_by_sms(settings):
    requests = booking_created_requests(booking(), settings)
    assert channels(requests) == [Channel.ADMIN_SMS, Channel.CUSTOMER_SMS]
    assert requests[0].to == ADMIN_PHONE
    assert requests[1].to == CUSTOMER_PHONE
    assert requests[0].data["preferredDate"] == "03/20/2026"


def test_other_services_do_not_trigger_sms(settings):
    assert booking_created_requests(booking(serviceType="pressure-washing"), settings) == []


def test_booking_emails_follow_email_switch(settings):
    enabled = settings.model_copy(update={"EMAIL_NOTIFICATIONS_ENABLED": True})
    requests = booking_created_requests(booking(), enabled)
    assert Channel.ADMIN_EMAIL in channels(requests)
    assert Channel.CUSTOMER_EMAIL in channels(requests)


def test_plain_contact_only_notifies_admin(settings):
    requests = contact_submitted_requests(contact(), settings)
    assert channels(requests) == [Channel.ADMIN_SMS]


def test_contact_by_phone_also_confirms_to_customer(settings):
    for overrides in ({"preferredContact": "phone"}, {"priority": "urgent"}, {"concernType": "complaint"}):
        requests = contact_submitted_requests(contact(**overrides), settings)
        assert channels(requests) == [Channel.ADMIN_SMS, Channel.CUSTOMER_SMS]


def test_status_email_only_for_meaningful_transitions(settings):
    enabled = settings.model_copy(update={"EMAIL_NOTIFICATIONS_ENABLED": True})
    confirmed = booking(status="confirmed")
    assert channels(booking_status_requests("pending", confirmed, enabled)) == [Channel.CUSTOMER_EMAIL]
    assert booking_status_requests("confirmed", confirmed, enabled) == []
    assert booking_status_requests("confirmed", booking(status="pending"), enabled) == []
    assert booking_status_requests("pending", confirmed, settings) == []


async def test_failing_channel_does_not_block_its_sibling(settings):
    sms = FakeSmsTransport(raise_for={ADMIN_PHONE})
    dispatcher = NotificationDispatcher(settings, sms_transport=sms, email_transport=FakeEmailTransport())

    report = await dispatcher.dispatch(booking_created_requests(booking(), settings))

    assert report.outcome_flags() == {"smsSent.admin": False, "smsSent.customer": True}
    failed = [result for result in report.results if not result.success][0]
    assert "gateway unreachable" in failed.error
    assert len(sms.sent) == 2


async def test_slow_channel_times_out(settings):
    sms = FakeSmsTransport(hang_for={CUSTOMER_PHONE})
    dispatcher = NotificationDispatcher(settings, sms_transport=sms, email_transport=FakeEmailTransport())

    report = await dispatcher.dispatch(booking_created_requests(booking(), settings))

    assert report.succeeded(Channel.ADMIN_SMS)
    assert not report.succeeded(Channel.CUSTOMER_SMS)
    assert [result.error for result in report.results if not result.success] == ["Timed out"]


async def test_missing_recipient_is_a_failed_attempt(settings):
    no_admin = settings.model_copy(update={"ADMIN_PHONE_NUMBER": None})
    sms = FakeSmsTransport()
    dispatcher = NotificationDispatcher(no_admin, sms_transport=sms, email_transport=FakeEmailTransport())

    report = await dispatcher.dispatch(contact_submitted_requests(contact(), no_admin))

    assert report.outcome_flags() == {"smsSent.admin": False}
    assert sms.sent == []


async def test_sms_body_is_truncated_before_sending(settings):
    sms = FakeSmsTransport()
    dispatcher = NotificationDispatcher(settings, sms_transport=sms, email_transport=FakeEmailTransport())
    data = {"name": "Sam", "message": "m" * 5000}

    await dispatcher.dispatch([ChannelRequest(Channel.ADMIN_SMS, Template.CONTACT_FORM_SMS, data, ADMIN_PHONE)])

    assert len(sms.sent[0][1]) == settings.SMS_MAX_LENGTH
    assert sms.sent[0][1].endswith("...")


async def test_direct_sms_is_truncated_and_bounded(settings):
    sms = FakeSmsTransport(hang_for={CUSTOMER_PHONE}, raise_for={"+15550009999"})
    dispatcher = NotificationDispatcher(settings, sms_transport=sms, email_transport=FakeEmailTransport())

    sent = await dispatcher.send_sms(ADMIN_PHONE, "x" * 5000)
    assert sent.success
    assert len(sms.sent[0][1]) == settings.SMS_MAX_LENGTH

    assert (await dispatcher.send_sms(CUSTOMER_PHONE, "hi")).error == "Timed out"
    assert "gateway unreachable" in (await dispatcher.send_sms("+15550009999", "hi")).error


async def test_outcome_is_written_once_onto_the_record(dispatcher, email_transport):
    db = FakeDatabase()
    store = crud.booking_store(db)
    created = await store.create(booking())
    email_transport.fail_for.add("jane@example.com")
    requests = [
        *booking_created_requests(created, dispatcher.settings),
        ChannelRequest(Channel.CUSTOMER_EMAIL, Template.BOOKING_CONFIRMATION_EMAIL, {}, "jane@example.com"),
    ]

    await dispatcher.dispatch_and_record(store, created["_id"], requests)

    stored = await crud.get_by_id(db.bookings, created["_id"])
    assert stored["smsSent"] == {"admin": True, "customer": True}
    assert stored["emailSent"] == {"customer": False}
    assert stored["updatedAt"] is not None
    assert await crud.get_by_id(db.bookings, created["_id"]) == stored


async def test_nothing_is_written_without_attempts(dispatcher):
    class RecordingStore:
        calls = 0

        async def update_outcome_flags(self, record_id, flags):
            RecordingStore.calls += 1

    report = await dispatcher.dispatch_and_record(RecordingStore(), str(ObjectId()), [])
    assert report.results == ()
    assert RecordingStore.calls == 0


async def test_storage_failure_is_not_raised(dispatcher):
    class BrokenStore:
        async def update_outcome_flags(self, record_id, flags):
            raise PyMongoError("primary stepped down")

    requests = [ChannelRequest(Channel.ADMIN_SMS, Template.CONTACT_FORM_SMS, contact(), ADMIN_PHONE)]
    report = await dispatcher.dispatch_and_record(BrokenStore(), str(ObjectId()), requests)
    assert report.succeeded(Channel.ADMIN_SMS)


def test_admin_email_goes_to_configured_address(settings):
    enabled = settings.model_copy(update={"EMAIL_NOTIFICATIONS_ENABLED": True})
    requests = contact_submitted_requests(contact(), enabled)
    assert [request.to for request in requests if request.channel is Channel.ADMIN_EMAIL] == [ADMIN_EMAIL]
