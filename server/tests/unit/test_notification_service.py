"""Unit tests for outbound messaging."""

import json
from datetime import date, time
from decimal import Decimal
from types import SimpleNamespace

import httpx
import pytest

from playzone.services.notification_service import (
    BookingNotifier,
    LogOnlySender,
    WhatsAppSender,
    otp_message,
)


def whatsapp_sender(handler) -> WhatsAppSender:
    return WhatsAppSender(
        api_url="https://graph.example.test/v18.0/",
        access_token="token-123",
        phone_number_id="5550001",
        transport=httpx.MockTransport(handler),
    )


def sample_booking(party=None):
    return SimpleNamespace(
        id=42,
        parent_name="Asha Rao",
        parent_phone="+919812345678",
        booking_date=date(2026, 10, 24),
        number_of_children=2,
        total_amount=Decimal("498.00"),
        status="pending",
        time_slot=SimpleNamespace(label="10:00-12:00", start_time=time(10, 0)),
        package=SimpleNamespace(name="Walk-in Play"),
        party=party,
    )


@pytest.mark.asyncio
async def test_whatsapp_sender_posts_text_message():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"messages": [{"id": "wamid.1"}]})

    assert await whatsapp_sender(handler).send_text("+91 98123-45678", "hello")

    request = requests[0]
    assert str(request.url) == "https://graph.example.test/v18.0/5550001/messages"
    assert request.headers["Authorization"] == "Bearer token-123"
    assert json.loads(request.content) == {
        "messaging_product": "whatsapp",
        "to": "919812345678",
        "type": "text",
        "text": {"body": "hello"},
    }


@pytest.mark.asyncio
async def test_whatsapp_sender_reports_rejection():
    sender = whatsapp_sender(lambda request: httpx.Response(401, json={"error": "bad token"}))
    assert await sender.send_text("+919812345678", "hello") is False


@pytest.mark.asyncio
async def test_whatsapp_sender_reports_network_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    assert await whatsapp_sender(handler).send_text("+919812345678", "hello") is False


@pytest.mark.asyncio
async def test_log_only_sender():
    assert await LogOnlySender().send_text("+919812345678", "hello") is False
    assert await LogOnlySender(deliver=True).send_text("+919812345678", "hello") is True


def test_otp_message_embeds_code():
    message = otp_message("123456", 5)
    assert "*123456*" in message
    assert "5 minutes" in message


class RecordingSender:
    def __init__(self, fail_for: str | None = None):
        self.fail_for = fail_for
        self.sent = []

    async def send_text(self, to: str, body: str) -> bool:
        if to == self.fail_for:
            raise RuntimeError("sender exploded")
        self.sent.append((to, body))
        return True


@pytest.mark.asyncio
async def test_booking_created_notifies_customer_and_venue():
    sender = RecordingSender()
    notifier = BookingNotifier(sender, venue_phone="+919900000000")

    assert await notifier.booking_created(sample_booking())

    recipients = [to for to, _ in sender.sent]
    assert recipients == ["+919812345678", "+919900000000"]
    customer_body, venue_body = (body for _, body in sender.sent)
    assert "24 Oct 2026" in customer_body
    assert "10:00-12:00" in customer_body
    assert "Rs.498.00" in customer_body
    assert "*Phone:* +919812345678" in venue_body


@pytest.mark.asyncio
async def test_birthday_booking_messages_carry_party_details():
    sender = RecordingSender()
    notifier = BookingNotifier(sender, venue_phone="+919900000000")
    party = SimpleNamespace(
        child_name="Meera",
        child_age=6,
        number_of_guests=12,
        theme="Jungle",
        cake_preference=None,
        decoration_preference="Balloons",
    )

    assert await notifier.booking_created(sample_booking(party=party))

    customer_body, venue_body = (body for _, body in sender.sent)
    assert customer_body.startswith("*Birthday Party Booking Received")
    assert "*Birthday Child:* Meera (turning 6)" in customer_body
    assert "*Guests:* 12" in customer_body
    assert "*Theme:* Jungle" in venue_body
    assert "*Decorations:* Balloons" in venue_body
    assert "Cake" not in venue_body


@pytest.mark.asyncio
async def test_notifier_swallows_sender_errors():
    sender = RecordingSender(fail_for="+919812345678")
    notifier = BookingNotifier(sender, venue_phone="+919900000000")

    assert await notifier.booking_created(sample_booking()) is False
    # The venue alert still goes out
    assert [to for to, _ in sender.sent] == ["+919900000000"]

    assert await notifier.booking_cancelled(sample_booking()) is False


@pytest.mark.asyncio
async def test_confirmation_and_cancellation_messages():
    sender = RecordingSender()
    notifier = BookingNotifier(sender, venue_phone="+919900000000")

    assert await notifier.booking_confirmed(sample_booking())
    assert await notifier.booking_cancelled(sample_booking())

    confirmed, cancelled = (body for _, body in sender.sent)
    assert "Booking Confirmed" in confirmed
    assert "Your booking 42 for 24 Oct 2026 (10:00-12:00) has been cancelled." in cancelled
