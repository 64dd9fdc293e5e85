"""Outbound messaging: WhatsApp delivery and booking notifications."""

import re
from typing import Protocol

import httpx

from ..core.config import settings
from ..core.observability import get_logger, metrics_collector
from ..models.booking import Booking

logger = get_logger(__name__)

VENUE_NAME = "Playzone"


class NotificationSender(Protocol):
    """Anything that can deliver a plain text message to a phone number."""

    async def send_text(self, to: str, body: str) -> bool:
        """Deliver ``body`` to ``to``; return False instead of raising on failure."""
        ...


class WhatsAppSender:
    """Sends text messages through the WhatsApp Cloud API."""

    def __init__(
        self,
        api_url: str,
        access_token: str,
        phone_number_id: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.endpoint = f"{api_url.rstrip('/')}/{phone_number_id}/messages"
        self.access_token = access_token
        self.timeout = timeout
        self.transport = transport

    async def send_text(self, to: str, body: str) -> bool:
        payload = {
            "messaging_product": "whatsapp",
            "to": re.sub(r"[^0-9]", "", to),
            "type": "text",
            "text": {"body": body},
        }
        headers = {"Authorization": f"Bearer {self.access_token}"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.endpoint, json=payload, headers=headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "whatsapp_send_rejected",
                status_code=exc.response.status_code,
                response=exc.response.text[:500],
            )
            return False
        except httpx.RequestError as exc:
            logger.warning("whatsapp_send_failed", error=str(exc))
            return False

        logger.info("whatsapp_message_sent", to_suffix=payload["to"][-4:])
        return True


class LogOnlySender:
    """Stand-in sender when no messaging credentials are configured."""

    def __init__(self, deliver: bool = False):
        self.deliver = deliver

    async def send_text(self, to: str, body: str) -> bool:
        logger.info(
            "message_not_sent",
            reason="messaging not configured",
            to_suffix=re.sub(r"[^0-9]", "", to)[-4:],
            length=len(body),
        )
        return self.deliver


def build_sender() -> NotificationSender:
    """Sender for the configured environment."""
    if settings.whatsapp_configured:
        return WhatsAppSender(
            api_url=settings.whatsapp_api_url,
            access_token=settings.whatsapp_access_token,
            phone_number_id=settings.whatsapp_phone_number_id,
            timeout=settings.whatsapp_timeout_seconds,
        )
    return LogOnlySender()


def otp_message(code: str, ttl_minutes: int) -> str:
    return (
        f"*{VENUE_NAME} - OTP Verification*\n\n"
        f"Your login OTP is: *{code}*\n\n"
        f"This OTP is valid for {ttl_minutes} minutes. Please do not share it with anyone."
    )


def _booking_lines(booking: Booking) -> list[str]:
    return [
        f"*Date:* {booking.booking_date.strftime('%d %b %Y')}",
        f"*Time:* {booking.time_slot.label}",
        f"*Children:* {booking.number_of_children}",
        f"*Package:* {booking.package.name}",
        f"*Amount:* Rs.{booking.total_amount}",
    ]


def _party_lines(booking: Booking) -> list[str]:
    party = booking.party
    if party is None:
        return []
    lines = [
        f"*Birthday Child:* {party.child_name} (turning {party.child_age})",
        f"*Guests:* {party.number_of_guests}",
    ]
    if party.theme:
        lines.append(f"*Theme:* {party.theme}")
    if party.cake_preference:
        lines.append(f"*Cake:* {party.cake_preference}")
    if party.decoration_preference:
        lines.append(f"*Decorations:* {party.decoration_preference}")
    return lines


class BookingNotifier:
    """
    Booking messages to the customer and the venue.

    Runs after the response has been sent. Delivery problems are logged and
    counted but never raised, so they cannot affect the booking itself.
    """

    def __init__(self, sender: NotificationSender, venue_phone: str | None = None):
        self.sender = sender
        self.venue_phone = venue_phone or settings.venue_alert_phone

    async def _send(self, kind: str, to: str, body: str) -> bool:
        try:
            delivered = await self.sender.send_text(to, body)
        except Exception:
            logger.exception("notification_failed", kind=kind)
            delivered = False
        metrics_collector.record_notification(kind, delivered)
        return delivered

    async def booking_created(self, booking: Booking) -> bool:
        """Customer confirmation plus the internal venue alert; birthday bookings carry the party details."""
        kind = "Birthday Party Booking" if booking.party is not None else "Booking"
        customer = "\n".join(
            [
                f"*{kind} Received - {VENUE_NAME}*",
                "",
                f"Hello {booking.parent_name}!",
                "",
                *_booking_lines(booking),
                *_party_lines(booking),
                f"*Booking ID:* {booking.id}",
                "",
                "Please arrive 15 minutes early.",
            ]
        )
        alert = "\n".join(
            [
                f"*New {kind} Alert - {VENUE_NAME}*",
                "",
                f"*Customer:* {booking.parent_name}",
                f"*Phone:* {booking.parent_phone}",
                *_booking_lines(booking),
                *_party_lines(booking),
                f"*Booking ID:* {booking.id}",
                f"Status: {booking.status}",
            ]
        )
        customer_sent = await self._send("booking_customer", booking.parent_phone, customer)
        venue_sent = await self._send("booking_venue_alert", self.venue_phone, alert)
        return customer_sent and venue_sent

    async def booking_confirmed(self, booking: Booking) -> bool:
        body = "\n".join(
            [
                f"*Booking Confirmed - {VENUE_NAME}*",
                "",
                f"Hello {booking.parent_name}, your payment was received.",
                "",
                *_booking_lines(booking),
                f"*Booking ID:* {booking.id}",
            ]
        )
        return await self._send("booking_confirmed", booking.parent_phone, body)

    async def booking_cancelled(self, booking: Booking) -> bool:
        body = "\n".join(
            [
                f"*Booking Cancelled - {VENUE_NAME}*",
                "",
                f"Hello {booking.parent_name},",
                "",
                f"Your booking {booking.id} for {booking.booking_date.strftime('%d %b %Y')} "
                f"({booking.time_slot.label}) has been cancelled.",
                "If this was unexpected, please contact us.",
            ]
        )
        return await self._send("booking_cancelled", booking.parent_phone, body)
