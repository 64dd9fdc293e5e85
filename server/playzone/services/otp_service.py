"""One-time passcode issue and verification."""

import hashlib
import hmac
import re
import secrets
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.database import utcnow
from ..core.exceptions import OtpDeliveryError, OtpInvalidError, ValidationError
from ..core.observability import get_logger, metrics_collector
from ..models.otp import OtpVerification
from .notification_service import NotificationSender, otp_message

logger = get_logger(__name__)


def normalize_phone(phone: str, default_country_code: str | None = None) -> str:
    """
    Canonical ``+<country><number>`` form of a phone number.

    Numbers given with a leading ``+`` keep their country code. Bare
    national numbers get the default country code, dropping a trunk ``0``.
    """
    country = (default_country_code or settings.default_country_code).lstrip("+")
    raw = phone.strip()
    digits = re.sub(r"[^0-9]", "", raw)

    if raw.startswith("+"):
        normalized = f"+{digits}"
    elif len(digits) == 11 and digits.startswith("0"):
        normalized = f"+{country}{digits[1:]}"
    elif len(digits) == 10:
        normalized = f"+{country}{digits}"
    else:
        # Already carries a country code without the plus
        normalized = f"+{digits}"

    if not 8 <= len(normalized) - 1 <= 15:
        raise ValidationError(detail="Invalid phone number", errors={"phone": phone})
    return normalized


def hash_code(phone: str, code: str) -> str:
    return hashlib.sha256(f"{phone}:{code}".encode()).hexdigest()


def generate_code(length: int | None = None) -> str:
    length = length or settings.otp_length
    return "".join(secrets.choice("0123456789") for _ in range(length))


@dataclass(frozen=True)
class IssuedCode:
    phone: str
    expires_in_seconds: int
    delivered: bool
    # Only populated in development when delivery failed
    dev_code: str | None = None


class OtpService:
    """Service for issuing and checking sign-in codes."""

    def __init__(self, db: AsyncSession, sender: NotificationSender):
        self.db = db
        self.sender = sender

    async def purge_expired(self) -> int:
        result = await self.db.execute(
            delete(OtpVerification).where(OtpVerification.expires_at < utcnow())
        )
        return result.rowcount or 0

    async def send_code(self, phone: str) -> IssuedCode:
        """
        Issue a new code for a phone number and deliver it.

        Raises:
            ValidationError: If the phone number is malformed
            OtpDeliveryError: If delivery failed outside development
        """
        phone = normalize_phone(phone)
        code = generate_code()

        purged = await self.purge_expired()
        self.db.add(
            OtpVerification(
                phone=phone,
                code_hash=hash_code(phone, code),
                expires_at=utcnow() + timedelta(seconds=settings.otp_ttl_seconds),
            )
        )
        await self.db.commit()

        delivered = await self.sender.send_text(phone, otp_message(code, settings.otp_ttl_seconds // 60))
        metrics_collector.record_otp_sent(delivered)
        logger.info("otp_issued", phone_suffix=phone[-4:], delivered=delivered, purged=purged)

        if delivered:
            return IssuedCode(phone=phone, expires_in_seconds=settings.otp_ttl_seconds, delivered=True)

        if settings.debug:
            logger.warning("otp_delivery_failed_dev_mode", phone_suffix=phone[-4:])
            return IssuedCode(
                phone=phone,
                expires_in_seconds=settings.otp_ttl_seconds,
                delivered=False,
                dev_code=code,
            )

        raise OtpDeliveryError(phone)

    async def verify_code(self, phone: str, code: str) -> str:
        """
        Check a code against the newest live code for the phone.

        A wrong code counts as a failed attempt; the code is burnt once the
        attempt limit is reached. A correct code is marked used.

        Returns:
            The normalized phone number

        Raises:
            OtpInvalidError: If no live code matches
        """
        phone = normalize_phone(phone)
        stmt = (
            select(OtpVerification)
            .where(
                OtpVerification.phone == phone,
                OtpVerification.is_used.is_(False),
                OtpVerification.expires_at > utcnow(),
            )
            .order_by(OtpVerification.created_at.desc(), OtpVerification.id.desc())
            .limit(1)
        )
        otp = (await self.db.execute(stmt)).scalar_one_or_none()
        if otp is None:
            logger.info("otp_rejected", phone_suffix=phone[-4:], reason="no_live_code")
            raise OtpInvalidError()

        if not hmac.compare_digest(otp.code_hash, hash_code(phone, code)):
            otp.failed_attempts += 1
            remaining = settings.otp_max_attempts - otp.failed_attempts
            if remaining <= 0:
                otp.is_used = True
            await self.db.commit()
            logger.info(
                "otp_rejected",
                phone_suffix=phone[-4:],
                reason="mismatch",
                attempts=otp.failed_attempts,
            )
            raise OtpInvalidError(attempts_remaining=max(remaining, 0))

        otp.is_used = True
        await self.db.commit()
        logger.info("otp_verified", phone_suffix=phone[-4:])
        return phone
