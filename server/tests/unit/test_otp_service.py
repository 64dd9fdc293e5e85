"""Unit tests for one-time code issue and verification."""

from datetime import timedelta

import pytest
from sqlalchemy import select

from playzone.core.config import settings
from playzone.core.database import utcnow
from playzone.core.exceptions import OtpDeliveryError, OtpInvalidError, ValidationError
from playzone.models.otp import OtpVerification
from playzone.services.otp_service import OtpService, hash_code, normalize_phone


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("9876543210", "+919876543210"),
        ("098765 43210", "+919876543210"),
        ("+91 98765-43210", "+919876543210"),
        ("919876543210", "+919876543210"),
        ("+44 20 7946 0958", "+442079460958"),
    ],
)
def test_normalize_phone(raw, expected):
    assert normalize_phone(raw) == expected


def test_normalize_phone_uses_given_country():
    assert normalize_phone("2025550143", default_country_code="+1") == "+12025550143"


@pytest.mark.parametrize("raw", ["12345", "+1234567890123456", "not a phone"])
def test_normalize_phone_rejects_garbage(raw):
    with pytest.raises(ValidationError):
        normalize_phone(raw)


@pytest.mark.asyncio
async def test_send_then_verify(test_session, fake_sender):
    service = OtpService(test_session, fake_sender)
    issued = await service.send_code("9876543210")

    assert issued.delivered
    assert issued.dev_code is None
    assert issued.phone == "+919876543210"
    assert fake_sender.sent[-1][0] == "+919876543210"

    code = fake_sender.last_code()
    assert len(code) == settings.otp_length

    stored = (await test_session.execute(select(OtpVerification))).scalar_one()
    assert stored.code_hash == hash_code("+919876543210", code)
    assert code not in stored.code_hash

    assert await service.verify_code("+91 98765 43210", code) == "+919876543210"

    # Codes are single use
    with pytest.raises(OtpInvalidError):
        await service.verify_code("9876543210", code)


@pytest.mark.asyncio
async def test_wrong_code_burns_after_max_attempts(test_session, fake_sender):
    service = OtpService(test_session, fake_sender)
    await service.send_code("9876543210")
    code = fake_sender.last_code()
    wrong = "0" * len(code) if code != "0" * len(code) else "1" * len(code)

    for attempt in range(1, settings.otp_max_attempts + 1):
        with pytest.raises(OtpInvalidError) as exc_info:
            await service.verify_code("9876543210", wrong)
        assert exc_info.value.extensions["attempts_remaining"] == settings.otp_max_attempts - attempt

    with pytest.raises(OtpInvalidError) as exc_info:
        await service.verify_code("9876543210", code)
    assert "attempts_remaining" not in exc_info.value.extensions


@pytest.mark.asyncio
async def test_only_newest_code_counts(test_session, fake_sender):
    service = OtpService(test_session, fake_sender)
    await service.send_code("9876543210")
    first = fake_sender.last_code()
    await service.send_code("9876543210")
    second = fake_sender.last_code()

    if first != second:
        with pytest.raises(OtpInvalidError):
            await service.verify_code("9876543210", first)
    assert await service.verify_code("9876543210", second) == "+919876543210"


@pytest.mark.asyncio
async def test_expired_code_is_rejected_and_purged(test_session, fake_sender):
    service = OtpService(test_session, fake_sender)
    await service.send_code("9876543210")
    code = fake_sender.last_code()

    stored = (await test_session.execute(select(OtpVerification))).scalar_one()
    stored.expires_at = utcnow() - timedelta(seconds=1)
    await test_session.commit()

    with pytest.raises(OtpInvalidError):
        await service.verify_code("9876543210", code)

    assert await service.purge_expired() == 1


@pytest.mark.asyncio
async def test_failed_delivery_returns_code_in_development(test_session, fake_sender):
    fake_sender.deliver = False
    service = OtpService(test_session, fake_sender)
    issued = await service.send_code("9876543210")

    assert not issued.delivered
    assert issued.dev_code is not None
    assert await service.verify_code("9876543210", issued.dev_code) == "+919876543210"


@pytest.mark.asyncio
async def test_failed_delivery_raises_in_production(test_session, fake_sender, monkeypatch):
    monkeypatch.setattr(settings, "environment", "production")
    fake_sender.deliver = False
    service = OtpService(test_session, fake_sender)

    with pytest.raises(OtpDeliveryError) as exc_info:
        await service.send_code("9876543210")
    assert exc_info.value.status_code == 503
    assert exc_info.value.extensions["retryable"] is True
