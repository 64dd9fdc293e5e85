"""Unit tests for voucher validation and redemption."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from playzone.core.exceptions import (
    ValidationError,
    VoucherExhausted,
    VoucherExpired,
    VoucherMinAmountNotMet,
    VoucherNotApplicable,
    VoucherNotFound,
)
from playzone.models.voucher import DiscountVoucher
from playzone.schemas.voucher import VoucherCreateRequest, VoucherUpdateRequest
from playzone.services.voucher_service import VoucherService, check_voucher

TODAY = date(2026, 6, 15)


def make_voucher(**overrides) -> DiscountVoucher:
    fields = dict(
        code="SUMMER10",
        discount_type="fixed",
        discount_value=Decimal("50"),
        min_amount=Decimal("300"),
        max_discount=None,
        valid_from=date(2026, 6, 1),
        valid_till=date(2026, 6, 30),
        usage_limit=10,
        used_count=0,
        applicable_packages=["weekend"],
        is_active=True,
    )
    fields.update(overrides)
    return DiscountVoucher(**fields)


def test_check_accepts_valid_order():
    assert check_voucher(make_voucher(), "SUMMER10", Decimal("399"), "weekend", TODAY) == Decimal("50.00")


def test_unknown_and_inactive_codes_are_not_found():
    with pytest.raises(VoucherNotFound):
        check_voucher(None, "NOPE", Decimal("399"), "weekend", TODAY)
    with pytest.raises(VoucherNotFound):
        check_voucher(make_voucher(is_active=False), "SUMMER10", Decimal("399"), "weekend", TODAY)


def test_window_is_inclusive():
    voucher = make_voucher()
    assert check_voucher(voucher, "SUMMER10", Decimal("399"), "weekend", date(2026, 6, 1))
    assert check_voucher(voucher, "SUMMER10", Decimal("399"), "weekend", date(2026, 6, 30))
    with pytest.raises(VoucherExpired):
        check_voucher(voucher, "SUMMER10", Decimal("399"), "weekend", date(2026, 7, 1))
    with pytest.raises(VoucherExpired):
        check_voucher(voucher, "SUMMER10", Decimal("399"), "weekend", date(2026, 5, 31))


def test_checks_run_in_order():
    # Expired, exhausted, under the minimum and for the wrong package: expiry wins
    voucher = make_voucher(used_count=10)
    with pytest.raises(VoucherExpired):
        check_voucher(voucher, "SUMMER10", Decimal("100"), "walk_in", date(2026, 7, 1))

    # In window: exhaustion wins over amount and package
    with pytest.raises(VoucherExhausted):
        check_voucher(voucher, "SUMMER10", Decimal("100"), "walk_in", TODAY)

    # Uses left: minimum amount wins over package
    with pytest.raises(VoucherMinAmountNotMet) as exc_info:
        check_voucher(make_voucher(), "SUMMER10", Decimal("100"), "walk_in", TODAY)
    assert exc_info.value.extensions["min_amount"] == "300.00"

    with pytest.raises(VoucherNotApplicable) as exc_info:
        check_voucher(make_voucher(), "SUMMER10", Decimal("399"), "walk_in", TODAY)
    assert exc_info.value.extensions["applicable_packages"] == ["weekend"]


def test_unconstrained_voucher():
    voucher = make_voucher(usage_limit=None, used_count=500, min_amount=None, applicable_packages=[])
    assert check_voucher(voucher, "SUMMER10", Decimal("10"), "birthday", TODAY) == Decimal("10.00")


def test_error_codes_follow_reason():
    error = VoucherExhausted("SUMMER10", 10)
    assert error.status_code == 409
    assert error.code == "VOUCHER_EXHAUSTED"
    assert error.voucher_code == "SUMMER10"
    assert VoucherNotFound("X").status_code == 404
    assert VoucherExpired("X", TODAY, TODAY).status_code == 422


@pytest.mark.asyncio
async def test_quote_is_case_insensitive_and_consumes_nothing(test_session, catalog):
    service = VoucherService(test_session)
    quote = await service.quote(" welcome20 ", Decimal("299.00"), "walk_in")

    assert quote.voucher.code == "WELCOME20"
    assert quote.discount_amount == Decimal("59.80")
    assert quote.final_amount == Decimal("239.20")

    await test_session.refresh(catalog.welcome)
    assert catalog.welcome.used_count == 0


@pytest.mark.asyncio
async def test_redeem_until_exhausted(test_session, catalog, staff):
    catalog.welcome.usage_limit = 2
    await test_session.commit()
    service = VoucherService(test_session)

    for expected_count in (1, 2):
        quote, redemption = await service.redeem("WELCOME20", Decimal("500.00"), "walk_in", user_id=staff.id)
        assert quote.voucher.used_count == expected_count
        assert redemption.discount_amount == Decimal("100.00")
        assert redemption.booking_id is None

    with pytest.raises(VoucherExhausted):
        await service.redeem("WELCOME20", Decimal("500.00"), "walk_in")

    redemptions = await service.list_redemptions(catalog.welcome_id)
    assert len(redemptions) == 2

    voucher = await service.get_voucher_or_raise(catalog.welcome_id)
    await test_session.refresh(voucher)
    assert voucher.used_count == 2
    assert voucher.remaining_uses == 0


@pytest.mark.asyncio
async def test_create_and_update_voucher(test_session):
    service = VoucherService(test_session)
    voucher = await service.create_voucher(
        VoucherCreateRequest(
            code="party500",
            discount_type="fixed",
            discount_value=Decimal("500"),
            valid_from=date.today(),
            valid_till=date.today() + timedelta(days=30),
            usage_limit=5,
            applicable_packages=["birthday"],
        )
    )
    assert voucher.code == "PARTY500"
    assert voucher.applicable_packages == ["birthday"]
    assert voucher.used_count == 0

    updated = await service.update_voucher(VoucherUpdateRequest(voucher_id=voucher.id, usage_limit=10))
    assert updated.usage_limit == 10
    assert updated.applicable_packages == ["birthday"]

    # Explicit empty and null values lift the constraint
    widened = await service.update_voucher(
        VoucherUpdateRequest(voucher_id=voucher.id, applicable_packages=[], usage_limit=None, min_amount=None)
    )
    assert widened.applicable_packages is None
    assert widened.usage_limit is None
    assert widened.min_amount is None
    assert check_voucher(widened, "PARTY500", Decimal("800.00"), "walk_in", date.today()) == Decimal("500.00")

    with pytest.raises(ValidationError):
        await service.update_voucher(VoucherUpdateRequest(voucher_id=voucher.id, discount_value=None))

    with pytest.raises(ValidationError):
        await service.update_voucher(
            VoucherUpdateRequest(voucher_id=voucher.id, valid_till=date.today() - timedelta(days=1))
        )

    deactivated = await service.deactivate_voucher(voucher.id)
    assert deactivated.is_active is False


@pytest.mark.asyncio
async def test_usage_limit_cannot_drop_below_uses(test_session, catalog):
    service = VoucherService(test_session)
    await service.redeem("WELCOME20", Decimal("500.00"), "walk_in")
    await service.redeem("WELCOME20", Decimal("500.00"), "walk_in")

    with pytest.raises(ValidationError):
        await service.update_voucher(VoucherUpdateRequest(voucher_id=catalog.welcome_id, usage_limit=1))
