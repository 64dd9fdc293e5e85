"""Unit tests for slot admission and the booking service."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from playzone.core.exceptions import (
    AuthorizationError,
    CapacityExceededError,
    ConflictError,
    HolidayClosedError,
    InvalidStateTransitionError,
    NotFoundError,
    PaymentVerificationError,
    ValidationError,
    VoucherExhausted,
)
from playzone.models.booking import BookingStatus
from playzone.schemas.booking import (
    BirthdayPartyDetails,
    CancelBookingRequest,
    CreateBookingRequest,
    SearchBookingsRequest,
    TransitionBookingRequest,
    VerifyPaymentRequest,
)
from playzone.services.availability_service import AvailabilityService
from playzone.services.booking_service import BookingService, payment_signature


def booking_request(catalog, booking_date: date, children: int = 1, **overrides) -> CreateBookingRequest:
    data = {
        "package_id": catalog.walk_in_id,
        "time_slot_id": catalog.morning_id,
        "booking_date": booking_date,
        "number_of_children": children,
        "parent_name": "Asha Rao",
        "parent_phone": "+919812345678",
        "parent_email": "asha@example.com",
    }
    data.update(overrides)
    return CreateBookingRequest(**data)


@pytest.mark.asyncio
async def test_create_booking_computes_amounts(test_session, catalog, visit_date):
    booking = await BookingService(test_session).create_booking(booking_request(catalog, visit_date, children=3))

    assert booking.status == BookingStatus.PENDING.value
    assert booking.order_amount == Decimal("897.00")
    assert booking.discount_amount == Decimal("0.00")
    assert booking.total_amount == Decimal("897.00")
    assert booking.voucher_code is None


@pytest.mark.asyncio
async def test_fourteen_booked_fits_one_not_two(test_session, catalog, visit_date):
    service = BookingService(test_session)
    await service.create_booking(booking_request(catalog, visit_date, children=14))

    with pytest.raises(CapacityExceededError) as exc_info:
        await service.create_booking(booking_request(catalog, visit_date, children=2))
    assert exc_info.value.extensions["remaining"] == 1
    assert exc_info.value.extensions["booked"] == 14

    last = await service.create_booking(booking_request(catalog, visit_date, children=1))
    assert last.number_of_children == 1

    occupancy = await AvailabilityService(test_session).check(visit_date, catalog.morning_id)
    assert occupancy.booked == 15
    assert occupancy.remaining == 0
    assert not occupancy.fits(1)
    assert occupancy.reason(1) == "Slot is fully booked"


@pytest.mark.asyncio
async def test_capacity_is_per_slot_and_date(test_session, catalog, visit_date):
    service = BookingService(test_session)
    await service.create_booking(booking_request(catalog, visit_date, children=15))

    other_slot = await service.create_booking(
        booking_request(catalog, visit_date, children=15, time_slot_id=catalog.noon_id)
    )
    next_day = await service.create_booking(booking_request(catalog, visit_date + timedelta(days=1), children=15))

    assert other_slot.id and next_day.id


@pytest.mark.asyncio
async def test_holiday_refuses_before_capacity(test_session, catalog):
    holiday_date = catalog.holiday_date

    with pytest.raises(HolidayClosedError) as exc_info:
        await BookingService(test_session).create_booking(booking_request(catalog, holiday_date, children=50))
    assert exc_info.value.extensions["holiday"] == "Independence Day"


@pytest.mark.asyncio
async def test_inactive_holiday_does_not_close(test_session, catalog):
    catalog.holiday.is_active = False
    await test_session.commit()

    booking = await BookingService(test_session).create_booking(
        booking_request(catalog, catalog.holiday_date)
    )
    assert booking.booking_date == catalog.holiday_date


@pytest.mark.asyncio
async def test_inactive_slot_and_package_are_refused(test_session, catalog, visit_date):
    service = BookingService(test_session)

    catalog.noon.is_active = False
    catalog.birthday.is_active = False
    await test_session.commit()

    with pytest.raises(ConflictError) as exc_info:
        await service.create_booking(booking_request(catalog, visit_date, time_slot_id=catalog.noon_id))
    assert exc_info.value.code == "SLOT_INACTIVE"

    with pytest.raises(ConflictError) as exc_info:
        await service.create_booking(booking_request(catalog, visit_date, package_id=catalog.birthday_id))
    assert exc_info.value.code == "PACKAGE_INACTIVE"


@pytest.mark.asyncio
async def test_unknown_slot_and_past_date(test_session, catalog, visit_date):
    service = BookingService(test_session)

    with pytest.raises(NotFoundError):
        await service.create_booking(booking_request(catalog, visit_date, time_slot_id=999))

    with pytest.raises(ValidationError):
        await service.create_booking(booking_request(catalog, date.today() - timedelta(days=1)))


@pytest.mark.asyncio
async def test_cancellation_frees_places(test_session, catalog, visit_date, customer):
    service = BookingService(test_session)
    booking = await service.create_booking(booking_request(catalog, visit_date, children=15), user_id=customer.id)
    booking_id = booking.id

    with pytest.raises(CapacityExceededError):
        await service.create_booking(booking_request(catalog, visit_date))

    await test_session.refresh(customer)
    cancelled = await service.cancel_booking(CancelBookingRequest(booking_id=booking_id), customer)
    assert cancelled.status == BookingStatus.CANCELLED.value

    again = await service.create_booking(booking_request(catalog, visit_date, children=15))
    assert again.status == BookingStatus.PENDING.value


@pytest.mark.asyncio
async def test_booking_with_voucher_records_redemption(test_session, catalog, visit_date, customer):
    service = BookingService(test_session)
    booking = await service.create_booking(
        booking_request(catalog, visit_date, children=2, voucher_code="welcome20"),
        user_id=customer.id,
    )

    # 20% of 598.00 is 119.60, capped at 100
    assert booking.voucher_code == "WELCOME20"
    assert booking.order_amount == Decimal("598.00")
    assert booking.discount_amount == Decimal("100.00")
    assert booking.total_amount == Decimal("498.00")

    await test_session.refresh(catalog.welcome)
    assert catalog.welcome.used_count == 1

    await test_session.refresh(booking, attribute_names=["redemption"])
    assert booking.redemption.booking_id == booking.id
    assert booking.redemption.user_id == customer.id


@pytest.mark.asyncio
async def test_rejected_voucher_leaves_no_booking(test_session, catalog, visit_date):
    catalog.welcome.usage_limit = 1
    catalog.welcome.used_count = 1
    await test_session.commit()

    service = BookingService(test_session)
    with pytest.raises(VoucherExhausted):
        await service.create_booking(booking_request(catalog, visit_date, children=2, voucher_code="WELCOME20"))

    assert await AvailabilityService(test_session).booked_children(visit_date, catalog.morning_id) == 0


@pytest.mark.asyncio
async def test_full_slot_does_not_consume_voucher(test_session, catalog, visit_date):
    service = BookingService(test_session)
    await service.create_booking(booking_request(catalog, visit_date, children=15))

    with pytest.raises(CapacityExceededError):
        await service.create_booking(booking_request(catalog, visit_date, voucher_code="WELCOME20"))

    await test_session.refresh(catalog.welcome)
    assert catalog.welcome.used_count == 0


@pytest.mark.asyncio
async def test_lifecycle_transitions(test_session, catalog, visit_date):
    service = BookingService(test_session)
    booking = await service.create_booking(booking_request(catalog, visit_date))

    confirmed = await service.change_status(TransitionBookingRequest(booking_id=booking.id, status="confirmed"))
    assert confirmed.status == "confirmed"

    completed = await service.change_status(TransitionBookingRequest(booking_id=booking.id, status="completed"))
    assert completed.status == "completed"

    with pytest.raises(InvalidStateTransitionError):
        await service.change_status(TransitionBookingRequest(booking_id=booking.id, status="cancelled"))


@pytest.mark.asyncio
async def test_customer_cannot_cancel_someone_elses_booking(test_session, catalog, visit_date, customer, staff):
    service = BookingService(test_session)
    booking = await service.create_booking(booking_request(catalog, visit_date))

    # Guest booking: invisible to the customer, cancellable by staff
    with pytest.raises(NotFoundError):
        await service.cancel_booking(CancelBookingRequest(booking_id=booking.id), customer)

    cancelled = await service.cancel_booking(CancelBookingRequest(booking_id=booking.id), staff)
    assert cancelled.status == "cancelled"


@pytest.mark.asyncio
async def test_viewer_without_manage_permission_cannot_cancel(test_session, catalog, visit_date, customer, staff):
    service = BookingService(test_session)
    booking = await service.create_booking(booking_request(catalog, visit_date))

    staff.permissions = ["view_bookings"]
    await test_session.commit()

    with pytest.raises(AuthorizationError):
        await service.cancel_booking(CancelBookingRequest(booking_id=booking.id), staff)


@pytest.mark.asyncio
async def test_verify_payment_confirms_booking(test_session, catalog, visit_date):
    service = BookingService(test_session)
    booking = await service.create_booking(booking_request(catalog, visit_date))

    request = VerifyPaymentRequest(
        booking_id=booking.id,
        order_id="order_123",
        payment_id="pay_456",
        signature=payment_signature("order_123", "pay_456"),
    )
    confirmed = await service.verify_payment(request)

    assert confirmed.status == "confirmed"
    assert confirmed.payment_status == "paid"
    assert confirmed.payment_id == "pay_456"


@pytest.mark.asyncio
async def test_verify_payment_rejects_bad_signature(test_session, catalog, visit_date):
    service = BookingService(test_session)
    booking = await service.create_booking(booking_request(catalog, visit_date))

    request = VerifyPaymentRequest(
        booking_id=booking.id,
        order_id="order_123",
        payment_id="pay_456",
        signature="0" * 64,
    )
    with pytest.raises(PaymentVerificationError):
        await service.verify_payment(request)

    reloaded = await service.get_booking_by_id_or_raise(booking.id)
    assert reloaded.status == "pending"
    assert reloaded.payment_status == "failed"


@pytest.mark.asyncio
async def test_search_bookings_filters_and_counts(test_session, catalog, visit_date):
    service = BookingService(test_session)
    for children in (1, 2, 3):
        await service.create_booking(booking_request(catalog, visit_date, children=children))
    await service.create_booking(
        booking_request(catalog, visit_date, time_slot_id=catalog.noon_id, parent_phone="+919800000001")
    )

    bookings, total = await service.search_bookings(
        SearchBookingsRequest(date_from=visit_date, date_to=visit_date, time_slot_id=catalog.morning_id, limit=2)
    )
    assert total == 3
    assert len(bookings) == 2

    bookings, total = await service.search_bookings(
        SearchBookingsRequest(date_from=visit_date, date_to=visit_date, parent_phone="0000001")
    )
    assert total == 1
    assert bookings[0].time_slot_id == catalog.noon_id


@pytest.mark.asyncio
async def test_search_defaults_to_recent_window(test_session, catalog, visit_date):
    service = BookingService(test_session)
    await service.create_booking(booking_request(catalog, visit_date))

    _, total = await service.search_bookings(SearchBookingsRequest())
    assert total == 0

    _, total = await service.search_bookings(SearchBookingsRequest(), today=visit_date)
    assert total == 1

    with pytest.raises(ValidationError):
        await service.search_bookings(SearchBookingsRequest(date_from=visit_date, date_to=date.today()))


def party_details(**overrides) -> BirthdayPartyDetails:
    data = {
        "child_name": "Meera",
        "child_age": 6,
        "number_of_guests": 12,
        "theme": "Jungle",
        "cake_preference": "Chocolate",
    }
    data.update(overrides)
    return BirthdayPartyDetails(**data)


@pytest.mark.asyncio
async def test_birthday_booking_records_party(test_session, catalog, visit_date, customer):
    service = BookingService(test_session)
    booking = await service.create_booking(
        booking_request(
            catalog,
            visit_date,
            children=10,
            package_id=catalog.birthday_id,
            party=party_details(),
        ),
        user_id=customer.id,
    )

    # Priced per party, not per child
    assert booking.order_amount == Decimal("4999.00")
    assert booking.total_amount == Decimal("4999.00")
    assert booking.party.child_name == "Meera"
    assert booking.party.number_of_guests == 12
    assert booking.party.decoration_preference is None

    # The party's children take places like any other booking
    booked = await AvailabilityService(test_session).booked_children(visit_date, catalog.morning_id)
    assert booked == 10
    with pytest.raises(CapacityExceededError):
        await service.create_booking(booking_request(catalog, visit_date, children=6))


@pytest.mark.asyncio
async def test_party_details_must_match_package(test_session, catalog, visit_date):
    service = BookingService(test_session)

    with pytest.raises(ValidationError) as exc_info:
        await service.create_booking(booking_request(catalog, visit_date, package_id=catalog.birthday_id))
    assert exc_info.value.extensions["errors"] == {"party": "required for birthday packages"}

    with pytest.raises(ValidationError):
        await service.create_booking(booking_request(catalog, visit_date, party=party_details()))

    booked = await AvailabilityService(test_session).booked_children(visit_date, catalog.morning_id)
    assert booked == 0


@pytest.mark.asyncio
async def test_birthday_party_goes_through_holiday_check(test_session, catalog):
    with pytest.raises(HolidayClosedError):
        await BookingService(test_session).create_booking(
            booking_request(catalog, catalog.holiday_date, package_id=catalog.birthday_id, party=party_details())
        )


@pytest.mark.asyncio
async def test_list_parties_only(test_session, catalog, visit_date, customer):
    service = BookingService(test_session)
    customer_id = customer.id
    await service.create_booking(booking_request(catalog, visit_date, children=2), user_id=customer_id)
    party = await service.create_booking(
        booking_request(catalog, visit_date, children=8, package_id=catalog.birthday_id, party=party_details()),
        user_id=customer_id,
    )
    party_id = party.id

    assert len(await service.list_user_bookings(customer_id)) == 2
    parties = await service.list_user_bookings(customer_id, parties_only=True)
    assert [b.id for b in parties] == [party_id]
    assert parties[0].party.theme == "Jungle"
