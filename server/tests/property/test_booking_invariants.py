"""Property-based tests for booking system invariants."""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from playzone.core.database import Base
from playzone.core.exceptions import CapacityExceededError, VoucherError
from playzone.models.booking import BookingStatus
from playzone.models.voucher import DiscountType
from playzone.schemas.booking import CreateBookingRequest
from playzone.services.availability_service import AvailabilityService
from playzone.services.booking_service import BookingService
from playzone.services.pricing import apply_discount, compute_discount

# Strategies for generating test data
children_counts = st.integers(min_value=1, max_value=8)
capacity_values = st.integers(min_value=0, max_value=20)
amounts = st.decimals(min_value=Decimal("0.01"), max_value=Decimal("100000"), places=2)
operations = st.lists(
    st.one_of(
        st.tuples(st.just("book"), children_counts),
        st.tuples(st.just("cancel"), st.integers(min_value=0, max_value=20)),
    ),
    min_size=1,
    max_size=25,
)

# The seeder fixture only hands out a function, so sharing it across examples is safe
property_settings = settings(
    max_examples=25,
    deadline=None,
    suppress_health_check=[HealthCheck.function_scoped_fixture],
)


async def fresh_session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    return engine, async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


def booking_request(catalog, visit_date: date, children: int, voucher_code: str | None = None):
    return CreateBookingRequest(
        package_id=catalog.walk_in_id,
        time_slot_id=catalog.morning_id,
        booking_date=visit_date,
        number_of_children=children,
        parent_name="Parent",
        parent_phone="+919812345678",
        parent_email="parent@example.com",
        voucher_code=voucher_code,
    )


@pytest.mark.asyncio
@given(capacity=capacity_values, ops=operations)
@property_settings
async def test_occupancy_never_exceeds_capacity(catalog_seeder, capacity, ops):
    """Booked children stay within capacity through any mix of bookings and cancellations."""
    visit_date = date.today() + timedelta(days=7)
    engine, session_factory = await fresh_session_factory()
    try:
        async with session_factory() as session:
            catalog = await catalog_seeder(session, visit_date)
            catalog.morning.max_capacity = capacity
            await session.commit()

            service = BookingService(session)
            availability = AvailabilityService(session)
            live: dict[int, int] = {}

            for op, value in ops:
                booked_before = await availability.booked_children(visit_date, catalog.morning_id)
                if op == "book":
                    fits = booked_before + value <= capacity
                    try:
                        booking = await service.create_booking(booking_request(catalog, visit_date, value))
                        live[booking.id] = value
                        assert fits
                    except CapacityExceededError:
                        assert not fits
                elif live:
                    booking_id = sorted(live)[value % len(live)]
                    cancelled = await service.transition(booking_id, BookingStatus.CANCELLED)
                    assert cancelled.status == BookingStatus.CANCELLED.value
                    del live[booking_id]

                booked = await availability.booked_children(visit_date, catalog.morning_id)
                assert booked <= capacity
                assert booked == sum(live.values())
    finally:
        await engine.dispose()


@pytest.mark.asyncio
@given(usage_limit=st.integers(min_value=1, max_value=5), attempts=st.integers(min_value=1, max_value=10))
@property_settings
async def test_voucher_uses_never_exceed_limit(catalog_seeder, usage_limit, attempts):
    """Every successful voucher booking consumes exactly one use, never past the limit."""
    visit_date = date.today() + timedelta(days=7)
    engine, session_factory = await fresh_session_factory()
    try:
        async with session_factory() as session:
            catalog = await catalog_seeder(session, visit_date)
            catalog.welcome.usage_limit = usage_limit
            catalog.morning.max_capacity = 100
            await session.commit()
            welcome = catalog.welcome

            service = BookingService(session)
            discounted = 0
            for _ in range(attempts):
                try:
                    await service.create_booking(booking_request(catalog, visit_date, 1, voucher_code="WELCOME20"))
                    discounted += 1
                except VoucherError:
                    pass

            await session.refresh(welcome)
            assert discounted == min(usage_limit, attempts)
            assert welcome.used_count == discounted
    finally:
        await engine.dispose()


@given(
    discount_type=st.sampled_from(list(DiscountType)),
    value=st.decimals(min_value=Decimal("0.01"), max_value=Decimal("100"), places=2),
    amount=amounts,
    max_discount=st.one_of(st.none(), amounts),
)
def test_discount_stays_within_bounds(discount_type, value, amount, max_discount):
    """A discount is never negative, never above the order and never above its cap."""
    discount = compute_discount(discount_type.value, value, amount, max_discount)

    assert Decimal("0.00") <= discount <= amount
    if max_discount is not None:
        assert discount <= max_discount
    assert apply_discount(amount, discount) == amount - discount
    assert discount == discount.quantize(Decimal("0.01"))
