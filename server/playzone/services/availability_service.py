"""Slot availability and the booking admission check."""

import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import (
    CapacityExceededError,
    ConflictError,
    HolidayClosedError,
)
from ..core.observability import metrics_collector
from ..models.booking import Booking, BookingStatus
from ..models.time_slot import TimeSlot
from .catalog_service import CatalogService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Occupancy:
    """Children booked into a slot on a date against its capacity."""

    time_slot_id: int
    booking_date: date
    capacity: int
    booked: int
    holiday: str | None = None

    @property
    def remaining(self) -> int:
        return max(self.capacity - self.booked, 0)

    def fits(self, children: int) -> bool:
        return self.holiday is None and self.booked + children <= self.capacity

    def reason(self, children: int) -> str | None:
        if self.holiday is not None:
            return f"Closed: {self.holiday}"
        if not self.fits(children):
            return "Slot is fully booked" if self.remaining == 0 else f"Only {self.remaining} places remaining"
        return None


class AvailabilityService:
    """Service answering "does this booking fit" questions."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.catalog = CatalogService(db)

    async def booked_children(self, booking_date: date, time_slot_id: int) -> int:
        """Sum of children across non-cancelled bookings for (date, slot)."""
        stmt = select(func.coalesce(func.sum(Booking.number_of_children), 0)).where(
            Booking.booking_date == booking_date,
            Booking.time_slot_id == time_slot_id,
            Booking.status != BookingStatus.CANCELLED.value,
        )
        result = await self.db.execute(stmt)
        return int(result.scalar_one())

    async def booked_by_slot(self, booking_date: date) -> dict[int, int]:
        """Children booked per slot on a date, in one query."""
        stmt = (
            select(Booking.time_slot_id, func.sum(Booking.number_of_children))
            .where(
                Booking.booking_date == booking_date,
                Booking.status != BookingStatus.CANCELLED.value,
            )
            .group_by(Booking.time_slot_id)
        )
        result = await self.db.execute(stmt)
        return {slot_id: int(total or 0) for slot_id, total in result.all()}

    async def occupancy(self, booking_date: date, slot: TimeSlot) -> Occupancy:
        holiday = await self.catalog.get_active_holiday(booking_date)
        return Occupancy(
            time_slot_id=slot.id,
            booking_date=booking_date,
            capacity=slot.max_capacity,
            booked=await self.booked_children(booking_date, slot.id),
            holiday=holiday.name if holiday else None,
        )

    async def check(self, booking_date: date, time_slot_id: int) -> Occupancy:
        """
        Occupancy of one slot on one date.

        Raises:
            NotFoundError: If the slot does not exist
        """
        slot = await self.catalog.get_time_slot_or_raise(time_slot_id)
        return await self.occupancy(booking_date, slot)

    async def list_with_occupancy(self, booking_date: date) -> tuple[str | None, list[tuple[TimeSlot, Occupancy]]]:
        """Active slots ordered by start time, each with its occupancy on the date."""
        holiday = await self.catalog.get_active_holiday(booking_date)
        holiday_name = holiday.name if holiday else None
        booked = await self.booked_by_slot(booking_date)
        slots = await self.catalog.list_time_slots()
        return holiday_name, [
            (
                slot,
                Occupancy(
                    time_slot_id=slot.id,
                    booking_date=booking_date,
                    capacity=slot.max_capacity,
                    booked=booked.get(slot.id, 0),
                    holiday=holiday_name,
                ),
            )
            for slot in slots
        ]

    async def admit(self, booking_date: date, slot: TimeSlot, children: int) -> Occupancy:
        """
        Admission check for a new booking of ``children`` into ``slot``.

        Must run inside the slot's serialized section, in the same transaction
        as the booking insert that follows it. The holiday check precedes the
        capacity check.

        Returns:
            Occupancy before the new booking

        Raises:
            ConflictError: If the slot is inactive
            HolidayClosedError: If the date is an active holiday
            CapacityExceededError: If the children do not fit
        """
        if not slot.is_active:
            raise ConflictError(
                detail=f"Time slot {slot.id} is not open for booking",
                conflicting_resource={"time_slot_id": slot.id},
                code="SLOT_INACTIVE",
            )

        holiday = await self.catalog.get_active_holiday(booking_date)
        if holiday is not None:
            logger.warning(
                "Admission refused - venue closed",
                extra={"booking_date": booking_date.isoformat(), "holiday": holiday.name}
            )
            metrics_collector.record_booking_rejected("holiday_closed")
            raise HolidayClosedError(booking_date, holiday.name)

        booked = await self.booked_children(booking_date, slot.id)
        if booked + children > slot.max_capacity:
            logger.warning(
                "Admission refused - insufficient capacity",
                extra={
                    "booking_date": booking_date.isoformat(),
                    "time_slot_id": slot.id,
                    "requested": children,
                    "booked": booked,
                    "capacity": slot.max_capacity,
                }
            )
            metrics_collector.record_booking_rejected("capacity_exceeded")
            raise CapacityExceededError(
                time_slot_id=slot.id,
                booking_date=booking_date,
                requested=children,
                booked=booked,
                capacity=slot.max_capacity,
            )

        metrics_collector.set_slot_utilization(slot.id, booked + children, slot.max_capacity)
        return Occupancy(
            time_slot_id=slot.id,
            booking_date=booking_date,
            capacity=slot.max_capacity,
            booked=booked,
        )
