"""Catalog service for packages, time slots and the holiday calendar."""

import logging
from datetime import date
from enum import Enum

from sqlalchemy import extract, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..models.package import Package
from ..models.time_slot import HolidayCalendar, TimeSlot
from ..schemas.catalog import (
    BulkCapacityRequest,
    HolidayCreateRequest,
    HolidayUpdateRequest,
    ListHolidaysRequest,
    ListPackagesRequest,
    PackageCreateRequest,
    PackageUpdateRequest,
    TimeSlotCreateRequest,
    TimeSlotUpdateRequest,
)

logger = logging.getLogger(__name__)


def _apply_changes(entity, changes: dict) -> list[str]:
    """Copy non-None fields onto an entity and return the names changed."""
    changed = []
    for field, value in changes.items():
        if value is None:
            continue
        if isinstance(value, Enum):
            value = value.value
        setattr(entity, field, value)
        changed.append(field)
    return changed


class CatalogService:
    """Service for the bookable catalog."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # Packages

    async def list_packages(self, request: ListPackagesRequest) -> list[Package]:
        stmt = select(Package).order_by(Package.price, Package.id)
        if not request.include_inactive:
            stmt = stmt.where(Package.is_active.is_(True))
        if request.type is not None:
            stmt = stmt.where(Package.type == request.type.value)
        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def get_package(self, package_id: int) -> Package | None:
        return await self.db.get(Package, package_id)

    async def get_package_or_raise(self, package_id: int) -> Package:
        package = await self.get_package(package_id)
        if not package:
            raise NotFoundError(resource_type="package", resource_id=str(package_id))
        return package

    async def create_package(self, request: PackageCreateRequest) -> Package:
        package = Package(
            name=request.name,
            type=request.type.value,
            price=request.price,
            duration=request.duration,
            description=request.description,
            features=list(request.features),
            max_children=request.max_children,
            is_active=request.is_active,
        )
        self.db.add(package)
        await self.db.commit()
        await self.db.refresh(package)

        logger.info(
            "Package created",
            extra={"package_id": package.id, "type": package.type, "price": str(package.price)}
        )
        return package

    async def update_package(self, request: PackageUpdateRequest) -> Package:
        package = await self.get_package_or_raise(request.package_id)
        changed = _apply_changes(package, request.model_dump(exclude={"package_id"}, exclude_unset=True))
        await self.db.commit()
        await self.db.refresh(package)

        logger.info("Package updated", extra={"package_id": package.id, "fields": changed})
        return package

    # Time slots

    async def list_time_slots(self, include_inactive: bool = False) -> list[TimeSlot]:
        stmt = select(TimeSlot).order_by(TimeSlot.start_time, TimeSlot.id)
        if not include_inactive:
            stmt = stmt.where(TimeSlot.is_active.is_(True))
        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def get_time_slot(self, time_slot_id: int) -> TimeSlot | None:
        return await self.db.get(TimeSlot, time_slot_id)

    async def get_time_slot_or_raise(self, time_slot_id: int) -> TimeSlot:
        slot = await self.get_time_slot(time_slot_id)
        if not slot:
            raise NotFoundError(resource_type="time_slot", resource_id=str(time_slot_id))
        return slot

    async def create_time_slot(self, request: TimeSlotCreateRequest) -> TimeSlot:
        slot = TimeSlot(
            start_time=request.start_time,
            end_time=request.end_time,
            max_capacity=(
                request.max_capacity if request.max_capacity is not None
                else settings.default_slot_capacity
            ),
            is_active=request.is_active,
        )
        self.db.add(slot)
        await self.db.commit()
        await self.db.refresh(slot)

        logger.info(
            "Time slot created",
            extra={"time_slot_id": slot.id, "label": slot.label, "max_capacity": slot.max_capacity}
        )
        return slot

    async def update_time_slot(self, request: TimeSlotUpdateRequest) -> TimeSlot:
        """
        Update a slot.

        Lowering capacity below current bookings is allowed: existing
        bookings stand, and new admissions are refused until occupancy drops.
        """
        slot = await self.get_time_slot_or_raise(request.time_slot_id)
        start = request.start_time or slot.start_time
        end = request.end_time or slot.end_time
        if end <= start:
            raise ValidationError(
                detail="end_time must be after start_time",
                errors={"start_time": start.isoformat(), "end_time": end.isoformat()},
            )

        changed = _apply_changes(slot, request.model_dump(exclude={"time_slot_id"}, exclude_unset=True))
        await self.db.commit()
        await self.db.refresh(slot)

        logger.info("Time slot updated", extra={"time_slot_id": slot.id, "fields": changed})
        return slot

    async def bulk_update_capacity(self, request: BulkCapacityRequest) -> list[TimeSlot]:
        stmt = update(TimeSlot).values(max_capacity=request.max_capacity)
        if request.time_slot_ids:
            stmt = stmt.where(TimeSlot.id.in_(request.time_slot_ids))
        result = await self.db.execute(stmt.execution_options(synchronize_session=False))
        await self.db.commit()

        logger.info(
            "Slot capacity updated in bulk",
            extra={
                "max_capacity": request.max_capacity,
                "time_slot_ids": request.time_slot_ids or "all",
                "updated": result.rowcount,
            }
        )

        slots = select(TimeSlot).order_by(TimeSlot.start_time, TimeSlot.id)
        if request.time_slot_ids:
            slots = slots.where(TimeSlot.id.in_(request.time_slot_ids))
        refreshed = await self.db.execute(slots.execution_options(populate_existing=True))
        return list(refreshed.scalars())

    # Holidays

    async def list_holidays(self, request: ListHolidaysRequest) -> list[HolidayCalendar]:
        stmt = select(HolidayCalendar).order_by(HolidayCalendar.holiday_date)
        if not request.include_inactive:
            stmt = stmt.where(HolidayCalendar.is_active.is_(True))
        if request.year is not None:
            stmt = stmt.where(extract("year", HolidayCalendar.holiday_date) == request.year)
        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def get_active_holiday(self, on: date) -> HolidayCalendar | None:
        """Return the active closure entry for a date, if any."""
        stmt = select(HolidayCalendar).where(
            HolidayCalendar.holiday_date == on,
            HolidayCalendar.is_active.is_(True),
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_holiday_or_raise(self, holiday_id: int) -> HolidayCalendar:
        holiday = await self.db.get(HolidayCalendar, holiday_id)
        if not holiday:
            raise NotFoundError(resource_type="holiday", resource_id=str(holiday_id))
        return holiday

    async def create_holiday(self, request: HolidayCreateRequest) -> HolidayCalendar:
        holiday = HolidayCalendar(
            holiday_date=request.date,
            name=request.name,
            type=request.type.value,
            description=request.description,
            is_active=request.is_active,
        )
        self.db.add(holiday)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.warning("Holiday already exists", extra={"date": request.date.isoformat()})
            raise ConflictError(
                detail=f"A holiday is already recorded on {request.date.isoformat()}",
                conflicting_resource={"date": request.date.isoformat()},
                code="HOLIDAY_EXISTS",
            )
        await self.db.refresh(holiday)

        logger.info(
            "Holiday created",
            extra={"holiday_id": holiday.id, "date": request.date.isoformat(), "name": holiday.name}
        )
        return holiday

    async def update_holiday(self, request: HolidayUpdateRequest) -> HolidayCalendar:
        holiday = await self.get_holiday_or_raise(request.holiday_id)
        changed = _apply_changes(holiday, request.model_dump(exclude={"holiday_id"}, exclude_unset=True))
        await self.db.commit()
        await self.db.refresh(holiday)

        logger.info("Holiday updated", extra={"holiday_id": holiday.id, "fields": changed})
        return holiday

    async def delete_holiday(self, holiday_id: int) -> None:
        holiday = await self.get_holiday_or_raise(holiday_id)
        await self.db.delete(holiday)
        await self.db.commit()

        logger.info("Holiday deleted", extra={"holiday_id": holiday_id})
