"""Public catalog router: packages, slots with availability, and closures."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import DatabaseSession
from ..schemas.availability import (
    CheckAvailabilityRequest,
    ListSlotsRequest,
    SlotAvailability,
    SlotList,
    SlotWithAvailability,
)
from ..schemas.catalog import Holiday, ListHolidaysRequest, ListPackagesRequest, Package, TimeSlot
from ..services.availability_service import AvailabilityService, Occupancy
from ..services.catalog_service import CatalogService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/catalog", tags=["catalog"])


def availability_schema(occupancy: Occupancy, children: int = 1) -> SlotAvailability:
    return SlotAvailability(
        time_slot_id=occupancy.time_slot_id,
        booking_date=occupancy.booking_date,
        available=occupancy.fits(children),
        capacity=occupancy.capacity,
        booked=occupancy.booked,
        remaining=occupancy.remaining,
        reason=occupancy.reason(children),
    )


async def slot_list(db: AsyncSession, request: ListSlotsRequest) -> SlotList:
    """Active slots, with occupancy when a date is given."""
    if request.booking_date is None:
        slots = await CatalogService(db).list_time_slots()
        return SlotList(slots=[SlotWithAvailability(slot=TimeSlot.model_validate(s)) for s in slots])

    holiday, rows = await AvailabilityService(db).list_with_occupancy(request.booking_date)
    return SlotList(
        booking_date=request.booking_date,
        holiday=holiday,
        slots=[
            SlotWithAvailability(slot=TimeSlot.model_validate(slot), availability=availability_schema(occupancy))
            for slot, occupancy in rows
        ],
    )


@router.post("/packages/list", response_model=list[Package])
async def list_packages(
    request: ListPackagesRequest,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """List bookable packages, cheapest first."""
    request = request.model_copy(update={"include_inactive": False})
    packages = await CatalogService(db).list_packages(request)
    return JSONResponse(
        status_code=200,
        content=[Package.model_validate(p).model_dump(mode="json") for p in packages],
    )


@router.post("/slots/list", response_model=SlotList)
async def list_slots(
    request: ListSlotsRequest,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """List active slots ordered by start time, with availability for a date."""
    response_data = await slot_list(db, request)
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.post("/slots/availability", response_model=SlotAvailability)
async def check_availability(
    request: CheckAvailabilityRequest,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """
    Check whether a number of children fits in a slot on a date.

    Closed dates report unavailable with the holiday name as the reason.
    """
    occupancy = await AvailabilityService(db).check(request.booking_date, request.time_slot_id)
    response_data = availability_schema(occupancy, request.number_of_children)

    logger.debug(
        "Availability checked",
        extra={
            "booking_date": request.booking_date.isoformat(),
            "time_slot_id": request.time_slot_id,
            "available": response_data.available,
        }
    )
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.post("/holidays/list", response_model=list[Holiday])
async def list_holidays(
    request: ListHolidaysRequest,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """List upcoming and past closure dates."""
    request = request.model_copy(update={"include_inactive": False})
    holidays = await CatalogService(db).list_holidays(request)
    return JSONResponse(
        status_code=200,
        content=[Holiday.model_validate(h).model_dump(mode="json") for h in holidays],
    )
