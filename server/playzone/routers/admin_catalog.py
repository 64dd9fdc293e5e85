"""Admin router for packages, time slots, holidays and vouchers."""

import logging

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import DatabaseSession, require_permission
from ..models.user import Permission, User
from ..schemas.catalog import (
    BulkCapacityRequest,
    Holiday,
    HolidayCreateRequest,
    HolidayUpdateRequest,
    ListHolidaysRequest,
    ListPackagesRequest,
    Package,
    PackageCreateRequest,
    PackageUpdateRequest,
    TimeSlot,
    TimeSlotCreateRequest,
    TimeSlotUpdateRequest,
)
from ..schemas.common import IdRequest
from ..schemas.voucher import (
    ListVouchersRequest,
    Voucher,
    VoucherCreateRequest,
    VoucherRedemption,
    VoucherUpdateRequest,
)
from ..services.catalog_service import CatalogService
from ..services.voucher_service import VoucherService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/admin", tags=["admin"])

ManagePackages = Depends(require_permission(Permission.MANAGE_PACKAGES))
ManageSettings = Depends(require_permission(Permission.MANAGE_SETTINGS))


def _one(schema, entity, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=schema.model_validate(entity).model_dump(mode="json"))


def _many(schema, entities) -> JSONResponse:
    return JSONResponse(
        status_code=200,
        content=[schema.model_validate(e).model_dump(mode="json") for e in entities],
    )


# Packages

@router.post("/packages/list", response_model=list[Package])
async def list_packages(
    request: ListPackagesRequest,
    db: AsyncSession = DatabaseSession,
    user: User = ManagePackages,
) -> JSONResponse:
    """List packages, including deactivated ones on request."""
    return _many(Package, await CatalogService(db).list_packages(request))


@router.post("/packages/create", response_model=Package, status_code=201)
async def create_package(
    request: PackageCreateRequest,
    db: AsyncSession = DatabaseSession,
    user: User = ManagePackages,
) -> JSONResponse:
    package = await CatalogService(db).create_package(request)
    return _one(Package, package, status_code=201)


@router.post("/packages/update", response_model=Package)
async def update_package(
    request: PackageUpdateRequest,
    db: AsyncSession = DatabaseSession,
    user: User = ManagePackages,
) -> JSONResponse:
    """Update a package; deactivating it stops new bookings but keeps existing ones."""
    return _one(Package, await CatalogService(db).update_package(request))


# Time slots

@router.post("/slots/list", response_model=list[TimeSlot])
async def list_time_slots(
    db: AsyncSession = DatabaseSession,
    user: User = ManageSettings,
) -> JSONResponse:
    return _many(TimeSlot, await CatalogService(db).list_time_slots(include_inactive=True))


@router.post("/slots/create", response_model=TimeSlot, status_code=201)
async def create_time_slot(
    request: TimeSlotCreateRequest,
    db: AsyncSession = DatabaseSession,
    user: User = ManageSettings,
) -> JSONResponse:
    return _one(TimeSlot, await CatalogService(db).create_time_slot(request), status_code=201)


@router.post("/slots/update", response_model=TimeSlot)
async def update_time_slot(
    request: TimeSlotUpdateRequest,
    db: AsyncSession = DatabaseSession,
    user: User = ManageSettings,
) -> JSONResponse:
    """
    Update a slot's times, capacity or active flag.

    Lowering capacity below the children already booked is allowed; those
    bookings stand and no new ones are admitted until there is room.
    """
    return _one(TimeSlot, await CatalogService(db).update_time_slot(request))


@router.post("/slots/capacity", response_model=list[TimeSlot])
async def bulk_update_capacity(
    request: BulkCapacityRequest,
    db: AsyncSession = DatabaseSession,
    user: User = ManageSettings,
) -> JSONResponse:
    """Set the same capacity on several slots, or on all of them."""
    return _many(TimeSlot, await CatalogService(db).bulk_update_capacity(request))


# Holidays

@router.post("/holidays/list", response_model=list[Holiday])
async def list_holidays(
    request: ListHolidaysRequest,
    db: AsyncSession = DatabaseSession,
    user: User = ManageSettings,
) -> JSONResponse:
    return _many(Holiday, await CatalogService(db).list_holidays(request))


@router.post("/holidays/create", response_model=Holiday, status_code=201)
async def create_holiday(
    request: HolidayCreateRequest,
    db: AsyncSession = DatabaseSession,
    user: User = ManageSettings,
) -> JSONResponse:
    """Close the venue on a date. Only one holiday may exist per date."""
    return _one(Holiday, await CatalogService(db).create_holiday(request), status_code=201)


@router.post("/holidays/update", response_model=Holiday)
async def update_holiday(
    request: HolidayUpdateRequest,
    db: AsyncSession = DatabaseSession,
    user: User = ManageSettings,
) -> JSONResponse:
    return _one(Holiday, await CatalogService(db).update_holiday(request))


@router.post("/holidays/delete", status_code=204)
async def delete_holiday(
    request: IdRequest,
    db: AsyncSession = DatabaseSession,
    user: User = ManageSettings,
) -> Response:
    await CatalogService(db).delete_holiday(request.id)
    return Response(status_code=204)


# Vouchers

@router.post("/vouchers/list", response_model=list[Voucher])
async def list_vouchers(
    request: ListVouchersRequest,
    db: AsyncSession = DatabaseSession,
    user: User = ManageSettings,
) -> JSONResponse:
    return _many(Voucher, await VoucherService(db).list_vouchers(request.include_inactive))


@router.post("/vouchers/create", response_model=Voucher, status_code=201)
async def create_voucher(
    request: VoucherCreateRequest,
    db: AsyncSession = DatabaseSession,
    user: User = ManageSettings,
) -> JSONResponse:
    """Create a voucher. Codes are unique and stored upper-case."""
    return _one(Voucher, await VoucherService(db).create_voucher(request), status_code=201)


@router.post("/vouchers/update", response_model=Voucher)
async def update_voucher(
    request: VoucherUpdateRequest,
    db: AsyncSession = DatabaseSession,
    user: User = ManageSettings,
) -> JSONResponse:
    return _one(Voucher, await VoucherService(db).update_voucher(request))


@router.post("/vouchers/deactivate", response_model=Voucher)
async def deactivate_voucher(
    request: IdRequest,
    db: AsyncSession = DatabaseSession,
    user: User = ManageSettings,
) -> JSONResponse:
    voucher = await VoucherService(db).deactivate_voucher(request.id)
    logger.info("Voucher deactivated by admin", extra={"voucher_id": voucher.id, "admin_user_id": user.id})
    return _one(Voucher, voucher)


@router.post("/vouchers/redemptions", response_model=list[VoucherRedemption])
async def list_redemptions(
    request: IdRequest,
    db: AsyncSession = DatabaseSession,
    user: User = ManageSettings,
) -> JSONResponse:
    """Every use of a voucher, oldest first."""
    return _many(VoucherRedemption, await VoucherService(db).list_redemptions(request.id))
