"""Admin router for booking search, status changes and slot occupancy."""

import logging
from datetime import date

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import DatabaseSession, Sender, require_permission
from ..core.exceptions import ProblemDetailsException
from ..models.booking import BookingStatus
from ..models.user import Permission, User
from ..schemas.availability import ListSlotsRequest, SlotList
from ..schemas.booking import Booking, BookingList, SearchBookingsRequest, TransitionBookingRequest
from ..services.booking_service import BookingService
from ..services.notification_service import BookingNotifier, NotificationSender
from .catalog import slot_list

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/admin/bookings", tags=["admin"])


@router.post("/search", response_model=BookingList)
async def search_bookings(
    request: SearchBookingsRequest,
    db: AsyncSession = DatabaseSession,
    user: User = Depends(require_permission(Permission.VIEW_BOOKINGS)),
) -> JSONResponse:
    """
    Search bookings by date range, status, slot and parent phone.

    Without dates, the most recent admin window of days is searched.
    """
    bookings, total = await BookingService(db).search_bookings(request)
    response_data = BookingList(bookings=[Booking.model_validate(b) for b in bookings], total=total)
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.post("/transition", response_model=Booking)
async def transition_booking(
    request: TransitionBookingRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = DatabaseSession,
    user: User = Depends(require_permission(Permission.MANAGE_BOOKINGS)),
    sender: NotificationSender = Sender,
) -> JSONResponse:
    """
    Move a booking along its lifecycle.

    pending may become confirmed or cancelled; confirmed may become completed
    or cancelled. completed and cancelled are final.
    """
    try:
        booking = await BookingService(db).change_status(request)

        notifier = BookingNotifier(sender)
        if booking.status == BookingStatus.CONFIRMED.value:
            background_tasks.add_task(notifier.booking_confirmed, booking)
        elif booking.status == BookingStatus.CANCELLED.value:
            background_tasks.add_task(notifier.booking_cancelled, booking)

        logger.info(
            "Booking status changed by staff",
            extra={"booking_id": booking.id, "status": booking.status, "staff_user_id": user.id}
        )
        return JSONResponse(status_code=200, content=Booking.model_validate(booking).model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in booking transition",
            extra={"booking_id": request.booking_id, "status": request.status.value, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/occupancy", response_model=SlotList)
async def slot_occupancy(
    request: ListSlotsRequest,
    db: AsyncSession = DatabaseSession,
    user: User = Depends(require_permission(Permission.VIEW_BOOKINGS)),
) -> JSONResponse:
    """Booked and remaining places in every active slot for a date, today by default."""
    request = ListSlotsRequest(booking_date=request.booking_date or date.today())
    response_data = await slot_list(db, request)
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))
