"""Booking router for customer booking operations."""

import logging

from fastapi import APIRouter, BackgroundTasks, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import CurrentUser, DatabaseSession, OptionalUser, Sender
from ..core.exceptions import ProblemDetailsException
from ..models.user import User
from ..schemas.booking import (
    Booking,
    BookingList,
    CancelBookingRequest,
    CreateBookingRequest,
    GetBookingRequest,
    ListMyBookingsRequest,
    VerifyPaymentRequest,
)
from ..services.booking_service import BookingService
from ..services.notification_service import BookingNotifier, NotificationSender

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/booking", tags=["booking"])


def _booking_response(booking, status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=Booking.model_validate(booking).model_dump(mode="json"),
    )


@router.post("/create", response_model=Booking, status_code=201)
async def create_booking(
    request: CreateBookingRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = DatabaseSession,
    user: User | None = OptionalUser,
    sender: NotificationSender = Sender,
) -> JSONResponse:
    """
    Book children into a slot on a date.

    Guests may book without signing in. The total is computed server-side
    from the package price, the number of children and the voucher, if any.
    The booking starts out ``pending`` until payment is verified.
    """
    booking_service = BookingService(db)

    try:
        booking = await booking_service.create_booking(request, user_id=user.id if user else None)
        background_tasks.add_task(BookingNotifier(sender).booking_created, booking)
        return _booking_response(booking, status_code=201)

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in booking creation",
            extra={
                "booking_date": request.booking_date.isoformat(),
                "time_slot_id": request.time_slot_id,
                "error": str(e),
            },
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/get", response_model=Booking)
async def get_booking(
    request: GetBookingRequest,
    db: AsyncSession = DatabaseSession,
    user: User = CurrentUser,
) -> JSONResponse:
    """Get one of the caller's bookings; staff may read any booking."""
    booking = await BookingService(db).get_booking_for(request.booking_id, user)
    return _booking_response(booking)


@router.post("/mine", response_model=BookingList)
async def list_my_bookings(
    request: ListMyBookingsRequest,
    db: AsyncSession = DatabaseSession,
    user: User = CurrentUser,
) -> JSONResponse:
    """List the caller's bookings, newest date first."""
    bookings = await BookingService(db).list_user_bookings(user.id, request.status)
    response_data = BookingList(
        bookings=[Booking.model_validate(b) for b in bookings],
        total=len(bookings),
    )
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.post("/parties/mine", response_model=BookingList)
async def list_my_parties(
    request: ListMyBookingsRequest,
    db: AsyncSession = DatabaseSession,
    user: User = CurrentUser,
) -> JSONResponse:
    """List the caller's birthday party bookings with their party details."""
    bookings = await BookingService(db).list_user_bookings(user.id, request.status, parties_only=True)
    response_data = BookingList(
        bookings=[Booking.model_validate(b) for b in bookings],
        total=len(bookings),
    )
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.post("/cancel", response_model=Booking)
async def cancel_booking(
    request: CancelBookingRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = DatabaseSession,
    user: User = CurrentUser,
    sender: NotificationSender = Sender,
) -> JSONResponse:
    """
    Cancel a pending or confirmed booking.

    The children are released from the slot immediately.
    """
    try:
        booking = await BookingService(db).cancel_booking(request, user)
        background_tasks.add_task(BookingNotifier(sender).booking_cancelled, booking)
        return _booking_response(booking)

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in booking cancellation",
            extra={"booking_id": request.booking_id, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/payment/verify", response_model=Booking)
async def verify_payment(
    request: VerifyPaymentRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = DatabaseSession,
    user: User | None = OptionalUser,
    sender: NotificationSender = Sender,
) -> JSONResponse:
    """Verify a payment gateway signature and confirm the booking."""
    try:
        booking = await BookingService(db).verify_payment(request, user)
        background_tasks.add_task(BookingNotifier(sender).booking_confirmed, booking)
        return _booking_response(booking)

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in payment verification",
            extra={"booking_id": request.booking_id, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error")
