"""Booking service for business logic operations."""

import hashlib
import hmac
import logging
from contextlib import AsyncExitStack
from datetime import date, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    PaymentVerificationError,
    ValidationError,
)
from ..core.locking import serialized, slot_lock_key, voucher_lock_key
from ..core.observability import metrics_collector
from ..models.birthday_party import BirthdayParty
from ..models.booking import Booking, BookingStatus, PaymentStatus
from ..models.package import PackageType
from ..models.user import Permission, User
from ..schemas.booking import (
    CancelBookingRequest,
    CreateBookingRequest,
    SearchBookingsRequest,
    TransitionBookingRequest,
    VerifyPaymentRequest,
)
from .availability_service import AvailabilityService
from .booking_state import ensure_transition
from .catalog_service import CatalogService
from .pricing import ZERO, order_amount
from .voucher_service import VoucherService

logger = logging.getLogger(__name__)


def payment_signature(order_id: str, payment_id: str, secret: str | None = None) -> str:
    """Hex HMAC-SHA256 of ``order_id|payment_id``, as sent by the payment gateway."""
    key = (secret or settings.payment_key_secret).encode()
    return hmac.new(key, f"{order_id}|{payment_id}".encode(), hashlib.sha256).hexdigest()


class BookingService:
    """Service for booking-related operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.catalog = CatalogService(db)
        self.availability = AvailabilityService(db)
        self.vouchers = VoucherService(db)

    async def create_booking(
        self,
        request: CreateBookingRequest,
        user_id: str | None = None,
        today: date | None = None,
    ) -> Booking:
        """
        Admit and record a booking, applying a voucher when one is given.

        The admission check, the voucher increment and the insert run in one
        transaction inside the slot's serialized section, with the voucher's
        section nested inside it, so concurrent requests for the last place or
        the last voucher use cannot both succeed.

        Args:
            request: Booking creation request
            user_id: Signed-in customer, None for guests
            today: Reference date, defaults to the current date

        Returns:
            Created booking entity in ``pending`` status

        Raises:
            ValidationError: If the booking date is in the past
            NotFoundError: If the package or slot does not exist
            ConflictError: If the package or slot is inactive
            HolidayClosedError: If the date is an active holiday
            CapacityExceededError: If the children do not fit in the slot
            VoucherError: If the voucher is rejected
        """
        today = today or date.today()
        if request.booking_date < today:
            raise ValidationError(
                detail="Bookings cannot be made for past dates",
                errors={"booking_date": request.booking_date.isoformat()},
            )

        async with AsyncExitStack() as stack:
            await stack.enter_async_context(
                serialized(self.db, slot_lock_key(request.booking_date, request.time_slot_id))
            )
            if request.voucher_code:
                await stack.enter_async_context(
                    serialized(self.db, voucher_lock_key(request.voucher_code))
                )

            try:
                booking = await self._admit_and_insert(request, user_id, today)
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise

        await self.db.refresh(booking)

        metrics_collector.record_booking_created(booking.package.type)
        if booking.voucher_code:
            metrics_collector.record_voucher_redeemed(booking.voucher_code)

        logger.info(
            "Booking created successfully",
            extra={
                "booking_id": booking.id,
                "booking_date": booking.booking_date.isoformat(),
                "time_slot_id": booking.time_slot_id,
                "children": booking.number_of_children,
                "total_amount": str(booking.total_amount),
                "voucher_code": booking.voucher_code,
                "birthday_party": booking.party is not None,
                "user_id": user_id,
            }
        )
        return booking

    async def _admit_and_insert(
        self,
        request: CreateBookingRequest,
        user_id: str | None,
        today: date,
    ) -> Booking:
        package = await self.catalog.get_package_or_raise(request.package_id)
        if not package.is_active:
            raise ConflictError(
                detail=f"Package {package.id} is not available for booking",
                conflicting_resource={"package_id": package.id},
                code="PACKAGE_INACTIVE",
            )
        is_party = package.type == PackageType.BIRTHDAY.value
        if is_party and request.party is None:
            raise ValidationError(
                detail="Birthday bookings need party details",
                errors={"party": "required for birthday packages"},
            )
        if not is_party and request.party is not None:
            raise ValidationError(
                detail="Party details are only accepted for birthday packages",
                errors={"party": f"not accepted for {package.type} packages"},
            )
        slot = await self.catalog.get_time_slot_or_raise(request.time_slot_id)

        await self.availability.admit(request.booking_date, slot, request.number_of_children)

        amount = order_amount(package.price, request.number_of_children, per_child=package.priced_per_child)
        discount = ZERO
        redemption = None
        if request.voucher_code:
            quote, redemption = await self.vouchers.apply(
                request.voucher_code,
                amount,
                package.type,
                today=today,
                user_id=user_id,
            )
            discount = quote.discount_amount

        booking = Booking(
            user_id=user_id,
            package_id=package.id,
            time_slot_id=slot.id,
            booking_date=request.booking_date,
            number_of_children=request.number_of_children,
            order_amount=amount,
            discount_amount=discount,
            total_amount=amount - discount,
            voucher_code=request.voucher_code if redemption else None,
            status=BookingStatus.PENDING.value,
            parent_name=request.parent_name,
            parent_phone=request.parent_phone,
            parent_email=request.parent_email,
            children_ages=request.children_ages,
            special_requests=request.special_requests,
            party=BirthdayParty(**request.party.model_dump()) if request.party else None,
        )
        self.db.add(booking)
        await self.db.flush()

        if redemption is not None:
            redemption.booking_id = booking.id

        return booking

    async def get_booking_by_id(self, booking_id: int) -> Booking | None:
        """Get booking by ID."""
        stmt = select(Booking).where(Booking.id == booking_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_booking_by_id_or_raise(self, booking_id: int) -> Booking:
        """Get booking by ID or raise NotFoundError."""
        booking = await self.get_booking_by_id(booking_id)
        if not booking:
            logger.warning("Booking not found", extra={"booking_id": booking_id})
            raise NotFoundError(resource_type="booking", resource_id=str(booking_id))
        return booking

    async def get_booking_for(self, booking_id: int, user: User) -> Booking:
        """
        Get a booking the user may see: their own, or any with view_bookings.

        Other customers' bookings are reported as not found.
        """
        booking = await self.get_booking_by_id_or_raise(booking_id)
        if booking.user_id != user.id and not user.has_permission(Permission.VIEW_BOOKINGS):
            raise NotFoundError(resource_type="booking", resource_id=str(booking_id))
        return booking

    async def list_user_bookings(
        self,
        user_id: str,
        status: BookingStatus | None = None,
        parties_only: bool = False,
    ) -> list[Booking]:
        stmt = (
            select(Booking)
            .where(Booking.user_id == user_id)
            .order_by(Booking.booking_date.desc(), Booking.id.desc())
        )
        if status is not None:
            stmt = stmt.where(Booking.status == status.value)
        if parties_only:
            stmt = stmt.where(Booking.party.has())
        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def search_bookings(
        self,
        request: SearchBookingsRequest,
        today: date | None = None,
    ) -> tuple[list[Booking], int]:
        """Admin booking search, by default over the last admin window of days."""
        today = today or date.today()
        date_to = request.date_to or today
        date_from = request.date_from or (date_to - timedelta(days=settings.admin_booking_window_days))
        if date_from > date_to:
            raise ValidationError(detail="date_from must not be after date_to")

        filters = [Booking.booking_date >= date_from, Booking.booking_date <= date_to]
        if request.status is not None:
            filters.append(Booking.status == request.status.value)
        if request.time_slot_id is not None:
            filters.append(Booking.time_slot_id == request.time_slot_id)
        if request.parent_phone:
            filters.append(Booking.parent_phone.contains(request.parent_phone))

        total = (await self.db.execute(select(func.count(Booking.id)).where(*filters))).scalar_one()
        stmt = (
            select(Booking)
            .where(*filters)
            .order_by(Booking.booking_date.desc(), Booking.created_at.desc(), Booking.id.desc())
            .limit(request.limit)
            .offset(request.offset)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars()), int(total)

    async def transition(self, booking_id: int, target: BookingStatus) -> Booking:
        """
        Move a booking to another status.

        Cancellation frees the booking's children immediately, since occupancy
        only counts non-cancelled bookings. Voucher uses are not given back.

        Raises:
            NotFoundError: If the booking does not exist
            InvalidStateTransitionError: If the lifecycle forbids the change
        """
        booking = await self.get_booking_by_id_or_raise(booking_id)
        async with serialized(self.db, slot_lock_key(booking.booking_date, booking.time_slot_id)):
            try:
                await self.db.refresh(booking, attribute_names=["status"])
                previous = booking.status
                booking.status = ensure_transition(booking.id, previous, target).value
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise

        await self.db.refresh(booking)
        metrics_collector.record_transition(previous, booking.status)

        logger.info(
            "Booking status changed",
            extra={
                "booking_id": booking.id,
                "from_status": previous,
                "to_status": booking.status,
                "children": booking.number_of_children,
            }
        )
        return booking

    async def change_status(self, request: TransitionBookingRequest) -> Booking:
        """Staff-driven status change."""
        return await self.transition(request.booking_id, request.status)

    async def cancel_booking(self, request: CancelBookingRequest, user: User) -> Booking:
        """
        Cancel a booking on behalf of its owner or staff.

        Raises:
            NotFoundError: If the booking does not exist or is someone else's
            AuthorizationError: If a guest booking is cancelled by a customer
            InvalidStateTransitionError: If the booking is completed or already cancelled
        """
        booking = await self.get_booking_for(request.booking_id, user)
        if booking.user_id != user.id and not user.has_permission(Permission.MANAGE_BOOKINGS):
            raise AuthorizationError(
                detail="Only the booking owner or staff can cancel this booking",
                required_permissions=[Permission.MANAGE_BOOKINGS.value],
            )
        return await self.transition(booking.id, BookingStatus.CANCELLED)

    async def verify_payment(self, request: VerifyPaymentRequest, user: User | None = None) -> Booking:
        """
        Confirm a pending booking from a signed payment gateway callback.

        Guests have no account, so for them the gateway signature is the only
        proof; signed-in customers may only confirm their own bookings.

        Raises:
            NotFoundError: If the booking does not exist or is someone else's
            PaymentVerificationError: If the signature does not match
            InvalidStateTransitionError: If the booking is not pending
        """
        if user is not None:
            booking = await self.get_booking_for(request.booking_id, user)
        else:
            booking = await self.get_booking_by_id_or_raise(request.booking_id)

        expected = payment_signature(request.order_id, request.payment_id)
        if not hmac.compare_digest(expected, request.signature.lower()):
            logger.warning(
                "Payment signature mismatch",
                extra={"booking_id": booking.id, "order_id": request.order_id}
            )
            booking.payment_status = PaymentStatus.FAILED.value
            await self.db.commit()
            raise PaymentVerificationError(booking.id)

        ensure_transition(booking.id, booking.status, BookingStatus.CONFIRMED)
        booking.payment_id = request.payment_id
        booking.payment_status = PaymentStatus.PAID.value
        await self.db.flush()

        logger.info(
            "Payment verified",
            extra={"booking_id": booking.id, "payment_id": request.payment_id}
        )
        return await self.transition(booking.id, BookingStatus.CONFIRMED)
