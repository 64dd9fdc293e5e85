"""Booking model definition."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base

if TYPE_CHECKING:
    from .birthday_party import BirthdayParty
    from .package import Package
    from .time_slot import TimeSlot
    from .voucher import VoucherRedemption


class BookingStatus(str, Enum):
    """Booking status enumeration."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    """Payment gateway outcome recorded against a booking."""
    PAID = "paid"
    FAILED = "failed"


class Booking(Base):
    """Booking entity representing children admitted to a slot on a date."""

    __tablename__ = "bookings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Guests book without an account
    user_id: Mapped[str | None] = mapped_column(
        String(64),
        ForeignKey("users.id", ondelete="SET NULL"),
        index=True
    )
    package_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("packages.id", ondelete="RESTRICT"),
        nullable=False
    )
    time_slot_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("time_slots.id", ondelete="RESTRICT"),
        nullable=False
    )
    booking_date: Mapped[date] = mapped_column(Date, nullable=False)
    number_of_children: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # Amounts
    order_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0.00")
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    voucher_code: Mapped[str | None] = mapped_column(String(50))

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=BookingStatus.PENDING.value,
        index=True
    )
    payment_id: Mapped[str | None] = mapped_column(String(128))
    payment_status: Mapped[str | None] = mapped_column(String(20))

    # Contact details
    parent_name: Mapped[str] = mapped_column(String(255), nullable=False)
    parent_phone: Mapped[str] = mapped_column(String(20), nullable=False)
    parent_email: Mapped[str] = mapped_column(String(255), nullable=False)
    children_ages: Mapped[list[int] | None] = mapped_column(JSON)
    special_requests: Mapped[str | None] = mapped_column(Text)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now(),
        onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint("number_of_children > 0", name="ck_booking_children_positive"),
        CheckConstraint("total_amount >= 0", name="ck_booking_total_non_negative"),
        CheckConstraint("discount_amount >= 0", name="ck_booking_discount_non_negative"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'completed', 'cancelled')",
            name="ck_booking_status_valid"
        ),
        Index("ix_bookings_slot_occupancy", "booking_date", "time_slot_id", "status"),
    )

    # Relationships
    package: Mapped["Package"] = relationship("Package", lazy="joined")
    time_slot: Mapped["TimeSlot"] = relationship("TimeSlot", lazy="joined")
    redemption: Mapped[Optional["VoucherRedemption"]] = relationship(
        "VoucherRedemption",
        back_populates="booking",
        uselist=False
    )
    party: Mapped[Optional["BirthdayParty"]] = relationship(
        "BirthdayParty",
        back_populates="booking",
        uselist=False,
        lazy="joined",
        cascade="all, delete-orphan"
    )

    @property
    def is_active(self) -> bool:
        """Active bookings occupy capacity in their slot."""
        return self.status != BookingStatus.CANCELLED.value

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, date={self.booking_date}, slot={self.time_slot_id}, "
            f"children={self.number_of_children}, status='{self.status}')>"
        )
