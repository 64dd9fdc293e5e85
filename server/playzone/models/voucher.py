"""Discount voucher and redemption audit models."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base

if TYPE_CHECKING:
    from .booking import Booking


class DiscountType(str, Enum):
    """How a voucher's discount value is interpreted."""
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class DiscountVoucher(Base):
    """Discount code with a validity window and an optional usage cap."""

    __tablename__ = "discount_vouchers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)
    discount_type: Mapped[str] = mapped_column(String(20), nullable=False)
    discount_value: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    min_amount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    max_discount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))

    # Inclusive on both ends
    valid_from: Mapped[date] = mapped_column(Date, nullable=False)
    valid_till: Mapped[date] = mapped_column(Date, nullable=False)

    # None means unlimited
    usage_limit: Mapped[int | None] = mapped_column(Integer)
    used_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    # None or empty means every package type
    applicable_packages: Mapped[list[str] | None] = mapped_column(JSON)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint(
            "discount_type IN ('percentage', 'fixed')",
            name="ck_voucher_discount_type_valid"
        ),
        CheckConstraint("discount_value > 0", name="ck_voucher_discount_value_positive"),
        CheckConstraint("used_count >= 0", name="ck_voucher_used_count_non_negative"),
        CheckConstraint(
            "usage_limit IS NULL OR used_count <= usage_limit",
            name="ck_voucher_used_count_within_limit"
        ),
        CheckConstraint("valid_till >= valid_from", name="ck_voucher_window_ordered"),
    )

    redemptions: Mapped[list["VoucherRedemption"]] = relationship(
        "VoucherRedemption",
        back_populates="voucher",
        cascade="all, delete-orphan"
    )

    @property
    def remaining_uses(self) -> int | None:
        if self.usage_limit is None:
            return None
        return max(self.usage_limit - (self.used_count or 0), 0)

    def __repr__(self) -> str:
        return (
            f"<DiscountVoucher(code='{self.code}', type='{self.discount_type}', "
            f"value={self.discount_value}, used={self.used_count}/{self.usage_limit})>"
        )


class VoucherRedemption(Base):
    """One successful use of a voucher."""

    __tablename__ = "voucher_redemptions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    voucher_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("discount_vouchers.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    booking_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("bookings.id", ondelete="SET NULL"),
        index=True
    )
    user_id: Mapped[str | None] = mapped_column(
        String(64),
        ForeignKey("users.id", ondelete="SET NULL"),
        index=True
    )

    order_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now()
    )

    voucher: Mapped["DiscountVoucher"] = relationship("DiscountVoucher", back_populates="redemptions")
    booking: Mapped[Optional["Booking"]] = relationship("Booking", back_populates="redemption")

    def __repr__(self) -> str:
        return (
            f"<VoucherRedemption(voucher_id={self.voucher_id}, booking_id={self.booking_id}, "
            f"discount={self.discount_amount})>"
        )
