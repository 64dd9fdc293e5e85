"""Models module exporting all database models."""

from .birthday_party import BirthdayParty
from .booking import Booking, BookingStatus, PaymentStatus
from .otp import OtpVerification
from .package import Package, PackageType
from .time_slot import HolidayCalendar, HolidayType, TimeSlot
from .user import ROLE_PERMISSIONS, Permission, User, UserRole, default_permissions
from .voucher import DiscountType, DiscountVoucher, VoucherRedemption

__all__ = [
    # Catalog entities
    "Package",
    "PackageType",
    "TimeSlot",
    "HolidayCalendar",
    "HolidayType",

    # Booking entities
    "Booking",
    "BookingStatus",
    "PaymentStatus",
    "BirthdayParty",

    # Voucher entities
    "DiscountVoucher",
    "DiscountType",
    "VoucherRedemption",

    # Identity entities
    "User",
    "UserRole",
    "Permission",
    "ROLE_PERMISSIONS",
    "default_permissions",
    "OtpVerification",
]
