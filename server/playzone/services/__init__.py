"""Service layer package."""

from .analytics_service import AnalyticsService
from .availability_service import AvailabilityService
from .booking_service import BookingService
from .catalog_service import CatalogService
from .identity_service import IdentityService
from .otp_service import OtpService
from .user_service import UserService
from .voucher_service import VoucherService

__all__ = [
    "AnalyticsService",
    "AvailabilityService",
    "BookingService",
    "CatalogService",
    "IdentityService",
    "OtpService",
    "UserService",
    "VoucherService",
]
