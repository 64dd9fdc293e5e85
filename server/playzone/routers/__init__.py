"""FastAPI routers package."""

from .admin_bookings import router as admin_bookings_router
from .admin_catalog import router as admin_catalog_router
from .admin_users import router as admin_users_router
from .analytics import router as analytics_router
from .auth import router as auth_router
from .booking import router as booking_router
from .catalog import router as catalog_router
from .health import router as health_router
from .metrics import router as metrics_router
from .voucher import router as voucher_router

__all__ = [
    "admin_bookings_router",
    "admin_catalog_router",
    "admin_users_router",
    "analytics_router",
    "auth_router",
    "booking_router",
    "catalog_router",
    "health_router",
    "metrics_router",
    "voucher_router",
]
