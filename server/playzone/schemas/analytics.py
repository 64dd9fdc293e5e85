"""Analytics schemas."""

import datetime as dt
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class AnalyticsSummaryRequest(BaseModel):
    """Request schema for the analytics summary."""

    date_from: Optional[dt.date] = Field(None, description="Earliest booking date included")
    date_to: Optional[dt.date] = Field(None, description="Latest booking date included")
    top_customers: int = Field(10, ge=1, le=100)


class MonthlyRevenue(BaseModel):
    month: str = Field(..., description="YYYY-MM of the booking date")
    bookings: int
    revenue: Decimal


class PopularPackage(BaseModel):
    package_id: int
    name: str
    type: str
    bookings: int
    children: int
    revenue: Decimal


class TopCustomer(BaseModel):
    parent_phone: str
    parent_name: str
    bookings: int
    total_spent: Decimal


class AnalyticsSummary(BaseModel):
    """Booking, revenue and user statistics."""

    total_bookings: int
    bookings_by_status: Dict[str, int]
    total_revenue: Decimal = Field(..., description="Confirmed and completed bookings only")
    total_discount: Decimal
    monthly_revenue: List[MonthlyRevenue]
    popular_packages: List[PopularPackage]
    top_customers: List[TopCustomer]
    total_users: int
    users_by_role: Dict[str, int]
