"""Booking, revenue and user statistics for the admin dashboard."""

import logging
from collections import Counter, defaultdict
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.booking import Booking, BookingStatus
from ..schemas.analytics import (
    AnalyticsSummary,
    AnalyticsSummaryRequest,
    MonthlyRevenue,
    PopularPackage,
    TopCustomer,
)
from .pricing import ZERO
from .user_service import UserService

logger = logging.getLogger(__name__)

# Statuses whose amounts count as earned revenue
REVENUE_STATUSES = frozenset({BookingStatus.CONFIRMED.value, BookingStatus.COMPLETED.value})


class AnalyticsService:
    """Service computing dashboard aggregates."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _bookings(self, request: AnalyticsSummaryRequest) -> list[Booking]:
        stmt = select(Booking)
        if request.date_from is not None:
            stmt = stmt.where(Booking.booking_date >= request.date_from)
        if request.date_to is not None:
            stmt = stmt.where(Booking.booking_date <= request.date_to)
        result = await self.db.execute(stmt)
        return list(result.unique().scalars())

    async def summary(self, request: AnalyticsSummaryRequest) -> AnalyticsSummary:
        bookings = await self._bookings(request)

        by_status = {status.value: 0 for status in BookingStatus}
        by_status.update(Counter(b.status for b in bookings))

        earned = [b for b in bookings if b.status in REVENUE_STATUSES]
        total_revenue = sum((b.total_amount for b in earned), ZERO)
        total_discount = sum((b.discount_amount for b in earned), ZERO)

        monthly: dict[str, list] = defaultdict(lambda: [0, ZERO])
        for b in earned:
            bucket = monthly[b.booking_date.strftime("%Y-%m")]
            bucket[0] += 1
            bucket[1] += b.total_amount

        packages: dict[int, dict] = {}
        for b in bookings:
            if b.status == BookingStatus.CANCELLED.value:
                continue
            entry = packages.setdefault(
                b.package_id,
                {
                    "package_id": b.package_id,
                    "name": b.package.name,
                    "type": b.package.type,
                    "bookings": 0,
                    "children": 0,
                    "revenue": ZERO,
                },
            )
            entry["bookings"] += 1
            entry["children"] += b.number_of_children
            if b.status in REVENUE_STATUSES:
                entry["revenue"] += b.total_amount

        customers: dict[str, dict] = {}
        for b in earned:
            entry = customers.setdefault(
                b.parent_phone,
                {"parent_phone": b.parent_phone, "parent_name": b.parent_name, "bookings": 0, "total_spent": ZERO},
            )
            entry["bookings"] += 1
            entry["total_spent"] += b.total_amount

        users_by_role = await UserService(self.db).count_by_role()

        summary = AnalyticsSummary(
            total_bookings=len(bookings),
            bookings_by_status=by_status,
            total_revenue=Decimal(total_revenue),
            total_discount=Decimal(total_discount),
            monthly_revenue=[
                MonthlyRevenue(month=month, bookings=count, revenue=revenue)
                for month, (count, revenue) in sorted(monthly.items())
            ],
            popular_packages=[
                PopularPackage(**entry)
                for entry in sorted(packages.values(), key=lambda e: (-e["bookings"], -e["children"], e["package_id"]))
            ],
            top_customers=[
                TopCustomer(**entry)
                for entry in sorted(customers.values(), key=lambda e: (-e["total_spent"], e["parent_phone"]))
            ][: request.top_customers],
            total_users=sum(users_by_role.values()),
            users_by_role=users_by_role,
        )

        logger.info(
            "Analytics summary computed",
            extra={"bookings": summary.total_bookings, "revenue": str(summary.total_revenue)}
        )
        return summary
