"""Admin analytics router."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import DatabaseSession, require_permission
from ..models.user import Permission, User
from ..schemas.analytics import AnalyticsSummary, AnalyticsSummaryRequest
from ..services.analytics_service import AnalyticsService

router = APIRouter(prefix="/v1/admin/analytics", tags=["admin"])


@router.post("/summary", response_model=AnalyticsSummary)
async def analytics_summary(
    request: AnalyticsSummaryRequest,
    db: AsyncSession = DatabaseSession,
    user: User = Depends(require_permission(Permission.VIEW_ANALYTICS)),
) -> JSONResponse:
    """
    Booking, revenue and customer figures for a date range.

    Revenue counts confirmed and completed bookings only.
    """
    summary = await AnalyticsService(db).summary(request)
    return JSONResponse(status_code=200, content=summary.model_dump(mode="json"))
