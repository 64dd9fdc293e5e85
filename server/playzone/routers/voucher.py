"""Voucher router: discount previews and counter redemptions."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import DatabaseSession, require_permission
from ..core.exceptions import ConflictError
from ..models.user import Permission, User
from ..schemas.voucher import RedeemVoucherRequest, VoucherQuote, VoucherQuoteRequest, VoucherRedemption
from ..services.catalog_service import CatalogService
from ..services.pricing import order_amount
from ..services.voucher_service import DiscountQuote, VoucherService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/voucher", tags=["voucher"])


def _quote_schema(quote: DiscountQuote) -> VoucherQuote:
    return VoucherQuote(
        code=quote.voucher.code,
        discount_type=quote.voucher.discount_type,
        discount_value=quote.voucher.discount_value,
        order_amount=quote.order_amount,
        discount_amount=quote.discount_amount,
        final_amount=quote.final_amount,
    )


@router.post("/quote", response_model=VoucherQuote)
async def quote_voucher(
    request: VoucherQuoteRequest,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """
    Preview the discount a voucher gives on a package order.

    Nothing is consumed; the voucher is only used when the booking is made.
    """
    package = await CatalogService(db).get_package_or_raise(request.package_id)
    if not package.is_active:
        raise ConflictError(
            detail=f"Package {package.id} is not available for booking",
            conflicting_resource={"package_id": package.id},
            code="PACKAGE_INACTIVE",
        )

    amount = order_amount(package.price, request.number_of_children, per_child=package.priced_per_child)
    quote = await VoucherService(db).quote(request.code, amount, package.type)
    return JSONResponse(status_code=200, content=_quote_schema(quote).model_dump(mode="json"))


@router.post("/redeem", response_model=VoucherRedemption)
async def redeem_voucher(
    request: RedeemVoucherRequest,
    db: AsyncSession = DatabaseSession,
    user: User = Depends(require_permission(Permission.MANAGE_BOOKINGS)),
) -> JSONResponse:
    """Consume one use of a voucher for an order taken at the counter."""
    quote, redemption = await VoucherService(db).redeem(
        request.code,
        request.order_amount,
        request.package_type.value,
        user_id=user.id,
    )

    logger.info(
        "Voucher redeemed at counter",
        extra={"code": quote.voucher.code, "discount": str(quote.discount_amount), "staff_user_id": user.id}
    )
    return JSONResponse(
        status_code=200,
        content=VoucherRedemption.model_validate(redemption).model_dump(mode="json"),
    )
