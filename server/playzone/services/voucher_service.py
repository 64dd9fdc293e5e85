"""Voucher service for discount validation, redemption and administration."""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import (
    ConflictError,
    NotFoundError,
    ValidationError,
    VoucherError,
    VoucherExhausted,
    VoucherExpired,
    VoucherMinAmountNotMet,
    VoucherNotApplicable,
    VoucherNotFound,
)
from ..core.locking import serialized, voucher_lock_key
from ..core.observability import metrics_collector
from ..models.voucher import DiscountType, DiscountVoucher, VoucherRedemption
from ..schemas.voucher import VoucherCreateRequest, VoucherUpdateRequest
from .pricing import ZERO, apply_discount, compute_discount, to_money

logger = logging.getLogger(__name__)

# Columns an update may change but never null out
REQUIRED_VOUCHER_FIELDS = ("discount_value", "valid_from", "valid_till", "is_active")


def normalize_code(code: str) -> str:
    return code.strip().upper()


def check_voucher(
    voucher: DiscountVoucher | None,
    code: str,
    order_amount: Decimal,
    package_type: str,
    today: date,
) -> Decimal:
    """
    Validate a voucher against an order and return the discount it grants.

    Checks run in a fixed order and the first failure decides the error:
    existence, active flag, date window, remaining uses, minimum amount,
    package type.

    Raises:
        VoucherNotFound: Unknown or inactive code
        VoucherExpired: ``today`` outside [valid_from, valid_till]
        VoucherExhausted: No uses left
        VoucherMinAmountNotMet: Order below the minimum amount
        VoucherNotApplicable: Package type not covered
    """
    if voucher is None or not voucher.is_active:
        raise VoucherNotFound(code)

    if not (voucher.valid_from <= today <= voucher.valid_till):
        raise VoucherExpired(code, voucher.valid_from, voucher.valid_till)

    if voucher.usage_limit is not None and (voucher.used_count or 0) >= voucher.usage_limit:
        raise VoucherExhausted(code, voucher.usage_limit)

    min_amount = to_money(voucher.min_amount) if voucher.min_amount is not None else ZERO
    if to_money(order_amount) < min_amount:
        raise VoucherMinAmountNotMet(code, to_money(order_amount), min_amount)

    if voucher.applicable_packages and package_type not in voucher.applicable_packages:
        raise VoucherNotApplicable(code, package_type, list(voucher.applicable_packages))

    return compute_discount(
        voucher.discount_type,
        voucher.discount_value,
        order_amount,
        voucher.max_discount,
    )


@dataclass(frozen=True)
class DiscountQuote:
    """Discount a voucher grants on a specific order."""

    voucher: DiscountVoucher
    order_amount: Decimal
    discount_amount: Decimal

    @property
    def final_amount(self) -> Decimal:
        return apply_discount(self.order_amount, self.discount_amount)


class VoucherService:
    """Service for voucher-related operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_code(self, code: str) -> DiscountVoucher | None:
        stmt = (
            select(DiscountVoucher)
            .where(DiscountVoucher.code == normalize_code(code))
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_voucher_or_raise(self, voucher_id: int) -> DiscountVoucher:
        voucher = await self.db.get(DiscountVoucher, voucher_id)
        if not voucher:
            raise NotFoundError(resource_type="voucher", resource_id=str(voucher_id))
        return voucher

    async def quote(
        self,
        code: str,
        order_amount: Decimal,
        package_type: str,
        today: date | None = None,
    ) -> DiscountQuote:
        """Preview the discount for an order without using the voucher."""
        code = normalize_code(code)
        voucher = await self.get_by_code(code)
        try:
            discount = check_voucher(voucher, code, order_amount, package_type, today or date.today())
        except VoucherError as e:
            metrics_collector.record_voucher_rejected(e.reason)
            logger.info(
                "Voucher quote rejected",
                extra={"code": code, "reason": e.reason, "order_amount": str(order_amount)}
            )
            raise
        return DiscountQuote(voucher=voucher, order_amount=to_money(order_amount), discount_amount=discount)

    async def apply(
        self,
        code: str,
        order_amount: Decimal,
        package_type: str,
        *,
        today: date | None = None,
        user_id: str | None = None,
    ) -> tuple[DiscountQuote, VoucherRedemption]:
        """
        Validate a voucher and consume one use inside the caller's transaction.

        The caller must hold the voucher's serialized section and commit or
        roll back. The increment is conditional on a use remaining, so a
        concurrent writer that got there first turns into VoucherExhausted.

        Returns:
            The discount and the pending redemption record
        """
        quote = await self.quote(code, order_amount, package_type, today)
        voucher = quote.voucher

        stmt = (
            update(DiscountVoucher)
            .where(
                DiscountVoucher.id == voucher.id,
                or_(
                    DiscountVoucher.usage_limit.is_(None),
                    DiscountVoucher.used_count < DiscountVoucher.usage_limit,
                ),
            )
            .values(used_count=DiscountVoucher.used_count + 1)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        if result.rowcount != 1:
            logger.warning(
                "Voucher increment lost the race",
                extra={"code": voucher.code, "usage_limit": voucher.usage_limit}
            )
            metrics_collector.record_voucher_rejected(VoucherExhausted.reason)
            raise VoucherExhausted(voucher.code, voucher.usage_limit)

        await self.db.refresh(voucher, attribute_names=["used_count"])

        redemption = VoucherRedemption(
            voucher_id=voucher.id,
            user_id=user_id,
            order_amount=quote.order_amount,
            discount_amount=quote.discount_amount,
        )
        self.db.add(redemption)
        await self.db.flush()

        logger.info(
            "Voucher applied",
            extra={
                "code": voucher.code,
                "discount": str(quote.discount_amount),
                "used_count": voucher.used_count,
                "usage_limit": voucher.usage_limit,
            }
        )
        return quote, redemption

    async def redeem(
        self,
        code: str,
        order_amount: Decimal,
        package_type: str,
        *,
        today: date | None = None,
        user_id: str | None = None,
    ) -> tuple[DiscountQuote, VoucherRedemption]:
        """Redeem a voucher on its own, for orders taken outside an online booking."""
        async with serialized(self.db, voucher_lock_key(code)):
            try:
                quote, redemption = await self.apply(
                    code, order_amount, package_type, today=today, user_id=user_id
                )
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise

        metrics_collector.record_voucher_redeemed(quote.voucher.code)
        await self.db.refresh(redemption)
        return quote, redemption

    # Administration

    async def list_vouchers(self, include_inactive: bool = True) -> list[DiscountVoucher]:
        stmt = select(DiscountVoucher).order_by(DiscountVoucher.created_at.desc(), DiscountVoucher.id.desc())
        if not include_inactive:
            stmt = stmt.where(DiscountVoucher.is_active.is_(True))
        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def list_redemptions(self, voucher_id: int) -> list[VoucherRedemption]:
        await self.get_voucher_or_raise(voucher_id)
        stmt = (
            select(VoucherRedemption)
            .where(VoucherRedemption.voucher_id == voucher_id)
            .order_by(VoucherRedemption.created_at, VoucherRedemption.id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def create_voucher(self, request: VoucherCreateRequest) -> DiscountVoucher:
        voucher = DiscountVoucher(
            code=normalize_code(request.code),
            discount_type=request.discount_type.value,
            discount_value=request.discount_value,
            min_amount=request.min_amount,
            max_discount=request.max_discount,
            valid_from=request.valid_from,
            valid_till=request.valid_till,
            usage_limit=request.usage_limit,
            used_count=0,
            applicable_packages=(
                [p.value for p in request.applicable_packages] if request.applicable_packages else None
            ),
            is_active=request.is_active,
        )
        self.db.add(voucher)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.warning("Voucher code already exists", extra={"code": voucher.code})
            raise ConflictError(
                detail=f"Voucher code '{voucher.code}' already exists",
                conflicting_resource={"code": voucher.code},
                code="VOUCHER_EXISTS",
            )
        await self.db.refresh(voucher)

        logger.info(
            "Voucher created",
            extra={
                "voucher_id": voucher.id,
                "code": voucher.code,
                "discount_type": voucher.discount_type,
                "discount_value": str(voucher.discount_value),
            }
        )
        return voucher

    async def update_voucher(self, request: VoucherUpdateRequest) -> DiscountVoucher:
        """
        Apply the fields the client sent, including explicit nulls.

        A null ``min_amount``, ``max_discount`` or ``usage_limit`` and an empty
        or null ``applicable_packages`` lift that constraint. The usage limit is
        checked against the use count under the voucher's lock, so a concurrent
        redemption cannot push the count past the new limit.

        Raises:
            NotFoundError: If the voucher does not exist
            ValidationError: If a required field is cleared, the window is
                inverted or the limit is below the uses already made
        """
        voucher = await self.get_voucher_or_raise(request.voucher_id)
        changes = request.model_dump(exclude={"voucher_id"}, exclude_unset=True)

        cleared = [field for field in REQUIRED_VOUCHER_FIELDS if field in changes and changes[field] is None]
        if cleared:
            raise ValidationError(
                detail=f"{', '.join(cleared)} cannot be cleared",
                errors={field: None for field in cleared},
            )

        valid_from = changes.get("valid_from", voucher.valid_from)
        valid_till = changes.get("valid_till", voucher.valid_till)
        if valid_till < valid_from:
            raise ValidationError(detail="valid_till must not be before valid_from")

        discount_value = changes.get("discount_value")
        if (
            discount_value is not None
            and voucher.discount_type == DiscountType.PERCENTAGE.value
            and discount_value > 100
        ):
            raise ValidationError(detail="percentage discount_value must not exceed 100")

        if "applicable_packages" in changes:
            changes["applicable_packages"] = [p.value for p in request.applicable_packages or []] or None

        async with serialized(self.db, voucher_lock_key(voucher.code)):
            try:
                await self.db.refresh(voucher, attribute_names=["used_count"])
                usage_limit = changes.get("usage_limit")
                if usage_limit is not None and usage_limit < voucher.used_count:
                    raise ValidationError(
                        detail=f"usage_limit cannot be lower than the {voucher.used_count} uses already made",
                        errors={"usage_limit": usage_limit, "used_count": voucher.used_count},
                    )

                for field, value in changes.items():
                    setattr(voucher, field, value)
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise

        await self.db.refresh(voucher)

        logger.info("Voucher updated", extra={"voucher_id": voucher.id, "fields": sorted(changes)})
        return voucher

    async def deactivate_voucher(self, voucher_id: int) -> DiscountVoucher:
        voucher = await self.get_voucher_or_raise(voucher_id)
        voucher.is_active = False
        await self.db.commit()
        await self.db.refresh(voucher)

        logger.info("Voucher deactivated", extra={"voucher_id": voucher.id, "code": voucher.code})
        return voucher
