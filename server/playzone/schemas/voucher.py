"""Discount voucher schemas."""

import datetime as dt
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..models.package import PackageType
from ..models.voucher import DiscountType

CODE_PATTERN = r"^[A-Za-z0-9_-]{3,50}$"


class VoucherQuoteRequest(BaseModel):
    """Request schema for previewing a voucher against a package order."""

    code: str = Field(..., min_length=1, max_length=50, description="Voucher code, case-insensitive")
    package_id: int = Field(..., ge=1, description="Package being ordered")
    number_of_children: int = Field(1, ge=1, description="Children on the order")


class RedeemVoucherRequest(BaseModel):
    """Request schema for redeeming a voucher at the counter, outside an online booking."""

    code: str = Field(..., min_length=1, max_length=50)
    order_amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    package_type: PackageType


class VoucherQuote(BaseModel):
    """Discount a voucher would grant on an order."""

    code: str
    discount_type: DiscountType
    discount_value: Decimal
    order_amount: Decimal
    discount_amount: Decimal
    final_amount: Decimal


class VoucherCreateRequest(BaseModel):
    """Request schema for creating a voucher."""

    code: str = Field(..., pattern=CODE_PATTERN, description="Unique code, stored upper-case")
    discount_type: DiscountType
    discount_value: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    min_amount: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    max_discount: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    valid_from: dt.date
    valid_till: dt.date
    usage_limit: Optional[int] = Field(None, ge=1, description="Total uses allowed; unlimited when omitted")
    applicable_packages: Optional[List[PackageType]] = Field(
        None, description="Package types the voucher applies to; all when omitted"
    )
    is_active: bool = True

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        return v.strip().upper()

    @model_validator(mode="after")
    def check_consistency(self) -> "VoucherCreateRequest":
        if self.valid_till < self.valid_from:
            raise ValueError("valid_till must not be before valid_from")
        if self.discount_type == DiscountType.PERCENTAGE and self.discount_value > 100:
            raise ValueError("percentage discount_value must not exceed 100")
        return self


class VoucherUpdateRequest(BaseModel):
    """Request schema for updating a voucher; omitted fields are unchanged."""

    voucher_id: int = Field(..., ge=1)
    discount_value: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    min_amount: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    max_discount: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    valid_from: Optional[dt.date] = None
    valid_till: Optional[dt.date] = None
    usage_limit: Optional[int] = Field(None, ge=1)
    applicable_packages: Optional[List[PackageType]] = None
    is_active: Optional[bool] = None


class ListVouchersRequest(BaseModel):
    """Request schema for listing vouchers."""

    include_inactive: bool = True


class Voucher(BaseModel):
    """Voucher response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    discount_type: DiscountType
    discount_value: Decimal
    min_amount: Optional[Decimal] = None
    max_discount: Optional[Decimal] = None
    valid_from: dt.date
    valid_till: dt.date
    usage_limit: Optional[int] = None
    used_count: int
    remaining_uses: Optional[int] = None
    applicable_packages: Optional[List[str]] = None
    is_active: bool


class VoucherRedemption(BaseModel):
    """Redemption audit record."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    voucher_id: int
    booking_id: Optional[int] = None
    user_id: Optional[str] = None
    order_amount: Decimal
    discount_amount: Decimal
    created_at: dt.datetime
