"""Booking-related Pydantic schemas."""

import datetime as dt
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..models.booking import BookingStatus
from .common import EMAIL_PATTERN, PHONE_PATTERN


class BirthdayPartyDetails(BaseModel):
    """Party details, required when booking a birthday package."""

    model_config = ConfigDict(from_attributes=True)

    child_name: str = Field(..., min_length=1, max_length=255, description="Birthday child")
    child_age: int = Field(..., ge=0, le=17, description="Age the child is turning")
    number_of_guests: int = Field(..., ge=1, le=100, description="Invited guests, adults included")
    theme: Optional[str] = Field(None, max_length=100)
    cake_preference: Optional[str] = Field(None, max_length=255)
    decoration_preference: Optional[str] = Field(None, max_length=255)


class CreateBookingRequest(BaseModel):
    """Request schema for creating a booking."""

    package_id: int = Field(..., ge=1, description="Package to book")
    time_slot_id: int = Field(..., ge=1, description="Slot to book")
    booking_date: dt.date = Field(..., description="Date of the visit")
    number_of_children: int = Field(1, ge=1, le=50, description="Children attending")
    parent_name: str = Field(..., min_length=1, max_length=255)
    parent_phone: str = Field(..., pattern=PHONE_PATTERN)
    parent_email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    children_ages: Optional[List[int]] = Field(None, description="Age of each child in years")
    special_requests: Optional[str] = Field(None, max_length=2000)
    voucher_code: Optional[str] = Field(None, max_length=50, description="Discount code to apply")
    party: Optional[BirthdayPartyDetails] = Field(None, description="Birthday party details")

    @field_validator("children_ages")
    @classmethod
    def check_ages(cls, v: Optional[List[int]]) -> Optional[List[int]]:
        if v is not None and any(age < 0 or age > 17 for age in v):
            raise ValueError("children ages must be between 0 and 17")
        return v

    @field_validator("voucher_code")
    @classmethod
    def blank_code_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip().upper()

    @model_validator(mode="after")
    def ages_match_children(self) -> "CreateBookingRequest":
        if self.children_ages is not None and len(self.children_ages) != self.number_of_children:
            raise ValueError("children_ages must list one age per child")
        return self


class GetBookingRequest(BaseModel):
    """Request schema for getting a booking."""

    booking_id: int = Field(..., ge=1, description="Booking to retrieve")


class CancelBookingRequest(BaseModel):
    """Request schema for cancelling a booking."""

    booking_id: int = Field(..., ge=1, description="Booking to cancel")


class TransitionBookingRequest(BaseModel):
    """Request schema for moving a booking to another status."""

    booking_id: int = Field(..., ge=1)
    status: BookingStatus = Field(..., description="Target status")


class VerifyPaymentRequest(BaseModel):
    """Request schema for confirming a booking with a payment gateway callback."""

    booking_id: int = Field(..., ge=1)
    order_id: str = Field(..., min_length=1, max_length=128)
    payment_id: str = Field(..., min_length=1, max_length=128)
    signature: str = Field(..., min_length=1, max_length=256, description="Hex HMAC-SHA256 of order_id|payment_id")


class ListMyBookingsRequest(BaseModel):
    """Request schema for listing the caller's bookings."""

    status: Optional[BookingStatus] = None


class SearchBookingsRequest(BaseModel):
    """Request schema for the admin booking search."""

    date_from: Optional[dt.date] = Field(None, description="Earliest booking date; defaults to the admin window")
    date_to: Optional[dt.date] = Field(None, description="Latest booking date; defaults to today")
    status: Optional[BookingStatus] = None
    time_slot_id: Optional[int] = Field(None, ge=1)
    parent_phone: Optional[str] = Field(None, max_length=20)
    limit: int = Field(100, ge=1, le=500)
    offset: int = Field(0, ge=0)


class Booking(BaseModel):
    """Booking response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: Optional[str] = None
    package_id: int
    time_slot_id: int
    booking_date: dt.date
    number_of_children: int
    order_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    voucher_code: Optional[str] = None
    status: BookingStatus
    payment_id: Optional[str] = None
    payment_status: Optional[str] = None
    parent_name: str
    parent_phone: str
    parent_email: str
    children_ages: Optional[List[int]] = None
    special_requests: Optional[str] = None
    party: Optional[BirthdayPartyDetails] = None
    created_at: dt.datetime
    updated_at: dt.datetime


class BookingList(BaseModel):
    """A page of bookings."""

    bookings: List[Booking]
    total: int = Field(..., description="Bookings matching the filters")
