"""Package, time slot and holiday schemas."""

import datetime as dt
from decimal import Decimal
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from ..models.package import PackageType
from ..models.time_slot import HolidayType


class PackageCreateRequest(BaseModel):
    """Request schema for creating a package."""

    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    type: PackageType = Field(..., description="Package type")
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2, description="Price per child")
    duration: int = Field(..., ge=1, description="Play time included, in hours")
    description: Optional[str] = Field(None, description="Marketing description")
    features: List[str] = Field(default_factory=list, description="Feature bullet points")
    max_children: int = Field(1, ge=1, description="Children covered by one package")
    is_active: bool = Field(True, description="Whether customers can book it")


class PackageUpdateRequest(BaseModel):
    """Request schema for updating a package; omitted fields are unchanged."""

    package_id: int = Field(..., ge=1, description="Package to update")
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    duration: Optional[int] = Field(None, ge=1)
    description: Optional[str] = None
    features: Optional[List[str]] = None
    max_children: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = None


class ListPackagesRequest(BaseModel):
    """Request schema for listing packages."""

    type: Optional[PackageType] = Field(None, description="Only packages of this type")
    include_inactive: bool = Field(False, description="Include deactivated packages (staff only)")


class Package(BaseModel):
    """Package response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    type: PackageType
    price: Decimal
    duration: int
    description: Optional[str] = None
    features: List[str] = Field(default_factory=list)
    max_children: int
    is_active: bool


class TimeSlotCreateRequest(BaseModel):
    """Request schema for creating a time slot."""

    start_time: dt.time = Field(..., description="Slot start (HH:MM)")
    end_time: dt.time = Field(..., description="Slot end (HH:MM)")
    max_capacity: Optional[int] = Field(None, ge=0, description="Children allowed; defaults to the venue default")
    is_active: bool = True

    @model_validator(mode="after")
    def check_order(self) -> "TimeSlotCreateRequest":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class TimeSlotUpdateRequest(BaseModel):
    """Request schema for updating a time slot; omitted fields are unchanged."""

    time_slot_id: int = Field(..., ge=1)
    start_time: Optional[dt.time] = None
    end_time: Optional[dt.time] = None
    max_capacity: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class BulkCapacityRequest(BaseModel):
    """Request schema for setting the capacity of many slots at once."""

    max_capacity: int = Field(..., ge=0, description="New capacity")
    time_slot_ids: Optional[List[int]] = Field(None, description="Slots to update; all slots when omitted")


class TimeSlot(BaseModel):
    """Time slot response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    start_time: dt.time
    end_time: dt.time
    max_capacity: int
    is_active: bool
    label: str


class HolidayCreateRequest(BaseModel):
    """Request schema for closing the venue on a date."""

    date: dt.date = Field(..., description="Closed date")
    name: str = Field(..., min_length=1, max_length=255)
    type: HolidayType = Field(HolidayType.HOLIDAY, description="Reason for closure")
    description: Optional[str] = None
    is_active: bool = True


class HolidayUpdateRequest(BaseModel):
    """Request schema for updating a holiday; omitted fields are unchanged."""

    holiday_id: int = Field(..., ge=1)
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    type: Optional[HolidayType] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None


class ListHolidaysRequest(BaseModel):
    """Request schema for listing holidays."""

    year: Optional[int] = Field(None, ge=2000, le=2100, description="Only holidays in this year")
    include_inactive: bool = False


class Holiday(BaseModel):
    """Holiday response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    date: dt.date = Field(..., validation_alias=AliasChoices("holiday_date", "date"))
    name: str
    type: HolidayType
    description: Optional[str] = None
    is_active: bool
