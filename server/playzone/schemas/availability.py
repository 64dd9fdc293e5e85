"""Slot availability schemas."""

import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, Field

from .catalog import TimeSlot


class CheckAvailabilityRequest(BaseModel):
    """Request schema for checking one slot on one date."""

    booking_date: dt.date = Field(..., description="Date to check")
    time_slot_id: int = Field(..., ge=1, description="Slot to check")
    number_of_children: int = Field(1, ge=1, description="Children the caller wants to bring")


class SlotAvailability(BaseModel):
    """Occupancy of one slot on one date."""

    time_slot_id: int
    booking_date: dt.date
    available: bool = Field(..., description="Whether the requested children fit")
    capacity: int
    booked: int = Field(..., description="Children in non-cancelled bookings")
    remaining: int
    reason: Optional[str] = Field(None, description="Why the slot is unavailable")


class ListSlotsRequest(BaseModel):
    """Request schema for listing active slots, optionally with occupancy."""

    booking_date: Optional[dt.date] = Field(None, description="Attach availability for this date")


class SlotWithAvailability(BaseModel):
    """Slot definition plus its availability on the requested date."""

    slot: TimeSlot
    availability: Optional[SlotAvailability] = None


class SlotList(BaseModel):
    """List of slots, with the holiday name when the date is closed."""

    booking_date: Optional[dt.date] = None
    holiday: Optional[str] = None
    slots: List[SlotWithAvailability]
