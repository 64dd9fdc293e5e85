"""Time slot and holiday calendar models."""

from datetime import date, datetime, time
from enum import Enum

from sqlalchemy import Boolean, CheckConstraint, Date, Integer, String, Text, Time, func
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base


class TimeSlot(Base):
    """A fixed daily window with a maximum number of children present."""

    __tablename__ = "time_slots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    max_capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=15)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("max_capacity >= 0", name="ck_time_slot_capacity_non_negative"),
        CheckConstraint("end_time > start_time", name="ck_time_slot_end_after_start"),
    )

    @property
    def label(self) -> str:
        return f"{self.start_time.strftime('%H:%M')}-{self.end_time.strftime('%H:%M')}"

    def __repr__(self) -> str:
        return f"<TimeSlot(id={self.id}, {self.label}, max_capacity={self.max_capacity})>"


class HolidayType(str, Enum):
    """Reason the venue is closed."""
    HOLIDAY = "holiday"
    PRIVATE = "private"
    MAINTENANCE = "maintenance"


class HolidayCalendar(Base):
    """A calendar date on which the venue takes no bookings while active."""

    __tablename__ = "holiday_calendar"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    holiday_date: Mapped[date] = mapped_column("date", Date, nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default=HolidayType.HOLIDAY.value)
    description: Mapped[str | None] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint(
            "type IN ('holiday', 'private', 'maintenance')",
            name="ck_holiday_type_valid"
        ),
    )

    def __repr__(self) -> str:
        return f"<HolidayCalendar(date={self.holiday_date}, name='{self.name}', active={self.is_active})>"
