"""Birthday party details attached to a birthday-package booking."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base

if TYPE_CHECKING:
    from .booking import Booking


class BirthdayParty(Base):
    """Party details for a booking; the booking row carries slot, date and payment."""

    __tablename__ = "birthday_parties"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    booking_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        unique=True
    )

    child_name: Mapped[str] = mapped_column(String(255), nullable=False)
    child_age: Mapped[int] = mapped_column(Integer, nullable=False)
    # Invited guests, which may include adults; only the booking's children use slot capacity
    number_of_guests: Mapped[int] = mapped_column(Integer, nullable=False)
    theme: Mapped[str | None] = mapped_column(String(100))
    cake_preference: Mapped[str | None] = mapped_column(String(255))
    decoration_preference: Mapped[str | None] = mapped_column(String(255))

    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("child_age >= 0 AND child_age <= 17", name="ck_party_child_age_range"),
        CheckConstraint("number_of_guests > 0", name="ck_party_guests_positive"),
    )

    booking: Mapped["Booking"] = relationship("Booking", back_populates="party")

    def __repr__(self) -> str:
        return (
            f"<BirthdayParty(id={self.id}, booking_id={self.booking_id}, "
            f"child='{self.child_name}', guests={self.number_of_guests})>"
        )
