"""Package model definition."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import JSON, Boolean, CheckConstraint, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base


class PackageType(str, Enum):
    """Package type enumeration."""
    WALK_IN = "walk_in"
    WEEKEND = "weekend"
    MONTHLY = "monthly"
    BIRTHDAY = "birthday"


class Package(Base):
    """Package entity representing a priced play offering."""

    __tablename__ = "packages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    # Hours of play included
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    features: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    max_children: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now(),
        onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_package_price_non_negative"),
        CheckConstraint("duration > 0", name="ck_package_duration_positive"),
        CheckConstraint("max_children > 0", name="ck_package_max_children_positive"),
        CheckConstraint(
            "type IN ('walk_in', 'weekend', 'monthly', 'birthday')",
            name="ck_package_type_valid"
        ),
    )

    @property
    def priced_per_child(self) -> bool:
        """Birthday packages are priced per party, everything else per child."""
        return self.type != PackageType.BIRTHDAY.value

    def __repr__(self) -> str:
        return f"<Package(id={self.id}, name='{self.name}', type='{self.type}', price={self.price})>"
