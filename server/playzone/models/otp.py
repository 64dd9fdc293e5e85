"""One-time passcode model definition."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base


class OtpVerification(Base):
    """A hashed one-time sign-in code issued to a phone number."""

    __tablename__ = "otp_verifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    phone: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    # SHA-256 hex digest, the plain code is never stored
    code_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    is_used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    failed_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now()
    )

    def __repr__(self) -> str:
        return (
            f"<OtpVerification(phone='{self.phone}', expires_at={self.expires_at}, "
            f"used={self.is_used}, attempts={self.failed_attempts})>"
        )
