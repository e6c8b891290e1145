"""SQLAlchemy model for pending OTPs."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from otp_login.models.base import Base


class OtpAttempt(Base):
    """One pending OTP per lower-cased email address.

    ``version`` is bumped on every write and guards conditional updates.
    """

    __tablename__ = "otp_attempts"

    email: Mapped[str] = mapped_column(String(320), primary_key=True)
    otp_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    verified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<OtpAttempt email={self.email!r} verified={self.verified} "
            f"attempts={self.attempts} version={self.version}>"
        )
