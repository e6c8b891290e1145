"""SQLAlchemy model for application user profiles."""

from datetime import datetime

from sqlalchemy import DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from otp_login.models.base import Base


class UserProfileRow(Base):
    """Profile initialised when an OTP login creates a new identity."""

    __tablename__ = "users"

    uid: Mapped[str] = mapped_column(String(128), primary_key=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    name: Mapped[str | None] = mapped_column(String(256))
    mobile: Mapped[str | None] = mapped_column(String(32))
    photo_url: Mapped[str | None] = mapped_column(String(1024))
    owned_club_id: Mapped[str | None] = mapped_column(String(128))
    owned_club_name: Mapped[str | None] = mapped_column(String(256))
    owned_club_logo_url: Mapped[str | None] = mapped_column(String(1024))
    owned_club_instagram_url: Mapped[str | None] = mapped_column(String(1024))
    owned_club_facebook_url: Mapped[str | None] = mapped_column(String(1024))
    club_id: Mapped[str | None] = mapped_column(String(128))
    club_name: Mapped[str | None] = mapped_column(String(256))
    club_affiliation_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("ix_users_email", "email"),)

    def __repr__(self) -> str:
        return f"<UserProfileRow uid={self.uid!r} email={self.email!r}>"
