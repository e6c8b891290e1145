"""Value objects passed between the OTP handlers and the stores."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class OtpRecord:
    """The pending OTP for one lower-cased email address.

    ``version`` is an opaque token assigned by the store on every write.
    Conditional writes compare it against the stored document.
    """

    email: str
    otp_hash: str
    expires_at: datetime
    created_at: datetime | None = None
    verified: bool = False
    verified_at: datetime | None = None
    attempts: int = 0
    version: Any = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now


@dataclass(frozen=True)
class UserProfile:
    """Application profile created alongside a new identity."""

    uid: str
    email: str
    name: str | None = None
    mobile: str | None = None
    photo_url: str | None = None
    owned_club_id: str | None = None
    owned_club_name: str | None = None
    owned_club_logo_url: str | None = None
    owned_club_instagram_url: str | None = None
    owned_club_facebook_url: str | None = None
    club_id: str | None = None
    club_name: str | None = None
    club_affiliation_date: datetime | None = None

    def to_document(self) -> dict[str, Any]:
        """Field layout of the ``users`` document, without timestamps."""
        return {
            "uid": self.uid,
            "email": self.email,
            "name": self.name,
            "mobile": self.mobile,
            "photoURL": self.photo_url,
            "ownedClubId": self.owned_club_id,
            "ownedClubName": self.owned_club_name,
            "ownedClubLogoUrl": self.owned_club_logo_url,
            "ownedClubInstagramUrl": self.owned_club_instagram_url,
            "ownedClubFacebookUrl": self.owned_club_facebook_url,
            "clubId": self.club_id,
            "clubName": self.club_name,
            "clubAffiliationDate": self.club_affiliation_date,
        }


@dataclass
class IssueResult:
    success: bool
    message: str


@dataclass
class VerifyResult:
    success: bool
    message: str
    token: str | None = None
    uid: str | None = None
