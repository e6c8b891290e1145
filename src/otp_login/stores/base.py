"""Store interfaces — what the OTP handlers need from the document store."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from otp_login.otp.records import OtpRecord, UserProfile

OTP_COLLECTION = "otp_attempts"
USERS_COLLECTION = "users"


class StaleRecordError(Exception):
    """A conditional write found the record changed since it was read."""


class OtpRecordStore(ABC):
    """Per-email OTP records with conditional (compare-and-swap) writes.

    Every mutating method takes the record as last read and fails with
    :class:`StaleRecordError` if the stored document has a different version,
    or has appeared/disappeared, since then.
    """

    @abstractmethod
    async def get(self, email: str) -> OtpRecord | None:
        """Return the current record for *email*, or ``None``."""

    @abstractmethod
    async def save(
        self,
        email: str,
        otp_hash: str,
        expires_at: datetime,
        *,
        replacing: OtpRecord | None,
    ) -> OtpRecord:
        """Write a fresh unverified record, stamping ``created_at`` server-side.

        Parameters
        ----------
        replacing:
            The record read before this write, or ``None`` when no record
            existed.  The write only succeeds if that is still the case.
        """

    @abstractmethod
    async def mark_verified(self, record: OtpRecord) -> OtpRecord:
        """Set ``verified`` and a server ``verified_at``."""

    @abstractmethod
    async def clear_verified(self, record: OtpRecord) -> OtpRecord:
        """Undo :meth:`mark_verified`."""

    @abstractmethod
    async def increment_attempts(self, record: OtpRecord) -> OtpRecord:
        """Count one failed verification."""

    @abstractmethod
    async def delete(self, record: OtpRecord) -> None:
        """Remove the record if it is still the version that was read."""


class ProfileStore(ABC):
    """Application user profiles keyed by identity uid."""

    @abstractmethod
    async def create(self, profile: UserProfile) -> None:
        """Write the initial profile with server-assigned timestamps."""
