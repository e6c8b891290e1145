"""SQL document store — SQLAlchemy-backed OTP records and user profiles.

Used for local runs and tests.  Conditional writes are expressed as
``UPDATE ... WHERE version = :read_version`` and checked via ``rowcount``.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from otp_login.clock import utcnow
from otp_login.models.otp_attempt import OtpAttempt
from otp_login.models.user_profile import UserProfileRow
from otp_login.otp.records import OtpRecord, UserProfile
from otp_login.stores.base import OtpRecordStore, ProfileStore, StaleRecordError

logger = logging.getLogger(__name__)


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything is written in UTC.
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def _to_record(row: OtpAttempt) -> OtpRecord:
    return OtpRecord(
        email=row.email,
        otp_hash=row.otp_hash,
        expires_at=_as_utc(row.expires_at),
        created_at=_as_utc(row.created_at),
        verified=row.verified,
        verified_at=_as_utc(row.verified_at),
        attempts=row.attempts,
        version=row.version,
    )


class SqlOtpRecordStore(OtpRecordStore):
    """OTP records in the ``otp_attempts`` table."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock

    async def get(self, email: str) -> OtpRecord | None:
        async with self._session_factory() as session:
            row = await session.get(OtpAttempt, email)
        return _to_record(row) if row is not None else None

    async def save(
        self,
        email: str,
        otp_hash: str,
        expires_at: datetime,
        *,
        replacing: OtpRecord | None,
    ) -> OtpRecord:
        values: dict[str, Any] = {
            "otp_hash": otp_hash,
            "expires_at": expires_at,
            "created_at": self._clock(),
            "verified": False,
            "verified_at": None,
            "attempts": 0,
        }
        if replacing is not None:
            version = await self._conditional_update(replacing, values)
            return OtpRecord(email=email, version=version, **values)

        async with self._session_factory() as session:
            session.add(OtpAttempt(email=email, version=1, **values))
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise StaleRecordError(email) from exc
        return OtpRecord(email=email, version=1, **values)

    async def mark_verified(self, record: OtpRecord) -> OtpRecord:
        values = {"verified": True, "verified_at": self._clock()}
        version = await self._conditional_update(record, values)
        return dataclasses.replace(record, version=version, **values)

    async def clear_verified(self, record: OtpRecord) -> OtpRecord:
        values = {"verified": False, "verified_at": None}
        version = await self._conditional_update(record, values)
        return dataclasses.replace(record, version=version, **values)

    async def increment_attempts(self, record: OtpRecord) -> OtpRecord:
        values = {"attempts": record.attempts + 1}
        version = await self._conditional_update(record, values)
        return dataclasses.replace(record, version=version, **values)

    async def delete(self, record: OtpRecord) -> None:
        stmt = delete(OtpAttempt).where(
            OtpAttempt.email == record.email, OtpAttempt.version == record.version
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            if result.rowcount != 1:
                await session.rollback()
                raise StaleRecordError(record.email)
            await session.commit()

    # ── Private helpers ──────────────────────────────────

    async def _conditional_update(self, record: OtpRecord, values: dict[str, Any]) -> int:
        """Apply *values* if the row is still at ``record.version``; return the new version."""
        new_version = record.version + 1
        stmt = (
            update(OtpAttempt)
            .where(OtpAttempt.email == record.email, OtpAttempt.version == record.version)
            .values(version=new_version, **values)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            if result.rowcount != 1:
                await session.rollback()
                logger.debug("Conditional update missed for version %s", record.version)
                raise StaleRecordError(record.email)
            await session.commit()
        return new_version


class SqlProfileStore(ProfileStore):
    """User profiles in the ``users`` table."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock

    async def create(self, profile: UserProfile) -> None:
        now = self._clock()
        row = UserProfileRow(
            created_at=now,
            updated_at=now,
            **dataclasses.asdict(profile),
        )
        async with self._session_factory() as session:
            session.add(row)
            await session.commit()

    async def get(self, uid: str) -> UserProfileRow | None:
        async with self._session_factory() as session:
            return await session.get(UserProfileRow, uid)
