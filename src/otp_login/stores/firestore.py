"""Firestore document store — production backend for OTP records and profiles.

Documents use the field names the web client already reads
(``otpHash``, ``expiresAt``, ``createdAt`` ...).  A record's version is the
document's ``update_time``; conditional writes pass it back as a
``last_update_time`` precondition, and first writes use ``create()`` so a
concurrent creator is detected.
"""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime
from typing import Any

from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore

from otp_login.otp.records import OtpRecord, UserProfile
from otp_login.stores.base import (
    OTP_COLLECTION,
    USERS_COLLECTION,
    OtpRecordStore,
    ProfileStore,
    StaleRecordError,
)

logger = logging.getLogger(__name__)

# Errors Firestore raises when a precondition no longer holds
_STALE_ERRORS = (
    gcp_exceptions.AlreadyExists,
    gcp_exceptions.FailedPrecondition,
    gcp_exceptions.NotFound,
)


def _to_record(email: str, data: dict[str, Any], update_time: Any) -> OtpRecord:
    return OtpRecord(
        email=email,
        otp_hash=data["otpHash"],
        expires_at=data["expiresAt"],
        created_at=data.get("createdAt"),
        verified=bool(data.get("verified", False)),
        verified_at=data.get("verifiedAt"),
        attempts=int(data.get("attempts", 0)),
        version=update_time,
    )


class FirestoreOtpRecordStore(OtpRecordStore):
    """OTP records in the ``otp_attempts`` collection, keyed by email."""

    def __init__(self, client: firestore.AsyncClient) -> None:
        self._client = client
        self._collection = client.collection(OTP_COLLECTION)

    async def get(self, email: str) -> OtpRecord | None:
        snapshot = await self._collection.document(email).get()
        if not snapshot.exists:
            return None
        return _to_record(email, snapshot.to_dict(), snapshot.update_time)

    async def save(
        self,
        email: str,
        otp_hash: str,
        expires_at: datetime,
        *,
        replacing: OtpRecord | None,
    ) -> OtpRecord:
        doc_ref = self._collection.document(email)
        data = {
            "otpHash": otp_hash,
            "expiresAt": expires_at,
            "createdAt": firestore.SERVER_TIMESTAMP,
            "verified": False,
            "verifiedAt": None,
            "attempts": 0,
        }
        try:
            if replacing is None:
                result = await doc_ref.create(data)
            else:
                result = await doc_ref.update(data, option=self._unchanged_since(replacing))
        except _STALE_ERRORS as exc:
            raise StaleRecordError(email) from exc
        # createdAt resolves to the commit time, which is also update_time
        return OtpRecord(
            email=email,
            otp_hash=otp_hash,
            expires_at=expires_at,
            created_at=result.update_time,
            version=result.update_time,
        )

    async def mark_verified(self, record: OtpRecord) -> OtpRecord:
        result = await self._update(
            record, {"verified": True, "verifiedAt": firestore.SERVER_TIMESTAMP}
        )
        return dataclasses.replace(
            record,
            verified=True,
            verified_at=result.update_time,
            version=result.update_time,
        )

    async def clear_verified(self, record: OtpRecord) -> OtpRecord:
        result = await self._update(record, {"verified": False, "verifiedAt": None})
        return dataclasses.replace(
            record, verified=False, verified_at=None, version=result.update_time
        )

    async def increment_attempts(self, record: OtpRecord) -> OtpRecord:
        result = await self._update(record, {"attempts": record.attempts + 1})
        return dataclasses.replace(
            record, attempts=record.attempts + 1, version=result.update_time
        )

    async def delete(self, record: OtpRecord) -> None:
        doc_ref = self._collection.document(record.email)
        try:
            await doc_ref.delete(option=self._unchanged_since(record))
        except _STALE_ERRORS as exc:
            raise StaleRecordError(record.email) from exc

    # ── Private helpers ──────────────────────────────────

    def _unchanged_since(self, record: OtpRecord):
        return self._client.write_option(last_update_time=record.version)

    async def _update(self, record: OtpRecord, fields: dict[str, Any]):
        doc_ref = self._collection.document(record.email)
        try:
            return await doc_ref.update(fields, option=self._unchanged_since(record))
        except _STALE_ERRORS as exc:
            raise StaleRecordError(record.email) from exc


class FirestoreProfileStore(ProfileStore):
    """User profiles in the ``users`` collection, keyed by uid."""

    def __init__(self, client: firestore.AsyncClient) -> None:
        self._collection = client.collection(USERS_COLLECTION)

    async def create(self, profile: UserProfile) -> None:
        document = profile.to_document()
        document["createdAt"] = firestore.SERVER_TIMESTAMP
        document["updatedAt"] = firestore.SERVER_TIMESTAMP
        await self._collection.document(profile.uid).set(document)
        logger.info("Profile document created for uid %s", profile.uid)
