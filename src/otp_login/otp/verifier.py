"""OTP verification — check the code, resolve the identity, mint a token."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from otp_login.clock import utcnow
from otp_login.errors import CallableError, ErrorCode
from otp_login.otp.codes import mask_email, normalize_email, otp_matches
from otp_login.otp.records import OtpRecord, UserProfile, VerifyResult
from otp_login.services.identity import IdentityProvider
from otp_login.stores.base import OtpRecordStore, ProfileStore, StaleRecordError

logger = logging.getLogger(__name__)

DEFAULT_MAX_VERIFY_ATTEMPTS = 5


class OtpVerifier:
    """Verifies a submitted OTP and exchanges it for a custom auth token.

    The record is marked verified before the identity is resolved and is
    rolled back if that fails, so a retry is not locked out.  On success the
    record is deleted, making the code single-use.
    """

    def __init__(
        self,
        store: OtpRecordStore,
        profiles: ProfileStore,
        identity: IdentityProvider,
        clock: Callable[[], datetime] = utcnow,
        max_attempts: int = DEFAULT_MAX_VERIFY_ATTEMPTS,
    ) -> None:
        self._store = store
        self._profiles = profiles
        self._identity = identity
        self._clock = clock
        self._max_attempts = max_attempts

    async def verify(self, email: object, otp: object) -> VerifyResult:
        normalized = normalize_email(email)
        masked = mask_email(normalized)
        logger.info("OTP verification requested for %s", masked)

        if not normalized or not otp:
            logger.error("OTP verification rejected: email and OTP are required")
            raise CallableError(ErrorCode.INVALID_ARGUMENT, "Email and OTP are required.")

        try:
            return await self._verify(normalized, str(otp), masked)
        except CallableError as exc:
            logger.warning(
                "OTP verification for %s failed: %s (%s)", masked, exc.message, exc.code.value
            )
            raise
        except Exception:
            logger.exception("Unexpected error during OTP verification for %s", masked)
            raise CallableError(
                ErrorCode.INTERNAL, "Failed to verify OTP. Please try again later."
            ) from None

    # ── Private helpers ──────────────────────────────────

    async def _verify(self, email: str, otp: str, masked: str) -> VerifyResult:
        record = await self._store.get(email)
        if record is None:
            raise CallableError(
                ErrorCode.NOT_FOUND, "OTP not found or already used. Please request a new one."
            )

        now = self._clock()
        # Checked before expiry: a verified record is mid-consumption
        if record.verified and not record.is_expired(now):
            raise CallableError(
                ErrorCode.ALREADY_EXISTS,
                "This OTP has already been used. Please request a new one.",
            )
        if record.is_expired(now):
            logger.info("OTP expired for %s; deleting entry", masked)
            await self._discard(record, masked)
            raise CallableError(
                ErrorCode.DEADLINE_EXCEEDED, "OTP has expired. Please request a new one."
            )
        if record.attempts >= self._max_attempts:
            logger.info("OTP for %s hit %s failed attempts; deleting entry", masked, record.attempts)
            await self._discard(record, masked)
            raise CallableError(
                ErrorCode.RESOURCE_EXHAUSTED,
                "Too many incorrect attempts. Please request a new OTP.",
            )

        if not otp_matches(otp, record.otp_hash):
            try:
                await self._store.increment_attempts(record)
            except StaleRecordError:
                logger.info("OTP record for %s changed before the failed attempt was counted", masked)
            raise CallableError(ErrorCode.INVALID_ARGUMENT, "Incorrect OTP entered.")

        try:
            record = await self._store.mark_verified(record)
        except StaleRecordError:
            raise CallableError(
                ErrorCode.ABORTED,
                "This OTP changed while being verified. Please try again.",
            ) from None
        logger.info("OTP for %s marked as verified", masked)

        uid, token = await self._issue_token(email, masked, record)

        try:
            await self._store.delete(record)
        except StaleRecordError:
            logger.warning("OTP record for %s was replaced before it could be consumed", masked)
        else:
            logger.info("OTP document deleted for %s after successful verification", masked)

        return VerifyResult(
            success=True, message="OTP verified successfully.", token=token, uid=uid
        )

    async def _issue_token(self, email: str, masked: str, record: OtpRecord) -> tuple[str, str]:
        """Resolve (or provision) the identity and mint its custom token."""
        try:
            user = await self._identity.get_user_by_email(email)
        except Exception:
            logger.exception("Error fetching user by email %s", masked)
            await self._rollback(record, masked)
            raise CallableError(ErrorCode.INTERNAL, "Error verifying user status.") from None

        if user is not None:
            logger.info("Existing user found for %s: uid %s", masked, user.uid)
        else:
            logger.info("No user for %s; creating one", masked)
            try:
                user = await self._identity.create_user(email)
                await self._profiles.create(UserProfile(uid=user.uid, email=email))
            except Exception:
                logger.exception("Error creating user account for %s", masked)
                await self._rollback(record, masked)
                raise CallableError(
                    ErrorCode.INTERNAL,
                    "Failed to create user account after OTP verification.",
                ) from None
            logger.info("New user created for %s: uid %s", masked, user.uid)

        try:
            token = await self._identity.create_custom_token(user.uid)
        except Exception:
            logger.exception("Error creating custom token for uid %s", user.uid)
            await self._rollback(record, masked)
            raise CallableError(
                ErrorCode.INTERNAL, "Failed to verify OTP. Please try again later."
            ) from None
        logger.info("Custom token created for uid %s (%s)", user.uid, masked)
        return user.uid, token

    async def _rollback(self, record: OtpRecord, masked: str) -> None:
        try:
            await self._store.clear_verified(record)
        except StaleRecordError:
            logger.warning("OTP record for %s changed; verification flag not rolled back", masked)
        else:
            logger.info("Verification flag rolled back for %s", masked)

    async def _discard(self, record: OtpRecord, masked: str) -> None:
        try:
            await self._store.delete(record)
        except StaleRecordError:
            logger.info("OTP record for %s already replaced", masked)
