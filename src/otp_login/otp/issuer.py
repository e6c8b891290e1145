"""OTP issuance — cooldown, generation, persistence and email delivery."""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from datetime import datetime, timedelta

from otp_login.clock import utcnow
from otp_login.errors import CallableError, ErrorCode
from otp_login.otp.codes import (
    OTP_EXPIRY_MINUTES,
    OTP_RESEND_COOLDOWN_SECONDS,
    generate_otp,
    hash_otp,
    mask_email,
    normalize_email,
)
from otp_login.otp.records import IssueResult, OtpRecord
from otp_login.services.email_service import BrevoEmailService, EmailDeliveryError
from otp_login.stores.base import OtpRecordStore, StaleRecordError

logger = logging.getLogger(__name__)

# Conditional-write retries when the record changes between read and write
_SAVE_ATTEMPTS = 3


class OtpIssuer:
    """Issues a one-time passcode to an email address.

    Flow
    ----
    1. Reject a missing email and a misconfigured email provider.
    2. Refuse while the previous OTP for the address is inside the cooldown.
    3. Store the hash of a fresh code (overwriting any previous record).
    4. Email the plaintext code.  A failed send leaves the stored record.
    """

    def __init__(
        self,
        store: OtpRecordStore,
        email_service: BrevoEmailService,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._email = email_service
        self._clock = clock

    async def issue(self, email: object) -> IssueResult:
        normalized = normalize_email(email)
        masked = mask_email(normalized)
        logger.info("OTP requested for %s", masked)

        if not normalized:
            logger.error("OTP request rejected: email is required")
            raise CallableError(ErrorCode.INVALID_ARGUMENT, "Email is required.")
        if not self._email.is_configured:
            logger.error("Brevo API key missing; cannot send OTP")
            raise CallableError(
                ErrorCode.FAILED_PRECONDITION,
                "OTP service is temporarily unavailable. Please try again later.",
            )
        if self._email.template_id is None:
            logger.error("Invalid or missing Brevo OTP template id")
            raise CallableError(
                ErrorCode.FAILED_PRECONDITION,
                "OTP service configuration error (Template ID).",
            )

        try:
            return await self._issue(normalized, masked)
        except CallableError as exc:
            logger.warning("OTP request for %s failed: %s (%s)", masked, exc.message, exc.code.value)
            raise
        except Exception:
            logger.exception("Unexpected error while issuing OTP for %s", masked)
            raise CallableError(
                ErrorCode.INTERNAL, "Failed to send OTP. Please try again later."
            ) from None

    # ── Private helpers ──────────────────────────────────

    async def _issue(self, email: str, masked: str) -> IssueResult:
        existing = await self._store.get(email)
        self._check_cooldown(existing, masked)

        code = generate_otp()
        otp_hash = hash_otp(code)
        expires_at = self._clock() + timedelta(minutes=OTP_EXPIRY_MINUTES)

        for _ in range(_SAVE_ATTEMPTS):
            try:
                await self._store.save(email, otp_hash, expires_at, replacing=existing)
                break
            except StaleRecordError:
                # Only a fresh issuance inside the window blocks this one
                logger.info("OTP record for %s changed before it was replaced; re-reading", masked)
                existing = await self._store.get(email)
                self._check_cooldown(existing, masked)
        else:
            raise CallableError(
                ErrorCode.ABORTED,
                "OTP request conflicted with another update. Please try again.",
            )
        logger.info(
            "OTP stored for %s (hash %s..., expires %s)",
            masked,
            otp_hash[:10],
            expires_at.isoformat(),
        )

        try:
            await self._email.send_otp(email, code)
        except EmailDeliveryError as exc:
            logger.error(
                "Failed to send OTP email to %s: %s (status %s, body %s)",
                masked,
                exc,
                exc.status_code or "N/A",
                exc.body or "N/A",
                exc_info=True,
            )
            raise CallableError(
                ErrorCode.INTERNAL,
                "Failed to send OTP email due to a provider issue. Please try again.",
            ) from None

        logger.info("OTP sent to %s", masked)
        return IssueResult(
            success=True, message="OTP sent successfully. Please check your email."
        )

    def _check_cooldown(self, existing: OtpRecord | None, masked: str) -> None:
        if existing is None or existing.created_at is None:
            return
        elapsed = (self._clock() - existing.created_at).total_seconds()
        if elapsed >= OTP_RESEND_COOLDOWN_SECONDS:
            return
        wait = min(OTP_RESEND_COOLDOWN_SECONDS, math.ceil(OTP_RESEND_COOLDOWN_SECONDS - elapsed))
        logger.warning("OTP request for %s too soon; %ss of cooldown left", masked, wait)
        raise CallableError(
            ErrorCode.RESOURCE_EXHAUSTED,
            f"Please wait {wait} seconds before requesting another OTP.",
        )
