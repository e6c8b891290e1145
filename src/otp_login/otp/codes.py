"""OTP primitives — code generation, hashing and log-safe email masking."""

from __future__ import annotations

import hashlib
import hmac
import secrets

OTP_LENGTH = 6
OTP_EXPIRY_MINUTES = 10
OTP_RESEND_COOLDOWN_SECONDS = 60

_OTP_LOWEST = 10 ** (OTP_LENGTH - 1)
_OTP_SPAN = 10**OTP_LENGTH - _OTP_LOWEST

INVALID_EMAIL_SENTINEL = "invalid_email_format"
INCOMPLETE_EMAIL_SENTINEL = "incomplete_email"


def generate_otp() -> str:
    """Return a random ``OTP_LENGTH``-digit code drawn from the OS CSPRNG.

    Codes are uniform over ``100000..999999``; the leading digit is never zero.
    """
    return str(_OTP_LOWEST + secrets.randbelow(_OTP_SPAN))


def hash_otp(otp: str) -> str:
    """SHA-256 hex digest of *otp*."""
    return hashlib.sha256(otp.encode("utf-8")).hexdigest()


def otp_matches(otp: str, otp_hash: str) -> bool:
    """Compare a submitted code against a stored digest in constant time."""
    if not otp_hash:
        return False
    return hmac.compare_digest(hash_otp(otp), otp_hash)


def normalize_email(email: object) -> str | None:
    """Lower-case and trim *email*; ``None`` when there is nothing left."""
    if email is None:
        return None
    normalized = str(email).strip().lower()
    return normalized or None


def mask_email(email: object) -> str:
    """Mask an email for logs: ``a***@example.com``.

    Never use the result for anything but observability.
    """
    if not email or not isinstance(email, str):
        return INVALID_EMAIL_SENTINEL
    parts = email.split("@")
    if len(parts) != 2:
        return INCOMPLETE_EMAIL_SENTINEL
    local, domain = parts
    return f"{local[:1]}***@{domain}"
