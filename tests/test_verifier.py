"""Tests for the OtpVerifier — the full verify → token flow and its failure paths."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from otp_login.errors import CallableError, ErrorCode
from otp_login.otp.codes import hash_otp
from otp_login.otp.issuer import OtpIssuer
from otp_login.otp.verifier import OtpVerifier
from otp_login.services.identity import IdentityRecord
from otp_login.stores.base import OtpRecordStore

EMAIL = "a@b.com"
CODE = "123456"


@pytest.fixture
def verifier(otp_store, profile_store, identity, clock):
    return OtpVerifier(otp_store, profile_store, identity, clock=clock, max_attempts=3)


async def _store_code(otp_store, clock, code=CODE):
    return await otp_store.save(
        EMAIL, hash_otp(code), clock.now + timedelta(minutes=10), replacing=None
    )


async def _expect(code: ErrorCode, coro) -> CallableError:
    with pytest.raises(CallableError) as exc_info:
        await coro
    assert exc_info.value.code is code
    return exc_info.value


# ──────────────────────────────────────────────────────────
# End-to-end: issue → wrong code → right code → replay
# ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_issue_then_verify_flow(otp_store, email_service, verifier, identity, clock):
    issuer = OtpIssuer(otp_store, email_service, clock=clock)
    await issuer.issue("A@B.com")
    _, code = email_service.send_otp.call_args.args

    record = await otp_store.get(EMAIL)
    assert record.expires_at == clock.now + timedelta(seconds=600)

    await _expect(ErrorCode.INVALID_ARGUMENT, verifier.verify("a@b.com", "000000"))

    result = await verifier.verify("a@b.com", code)
    assert result.success is True
    assert result.token == "custom-token-xyz"
    assert result.uid == "uid-new-1"
    identity.create_custom_token.assert_awaited_once_with("uid-new-1")

    await _expect(ErrorCode.NOT_FOUND, verifier.verify("a@b.com", code))


@pytest.mark.asyncio
async def test_same_code_twice_is_not_found(otp_store, verifier, clock):
    await _store_code(otp_store, clock)

    assert (await verifier.verify(EMAIL, CODE)).success is True
    await _expect(ErrorCode.NOT_FOUND, verifier.verify(EMAIL, CODE))


# ──────────────────────────────────────────────────────────
# Input and record-state errors
# ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
@pytest.mark.parametrize("email, otp", [(None, CODE), ("", CODE), (EMAIL, None), (EMAIL, "")])
async def test_missing_inputs(verifier, email, otp):
    await _expect(ErrorCode.INVALID_ARGUMENT, verifier.verify(email, otp))


@pytest.mark.asyncio
async def test_never_requested(verifier):
    await _expect(ErrorCode.NOT_FOUND, verifier.verify(EMAIL, CODE))


@pytest.mark.asyncio
async def test_wrong_code_keeps_record(otp_store, verifier, clock):
    await _store_code(otp_store, clock)

    error = await _expect(ErrorCode.INVALID_ARGUMENT, verifier.verify(EMAIL, "654321"))

    assert error.message == "Incorrect OTP entered."
    record = await otp_store.get(EMAIL)
    assert record is not None
    assert record.attempts == 1
    assert record.verified is False


@pytest.mark.asyncio
async def test_expired_code_is_deleted(otp_store, verifier, clock):
    await _store_code(otp_store, clock)
    clock.advance(minutes=10, seconds=1)

    await _expect(ErrorCode.DEADLINE_EXCEEDED, verifier.verify(EMAIL, CODE))

    assert await otp_store.get(EMAIL) is None
    await _expect(ErrorCode.NOT_FOUND, verifier.verify(EMAIL, CODE))


@pytest.mark.asyncio
async def test_verified_record_is_already_used(otp_store, verifier, identity, clock):
    record = await _store_code(otp_store, clock)
    await otp_store.mark_verified(record)

    await _expect(ErrorCode.ALREADY_EXISTS, verifier.verify(EMAIL, CODE))
    identity.create_custom_token.assert_not_called()


@pytest.mark.asyncio
async def test_verified_and_expired_is_deadline_exceeded(otp_store, verifier, clock):
    record = await _store_code(otp_store, clock)
    await otp_store.mark_verified(record)
    clock.advance(minutes=11)

    await _expect(ErrorCode.DEADLINE_EXCEEDED, verifier.verify(EMAIL, CODE))
    assert await otp_store.get(EMAIL) is None


@pytest.mark.asyncio
async def test_too_many_attempts_locks_out(otp_store, verifier, clock):
    await _store_code(otp_store, clock)

    for _ in range(3):
        await _expect(ErrorCode.INVALID_ARGUMENT, verifier.verify(EMAIL, "000000"))

    # Even the right code is refused once the limit is reached
    await _expect(ErrorCode.RESOURCE_EXHAUSTED, verifier.verify(EMAIL, CODE))
    assert await otp_store.get(EMAIL) is None


# ──────────────────────────────────────────────────────────
# Identity resolution
# ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_existing_user_gets_token(otp_store, profile_store, verifier, identity, clock):
    identity.get_user_by_email.return_value = IdentityRecord(uid="uid-existing", email=EMAIL)
    await _store_code(otp_store, clock)

    result = await verifier.verify(EMAIL, CODE)

    assert result.uid == "uid-existing"
    identity.create_user.assert_not_called()
    assert await profile_store.get("uid-existing") is None
    assert await otp_store.get(EMAIL) is None


@pytest.mark.asyncio
async def test_new_user_gets_profile(otp_store, profile_store, verifier, identity, clock):
    await _store_code(otp_store, clock)

    await verifier.verify(EMAIL, CODE)

    identity.create_user.assert_awaited_once_with(EMAIL)
    profile = await profile_store.get("uid-new-1")
    assert profile is not None
    assert profile.email == EMAIL
    assert profile.name is None
    assert profile.club_id is None


@pytest.mark.asyncio
async def test_user_creation_failure_rolls_back(otp_store, verifier, identity, clock):
    identity.create_user.side_effect = ValueError("email already exists")
    await _store_code(otp_store, clock)

    error = await _expect(ErrorCode.INTERNAL, verifier.verify(EMAIL, CODE))

    assert "create user account" in error.message
    record = await otp_store.get(EMAIL)
    assert record.verified is False
    assert record.verified_at is None

    # The rollback lets a retry through once the provider recovers
    identity.create_user.side_effect = None
    result = await verifier.verify(EMAIL, CODE)
    assert result.success is True


@pytest.mark.asyncio
async def test_lookup_failure_rolls_back(otp_store, verifier, identity, clock):
    identity.get_user_by_email.side_effect = RuntimeError("quota exceeded")
    await _store_code(otp_store, clock)

    error = await _expect(ErrorCode.INTERNAL, verifier.verify(EMAIL, CODE))

    assert error.message == "Error verifying user status."
    assert (await otp_store.get(EMAIL)).verified is False
    identity.create_user.assert_not_called()


@pytest.mark.asyncio
async def test_token_failure_rolls_back(otp_store, verifier, identity, clock):
    identity.create_custom_token.side_effect = RuntimeError("signing failed")
    await _store_code(otp_store, clock)

    await _expect(ErrorCode.INTERNAL, verifier.verify(EMAIL, CODE))

    record = await otp_store.get(EMAIL)
    assert record is not None
    assert record.verified is False


# ──────────────────────────────────────────────────────────
# Concurrent re-issuance
# ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_reissue_during_verify_aborts(otp_store, verifier, identity, clock):
    await _store_code(otp_store, clock)
    original_get = otp_store.get

    async def get_then_reissue(email):
        record = await original_get(email)
        # A new OTP replaces the one being verified
        await otp_store.save(
            email, hash_otp("888888"), clock.now + timedelta(minutes=10), replacing=record
        )
        return record

    otp_store.get = get_then_reissue

    error = await _expect(ErrorCode.ABORTED, verifier.verify(EMAIL, CODE))

    assert error.message == "This OTP changed while being verified. Please try again."

    identity.create_custom_token.assert_not_called()
    newer = await original_get(EMAIL)
    assert newer.otp_hash == hash_otp("888888")
    assert newer.verified is False


# ──────────────────────────────────────────────────────────
# Unclassified failures
# ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_unexpected_error_is_generic_internal(profile_store, identity, clock):
    store = MagicMock(spec=OtpRecordStore)
    store.get = AsyncMock(side_effect=RuntimeError("database connection reset"))
    verifier = OtpVerifier(store, profile_store, identity, clock=clock)

    error = await _expect(ErrorCode.INTERNAL, verifier.verify(EMAIL, CODE))

    assert error.message == "Failed to verify OTP. Please try again later."
    assert "database" not in error.message
    assert "connection reset" not in error.message
    identity.create_custom_token.assert_not_called()
