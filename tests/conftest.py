"""Shared fixtures — in-memory SQL store, fake clock, mocked providers."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from otp_login.config import Settings
from otp_login.models.base import Base
from otp_login.services.email_service import BrevoEmailService
from otp_login.services.identity import IdentityProvider, IdentityRecord
from otp_login.stores.sql import SqlOtpRecordStore, SqlProfileStore


class FakeClock:
    """Settable UTC clock shared by the handlers and the store under test."""

    def __init__(self) -> None:
        self.now = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def session_factory():
    """Create tables in a fresh in-memory DB and yield a session factory for it."""
    engine = create_async_engine("sqlite+aiosqlite://", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    # Tear down
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def otp_store(session_factory, clock) -> SqlOtpRecordStore:
    return SqlOtpRecordStore(session_factory, clock=clock)


@pytest.fixture
def profile_store(session_factory, clock) -> SqlProfileStore:
    return SqlProfileStore(session_factory, clock=clock)


@pytest.fixture
def email_service() -> BrevoEmailService:
    """Configured Brevo service whose send is mocked — never actually sends emails."""
    svc = BrevoEmailService(Settings(brevo_api_key="test-key", brevo_otp_template_id="178"))
    svc.send_otp = AsyncMock(return_value="<message-1@smtp-relay.brevo.com>")
    return svc


@pytest.fixture
def identity() -> IdentityProvider:
    """Identity provider with no existing users; creation succeeds."""
    provider = IdentityProvider()
    provider.get_user_by_email = AsyncMock(return_value=None)
    provider.create_user = AsyncMock(
        return_value=IdentityRecord(uid="uid-new-1", email="a@b.com")
    )
    provider.create_custom_token = AsyncMock(return_value="custom-token-xyz")
    return provider
