"""Identity provider — thin async wrapper around Firebase Authentication.

``firebase_admin.auth`` is blocking, so every call is pushed to the thread
pool.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import firebase_admin
from fastapi.concurrency import run_in_threadpool
from firebase_admin import auth

logger = logging.getLogger(__name__)


@dataclass
class IdentityRecord:
    """Lightweight value object for an identity-provider user."""

    uid: str
    email: str | None


class IdentityProvider:
    """Looks up, creates and mints tokens for Firebase Auth users."""

    def __init__(self, app: firebase_admin.App | None = None) -> None:
        self._app = app

    async def get_user_by_email(self, email: str) -> IdentityRecord | None:
        """Return the user registered under *email*, or ``None`` if there is none.

        Any other provider failure propagates.
        """
        try:
            user = await run_in_threadpool(auth.get_user_by_email, email, app=self._app)
        except auth.UserNotFoundError:
            return None
        return IdentityRecord(uid=user.uid, email=user.email)

    async def create_user(self, email: str) -> IdentityRecord:
        """Create a password-less user whose email is already verified."""
        user = await run_in_threadpool(
            auth.create_user, email=email, email_verified=True, app=self._app
        )
        return IdentityRecord(uid=user.uid, email=user.email)

    async def create_custom_token(self, uid: str) -> str:
        token = await run_in_threadpool(auth.create_custom_token, uid, app=self._app)
        return token.decode("utf-8") if isinstance(token, bytes) else token
