"""Service container — handles built once per process and injected per request."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Request

from otp_login.config import Settings
from otp_login.otp.issuer import OtpIssuer
from otp_login.otp.verifier import OtpVerifier
from otp_login.services.email_service import BrevoEmailService
from otp_login.services.identity import IdentityProvider
from otp_login.stores.base import OtpRecordStore, ProfileStore

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Everything the login handlers need, wired together."""

    settings: Settings
    email_service: BrevoEmailService
    issuer: OtpIssuer
    verifier: OtpVerifier


def wire_services(
    config: Settings,
    store: OtpRecordStore,
    profiles: ProfileStore,
    identity: IdentityProvider,
    email_service: BrevoEmailService,
) -> ServiceContainer:
    """Assemble a container from already-constructed collaborators."""
    return ServiceContainer(
        settings=config,
        email_service=email_service,
        issuer=OtpIssuer(store, email_service),
        verifier=OtpVerifier(
            store, profiles, identity, max_attempts=config.otp_max_verify_attempts
        ),
    )


async def build_services(config: Settings) -> ServiceContainer:
    """Construct the production handles for the configured document store."""
    from otp_login.services.firebase import get_firebase_app, get_firestore_client

    app = get_firebase_app(config)
    identity = IdentityProvider(app)

    if config.document_store == "sql":
        from otp_login.database.engine import async_session_factory, init_db
        from otp_login.stores.sql import SqlOtpRecordStore, SqlProfileStore

        await init_db()
        store: OtpRecordStore = SqlOtpRecordStore(async_session_factory)
        profiles: ProfileStore = SqlProfileStore(async_session_factory)
        logger.info("Using SQL document store")
    else:
        from otp_login.stores.firestore import FirestoreOtpRecordStore, FirestoreProfileStore

        client = get_firestore_client(app)
        store = FirestoreOtpRecordStore(client)
        profiles = FirestoreProfileStore(client)
        logger.info("Using Firestore document store")

    email_service = BrevoEmailService(config)
    if email_service.is_configured:
        logger.info("Brevo client configured (template %s)", email_service.template_id)
    else:
        logger.warning("Brevo API key not found. OTP emails will not be sent.")

    return wire_services(config, store, profiles, identity, email_service)


def get_services(request: Request) -> ServiceContainer:
    """FastAPI dependency returning the container stored by the lifespan hook."""
    return request.app.state.services
