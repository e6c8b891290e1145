"""Firebase Admin SDK bootstrap — one default app per process."""

from __future__ import annotations

import logging
import threading

import firebase_admin
from firebase_admin import credentials, firestore_async

from otp_login.config import Settings

logger = logging.getLogger(__name__)

_init_lock = threading.Lock()


def get_firebase_app(config: Settings) -> firebase_admin.App:
    """Return the default Firebase app, initialising it on first use.

    Concurrent cold starts serialise on a lock so ``initialize_app`` runs
    once.  Without a service-account path, application default credentials
    are used (this also covers the Auth/Firestore emulators).
    """
    with _init_lock:
        if firebase_admin._apps:
            logger.info("Firebase Admin SDK already initialised")
            return firebase_admin.get_app()

        if config.firebase_service_account_path:
            cred = credentials.Certificate(config.firebase_service_account_path)
        else:
            cred = credentials.ApplicationDefault()
        options = {"projectId": config.firebase_project_id} if config.firebase_project_id else None

        app = firebase_admin.initialize_app(cred, options)
        logger.info("Firebase Admin SDK initialised (project %s)", app.project_id or "default")
        return app


def get_firestore_client(app: firebase_admin.App):
    """Async Firestore client bound to *app*."""
    return firestore_async.client(app)
