"""OTP Login — configuration loaded from environment."""

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings, loaded from .env or environment variables."""

    # ── Brevo transactional email ─────────────────────────
    brevo_api_key: str = ""
    brevo_sender_email: str = "info@bergmantri.com"
    brevo_sender_name: str = "Bergman Triathlon"
    # Kept as text so a bad value is reported at send time, not at startup
    brevo_otp_template_id: str = "178"
    brevo_api_base_url: str = "https://api.brevo.com/v3"
    brevo_timeout_seconds: float = 10.0

    # ── Firebase ──────────────────────────────────────────
    firebase_project_id: str = ""
    firebase_service_account_path: str = ""

    # ── Document store ────────────────────────────────────
    document_store: Literal["firestore", "sql"] = "firestore"
    database_url: str = "sqlite+aiosqlite:///./otp_login.db"

    # ── OTP policy ────────────────────────────────────────
    otp_max_verify_attempts: int = 5

    # ── App ───────────────────────────────────────────────
    app_name: str = "OTP Login"
    debug: bool = False

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Singleton settings instance
settings = Settings()
