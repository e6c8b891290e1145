"""Email service — sends OTP emails through the Brevo transactional API."""

from __future__ import annotations

import logging

import httpx

from otp_login.config import Settings, settings
from otp_login.otp.codes import mask_email

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """Brevo rejected the send or could not be reached."""

    def __init__(
        self, message: str, status_code: int | None = None, body: str | None = None
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class BrevoEmailService:
    """Sends template-based transactional emails using the configured Brevo account.

    The OTP only ever travels in the request body; nothing here logs the
    payload.
    """

    def __init__(
        self,
        config: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or settings
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        """``True`` when an API key is available."""
        return bool(self._config.brevo_api_key)

    @property
    def template_id(self) -> int | None:
        """The OTP template id, or ``None`` if it is missing or not a positive integer."""
        try:
            template_id = int(self._config.brevo_otp_template_id)
        except (TypeError, ValueError):
            return None
        return template_id if template_id > 0 else None

    async def send_otp(self, to_email: str, otp: str) -> str | None:
        """Send the OTP template to *to_email*.

        Parameters
        ----------
        to_email:
            Recipient address.
        otp:
            Plaintext code, exposed to the template as ``{{ params.otp }}``.

        Returns the Brevo message id when one is reported.  Raises
        :class:`EmailDeliveryError` on a non-2xx response or transport failure.
        """
        payload = {
            "templateId": self.template_id,
            "to": [{"email": to_email}],
            "params": {"otp": otp},
            "sender": {
                "email": self._config.brevo_sender_email,
                "name": self._config.brevo_sender_name,
            },
        }
        headers = {"api-key": self._config.brevo_api_key, "accept": "application/json"}
        masked = mask_email(to_email)

        logger.info(
            "Sending OTP email to %s via Brevo (template %s)", masked, self.template_id
        )
        try:
            async with httpx.AsyncClient(
                base_url=self._config.brevo_api_base_url,
                timeout=self._config.brevo_timeout_seconds,
                transport=self._transport,
            ) as client:
                resp = await client.post("/smtp/email", json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise EmailDeliveryError(f"Brevo request error: {exc}") from exc

        if not resp.is_success:
            raise EmailDeliveryError(
                f"Brevo API error: status {resp.status_code}",
                status_code=resp.status_code,
                body=resp.text,
            )

        message_id = None
        if resp.headers.get("content-type", "").startswith("application/json"):
            message_id = resp.json().get("messageId")
        logger.info("Brevo accepted email to %s (message id %s)", masked, message_id or "N/A")
        return message_id
