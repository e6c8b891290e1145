"""Login functions router — callable endpoints used by the web client.

Endpoints
---------
POST /sendAndStoreOtp                 → issue an OTP by email
POST /verifyOtpAndCreateCustomToken   → verify an OTP, return a custom token
POST /updateUser                      → placeholder, never mutates state
GET  /checkBrevoKey                   → is the email-provider key configured?
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from otp_login.api.schemas import (
    SendOtpRequest,
    SendOtpResponse,
    SendOtpResult,
    UpdateUserRequest,
    UpdateUserResponse,
    UpdateUserResult,
    VerifyOtpRequest,
    VerifyOtpResponse,
    VerifyOtpResult,
)
from otp_login.dependencies import ServiceContainer, get_services
from otp_login.errors import CallableError, ErrorCode

logger = logging.getLogger(__name__)

router = APIRouter(tags=["functions"])


# ──────────────────────────────────────────────────────────────
# POST /sendAndStoreOtp
# ──────────────────────────────────────────────────────────────
@router.post("/sendAndStoreOtp", response_model=SendOtpResponse)
async def send_and_store_otp(
    body: SendOtpRequest, services: ServiceContainer = Depends(get_services)
) -> SendOtpResponse:
    """Send an OTP to the given email and store its hash."""
    result = await services.issuer.issue(body.data.email)
    return SendOtpResponse(
        result=SendOtpResult(success=result.success, message=result.message)
    )


# ──────────────────────────────────────────────────────────────
# POST /verifyOtpAndCreateCustomToken
# ──────────────────────────────────────────────────────────────
@router.post("/verifyOtpAndCreateCustomToken", response_model=VerifyOtpResponse)
async def verify_otp_and_create_custom_token(
    body: VerifyOtpRequest, services: ServiceContainer = Depends(get_services)
) -> VerifyOtpResponse:
    """Verify an OTP and return a Firebase custom token for the account."""
    result = await services.verifier.verify(body.data.email, body.data.otp)
    return VerifyOtpResponse(
        result=VerifyOtpResult(
            success=result.success,
            message=result.message,
            token=result.token,
            uid=result.uid,
        )
    )


# ──────────────────────────────────────────────────────────────
# POST /updateUser — placeholder
# ──────────────────────────────────────────────────────────────
@router.post("/updateUser", response_model=UpdateUserResponse)
async def update_user(body: UpdateUserRequest) -> UpdateUserResponse:
    """Placeholder kept for client compatibility.

    Profile updates are done by the web app's server actions; this endpoint
    performs no writes.
    """
    logger.info("updateUser called for uid %s", body.data.uid)
    logger.warning("updateUser is a placeholder and does not perform profile updates")
    return UpdateUserResponse(
        result=UpdateUserResult(
            success=False,
            message=(
                "updateUser is a placeholder and not actively used for profile "
                "updates. See server actions."
            ),
        )
    )


# ──────────────────────────────────────────────────────────────
# GET /checkBrevoKey — diagnostic
# ──────────────────────────────────────────────────────────────
@router.get("/checkBrevoKey")
async def check_brevo_key(services: ServiceContainer = Depends(get_services)) -> dict:
    """Report whether the Brevo API key is configured. No side effects."""
    exists = services.email_service.is_configured
    logger.info("Brevo API key exists: %s", exists)
    return {"brevoApiKeyExists": exists}


# ──────────────────────────────────────────────────────────────
# Error rendering
# ──────────────────────────────────────────────────────────────
async def callable_error_handler(request: Request, exc: CallableError) -> JSONResponse:
    """Render a classified failure in the callable error envelope."""
    return JSONResponse(status_code=exc.code.http_status, content={"error": exc.to_dict()})


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed request bodies are reported as ``invalid-argument``."""
    logger.warning("Rejected malformed request to %s: %s", request.url.path, exc.errors())
    error = CallableError(ErrorCode.INVALID_ARGUMENT, "Bad request body.")
    return JSONResponse(status_code=error.code.http_status, content={"error": error.to_dict()})
