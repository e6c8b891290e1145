"""Request / response models for the callable envelope.

Callable clients post ``{"data": {...}}`` and receive ``{"result": {...}}``.
Input fields are optional here; the handlers report missing values as
``invalid-argument`` themselves.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


# ── Request payloads ─────────────────────────────────────

class SendOtpData(BaseModel):
    email: str | None = None


class VerifyOtpData(BaseModel):
    email: str | None = None
    otp: str | None = None


class UpdateUserData(BaseModel):
    uid: str | None = None
    profile_data: dict[str, Any] | None = Field(default=None, alias="profileData")


class SendOtpRequest(BaseModel):
    data: SendOtpData = Field(default_factory=SendOtpData)


class VerifyOtpRequest(BaseModel):
    data: VerifyOtpData = Field(default_factory=VerifyOtpData)


class UpdateUserRequest(BaseModel):
    data: UpdateUserData = Field(default_factory=UpdateUserData)


# ── Response payloads ────────────────────────────────────

class SendOtpResult(BaseModel):
    success: bool
    message: str


class VerifyOtpResult(BaseModel):
    success: bool
    message: str
    token: str | None = None
    uid: str | None = None


class UpdateUserResult(BaseModel):
    success: bool
    message: str


class SendOtpResponse(BaseModel):
    result: SendOtpResult


class VerifyOtpResponse(BaseModel):
    result: VerifyOtpResult


class UpdateUserResponse(BaseModel):
    result: UpdateUserResult
