"""Caller-facing error taxonomy shared by every login handler.

Handlers raise :class:`CallableError`; the API layer renders it in the
callable envelope::

    {"error": {"status": "NOT_FOUND", "message": "..."}}
"""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Machine-readable failure kinds, using the callable-function spelling."""

    INVALID_ARGUMENT = "invalid-argument"
    FAILED_PRECONDITION = "failed-precondition"
    RESOURCE_EXHAUSTED = "resource-exhausted"
    NOT_FOUND = "not-found"
    ALREADY_EXISTS = "already-exists"
    ABORTED = "aborted"
    DEADLINE_EXCEEDED = "deadline-exceeded"
    INTERNAL = "internal"

    @property
    def status(self) -> str:
        """Canonical upper-case status name, e.g. ``INVALID_ARGUMENT``."""
        return self.name

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]


_HTTP_STATUS = {
    ErrorCode.INVALID_ARGUMENT: 400,
    ErrorCode.FAILED_PRECONDITION: 400,
    ErrorCode.RESOURCE_EXHAUSTED: 429,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.ALREADY_EXISTS: 409,
    ErrorCode.ABORTED: 409,
    ErrorCode.DEADLINE_EXCEEDED: 504,
    ErrorCode.INTERNAL: 500,
}


class CallableError(Exception):
    """A classified failure that is passed to the caller unchanged."""

    def __init__(self, code: ErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def to_dict(self) -> dict:
        return {"status": self.code.status, "message": self.message}

    def __repr__(self) -> str:
        return f"<CallableError code={self.code.value!r} message={self.message!r}>"
