"""Time source shared by handlers and stores."""

from datetime import UTC, datetime


def utcnow() -> datetime:
    return datetime.now(UTC)
