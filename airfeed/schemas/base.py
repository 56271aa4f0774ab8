"""Shared column helpers for the airfeed tables."""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import DateTime
from sqlmodel import Field


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def timestamp_field(**kwargs: Any) -> Any:
    """A ``timestamp with time zone`` column; values must be aware datetimes."""
    return Field(sa_type=DateTime(timezone=True), **kwargs)  # type: ignore[call-overload]
