"""
Auth models.

Identity and PendingCode are persisted as JSON documents; SessionClaims
only ever live inside a signed token held by the client.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, EmailStr, Field

Role = Literal["user", "admin"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(value: str) -> str:
    """Trim and lowercase an address; identity lookups are case-insensitive."""
    return (value or "").strip().lower()


class Identity(BaseModel):
    """A user record, created lazily on first contact."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    email: EmailStr
    role: Role = "user"
    created_at: datetime = Field(default_factory=utcnow)
    last_login: datetime = Field(default_factory=utcnow)


class PendingCode(BaseModel):
    """A one-time code waiting to be verified."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    email: EmailStr
    code: str
    expires_at: datetime

    def is_live(self, now: datetime) -> bool:
        return now < self.expires_at


class SessionClaims(BaseModel):
    """Identity claims embedded in a signed session token."""

    user_id: str
    email: EmailStr
    role: Role
    issued_at: datetime
    expires_at: datetime


class IdentitySummary(BaseModel):
    """What clients get to see about an identity."""

    id: str
    email: EmailStr
    role: Role
