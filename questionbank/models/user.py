"""User model for locally known Google identities."""

from __future__ import annotations
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class User(BaseModel):
    """A locally known identity.

    Users are created on the first successful Google callback for a subject.
    `subject_id` is Google's stable account id and never changes once stored.
    """

    id: UUID
    subject_id: str
    name: str | None
    email: str | None
    picture_url: str | None
    created_at: datetime
    updated_at: datetime


class SessionIdentity(BaseModel):
    """The verified identity handed to routes that stamp ownership."""

    subject_id: str
