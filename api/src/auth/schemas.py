"""Pydantic schemas for the authenticated actor."""

from pydantic import BaseModel


class AuthUser(BaseModel):
    """User identity taken from a validated access token."""

    id: str
    email: str | None = None
