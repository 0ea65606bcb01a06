from pydantic import BaseModel

from questionbank.integrations.google.models import GoogleProfile


class ProfileResponse(BaseModel):
    """Response model for the profile endpoint."""

    user: GoogleProfile


class ErrorResponse(BaseModel):
    """Body of every error response."""

    error: str
