from datetime import datetime, timedelta, timezone

from pydantic import BaseModel


class GoogleToken(BaseModel):
    """An access token returned by Google's token endpoint."""

    access_token: str
    expires_in: int
    token_type: str = "Bearer"
    scope: str | None = None

    def expires_at_datetime(self, now: datetime | None = None) -> datetime:
        """Absolute expiry, to the second, counted from `now`."""
        if now is None:
            now = datetime.now(timezone.utc)
        return now.replace(microsecond=0) + timedelta(seconds=self.expires_in)


class GoogleProfile(BaseModel):
    """A verified profile from Google's userinfo endpoint."""

    subject_id: str
    name: str | None = None
    email: str | None = None
    picture_url: str | None = None
