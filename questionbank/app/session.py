"""Issue and clear the browser session after a Google sign-in.

The session is carried by cookies only. `token` and `uid` are HttpOnly so page
scripts can't read them; `expiry` is readable so the front end can tell when to
send the user back through sign-in. Redirects never carry any of these values.
There is no server-side session table: the session lasts exactly as long as
Google's access token.
"""

import os
import secrets
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Literal

from starlette.responses import Response

TOKEN_COOKIE = "token"
UID_COOKIE = "uid"
EXPIRY_COOKIE = "expiry"
STATE_COOKIE = "oauth_state"
# Long enough to get through Google's consent screen.
STATE_MAX_AGE_SECONDS = 600


def validate_cookie_settings(secure: bool, samesite: str) -> None:
    """Reject cookie settings browsers would silently ignore.

    Raises:
        ValueError: If `samesite` is unknown, or is 'none' without `secure`.
    """
    if samesite not in ("lax", "strict", "none"):
        raise ValueError(
            f"Invalid SESSION_COOKIE_SAMESITE: {samesite}. "
            "Must be 'lax', 'strict', or 'none'."
        )
    if samesite == "none" and not secure:
        raise ValueError(
            "SESSION_COOKIE_SAMESITE=none requires SESSION_COOKIE_SECURE=true; "
            "browsers drop SameSite=None cookies that are not Secure."
        )


SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "true").lower() != "false"
SESSION_COOKIE_SAMESITE: Literal["lax", "strict", "none"] = os.getenv(  # type: ignore[assignment]
    "SESSION_COOKIE_SAMESITE", "none"
).lower()
validate_cookie_settings(SESSION_COOKIE_SECURE, SESSION_COOKIE_SAMESITE)

logger = logging.getLogger(__name__)


@dataclass
class SessionCredential:
    """What the browser holds after a successful sign-in."""

    access_token: str
    subject_id: str
    expiry: datetime

    def expiry_iso(self) -> str:
        return self.expiry.strftime("%Y-%m-%dT%H:%M:%SZ")


def compute_expiry(issued_at: datetime, expires_in: int) -> datetime:
    """Issuance time (whole seconds) plus the provider-declared lifetime."""
    if issued_at.tzinfo is None:
        issued_at = issued_at.replace(tzinfo=timezone.utc)
    return issued_at.replace(microsecond=0) + timedelta(seconds=expires_in)


def issue_session(
    response: Response,
    access_token: str,
    subject_id: str,
    expires_in: int,
    now: datetime | None = None,
) -> SessionCredential:
    """Bind the access token and subject id to the browser via cookies."""
    if now is None:
        now = datetime.now(timezone.utc)
    credential = SessionCredential(
        access_token=access_token,
        subject_id=subject_id,
        expiry=compute_expiry(now, expires_in),
    )

    cookies = (
        (TOKEN_COOKIE, credential.access_token, True),
        (UID_COOKIE, credential.subject_id, True),
        (EXPIRY_COOKIE, credential.expiry_iso(), False),
    )
    for key, value, httponly in cookies:
        response.set_cookie(
            key,
            value,
            max_age=expires_in,
            expires=credential.expiry,
            path="/",
            secure=SESSION_COOKIE_SECURE,
            httponly=httponly,
            samesite=SESSION_COOKIE_SAMESITE,
        )

    logger.info(
        f"Issued session for subject_id={subject_id} expiring {credential.expiry_iso()}"
    )
    return credential


def clear_session(response: Response) -> None:
    """Remove all session cookies from the browser."""
    for key, httponly in (
        (TOKEN_COOKIE, True),
        (UID_COOKIE, True),
        (EXPIRY_COOKIE, False),
    ):
        response.delete_cookie(
            key,
            path="/",
            secure=SESSION_COOKIE_SECURE,
            httponly=httponly,
            samesite=SESSION_COOKIE_SAMESITE,
        )


def new_oauth_state() -> str:
    return secrets.token_urlsafe(32)


def set_oauth_state(response: Response, state: str) -> None:
    """Pin the `state` sent to Google to this browser.

    The callback only accepts a `state` that matches this cookie, so a code
    obtained in someone else's browser can't be planted in ours.
    """
    response.set_cookie(
        STATE_COOKIE,
        state,
        max_age=STATE_MAX_AGE_SECONDS,
        path="/",
        secure=SESSION_COOKIE_SECURE,
        httponly=True,
        samesite="lax",
    )


def oauth_state_matches(cookie_state: str | None, query_state: str | None) -> bool:
    if not cookie_state or not query_state:
        return False
    return secrets.compare_digest(cookie_state, query_state)


def clear_oauth_state(response: Response) -> None:
    response.delete_cookie(
        STATE_COOKIE,
        path="/",
        secure=SESSION_COOKIE_SECURE,
        httponly=True,
        samesite="lax",
    )
