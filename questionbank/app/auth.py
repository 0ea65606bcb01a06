"""Session validation for protected routes.

There is no local session table: every check re-verifies the stored access
token against Google's userinfo endpoint.
"""

import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from questionbank.errors import Unauthorized, UpstreamAuthError
from questionbank.integrations import google
from questionbank.integrations.google.models import GoogleProfile
from questionbank.models.user import SessionIdentity
from .session import TOKEN_COOKIE, UID_COOKIE

logger = logging.getLogger(__name__)
bearer_scheme = HTTPBearer(auto_error=False)


def read_credential(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = None,
) -> str | None:
    """Return the caller's access token, preferring the Authorization header."""
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(TOKEN_COOKIE) or None


async def get_verified_profile(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> GoogleProfile:
    """FastAPI dependency returning the caller's Google-verified profile.

    Raises:
        Unauthorized: If no credential was sent, Google rejects it, or the
            `uid` cookie names a different subject.
        UpstreamAuthError: If Google could not be reached or failed (5xx).
    """
    token = read_credential(request, credentials)
    if not token:
        raise Unauthorized("Authorization header is missing")

    try:
        profile = await google.fetch_profile(token)
    except UpstreamAuthError as e:
        if e.is_rejection:
            logger.info(f"Session rejected by Google: status {e.upstream_status}")
            raise Unauthorized("Session expired or revoked") from e
        raise

    uid = request.cookies.get(UID_COOKIE)
    if uid and uid != profile.subject_id:
        logger.warning(
            f"uid cookie {uid} does not match verified subject {profile.subject_id}"
        )
        raise Unauthorized("Session does not match user")

    return profile


async def require_user(
    profile: GoogleProfile = Depends(get_verified_profile),
) -> SessionIdentity:
    """FastAPI dependency for routes that only need to know who the caller is.

    Question and topic routes use the returned subject id to stamp ownership.
    """
    return SessionIdentity(subject_id=profile.subject_id)
