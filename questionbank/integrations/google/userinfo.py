"""Resolve a verified Google profile from an access token."""

import logging

import httpx

from questionbank.errors import UpstreamAuthError
from .models import GoogleProfile

USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
HTTP_TIMEOUT_SECONDS = 10

logger = logging.getLogger(__name__)


async def fetch_profile(access_token: str) -> GoogleProfile:
    """Fetch the profile that owns `access_token`.

    This is also how a stored session is re-verified, so a stale or revoked
    token simply fails; there are no retries.

    Raises:
        UpstreamAuthError: On any non-2xx status, transport failure or a
            response without a subject id.
    """
    try:
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS) as client:
            response = await client.get(
                USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            )
    except httpx.HTTPError as e:
        logger.error(f"Google userinfo endpoint unreachable: {type(e).__name__}")
        raise UpstreamAuthError("Failed to fetch user info") from e

    if not 200 <= response.status_code < 300:
        logger.warning(f"Google userinfo rejected token: {response.status_code}")
        raise UpstreamAuthError(
            f"Failed to fetch user info (status {response.status_code})",
            upstream_status=response.status_code,
        )

    try:
        data = response.json()
    except ValueError:
        data = {}
    if not isinstance(data, dict):
        logger.error("Google userinfo returned a non-object body")
        raise UpstreamAuthError(
            "Failed to fetch user info: malformed response",
            upstream_status=response.status_code,
        )
    subject_id = data.get("id")
    if not subject_id:
        logger.error("Google userinfo response has no id")
        raise UpstreamAuthError(
            "Failed to fetch user info: missing id",
            upstream_status=response.status_code,
        )

    return GoogleProfile(
        subject_id=str(subject_id),
        name=data.get("name"),
        email=data.get("email"),
        picture_url=data.get("picture"),
    )
