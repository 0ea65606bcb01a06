"""Google OAuth authorization-code functions."""

import os
from urllib.parse import urlencode
import logging

import httpx

from questionbank.errors import InvalidRequest, UpstreamAuthError
from .models import GoogleToken

GOOGLE_CLIENT_ID = os.environ["GOOGLE_CLIENT_ID"]
GOOGLE_CLIENT_SECRET = os.environ["GOOGLE_CLIENT_SECRET"]
GOOGLE_REDIRECT_URI = os.environ["GOOGLE_REDIRECT_URI"]

AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
HTTP_TIMEOUT_SECONDS = 10

logger = logging.getLogger(__name__)


async def exchange_code_for_token(code: str) -> GoogleToken:
    """Exchange a Google authorization code for an access token.

    Codes are single-use, so a failed exchange is never retried here; the
    caller has to restart the login from the consent screen.

    Args:
        code: The authorization code from the callback query string

    Returns:
        GoogleToken: The access token and its lifetime in seconds

    Raises:
        InvalidRequest: If `code` is not a non-empty string
        UpstreamAuthError: If Google rejects the exchange or can't be reached
    """
    if not isinstance(code, str) or not code:
        raise InvalidRequest("Invalid code parameter")

    try:
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS) as client:
            response = await client.post(
                TOKEN_URL,
                data={
                    "code": code,
                    "client_id": GOOGLE_CLIENT_ID,
                    "client_secret": GOOGLE_CLIENT_SECRET,
                    "redirect_uri": GOOGLE_REDIRECT_URI,
                    "grant_type": "authorization_code",
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
    except httpx.HTTPError as e:
        logger.error(f"Google token endpoint unreachable: {type(e).__name__}")
        raise UpstreamAuthError("Failed to fetch access token") from e

    try:
        token_data = response.json()
    except ValueError:
        token_data = {}

    if not isinstance(token_data, dict):
        logger.error(
            f"Google token endpoint returned a non-object body: {response.status_code}"
        )
        raise UpstreamAuthError(
            "Failed to fetch access token: malformed token response",
            upstream_status=response.status_code,
        )

    if "error" in token_data or response.status_code != 200:
        error = token_data.get("error", "unknown_error")
        description = token_data.get("error_description") or error
        logger.error(
            f"Failed to exchange Google code: {response.status_code} - {error}: {description}"
        )
        raise UpstreamAuthError(
            f"Failed to fetch access token: {description}",
            upstream_status=response.status_code,
        )

    access_token = token_data.get("access_token")
    expires_in = token_data.get("expires_in")
    if not access_token or not isinstance(expires_in, int):
        logger.error("Google token response is missing access_token or expires_in")
        raise UpstreamAuthError(
            "Failed to fetch access token: malformed token response",
            upstream_status=response.status_code,
        )

    return GoogleToken(
        access_token=access_token,
        expires_in=expires_in,
        token_type=token_data.get("token_type", "Bearer"),
        scope=token_data.get("scope"),
    )


def build_oauth_authorize_url(redirect_uri: str, state: str | None = None) -> str:
    """Build the Google OAuth consent URL.

    Args:
        redirect_uri: The callback URL registered with Google
        state: Optional state parameter for CSRF protection

    Returns:
        The authorization URL

    Raises:
        ValueError: If GOOGLE_CLIENT_ID is not configured
    """
    if not GOOGLE_CLIENT_ID:
        raise ValueError("GOOGLE_CLIENT_ID environment variable is not set")

    params = {
        "client_id": GOOGLE_CLIENT_ID,
        "redirect_uri": redirect_uri,
        "scope": "profile email",
        "response_type": "code",
    }
    if state is not None:
        params["state"] = state

    url = f"{AUTHORIZE_URL}?{urlencode(params)}"
    logger.info(f"Building Google OAuth authorize URL: {url}")
    return url
