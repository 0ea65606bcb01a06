import os
import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import RedirectResponse

from questionbank.errors import InvalidRequest
from questionbank.integrations import google
from questionbank.integrations.google.models import GoogleProfile
from questionbank.app.auth import get_verified_profile
from questionbank.app.login import LoginAttempt, LoginState, complete_login
from questionbank.app.session import (
    STATE_COOKIE,
    issue_session,
    clear_session,
    new_oauth_state,
    set_oauth_state,
    oauth_state_matches,
    clear_oauth_state,
)
from questionbank.app.models import ProfileResponse

FRONTEND_URL = os.environ["FRONTEND_URL"]
GOOGLE_REDIRECT_URI = os.environ["GOOGLE_REDIRECT_URI"]

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/google")
def google_oauth_authorize() -> RedirectResponse:
    """Send the browser to Google's consent screen."""
    state = new_oauth_state()
    url = google.build_oauth_authorize_url(
        redirect_uri=GOOGLE_REDIRECT_URI, state=state
    )
    response = RedirectResponse(url, status_code=302)
    set_oauth_state(response, state)
    return response


@router.get("/google/callback")
async def google_oauth_callback(request: Request) -> RedirectResponse:
    """Google OAuth callback endpoint.

    Exchanges the code, verifies the profile, saves the user and sets the
    session cookies before redirecting back to the front end.
    """
    provider_error = request.query_params.get("error")
    if provider_error is not None:
        logger.info(f"Google returned an error to the callback: {provider_error}")
        raise InvalidRequest(f"Authorization failed: {provider_error}")

    codes = request.query_params.getlist("code")
    if len(codes) != 1 or not codes[0]:
        raise InvalidRequest("Invalid code parameter")

    if not oauth_state_matches(
        request.cookies.get(STATE_COOKIE), request.query_params.get("state")
    ):
        logger.warning("Callback state does not match the state cookie")
        raise InvalidRequest("Invalid state parameter")

    attempt = LoginAttempt()
    result = await complete_login(codes[0], attempt)

    response = RedirectResponse(FRONTEND_URL, status_code=302)
    issue_session(
        response,
        access_token=result.token.access_token,
        subject_id=result.profile.subject_id,
        expires_in=result.token.expires_in,
    )
    clear_oauth_state(response)
    attempt.advance(LoginState.SESSION_ISSUED)
    return response


@router.get("/user/profile", response_model=ProfileResponse)
async def user_profile(
    profile: GoogleProfile = Depends(get_verified_profile),
) -> ProfileResponse:
    """Return the caller's profile, re-verified with Google."""
    return ProfileResponse(user=profile)


@router.post("/logout", status_code=204)
def logout() -> Response:
    """Clear the session cookies."""
    response = Response(status_code=204)
    clear_session(response)
    return response
